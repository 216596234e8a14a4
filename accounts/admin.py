from django.contrib import admin
from .models import Fee, Finance


@admin.register(Fee)
class FeeAdmin(admin.ModelAdmin):
    list_display = ['student', 'fee_balance', 'total_paid', 'semester_fee', 'updated_at']
    search_fields = ['student__registration_number', 'student__name']
    raw_id_fields = ['student']
    readonly_fields = ['updated_at']


@admin.register(Finance)
class FinanceAdmin(admin.ModelAdmin):
    list_display = ['student', 'statement', 'statement_url', 'receipt_url', 'created_at']
    search_fields = ['student__registration_number', 'statement']
    raw_id_fields = ['student']
    readonly_fields = ['created_at']
