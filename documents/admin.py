from django.contrib import admin
from .models import StudentDocument, ExamCard, ResultRecord, Timetable


@admin.register(StudentDocument)
class StudentDocumentAdmin(admin.ModelAdmin):
    list_display = ['registration_number', 'document_type', 'file_name', 'file_size', 'storage_method', 'uploaded_at']
    list_filter = ['document_type', 'storage_method']
    search_fields = ['registration_number', 'file_name']
    readonly_fields = ['created_at', 'updated_at']
    date_hierarchy = 'uploaded_at'


@admin.register(ExamCard)
class ExamCardAdmin(admin.ModelAdmin):
    list_display = ['student', 'file_url', 'created_at']
    search_fields = ['student__registration_number', 'student__name']
    raw_id_fields = ['student']


@admin.register(ResultRecord)
class ResultRecordAdmin(admin.ModelAdmin):
    list_display = ['student', 'semester', 'created_at']
    list_filter = ['semester']
    search_fields = ['student__registration_number']
    raw_id_fields = ['student']


@admin.register(Timetable)
class TimetableAdmin(admin.ModelAdmin):
    list_display = ['course', 'semester', 'student', 'created_at']
    list_filter = ['course', 'semester']
    raw_id_fields = ['student']
