from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import CustomUser, Student, Unit, AllocatedUnit, RegisteredUnit


@admin.register(CustomUser)
class CustomUserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'role', 'phone', 'is_staff', 'is_active', 'date_joined']
    list_filter = ['role', 'is_active', 'is_staff']
    search_fields = ['username', 'email', 'first_name', 'last_name']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Portal', {
            'fields': ('role', 'phone')
        }),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Portal', {
            'fields': ('role', 'phone', 'email', 'first_name', 'last_name')
        }),
    )


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ['registration_number', 'name', 'course', 'level_of_study', 'status', 'created_at']
    list_filter = ['status', 'course', 'level_of_study']
    search_fields = ['registration_number', 'name', 'email', 'national_id']
    readonly_fields = ['id', 'password', 'created_at', 'updated_at']
    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'registration_number', 'name', 'course', 'level_of_study', 'email', 'photo_url')
        }),
        ('Identity', {
            'fields': ('national_id', 'birth_certificate', 'date_of_birth', 'password')
        }),
        ('Status', {
            'fields': ('status', 'academic_leave', 'academic_leave_start', 'academic_leave_end',
                       'academic_leave_reason', 'deregistered', 'deregistration_date', 'deregistration_reason')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Unit)
class UnitAdmin(admin.ModelAdmin):
    list_display = ['unit_code', 'unit_name', 'created_at']
    search_fields = ['unit_code', 'unit_name']


@admin.register(AllocatedUnit)
class AllocatedUnitAdmin(admin.ModelAdmin):
    list_display = ['student', 'unit', 'semester', 'academic_year', 'status', 'allocated_by', 'allocated_at']
    list_filter = ['status', 'semester', 'academic_year']
    search_fields = ['student__registration_number', 'student__name', 'unit__unit_code']
    raw_id_fields = ['student', 'unit', 'allocated_by']
    readonly_fields = ['allocated_at']


@admin.register(RegisteredUnit)
class RegisteredUnitAdmin(admin.ModelAdmin):
    list_display = ['student', 'unit_code', 'unit_name', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['student__registration_number', 'unit_code', 'unit_name']
    raw_id_fields = ['student']
