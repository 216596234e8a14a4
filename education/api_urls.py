"""
API URLs for students, units and unit allocation.

Registration numbers may contain slashes (CS/001/2021), so they are
captured with the ``path`` converter.
"""
from django.urls import path
from . import api_views

urlpatterns = [
    # Authentication
    path('auth/student-login', api_views.api_student_login, name='api_student_login'),
    path('auth/student-logout', api_views.api_student_logout, name='api_student_logout'),
    path('auth/admin-login', api_views.api_admin_login, name='api_admin_login'),
    path('auth/admin-logout', api_views.api_admin_logout, name='api_admin_logout'),
    path('admin/verify-session', api_views.api_admin_verify_session, name='api_admin_verify_session'),
    path('health', api_views.api_health, name='api_health'),

    # Students
    path('students', api_views.api_students, name='api_students'),
    path('students/status/<str:status_type>', api_views.api_students_by_status, name='api_students_by_status'),
    path('students/promote', api_views.api_promote_student, name='api_promote_student'),
    path('students/academic-leave', api_views.api_academic_leave, name='api_academic_leave'),
    path('students/deregister', api_views.api_deregister_students, name='api_deregister_students'),
    path('student/registration/<path:reg_number>', api_views.api_student_by_registration, name='api_student_by_registration'),
    path('students/<uuid:student_id>/academic-leave', api_views.api_student_academic_leave, name='api_student_academic_leave'),
    path('students/<uuid:student_id>/deregister', api_views.api_deregister_student, name='api_deregister_student'),
    path('students/<uuid:student_id>/restore', api_views.api_restore_student, name='api_restore_student'),
    path('students/registration/<path:reg_number>/academic-leave', api_views.api_academic_leave_by_registration, name='api_academic_leave_by_registration'),
    path('students/registration/<path:reg_number>/deregister', api_views.api_deregister_by_registration, name='api_deregister_by_registration'),

    # Units and allocation
    path('units', api_views.api_units, name='api_units'),
    path('units/register', api_views.api_register_unit, name='api_register_unit'),
    path('students/<uuid:student_id>/registered-units', api_views.api_registered_units, name='api_registered_units'),
    path('students/<uuid:student_id>/allocate-units', api_views.api_allocate_units, name='api_allocate_units'),
    path('students/registration/<path:reg_number>/allocate-units', api_views.api_allocate_units_by_registration, name='api_allocate_units_by_registration'),
    path('students/registration/<path:reg_number>/allocated-units', api_views.api_allocated_units, name='api_allocated_units'),
    path('students/registration/<path:reg_number>/register-allocated-unit', api_views.api_register_allocated_unit, name='api_register_allocated_unit'),
    path('allocated-units/<str:allocation_id>', api_views.api_cancel_allocation, name='api_cancel_allocation'),
]
