"""
API URLs for student fees and finance documents.
"""
from django.urls import path
from . import api_views

urlpatterns = [
    path('students/<uuid:student_id>/fees', api_views.api_student_fees, name='api_student_fees'),
    path('students/<uuid:student_id>/fee-statement', api_views.api_fee_statement, name='api_fee_statement'),
    path('students/<uuid:student_id>/fee-receipt', api_views.api_fee_receipt, name='api_fee_receipt'),
]
