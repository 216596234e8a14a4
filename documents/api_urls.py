"""
API URLs for document uploads and retrieval.
"""
from django.urls import path
from . import api_views

urlpatterns = [
    # Uploads keyed by the registration number in the form
    path('exam-card', api_views.api_upload_exam_card, name='api_upload_exam_card'),
    path('exam-cards/<path:reg_number>', api_views.api_upload_exam_card_for, name='api_upload_exam_card_for'),
    path('fees-structure', api_views.api_upload_fees_structure, name='api_upload_fees_structure'),
    path('fees-statement', api_views.api_upload_fees_statement, name='api_upload_fees_statement'),
    path('fees-receipt', api_views.api_upload_fees_receipt, name='api_upload_fees_receipt'),
    path('results', api_views.api_upload_results, name='api_upload_results'),
    path('timetable', api_views.api_upload_timetable, name='api_upload_timetable'),
    path('upload-timetable', api_views.api_upload_course_timetable, name='api_upload_course_timetable'),

    # Uploads keyed by student
    path('students/<uuid:student_id>/upload-fee-statement', api_views.api_student_upload_fee_statement, name='api_student_upload_fee_statement'),
    path('students/<uuid:student_id>/upload-fee-receipt', api_views.api_student_upload_fee_receipt, name='api_student_upload_fee_receipt'),
    path('students/<uuid:student_id>/upload-results', api_views.api_student_upload_results, name='api_student_upload_results'),
    path('students/registration/<path:reg_number>/upload-photo', api_views.api_upload_student_photo, name='api_upload_student_photo'),

    # Retrieval
    path('documents/<path:reg_number>', api_views.api_documents, name='api_documents'),
    path('students/<uuid:student_id>/documents', api_views.api_student_documents, name='api_student_documents'),
    path('students/<uuid:student_id>/exam-card', api_views.api_student_exam_card, name='api_student_exam_card'),
    path('timetable/<str:course>/<str:semester>', api_views.api_timetable, name='api_timetable'),
]
