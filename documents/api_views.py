"""
API views for document uploads and retrieval.

Upload forms are multipart; the registration number and the file may be sent
under any of the names listed in ``documents.fields``.
"""
from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from django.views.static import serve

from education.decorators import api_errors, admin_required, student_or_admin_required, ensure_student_access, is_admin
from education.exceptions import ForbiddenError, ValidationError
from education.fields import pick
from education.models import Student
from education.persistence import get_student_by_id
from . import fields, services
from .apps import get_blob_storage


def _handle_upload(request, document_type, student=None, always_mirror=False, registration_number=None, uploaded_file=None):
    """
    Shared upload flow of the per-type endpoints.

    Without ``student`` the registration number comes from the form unless
    given, and the per-type copy is only made when it belongs to an enrolled
    student. ``uploaded_file`` defaults to the form's file part.
    """
    rule = fields.DOCUMENT_RULES[document_type]
    if student is not None:
        registration_number = student.registration_number
    else:
        registration_number = registration_number or fields.registration_number_from(request.POST)
        if registration_number:
            student = Student.objects.filter(registration_number=registration_number).first()

    mirror = None
    if student is not None or always_mirror:
        mirror = services.legacy_mirror(
            document_type,
            student,
            course=pick(request.POST, fields.COURSE_ALIASES),
            semester=pick(request.POST, fields.SEMESTER_ALIASES),
        )

    if uploaded_file is None:
        uploaded_file = fields.uploaded_file_from(request.FILES, document_type)

    document = services.upload_document(
        get_blob_storage(),
        registration_number,
        uploaded_file,
        document_type,
        min_size=settings.DOCUMENT_MIN_UPLOAD_SIZE if rule['enforce_min_size'] else None,
        mirror=mirror,
    )
    return JsonResponse({'message': rule['message'], 'success': True, 'data': document.to_dict()}, status=201)


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_upload_exam_card(request):
    return _handle_upload(request, fields.EXAM_CARD)


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_upload_exam_card_for(request, reg_number):
    """
    Exam card upload as a raw file body or as a multipart form.

    A raw body names its student with ?registration_number= or the
    X-Registration-Number header, the path segment being the fallback.
    """
    if fields.is_binary_upload(request.content_type):
        registration_number, uploaded_file = fields.binary_upload_from(request, fields.EXAM_CARD, default_registration=reg_number)
        return _handle_upload(request, fields.EXAM_CARD, registration_number=registration_number, uploaded_file=uploaded_file)
    if request.content_type in fields.FORM_CONTENT_TYPES:
        return _handle_upload(request, fields.EXAM_CARD, registration_number=reg_number)
    raise ValidationError(
        'Unsupported content type',
        details='Send the exam card as a PDF, image or Word body, or as multipart/form-data',
    )


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_upload_fees_structure(request):
    return _handle_upload(request, fields.FEES_STRUCTURE)


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_upload_fees_statement(request):
    return _handle_upload(request, fields.FEES_STATEMENT)


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_upload_fees_receipt(request):
    return _handle_upload(request, fields.FEES_RECEIPT)


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_upload_results(request):
    return _handle_upload(request, fields.RESULTS)


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_upload_timetable(request):
    return _handle_upload(request, fields.TIMETABLE)


# Student-id keyed uploads: the student must exist and the per-type copy is always made

@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_student_upload_fee_statement(request, student_id):
    return _handle_upload(request, fields.FEES_STATEMENT, student=get_student_by_id(student_id))


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_student_upload_fee_receipt(request, student_id):
    return _handle_upload(request, fields.FEES_RECEIPT, student=get_student_by_id(student_id))


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_student_upload_results(request, student_id):
    return _handle_upload(request, fields.RESULTS, student=get_student_by_id(student_id))


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_upload_course_timetable(request):
    """Timetable upload that always records a timetables row, course and semester defaulting to General/Current"""
    return _handle_upload(request, fields.TIMETABLE, always_mirror=True)


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_upload_student_photo(request, reg_number):
    photo = fields.uploaded_file_from(request.FILES, fields.PHOTO)
    student, document = services.upload_student_photo(get_blob_storage(), reg_number, photo)
    return JsonResponse({
        'message': 'Photo uploaded successfully',
        'success': True,
        'photo_url': student.photo_url,
        'data': document.to_dict(),
    })


# Retrieval

@require_http_methods(["GET"])
@api_errors
@student_or_admin_required
def api_documents(request, reg_number):
    """All documents uploaded for a registration number, newest first"""
    student = Student.objects.filter(registration_number=reg_number).first()
    if student is not None:
        ensure_student_access(request, student)
    elif not is_admin(request):
        raise ForbiddenError('You can only access your own records')

    documents = services.list_documents(reg_number)
    return JsonResponse({
        'success': True,
        'data': [document.to_dict() for document in documents],
        'count': len(documents),
    })


@require_http_methods(["GET"])
@api_errors
@student_or_admin_required
def api_student_documents(request, student_id):
    student = get_student_by_id(student_id)
    ensure_student_access(request, student)
    documents = services.list_documents(student.registration_number)
    return JsonResponse({
        'success': True,
        'data': [document.to_dict() for document in documents],
        'count': len(documents),
    })


@require_http_methods(["GET"])
@api_errors
@student_or_admin_required
def api_student_exam_card(request, student_id):
    """Latest exam card, withheld with 403 while fees are outstanding"""
    student = get_student_by_id(student_id)
    ensure_student_access(request, student)
    return JsonResponse(services.exam_card_for(student))


@require_http_methods(["GET"])
@api_errors
def api_timetable(request, course, semester):
    return JsonResponse(services.timetable_for(course, semester).to_dict())


def local_upload(request, path):
    """Serve a file written by the local storage fallback"""
    return serve(request, path, document_root=settings.LOCAL_UPLOAD_ROOT)
