"""
Document uploads: validate, store the blob, record it.

The blob is written first and the database rows second; when the database
write fails the blob is discarded again so no orphaned file is left behind.
Callers pass in the ``BlobStorage`` to use (see ``documents.apps``).
"""
import logging

from django.conf import settings

from accounts.services import check_exam_card_clearance, record_statement_url, record_receipt_url
from education.exceptions import ValidationError, NotFoundError
from education.persistence import atomic, get_student_by_registration

from . import fields
from .models import StudentDocument, ExamCard, ResultRecord, Timetable

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = [choice for choice, _ in StudentDocument.DOCUMENT_TYPE_CHOICES]
PHOTO_CONTENT_TYPES = ('image/jpeg', 'image/jpg', 'image/png', 'image/gif')
PHOTO_FOLDER = 'photos'
DEFAULT_COURSE = 'General'
DEFAULT_SEMESTER = 'Current'


def _megabytes(size):
    return f"{size // (1024 * 1024)}MB"


def validate_upload(registration_number, uploaded_file, document_type, min_size=None, max_size=None):
    """Raise ValidationError unless the upload may be stored"""
    if not registration_number or not str(registration_number).strip():
        raise ValidationError('Missing required field', details='Registration number is required')
    max_length = StudentDocument._meta.get_field('registration_number').max_length
    if len(str(registration_number).strip()) > max_length:
        raise ValidationError('Invalid registration number', details=f'Registration number must be at most {max_length} characters')
    if document_type not in DOCUMENT_TYPES:
        raise ValidationError('Invalid document type', details=f"Unknown document type '{document_type}'")
    if uploaded_file is None:
        raise ValidationError('File is required', details='No file was uploaded')
    if not uploaded_file.size:
        raise ValidationError('File is required', details='The uploaded file is empty')

    max_size = max_size or settings.DOCUMENT_MAX_UPLOAD_SIZE
    if uploaded_file.size > max_size:
        raise ValidationError('File too large', details=f'Maximum file size is {_megabytes(max_size)}')
    if min_size and uploaded_file.size < min_size:
        raise ValidationError('File too small', details=f'Minimum file size is {min_size // 1024}KB')


def _record(storage, stored, registration_number, uploaded_file, document_type, mirror):
    try:
        with atomic():
            document = StudentDocument.objects.create(
                registration_number=registration_number,
                document_type=document_type,
                file_url=stored.url,
                file_name=uploaded_file.name,
                file_size=uploaded_file.size,
                storage_method=stored.method,
            )
            if mirror is not None:
                mirror(document)
    except Exception:
        logger.error(f"Recording {document_type} for {registration_number} failed, discarding {stored.key}")
        storage.discard(stored)
        raise
    return document


def upload_document(storage, registration_number, uploaded_file, document_type, min_size=None, mirror=None):
    """
    Store an uploaded file and append it to the student's document log.

    ``mirror`` is called with the new StudentDocument inside the same
    transaction, to copy the upload into a per-type table.
    """
    validate_upload(registration_number, uploaded_file, document_type, min_size=min_size)
    registration_number = str(registration_number).strip()

    stored = storage.store(uploaded_file, document_type, registration_number)
    document = _record(storage, stored, registration_number, uploaded_file, document_type, mirror)

    logger.info(f"Uploaded {document_type} for {registration_number} ({document.file_size} bytes, {stored.method})")
    return document


def legacy_mirror(document_type, student, course=None, semester=None):
    """
    Callback copying a new document into its per-type table, or None for
    types that have no such table. Only the timetable copy works without a
    student.
    """
    def exam_card(document):
        ExamCard.objects.create(student=student, file_url=document.file_url)

    def fees_statement(document):
        record_statement_url(student, document.file_url)

    def fees_receipt(document):
        record_receipt_url(student, document.file_url)

    def results(document):
        ResultRecord.objects.create(
            student=student,
            semester=semester or DEFAULT_SEMESTER,
            result_data={'file_url': document.file_url, 'file_name': document.file_name},
        )

    def timetable(document):
        Timetable.objects.create(
            student=student,
            course=course or DEFAULT_COURSE,
            semester=semester or DEFAULT_SEMESTER,
            timetable_url=document.file_url,
            timetable_data={'file_name': document.file_name},
        )

    mirrors = {
        fields.EXAM_CARD: exam_card,
        fields.FEES_STATEMENT: fees_statement,
        fields.FEES_RECEIPT: fees_receipt,
        fields.RESULTS: results,
        fields.TIMETABLE: timetable,
    }
    return mirrors.get(document_type)


def list_documents(registration_number):
    """All documents of a student, newest first"""
    return list(StudentDocument.objects.filter(registration_number=registration_number).order_by('-uploaded_at', '-id'))


def latest_document(registration_number, document_type):
    return (
        StudentDocument.objects
        .filter(registration_number=registration_number, document_type=document_type)
        .order_by('-uploaded_at', '-id')
        .first()
    )


def store_student_photo(storage, registration_number, photo):
    """Validate a passport photo and store it under photos/"""
    if photo is None or not photo.size:
        raise ValidationError('File is required', details='No photo was uploaded')
    if (photo.content_type or '').lower() not in PHOTO_CONTENT_TYPES:
        raise ValidationError('Invalid file type', details='Only JPEG, PNG, and GIF images are allowed')
    if photo.size > settings.PHOTO_MAX_UPLOAD_SIZE:
        raise ValidationError('File too large', details=f'Maximum photo size is {_megabytes(settings.PHOTO_MAX_UPLOAD_SIZE)}')

    return storage.store(photo, PHOTO_FOLDER, f'student_{registration_number}')


def upload_student_photo(storage, registration_number, photo):
    """Replace a student's photo; the upload is also kept in the document log"""
    student = get_student_by_registration(registration_number)
    stored = store_student_photo(storage, student.registration_number, photo)

    def set_photo_url(document):
        student.photo_url = document.file_url
        student.save(update_fields=['photo_url', 'updated_at'])

    document = _record(storage, stored, student.registration_number, photo, fields.PHOTO, set_photo_url)
    logger.info(f"Updated photo for {student.registration_number} ({stored.method})")
    return student, document


def exam_card_for(student):
    """
    The student's current exam card URL.

    Withheld while fees are outstanding. Falls back to the exam_cards table
    for cards uploaded before the document log existed.
    """
    check_exam_card_clearance(student)

    document = latest_document(student.registration_number, fields.EXAM_CARD)
    if document is not None:
        return {'file_url': document.file_url, 'uploaded_at': document.uploaded_at.isoformat()}

    legacy = ExamCard.objects.filter(student=student).order_by('-created_at').first()
    if legacy is not None:
        return {'file_url': legacy.file_url, 'uploaded_at': legacy.created_at.isoformat()}

    raise NotFoundError('Exam card not found', details='No exam card has been uploaded for this student')


def timetable_for(course, semester):
    timetable = Timetable.objects.filter(course=course, semester=semester).order_by('-created_at').first()
    if timetable is None:
        raise NotFoundError('Timetable not found', details=f'No timetable found for {course} {semester}')
    return timetable
