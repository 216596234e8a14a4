"""
Upload form conventions for each document type.

Clients name the file part differently per document type; ``FILE_ALIASES``
lists the accepted names in priority order. ``DOCUMENT_RULES`` flags the
types held to DOCUMENT_MIN_UPLOAD_SIZE and gives their success messages.
"""
from django.core.files.uploadedfile import SimpleUploadedFile

from education.fields import REGISTRATION_NUMBER_ALIASES, pick

EXAM_CARD = 'exam-card'
FEES_STRUCTURE = 'fees-structure'
FEES_STATEMENT = 'fees-statement'
FEES_RECEIPT = 'fees-receipt'
RESULTS = 'results'
TIMETABLE = 'timetable'
PHOTO = 'photo'

FILE_ALIASES = {
    EXAM_CARD: ('file', 'examCard', 'exam_card', 'document'),
    FEES_STRUCTURE: ('file', 'feesStructure', 'fees_structure', 'document'),
    FEES_STATEMENT: ('file', 'feesStatement', 'fees_statement', 'document'),
    FEES_RECEIPT: ('file', 'feesReceipt', 'fees_receipt', 'document'),
    RESULTS: ('file', 'results', 'result', 'document'),
    TIMETABLE: ('file', 'timetable', 'schedule', 'document'),
    PHOTO: ('photo', 'file'),
}

DOCUMENT_RULES = {
    EXAM_CARD: {'enforce_min_size': True, 'message': 'Exam card uploaded successfully'},
    FEES_STRUCTURE: {'enforce_min_size': False, 'message': 'Fees structure uploaded successfully'},
    FEES_STATEMENT: {'enforce_min_size': False, 'message': 'Fees statement uploaded successfully'},
    FEES_RECEIPT: {'enforce_min_size': False, 'message': 'Fees receipt uploaded successfully'},
    RESULTS: {'enforce_min_size': False, 'message': 'Results uploaded successfully'},
    TIMETABLE: {'enforce_min_size': True, 'message': 'Timetable uploaded successfully'},
}

SEMESTER_ALIASES = ('semester', 'semesterLabel', 'semester_label')
COURSE_ALIASES = ('course', 'courseName', 'course_name')


def registration_number_from(form):
    return pick(form, REGISTRATION_NUMBER_ALIASES)


def uploaded_file_from(files, document_type):
    """First file found under the document type's aliases, or None"""
    for name in FILE_ALIASES[document_type]:
        uploaded = files.get(name)
        if uploaded is not None:
            return uploaded
    return None


# Raw request body uploads: the body is the file, metadata travels in the
# query string or in headers
BINARY_CONTENT_TYPES = (
    'application/octet-stream',
    'image/',
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats',
)
FORM_CONTENT_TYPES = ('multipart/form-data', 'application/x-www-form-urlencoded')
REGISTRATION_NUMBER_HEADER = 'X-Registration-Number'
FILENAME_HEADER = 'X-Filename'
DEFAULT_BINARY_NAMES = {
    EXAM_CARD: 'exam_card',
}


def is_binary_upload(content_type):
    content_type = (content_type or '').lower()
    return any(content_type.startswith(prefix) for prefix in BINARY_CONTENT_TYPES)


def binary_upload_from(request, document_type, default_registration=None):
    """
    Registration number and file of a raw body upload.

    The registration number is read from ``?registration_number=`` or the
    X-Registration-Number header, falling back to ``default_registration``;
    the file name from ``?filename=`` or X-Filename.
    """
    registration_number = (
        request.GET.get('registration_number')
        or request.headers.get(REGISTRATION_NUMBER_HEADER)
        or default_registration
    )
    name = request.GET.get('filename') or request.headers.get(FILENAME_HEADER) or DEFAULT_BINARY_NAMES[document_type]
    return registration_number, SimpleUploadedFile(name, request.body or b'', content_type=request.content_type)
