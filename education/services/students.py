"""
Student records: enrolment, status changes and student login.
"""
import calendar
import logging
from datetime import date

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from ..exceptions import ValidationError, ConflictError, UnauthorizedError
from ..models import Student
from ..persistence import atomic, as_uuid, get_student_by_id, get_student_by_registration

logger = logging.getLogger(__name__)

REQUIRED_STUDENT_FIELDS = ('name', 'registration_number', 'course', 'level_of_study')
OPTIONAL_STUDENT_FIELDS = ('national_id', 'birth_certificate', 'email')
DEFAULT_LEAVE_MONTHS = 3


def _parse_day(value, field_name):
    if not value:
        return None
    if isinstance(value, date):
        return value
    parsed = parse_date(str(value))
    if parsed is None:
        moment = parse_datetime(str(value))
        parsed = moment.date() if moment else None
    if parsed is None:
        raise ValidationError(f'Invalid {field_name}', details='Dates must be in YYYY-MM-DD format')
    return parsed


def _add_months(day, months):
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


def check_required_fields(data):
    if any(not data.get(name) for name in REQUIRED_STUDENT_FIELDS):
        raise ValidationError(
            'Missing required fields',
            details='Name, registration number, course, and level of study are required',
        )


def create_student(data, photo_url=None):
    """Create an active student; the password, when given, is stored hashed"""
    check_required_fields(data)

    registration_number = str(data['registration_number']).strip()
    if Student.objects.filter(registration_number=registration_number).exists():
        raise ConflictError(
            'Student already exists',
            details=f"A student with registration number '{registration_number}' already exists",
        )

    student = Student(
        registration_number=registration_number,
        name=data['name'],
        course=data['course'],
        level_of_study=str(data['level_of_study']),
        date_of_birth=_parse_day(data.get('date_of_birth'), 'date_of_birth'),
        photo_url=photo_url,
        status='active',
    )
    for name in OPTIONAL_STUDENT_FIELDS:
        setattr(student, name, data.get(name) or None)
    if data.get('password'):
        student.set_password(data['password'])

    try:
        with transaction.atomic():
            student.save()
    except IntegrityError:
        raise ConflictError('Student already exists', details='A student with this registration number already exists')

    logger.info(f"Created student {student.registration_number}")
    return student


def list_students(status=None):
    students = Student.objects.all()
    if status:
        students = students.filter(status=status)
    return list(students)


def get_student(registration_number):
    return get_student_by_registration(registration_number)


def promote_student(registration_number, new_level):
    if not registration_number:
        raise ValidationError(
            'Missing required field',
            details='Registration number is required. Please provide "registration_number" in your request.',
        )
    if not new_level:
        raise ValidationError(
            'Missing required field',
            details='New level of study is required. Please provide "new_level" with the target level of study.',
        )

    student = get_student_by_registration(registration_number)
    with atomic():
        student.level_of_study = str(new_level)
        student.save(update_fields=['level_of_study', 'updated_at'])
    return student


def grant_academic_leave(student, start_date=None, end_date=None, reason=''):
    """Put a student on leave; dates default to today and three months on"""
    start = _parse_day(start_date, 'start_date') or timezone.localdate()
    end = _parse_day(end_date, 'end_date') or _add_months(timezone.localdate(), DEFAULT_LEAVE_MONTHS)
    if end < start:
        raise ValidationError('Invalid leave period', details='end_date must not be before start_date')

    with atomic():
        student.academic_leave = True
        student.academic_leave_start = start
        student.academic_leave_end = end
        student.academic_leave_reason = reason or ''
        student.status = 'on_leave'
        student.save()

    logger.info(f"Academic leave granted to {student.registration_number} ({start} - {end})")
    return student


def cancel_academic_leave(student_id):
    student = get_student_by_id(student_id)
    with atomic():
        student.academic_leave = False
        student.academic_leave_start = None
        student.academic_leave_end = None
        student.academic_leave_reason = None
        student.status = 'active'
        student.save()
    return student


def deregister_student(student, reason=''):
    with atomic():
        student.deregistered = True
        student.deregistration_date = timezone.localdate()
        student.deregistration_reason = reason or ''
        student.status = 'deregistered'
        student.save()

    logger.info(f"Deregistered student {student.registration_number}")
    return student


def deregister_students(student_ids=None, registration_numbers=None, reason=''):
    """Bulk deregistration by ids and/or registration numbers"""
    if not student_ids and not registration_numbers:
        raise ValidationError('Missing required field', details='Student IDs or registration numbers are required')

    ids = [pk for pk in (as_uuid(value) for value in student_ids or []) if pk]
    students = list(
        Student.objects
        .filter(Q(pk__in=ids) | Q(registration_number__in=registration_numbers or []))
        .order_by('registration_number')
    )

    with atomic():
        for student in students:
            deregister_student(student, reason)
    return students


def restore_student(student_id):
    student = get_student_by_id(student_id)
    with atomic():
        student.deregistered = False
        student.deregistration_date = None
        student.deregistration_reason = None
        student.status = 'active'
        student.save()
    return student


def authenticate_student(registration_number, password):
    """Return the student whose registration number and password match"""
    if not registration_number or not password:
        raise ValidationError('Registration number and password required')

    student = Student.objects.filter(registration_number=registration_number).first()
    if student is None or not student.check_password(password):
        raise UnauthorizedError('Invalid credentials')
    return student
