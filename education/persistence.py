"""
Database access shared by every portal flow.

``atomic`` wraps ``django.db.transaction.atomic`` so that any database error
escaping the block surfaces as ``PersistenceFailure``. Student lookups accept
either the primary key or the registration number.
"""
import logging
import uuid
from contextlib import contextmanager

from django.db import DatabaseError, transaction

from .exceptions import NotFoundError, PersistenceFailure

logger = logging.getLogger(__name__)


@contextmanager
def atomic():
    """Run the block in one transaction; database errors roll it back"""
    try:
        with transaction.atomic():
            yield
    except DatabaseError as e:
        logger.error(f"Database transaction failed: {str(e)}", exc_info=True)
        raise PersistenceFailure('Database write failed', details=str(e)) from e


def as_uuid(value):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def get_student_by_id(student_id):
    from .models import Student

    pk = as_uuid(student_id)
    student = Student.objects.filter(pk=pk).first() if pk else None
    if student is None:
        raise NotFoundError('Student not found', details='No student found with the provided ID')
    return student


def get_student_by_registration(registration_number):
    from .models import Student

    student = Student.objects.filter(registration_number=registration_number).first() if registration_number else None
    if student is None:
        raise NotFoundError(
            'Student not found',
            details='No student found with the provided registration number',
        )
    return student


def resolve_student(student_ref):
    """
    Resolve a student from an id or a registration number.

    UUID-shaped references are tried as primary keys first, then as a
    registration number.
    """
    from .models import Student

    if isinstance(student_ref, Student):
        return student_ref
    pk = as_uuid(student_ref)
    if pk is not None:
        student = Student.objects.filter(pk=pk).first()
        if student is not None:
            return student
    return get_student_by_registration(student_ref)
