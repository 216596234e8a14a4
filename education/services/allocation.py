"""
Unit allocation workflow.

Admins allocate catalog units to a student for a semester of an academic
year; the student then registers an allocated unit, which moves the
allocation to 'registered' and writes the matching RegisteredUnit in the
same transaction. Admins may cancel an allocation at any time.
"""
import logging
import uuid

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction

from ..exceptions import ValidationError, NotFoundError, NotEligibleError, ConflictError
from ..models import Unit, AllocatedUnit, RegisteredUnit, DEFAULT_ACADEMIC_YEAR, validate_academic_year_format
from ..persistence import atomic, resolve_student, get_student_by_registration

logger = logging.getLogger(__name__)


class AllocationOutcome:
    """Per-item result of one allocate_units call, in input order"""

    def __init__(self, student, total_requested):
        self.student = student
        self.total_requested = total_requested
        self.allocated = []
        self.errors = []

    @property
    def summary(self):
        return {
            'total_requested': self.total_requested,
            'successfully_allocated': len(self.allocated),
            'errors': len(self.errors),
        }

    def to_dict(self):
        payload = {
            'message': 'Unit allocation completed',
            'student': {
                'id': str(self.student.id),
                'registration_number': self.student.registration_number,
                'name': self.student.name,
            },
            'allocated_units': [allocation.to_dict() for allocation in self.allocated],
            'summary': self.summary,
        }
        if self.errors:
            payload['errors'] = self.errors
        return payload


def _as_int(value):
    """Integer value of an int, integral float or digit string; None otherwise"""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_semester(semester):
    value = _as_int(semester)
    if value not in (1, 2):
        raise ValidationError('Invalid semester', details='Semester must be 1 or 2')
    return value


def _check_academic_year(academic_year):
    try:
        validate_academic_year_format(academic_year)
    except DjangoValidationError as e:
        raise ValidationError('Invalid academic year', details=e.messages[0])


def _find_unit(unit_id):
    pk = _as_int(unit_id)
    if pk is None:
        return None
    return Unit.objects.filter(pk=pk).first()


def allocate_units(student_ref, unit_ids, semester=1, academic_year=DEFAULT_ACADEMIC_YEAR, notes=None, allocated_by=None):
    """
    Allocate each of ``unit_ids`` to the student inside one transaction.

    Unknown units and units already allocated (status other than
    'cancelled') for the same semester and academic year are reported in
    ``errors`` and skipped; the remaining units are still allocated. Each
    insert runs in its own savepoint so that a concurrent allocation caught by
    the unique constraint is reported like any other duplicate.
    """
    if not isinstance(unit_ids, (list, tuple)) or not unit_ids:
        raise ValidationError('Missing required fields', details='unit_ids array is required and must not be empty')

    student = resolve_student(student_ref)
    semester = _parse_semester(semester)
    academic_year = academic_year or DEFAULT_ACADEMIC_YEAR
    _check_academic_year(academic_year)

    outcome = AllocationOutcome(student, len(unit_ids))

    with atomic():
        for unit_id in unit_ids:
            unit = _find_unit(unit_id)
            if unit is None:
                outcome.errors.append(f"Unit with ID {unit_id} not found")
                continue

            already_allocated = AllocatedUnit.objects.filter(
                student=student,
                unit=unit,
                semester=semester,
                academic_year=academic_year,
            ).exclude(status=AllocatedUnit.STATUS_CANCELLED).exists()
            if already_allocated:
                outcome.errors.append(f"Unit {unit.unit_code} already allocated for this semester")
                continue

            try:
                with transaction.atomic():
                    allocation = AllocatedUnit.objects.create(
                        student=student,
                        unit=unit,
                        semester=semester,
                        academic_year=academic_year,
                        status=AllocatedUnit.STATUS_ALLOCATED,
                        notes=notes or None,
                        allocated_by=allocated_by,
                    )
            except IntegrityError:
                outcome.errors.append(f"Unit {unit.unit_code} already allocated for this semester")
                continue

            outcome.allocated.append(allocation)

    logger.info(
        f"Allocated {len(outcome.allocated)}/{outcome.total_requested} units to "
        f"{student.registration_number} for {academic_year} semester {semester}"
    )
    return outcome


def register_allocated_unit(student_ref, allocated_unit_id):
    """
    Register the student for one of their allocated units.

    The allocation must belong to the student and still be 'allocated'.
    Returns the new RegisteredUnit.
    """
    if not allocated_unit_id:
        raise ValidationError('Missing required fields', details='allocated_unit_id is required')

    student = resolve_student(student_ref)
    not_eligible = NotEligibleError(
        'Allocated unit not found',
        details='Allocated unit not found or not available for registration',
    )

    try:
        allocation_pk = uuid.UUID(str(allocated_unit_id))
    except ValueError:
        raise not_eligible

    allocation = AllocatedUnit.objects.select_related('unit').filter(
        pk=allocation_pk,
        student=student,
        status=AllocatedUnit.STATUS_ALLOCATED,
    ).first()
    if allocation is None:
        raise not_eligible

    if RegisteredUnit.objects.filter(student=student, unit_code=allocation.unit.unit_code).exists():
        raise ConflictError('Unit already registered', details='Student is already registered for this unit')

    with atomic():
        # Re-check under the row lock; another request may have won the race
        locked = AllocatedUnit.objects.select_for_update().filter(
            pk=allocation.pk,
            status=AllocatedUnit.STATUS_ALLOCATED,
        ).first()
        if locked is None:
            raise not_eligible

        locked.status = AllocatedUnit.STATUS_REGISTERED
        locked.save(update_fields=['status'])

        try:
            with transaction.atomic():
                registered_unit = RegisteredUnit.objects.create(
                    student=student,
                    unit_name=allocation.unit.unit_name,
                    unit_code=allocation.unit.unit_code,
                    status='registered',
                )
        except IntegrityError:
            raise ConflictError('Unit already registered', details='Student is already registered for this unit')

    logger.info(f"{student.registration_number} registered allocated unit {allocation.unit.unit_code}")
    return registered_unit


def cancel_allocation(allocation_id):
    """Cancel an allocation regardless of its current status"""
    try:
        allocation_pk = uuid.UUID(str(allocation_id))
    except ValueError:
        allocation_pk = None

    allocation = AllocatedUnit.objects.select_related('unit', 'student').filter(pk=allocation_pk).first() if allocation_pk else None
    if allocation is None:
        raise NotFoundError('Allocated unit not found')

    previous_status = allocation.status
    with atomic():
        allocation.status = AllocatedUnit.STATUS_CANCELLED
        allocation.save(update_fields=['status', 'active'])

    logger.info(f"Cancelled allocation {allocation.pk} ({allocation.unit.unit_code}), was {previous_status}")
    return allocation


def list_allocated_units(student_ref):
    student = resolve_student(student_ref)
    allocations = AllocatedUnit.objects.filter(student=student).select_related('unit').order_by('semester', 'unit__unit_code')
    return student, list(allocations)


def list_registered_units(student_ref):
    student = resolve_student(student_ref)
    return list(RegisteredUnit.objects.filter(student=student).order_by('unit_code'))


def list_units():
    return list(Unit.objects.order_by('unit_code'))


def create_unit(unit_name, unit_code):
    if not unit_name or not unit_code:
        raise ValidationError('Missing required fields', details='Unit name and unit code are required')

    if Unit.objects.filter(unit_code=unit_code).exists():
        raise ConflictError('Unit already exists', details='A unit with this code already exists')

    try:
        with transaction.atomic():
            return Unit.objects.create(unit_name=unit_name, unit_code=unit_code)
    except IntegrityError:
        raise ConflictError('Unit already exists', details='A unit with this code already exists')


def register_unit_direct(registration_number, unit_name, unit_code, status='active'):
    """
    Register a student for a unit without an allocation.

    The unit is added to the catalog the first time its code is seen.
    """
    if not registration_number or not unit_name or not unit_code:
        raise ValidationError(
            'Missing required fields',
            details='Student registration number, unit name, and unit code are required',
        )

    student = get_student_by_registration(registration_number)

    if RegisteredUnit.objects.filter(student=student, unit_code=unit_code).exists():
        raise ConflictError('Unit already registered', details='Student is already registered for this unit')

    with atomic():
        Unit.objects.get_or_create(unit_code=unit_code, defaults={'unit_name': unit_name})
        try:
            with transaction.atomic():
                registered_unit = RegisteredUnit.objects.create(
                    student=student,
                    unit_name=unit_name,
                    unit_code=unit_code,
                    status=status or 'active',
                )
        except IntegrityError:
            raise ConflictError('Unit already registered', details='Student is already registered for this unit')

    return student, registered_unit
