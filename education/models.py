import re
import uuid

from django.contrib.auth.hashers import make_password, check_password
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.db.models import Q


ACADEMIC_YEAR_PATTERN = re.compile(r'^\d{4}/\d{4}$')
DEFAULT_ACADEMIC_YEAR = '2024/2025'


def validate_academic_year_format(value):
    """Validate academic year format (YYYY/YYYY)"""
    if not value or not ACADEMIC_YEAR_PATTERN.match(value):
        raise ValidationError('Academic year must be in format YYYY/YYYY (e.g., 2024/2025)')

    year1, year2 = value.split('/')
    if int(year2) != int(year1) + 1:
        raise ValidationError('Academic year second part must be one year after the first (e.g., 2024/2025)')


class CustomUser(AbstractUser):
    """Portal staff account. Admin endpoints require ``is_portal_admin()``."""
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('registrar', 'Registrar'),
        ('accounts_officer', 'Accounts Officer'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='admin')
    phone = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        ordering = ['username']

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    def is_portal_admin(self):
        return self.is_active and (self.is_staff or self.is_superuser)


class Student(models.Model):
    """Student record keyed by UUID, looked up by registration number"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('deregistered', 'Deregistered'),
        ('on_leave', 'On Academic Leave'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    registration_number = models.CharField(max_length=50, unique=True, help_text="May contain slashes, e.g. CS/001/2021")
    name = models.CharField(max_length=200)
    course = models.CharField(max_length=200)
    level_of_study = models.CharField(max_length=50)
    national_id = models.CharField(max_length=50, blank=True, null=True)
    birth_certificate = models.CharField(max_length=50, blank=True, null=True)
    date_of_birth = models.DateField(blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    password = models.CharField(max_length=128, blank=True, help_text="Hashed password for student login")
    photo_url = models.CharField(max_length=1000, blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')

    academic_leave = models.BooleanField(default=False)
    academic_leave_start = models.DateField(blank=True, null=True)
    academic_leave_end = models.DateField(blank=True, null=True)
    academic_leave_reason = models.TextField(blank=True, null=True)

    deregistered = models.BooleanField(default=False)
    deregistration_date = models.DateField(blank=True, null=True)
    deregistration_reason = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'students'
        ordering = ['registration_number']
        indexes = [
            models.Index(fields=['status'], name='students_status_idx'),
            models.Index(fields=['course', 'level_of_study'], name='students_course_level_idx'),
        ]

    def __str__(self):
        return f"{self.registration_number} - {self.name}"

    def set_password(self, raw_password):
        """Hash and store the password; caller saves"""
        self.password = make_password(raw_password)

    def check_password(self, raw_password):
        """Check if provided password matches student's password"""
        if not self.password:
            return False
        return check_password(raw_password, self.password)

    def has_usable_password(self):
        return bool(self.password)

    def to_dict(self):
        return {
            'id': str(self.id),
            'registration_number': self.registration_number,
            'name': self.name,
            'course': self.course,
            'level_of_study': self.level_of_study,
            'national_id': self.national_id,
            'birth_certificate': self.birth_certificate,
            'date_of_birth': self.date_of_birth.isoformat() if self.date_of_birth else None,
            'email': self.email,
            'photo_url': self.photo_url,
            'status': self.status,
            'academic_leave': self.academic_leave,
            'academic_leave_start': self.academic_leave_start.isoformat() if self.academic_leave_start else None,
            'academic_leave_end': self.academic_leave_end.isoformat() if self.academic_leave_end else None,
            'academic_leave_reason': self.academic_leave_reason,
            'deregistered': self.deregistered,
            'deregistration_date': self.deregistration_date.isoformat() if self.deregistration_date else None,
            'deregistration_reason': self.deregistration_reason,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Unit(models.Model):
    """Unit catalog entry"""
    unit_name = models.CharField(max_length=200)
    unit_code = models.CharField(max_length=50, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'units'
        ordering = ['unit_code']

    def __str__(self):
        return f"{self.unit_code} ({self.unit_name})"

    def to_dict(self):
        return {
            'id': self.id,
            'unit_name': self.unit_name,
            'unit_code': self.unit_code,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class AllocatedUnit(models.Model):
    """
    A unit offered to a student for one semester of an academic year.

    allocated -> registered (student) or allocated -> cancelled (admin).
    At most one non-cancelled row exists per (student, unit, semester, year).
    """
    STATUS_ALLOCATED = 'allocated'
    STATUS_REGISTERED = 'registered'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_ALLOCATED, 'Allocated'),
        (STATUS_REGISTERED, 'Registered'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='allocated_units')
    unit = models.ForeignKey(Unit, on_delete=models.PROTECT, related_name='allocations')
    semester = models.IntegerField(validators=[MinValueValidator(1), MaxValueValidator(2)])
    academic_year = models.CharField(
        max_length=20,
        default=DEFAULT_ACADEMIC_YEAR,
        validators=[validate_academic_year_format],
        help_text="Academic year in format YYYY/YYYY (e.g., 2024/2025)"
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ALLOCATED)
    # True while allocated or registered, NULL once cancelled; unique indexes treat NULLs as distinct
    active = models.BooleanField(null=True, default=True, editable=False)
    allocated_by = models.ForeignKey(CustomUser, on_delete=models.SET_NULL, null=True, blank=True, related_name='allocations_made')
    notes = models.TextField(blank=True, null=True)
    allocated_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'allocated_units'
        ordering = ['semester', 'unit__unit_code']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'unit', 'semester', 'academic_year', 'active'],
                name='unique_active_allocation',
            ),
            models.CheckConstraint(condition=Q(semester__in=[1, 2]), name='allocation_semester_range'),
            models.CheckConstraint(
                condition=(
                    Q(status='cancelled', active__isnull=True)
                    | (~Q(status='cancelled') & Q(active__isnull=False, active=True))
                ),
                name='allocation_active_matches_status',
            ),
        ]
        indexes = [
            models.Index(fields=['student', 'status'], name='alloc_student_status_idx'),
            models.Index(fields=['student', 'academic_year', 'semester'], name='alloc_student_term_idx'),
        ]

    def __str__(self):
        return f"{self.student.registration_number} - {self.unit.unit_code} ({self.academic_year} S{self.semester}, {self.status})"

    def save(self, *args, **kwargs):
        self.active = None if self.status == self.STATUS_CANCELLED else True
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'status' in update_fields:
            kwargs['update_fields'] = set(update_fields) | {'active'}
        super().save(*args, **kwargs)

    def to_dict(self):
        return {
            'id': str(self.id),
            'student_id': str(self.student_id),
            'unit_id': self.unit_id,
            'unit_name': self.unit.unit_name,
            'unit_code': self.unit.unit_code,
            'semester': self.semester,
            'academic_year': self.academic_year,
            'status': self.status,
            'allocated_by': self.allocated_by_id,
            'notes': self.notes,
            'allocated_at': self.allocated_at.isoformat() if self.allocated_at else None,
        }


class RegisteredUnit(models.Model):
    """Denormalized registration record, one per (student, unit_code)"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='registered_units')
    unit_name = models.CharField(max_length=200)
    unit_code = models.CharField(max_length=50)
    status = models.CharField(max_length=20, default='registered')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'registered_units'
        ordering = ['unit_code']
        unique_together = ['student', 'unit_code']

    def __str__(self):
        return f"{self.student.registration_number} - {self.unit_code}"

    def to_dict(self):
        return {
            'id': str(self.id),
            'student_id': str(self.student_id),
            'unit_name': self.unit_name,
            'unit_code': self.unit_code,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
