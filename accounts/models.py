import uuid
from decimal import Decimal, ROUND_HALF_UP

from django.core.validators import MinValueValidator
from django.db import models

from education.models import Student


class Fee(models.Model):
    """Running fee position of a student for the current session"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.OneToOneField(Student, on_delete=models.PROTECT, related_name='fee')
    fee_balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), help_text="Outstanding balance; positive withholds the exam card")
    total_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    semester_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0.00'))])
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'fees'

    def __str__(self):
        return f"{self.student.registration_number} - balance KES {self.fee_balance}"

    def has_outstanding_balance(self):
        return self.fee_balance > 0

    def session_progress(self):
        """Percentage of the semester fee paid so far"""
        if self.semester_fee <= 0:
            return 0
        return int((self.total_paid / self.semester_fee * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class Finance(models.Model):
    """Fee statements and receipts issued to a student"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name='finance_records')
    statement = models.CharField(max_length=200, blank=True, null=True)
    statement_url = models.CharField(max_length=1000, blank=True, null=True)
    receipt_url = models.CharField(max_length=1000, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'finance'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['student', 'created_at'], name='finance_student_created_idx'),
        ]

    def __str__(self):
        return f"{self.student.registration_number} - {self.statement or 'finance record'}"
