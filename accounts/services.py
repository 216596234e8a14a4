"""
Fee position, finance documents and the exam card fee gate.
"""
import logging

from education.exceptions import ValidationError, NotFoundError, ForbiddenError
from education.persistence import atomic

from .models import Fee, Finance

logger = logging.getLogger(__name__)

EXAM_CARD_FEE_MESSAGE = 'Please complete your fee payment to download your exam card.'


def fee_summary(student):
    """Fee figures for a student; zeros when no fee record exists"""
    fee = Fee.objects.filter(student=student).first()
    if fee is None:
        return {'fee_balance': 0, 'total_paid': 0, 'semester_fee': 0, 'session_progress': 0}
    return {
        'fee_balance': float(fee.fee_balance),
        'total_paid': float(fee.total_paid),
        'semester_fee': float(fee.semester_fee),
        'session_progress': fee.session_progress(),
    }


def check_exam_card_clearance(student):
    """Raise ForbiddenError while the student has an outstanding balance"""
    fee = Fee.objects.filter(student=student).first()
    if fee is not None and fee.has_outstanding_balance():
        logger.info(f"Exam card withheld for {student.registration_number}: balance {fee.fee_balance}")
        raise ForbiddenError(EXAM_CARD_FEE_MESSAGE, extra={'fee_balance': float(fee.fee_balance)})


def latest_statement_url(student):
    record = Finance.objects.filter(student=student, statement_url__isnull=False).order_by('-created_at').first()
    if record is None:
        raise NotFoundError('No fee statement found')
    return record.statement_url


def latest_receipt_url(student):
    record = Finance.objects.filter(student=student, receipt_url__isnull=False).order_by('-created_at').first()
    if record is None:
        raise NotFoundError('No fee receipt found')
    return record.receipt_url


def record_statement_url(student, statement_url, statement='Fee Statement'):
    if not statement_url:
        raise ValidationError('Missing required field', details='statement_url is required')
    with atomic():
        return Finance.objects.create(student=student, statement=statement, statement_url=statement_url)


def record_receipt_url(student, receipt_url):
    if not receipt_url:
        raise ValidationError('Missing required field', details='receipt_url is required')
    with atomic():
        return Finance.objects.create(student=student, receipt_url=receipt_url)
