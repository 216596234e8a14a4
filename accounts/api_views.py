"""
API views for student fees and finance documents.
"""
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from education.decorators import (
    api_errors, admin_required, student_or_admin_required, ensure_student_access, parse_json_body,
)
from education.persistence import get_student_by_id
from . import services


@require_http_methods(["GET"])
@api_errors
@student_or_admin_required
def api_student_fees(request, student_id):
    student = get_student_by_id(student_id)
    ensure_student_access(request, student)
    return JsonResponse(services.fee_summary(student))


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_errors
@student_or_admin_required
def api_fee_statement(request, student_id):
    """GET the latest statement URL; POST (admin) records a statement URL"""
    student = get_student_by_id(student_id)
    if request.method == 'POST':
        return _record_statement(request, student)

    ensure_student_access(request, student)
    return JsonResponse({'statement_url': services.latest_statement_url(student)})


@admin_required
def _record_statement(request, student):
    data = parse_json_body(request)
    services.record_statement_url(student, data.get('statement_url'))
    return JsonResponse({'message': 'Fee statement uploaded.'})


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_errors
@student_or_admin_required
def api_fee_receipt(request, student_id):
    """GET the latest receipt URL; POST (admin) records a receipt URL"""
    student = get_student_by_id(student_id)
    if request.method == 'POST':
        return _record_receipt(request, student)

    ensure_student_access(request, student)
    return JsonResponse({'receipt_url': services.latest_receipt_url(student)})


@admin_required
def _record_receipt(request, student):
    data = parse_json_body(request)
    services.record_receipt_url(student, data.get('receipt_url'))
    return JsonResponse({'message': 'Fee receipt uploaded.'})
