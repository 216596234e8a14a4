"""
API views for students, units and unit allocation.
Returns JSON responses for the portal frontends.
"""
import logging

from django.contrib.auth import authenticate, login, logout
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from documents.apps import get_blob_storage
from documents.services import store_student_photo
from .decorators import (
    api_errors, admin_required, student_or_admin_required, ensure_student_access,
    parse_json_body, STUDENT_SESSION_KEY,
)
from .exceptions import ValidationError, UnauthorizedError
from .fields import (
    pick, STUDENT_ID_ALIASES, REGISTRATION_NUMBER_ALIASES, LEAVE_START_ALIASES,
    LEAVE_END_ALIASES, LEAVE_REASON_ALIASES, DEREGISTRATION_REASON_ALIASES,
)
from .models import DEFAULT_ACADEMIC_YEAR
from .persistence import get_student_by_id, get_student_by_registration
from .services import allocation, students

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

@csrf_exempt
@require_http_methods(["POST"])
@api_errors
def api_student_login(request):
    """Student login; the student id is kept in the session"""
    data = parse_json_body(request)
    student = students.authenticate_student(data.get('registration_number'), data.get('password'))

    request.session.cycle_key()
    request.session[STUDENT_SESSION_KEY] = str(student.id)
    logger.info(f"Student login: {student.registration_number}")

    return JsonResponse({
        'student_id': str(student.id),
        'registration_number': student.registration_number,
        'name': student.name,
    })


@csrf_exempt
@require_http_methods(["POST"])
def api_student_logout(request):
    request.session.pop(STUDENT_SESSION_KEY, None)
    return JsonResponse({'message': 'Logged out'})


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
def api_admin_login(request):
    data = parse_json_body(request)
    username = data.get('username')
    password = data.get('password')
    if not username or not password:
        raise ValidationError('Username and password required')

    user = authenticate(request, username=username, password=password)
    if user is None or not user.is_portal_admin():
        raise UnauthorizedError('Invalid credentials')

    login(request, user)
    return JsonResponse({'adminId': user.id, 'username': user.username})


@csrf_exempt
@require_http_methods(["POST"])
def api_admin_logout(request):
    logout(request)
    return JsonResponse({'message': 'Logged out'})


@require_http_methods(["GET"])
@admin_required
def api_admin_verify_session(request):
    return JsonResponse({
        'valid': True,
        'admin': {'id': request.user.id, 'username': request.user.username},
    })


@require_http_methods(["GET"])
def api_health(request):
    return JsonResponse({'status': 'OK', 'message': 'Student portal API is running'})


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------

@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_errors
@admin_required
def api_students(request):
    """List students (optionally by ?status=) or create one from JSON or multipart data"""
    if request.method == 'GET':
        records = students.list_students(request.GET.get('status'))
        return JsonResponse([student.to_dict() for student in records], safe=False)

    if request.content_type == 'multipart/form-data':
        data = request.POST.dict()
        photo = request.FILES.get('photo')
    else:
        data = parse_json_body(request)
        photo = None

    if photo is None:
        student = students.create_student(data)
    else:
        students.check_required_fields(data)
        storage = get_blob_storage()
        stored = store_student_photo(storage, data['registration_number'], photo)
        try:
            student = students.create_student(data, photo_url=stored.url)
        except Exception:
            storage.discard(stored)
            raise

    return JsonResponse({'message': 'Student created successfully', 'student': student.to_dict()}, status=201)


@require_http_methods(["GET"])
@api_errors
@admin_required
def api_students_by_status(request, status_type):
    records = students.list_students(status_type)
    return JsonResponse([student.to_dict() for student in records], safe=False)


@require_http_methods(["GET"])
@api_errors
@student_or_admin_required
def api_student_by_registration(request, reg_number):
    student = get_student_by_registration(reg_number)
    ensure_student_access(request, student)
    return JsonResponse(student.to_dict())


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_promote_student(request):
    data = parse_json_body(request)
    student = students.promote_student(data.get('registration_number'), data.get('new_level'))
    return JsonResponse({'message': 'Student promoted successfully', 'student': student.to_dict()})


def _grant_leave(request, student):
    data = parse_json_body(request, required=False)
    student = students.grant_academic_leave(
        student,
        start_date=pick(data, LEAVE_START_ALIASES),
        end_date=pick(data, LEAVE_END_ALIASES),
        reason=pick(data, LEAVE_REASON_ALIASES, ''),
    )
    return JsonResponse({'message': 'Academic leave granted successfully', 'student': student.to_dict()})


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_academic_leave(request):
    """Grant academic leave to the student named in the JSON body"""
    data = parse_json_body(request)
    student_id = pick(data, STUDENT_ID_ALIASES)
    registration_number = pick(data, REGISTRATION_NUMBER_ALIASES)
    if not student_id and not registration_number:
        raise ValidationError('Missing required field', details='Student ID or registration number is required')

    student = get_student_by_id(student_id) if student_id else get_student_by_registration(registration_number)
    return _grant_leave(request, student)


@csrf_exempt
@require_http_methods(["POST", "DELETE"])
@api_errors
@admin_required
def api_student_academic_leave(request, student_id):
    """POST grants academic leave, DELETE cancels it"""
    if request.method == 'DELETE':
        student = students.cancel_academic_leave(student_id)
        return JsonResponse({'message': 'Academic leave canceled successfully', 'student': student.to_dict()})
    return _grant_leave(request, get_student_by_id(student_id))


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_academic_leave_by_registration(request, reg_number):
    return _grant_leave(request, get_student_by_registration(reg_number))


def _deregister(request, student):
    data = parse_json_body(request, required=False)
    student = students.deregister_student(student, pick(data, DEREGISTRATION_REASON_ALIASES, ''))
    return JsonResponse({'message': 'Student deregistered successfully', 'student': student.to_dict()})


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_deregister_students(request):
    data = parse_json_body(request)
    deregistered = students.deregister_students(
        student_ids=data.get('student_ids'),
        registration_numbers=data.get('registration_numbers'),
        reason=pick(data, DEREGISTRATION_REASON_ALIASES, ''),
    )
    return JsonResponse({
        'message': f'{len(deregistered)} students deregistered successfully',
        'students': [student.to_dict() for student in deregistered],
    })


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_deregister_student(request, student_id):
    return _deregister(request, get_student_by_id(student_id))


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_deregister_by_registration(request, reg_number):
    return _deregister(request, get_student_by_registration(reg_number))


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_restore_student(request, student_id):
    student = students.restore_student(student_id)
    return JsonResponse({'message': 'Student restored successfully', 'student': student.to_dict()})


# ---------------------------------------------------------------------------
# Units and allocation
# ---------------------------------------------------------------------------

@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_errors
def api_units(request):
    """GET lists the unit catalog; POST (admin) adds a unit"""
    if request.method == 'GET':
        return JsonResponse([unit.to_dict() for unit in allocation.list_units()], safe=False)

    return _create_unit(request)


@admin_required
def _create_unit(request):
    data = parse_json_body(request)
    unit = allocation.create_unit(data.get('unit_name'), data.get('unit_code'))
    return JsonResponse({'message': 'Unit created successfully', 'unit': unit.to_dict()}, status=201)


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_register_unit(request):
    """Register a student for a unit directly, adding the unit to the catalog if needed"""
    data = parse_json_body(request)
    student_reg = data.get('student_reg')
    student, registered_unit = allocation.register_unit_direct(
        student_reg,
        data.get('unit_name'),
        data.get('unit_code'),
        status=data.get('status') or 'active',
    )
    return JsonResponse({
        'message': 'Unit registered successfully for student',
        'registered_unit': registered_unit.to_dict(),
        'student_registration': student.registration_number,
    })


@require_http_methods(["GET"])
@api_errors
@student_or_admin_required
def api_registered_units(request, student_id):
    student = get_student_by_id(student_id)
    ensure_student_access(request, student)
    registered = allocation.list_registered_units(student)
    return JsonResponse([unit.to_dict() for unit in registered], safe=False)


def _allocate(request, student):
    data = parse_json_body(request)
    outcome = allocation.allocate_units(
        student,
        data.get('unit_ids'),
        semester=data.get('semester', 1),
        academic_year=data.get('academic_year') or DEFAULT_ACADEMIC_YEAR,
        notes=data.get('notes'),
        allocated_by=request.user,
    )
    return JsonResponse(outcome.to_dict())


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_allocate_units(request, student_id):
    return _allocate(request, get_student_by_id(student_id))


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@admin_required
def api_allocate_units_by_registration(request, reg_number):
    return _allocate(request, get_student_by_registration(reg_number))


@require_http_methods(["GET"])
@api_errors
@student_or_admin_required
def api_allocated_units(request, reg_number):
    student = get_student_by_registration(reg_number)
    ensure_student_access(request, student)
    student, allocations = allocation.list_allocated_units(student)
    return JsonResponse({
        'student': {
            'id': str(student.id),
            'registration_number': student.registration_number,
            'name': student.name,
        },
        'allocated_units': [item.to_dict() for item in allocations],
        'count': len(allocations),
    })


@csrf_exempt
@require_http_methods(["POST"])
@api_errors
@student_or_admin_required
def api_register_allocated_unit(request, reg_number):
    student = get_student_by_registration(reg_number)
    ensure_student_access(request, student)
    data = parse_json_body(request)
    registered_unit = allocation.register_allocated_unit(student, data.get('allocated_unit_id'))
    return JsonResponse({
        'message': 'Unit registered successfully',
        'registered_unit': registered_unit.to_dict(),
        'student_registration': student.registration_number,
        'allocated_unit_updated': True,
    })


@csrf_exempt
@require_http_methods(["DELETE"])
@api_errors
@admin_required
def api_cancel_allocation(request, allocation_id):
    cancelled = allocation.cancel_allocation(allocation_id)
    return JsonResponse({'message': 'Allocation cancelled successfully', 'allocated_unit': cancelled.to_dict()})
