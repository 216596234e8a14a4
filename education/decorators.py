"""
Decorators for portal API views: error mapping and access control.

Admins authenticate through Django auth (``request.user``); students
through the session key ``student_id`` set at student login.
"""
import json
import logging
from functools import wraps

from django.http import JsonResponse

from .exceptions import PortalError, ValidationError, ForbiddenError

logger = logging.getLogger(__name__)

STUDENT_SESSION_KEY = 'student_id'


def api_errors(view_func):
    """
    Turn PortalError into its JSON response; anything else becomes a logged 500.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except PortalError as e:
            if e.status_code >= 500:
                logger.error(f"{view_func.__name__} failed: {e.message} ({e.details})")
            return JsonResponse(e.as_dict(), status=e.status_code)
        except Exception as e:
            logger.error(f"Unhandled error in {view_func.__name__}: {str(e)}", exc_info=True)
            return JsonResponse({'error': 'Internal server error', 'details': str(e)}, status=500)
    return wrapper


def is_admin(request):
    user = getattr(request, 'user', None)
    return bool(user and user.is_authenticated and user.is_portal_admin())


def admin_required(view_func):
    """Require an authenticated portal administrator"""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({'error': 'Authentication required'}, status=401)
        if not request.user.is_portal_admin():
            return JsonResponse({'error': 'Admin access required'}, status=403)
        return view_func(request, *args, **kwargs)
    return wrapper


def student_or_admin_required(view_func):
    """
    Require either an administrator or a logged-in student.

    Views check ownership of the student they load with ``ensure_student_access``.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not is_admin(request) and not request.session.get(STUDENT_SESSION_KEY):
            return JsonResponse({'error': 'Authentication required'}, status=401)
        return view_func(request, *args, **kwargs)
    return wrapper


def ensure_student_access(request, student):
    """Students may only read and act on their own records"""
    if is_admin(request):
        return
    if str(request.session.get(STUDENT_SESSION_KEY)) != str(student.pk):
        raise ForbiddenError('You can only access your own records')


def parse_json_body(request, required=True):
    """Decode a JSON object body; an empty body is ``{}`` unless required"""
    if not request.body:
        if required:
            raise ValidationError('Invalid JSON data', details='The request body must be valid JSON')
        return {}
    try:
        data = json.loads(request.body)
    except (ValueError, UnicodeDecodeError) as e:
        if not required:
            return {}
        raise ValidationError('Invalid JSON data', details=str(e))
    if not isinstance(data, dict):
        raise ValidationError('Invalid JSON data', details='The request body must be a JSON object')
    return data
