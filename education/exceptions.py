"""
Error types raised by the portal services.

Each carries the HTTP status it maps to; views turn them into
``{"error": ..., "details": ...}`` bodies through ``decorators.api_errors``.
"""


class PortalError(Exception):
    """Base class for errors that reach the request boundary"""
    status_code = 500

    def __init__(self, message, details=None, extra=None):
        self.message = message
        self.details = details
        self.extra = extra or {}
        super().__init__(self.message)

    def as_dict(self):
        payload = {'error': self.message, 'details': self.details}
        payload.update(self.extra)
        return payload


class ValidationError(PortalError):
    """Missing or malformed input, oversized file"""
    status_code = 400


class UnauthorizedError(PortalError):
    status_code = 401


class ForbiddenError(PortalError):
    status_code = 403


class NotFoundError(PortalError):
    status_code = 404


class NotEligibleError(NotFoundError):
    """Allocation absent, owned by another student, or no longer 'allocated'"""


class ConflictError(PortalError):
    status_code = 409


class StorageFailure(PortalError):
    """Both the remote and the local write paths failed"""
    status_code = 500


class PersistenceFailure(PortalError):
    """A database write failed"""
    status_code = 500
