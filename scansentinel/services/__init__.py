"""Service layer — business logic orchestration."""


class ServiceError(Exception):
    """Base service exception."""


class NotFoundError(ServiceError):
    """Resource not found (-> HTTP 404)."""


class InvalidStateError(ServiceError):
    """Attempted transition violates the scan state machine (-> HTTP 409)."""


class ValidationError(ServiceError):
    """Input validation error (-> HTTP 422)."""


class UnsupportedKindError(ServiceError):
    """Scan kind is recognised but has no execution pipeline (-> HTTP 422)."""


class SchedulingError(ServiceError):
    """Scan could not be handed to the scheduler (-> HTTP 503)."""
