"""
Domain Exceptions

Every failure the service reports to a client is one of these. The API
layer maps each class to an HTTP status code through ``status_code``.
"""

from typing import Optional


class FoodTruckError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, detail: str, *, error: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if error is not None:
            self.error = error

    def to_dict(self) -> dict:
        return {"success": False, "error": self.error, "detail": self.detail}


class ValidationError(FoodTruckError):
    """Request is well-formed but violates a business rule."""
    status_code = 400
    error = "validation_error"


class AuthenticationError(FoodTruckError):
    status_code = 401
    error = "not_authenticated"


class PermissionDeniedError(FoodTruckError):
    status_code = 403
    error = "permission_denied"


class NotFoundError(FoodTruckError):
    status_code = 404
    error = "not_found"


class InvalidTransitionError(FoodTruckError):
    """Requested order status is not reachable from the current one."""
    status_code = 409
    error = "invalid_transition"

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move order from '{current}' to '{target}'")
        self.current = current
        self.target = target


class ConflictError(FoodTruckError):
    """Record was modified concurrently."""
    status_code = 409
    error = "conflict"


class PaymentError(FoodTruckError):
    status_code = 402
    error = "payment_failed"


class ExternalServiceError(FoodTruckError):
    """An adapter call (identity, geo, payments) failed."""
    status_code = 502
    error = "external_service_error"
