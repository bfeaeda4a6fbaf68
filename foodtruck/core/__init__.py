"""
Core module initialization.
Exports configuration, logging utilities and domain errors.
"""

from foodtruck.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from foodtruck.core.exceptions import (
    AuthenticationError,
    ConflictError,
    ExternalServiceError,
    FoodTruckError,
    InvalidTransitionError,
    NotFoundError,
    PaymentError,
    PermissionDeniedError,
    ValidationError,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "FoodTruckError",
    "ValidationError",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "InvalidTransitionError",
    "ConflictError",
    "PaymentError",
    "ExternalServiceError",
]
