# app/core/errors.py
"""
Domain exceptions for the storefront.

Services raise these instead of HTTP errors; `app.main` maps every
StorefrontError to the JSON envelope `{success: false, message, errors?}`
using the class-level `status_code`.
"""

from fastapi import status


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None):
        self.message = message
        self.errors = errors
        super().__init__(message)


class ValidationError(StorefrontError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST


class CouponError(ValidationError):
    """Coupon code is unknown, not currently eligible, or its minimum is unmet."""


class InvalidTransitionError(StorefrontError):
    """Requested order status change is not allowed from the current status."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, current: str, target: str, message: str | None = None):
        self.current = current
        self.target = target
        super().__init__(message or f"Invalid status transition: {current} -> {target}")


class MissingFieldsError(ValidationError):
    """Gateway callback is missing one of its identifiers."""

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(
            "Missing payment details",
            errors={name: ["This field is required"] for name in fields},
        )


class InvalidSignatureError(StorefrontError):
    """HMAC signature does not match the expected digest."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Invalid payment signature"):
        super().__init__(message)


class PhoneMismatchError(StorefrontError):
    """Phone supplied to public tracking does not match the order."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self):
        super().__init__("Phone number does not match")


class AuthError(StorefrontError):
    """Missing or invalid identity."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(StorefrontError):
    """Role or ownership mismatch."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"{resource} not found")


class ConflictError(StorefrontError):
    """Duplicate unique key (order number, coupon code, ...)."""

    status_code = status.HTTP_409_CONFLICT


class PaymentGatewayError(StorefrontError):
    """The gateway answered with an error or could not be reached."""

    status_code = status.HTTP_502_BAD_GATEWAY


class GatewayUnavailableError(StorefrontError):
    """Payment gateway credentials are not configured."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self):
        super().__init__("Payment gateway not configured")
