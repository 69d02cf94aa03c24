"""
Error types raised by the token and upload layers.

Each carries the HTTP status it maps to; ``create_app`` registers a single
handler that renders them as ``{"error": ..., "details": ...}``.
"""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ServiceError):
    """Malformed or missing request input."""

    status_code = 400


class AuthenticationError(ServiceError):
    """Missing, malformed, forged or expired bearer token."""

    status_code = 401


class PayloadTooLarge(ServiceError):
    status_code = 413


class UnsupportedMediaType(ServiceError):
    status_code = 415


class InternalError(ServiceError):
    """Unexpected decode, write or system failure."""

    status_code = 500
