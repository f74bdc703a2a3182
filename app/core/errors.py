"""Service-level error taxonomy. Each error carries the HTTP status it maps to."""


class ServiceError(Exception):
    """Base class for expected failures surfaced to the caller as {success: false, message}."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationFailedError(ServiceError):
    """Request is well-formed but semantically invalid (400)."""

    status_code = 400


class UnauthenticatedError(ServiceError):
    """Missing or invalid credentials, tokens, or inactive account (401)."""

    status_code = 401


class ForbiddenError(ServiceError):
    """Authenticated but not allowed: role, authorization stage, system-role protection (403)."""

    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class AccountLockedError(ServiceError):
    """Login suspended after repeated failed password attempts (423)."""

    status_code = 423


class ConfigurationError(ServiceError):
    """A required server-side setting is missing (500)."""

    status_code = 500
