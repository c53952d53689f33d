"""Error taxonomy shared by the account and trajet services."""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for every error a service surfaces to its callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Missing or malformed input."""


class ConflictError(ServiceError):
    """Uniqueness violation (username/email already bound)."""


class NotFoundError(ServiceError):
    pass


class AlreadyVerifiedError(ServiceError):
    pass


class InvalidCodeError(ServiceError):
    pass


class InvalidCredentialsError(ServiceError):
    pass


class UnverifiedError(ServiceError):
    """Sign-in refused until the email is verified; carries the principal id so callers can offer a resend."""

    def __init__(self, message: str, principal_id: str | None = None):
        super().__init__(message)
        self.principal_id = principal_id


class InvalidOrExpiredTokenError(ServiceError):
    pass


class NotificationFailure(ServiceError):
    pass


class PersistenceFailure(ServiceError):
    pass
