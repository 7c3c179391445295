from enum import Enum


class ErrorKind(str, Enum):
    """Failure taxonomy of the modal core."""

    TRANSPORT = "transport_error"
    DOMAIN = "domain_error"
    VALIDATION = "validation_error"


class PlayerModalError(Exception):
    """Base class for errors raised inside the modal core."""

    kind: ErrorKind = ErrorKind.VALIDATION


class ValidationError(PlayerModalError):
    """Input rejected client-side before any request is dispatched."""


class PermissionDeniedError(PlayerModalError):
    """The admin lacks the capability required for an action."""

    def __init__(self, permission: str):
        super().__init__(f"Missing permission: {permission}")
        self.permission = permission
