"""Domain exceptions shared by services and storage backends."""

from fastapi import status


class DentConnectError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or ""


class ValidationError(DentConnectError):
    """Malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(DentConnectError):
    """Missing or invalid credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(DentConnectError):
    """Caller is authenticated but not allowed to do this."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(DentConnectError):
    """Referenced record does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DentConnectError):
    """Resource is already taken."""

    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(DentConnectError):
    """Transition is not allowed from the current state."""

    status_code = status.HTTP_409_CONFLICT


class InternalError(DentConnectError):
    """Unexpected failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
