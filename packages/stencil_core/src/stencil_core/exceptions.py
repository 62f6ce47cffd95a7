"""Error taxonomy shared by every Stencil package."""

from typing import ClassVar


class StencilError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: ClassVar[int] = 500

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ValidationError(StencilError):
    """Raised when user input does not match the expected shape."""

    status_code = 400


class AuthenticationError(StencilError):
    """Raised when no valid principal is attached to the request."""

    status_code = 401


class AuthorizationError(StencilError):
    """Raised when a role or ownership check denies the operation."""

    status_code = 403


class NotFoundError(StencilError):
    """Raised when a row or a model does not exist."""

    status_code = 404


class ConflictError(StencilError):
    """Raised when a write collides with existing state."""

    status_code = 409


class StorageError(StencilError):
    """Raised when the persistence layer fails unexpectedly."""

    status_code = 500


class IntegrityWarning(UserWarning):
    """A non-fatal partial failure, recorded and logged but not surfaced."""
