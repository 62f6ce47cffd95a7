from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AnonymousUser(BaseModel):
    id: None = None
    email: None = None
    role: None = None

    @property
    def is_authenticated(self) -> bool:
        """Anonymous users are never authenticated."""
        return False

    @property
    def is_active(self) -> bool:
        return False

    @property
    def display_name(self) -> str:
        return "Anonymous"

    def __str__(self) -> str:
        return "AnonymousUser"

    def __repr__(self) -> str:
        return "<AnonymousUser>"

    def __bool__(self) -> bool:
        """AnonymousUser is falsy in boolean context."""
        return False


class AuthenticationResult(BaseModel):
    """Result from an authentication backend.

    Attributes:
        success: Whether authentication succeeded.
        user: Authenticated user or AnonymousUser.
        message: Human-readable status message.
        errors: List of error details for debugging/logging.
        extra: Extra data from the backend (token row, token value).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    user: Any
    message: str = ""
    errors: list[str] = Field(default_factory=list)
    extra: dict[str, Any] = Field(default_factory=dict)

    def __repr__(self) -> str:
        return f"<AuthenticationResult success={self.success} user={self.user}>"


class Principal(BaseModel):
    """The acting identity handed to authorization checks."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    role: str
    email: str | None = None


class UserSchema(BaseModel):
    id: int
    email: EmailStr
    role: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserCreateSchema(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, description="Plain text password")
    role: str | None = Field(
        default=None, description="Requested role; defaults to the platform default"
    )


class LoginSchema(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserSchema
