import secrets
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column
from stencil_db import Model, TimestampMixin

from .hasher import hash_password, verify_password

USER_TABLE_NAME = "users"
TOKEN_TABLE_NAME = "auth_tokens"


class User(Model, TimestampMixin):
    __tablename__ = USER_TABLE_NAME

    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return self.email

    def check_password(self, raw_password: str) -> bool:
        """Verify password against hash using Argon2."""
        return verify_password(self.password_hash, raw_password)

    def set_password(self, raw_password: str) -> None:
        self.password_hash = hash_password(raw_password)

    def __str__(self) -> str:
        return self.email

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class AccessToken(Model):
    __tablename__ = TOKEN_TABLE_NAME

    token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        default=lambda: secrets.token_urlsafe(32),
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey(f"{USER_TABLE_NAME}.id", ondelete="CASCADE"),
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    @property
    def is_expired(self) -> bool:
        """Check if the token has passed its expiry time."""
        now = datetime.now(timezone.utc)
        if self.expires_at.tzinfo:
            return now > self.expires_at
        # SQLite returns naive datetimes; they are stored as UTC
        return now > self.expires_at.replace(tzinfo=timezone.utc)
