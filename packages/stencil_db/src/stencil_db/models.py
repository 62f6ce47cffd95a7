from __future__ import annotations

from datetime import datetime  # noqa: TC003

from sqlalchemy import DateTime, func
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Model(AsyncAttrs, DeclarativeBase):
    """
    Base class for the platform's own tables (users, tokens, definitions).

    Tables synthesized from published model definitions do not use this base;
    they live in their own ``MetaData`` built at runtime.

    Example:
        >>> class User(Model):
        ...     __tablename__ = "users"
        ...     email: Mapped[str] = mapped_column()
    """

    __abstract__ = True
    id: Mapped[int] = mapped_column(primary_key=True, index=True)


class TimestampMixin:
    """
    Mixin that adds `created_at` and `updated_at` fields to a model.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        onupdate=func.now(),
        server_default=func.now(),
        nullable=False,
    )
