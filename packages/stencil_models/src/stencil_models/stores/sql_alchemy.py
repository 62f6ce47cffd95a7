import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import JSON, String, delete, select
from sqlalchemy.orm import Mapped, mapped_column
from stencil_db import Database, Model, TimestampMixin, atomic

from ..definition import ModelDefinition
from .base import DefinitionStore

logger = logging.getLogger(__name__)

DEFINITION_TABLE_NAME = "stencil_model_definitions"


class StoredDefinition(Model, TimestampMixin):
    """One published definition, kept as its JSON document."""

    __tablename__ = DEFINITION_TABLE_NAME

    name: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    table_name: Mapped[str] = mapped_column(String(64))
    document: Mapped[dict[str, Any]] = mapped_column(JSON)

    def __repr__(self) -> str:
        return f"<StoredDefinition(name={self.name}, table={self.table_name})>"


class SQLAlchemyDefinitionStore(DefinitionStore):
    def __init__(self, database: Database):
        self.database = database

    async def initialize(self) -> None:
        async with self.database.begin() as conn:
            await conn.run_sync(StoredDefinition.__table__.create, checkfirst=True)

    async def save(self, definition: ModelDefinition) -> None:
        async with self.database.session() as session:
            async with atomic(session):
                row = await session.scalar(
                    select(StoredDefinition).where(
                        StoredDefinition.name == definition.name
                    )
                )
                if row is None:
                    row = StoredDefinition(name=definition.name)
                    session.add(row)
                row.table_name = definition.table
                row.document = definition.to_document()

    async def get(self, name: str) -> ModelDefinition | None:
        async with self.database.session() as session:
            row = await session.scalar(
                select(StoredDefinition).where(StoredDefinition.name == name)
            )
        return self._parse(row) if row is not None else None

    async def all(self) -> list[ModelDefinition]:
        async with self.database.session() as session:
            rows = await session.scalars(
                select(StoredDefinition).order_by(StoredDefinition.name)
            )
            definitions = [self._parse(row) for row in rows]
        return [d for d in definitions if d is not None]

    async def delete(self, name: str) -> bool:
        async with self.database.session() as session:
            async with atomic(session):
                result = await session.execute(
                    delete(StoredDefinition).where(StoredDefinition.name == name)
                )
        return bool(result.rowcount)

    @staticmethod
    def _parse(row: StoredDefinition) -> ModelDefinition | None:
        try:
            return ModelDefinition.model_validate(row.document)
        except PydanticValidationError as exc:
            logger.warning("Skipping unreadable definition %s: %s", row.name, exc)
            return None
