from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection
from stencil_auth.schemas import Principal
from stencil_core import ConflictError, NotFoundError, StorageError, ValidationError
from stencil_db import Database

from .ddl import build_table
from .definition import ModelDefinition
from .policy import authorize, check_ownership
from .validator import coerce_payload, validate

logger = logging.getLogger(__name__)


class ModelRoutes:
    """
    The five CRUD handlers of one model, bound to a database handle.

    Every handler checks the role first, then validates writes, then touches
    storage. Update and delete fetch the row and check ownership inside the
    same transaction as the write.
    """

    def __init__(
        self,
        definition: ModelDefinition,
        database: Database,
        *,
        admin_role: str = "Admin",
    ):
        self.definition = definition
        self.database = database
        self.admin_role = admin_role
        self.table = build_table(definition, with_foreign_keys=False)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def base_path(self) -> str:
        return f"/{self.definition.table}"

    def __repr__(self) -> str:
        return f"<ModelRoutes {self.name} at {self.base_path}>"

    async def create(
        self, principal: Principal | None, payload: Any
    ) -> dict[str, Any]:
        authorize(self.definition, principal, "create")
        values = self._clean(payload)
        if self.definition.owner_field:
            values[self.definition.owner_field] = principal.id

        stmt = insert(self.table).returning(*self.table.c)
        if values:
            stmt = stmt.values(values)
        async with self._transaction("creating") as conn:
            row = (await conn.execute(stmt)).mappings().one()
        logger.info("Created %s %s", self.name, row["id"])
        return dict(row)

    async def list(self, principal: Principal | None) -> list[dict[str, Any]]:
        authorize(self.definition, principal, "read")
        async with self._transaction("listing") as conn:
            result = await conn.execute(select(self.table).order_by(self.table.c.id))
            return [dict(row) for row in result.mappings()]

    async def retrieve(
        self, principal: Principal | None, item_id: int
    ) -> dict[str, Any]:
        authorize(self.definition, principal, "read")
        async with self._transaction("reading") as conn:
            return await self._fetch(conn, item_id)

    async def update(
        self, principal: Principal | None, item_id: int, payload: Any
    ) -> dict[str, Any]:
        authorize(self.definition, principal, "update")
        values = self._clean(payload)
        values["updated_at"] = func.now()

        async with self._transaction("updating") as conn:
            row = await self._fetch(conn, item_id)
            check_ownership(self.definition, principal, row, self.admin_role)
            stmt = (
                update(self.table)
                .where(self.table.c.id == item_id)
                .values(values)
                .returning(*self.table.c)
            )
            updated = (await conn.execute(stmt)).mappings().one()
        logger.info("Updated %s %s", self.name, item_id)
        return dict(updated)

    async def delete(self, principal: Principal | None, item_id: int) -> None:
        authorize(self.definition, principal, "delete")
        async with self._transaction("deleting") as conn:
            row = await self._fetch(conn, item_id)
            check_ownership(self.definition, principal, row, self.admin_role)
            await conn.execute(delete(self.table).where(self.table.c.id == item_id))
        logger.info("Deleted %s %s", self.name, item_id)

    def _clean(self, payload: Any) -> dict[str, Any]:
        """Validate a write body as a full record and reduce it to column values."""
        if not isinstance(payload, Mapping):
            raise ValidationError("Request body must be a JSON object.")
        error = validate(self.definition, payload)
        if error:
            raise ValidationError(error)
        exclude = [self.definition.owner_field] if self.definition.owner_field else []
        return coerce_payload(self.definition, payload, exclude=exclude)

    async def _fetch(self, conn: AsyncConnection, item_id: int) -> dict[str, Any]:
        result = await conn.execute(select(self.table).where(self.table.c.id == item_id))
        row = result.mappings().first()
        if row is None:
            raise NotFoundError("Item not found")
        return dict(row)

    @asynccontextmanager
    async def _transaction(self, action: str) -> AsyncIterator[AsyncConnection]:
        try:
            async with self.database.begin() as conn:
                yield conn
        except IntegrityError as exc:
            logger.info("Integrity error while %s %s: %s", action, self.name, exc.orig)
            msg = f"Error {action} item: it conflicts with existing data"
            raise ConflictError(msg) from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"Error {action} item") from exc


def build_model_routes(
    definition: ModelDefinition,
    database: Database,
    admin_role: str = "Admin",
) -> ModelRoutes:
    return ModelRoutes(definition, database, admin_role=admin_role)
