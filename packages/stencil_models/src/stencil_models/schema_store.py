"""
Persistence of model definitions and reconciliation with live tables.
"""

import logging
from dataclasses import dataclass
from functools import partial
from graphlib import CycleError, TopologicalSorter

from sqlalchemy import Connection, MetaData, Table, inspect
from sqlalchemy.exc import SQLAlchemyError
from stencil_core import (
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from stencil_db import Database

from .ddl import build_table
from .definition import RESERVED_TABLE_NAMES, ModelDefinition, is_valid_name
from .saga import Saga, SagaResult
from .stores import DefinitionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    table_name: str
    created: bool
    missing_columns: tuple[str, ...] = ()


def order_by_relations(definitions: list[ModelDefinition]) -> list[ModelDefinition]:
    """Order definitions so every relation target precedes the models using it."""
    by_name = {d.name: d for d in definitions}
    sorter: TopologicalSorter[str] = TopologicalSorter()
    for definition in definitions:
        targets = [
            target
            for target in definition.relations.values()
            if target in by_name and target != definition.name
        ]
        sorter.add(definition.name, *targets)
    try:
        return [by_name[name] for name in sorter.static_order()]
    except CycleError:
        logger.warning("Relation cycle between models; keeping stored order")
        return definitions


def _ensure_table_sync(
    conn: Connection,
    definition: ModelDefinition,
    relation_tables: dict[str, str],
) -> ReconcileResult:
    inspector = inspect(conn)
    table_name = definition.table

    if inspector.has_table(table_name):
        existing = {column["name"] for column in inspector.get_columns(table_name)}
        declared = build_table(definition, with_foreign_keys=False)
        missing = tuple(c.name for c in declared.columns if c.name not in existing)
        return ReconcileResult(table_name, created=False, missing_columns=missing)

    for target, target_table in relation_tables.items():
        if not inspector.has_table(target_table):
            msg = (
                f"Relation target '{target}' has no table '{target_table}'; "
                "publish it first"
            )
            raise ValidationError(msg)

    build_table(definition, relation_tables=relation_tables).create(conn)
    return ReconcileResult(table_name, created=True)


def _drop_table_sync(conn: Connection, table_name: str) -> None:
    Table(table_name, MetaData()).drop(conn, checkfirst=True)


class SchemaStore:
    """
    Publishes, reconciles and removes model definitions.

    Definitions are persisted through a :class:`DefinitionStore`; tables are
    created through the shared database handle. Existing tables are never
    altered: declared columns they lack are reported as drift.
    """

    def __init__(self, database: Database, store: DefinitionStore):
        self.database = database
        self.store = store

    async def initialize(self) -> None:
        await self.store.initialize()

    async def get(self, name: str) -> ModelDefinition | None:
        return await self.store.get(name)

    async def load_all(self) -> list[ModelDefinition]:
        return await self.store.all()

    async def table_exists(self, table_name: str) -> bool:
        async with self.database.connect() as conn:
            return await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).has_table(table_name)
            )

    async def publish(self, definition: ModelDefinition) -> ReconcileResult:
        """
        Persist ``definition`` and make sure its table exists.

        Runs as a saga: when the table cannot be created, the stored
        definition is put back the way it was.

        Raises:
            ConflictError: Another model already owns the table name.
            ValidationError: A relation target has no table yet.
            StorageError: Persisting or creating the table failed.
        """
        await self._check_table_conflict(definition)
        relation_tables = await self._relation_tables(definition)
        previous = await self.store.get(definition.name)
        if previous is not None and previous.table != definition.table:
            logger.warning(
                "Model %s moves from table %s to %s; the old table is kept",
                definition.name,
                previous.table,
                definition.table,
            )

        outcome: list[ReconcileResult] = []

        async def restore() -> None:
            if previous is None:
                await self.store.delete(definition.name)
            else:
                await self.store.save(previous)

        async def ensure_table() -> None:
            outcome.append(await self._ensure_table(definition, relation_tables))

        saga = (
            Saga(f"publish {definition.name}")
            .step(
                "persist definition",
                partial(self.store.save, definition),
                compensate=restore,
            )
            .step("ensure table", ensure_table)
        )
        try:
            await saga.run()
        except (SQLAlchemyError, OSError) as exc:
            msg = f"Failed to publish model '{definition.name}'"
            raise StorageError(msg) from exc

        result = outcome[0]
        logger.info(
            "Published model %s (table %s, created=%s)",
            definition.name,
            result.table_name,
            result.created,
        )
        return result

    async def reconcile(self, definition: ModelDefinition) -> ReconcileResult:
        """Create the table when missing; an existing table is left untouched."""
        relation_tables = await self._relation_tables(definition)
        result = await self._ensure_table(definition, relation_tables)
        if result.created:
            logger.info("Table '%s' not found. Created it.", result.table_name)
        else:
            logger.debug("Table '%s' already exists.", result.table_name)
        return result

    async def reconcile_all(self) -> list[ModelDefinition]:
        """
        Reconcile every stored definition, relation targets first.

        A model that fails is logged and left out of the returned list so the
        rest of the platform still boots.
        """
        definitions = order_by_relations(await self.load_all())
        reconciled: list[ModelDefinition] = []
        for definition in definitions:
            try:
                await self.reconcile(definition)
            except Exception:
                logger.exception("Failed to reconcile model %s", definition.name)
                continue
            reconciled.append(definition)
        logger.info("Loaded %d of %d models", len(reconciled), len(definitions))
        return reconciled

    async def remove(self, name: str) -> SagaResult:
        """
        Drop the model's table, then delete its stored definition.

        The drop must succeed; a failed definition delete afterwards is
        recorded on the returned result as an ``IntegrityWarning``.

        Without a stored definition, ``name.lower()`` is treated as an orphan
        table and dropped only when neither the platform nor another model
        owns it.

        Raises:
            ConflictError: The table is reserved or belongs to another model.
            NotFoundError: Neither a definition nor a table exists.
        """
        if not is_valid_name(name):
            raise ValidationError("Invalid model name format.")

        definition = await self.store.get(name)
        if definition is not None:
            table_name = definition.table
        else:
            table_name = name.lower()
            await self._check_orphan_table(name, table_name)

        saga = (
            Saga(f"remove {name}")
            .step("drop table", partial(self._drop_table, table_name))
            .step(
                "delete definition",
                partial(self._delete_definition, name),
                required=False,
            )
        )
        try:
            result = await saga.run()
        except SQLAlchemyError as exc:
            msg = f"Failed to drop table for model '{name}'"
            raise StorageError(msg) from exc

        logger.info("Removed model %s (table %s)", name, table_name)
        return result

    async def _ensure_table(
        self,
        definition: ModelDefinition,
        relation_tables: dict[str, str],
    ) -> ReconcileResult:
        try:
            async with self.database.begin() as conn:
                result = await conn.run_sync(
                    _ensure_table_sync, definition, relation_tables
                )
        except SQLAlchemyError:
            # Lost a creation race: another request created the table meanwhile.
            if await self.table_exists(definition.table):
                logger.info("Table %s was created concurrently", definition.table)
                return ReconcileResult(definition.table, created=False)
            raise

        if result.missing_columns:
            logger.warning(
                "Table %s lacks declared columns %s; existing tables are not altered",
                result.table_name,
                ", ".join(result.missing_columns),
            )
        return result

    async def _drop_table(self, table_name: str) -> None:
        async with self.database.begin() as conn:
            await conn.run_sync(_drop_table_sync, table_name)

    async def _delete_definition(self, name: str) -> None:
        if not await self.store.delete(name):
            logger.warning(
                "No stored definition for '%s', but its table was dropped", name
            )

    async def _check_orphan_table(self, name: str, table_name: str) -> None:
        """Only a table no definition accounts for may be removed by bare name."""
        if table_name in RESERVED_TABLE_NAMES:
            raise ConflictError(f"Table '{table_name}' is reserved by the platform")
        for other in await self.store.all():
            if other.table == table_name:
                msg = (
                    f"Table '{table_name}' belongs to model '{other.name}'; "
                    f"remove '{other.name}' instead"
                )
                raise ConflictError(msg)
        if not await self.table_exists(table_name):
            raise NotFoundError(f"Model '{name}' not found")

    async def _relation_tables(self, definition: ModelDefinition) -> dict[str, str]:
        tables: dict[str, str] = {}
        for target in set(definition.relations.values()):
            if target == definition.name:
                continue
            target_definition = await self.store.get(target)
            tables[target] = (
                target_definition.table if target_definition else target.lower()
            )
        return tables

    async def _check_table_conflict(self, definition: ModelDefinition) -> None:
        for other in await self.store.all():
            if other.name != definition.name and other.table == definition.table:
                msg = (
                    f"Table '{definition.table}' already belongs to model "
                    f"'{other.name}'"
                )
                raise ConflictError(msg)
