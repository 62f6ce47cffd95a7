"""
Table synthesis for model definitions.

The field type to column mapping lives in :func:`column_type` and
:func:`build_column`; :func:`build_table` assembles the full table. Publishing
and boot-time reconciliation both go through :func:`build_table`.
"""

from collections.abc import Mapping

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    false,
    func,
)
from sqlalchemy.types import TypeEngine
from stencil_auth.models import USER_TABLE_NAME

from .definition import FieldDefinition, FieldType, ModelDefinition

STRING_LENGTH = 255

_COLUMN_TYPES: dict[FieldType, type[TypeEngine]] = {
    "string": String,
    "number": Integer,
    "float": Float,
    "boolean": Boolean,
    "relation": Integer,
}


def column_type(field_type: FieldType) -> TypeEngine:
    if field_type == "string":
        return String(STRING_LENGTH)
    return _COLUMN_TYPES[field_type]()


def build_column(
    field: FieldDefinition,
    *,
    target_table: str | None = None,
    with_foreign_keys: bool = True,
) -> Column:
    """
    Column for one declared field.

    Booleans default to false; relations reference ``<target_table>.id`` with
    ``ON DELETE SET NULL``. ``required`` only toggles nullability, so a required
    boolean keeps its default.
    """
    args: list = []
    kwargs: dict = {"nullable": not field.required}

    if field.type == "boolean":
        kwargs["server_default"] = false()
    elif field.type == "relation" and with_foreign_keys:
        target = target_table or (field.relation or "").lower()
        args.append(ForeignKey(f"{target}.id", ondelete="SET NULL"))

    return Column(field.name, column_type(field.type), *args, **kwargs)


def build_owner_column(name: str, *, with_foreign_keys: bool = True) -> Column:
    args = (
        [ForeignKey(f"{USER_TABLE_NAME}.id", ondelete="SET NULL")]
        if with_foreign_keys
        else []
    )
    return Column(name, Integer, *args, nullable=True, index=True)


def _ensure_reference(metadata: MetaData, table_name: str) -> None:
    """Register a key-only stand-in so foreign keys to ``table_name`` compile."""
    if table_name not in metadata.tables:
        Table(table_name, metadata, Column("id", Integer, primary_key=True))


def build_table(
    definition: ModelDefinition,
    metadata: MetaData | None = None,
    *,
    relation_tables: Mapping[str, str] | None = None,
    with_foreign_keys: bool = True,
) -> Table:
    """
    Build the ``Table`` backing ``definition``.

    Args:
        definition: The model to materialize.
        metadata: Target metadata; a fresh one is used when omitted.
        relation_tables: Relation target model name -> table name. Targets
            missing from the mapping fall back to their lowercased name.
        with_foreign_keys: False builds the same columns without constraints,
            which is all row-level statements need.
    """
    metadata = metadata if metadata is not None else MetaData()
    relation_tables = relation_tables or {}

    columns: list[Column] = [Column("id", Integer, primary_key=True, autoincrement=True)]
    for field in definition.fields:
        target = None
        if field.type == "relation" and field.relation:
            if field.relation == definition.name:
                target = definition.table
            else:
                target = relation_tables.get(field.relation, field.relation.lower())
            if with_foreign_keys and target != definition.table:
                _ensure_reference(metadata, target)
        columns.append(
            build_column(
                field, target_table=target, with_foreign_keys=with_foreign_keys
            )
        )

    if definition.owner_field:
        if with_foreign_keys:
            _ensure_reference(metadata, USER_TABLE_NAME)
        columns.append(
            build_owner_column(
                definition.owner_field, with_foreign_keys=with_foreign_keys
            )
        )

    columns.extend(
        [
            Column(
                "created_at",
                DateTime(timezone=True),
                nullable=False,
                server_default=func.now(),
            ),
            Column(
                "updated_at",
                DateTime(timezone=True),
                nullable=False,
                server_default=func.now(),
            ),
        ]
    )
    return Table(definition.table, metadata, *columns)
