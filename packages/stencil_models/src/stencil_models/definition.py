"""
Model definitions: the declarative schema an administrator publishes.

A definition names an entity, lists its typed fields, maps roles to the CRUD
operations they may perform and optionally names an ownership column. The
JSON shape uses the camelCase keys ``tableName`` and ``ownerField``.
"""

import re
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from stencil_core import ValidationError

FieldType = Literal["string", "number", "float", "boolean", "relation"]
Operation = Literal["create", "read", "update", "delete"]
RbacOperation = Literal["create", "read", "update", "delete", "all"]

ALL_OPERATIONS: frozenset[str] = frozenset({"create", "read", "update", "delete"})
NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
IMPLICIT_COLUMNS = frozenset({"id", "created_at", "updated_at"})
RESERVED_TABLE_NAMES = frozenset(
    {"models", "auth", "users", "auth_tokens", "stencil_model_definitions"}
)


def is_valid_name(name: str) -> bool:
    """True when ``name`` is safe as both a SQL identifier and a URL segment."""
    return bool(NAME_PATTERN.fullmatch(name))


def _check_name(value: str, what: str) -> str:
    if not is_valid_name(value):
        msg = f"Invalid {what} '{value}': only letters, digits and '_' are allowed"
        raise ValueError(msg)
    return value


class FieldDefinition(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    type: FieldType
    required: bool = False
    relation: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v, "field name")

    @model_validator(mode="after")
    def validate_relation(self) -> "FieldDefinition":
        if self.type == "relation":
            if not self.relation:
                msg = f"Relation field '{self.name}' must name its target model"
                raise ValueError(msg)
            _check_name(self.relation, "relation target")
        return self


class ModelDefinition(BaseModel):
    """
    Declarative description of one entity.

    Example:
        >>> ModelDefinition.parse({
        ...     "name": "Task",
        ...     "fields": [{"name": "title", "type": "string", "required": True}],
        ...     "rbac": {"Admin": ["all"], "Viewer": ["read"]},
        ... }).table
        'task'
    """

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    name: str
    description: str | None = None
    table_name: str | None = Field(default=None, alias="tableName")
    fields: list[FieldDefinition] = Field(default_factory=list)
    rbac: dict[str, list[RbacOperation]] = Field(default_factory=dict)
    owner_field: str | None = Field(default=None, alias="ownerField")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v, "model name")

    @field_validator("table_name", "owner_field")
    @classmethod
    def validate_identifier(cls, v: str | None) -> str | None:
        if v is not None:
            _check_name(v, "identifier")
        return v

    @model_validator(mode="after")
    def validate_columns(self) -> "ModelDefinition":
        seen: set[str] = set()
        for field in self.fields:
            if field.name in IMPLICIT_COLUMNS:
                msg = f"Field name '{field.name}' is reserved"
                raise ValueError(msg)
            if field.name in seen:
                msg = f"Duplicate field name '{field.name}'"
                raise ValueError(msg)
            seen.add(field.name)

        if self.owner_field is not None:
            if self.owner_field in IMPLICIT_COLUMNS:
                msg = f"Owner field '{self.owner_field}' is reserved"
                raise ValueError(msg)
            if self.owner_field in seen:
                msg = (
                    f"Owner field '{self.owner_field}' is implicit and must not "
                    "also be declared in fields"
                )
                raise ValueError(msg)

        if self.table in RESERVED_TABLE_NAMES:
            msg = f"Table name '{self.table}' is reserved by the platform"
            raise ValueError(msg)
        return self

    @classmethod
    def parse(cls, data: Any) -> "ModelDefinition":
        """Build a definition from untrusted JSON, raising a 400-class error."""
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError(_format_error(exc)) from exc

    @property
    def table(self) -> str:
        """Backing table name: the override when given, else the lowercased name."""
        return self.table_name or self.name.lower()

    @property
    def relations(self) -> dict[str, str]:
        """Relation field name -> target model name."""
        return {f.name: f.relation for f in self.fields if f.type == "relation"}

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def permitted_operations(self, role: str) -> frozenset[str]:
        granted = set(self.rbac.get(role, ()))
        if "all" in granted:
            return ALL_OPERATIONS
        return frozenset(granted)

    def to_document(self) -> dict[str, Any]:
        """JSON-ready form, as written to a definition store."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def summary(self) -> dict[str, Any]:
        """The lighter shape returned by the model listing endpoint."""
        return {
            "name": self.name,
            "description": self.description,
            "fields": [
                f.model_dump(mode="json", exclude_none=True) for f in self.fields
            ],
        }


def _format_error(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error["loc"])
    message = error["msg"].removeprefix("Value error, ")
    return f"{location}: {message}" if location else message
