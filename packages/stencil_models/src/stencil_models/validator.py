"""
Write-payload validation and coercion.

:func:`validate` reports the first problem in field order, or ``None``.
:func:`coerce_payload` turns an accepted payload into column values.
"""

import math
from collections.abc import Iterable, Mapping
from typing import Any

from .definition import FieldDefinition, ModelDefinition

BOOLEAN_LITERALS = {"true": True, "false": False}


def is_empty(value: Any) -> bool:
    return value is None or value == ""


def _parse_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _check_field(field: FieldDefinition, value: Any) -> str | None:
    if is_empty(value):
        if field.required:
            return f'Field "{field.name}" is required.'
        return None

    match field.type:
        case "number":
            number = _parse_number(value)
            if number is None:
                return f'Field "{field.name}" must be a valid number.'
            if not number.is_integer():
                return f'Field "{field.name}" must be a whole number.'
        case "float":
            if _parse_number(value) is None:
                return f'Field "{field.name}" must be a valid float (e.g., 12.34).'
        case "boolean":
            if not isinstance(value, bool) and not (
                isinstance(value, str) and value in BOOLEAN_LITERALS
            ):
                return f'Field "{field.name}" must be a boolean (true or false).'
    return None


def validate(definition: ModelDefinition, payload: Mapping[str, Any]) -> str | None:
    """Return the first field error in declaration order, or None when valid.

    A required boolean accepts an explicit ``False``; ``string`` and
    ``relation`` values are not shape-checked.
    """
    for field in definition.fields:
        error = _check_field(field, payload.get(field.name))
        if error:
            return error
    return None


def coerce_value(field: FieldDefinition, value: Any) -> Any:
    if is_empty(value):
        return None

    match field.type:
        case "boolean":
            if isinstance(value, str):
                return BOOLEAN_LITERALS[value]
            return value
        case "number" | "relation":
            number = _parse_number(value)
            if number is None:
                return value
            return int(number) if number.is_integer() else number
        case "float":
            return _parse_number(value)
        case _:
            return value if isinstance(value, str) else str(value)


def coerce_payload(
    definition: ModelDefinition,
    payload: Mapping[str, Any],
    *,
    exclude: Iterable[str] = (),
) -> dict[str, Any]:
    """
    Restrict ``payload`` to declared fields and convert values to column types.

    Unknown keys are dropped and keys the payload does not supply are left out,
    so column defaults apply on insert and untouched columns survive an update.
    """
    excluded = set(exclude)
    values: dict[str, Any] = {}
    for field in definition.fields:
        if field.name in excluded or field.name not in payload:
            continue
        values[field.name] = coerce_value(field, payload[field.name])
    return values
