"""Validation of collected values against a StructuredSchema.

Only top-level properties are checked: membership in the schema, the
declared type and, when present, the declared enum.
"""

from collections.abc import Mapping
from typing import Any

from wayfarer.batch.models import ValidationError
from wayfarer.flow.models import StructuredSchema


def json_type_name(value: Any) -> str:
    """Name of the JSON type a Python value maps to."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def matches_type(value: Any, expected: str) -> bool:
    actual = json_type_name(value)
    if expected == "integer":
        return actual == "number" and (isinstance(value, int) or value.is_integer())
    return actual == expected


def in_enum(value: Any, options: list[Any]) -> bool:
    """Enum membership where booleans only match booleans."""
    for option in options:
        if isinstance(value, bool) or isinstance(option, bool):
            if type(value) is type(option) and value == option:
                return True
        elif value == option:
            return True
    return False


def validate_field(field: str, value: Any, schema: StructuredSchema) -> ValidationError | None:
    """Check one value against its property schema.

    ``None`` is never an error here; absence is handled by collection.
    """
    if value is None:
        return None

    allowed = schema.allowed_types()
    if allowed and not any(matches_type(value, t) for t in allowed):
        return ValidationError(
            field=field,
            value=value,
            message=(
                f"Field '{field}' has type '{json_type_name(value)}' "
                f"but expected '{' | '.join(allowed)}'"
            ),
            schema_path=f"properties.{field}.type",
        )

    if schema.enum is not None and not in_enum(value, schema.enum):
        return ValidationError(
            field=field,
            value=value,
            message=(
                f"Field '{field}' has value {value!r} which is not one of "
                f"{schema.enum!r}"
            ),
            schema_path=f"properties.{field}.enum",
        )
    return None


def validate_against_schema(
    data: Mapping[str, Any],
    schema: StructuredSchema,
) -> list[ValidationError]:
    """Validate collected data; returns one error per offending field.

    A schema without ``properties`` accepts anything.
    """
    if not schema.properties:
        return []

    errors: list[ValidationError] = []
    for field, value in data.items():
        field_schema = schema.properties.get(field)
        if field_schema is None:
            errors.append(
                ValidationError(
                    field=field,
                    value=value,
                    message=f"Field '{field}' is not defined in schema",
                    schema_path=f"properties.{field}",
                )
            )
            continue
        error = validate_field(field, value, field_schema)
        if error is not None:
            errors.append(error)
    return errors
