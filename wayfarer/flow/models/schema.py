"""Minimal JSON-schema subset describing the collected data."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StructuredSchema(BaseModel):
    """A JSON-schema node.

    Only the keys the engine reads are modelled; anything else is kept as
    extra data and passed through to providers unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    type: str | list[str] | None = None
    description: str | None = None
    enum: list[Any] | None = None
    nullable: bool | None = None
    properties: dict[str, "StructuredSchema"] | None = None
    required: list[str] | None = None
    items: "StructuredSchema | None" = None
    additional_properties: "bool | StructuredSchema | None" = Field(
        default=None, alias="additionalProperties"
    )

    def allowed_types(self) -> list[str]:
        if self.type is None:
            return []
        types = [self.type] if isinstance(self.type, str) else list(self.type)
        if self.nullable and "null" not in types:
            types.append("null")
        return types

    def field_schema(self, name: str) -> "StructuredSchema | None":
        if not self.properties:
            return None
        return self.properties.get(name)

    def to_json_schema(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
