"""Pydantic models exchanged with the schema admin endpoints."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

__all__ = [
    "PostSchemaPayload",
    "SchemaInfo",
    "SchemaInfoWithVersion",
    "SchemaPayloadError",
    "SchemaType",
    "load_payload_file",
]


class SchemaPayloadError(ValueError):
    """Raised when a payload document cannot be parsed."""


class SchemaType(str, Enum):
    """Schema type tags understood by the schema registry."""

    NONE = "NONE"
    STRING = "STRING"
    JSON = "JSON"
    PROTOBUF = "PROTOBUF"
    AVRO = "AVRO"
    BOOLEAN = "BOOLEAN"
    INT8 = "INT8"
    INT16 = "INT16"
    INT32 = "INT32"
    INT64 = "INT64"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    DATE = "DATE"
    TIME = "TIME"
    TIMESTAMP = "TIMESTAMP"
    KEY_VALUE = "KEY_VALUE"
    BYTES = "BYTES"
    AUTO = "AUTO"
    AUTO_CONSUME = "AUTO_CONSUME"
    AUTO_PUBLISH = "AUTO_PUBLISH"
    PROTOBUF_NATIVE = "PROTOBUF_NATIVE"
    INSTANT = "INSTANT"
    LOCAL_DATE = "LOCAL_DATE"
    LOCAL_TIME = "LOCAL_TIME"
    LOCAL_DATE_TIME = "LOCAL_DATE_TIME"


class PostSchemaPayload(BaseModel):
    """Request body used to register a new schema for a topic."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    type: SchemaType
    schema_: str = Field(alias="schema")
    properties: Dict[str, str] = Field(default_factory=dict)

    def to_request(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "schema": self.schema_,
            "properties": dict(self.properties),
        }


class SchemaInfo(BaseModel):
    """Schema definition as stored by the registry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    type: str
    schema_: str = Field(default="", alias="schema")
    properties: Dict[str, str] = Field(default_factory=dict)
    timestamp: Optional[int] = None

    @field_validator("properties", mode="before")
    @classmethod
    def _none_properties(cls, value: Any) -> Any:
        return {} if value is None else value

    def to_display(self) -> Dict[str, Any]:
        """Return a JSON-friendly view; JSON-encoded definitions are expanded."""

        schema: Any = self.schema_
        if self.type in (SchemaType.AVRO.value, SchemaType.JSON.value, SchemaType.PROTOBUF.value):
            try:
                schema = json.loads(self.schema_)
            except json.JSONDecodeError:
                schema = self.schema_
        payload: Dict[str, Any] = {
            "name": self.name,
            "schema": schema,
            "type": self.type,
            "properties": dict(self.properties),
        }
        if self.timestamp is not None:
            payload["timestamp"] = self.timestamp
        return payload


class SchemaInfoWithVersion(BaseModel):
    """A schema definition paired with its registry version."""

    model_config = ConfigDict(frozen=True)

    version: int
    schema_info: SchemaInfo

    def to_display(self) -> Dict[str, Any]:
        return {"version": self.version, "schemaInfo": self.schema_info.to_display()}


def load_payload_file(path: str | Path) -> PostSchemaPayload:
    """Read a JSON payload document and validate it into a ``PostSchemaPayload``."""

    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Schema payload file not found: {source}") from exc
    except IsADirectoryError as exc:
        raise SchemaPayloadError(f"Schema payload path is a directory: {source}") from exc
    except UnicodeDecodeError as exc:
        raise SchemaPayloadError(f"Schema payload file {source} is not valid UTF-8: {exc}") from exc
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaPayloadError(f"Schema payload file {source} is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise SchemaPayloadError(f"Schema payload file {source} must contain a JSON object")
    try:
        return PostSchemaPayload.model_validate(document)
    except ValidationError as exc:
        raise SchemaPayloadError(f"Invalid schema payload in {source}: {exc}") from exc
