"""Derive Avro record definitions from annotated Python classes."""

from __future__ import annotations

import dataclasses
import inspect
import json
import re
import typing
from collections.abc import Mapping as MappingABC
from collections.abc import Set as SetABC
from collections.abc import Sequence as SequenceABC
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from types import NoneType, UnionType
from typing import Any, Dict, List, Tuple, Union, get_args, get_origin
from uuid import UUID

import avro.errors
import avro.schema
from pydantic import BaseModel

__all__ = [
    "SchemaExtractionError",
    "build_record_schema",
    "derive_avro_schema",
    "derive_json_schema",
]


class SchemaExtractionError(RuntimeError):
    """Raised when a class cannot be described as an Avro record."""


_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_]")

_PRIMITIVES: Tuple[Tuple[type, Any], ...] = (
    # bool before int and datetime before date: subclass relationships.
    (bool, "boolean"),
    (int, "long"),
    (float, "double"),
    (str, "string"),
    (bytes, "bytes"),
    (bytearray, "bytes"),
    (Decimal, "string"),
    (datetime, {"type": "long", "logicalType": "timestamp-millis"}),
    (date, {"type": "int", "logicalType": "date"}),
    (time, {"type": "long", "logicalType": "time-micros"}),
    (UUID, {"type": "string", "logicalType": "uuid"}),
)


def _avro_name(value: str) -> str:
    cleaned = _INVALID_NAME_CHARS.sub("_", value)
    if cleaned and cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    return cleaned


def _avro_namespace(cls: type) -> str | None:
    """Module path plus any enclosing class or function names."""

    module = getattr(cls, "__module__", None)
    parts = [] if not module or module == "builtins" else module.split(".")
    outer = getattr(cls, "__qualname__", cls.__name__).split(".")[:-1]
    parts.extend(part for part in outer if part != "<locals>")
    if not parts:
        return None
    return ".".join(_avro_name(part) for part in parts if part)


def _full_name(cls: type) -> str:
    namespace = _avro_namespace(cls)
    name = _avro_name(cls.__name__)
    return f"{namespace}.{name}" if namespace else name


def _class_doc(cls: type) -> str | None:
    raw = cls.__dict__.get("__doc__")
    if not raw:
        return None
    if dataclasses.is_dataclass(cls) and raw.startswith(f"{cls.__name__}("):
        return None
    return inspect.cleandoc(raw)


def _is_record_class(annotation: Any) -> bool:
    if not inspect.isclass(annotation):
        return False
    if dataclasses.is_dataclass(annotation):
        return True
    if issubclass(annotation, BaseModel):
        return True
    if issubclass(annotation, Enum) or annotation.__module__ == "builtins":
        return False
    return bool(_plain_annotations(annotation))


def _plain_annotations(cls: type) -> Dict[str, Any]:
    try:
        hints = typing.get_type_hints(cls)
    except Exception as exc:
        raise SchemaExtractionError(
            f"Unable to resolve type hints for '{cls.__qualname__}': {exc}"
        ) from exc
    return {
        name: hint
        for name, hint in hints.items()
        if not name.startswith("_") and get_origin(hint) is not typing.ClassVar
    }


def _record_fields(cls: type) -> List[Tuple[str, Any]]:
    if inspect.isclass(cls) and issubclass(cls, BaseModel):
        try:
            cls.model_rebuild()
        except Exception as exc:
            raise SchemaExtractionError(
                f"Unable to resolve type hints for '{cls.__qualname__}': {exc}"
            ) from exc
        return [(name, field.annotation) for name, field in cls.model_fields.items()]
    if dataclasses.is_dataclass(cls):
        hints = _plain_annotations(cls)
        return [
            (field.name, hints.get(field.name, field.type))
            for field in dataclasses.fields(cls)
            if not field.name.startswith("_")
        ]
    return list(_plain_annotations(cls).items())


def _is_sequence_origin(origin: Any) -> bool:
    try:
        return issubclass(origin, (SequenceABC, SetABC)) and not issubclass(origin, (str, bytes))
    except TypeError:
        return False


def _is_mapping_origin(origin: Any) -> bool:
    try:
        return issubclass(origin, MappingABC)
    except TypeError:
        return False


class _RecordBuilder:
    """Convert annotations into Avro declarations, tracking named types."""

    def __init__(self, *, always_allow_null: bool) -> None:
        self._always_allow_null = always_allow_null
        self._named: Dict[str, type] = {}

    def _claim(self, cls: type, context: str) -> Tuple[str, bool]:
        """Register the full name of ``cls``; report whether it was already declared."""

        full_name = _full_name(cls)
        seen = self._named.get(full_name)
        if seen is not None and seen is not cls:
            raise SchemaExtractionError(
                f"{context}: name '{full_name}' is already used by a different class"
            )
        self._named[full_name] = cls
        return full_name, seen is not None

    def record(self, cls: type, context: str) -> Any:
        full_name, declared = self._claim(cls, context)
        if declared:
            return full_name
        fields = [self._field(name, annotation, f"{context}.{name}") for name, annotation in _record_fields(cls)]
        schema: Dict[str, Any] = {"type": "record", "name": _avro_name(cls.__name__)}
        namespace = _avro_namespace(cls)
        if namespace:
            schema["namespace"] = namespace
        doc = _class_doc(cls)
        if doc:
            schema["doc"] = doc
        schema["fields"] = fields
        return schema

    def _field(self, name: str, annotation: Any, context: str) -> Dict[str, Any]:
        avro_type = self.convert(annotation, context)
        nullable = isinstance(avro_type, list) and "null" in avro_type
        if self._always_allow_null and not nullable:
            if isinstance(avro_type, list):
                avro_type = ["null", *avro_type]
            else:
                avro_type = ["null", avro_type]
            nullable = True
        field: Dict[str, Any] = {"name": name, "type": avro_type}
        if nullable and avro_type[0] == "null":
            field["default"] = None
        return field

    def convert(self, annotation: Any, context: str) -> Any:
        origin = get_origin(annotation)

        if origin is typing.Annotated:
            return self.convert(get_args(annotation)[0], context)
        if annotation is Any or annotation is object:
            raise SchemaExtractionError(f"{context}: untyped fields cannot be described in Avro")
        if annotation is None or annotation is NoneType:
            return "null"
        if origin in (Union, UnionType):
            return self._union(get_args(annotation), context)
        if origin is typing.Literal:
            return self._literal(get_args(annotation), context)

        if origin is not None:
            args = get_args(annotation)
            if _is_mapping_origin(origin):
                if len(args) != 2:
                    raise SchemaExtractionError(f"{context}: mapping annotations must declare key/value types")
                key, value = args
                if key is not str:
                    raise SchemaExtractionError(f"{context}: Avro maps require string keys, got {key!r}")
                return {"type": "map", "values": self.convert(value, f"{context}<value>")}
            if _is_sequence_origin(origin):
                return {"type": "array", "items": self._sequence_item(origin, args, context)}
            raise SchemaExtractionError(f"{context}: unsupported annotation {annotation!r}")

        if inspect.isclass(annotation):
            if issubclass(annotation, Enum):
                return self._enum(annotation, context)
            for python_type, avro_type in _PRIMITIVES:
                if issubclass(annotation, python_type):
                    return dict(avro_type) if isinstance(avro_type, dict) else avro_type
            if annotation in (list, tuple, set, frozenset, dict) or _is_sequence_origin(annotation) or _is_mapping_origin(annotation):
                raise SchemaExtractionError(
                    f"{context}: container annotations must include item type information"
                )
            if _is_record_class(annotation):
                return self.record(annotation, context)
        raise SchemaExtractionError(f"{context}: unsupported annotation {annotation!r}")

    def _sequence_item(self, origin: Any, args: Tuple[Any, ...], context: str) -> Any:
        if not args:
            raise SchemaExtractionError(f"{context}: sequence annotation missing type arguments")
        if origin is tuple:
            members = [arg for arg in args if arg is not Ellipsis]
            if len(set(members)) != 1:
                raise SchemaExtractionError(
                    f"{context}: heterogeneous tuples cannot be described as an Avro array"
                )
            return self.convert(members[0], f"{context}[]")
        return self.convert(args[0], f"{context}[]")

    def _union(self, members: Tuple[Any, ...], context: str) -> List[Any]:
        has_null = any(member is NoneType for member in members)
        branches: List[Any] = ["null"] if has_null else []
        for member in members:
            if member is NoneType:
                continue
            converted = self.convert(member, context)
            if isinstance(converted, list):
                raise SchemaExtractionError(f"{context}: nested unions are not supported")
            if converted not in branches:
                branches.append(converted)
        return branches

    def _literal(self, values: Tuple[Any, ...], context: str) -> Any:
        kinds = {type(value) for value in values}
        if len(kinds) != 1:
            raise SchemaExtractionError(f"{context}: mixed-type literals are not supported")
        return self.convert(kinds.pop(), context)

    def _enum(self, enum_cls: type[Enum], context: str) -> Any:
        full_name, declared = self._claim(enum_cls, context)
        if declared:
            return full_name
        schema: Dict[str, Any] = {
            "type": "enum",
            "name": _avro_name(enum_cls.__name__),
            "symbols": [member.name for member in enum_cls],
        }
        namespace = _avro_namespace(enum_cls)
        if namespace:
            schema["namespace"] = namespace
        return schema


def build_record_schema(cls: type, *, always_allow_null: bool = True) -> Dict[str, Any]:
    """Return the Avro record declaration describing ``cls``.

    Fields are taken from dataclass fields, pydantic model fields or annotated
    class attributes, in declaration order. With ``always_allow_null`` every
    field becomes a ``["null", T]`` union defaulting to ``null``; otherwise only
    ``Optional`` annotations are nullable.
    """

    if not inspect.isclass(cls):
        raise SchemaExtractionError(f"Expected a class, got {cls!r}")
    if not _is_record_class(cls):
        raise SchemaExtractionError(f"Class '{cls.__qualname__}' declares no typed fields")
    builder = _RecordBuilder(always_allow_null=always_allow_null)
    schema = builder.record(cls, cls.__qualname__)
    try:
        avro.schema.parse(json.dumps(schema))
    except avro.errors.AvroException as exc:
        raise SchemaExtractionError(
            f"Derived schema for '{cls.__qualname__}' is not valid Avro: {exc}"
        ) from exc
    return schema


def derive_avro_schema(cls: type, *, always_allow_null: bool = True) -> str:
    """Return the Avro schema definition of ``cls`` as JSON text."""

    return json.dumps(build_record_schema(cls, always_allow_null=always_allow_null))


def derive_json_schema(cls: type, *, always_allow_null: bool = True) -> str:
    """Return the JSON schema definition of ``cls``.

    The registry stores JSON schemas as Avro record definitions, so this is the
    same document ``derive_avro_schema`` produces.
    """

    return json.dumps(build_record_schema(cls, always_allow_null=always_allow_null))
