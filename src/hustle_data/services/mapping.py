"""Conversion between entity dataclasses and document dicts.

Enums are stored by value, nested dataclasses as maps, and the `id`
field is never written into the document body.
"""

import dataclasses
import types
import typing
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Any, TypeVar

from hustle_data.documents import DocumentSnapshot

T = TypeVar("T")


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_document(value)
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _encode(item) for key, item in value.items()}
    return value


def to_document(entity: Any) -> dict[str, Any]:
    """Serialize an entity into a document body (without its id)."""
    return {
        f.name: _encode(getattr(entity, f.name))
        for f in dataclasses.fields(entity)
        if f.name != "id"
    }


@lru_cache(maxsize=None)
def _hints(cls: type) -> dict[str, Any]:
    return typing.get_type_hints(cls)


def _decode(annotation: Any, value: Any) -> Any:
    if value is None:
        return None

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin in (typing.Union, types.UnionType):
        candidates = [arg for arg in args if arg is not type(None)]
        return _decode(candidates[0], value) if len(candidates) == 1 else value
    if origin is list:
        return [_decode(args[0], item) for item in value] if args else list(value)
    if origin is dict:
        value_type = args[1] if args else Any
        return {key: _decode(value_type, item) for key, item in value.items()}

    if isinstance(annotation, type):
        if issubclass(annotation, Enum):
            return annotation(value)
        if dataclasses.is_dataclass(annotation) and isinstance(value, dict):
            return from_dict(annotation, value)
        if annotation is datetime and isinstance(value, str):
            return datetime.fromisoformat(value)
        if annotation is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
    return value


def from_dict(cls: type[T], data: dict[str, Any], doc_id: str | None = None) -> T:
    """Build `cls` from a document body; unknown keys are ignored.

    Raises:
        ValueError: If a required field is missing or a value cannot be decoded
    """
    hints = _hints(cls)
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if f.name == "id":
            kwargs["id"] = doc_id
        elif f.name in data:
            kwargs[f.name] = _decode(hints[f.name], data[f.name])
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise ValueError(f"Cannot build {cls.__name__} from document {doc_id}: {e}") from e


def from_snapshot(cls: type[T], snapshot: DocumentSnapshot) -> T:
    """Build `cls` from a snapshot, tagging it with the snapshot id."""
    return from_dict(cls, snapshot.data, snapshot.id)
