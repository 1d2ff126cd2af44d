"""JSON rendering of reply trees and syntax tokens."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from skdump.errors import SerializationError
from skdump.syntaxmap import SyntaxToken
from skdump.values import Bool, Bytes, Double, Int64, List, Map, Null, ResponseValue, Text, UInt64


def to_python(value: ResponseValue) -> Any:
    """Convert a reply tree into JSON-serializable Python data.

    Raises:
        SerializationError: The tree still holds a raw ``Bytes`` payload or
            something that is not a response value at all
    """
    match value:
        case Null():
            return None
        case Bool(flag):
            return flag
        case Int64(number) | UInt64(number):
            return number
        case Double(number):
            return number
        case Text(text):
            return text
        case List(items):
            return [to_python(item) for item in items]
        case Map(entries):
            return {key: to_python(child) for key, child in entries.items()}
        case Bytes():
            raise SerializationError(
                "Binary payloads must be decoded or removed before serialization"
            )
        case _:
            raise SerializationError(f"Unexpected value of type {type(value).__name__}")


def _dumps(data: Any, indent: int) -> str:
    try:
        return json.dumps(data, indent=indent, ensure_ascii=False, allow_nan=False)
    except ValueError as e:
        # NaN and infinities have no JSON spelling.
        raise SerializationError(f"Cannot render value as JSON: {e}") from e


def to_json(value: ResponseValue, indent: int = 2) -> str:
    """Render a reply tree as pretty-printed JSON."""
    return _dumps(to_python(value), indent)


def documents_to_json(values: Iterable[ResponseValue], indent: int = 2) -> str:
    """Render several reply trees as one JSON array."""
    return _dumps([to_python(value) for value in values], indent)


def tokens_to_json(tokens: Iterable[SyntaxToken], indent: int = 2) -> str:
    """Render syntax tokens as a JSON array."""
    return _dumps([token.to_dict() for token in tokens], indent)
