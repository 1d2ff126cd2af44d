"""Response Tree Model: the shape of a sourcekitd reply.

sourcekitd replies are dynamically shaped trees. Each node is one of the
variants below, and consumers match on them:

    match value:
        case UInt64(uid):
            ...
        case Map(entries):
            ...

Integers keep their signedness because it carries meaning: signed values
are plain numbers (offsets, lengths), unsigned values are UID handles that
still need resolving.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias


@dataclass(slots=True)
class Null:
    pass


@dataclass(slots=True)
class Bool:
    value: bool


@dataclass(slots=True)
class Int64:
    value: int


@dataclass(slots=True)
class UInt64:
    value: int


@dataclass(slots=True)
class Double:
    value: float


@dataclass(slots=True)
class Text:
    value: str


@dataclass(slots=True)
class Bytes:
    data: bytes

    def __repr__(self) -> str:
        return f"Bytes(<{len(self.data)} bytes>)"


@dataclass(slots=True)
class List:
    items: list[ResponseValue] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[ResponseValue]:
        return iter(self.items)


@dataclass(slots=True)
class Map:
    """Ordered key/value node. Keys are unique strings."""

    entries: dict[str, ResponseValue] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __getitem__(self, key: str) -> ResponseValue:
        return self.entries[key]

    def __setitem__(self, key: str, value: ResponseValue) -> None:
        self.entries[key] = value

    def keys(self) -> list[str]:
        return list(self.entries)

    def get(self, key: str) -> ResponseValue | None:
        return self.entries.get(key)

    def pop(self, key: str) -> ResponseValue | None:
        return self.entries.pop(key, None)

    def int_value(self, key: str) -> int | None:
        """Integer stored under key, signed or unsigned, else None."""
        match self.entries.get(key):
            case Int64(value) | UInt64(value):
                return value
            case _:
                return None

    def bytes_value(self, key: str) -> bytes | None:
        match self.entries.get(key):
            case Bytes(data):
                return data
            case _:
                return None


ResponseValue: TypeAlias = Null | Bool | Int64 | UInt64 | Double | Text | Bytes | List | Map


def from_python(obj: Any) -> ResponseValue:
    """Build a response tree from plain Python data.

    Python ints become ``Int64``. UIDs have no plain-Python spelling, so
    ``UInt64`` nodes (like any other variant) are passed through as-is.
    """
    match obj:
        case Null() | Bool() | Int64() | UInt64() | Double() | Text() | Bytes() | List() | Map():
            return obj
        case None:
            return Null()
        case bool():
            return Bool(obj)
        case int():
            return Int64(obj)
        case float():
            return Double(obj)
        case str():
            return Text(obj)
        case bytes() | bytearray() | memoryview():
            return Bytes(bytes(obj))
        case Mapping():
            return Map({str(key): from_python(value) for key, value in obj.items()})
        case Sequence():
            return List([from_python(item) for item in obj])
        case _:
            raise TypeError(f"Cannot convert {type(obj).__name__} to a response value")
