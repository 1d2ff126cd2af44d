"""Syntax map decoding.

An editor.open reply carries its syntax highlighting as a packed blob under
``key.syntaxmap``. The layout is little endian:

    header   16 bytes   [8, 16) = token_count << 4
    records  16 bytes   [0, 8)  kind UID
                        [8, 12) byte offset
                        [12,16) byte length << 1

Kinds are UIDs and go through the resolver. Every kind in a syntax map
must resolve; an unnamed kind aborts the decode.
"""

from __future__ import annotations

import bisect
import re
import struct
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from skdump.errors import MalformedSyntaxMapError
from skdump.uids import UIDResolver

IDENTIFIER_KIND = "source.lang.swift.syntaxtype.identifier"

# Doc comment line starts and block comment closers.
DOC_COMMENT_PATTERN = re.compile(rb"(///.*\n|\*/\n)")

_HEADER = struct.Struct("<8xQ")
_RECORD = struct.Struct("<QII")


@dataclass(frozen=True)
class SyntaxToken:
    """A highlighted range of source text."""

    kind: str
    offset: int  # Byte offset into the source
    length: int  # Byte length

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {"type": self.kind, "offset": self.offset, "length": self.length}


def token_count(data: bytes) -> int:
    """Number of tokens declared by a syntax map header."""
    if len(data) < _HEADER.size:
        raise MalformedSyntaxMapError(
            "Syntax map is shorter than its header",
            expected=_HEADER.size,
            actual=len(data),
        )
    (raw,) = _HEADER.unpack_from(data, 0)
    return raw >> 4


def iter_records(data: bytes) -> Iterator[tuple[int, int, int]]:
    """Yield raw (kind_uid, offset, encoded_length) records.

    The blob is checked against the declared count before anything is read.
    """
    count = token_count(data)
    expected = _HEADER.size + count * _RECORD.size
    if len(data) < expected:
        raise MalformedSyntaxMapError(
            f"Syntax map declares {count} tokens",
            expected=expected,
            actual=len(data),
        )
    for index in range(count):
        yield _RECORD.unpack_from(data, _HEADER.size + index * _RECORD.size)


def decode_syntax_map(data: bytes, resolver: UIDResolver) -> list[SyntaxToken]:
    """Decode a syntax map blob into tokens, in stream order.

    Args:
        data: Raw ``key.syntaxmap`` payload
        resolver: Resolver for token kind UIDs

    Returns:
        List of SyntaxToken

    Raises:
        MalformedSyntaxMapError: The blob is truncated
        UnresolvableIdentifierError: A token kind has no name
    """
    return [
        SyntaxToken(kind=resolver.require(uid), offset=offset, length=raw_length >> 1)
        for uid, offset, raw_length in iter_records(data)
    ]


def identifier_offsets(data: bytes, resolver: UIDResolver) -> list[int]:
    """Start offsets of identifier tokens in a syntax map."""
    return [
        offset
        for uid, offset, _ in iter_records(data)
        if resolver.require(uid) == IDENTIFIER_KIND
    ]


def documented_token_offsets(source: bytes, offsets: Sequence[int]) -> list[int]:
    """Offsets of the identifiers that documentation comments attach to.

    Each doc comment line (``///``) or block comment closer (``*/``) is
    matched with the first identifier starting at or after the end of the
    match. Comments with no identifier after them are dropped.

    Args:
        source: Source file contents
        offsets: Identifier start offsets, as from identifier_offsets()

    Returns:
        One identifier offset per matched comment, in source order
    """
    ordered = sorted(offsets)
    documented: list[int] = []
    for match in DOC_COMMENT_PATTERN.finditer(source):
        index = bisect.bisect_left(ordered, match.end())
        if index < len(ordered):
            documented.append(ordered[index])
    return documented
