"""Enrichment: resolve UIDs in a reply tree and attach declaration info.

The walker replaces every resolvable UID in a reply with its name. When a
cursorinfo query is supplied, two kinds of node get extra data:

- declarations (``key.kind`` under ``source.lang.swift.decl.``) are looked
  up with cursorinfo at their ``key.nameoffset`` and the reply is merged in,
  except for ``key.kind``: the editor.open kind is more accurate.
- ``// MARK:`` comments get their text, read from the source file, under
  ``key.name``.

The walk itself only touches the tree. Service calls and file reads come in
through the ``send_cursor_info`` and ``read_source`` callables.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeAlias

from skdump.errors import SourceReadError
from skdump.requests import RequestValue, cursor_info_request
from skdump.source import read_source_range
from skdump.uids import UIDResolver
from skdump.values import List, Map, ResponseValue, Text, UInt64

logger = logging.getLogger(__name__)

KEY_KIND = "key.kind"
KEY_NAME = "key.name"
KEY_NAME_OFFSET = "key.nameoffset"
KEY_OFFSET = "key.offset"
KEY_LENGTH = "key.length"

DECLARATION_PREFIX = "source.lang.swift.decl."
COMMENT_MARK_KIND = "source.lang.swift.syntaxtype.comment.mark"


@dataclass
class CursorInfoQuery:
    """Cursorinfo request template for one source file.

    ``offset`` is set by the walker before each call.
    """

    source_file: Path
    compiler_args: list[str] = field(default_factory=list)
    offset: int = 0

    def to_request(self) -> dict[str, RequestValue]:
        """Render the request for the current offset."""
        return cursor_info_request(self.source_file, self.compiler_args, self.offset)


CursorInfoSender: TypeAlias = Callable[[CursorInfoQuery], ResponseValue | None]
SourceReader: TypeAlias = Callable[[Path, int, int], str]


class Enricher:
    """Walks reply trees, resolving UIDs and merging declaration info."""

    def __init__(
        self,
        resolver: UIDResolver,
        send_cursor_info: CursorInfoSender | None = None,
        read_source: SourceReader = read_source_range,
    ) -> None:
        """Initialize the walker.

        Args:
            resolver: Shared UID resolver
            send_cursor_info: Issues a cursorinfo query and returns the reply
            read_source: Reads a byte range of a source file as text
        """
        self.resolver = resolver
        self._send_cursor_info = send_cursor_info
        self._read_source = read_source
        self.cursor_info_calls = 0

    def enrich(self, tree: Map, query: CursorInfoQuery | None = None) -> None:
        """Enrich a reply tree in place.

        Raises:
            SourceReadError: A mark comment's text could not be read
        """
        self._enrich_map(tree, query)

    def _enrich_value(self, value: ResponseValue, query: CursorInfoQuery | None) -> None:
        match value:
            case Map():
                self._enrich_map(value, query)
            case List(items):
                for item in items:
                    self._enrich_value(item, query)
            case _:
                pass

    def _enrich_map(self, node: Map, query: CursorInfoQuery | None) -> None:
        # Keys merged in from cursorinfo are not revisited.
        for key in node.keys():
            match node[key]:
                case UInt64(uid):
                    name = self.resolver.resolve(uid)
                    if name is None:
                        continue
                    node[key] = Text(name)
                    if query is not None and key == KEY_KIND:
                        self._enrich_kind(node, name, query)
                case value:
                    self._enrich_value(value, query)

    def _enrich_kind(self, node: Map, kind: str, query: CursorInfoQuery) -> None:
        if kind.startswith(DECLARATION_PREFIX):
            offset = node.int_value(KEY_NAME_OFFSET)
            if offset is not None and offset >= 0:
                self._merge_cursor_info(node, offset, query)
        elif kind == COMMENT_MARK_KIND:
            node[KEY_NAME] = Text(self._mark_text(node, query))

    def _merge_cursor_info(self, node: Map, offset: int, query: CursorInfoQuery) -> None:
        if self._send_cursor_info is None:
            return

        query.offset = offset
        self.cursor_info_calls += 1
        logger.debug("cursorinfo %s @ %d", query.source_file, offset)
        reply = self._send_cursor_info(query)

        match reply:
            case Map(entries):
                for key, value in entries.items():
                    if key == KEY_KIND:
                        continue
                    node[key] = value
            case None:
                logger.debug("No cursorinfo for %s @ %d", query.source_file, offset)
            case _:
                logger.warning(
                    "Ignoring cursorinfo reply of type %s for %s @ %d",
                    type(reply).__name__,
                    query.source_file,
                    offset,
                )

    def _mark_text(self, node: Map, query: CursorInfoQuery) -> str:
        offset = node.int_value(KEY_OFFSET)
        length = node.int_value(KEY_LENGTH)
        if offset is None or length is None:
            raise SourceReadError(query.source_file, "mark comment has no offset/length")
        return self._read_source(query.source_file, offset, length)


def enrich(
    tree: Map,
    resolver: UIDResolver,
    query: CursorInfoQuery | None = None,
    send_cursor_info: CursorInfoSender | None = None,
    read_source: SourceReader = read_source_range,
) -> None:
    """Enrich a reply tree in place (convenience function)."""
    Enricher(resolver, send_cursor_info, read_source).enrich(tree, query)
