"""High-level operations: structure, syntax and documentation dumps.

A ``Session`` ties a service to a resolver and runs the pipeline:

    editor.open -> syntax map decoding       (syntax)
    editor.open -> enrichment                (structure)
    editor.open -> enrichment + cursorinfo   (docs)

Example:
    with SourceKitd(find_sourcekitd()) as service:
        session = Session(service)
        print(to_json(session.structure("main.swift")))
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from skdump.enrich import CursorInfoQuery, Enricher
from skdump.errors import MalformedSyntaxMapError, ServiceError
from skdump.requests import editor_open_request
from skdump.service import SourceKitService
from skdump.source import SourceFile
from skdump.syntaxmap import (
    SyntaxToken,
    decode_syntax_map,
    documented_token_offsets,
    identifier_offsets,
)
from skdump.uids import UIDResolver
from skdump.values import Map, ResponseValue

logger = logging.getLogger(__name__)

KEY_SYNTAX_MAP = "key.syntaxmap"


def swift_files(args: Sequence[str]) -> list[str]:
    """Arguments that name Swift source files, in order."""
    return [arg for arg in args if arg.endswith(".swift")]


class Session:
    """Runs skdump operations against one sourcekitd service."""

    def __init__(self, service: SourceKitService, resolver: UIDResolver | None = None):
        """Initialize a session.

        Args:
            service: sourcekitd, or anything speaking its protocol
            resolver: Shared UID resolver (default: one backed by the service)
        """
        self.service = service
        self.resolver = resolver if resolver is not None else UIDResolver(service.uid_string)

    def open(self, source_file: Path | str | None = None, source_text: str | None = None) -> Map:
        """Send an editor.open request for a file or inline text."""
        return self.service.send_request(editor_open_request(source_file, source_text))

    def structure(self, source_file: Path | str) -> Map:
        """Structure of a file with every UID resolved."""
        reply = self.open(source_file)
        reply.pop(KEY_SYNTAX_MAP)
        Enricher(self.resolver).enrich(reply)
        return reply

    def syntax(
        self,
        source_file: Path | str | None = None,
        source_text: str | None = None,
    ) -> list[SyntaxToken]:
        """Syntax highlighting tokens for a file or inline text."""
        reply = self.open(source_file, source_text)
        return decode_syntax_map(_syntax_map(reply), self.resolver)

    def docs(
        self,
        compiler_args: Sequence[str],
        files: Sequence[Path | str] | None = None,
    ) -> list[Map]:
        """Structure plus cursorinfo for every declaration in each file.

        Args:
            compiler_args: Compiler arguments passed to cursorinfo
            files: Files to document (default: the .swift files in compiler_args)

        Returns:
            One enriched tree per file, in order
        """
        if files is None:
            files = swift_files(compiler_args)

        enricher = Enricher(self.resolver, send_cursor_info=self._cursor_info)
        documents: list[Map] = []
        for source_file in files:
            logger.info("Documenting %s", source_file)
            reply = self.open(source_file)
            reply.pop(KEY_SYNTAX_MAP)
            query = CursorInfoQuery(Path(source_file), list(compiler_args))
            enricher.enrich(reply, query)
            documents.append(reply)

        logger.debug("Sent %d cursorinfo requests", enricher.cursor_info_calls)
        return documents

    def documented_token_offsets(self, source_file: Path | str) -> list[int]:
        """Offsets of the identifiers that doc comments in a file belong to."""
        reply = self.open(source_file)
        offsets = identifier_offsets(_syntax_map(reply), self.resolver)
        return documented_token_offsets(SourceFile(source_file).read_bytes(), offsets)

    def _cursor_info(self, query: CursorInfoQuery) -> ResponseValue | None:
        # A failed lookup skips the merge for that declaration only.
        try:
            return self.service.send_request(query.to_request())
        except ServiceError as e:
            logger.warning("cursorinfo %s @ %d failed: %s", query.source_file, query.offset, e)
            return None


def _syntax_map(reply: Map) -> bytes:
    data = reply.bytes_value(KEY_SYNTAX_MAP)
    if data is None:
        raise MalformedSyntaxMapError(f"Reply has no binary {KEY_SYNTAX_MAP}")
    return data
