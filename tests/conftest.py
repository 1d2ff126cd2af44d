"""Pytest configuration and fixtures.

Nothing here talks to a real sourcekitd. ``FakeService`` answers UID
lookups from a table and replays canned replies, counting every call.
"""

from __future__ import annotations

import copy
import struct
from collections.abc import Callable

import pytest

from skdump.errors import ServiceError
from skdump.requests import CURSOR_INFO, EDITOR_OPEN, Request, RequestUID
from skdump.uids import UIDResolver
from skdump.values import Map

KIND_UIDS = {
    "source.lang.swift.syntaxtype.keyword": 5_000_000_001,
    "source.lang.swift.syntaxtype.identifier": 5_000_000_002,
    "source.lang.swift.syntaxtype.comment": 5_000_000_003,
    "source.lang.swift.syntaxtype.comment.mark": 5_000_000_004,
    "source.lang.swift.syntaxtype.doccomment": 5_000_000_005,
    "source.lang.swift.decl.function.free": 5_000_000_010,
    "source.lang.swift.decl.class": 5_000_000_011,
    "source.lang.swift.decl.function.method.instance": 5_000_000_012,
    "source.lang.swift.expr.call": 5_000_000_020,
    "source.lang.swift.accessibility.internal": 5_000_000_030,
}

# Above the UID threshold, but sourcekitd knows no name for it.
UNNAMED_UID = 5_999_999_999


class FakeService:
    """In-memory SourceKitService."""

    def __init__(self, names: dict[int, str] | None = None) -> None:
        self.names = dict(names if names is not None else {v: k for k, v in KIND_UIDS.items()})
        self.open_replies: dict[str, Map] = {}
        self.cursor_info_replies: dict[int, Map] = {}
        self.cursor_info_errors: set[int] = set()
        self.lookups: list[int] = []
        self.requests: list[dict] = []

    def uid_string(self, uid: int) -> str | None:
        self.lookups.append(uid)
        return self.names.get(uid)

    def send_request(self, request: Request) -> Map:
        self.requests.append(dict(request))
        kind = request["key.request"]
        assert isinstance(kind, RequestUID)

        if kind.name == EDITOR_OPEN:
            target = request.get("key.sourcefile", request.get("key.sourcetext"))
            return copy.deepcopy(self.open_replies[str(target)])
        if kind.name == CURSOR_INFO:
            offset = request["key.offset"]
            if offset in self.cursor_info_errors:
                raise ServiceError(f"cursorinfo failed at offset {offset}")
            return copy.deepcopy(self.cursor_info_replies.get(offset, Map()))
        raise AssertionError(f"Unexpected request {kind.name}")

    def requests_of(self, name: str) -> list[dict]:
        return [r for r in self.requests if r["key.request"].name == name]


def pack_syntax_map(records: list[tuple[int, int, int]]) -> bytes:
    """Pack (kind_uid, offset, length) triples the way sourcekitd does."""
    data = struct.pack("<QQ", 0, len(records) << 4)
    for uid, offset, length in records:
        data += struct.pack("<QII", uid, offset, length << 1)
    return data


@pytest.fixture
def uid() -> Callable[[str], int]:
    """UID for a kind name known to FakeService."""
    return KIND_UIDS.__getitem__


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def resolver(service: FakeService) -> UIDResolver:
    return UIDResolver(service.uid_string)


@pytest.fixture
def syntax_map() -> Callable[[list[tuple[int, int, int]]], bytes]:
    return pack_syntax_map


@pytest.fixture(autouse=True)
def no_library_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's $SKDUMP_SOURCEKITD out of the tests."""
    monkeypatch.delenv("SKDUMP_SOURCEKITD", raising=False)
