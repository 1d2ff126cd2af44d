"""Request builders for the sourcekitd calls skdump makes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TypeAlias

EDITOR_OPEN = "source.request.editor.open"
CURSOR_INFO = "source.request.cursorinfo"


@dataclass(frozen=True)
class RequestUID:
    """A request value that must be sent as a UID rather than a string."""

    name: str


RequestValue: TypeAlias = (
    "str | int | bool | RequestUID | Sequence[RequestValue] | Mapping[str, RequestValue]"
)
Request: TypeAlias = Mapping[str, RequestValue]


def editor_open_request(
    source_file: Path | str | None = None,
    source_text: str | None = None,
    name: str = "",
) -> dict[str, RequestValue]:
    """Build an editor.open request for a file or for inline text.

    Args:
        source_file: Path of the file to open
        source_text: Source to open instead of a file
        name: Document name

    Returns:
        Request mapping
    """
    if (source_file is None) == (source_text is None):
        raise ValueError("Exactly one of source_file or source_text is required")

    request: dict[str, RequestValue] = {
        "key.request": RequestUID(EDITOR_OPEN),
        "key.name": name,
    }
    if source_file is not None:
        request["key.sourcefile"] = str(source_file)
    else:
        request["key.sourcetext"] = source_text  # type: ignore[assignment]
    return request


def cursor_info_request(
    source_file: Path | str,
    compiler_args: Sequence[str],
    offset: int,
) -> dict[str, RequestValue]:
    """Build a cursorinfo request for a byte offset in a file."""
    return {
        "key.request": RequestUID(CURSOR_INFO),
        "key.compilerargs": list(compiler_args),
        "key.sourcefile": str(source_file),
        "key.offset": offset,
    }
