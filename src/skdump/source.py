"""Source text access by byte range.

sourcekitd reports positions as byte offsets into the UTF-8 source, so
ranges are sliced from the raw bytes and decoded afterwards. Each read
opens the file once and keeps nothing.
"""

from __future__ import annotations

from pathlib import Path

from skdump.errors import SourceReadError


class SourceFile:
    """Reference to a source file on disk."""

    def __init__(self, path: Path | str, *, encoding: str = "utf-8"):
        self._path = Path(path)
        self._encoding = encoding

    @property
    def path(self) -> Path:
        return self._path

    def read_bytes(self) -> bytes:
        """Read the whole file."""
        try:
            return self._path.read_bytes()
        except OSError as e:
            raise SourceReadError(self._path, f"cannot read file: {e}") from e

    def read_range(self, offset: int, length: int) -> str:
        """Read ``length`` bytes starting at ``offset`` as text."""
        if offset < 0 or length < 0:
            raise SourceReadError(self._path, f"invalid range offset={offset} length={length}")

        data = self.read_bytes()
        end = offset + length
        if end > len(data):
            raise SourceReadError(
                self._path,
                f"range {offset}..{end} is past the end of the file ({len(data)} bytes)",
            )

        try:
            return data[offset:end].decode(self._encoding)
        except UnicodeDecodeError as e:
            raise SourceReadError(self._path, f"range {offset}..{end} is not valid text") from e

    def __repr__(self) -> str:
        return f"SourceFile({self._path})"


def read_source_range(path: Path | str, offset: int, length: int) -> str:
    """Read a byte range of a source file as text."""
    return SourceFile(path).read_range(offset, length)
