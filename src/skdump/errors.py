"""Exceptions raised by skdump.

Every error here is fatal for the operation in progress. Nothing in the
pipeline retries: a failure means a corrupt payload or a bug upstream.
"""

from __future__ import annotations

from pathlib import Path


class SkdumpError(Exception):
    """Base class for all skdump errors."""


class UnresolvableIdentifierError(SkdumpError):
    """A UID that must resolve to a name did not."""

    def __init__(self, uid: int, context: str = "syntax token kind"):
        self.uid = uid
        self.context = context
        super().__init__(f"Could not resolve {context} UID {uid}")


class MalformedSyntaxMapError(SkdumpError):
    """A syntax map blob is shorter than its header claims."""

    def __init__(self, message: str, *, expected: int | None = None, actual: int | None = None):
        self.expected = expected
        self.actual = actual
        if expected is not None and actual is not None:
            message = f"{message} (expected {expected} bytes, got {actual})"
        super().__init__(message)


class SourceReadError(SkdumpError):
    """Source text could not be read for a byte range."""

    def __init__(self, path: Path | str | None, message: str):
        self.path = Path(path) if path is not None else None
        super().__init__(f"{path}: {message}" if path is not None else message)


class SerializationError(SkdumpError):
    """A value that cannot be rendered as JSON reached the serializer."""


class ServiceError(SkdumpError):
    """sourcekitd could not be loaded or answered a request with an error."""


class ConfigError(SkdumpError):
    """A configuration file could not be parsed."""
