"""UID resolution: memoized lookup of sourcekitd UID names.

sourcekitd hands out opaque UIDs for syntax kinds, declaration kinds,
request keys and so on. Resolving one costs a call into the service, so
names are cached for the life of the resolver. The UID space is stable
for a service instance, so the cache is never invalidated.

Example:
    resolver = UIDResolver(service.uid_string)
    resolver.resolve(uid)  # "source.lang.swift.decl.function.free"
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from skdump.errors import UnresolvableIdentifierError

logger = logging.getLogger(__name__)

# UIDs are always above this value; anything lower is a plain number.
MIN_UID = 4_300_000_000


class UIDResolver:
    """Memoizing UID -> name cache backed by a service lookup."""

    def __init__(self, lookup: Callable[[int], str | None]) -> None:
        """Initialize the resolver.

        Args:
            lookup: Service call returning the name for a UID, or None
        """
        self._lookup = lookup
        self._names: dict[int, str] = {}
        self._lock = threading.Lock()

    def resolve(self, uid: int) -> str | None:
        """Return the name for a UID, or None if it has none."""
        if uid < MIN_UID:
            return None

        with self._lock:
            name = self._names.get(uid)
            if name is not None:
                return name

            name = self._lookup(uid)
            if name is None:
                logger.debug("UID %d has no name", uid)
                return None

            self._names[uid] = name
            return name

    def require(self, uid: int, context: str = "syntax token kind") -> str:
        """Resolve a UID that must have a name."""
        name = self.resolve(uid)
        if name is None:
            raise UnresolvableIdentifierError(uid, context)
        return name

    @property
    def cached(self) -> dict[int, str]:
        """Copy of the names resolved so far."""
        with self._lock:
            return dict(self._names)

    def __contains__(self, uid: object) -> bool:
        with self._lock:
            return uid in self._names

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)
