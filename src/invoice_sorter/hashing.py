"""Content hashing with a per-run memo keyed by stable file identity."""

from __future__ import annotations

import hashlib
import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Hashable(Protocol):
    """Anything with readable content and an optional stable identity."""

    @property
    def stable_id(self) -> str | None: ...

    def read_bytes(self) -> bytes: ...


class HashCache:
    """Maps stable file ids to content digests for the lifetime of one run.

    Never authoritative across runs; starting empty is always safe.
    """

    def __init__(self) -> None:
        self._digests: dict[str, str] = {}

    def get(self, stable_id: str) -> str | None:
        return self._digests.get(stable_id)

    def put(self, stable_id: str, digest: str) -> None:
        self._digests[stable_id] = digest

    def __contains__(self, stable_id: object) -> bool:
        return stable_id in self._digests

    def __len__(self) -> int:
        return len(self._digests)


def digest_bytes(data: bytes) -> str:
    """Return the lowercase hex MD5 digest of ``data``."""
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


class ContentHasher:
    """Compute content digests, memoizing those of persisted files."""

    def __init__(self, cache: HashCache | None = None) -> None:
        self.cache = cache if cache is not None else HashCache()

    def hash(self, item: Hashable) -> str:
        """Return the digest of ``item``'s content.

        Items without a stable id are hashed on every call and never cached.
        """
        stable_id = item.stable_id
        if stable_id is not None:
            cached = self.cache.get(stable_id)
            if cached is not None:
                return cached

        digest = digest_bytes(item.read_bytes())
        if stable_id is not None:
            self.cache.put(stable_id, digest)
        return digest

    def remember(self, stable_id: str, digest: str) -> None:
        """Record the digest of content just written under ``stable_id``."""
        logger.debug("Caching hash %s for %s", digest, stable_id)
        self.cache.put(stable_id, digest)
