"""Content hashes per file path, used to skip unchanged files."""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Mapping


def hash_content(content: bytes | str) -> str:
    """Return the SHA-256 hex digest of content; text is hashed as UTF-8."""
    data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
    return hashlib.sha256(data).hexdigest()


class MerkleTree:
    """Thread-safe map of file path to content hash, with deletion marks."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._hashes: dict[str, str] = {}
        self._deleted: set[str] = set()

    def get(self, path: str) -> str | None:
        """Return the stored hash for path, or None when it is not tracked."""
        with self._lock:
            return self._hashes.get(path)

    def set(self, path: str, content_hash: str) -> None:
        """Store or update the hash for path and clear any deletion mark."""
        with self._lock:
            self._hashes[path] = content_hash
            self._deleted.discard(path)

    def mark_deleted(self, path: str) -> None:
        """Mark path as deleted and forget its hash."""
        with self._lock:
            self._deleted.add(path)
            self._hashes.pop(path, None)

    def is_deleted(self, path: str) -> bool:
        with self._lock:
            return path in self._deleted

    def paths(self) -> list[str]:
        """All tracked paths that are not deleted."""
        with self._lock:
            return list(self._hashes)

    def snapshot(self) -> dict[str, str]:
        """A copy of the path-to-hash map."""
        with self._lock:
            return dict(self._hashes)

    def load(self, hashes: Mapping[str, str]) -> None:
        """Replace the contents with hashes and clear all deletion marks."""
        with self._lock:
            self._hashes = dict(hashes)
            self._deleted = set()

    def __len__(self) -> int:
        with self._lock:
            return len(self._hashes)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._hashes