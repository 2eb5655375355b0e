"""Persistent storage backend on top of :mod:`diskcache`.

Each profile gets its own cache directory, typically
``~/.local/share/clerklite/storage/<profile>/``. :class:`diskcache.Cache`
is process-safe and writes through SQLite, so concurrent CLI invocations
against the same profile do not corrupt each other's state.

Values are plain strings. The session and token caches serialise their
own JSON on top.

See Also:
    :func:`~clerklite.config.get_data_dir` -- base directory resolution.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import diskcache

from clerklite.config import get_data_dir
from clerklite.storage.base import KeyValueStorage


def default_storage_dir(profile_name: str) -> Path:
    """Return the storage directory for *profile_name* (not created)."""
    return get_data_dir() / "storage" / profile_name


class DiskStorage(KeyValueStorage):
    """:class:`KeyValueStorage` backed by a :class:`diskcache.Cache` directory.

    Args:
        directory: Cache directory. Created on first use.

    Example::

        storage = DiskStorage(default_storage_dir("dev"))
        await storage.set_string("greeting", "hello")
        await storage.get_string("greeting")   # 'hello'
        storage.close()
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._cache = diskcache.Cache(str(self._directory))

    @classmethod
    def for_profile(cls, profile_name: str) -> DiskStorage:
        return cls(default_storage_dir(profile_name))

    @property
    def directory(self) -> Path:
        return self._directory

    async def get_string(self, key: str) -> Optional[str]:
        value = self._cache.get(key)
        if value is None:
            return None
        return str(value)

    async def set_string(self, key: str, value: str) -> None:
        self._cache.set(key, value)

    async def remove(self, key: str) -> None:
        self._cache.delete(key)

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`."""
        self._cache.close()
