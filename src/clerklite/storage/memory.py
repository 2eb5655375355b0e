"""In-process storage backend."""

from __future__ import annotations

from typing import Optional

from clerklite.storage.base import KeyValueStorage


class MemoryStorage(KeyValueStorage):
    """Dict-backed :class:`KeyValueStorage`.

    Args:
        initial: Optional starting contents, copied.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get_string(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set_string(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)
