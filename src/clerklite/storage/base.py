"""Abstract async key-value storage contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorage(ABC):
    """Minimal async string store with no transactions.

    Implementations may raise on I/O failure. The caches built on top catch
    those errors and degrade to a cache miss.
    """

    @abstractmethod
    async def get_string(self, key: str) -> Optional[str]:
        """Return the value stored under *key*, or ``None`` if absent."""

    @abstractmethod
    async def set_string(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete *key*. Deleting a missing key is not an error."""

    def close(self) -> None:
        """Release any resources held by the backend."""
