"""Durable cache of the single "last known" session.

The session is stored as JSON under :data:`SESSION_CACHE_KEY` together with
the time it was written::

    {"session": {...}, "timestamp": 1718000000000}

The write time (not the session's own timestamps) is what the restoration
trust and offline windows are measured against.

:meth:`SessionCache.load` never returns an expired session and never raises:
corrupt JSON, a payload that fails validation, and a session whose
``expire_at`` has passed all clear the entry and report a miss.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import ValidationError

from clerklite.models import CacheEnvelope, Session
from clerklite.storage.base import KeyValueStorage

logger = logging.getLogger(__name__)

SESSION_CACHE_KEY = "clerk_session_cache"

Clock = Callable[[], float]
"""Returns the current time in seconds since the epoch."""


def now_ms(clock: Clock) -> int:
    return int(clock() * 1000)


def clock_datetime(clock: Clock) -> datetime:
    return datetime.fromtimestamp(clock(), tz=timezone.utc)


class SessionCache:
    """Persist and restore one session.

    Args:
        storage: Backing key-value store.
        clock: Time source in epoch seconds. Defaults to :func:`time.time`.
    """

    def __init__(self, storage: KeyValueStorage, clock: Optional[Clock] = None) -> None:
        self._storage = storage
        self._clock = clock or time.time

    async def save(self, session: Session) -> None:
        """Store *session*, stamped with the current time, replacing any previous entry."""
        envelope = CacheEnvelope(session=session, timestamp=now_ms(self._clock))
        try:
            await self._storage.set_string(SESSION_CACHE_KEY, envelope.model_dump_json())
        except Exception:
            logger.warning("Failed to write session cache", exc_info=True)

    async def touch(self, session: Session) -> None:
        """Re-save *session* so the cache holds the freshest payload and a new write time."""
        await self.save(session)

    async def load(self) -> Optional[CacheEnvelope]:
        """Return the cached envelope, or ``None`` when absent, corrupt, or expired."""
        try:
            raw = await self._storage.get_string(SESSION_CACHE_KEY)
        except Exception:
            logger.warning("Failed to read session cache", exc_info=True)
            return None
        if raw is None:
            return None

        try:
            envelope = CacheEnvelope.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            logger.warning("Discarding corrupt session cache: %s", exc)
            await self.clear()
            return None

        if envelope.session.is_expired(clock_datetime(self._clock)):
            logger.debug("Cached session %s has expired", envelope.session.id)
            await self.clear()
            return None
        return envelope

    async def clear(self) -> None:
        """Remove the cached session. Safe to call when nothing is cached."""
        try:
            await self._storage.remove(SESSION_CACHE_KEY)
        except Exception:
            logger.warning("Failed to clear session cache", exc_info=True)

    def age_ms(self, envelope: CacheEnvelope, now: Optional[int] = None) -> int:
        """Milliseconds since *envelope* was written."""
        current = now if now is not None else now_ms(self._clock)
        return current - envelope.timestamp
