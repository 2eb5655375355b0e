"""Cache of session JWTs, keyed by session id and template.

Entries are stored together as one JSON object under
:data:`TOKEN_CACHE_KEY`, grouped by session id and then by template::

    {"sess_1": {"": {"jwt": "...", "expires_at": 1718000060000, "cached_at": 1718000000000},
                "supabase": {...}}}

An empty template means the default token. Nesting keeps every
``(session_id, template)`` pair distinct, whatever characters either part
contains. A token is served only while it has more than the safety margin
left. At or inside the margin it is evicted so the caller fetches a fresh one
before the old one can expire in flight.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Optional

from pydantic import ValidationError

from clerklite.cache.session_cache import Clock, now_ms
from clerklite.jwt import token_expiry
from clerklite.models import CachedToken
from clerklite.storage.base import KeyValueStorage

logger = logging.getLogger(__name__)

TOKEN_CACHE_KEY = "clerk_token_cache"
DEFAULT_SAFETY_MARGIN_MS = 5 * 60 * 1000

Entries = dict[str, dict[str, CachedToken]]


class TokenCache:
    """Serve session JWTs from storage until they are close to expiry.

    Args:
        storage: Backing key-value store.
        clock: Time source in epoch seconds. Defaults to :func:`time.time`.
        safety_margin_ms: Tokens with this much time left or less count as
            expired.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Optional[Clock] = None,
        safety_margin_ms: int = DEFAULT_SAFETY_MARGIN_MS,
    ) -> None:
        self._storage = storage
        self._clock = clock or time.time
        self.safety_margin_ms = safety_margin_ms

    async def get(self, session_id: str, template: str = "") -> Optional[str]:
        """Return the cached JWT if it expires more than the margin from now."""
        entries = await self._read()
        tokens = entries.get(session_id, {})
        entry = tokens.get(template)
        if entry is None:
            return None
        if entry.expires_at - now_ms(self._clock) > self.safety_margin_ms:
            return entry.jwt
        logger.debug("Evicting token for %s (template %r) near expiry", session_id, template)
        del tokens[template]
        if not tokens:
            del entries[session_id]
        await self._write(entries)
        return None

    async def save(self, session_id: str, template: str, jwt: str) -> None:
        """Cache *jwt*. Tokens without a readable numeric ``exp`` are not cached."""
        exp = token_expiry(jwt)
        if exp is None:
            logger.debug("Not caching token for %s: no readable expiry", session_id)
            return
        entries = await self._read()
        entries.setdefault(session_id, {})[template] = CachedToken(
            jwt=jwt, expires_at=exp * 1000, cached_at=now_ms(self._clock)
        )
        await self._write(entries)

    async def clear(self, session_id: Optional[str] = None) -> None:
        """Evict one session's tokens, or every token when *session_id* is ``None``."""
        if session_id is None:
            try:
                await self._storage.remove(TOKEN_CACHE_KEY)
            except Exception:
                logger.warning("Failed to clear token cache", exc_info=True)
            return
        entries = await self._read()
        if entries.pop(session_id, None) is not None:
            await self._write(entries)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _read(self) -> Entries:
        try:
            raw = await self._storage.get_string(TOKEN_CACHE_KEY)
        except Exception:
            logger.warning("Failed to read token cache", exc_info=True)
            return {}
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
            if not isinstance(data, dict) or not all(isinstance(v, dict) for v in data.values()):
                raise ValueError("token cache is not a JSON object of objects")
            return {
                session_id: {
                    template: CachedToken.model_validate(value) for template, value in tokens.items()
                }
                for session_id, tokens in data.items()
            }
        except (ValueError, ValidationError) as exc:
            logger.warning("Ignoring corrupt token cache: %s", exc)
            return {}

    async def _write(self, entries: Entries) -> None:
        data = {
            session_id: {template: entry.model_dump() for template, entry in tokens.items()}
            for session_id, tokens in entries.items()
        }
        try:
            await self._storage.set_string(TOKEN_CACHE_KEY, json.dumps(data))
        except Exception:
            logger.warning("Failed to write token cache", exc_info=True)
