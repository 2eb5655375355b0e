"""Session restoration on startup.

:class:`SessionRestorer` decides which session, if any, the SDK should adopt
when it loads. It prefers correctness over freshness and freshness over
availability, while still working offline:

1. **No usable cache** (absent, corrupt, or the session itself expired):
   ask the server for the client's sessions and adopt the active one the
   server marks as last active, else the first active one
   (``server-fresh``).
2. **Cache younger than the trust window**: adopt the cached session
   without any network call (``cache-direct``).
3. **Cache older than the trust window**: ask the server.

   * The cached session is still active there: adopt the server's copy
     (``server-validated``).
   * A different session is active: adopt that one (``server-alternate``).
   * The server could not be reached (network failure or 5xx) and the
     cache is younger than the offline window: adopt the cached session
     (``cache-offline``).
   * Otherwise clear the cache and stay signed out.

:meth:`SessionRestorer.restore` never raises. A failure of any kind leaves
the SDK signed out, which only means the user sees a sign-in prompt.

Example::

    restorer = SessionRestorer(transport, SessionCache(storage), RestorationPolicy())
    result = await restorer.restore()
    if result:
        print(result.session.id, result.source)
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Optional

from clerklite.cache.session_cache import Clock, SessionCache, clock_datetime
from clerklite.client import Requester
from clerklite.client.response import parse_model
from clerklite.exceptions import ClerkAPIError, NetworkError, ProviderError
from clerklite.models import Client, RestorationPolicy, Session

logger = logging.getLogger(__name__)


class RestorationSource(str, enum.Enum):
    """Which branch of the restoration algorithm produced the session."""

    CACHE_DIRECT = "cache-direct"
    SERVER_VALIDATED = "server-validated"
    SERVER_ALTERNATE = "server-alternate"
    CACHE_OFFLINE = "cache-offline"
    SERVER_FRESH = "server-fresh"


@dataclass(frozen=True)
class RestorationResult:
    session: Session
    source: RestorationSource
    client: Optional[Client] = None


def select_active_session(client: Optional[Client]) -> Optional[Session]:
    """Pick the session to adopt from *client*.

    Among active sessions, the one named by ``last_active_session_id`` wins,
    otherwise the first. ``None`` when nothing is active.
    """
    if client is None:
        return None
    active = client.active_sessions
    if not active:
        return None
    for session in active:
        if session.id == client.last_active_session_id:
            return session
    return active[0]


def is_server_unavailable(exc: ClerkAPIError) -> bool:
    """True for failures that say nothing about the session itself."""
    if isinstance(exc, NetworkError):
        return True
    return isinstance(exc, ProviderError) and exc.is_server_error


async def fetch_client(requester: Requester) -> Optional[Client]:
    """``GET /client``. ``None`` when the provider has no client record yet."""
    resp = await requester.request("/client")
    if resp.response is None:
        return None
    return parse_model(Client, resp.response, resp.status)


class SessionRestorer:
    """Run the restoration algorithm against one cache and one requester.

    Args:
        requester: Issues ``GET /client``.
        session_cache: The cache to read and, when stale, clear.
        policy: Trust and offline windows.
        clock: Time source in epoch seconds.
    """

    def __init__(
        self,
        requester: Requester,
        session_cache: SessionCache,
        policy: Optional[RestorationPolicy] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._requester = requester
        self._cache = session_cache
        self._policy = policy or RestorationPolicy()
        self._clock = clock or time.time

    async def restore(self) -> Optional[RestorationResult]:
        """Return the session to adopt, or ``None`` to stay signed out. Never raises."""
        try:
            return await self._restore()
        except Exception:
            logger.warning("Session restoration failed; continuing signed out", exc_info=True)
            await self._cache.clear()
            return None

    async def _restore(self) -> Optional[RestorationResult]:
        envelope = await self._cache.load()
        if envelope is None:
            logger.debug("No cached session; querying server")
            return await self._restore_from_server()

        cached = envelope.session
        age_ms = self._cache.age_ms(envelope)
        if age_ms < self._policy.trust_window_seconds * 1000:
            logger.debug("Adopting cached session %s (age %d ms)", cached.id, age_ms)
            return RestorationResult(cached, RestorationSource.CACHE_DIRECT)

        logger.debug("Cached session %s is %d ms old; validating with server", cached.id, age_ms)
        try:
            client = await fetch_client(self._requester)
        except ClerkAPIError as exc:
            if is_server_unavailable(exc) and age_ms < self._policy.offline_window_seconds * 1000:
                logger.debug("Server unavailable (%s); adopting cached session offline", exc.code)
                return RestorationResult(cached, RestorationSource.CACHE_OFFLINE)
            logger.debug("Server validation failed (%s); clearing cached session", exc.code)
            await self._cache.clear()
            return None

        now = clock_datetime(self._clock)
        confirmed = client.find_session(cached.id) if client else None
        if confirmed is not None and confirmed.is_active(now):
            logger.debug("Server confirmed cached session %s", cached.id)
            return RestorationResult(confirmed, RestorationSource.SERVER_VALIDATED, client)

        alternate = select_active_session(client)
        if alternate is not None:
            logger.debug("Server reports a different active session %s", alternate.id)
            return RestorationResult(alternate, RestorationSource.SERVER_ALTERNATE, client)

        logger.debug("Server has no active session; clearing cache")
        await self._cache.clear()
        return None

    async def _restore_from_server(self) -> Optional[RestorationResult]:
        try:
            client = await fetch_client(self._requester)
        except ClerkAPIError as exc:
            logger.debug("Could not query server for sessions (%s)", exc.code)
            return None
        session = select_active_session(client)
        if session is None:
            logger.debug("Server has no active session")
            return None
        logger.debug("Adopting server session %s", session.id)
        return RestorationResult(session, RestorationSource.SERVER_FRESH, client)
