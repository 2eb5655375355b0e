"""Background session keep-alive.

While a session is current, :class:`SessionRefresher` touches it on a fixed
interval so the provider extends its lifetime. A touch that fails because
the session is no longer valid triggers ``on_invalid`` (the SDK clears its
state) and ends the loop. Any other failure is logged and the loop carries
on with the next tick.

The loop is an :class:`asyncio.Task` on the running event loop. It must be
stopped when the session is cleared or the SDK is disposed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from clerklite.exceptions import ClerkAPIError, ProviderError

logger = logging.getLogger(__name__)


class SessionRefresher:
    """Periodic ``touch`` loop.

    Args:
        touch: Coroutine function that refreshes the current session.
        on_invalid: Coroutine function called once when a touch reports the
            session as invalid.
        interval: Seconds between touches.
    """

    def __init__(
        self,
        touch: Callable[[], Awaitable[object]],
        on_invalid: Callable[[], Awaitable[None]],
        interval: float = 300.0,
    ) -> None:
        self._touch = touch
        self._on_invalid = on_invalid
        self.interval = interval
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop, restarting it if it is already running."""
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """Cancel the loop. Safe to call when not running."""
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._touch()
            except ProviderError as exc:
                if exc.is_session_invalid:
                    logger.debug("Session no longer valid (%s); stopping refresh", exc.code)
                    self._task = None
                    await self._on_invalid()
                    return
                logger.warning("Session refresh failed: %s", exc.message)
            except ClerkAPIError as exc:
                logger.warning("Session refresh failed: %s", exc.message)
