"""Tests for clerklite.refresh -- the background touch loop."""

from __future__ import annotations

import asyncio

import pytest

from clerklite.exceptions import NetworkError, ProviderError
from clerklite.refresh import SessionRefresher


class TestSessionRefresher:
    @pytest.mark.asyncio
    async def test_touches_until_stopped(self) -> None:
        touched = asyncio.Event()
        count = 0

        async def touch() -> None:
            nonlocal count
            count += 1
            if count >= 3:
                touched.set()

        async def on_invalid() -> None:
            raise AssertionError("not expected")

        refresher = SessionRefresher(touch, on_invalid, interval=0.001)
        refresher.start()
        assert refresher.running
        await asyncio.wait_for(touched.wait(), timeout=2)
        refresher.stop()
        await asyncio.sleep(0)
        assert not refresher.running
        assert count >= 3

    @pytest.mark.asyncio
    async def test_invalid_session_stops_loop(self) -> None:
        invalidated = asyncio.Event()

        async def touch() -> None:
            raise ProviderError("gone", code="session_invalid", status=401)

        async def on_invalid() -> None:
            invalidated.set()

        refresher = SessionRefresher(touch, on_invalid, interval=0.001)
        refresher.start()
        await asyncio.wait_for(invalidated.wait(), timeout=2)
        await asyncio.sleep(0.01)
        assert not refresher.running

    @pytest.mark.asyncio
    async def test_transient_failures_keep_running(self) -> None:
        recovered = asyncio.Event()
        count = 0

        async def touch() -> None:
            nonlocal count
            count += 1
            if count == 1:
                raise NetworkError("offline")
            if count == 2:
                raise ProviderError("busy", status=503)
            recovered.set()

        async def on_invalid() -> None:
            raise AssertionError("not expected")

        refresher = SessionRefresher(touch, on_invalid, interval=0.001)
        refresher.start()
        await asyncio.wait_for(recovered.wait(), timeout=2)
        assert refresher.running
        refresher.stop()

    @pytest.mark.asyncio
    async def test_restart_replaces_task(self) -> None:
        async def touch() -> None:
            return None

        async def on_invalid() -> None:
            return None

        refresher = SessionRefresher(touch, on_invalid, interval=60)
        refresher.start()
        first = refresher._task
        refresher.start()
        await asyncio.sleep(0.01)
        assert first.cancelled() or first.done()
        assert refresher.running
        refresher.stop()
        refresher.stop()
