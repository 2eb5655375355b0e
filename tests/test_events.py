"""Tests for clerklite.events."""

from __future__ import annotations

import logging

from clerklite.events import EventBus, SessionCreated, SessionDestroyed


class TestEventBus:
    def test_delivers_by_type_in_order(self) -> None:
        bus = EventBus()
        seen: list[str] = []
        bus.subscribe(SessionDestroyed, lambda e: seen.append(f"first:{e.session_id}"))
        bus.subscribe(SessionDestroyed, lambda e: seen.append(f"second:{e.session_id}"))
        bus.subscribe(SessionCreated, lambda e: seen.append("created"))

        bus.emit(SessionDestroyed("sess_1"))
        assert seen == ["first:sess_1", "second:sess_1"]

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        seen: list[object] = []
        unsubscribe = bus.subscribe(SessionDestroyed, seen.append)
        unsubscribe()
        unsubscribe()
        bus.emit(SessionDestroyed("sess_1"))
        assert seen == []
        assert bus.subscriber_count(SessionDestroyed) == 0

    def test_raising_callback_does_not_stop_others(self, caplog) -> None:
        bus = EventBus()
        seen: list[object] = []

        def explode(event: object) -> None:
            raise RuntimeError("subscriber bug")

        bus.subscribe(SessionDestroyed, explode)
        bus.subscribe(SessionDestroyed, seen.append)
        with caplog.at_level(logging.ERROR, logger="clerklite.events"):
            bus.emit(SessionDestroyed("all"))

        assert len(seen) == 1
        assert "SessionDestroyed" in caplog.text

    def test_no_replay_for_late_subscribers(self) -> None:
        bus = EventBus()
        bus.emit(SessionDestroyed("sess_1"))
        seen: list[object] = []
        bus.subscribe(SessionDestroyed, seen.append)
        assert seen == []

    def test_counts_and_clear(self) -> None:
        bus = EventBus()
        bus.subscribe(SessionCreated, lambda e: None)
        bus.subscribe(SessionDestroyed, lambda e: None)
        assert bus.subscriber_count() == 2
        bus.clear()
        assert bus.subscriber_count() == 0
