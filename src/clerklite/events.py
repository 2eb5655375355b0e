"""Typed notifications emitted by :class:`~clerklite.sdk.ClerkSDK`.

Each notification is a small dataclass. Subscribers register per event
type on an :class:`EventBus` and receive the event instance::

    unsubscribe = clerk.events.subscribe(SessionCreated, lambda e: print(e.session.id))
    ...
    unsubscribe()

Delivery is synchronous and in subscription order, right after the
operation that caused the event has updated the SDK state. Nothing is
buffered, so a late subscriber does not see earlier events. A callback that
raises is logged and the remaining callbacks still run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from clerklite.models import Client, Environment, Organization, Session, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionCreated:
    """A session became the current session (sign-in, sign-up, restoration, switch)."""

    session: Session


@dataclass(frozen=True)
class SessionDestroyed:
    """A session ended. ``session_id`` is ``"all"`` after signing out every session."""

    session_id: str
    session: Optional[Session] = None


@dataclass(frozen=True)
class UserUpdated:
    user: User


@dataclass(frozen=True)
class OrganizationUpdated:
    organization: Optional[Organization]


@dataclass(frozen=True)
class ErrorOccurred:
    """An SDK operation failed. The same error is also raised to the caller."""

    error: Exception


@dataclass(frozen=True)
class Loaded:
    environment: Optional[Environment]
    client: Optional[Client]


E = TypeVar("E")
Callback = Callable[[Any], None]


class EventBus:
    """Per-type publish/subscribe registry."""

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callback]] = {}

    def subscribe(self, event_type: type[E], callback: Callable[[E], None]) -> Callable[[], None]:
        """Register *callback* for *event_type*.

        Returns:
            A function that removes this subscription. Calling it twice is
            harmless.
        """
        callbacks = self._subscribers.setdefault(event_type, [])
        callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def emit(self, event: object) -> None:
        """Deliver *event* to every subscriber of its exact type."""
        for callback in list(self._subscribers.get(type(event), ())):
            try:
                callback(event)
            except Exception:
                logger.exception("Subscriber for %s raised", type(event).__name__)

    def subscriber_count(self, event_type: Optional[type] = None) -> int:
        if event_type is not None:
            return len(self._subscribers.get(event_type, ()))
        return sum(len(callbacks) for callbacks in self._subscribers.values())

    def clear(self) -> None:
        """Drop every subscription."""
        self._subscribers.clear()
