"""Shared plumbing for attempt-based flows."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Generic, Mapping, Optional, TypeVar

from pydantic import ValidationError

from clerklite.client import Requester
from clerklite.client.response import ApiResponse, parse_model
from clerklite.exceptions import PreconditionError, ProviderError
from clerklite.models import AuthAttempt, Client, Session

logger = logging.getLogger(__name__)

A = TypeVar("A", bound=AuthAttempt)

OnComplete = Callable[[Session], Awaitable[None]]


class AttemptFlow(Generic[A]):
    """Base for :class:`~clerklite.flows.SignInFlow` and :class:`~clerklite.flows.SignUpFlow`.

    Subclasses set :attr:`attempt_model`, :attr:`collection_path` (for
    example ``/client/sign_ins``) and :attr:`client_key`, the field of the
    client payload that mirrors the attempt.
    """

    attempt_model: type[A]
    collection_path: str
    client_key: str

    def __init__(self, requester: Requester, on_complete: Optional[OnComplete] = None) -> None:
        self._requester = requester
        self._on_complete = on_complete
        self._attempt: Optional[A] = None

    @property
    def attempt(self) -> Optional[A]:
        """The most recent attempt returned by the server, or ``None`` before ``create``."""
        return self._attempt

    def reset(self) -> None:
        """Forget the current attempt. The next step must be ``create``."""
        self._attempt = None

    def _require_attempt(self, step: str) -> A:
        if self._attempt is None:
            raise PreconditionError(f"Cannot {step}: create the attempt first")
        return self._attempt

    async def _send(
        self,
        path: str,
        body: Mapping[str, Any],
        method: str = "POST",
    ) -> A:
        """Send one step, update :attr:`attempt`, and adopt the session on completion."""
        try:
            resp = await self._requester.request(path, method=method, body=body)
        except ProviderError as exc:
            self._refresh_from_error(exc)
            raise

        self._attempt = parse_model(self.attempt_model, resp.response, resp.status)
        logger.debug("%s %s is now %s", self.client_key, self._attempt.id, self._attempt.status)

        if self._attempt.is_complete:
            await self._complete(resp)
        return self._attempt

    async def _complete(self, resp: ApiResponse) -> None:
        attempt = self._attempt
        assert attempt is not None
        session_id = attempt.created_session_id
        client = parse_model(Client, resp.client, resp.status) if resp.client else None
        session = client.find_session(session_id) if client else None
        if session is None:
            logger.warning(
                "%s %s completed but session %s was not in the response",
                self.client_key, attempt.id, session_id,
            )
            return
        if self._on_complete is not None:
            await self._on_complete(session)

    def _refresh_from_error(self, exc: ProviderError) -> None:
        """Update :attr:`attempt` from an error body that carries one."""
        candidate = exc.payload.get("response")
        if not isinstance(candidate, dict):
            meta = exc.payload.get("meta")
            client = meta.get("client") if isinstance(meta, dict) else None
            candidate = client.get(self.client_key) if isinstance(client, dict) else None
        if not isinstance(candidate, dict):
            return
        try:
            self._attempt = self.attempt_model.model_validate(candidate)
        except ValidationError:
            logger.debug("Ignoring unparseable %s in error response", self.client_key)
