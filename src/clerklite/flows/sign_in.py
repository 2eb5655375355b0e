"""Sign-in wizard over the ``/client/sign_ins`` endpoints.

The server drives the state machine::

    needs_identifier -> needs_first_factor -> [needs_second_factor] -> complete

The flow only checks what it can check locally: that an attempt exists,
that a code strategy is among the attempt's supported factors (its
``email_address_id`` or ``phone_number_id`` must be echoed back), and that a
code was prepared before it is attempted.

Example::

    flow = clerk.sign_in()
    await flow.create("a@b.com")
    if flow.supports("password"):
        await flow.attempt_first_factor("password", password="secret")
"""

from __future__ import annotations

from typing import Any

from clerklite.exceptions import PreconditionError, UnsupportedStrategyError
from clerklite.flows.base import AttemptFlow
from clerklite.models import AuthFactor, SignInAttempt

FACTOR_ID_FIELDS = {
    "email_code": "email_address_id",
    "email_link": "email_address_id",
    "reset_password_email_code": "email_address_id",
    "phone_code": "phone_number_id",
    "reset_password_phone_code": "phone_number_id",
}
"""Code strategies and the identifier id their ``prepare`` call needs."""


def _with_factor_id(factor: AuthFactor, params: dict[str, Any]) -> dict[str, Any]:
    id_field = FACTOR_ID_FIELDS.get(factor.strategy)
    if id_field and params.get(id_field) is None:
        params[id_field] = getattr(factor, id_field)
    return params


class SignInFlow(AttemptFlow[SignInAttempt]):
    """Drive one sign-in attempt.

    Args:
        requester: Issues the Frontend API calls.
        on_complete: Awaited with the created session once the attempt
            completes.
    """

    attempt_model = SignInAttempt
    collection_path = "/client/sign_ins"
    client_key = "sign_in"

    def _path(self, action: str) -> str:
        attempt = self._require_attempt(action.replace("_", " "))
        return f"{self.collection_path}/{attempt.id}/{action}"

    # ------------------------------------------------------------------ #
    # Protocol steps
    # ------------------------------------------------------------------ #

    async def create(self, identifier: str, **extra: Any) -> SignInAttempt:
        """Start a new attempt for *identifier* (email, phone or username)."""
        return await self._send(self.collection_path, {"identifier": identifier, **extra})

    async def prepare_first_factor(self, strategy: str, **params: Any) -> SignInAttempt:
        """Ask the server to send a code or link for *strategy*.

        Raises:
            PreconditionError: No attempt exists.
            UnsupportedStrategyError: *strategy* is a code strategy the
                attempt does not offer.
        """
        path = self._path("prepare_first_factor")
        body = {"strategy": strategy, **params}
        if strategy in FACTOR_ID_FIELDS:
            factor = self._require_factor(strategy, second=False)
            body = _with_factor_id(factor, body)
        return await self._send(path, body)

    async def attempt_first_factor(self, strategy: str, **params: Any) -> SignInAttempt:
        """Submit the first factor (``password=...`` or ``code=...``).

        Raises:
            PreconditionError: No attempt exists, or a code strategy has not
                been prepared.
        """
        path = self._path("attempt_first_factor")
        attempt = self._require_attempt("attempt first factor")
        if strategy in FACTOR_ID_FIELDS and attempt.first_factor_verification is None:
            raise PreconditionError(f"Cannot attempt '{strategy}': prepare it first")
        return await self._send(path, {"strategy": strategy, **params})

    async def prepare_second_factor(self, strategy: str = "phone_code", **params: Any) -> SignInAttempt:
        attempt = self._require_attempt("prepare second factor")
        if not attempt.needs_second_factor:
            raise PreconditionError(f"Attempt does not need a second factor (status {attempt.status})")
        body = {"strategy": strategy, **params}
        if strategy in FACTOR_ID_FIELDS:
            body = _with_factor_id(self._require_factor(strategy, second=True), body)
        return await self._send(self._path("prepare_second_factor"), body)

    async def attempt_second_factor(self, strategy: str, **params: Any) -> SignInAttempt:
        attempt = self._require_attempt("attempt second factor")
        if not attempt.needs_second_factor:
            raise PreconditionError(f"Attempt does not need a second factor (status {attempt.status})")
        return await self._send(self._path("attempt_second_factor"), {"strategy": strategy, **params})

    # ------------------------------------------------------------------ #
    # Convenience
    # ------------------------------------------------------------------ #

    async def authenticate_with_password(self, identifier: str, password: str) -> SignInAttempt:
        await self.create(identifier)
        return await self.attempt_first_factor("password", password=password)

    async def authenticate_with_email_code(self, identifier: str) -> SignInAttempt:
        """Create the attempt and send an email code. Follow with :meth:`submit_email_code`."""
        await self.create(identifier)
        return await self.prepare_first_factor("email_code")

    async def submit_email_code(self, code: str) -> SignInAttempt:
        return await self.attempt_first_factor("email_code", code=code)

    async def authenticate_with_phone_code(self, identifier: str) -> SignInAttempt:
        await self.create(identifier)
        return await self.prepare_first_factor("phone_code")

    async def submit_phone_code(self, code: str) -> SignInAttempt:
        return await self.attempt_first_factor("phone_code", code=code)

    def supports(self, strategy: str) -> bool:
        return strategy in self.supported_strategies

    @property
    def supported_strategies(self) -> list[str]:
        if self._attempt is None:
            return []
        return [factor.strategy for factor in self._attempt.supported_first_factors]

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _require_factor(self, strategy: str, second: bool) -> AuthFactor:
        attempt = self._require_attempt("prepare factor")
        if second:
            factor = attempt.find_second_factor(strategy)
            supported = [f.strategy for f in attempt.supported_second_factors]
        else:
            factor = attempt.find_first_factor(strategy)
            supported = [f.strategy for f in attempt.supported_first_factors]
        if factor is None:
            raise UnsupportedStrategyError(strategy, supported)
        return factor
