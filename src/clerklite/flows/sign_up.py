"""Sign-up wizard over the ``/client/sign_ups`` endpoints.

A sign-up may have to verify more than one channel, so verification is
tracked per field (``email_address``, ``phone_number``). Preparing a
verification requires the field to be listed in ``unverified_fields``;
attempting one requires the server to have started a verification for it.
On completion the attempt also carries ``created_user_id``.

Example::

    flow = clerk.sign_up()
    await flow.sign_up_with_email("a@b.com", "secret", first_name="Ada")
    await flow.verify_email("424242")
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from clerklite.exceptions import PreconditionError, UnsupportedStrategyError
from clerklite.flows.base import AttemptFlow
from clerklite.models import SignUpAttempt, Verification

STRATEGY_FIELDS = {
    "email_code": "email_address",
    "email_link": "email_address",
    "phone_code": "phone_number",
}
"""Verification strategies and the sign-up field each one verifies."""


def field_for_strategy(strategy: str) -> str:
    try:
        return STRATEGY_FIELDS[strategy]
    except KeyError:
        raise UnsupportedStrategyError(strategy, sorted(STRATEGY_FIELDS)) from None


class SignUpFlow(AttemptFlow[SignUpAttempt]):
    """Drive one sign-up attempt.

    Args:
        requester: Issues the Frontend API calls.
        on_complete: Awaited with the created session once the attempt
            completes.
    """

    attempt_model = SignUpAttempt
    collection_path = "/client/sign_ups"
    client_key = "sign_up"

    async def create(self, **user_data: Any) -> SignUpAttempt:
        """Start a new attempt with fields such as ``email_address`` and ``password``."""
        return await self._send(self.collection_path, user_data)

    async def prepare_verification(self, strategy: str = "email_code", **params: Any) -> SignUpAttempt:
        """Send a verification code or link for the field *strategy* verifies.

        Raises:
            PreconditionError: No attempt exists, or the field does not need
                verification.
            UnsupportedStrategyError: *strategy* verifies no known field.
        """
        attempt = self._require_attempt("prepare verification")
        field = field_for_strategy(strategy)
        if field not in attempt.unverified_fields:
            raise PreconditionError(f"'{field}' does not need verification")
        return await self._send(
            f"{self.collection_path}/{attempt.id}/prepare_verification",
            {"strategy": strategy, **params},
        )

    async def attempt_verification(self, strategy: str, code: str, **params: Any) -> SignUpAttempt:
        """Submit *code* for the field *strategy* verifies.

        Raises:
            PreconditionError: No attempt exists, or no verification was
                prepared for the field.
        """
        attempt = self._require_attempt("attempt verification")
        field = field_for_strategy(strategy)
        if field not in attempt.verifications:
            raise PreconditionError(f"Verification for '{field}' has not been prepared")
        return await self._send(
            f"{self.collection_path}/{attempt.id}/attempt_verification",
            {"strategy": strategy, "code": code, **params},
        )

    # ------------------------------------------------------------------ #
    # Convenience
    # ------------------------------------------------------------------ #

    async def sign_up_with_email(
        self,
        email_address: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> SignUpAttempt:
        """Create the attempt and send the email verification code."""
        await self.create(
            email_address=email_address,
            password=password,
            first_name=first_name,
            last_name=last_name,
        )
        return await self.prepare_verification("email_code")

    async def sign_up_with_phone(
        self,
        phone_number: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> SignUpAttempt:
        await self.create(
            phone_number=phone_number,
            password=password,
            first_name=first_name,
            last_name=last_name,
        )
        return await self.prepare_verification("phone_code")

    async def verify_email(self, code: str) -> SignUpAttempt:
        return await self.attempt_verification("email_code", code)

    async def verify_phone(self, code: str) -> SignUpAttempt:
        return await self.attempt_verification("phone_code", code)

    def needs_verification(self, field: str) -> bool:
        return self._attempt is not None and field in self._attempt.unverified_fields

    def is_verification_prepared(self, field: str) -> bool:
        return self._attempt is not None and field in self._attempt.verifications

    def verification(self, field: str) -> Optional[Verification]:
        if self._attempt is None:
            return None
        return self._attempt.verifications.get(field)

    @property
    def missing_fields(self) -> list[str]:
        return list(self._attempt.missing_fields) if self._attempt else []

    @property
    def unverified_fields(self) -> list[str]:
        return list(self._attempt.unverified_fields) if self._attempt else []

    @property
    def can_complete(self) -> bool:
        """True once nothing is missing and nothing is left to verify."""
        if self._attempt is None:
            return False
        return not self._attempt.missing_fields and not self._attempt.unverified_fields

    def is_verification_expired(self, field: str, now: Optional[datetime] = None) -> bool:
        verification = self.verification(field)
        return verification is not None and verification.is_expired(now)

    def verification_attempts(self, field: str) -> int:
        verification = self.verification(field)
        return verification.attempts if verification else 0

    def verification_time_remaining(
        self, field: str, now: Optional[datetime] = None
    ) -> Optional[timedelta]:
        """Time left on the field's verification, zero once expired, ``None`` if unknown."""
        verification = self.verification(field)
        return verification.time_remaining(now) if verification else None
