"""Exception hierarchy for clerklite.

All exceptions inherit from :class:`ClerkliteError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`clerklite.exit_codes`.
The top-level error handler in :func:`clerklite.app.main` catches
``ClerkliteError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    ClerkliteError (exit 1)
    +-- ClerkAPIError                 (exit 5)
    |   +-- ProviderError             (exit 3, 4 or 5 depending on status)
    |   +-- NetworkError              (exit 6)
    |   +-- MalformedResponseError    (exit 5)
    +-- PreconditionError             (exit 2)
    |   +-- UnsupportedStrategyError  (exit 2)
    +-- NotSignedInError              (exit 3)
    +-- ConfigError                   (exit 1)

:class:`ClerkAPIError` and its subclasses come from talking to the provider
and carry ``code``, ``status`` and the full list of ``errors``.
:class:`PreconditionError` is raised locally before any request is sent.
"""

from __future__ import annotations

from typing import Any, Optional

from clerklite.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)
from clerklite.models import ErrorDetail

FALLBACK_ERROR_CODE = "api_error"
FALLBACK_ERROR_MESSAGE = "Unknown error"

SESSION_INVALID_CODES = frozenset(
    {"session_invalid", "session_not_found", "authentication_invalid"}
)

_FRIENDLY_MESSAGES = {
    "form_password_incorrect": "Incorrect password. Please try again.",
    "form_identifier_not_found": "No account found with this email or phone number.",
    "form_code_incorrect": "Invalid verification code. Please check and try again.",
    "session_invalid": "Your session has expired. Please sign in again.",
    "dev_browser_unauthenticated": "Development browser authentication failed.",
    "too_many_requests": "Too many attempts. Please wait a moment and try again.",
    "network_error": "Could not reach the authentication server.",
}


class ClerkliteError(Exception):
    """Base exception for all clerklite errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`clerklite.exit_codes`. The CLI entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class ClerkAPIError(ClerkliteError):
    """Base for errors that came from (or on the way to) the Frontend API.

    Args:
        message: Human-readable message.
        code: Machine-readable error code for programmatic matching.
        status: HTTP status, ``0`` when no response was received.
        errors: Every entry of the response's ``errors`` array.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: str = FALLBACK_ERROR_CODE,
        status: int = 0,
        errors: Optional[list[ErrorDetail]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.status = status
        self.errors = list(errors or [])

    @property
    def user_friendly_message(self) -> str:
        """A generic English message for well-known codes, else :attr:`message`."""
        return _FRIENDLY_MESSAGES.get(self.code, self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, status={self.status}, message={self.message!r})"


class ProviderError(ClerkAPIError):
    """Raised when the API answers with HTTP status >= 400.

    The exit code follows the status: 401/403/422 map to
    :data:`EXIT_AUTH_FAILURE`, 404 to :data:`EXIT_NOT_FOUND`, anything else
    to :data:`EXIT_SERVER_ERROR`.
    """

    def __init__(
        self,
        message: str,
        code: str = FALLBACK_ERROR_CODE,
        status: int = 0,
        errors: Optional[list[ErrorDetail]] = None,
        payload: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code=code, status=status, errors=errors)
        self.payload = payload or {}
        if status in (401, 403, 422):
            self.exit_code = EXIT_AUTH_FAILURE
        elif status == 404:
            self.exit_code = EXIT_NOT_FOUND

    @classmethod
    def from_payload(cls, payload: Any, status: int) -> ProviderError:
        """Build an error from a decoded error response body.

        The code comes from the first ``errors`` entry (or
        ``"api_error"``); the message prefers that entry's ``long_message``,
        then its ``message``, then a top-level ``message``, then
        ``"Unknown error"``.
        """
        if not isinstance(payload, dict):
            payload = {}
        raw_errors = payload.get("errors")
        errors = [
            ErrorDetail.model_validate(entry)
            for entry in (raw_errors if isinstance(raw_errors, list) else [])
            if isinstance(entry, dict)
        ]
        first = errors[0] if errors else None
        code = (first.code if first else "") or FALLBACK_ERROR_CODE
        message = (
            (first.long_message if first else None)
            or (first.message if first else None)
            or payload.get("message")
            or FALLBACK_ERROR_MESSAGE
        )
        return cls(str(message), code=code, status=status, errors=errors, payload=payload)

    @property
    def is_session_invalid(self) -> bool:
        """True when the error means the current session is no longer usable."""
        return self.code in SESSION_INVALID_CODES or self.status == 401

    @property
    def is_server_error(self) -> bool:
        return self.status >= 500


class NetworkError(ClerkAPIError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    No HTTP response exists, so ``status`` is always ``0``.
    """

    exit_code = EXIT_CONNECTION_ERROR

    def __init__(self, message: str):
        super().__init__(message, code="network_error", status=0)


class MalformedResponseError(ClerkAPIError):
    """Raised when a response body is not JSON or not the expected shape."""

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, message: str, status: int = 0):
        super().__init__(message, code="malformed_response", status=status)


class PreconditionError(ClerkliteError):
    """Raised when a flow step is called out of order. Never reaches the network."""

    exit_code = EXIT_INVALID_USAGE


class UnsupportedStrategyError(PreconditionError):
    """Raised when a strategy is not offered for the current attempt."""

    def __init__(self, strategy: str, supported: Optional[list[str]] = None):
        self.strategy = strategy
        self.supported = list(supported or [])
        detail = f" (supported: {', '.join(self.supported)})" if self.supported else ""
        super().__init__(f"Strategy '{strategy}' is not supported for this identifier{detail}")


class NotSignedInError(ClerkliteError):
    """Raised when an operation needs a current session and none is active."""

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str = "No active session. Sign in first."):
        super().__init__(message)


class ConfigError(ClerkliteError):
    """Raised for configuration problems (missing profiles, invalid JSON, no domain)."""

    exit_code = EXIT_GENERIC_FAILURE
