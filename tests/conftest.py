"""Shared test fixtures for clerklite.

Provides an in-process fake of the Frontend API (served through
``httpx.MockTransport``), a controllable clock, payload factories for the
provider objects, and isolated config directories. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Union
from urllib.parse import parse_qsl

import httpx
import pytest

from clerklite.client.transport import Transport
from clerklite.output import OutputFormat, OutputManager, reset_output, set_output

NOW = 1_750_000_000.0
"""Fixed "current time" for every test, in epoch seconds."""

PROD_DOMAIN = "clerk.example.com"
DEV_DOMAIN = "happy-otter-1.clerk.accounts.dev"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during a
    test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """A callable clock that only moves when told to."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Payload factories
# ---------------------------------------------------------------------------


def _ms(seconds: float) -> int:
    return int(seconds * 1000)


@pytest.fixture
def user_payload() -> Callable[..., dict[str, Any]]:
    def make(user_id: str = "user_1", email: str = "a@b.com", **overrides: Any) -> dict[str, Any]:
        payload = {
            "object": "user",
            "id": user_id,
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email_addresses": [
                {
                    "id": "idn_email_1",
                    "email_address": email,
                    "verification": {"status": "verified", "strategy": "email_code"},
                }
            ],
            "phone_numbers": [],
            "created_at": _ms(NOW - 86400),
            "updated_at": _ms(NOW - 3600),
        }
        payload.update(overrides)
        return payload

    return make


@pytest.fixture
def session_payload(user_payload: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
    """Factory for a session payload. ``expires_in`` is seconds from :data:`NOW`."""

    def make(
        session_id: str = "sess_1",
        status: str = "active",
        expires_in: float = 7 * 86400,
        user: Optional[dict[str, Any]] = None,
        **overrides: Any,
    ) -> dict[str, Any]:
        payload = {
            "object": "session",
            "id": session_id,
            "status": status,
            "user": user or user_payload(),
            "last_active_organization_id": None,
            "expire_at": _ms(NOW + expires_in),
            "abandon_at": _ms(NOW + 30 * 86400),
            "created_at": _ms(NOW - 3600),
            "updated_at": _ms(NOW - 60),
        }
        payload.update(overrides)
        return payload

    return make


@pytest.fixture
def client_payload() -> Callable[..., dict[str, Any]]:
    def make(
        sessions: Optional[list[dict[str, Any]]] = None,
        last_active_session_id: Optional[str] = None,
        **overrides: Any,
    ) -> dict[str, Any]:
        payload = {
            "object": "client",
            "id": "client_1",
            "sessions": sessions or [],
            "last_active_session_id": last_active_session_id,
            "sign_in": None,
            "sign_up": None,
            "created_at": _ms(NOW - 86400),
            "updated_at": _ms(NOW - 60),
        }
        payload.update(overrides)
        return payload

    return make


@pytest.fixture
def environment_payload() -> dict[str, Any]:
    return {
        "auth_config": {
            "identification_strategies": ["email_address"],
            "first_factors": ["password", "email_code"],
            "second_factors": ["phone_code"],
        },
        "user_settings": {"attributes": {"email_address": {"enabled": True}}},
        "instance_type": "production",
    }


def make_jwt(exp: Optional[float], **claims: Any) -> str:
    """Build an unsigned JWT whose payload segment is unpadded base64url."""

    def segment(data: dict[str, Any]) -> str:
        raw = base64.urlsafe_b64encode(json.dumps(data).encode("utf-8"))
        return raw.decode("ascii").rstrip("=")

    body = dict(claims)
    if exp is not None:
        body["exp"] = int(exp)
    return f"{segment({'alg': 'RS256', 'typ': 'JWT'})}.{segment(body)}.signature"


@pytest.fixture
def jwt_factory() -> Callable[..., str]:
    return make_jwt


# ---------------------------------------------------------------------------
# Fake Frontend API
# ---------------------------------------------------------------------------


@dataclass
class RecordedCall:
    """One request as the fake server saw it, with the logical verb recovered."""

    method: str
    wire_method: str
    path: str
    params: dict[str, str]
    form: dict[str, str] = field(default_factory=dict)
    cookie: Optional[str] = None


Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeFrontendAPI:
    """Routes ``(logical method, path)`` pairs to canned responses.

    Each route holds a queue of responses. They are served in order and the
    last one repeats. Unknown routes answer 404 with a provider error body.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Route]] = {}
        self.calls: list[RecordedCall] = []

    def on(
        self,
        method: str,
        path: str,
        json: Any = None,
        status: int = 200,
        headers: Optional[dict[str, str]] = None,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> FakeFrontendAPI:
        route: Route = handler if handler is not None else httpx.Response(
            status, json=json, headers=headers
        )
        self.routes.setdefault((method.upper(), path), []).append(route)
        return self

    def fail(self, method: str, path: str) -> FakeFrontendAPI:
        """Make *path* raise a connection error, as if the server were unreachable."""

        def _raise(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        return self.on(method, path, handler=_raise)

    def handle(self, request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        method = params.get("_method", request.method)
        path = request.url.path
        if path.startswith("/v1"):
            path = path[len("/v1"):]
        form = dict(parse_qsl(request.content.decode("utf-8"), keep_blank_values=True)) if request.content else {}
        self.calls.append(
            RecordedCall(method, request.method, path, params, form, request.headers.get("cookie"))
        )

        queue = self.routes.get((method, path))
        if not queue:
            return httpx.Response(
                404,
                json={"errors": [{"code": "resource_not_found", "message": "not found"}]},
            )
        route = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(route, httpx.Response):
            return httpx.Response(
                route.status_code, content=route.content, headers=route.headers
            )
        return route(request)

    def transport(self, domain: str = PROD_DOMAIN) -> Transport:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handle))
        return Transport(domain, http_client=client, owns_client=True)

    def requests(self) -> list[tuple[str, str]]:
        return [(call.method, call.path) for call in self.calls]

    def count(self, method: str, path: str) -> int:
        return self.requests().count((method, path))


@pytest.fixture
def api() -> FakeFrontendAPI:
    return FakeFrontendAPI()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config. Clears all CLERKLITE_* environment variables and changes
    the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("clerklite.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["CLERKLITE_PROFILE", "CLERKLITE_DOMAIN"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
