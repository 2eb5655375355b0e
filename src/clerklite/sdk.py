"""The top-level :class:`ClerkSDK` facade.

:class:`ClerkSDK` owns one :class:`~clerklite.client.Transport`, the session
and token caches on one :class:`~clerklite.storage.KeyValueStorage`, an
:class:`~clerklite.events.EventBus` and the in-memory
:class:`~clerklite.state.AuthState`. Flows created with :meth:`ClerkSDK.sign_in`
and :meth:`ClerkSDK.sign_up` only see its :meth:`~ClerkSDK.request` method.

The current session changes through exactly two transitions:

* :meth:`ClerkSDK.adopt_session` -- set session, user and organization,
  re-cache the session, (re)start the refresh loop, emit
  :class:`~clerklite.events.SessionCreated`.
* :meth:`ClerkSDK.clear_session` -- drop cached tokens, stop the refresh
  loop, clear the session cache and the in-memory state.

Every provider or network error raised by an SDK call is also emitted as
:class:`~clerklite.events.ErrorOccurred` before it propagates.

Example::

    async with ClerkSDK("my-app.clerk.accounts.dev") as clerk:
        await clerk.load()
        if not clerk.is_signed_in:
            await clerk.sign_in().authenticate_with_password("a@b.com", "secret")
        print(await clerk.get_token())
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from clerklite.cache.session_cache import Clock, SessionCache, clock_datetime
from clerklite.cache.token_cache import TokenCache
from clerklite.client.response import ApiResponse, parse_model, parse_model_list
from clerklite.client.transport import Transport
from clerklite.config import adhoc_profile
from clerklite.events import (
    ErrorOccurred,
    EventBus,
    Loaded,
    OrganizationUpdated,
    SessionCreated,
    SessionDestroyed,
    UserUpdated,
)
from clerklite.exceptions import (
    ClerkAPIError,
    ConfigError,
    MalformedResponseError,
    NotSignedInError,
    ProviderError,
)
from clerklite.flows.sign_in import SignInFlow
from clerklite.flows.sign_up import SignUpFlow
from clerklite.models import Client, Environment, Organization, Profile, Session, User
from clerklite.refresh import SessionRefresher
from clerklite.restoration import SessionRestorer, fetch_client
from clerklite.state import AuthState
from clerklite.storage.base import KeyValueStorage
from clerklite.storage.memory import MemoryStorage

logger = logging.getLogger(__name__)

DEV_BROWSER_KEY = "__clerk_db_jwt"
CLIENT_COOKIES_KEY = "clerk_client_cookies"


@dataclass(frozen=True)
class SessionValidation:
    """Result of :meth:`ClerkSDK.validate_session`."""

    is_valid: bool
    session: Optional[Session] = None
    error: Optional[ClerkAPIError] = None


class ClerkSDK:
    """Async client for one Clerk instance's Frontend API.

    Args:
        domain: Frontend API host. Ignored when *profile* is given.
        profile: Full instance settings (versions, timeouts, restoration
            policy).
        storage: Where the session, tokens and development-browser token
            persist. Defaults to a fresh :class:`MemoryStorage`.
        transport: Pre-built transport, mainly for tests.
        clock: Time source in epoch seconds. Defaults to :func:`time.time`.
        auto_refresh: Run the background session touch loop while signed in.

    Raises:
        ConfigError: If neither *domain* nor *profile* is given.
    """

    def __init__(
        self,
        domain: Optional[str] = None,
        *,
        profile: Optional[Profile] = None,
        storage: Optional[KeyValueStorage] = None,
        transport: Optional[Transport] = None,
        clock: Optional[Clock] = None,
        auto_refresh: bool = True,
    ) -> None:
        if profile is None:
            if not domain:
                raise ConfigError("A Clerk Frontend API domain is required")
            profile = adhoc_profile(domain)
        self.profile = profile
        self._clock = clock or time.time
        self._storage = storage or MemoryStorage()
        self._transport = transport or Transport(
            profile.domain,
            profile.request,
            api_version=profile.api_version,
            js_version=profile.js_version,
        )
        policy = profile.policy
        self.session_cache = SessionCache(self._storage, self._clock)
        self.token_cache = TokenCache(
            self._storage, self._clock, safety_margin_ms=policy.token_safety_margin_seconds * 1000
        )
        self.events = EventBus()
        self.state = AuthState()
        self._auto_refresh = auto_refresh
        self._refresher = SessionRefresher(
            self._touch_session, self._handle_invalid_session, policy.refresh_interval_seconds
        )
        self._cookie_snapshot = "[]"

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> ClerkSDK:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.dispose()

    # ------------------------------------------------------------------ #
    # State accessors
    # ------------------------------------------------------------------ #

    @property
    def session(self) -> Optional[Session]:
        return self.state.session

    @property
    def user(self) -> Optional[User]:
        return self.state.user

    @property
    def organization(self) -> Optional[Organization]:
        return self.state.organization

    @property
    def client(self) -> Optional[Client]:
        return self.state.client

    @property
    def environment(self) -> Optional[Environment]:
        return self.state.environment

    @property
    def is_loaded(self) -> bool:
        return self.state.loaded

    @property
    def is_signed_in(self) -> bool:
        return self.state.is_signed_in(clock_datetime(self._clock))

    @property
    def refreshing(self) -> bool:
        return self._refresher.running

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> ApiResponse:
        """Issue one Frontend API call through the SDK's transport.

        Errors are emitted as :class:`ErrorOccurred` and re-raised. A
        development-browser token rotated by the server is persisted.
        """
        previous_jwt = self._transport.dev_browser_jwt
        try:
            return await self._transport.request(path, method=method, body=body, params=params)
        except ClerkAPIError as exc:
            self.events.emit(ErrorOccurred(exc))
            raise
        finally:
            if self._transport.dev_browser_jwt and self._transport.dev_browser_jwt != previous_jwt:
                await self._store(DEV_BROWSER_KEY, self._transport.dev_browser_jwt)
            await self._persist_cookies()

    async def _session_request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Mapping[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> ApiResponse:
        sid = session_id or self._require_session().id
        return await self.request(path, method=method, body=body, params={"_clerk_session_id": sid})

    def _require_session(self) -> Session:
        if self.state.session is None:
            raise NotSignedInError()
        return self.state.session

    # ------------------------------------------------------------------ #
    # Initialisation
    # ------------------------------------------------------------------ #

    async def load(self) -> None:
        """Bootstrap the SDK. Calling it again after success does nothing.

        Reloads the client cookies a previous process stored, sets up the
        development-browser token (development instances only), fetches the
        environment and client, then restores a session. Cookie changes are
        written back to storage after every request, so the provider keeps
        seeing the same client across processes.
        Restoration never raises. Errors fetching the environment or client
        do.
        """
        if self.state.loaded:
            return

        await self._restore_cookies()
        if self._transport.is_development:
            await self._setup_dev_browser()

        resp = await self.request("/environment")
        self.state.environment = parse_model(Environment, resp.response, resp.status)
        self.state.client = await self._ensure_client()

        restorer = SessionRestorer(
            self._transport, self.session_cache, self.profile.policy, self._clock
        )
        result = await restorer.restore()
        if result is not None:
            if result.client is not None:
                self.state.client = result.client
            logger.debug("Restored session %s (%s)", result.session.id, result.source.value)
            await self.adopt_session(result.session)
        await self._persist_cookies()

        self.state.loaded = True
        self.events.emit(Loaded(self.state.environment, self.state.client))

    async def _setup_dev_browser(self) -> None:
        stored = await self._read(DEV_BROWSER_KEY)
        if stored:
            self._transport.dev_browser_jwt = stored
            return
        try:
            resp = await self._transport.request("/dev_browser", method="POST")
        except ClerkAPIError as exc:
            logger.warning("Could not obtain a development browser token: %s", exc.message)
            return
        token = resp.payload.get("id") or resp.payload.get("token")
        if not token:
            logger.warning("Development browser endpoint returned no token")
            return
        self._transport.dev_browser_jwt = str(token)
        await self._store(DEV_BROWSER_KEY, str(token))

    async def _ensure_client(self) -> Optional[Client]:
        try:
            client = await fetch_client(self)
        except ProviderError as exc:
            if exc.is_server_error:
                raise
            client = None
        if client is not None:
            return client
        logger.debug("No client record yet; creating one")
        resp = await self.request("/client", method="PUT")
        if resp.response is None:
            return None
        return parse_model(Client, resp.response, resp.status)

    # ------------------------------------------------------------------ #
    # Session transitions
    # ------------------------------------------------------------------ #

    async def adopt_session(self, session: Session) -> None:
        """Make *session* current, cache it, start refreshing, emit :class:`SessionCreated`."""
        self._set_session(session)
        await self.session_cache.touch(session)
        if self._auto_refresh:
            self._refresher.start()
        self.events.emit(SessionCreated(session))

    async def clear_session(self) -> None:
        """Forget the current session locally. Safe to call when signed out."""
        await self.token_cache.clear()
        self._refresher.stop()
        await self.session_cache.clear()
        self.state.clear_session()

    def _set_session(self, session: Session) -> None:
        if session.organization is None and session.last_active_organization_id:
            known = next(
                (o for o in self.state.organizations if o.id == session.last_active_organization_id),
                None,
            )
            if known is not None:
                session = session.model_copy(update={"organization": known})
        self.state.set_session(session)

    async def _handle_invalid_session(self) -> None:
        session = self.state.session
        await self.clear_session()
        if session is not None:
            self.events.emit(SessionDestroyed(session.id, session))

    # ------------------------------------------------------------------ #
    # Flows
    # ------------------------------------------------------------------ #

    def sign_in(self) -> SignInFlow:
        """Return a new sign-in flow that adopts its session on completion."""
        return SignInFlow(self, on_complete=self.adopt_session)

    def sign_up(self) -> SignUpFlow:
        """Return a new sign-up flow that adopts its session on completion."""
        return SignUpFlow(self, on_complete=self.adopt_session)

    async def sign_out(self, session_id: Optional[str] = None) -> None:
        """End *session_id* (default: the current session) on the server.

        Local state is cleared only when the ended session is the current one.

        Raises:
            NotSignedInError: No session id given and none is current.
        """
        current = self.state.session
        sid = session_id or (current.id if current else None)
        if sid is None:
            raise NotSignedInError("No session to sign out from")
        await self._session_request(f"/client/sessions/{sid}", "DELETE", session_id=sid)
        ended = current if current is not None and current.id == sid else None
        if ended is not None:
            await self.clear_session()
        else:
            await self.token_cache.clear(sid)
        self.events.emit(SessionDestroyed(sid, ended))

    async def sign_out_all(self) -> None:
        """End every session of this client."""
        await self.request("/client/sessions", "DELETE")
        await self.clear_session()
        self.events.emit(SessionDestroyed("all"))

    # ------------------------------------------------------------------ #
    # Tokens
    # ------------------------------------------------------------------ #

    async def get_token(self, template: str = "") -> str:
        """Return a session JWT, from cache while it has enough lifetime left.

        Args:
            template: JWT template name. Empty for the default session token.

        Raises:
            NotSignedInError: No current session.
            MalformedResponseError: The response carries no ``jwt``.
        """
        session = self._require_session()
        cached = await self.token_cache.get(session.id, template)
        if cached is not None:
            return cached

        path = f"/client/sessions/{session.id}/tokens"
        if template:
            path = f"{path}/{template}"
        resp = await self._session_request(path, "POST")
        body = resp.response
        jwt = body.get("jwt") if isinstance(body, dict) else None
        if not isinstance(jwt, str) or not jwt:
            raise MalformedResponseError("Token response did not contain a JWT", status=resp.status)
        await self.token_cache.save(session.id, template, jwt)
        return jwt

    # ------------------------------------------------------------------ #
    # User
    # ------------------------------------------------------------------ #

    async def get_user(self) -> User:
        """Fetch the current user, replacing the cached copy.

        A 401 clears the session before the error propagates.
        """
        try:
            resp = await self._session_request("/me")
        except ProviderError as exc:
            if exc.status == 401:
                await self._handle_invalid_session()
            raise
        return await self._replace_user(parse_model(User, resp.response, resp.status))

    async def update_user(self, patch: Mapping[str, Any]) -> User:
        """``PATCH /me`` with *patch* (e.g. ``{"first_name": "Ada"}``)."""
        resp = await self._session_request("/me", "PATCH", body=patch)
        return await self._replace_user(parse_model(User, resp.response, resp.status))

    async def _replace_user(self, user: User) -> User:
        session = self.state.session
        if session is not None:
            session = session.with_user(user)
            self.state.session = session
            await self.session_cache.touch(session)
        self.state.user = user
        self.events.emit(UserUpdated(user))
        return user

    # ------------------------------------------------------------------ #
    # Organizations
    # ------------------------------------------------------------------ #

    async def list_organizations(self) -> list[Organization]:
        resp = await self._session_request("/organizations")
        organizations = parse_model_list(Organization, resp.response, resp.status)
        self.state.organizations = organizations
        return organizations

    async def create_organization(self, name: str, slug: str) -> Organization:
        resp = await self._session_request("/organizations", "POST", body={"name": name, "slug": slug})
        organization = parse_model(Organization, resp.response, resp.status)
        self.state.organizations = [*self.state.organizations, organization]
        self.events.emit(OrganizationUpdated(organization))
        return organization

    async def set_active_organization(self, organization_id: Optional[str]) -> Optional[Organization]:
        """Switch the current session's active organization.

        Pass ``None`` to switch to the personal workspace.
        """
        session = self._require_session()
        resp = await self._session_request(
            f"/client/sessions/{session.id}/touch",
            "POST",
            body={"active_organization_id": organization_id or ""},
        )
        updated = parse_model(Session, resp.response, resp.status)
        self._set_session(updated)
        await self.session_cache.touch(self.state.session or updated)
        self.events.emit(OrganizationUpdated(self.state.organization))
        return self.state.organization

    # ------------------------------------------------------------------ #
    # Session maintenance
    # ------------------------------------------------------------------ #

    async def validate_session(self) -> SessionValidation:
        """Ask the server whether the current session is still active.

        An inactive or rejected session is cleared locally. Network and
        server failures are reported without clearing anything.
        """
        session = self.state.session
        if session is None:
            return SessionValidation(False, error=NotSignedInError())
        try:
            resp = await self._session_request(f"/client/sessions/{session.id}")
        except ProviderError as exc:
            if exc.is_session_invalid or exc.status == 404:
                await self._handle_invalid_session()
            return SessionValidation(False, error=exc)
        except ClerkAPIError as exc:
            return SessionValidation(False, error=exc)

        server_session = parse_model(Session, resp.response, resp.status)
        if server_session.is_active(clock_datetime(self._clock)):
            return SessionValidation(True, server_session)
        await self._handle_invalid_session()
        return SessionValidation(False, server_session)

    async def refresh_session(self) -> bool:
        """Touch the current session once. ``False`` on any failure."""
        if self.state.session is None:
            return False
        try:
            await self._touch_session()
        except ProviderError as exc:
            if exc.is_session_invalid:
                await self._handle_invalid_session()
            return False
        except ClerkAPIError:
            return False
        return True

    async def _touch_session(self) -> None:
        session = self._require_session()
        await self._session_request(f"/client/sessions/{session.id}/touch", "POST")

    # ------------------------------------------------------------------ #
    # Teardown
    # ------------------------------------------------------------------ #

    async def dispose(self) -> None:
        """Stop the refresh loop, close the transport and drop all subscribers."""
        self._refresher.stop()
        await self._transport.aclose()
        self.events.clear()

    # ------------------------------------------------------------------ #
    # Storage helpers
    # ------------------------------------------------------------------ #

    async def _read(self, key: str) -> Optional[str]:
        try:
            return await self._storage.get_string(key)
        except Exception:
            logger.warning("Failed to read %s from storage", key, exc_info=True)
            return None

    async def _store(self, key: str, value: str) -> None:
        try:
            await self._storage.set_string(key, value)
        except Exception:
            logger.warning("Failed to write %s to storage", key, exc_info=True)

    async def _restore_cookies(self) -> None:
        raw = await self._read(CLIENT_COOKIES_KEY)
        if not raw:
            return
        try:
            cookies = json.loads(raw)
            if not isinstance(cookies, list):
                raise ValueError("cookie store is not a JSON array")
            loaded = self._transport.import_cookies(cookies, self._clock())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Discarding stored client cookies: %s", exc)
            return
        self._cookie_snapshot = raw
        logger.debug("Loaded %d stored client cookie(s)", loaded)

    async def _persist_cookies(self) -> None:
        snapshot = json.dumps(self._transport.export_cookies(), sort_keys=True)
        if snapshot == self._cookie_snapshot:
            return
        self._cookie_snapshot = snapshot
        await self._store(CLIENT_COOKIES_KEY, snapshot)
