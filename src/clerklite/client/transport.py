"""Asynchronous transport -- executes shaped requests against the Frontend API.

:class:`Transport` wraps one :class:`httpx.AsyncClient`. The provider tracks
the browser/device "client" through cookies, so the same ``AsyncClient`` (and
its cookie jar) must be reused for every call made on behalf of one SDK
instance. :meth:`Transport.export_cookies` and :meth:`Transport.import_cookies`
carry the jar across processes.

Outcomes are normalised into exactly one of:

* an :class:`~clerklite.client.response.ApiResponse` for status < 400,
* :class:`~clerklite.exceptions.ProviderError` for status >= 400,
* :class:`~clerklite.exceptions.NetworkError` when no response arrived,
* :class:`~clerklite.exceptions.MalformedResponseError` when the body is not
  a JSON object.

Nothing is retried. Callers that want retries wrap the call themselves.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping, Optional

import httpx

from clerklite.client.response import ApiResponse
from clerklite.client.shaper import (
    DEFAULT_API_VERSION,
    DEFAULT_JS_VERSION,
    ShapedRequest,
    is_dev_instance,
    shape_request,
)
from clerklite.exceptions import MalformedResponseError, NetworkError, ProviderError
from clerklite.models import RequestConfig

logger = logging.getLogger(__name__)

DEV_BROWSER_HEADER = "clerk-dev-browser-jwt"


class Transport:
    """Frontend API transport for one Clerk instance.

    Args:
        domain: Frontend API host, e.g. ``my-app.clerk.accounts.dev``.
        config: Timeout and SSL settings. Defaults to :class:`RequestConfig`.
        http_client: Pre-built ``httpx.AsyncClient``. Tests pass one backed
            by :class:`httpx.MockTransport`. When given, the transport does
            not own it unless ``owns_client`` is true.
        api_version: ``__clerk_api_version`` sent on every request.
        js_version: ``_clerk_js_version`` sent on every request.

    Example::

        async with Transport("my-app.clerk.accounts.dev") as transport:
            resp = await transport.request("/environment")
    """

    def __init__(
        self,
        domain: str,
        config: Optional[RequestConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        api_version: str = DEFAULT_API_VERSION,
        js_version: str = DEFAULT_JS_VERSION,
        owns_client: Optional[bool] = None,
    ) -> None:
        self.domain = domain
        self.config = config or RequestConfig()
        self.api_version = api_version
        self.js_version = js_version
        self.dev_browser_jwt: Optional[str] = None
        self._client = http_client
        self._owns_client = owns_client if owns_client is not None else http_client is None

    @property
    def is_development(self) -> bool:
        return is_dev_instance(self.domain)

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> Transport:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def shape(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> ShapedRequest:
        """Shape a call with this transport's domain, versions and dev-browser token."""
        return shape_request(
            self.domain,
            path,
            method,
            body=body,
            params=params,
            dev_browser_jwt=self.dev_browser_jwt,
            api_version=self.api_version,
            js_version=self.js_version,
        )

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> ApiResponse:
        """Send one request and normalise the outcome.

        Args:
            path: Path under ``/v1``.
            method: Logical HTTP verb.
            body: Form fields.
            params: Extra query parameters.

        Returns:
            The decoded :class:`ApiResponse`.

        Raises:
            NetworkError: No response was received.
            MalformedResponseError: The body is not a JSON object.
            ProviderError: The status is >= 400.
        """
        shaped = self.shape(path, method, body, params)
        client = self._ensure_client()

        if shaped.wire_method != shaped.method:
            logger.debug("%s %s (using %s)", shaped.method, path, shaped.wire_method)
        else:
            logger.debug("%s %s", shaped.method, path)

        try:
            response = await client.request(
                shaped.wire_method,
                shaped.url,
                params=shaped.params,
                data=shaped.data,
            )
        except httpx.TransportError as exc:
            logger.debug("%s %s failed: %s", shaped.method, path, exc)
            raise NetworkError(f"Network error: {exc}") from exc

        logger.debug("%s %s -> %d", shaped.method, path, response.status_code)
        self._capture_dev_browser_jwt(response)

        payload = self._decode(response)
        if response.status_code >= 400:
            raise ProviderError.from_payload(payload, response.status_code)
        return ApiResponse(status=response.status_code, payload=payload)

    # ------------------------------------------------------------------ #
    # Cookies
    # ------------------------------------------------------------------ #

    def export_cookies(self) -> list[dict[str, Any]]:
        """Snapshot the cookie jar, including the provider's ``__client`` cookie, as plain dicts."""
        if self._client is None:
            return []
        return [
            {
                "name": cookie.name,
                "value": cookie.value,
                "domain": cookie.domain,
                "path": cookie.path,
                "expires": cookie.expires,
            }
            for cookie in self._client.cookies.jar
        ]

    def import_cookies(self, cookies: Iterable[Mapping[str, Any]], now: float) -> int:
        """Load cookies saved by :meth:`export_cookies`, skipping expired ones.

        Returns:
            The number of cookies loaded.

        Raises:
            KeyError: An entry has no ``name`` or ``value``.
        """
        client = self._ensure_client()
        loaded = 0
        for cookie in cookies:
            expires = cookie.get("expires")
            if expires is not None and expires <= now:
                continue
            client.cookies.set(
                cookie["name"],
                cookie["value"],
                domain=cookie.get("domain") or self.domain,
                path=cookie.get("path") or "/",
            )
            loaded += 1
        return loaded

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                verify=self.config.verify_ssl,
                headers={"Accept": "application/json"},
            )
            self._owns_client = True
        return self._client

    def _capture_dev_browser_jwt(self, response: httpx.Response) -> None:
        if not self.is_development:
            return
        token = response.headers.get(DEV_BROWSER_HEADER)
        if token and token != self.dev_browser_jwt:
            logger.debug("Development browser token rotated by server")
            self.dev_browser_jwt = token

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        """Decode the body as a JSON object.

        An empty body decodes to ``{}`` so that 204-style answers are not
        reported as malformed.
        """
        if not response.content:
            return {}
        try:
            payload = json.loads(response.content)
        except ValueError as exc:
            raise MalformedResponseError(
                f"Response from server was not valid JSON (HTTP {response.status_code})",
                status=response.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"Expected a JSON object from server, got {type(payload).__name__}",
                status=response.status_code,
            )
        return payload
