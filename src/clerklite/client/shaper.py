"""Request shaping -- turns a logical API call into what actually goes on the wire.

The Frontend API is designed to be called from browsers without CORS
preflight requests. That imposes three rules on every request:

1. Only ``GET`` and ``POST`` are sent. Any other logical verb travels as a
   ``POST`` with a ``_method=<VERB>`` query parameter the server uses to
   recover the intent.
2. Bodies are ``application/x-www-form-urlencoded``, never JSON.
3. Every query string carries ``__clerk_api_version`` and
   ``_clerk_js_version``. Development instances additionally carry the
   development-browser token as ``__clerk_db_jwt``.

Everything here is a pure function of its inputs so the verb rewrite can be
tested without a network stack.

Example::

    shaped = shape_request("my-app.clerk.accounts.dev", "/client/sessions/sess_1", "DELETE")
    shaped.wire_method        # 'POST'
    shaped.params["_method"]  # 'DELETE'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

DEFAULT_API_VERSION = "2025-04-10"
DEFAULT_JS_VERSION = "5.88.0"

DEV_DOMAIN_SUFFIXES = ("clerk.accounts.dev", "lclclerk.com", "clerk.dev")
"""Parent domains of development-tier instances. Matched on a label boundary."""

NATIVE_METHODS = frozenset({"GET", "POST"})


@dataclass(frozen=True)
class ShapedRequest:
    """A fully shaped request, ready to hand to an HTTP client.

    Attributes:
        method: The logical verb the caller asked for (``DELETE``, ``PATCH``, ...).
        wire_method: The verb actually sent, always ``GET`` or ``POST``.
        url: Absolute URL without the query string.
        params: Query parameters in send order.
        data: Form body, or ``None`` when the request has no body.
    """

    method: str
    wire_method: str
    url: str
    params: dict[str, str] = field(default_factory=dict)
    data: Optional[dict[str, str]] = None

    @property
    def full_url(self) -> str:
        if not self.params:
            return self.url
        return f"{self.url}?{urlencode(self.params)}"


def is_dev_instance(domain: str) -> bool:
    """Return ``True`` when *domain* belongs to a development-tier instance."""
    host = domain.lower().split(":", 1)[0].rstrip(".")
    return any(host == suffix or host.endswith(f".{suffix}") for suffix in DEV_DOMAIN_SUFFIXES)


def encode_value(value: Any) -> str:
    """Stringify a scalar for a query string or form body."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_fields(values: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """Stringify a mapping, dropping keys whose value is ``None``."""
    if not values:
        return {}
    return {key: encode_value(value) for key, value in values.items() if value is not None}


def shape_request(
    domain: str,
    path: str,
    method: str = "GET",
    body: Optional[Mapping[str, Any]] = None,
    params: Optional[Mapping[str, Any]] = None,
    dev_browser_jwt: Optional[str] = None,
    api_version: str = DEFAULT_API_VERSION,
    js_version: str = DEFAULT_JS_VERSION,
) -> ShapedRequest:
    """Shape a logical Frontend API call.

    Args:
        domain: Frontend API host, without scheme.
        path: Path under ``/v1``, e.g. ``/client/sign_ins``.
        method: Logical HTTP verb, case-insensitive.
        body: Form fields. ``None`` values are dropped, booleans become
            ``"true"``/``"false"``.
        params: Extra query parameters, appended after the version tags.
        dev_browser_jwt: Development-browser token. Only attached for
            development instances.
        api_version: Value of ``__clerk_api_version``.
        js_version: Value of ``_clerk_js_version``.

    Returns:
        A :class:`ShapedRequest`.
    """
    logical = method.upper()
    if not path.startswith("/"):
        path = f"/{path}"

    query: dict[str, str] = {
        "__clerk_api_version": api_version,
        "_clerk_js_version": js_version,
    }
    query.update(encode_fields(params))

    if logical in NATIVE_METHODS:
        wire_method = logical
    else:
        wire_method = "POST"
        query["_method"] = logical

    if dev_browser_jwt and is_dev_instance(domain):
        query["__clerk_db_jwt"] = dev_browser_jwt

    data = encode_fields(body) if body is not None else None

    return ShapedRequest(
        method=logical,
        wire_method=wire_method,
        url=f"https://{domain}/v1{path}",
        params=query,
        data=data,
    )
