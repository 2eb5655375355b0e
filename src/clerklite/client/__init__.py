"""HTTP client module for clerklite.

Splits a Frontend API call into two steps so each can be tested alone:

:mod:`~clerklite.client.shaper`
    Pure functions that rewrite a logical call into the preflight-free form
    the provider expects (``_method`` verb tunnelling, form bodies, version
    tags, development-browser token).
:mod:`~clerklite.client.transport`
    :class:`Transport`, the ``httpx.AsyncClient`` wrapper that sends the
    shaped request and maps the outcome onto the exception hierarchy.

Flows and caches never see the transport itself. They depend on the
:class:`Requester` protocol, which is just the ``request`` coroutine.

Example::

    from clerklite.client import Transport

    async with Transport("my-app.clerk.accounts.dev") as transport:
        env = await transport.request("/environment")
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from clerklite.client.response import ApiResponse
from clerklite.client.shaper import ShapedRequest, is_dev_instance, shape_request
from clerklite.client.transport import Transport


class Requester(Protocol):
    """Anything that can issue a Frontend API call."""

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> ApiResponse: ...


__all__ = [
    "ApiResponse",
    "Requester",
    "ShapedRequest",
    "Transport",
    "is_dev_instance",
    "shape_request",
]
