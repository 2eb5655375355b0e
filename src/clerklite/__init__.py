"""clerklite -- a small async client SDK for the Clerk Frontend API.

This package talks to a Clerk instance's REST endpoints directly over HTTP,
without the official browser bundle. It shapes every request so that a
browser would never need a CORS preflight (non-GET/POST verbs travel as a
``_method`` query parameter, bodies are form-encoded), restores a cached
session on startup, and caches session JWTs until shortly before they expire.

Typical workflow::

    async with ClerkSDK("my-app.clerk.accounts.dev") as clerk:
        await clerk.load()
        flow = clerk.sign_in()
        await flow.authenticate_with_password("a@b.com", "secret")
        token = await clerk.get_token()

Modules:
    sdk: :class:`ClerkSDK`, the top-level entry point.
    models: Pydantic models for sessions, users, organizations, attempts, config.
    client: Request shaping and the httpx-backed transport.
    cache: Session and token caches layered over a key-value storage.
    flows: Sign-in and sign-up attempt wizards.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer CLI entry point.
"""

import logging

__version__ = "0.3.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from clerklite.sdk import ClerkSDK  # noqa: E402

__all__ = ["ClerkSDK", "__version__"]
