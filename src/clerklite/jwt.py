"""Minimal, unverified JWT payload decoding.

The SDK never verifies token signatures. That is the job of whichever backend
receives the token. It only needs the ``exp`` claim to decide how long a
token may be served from cache.

Stored tokens are not always correctly padded, so the payload segment has
its base64url padding restored before decoding: a length that is 2 mod 4
gets ``==``, 3 mod 4 gets ``=``, and 1 mod 4 can never be valid base64.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Optional


def _restore_padding(segment: str) -> Optional[str]:
    remainder = len(segment) % 4
    if remainder == 0:
        return segment
    if remainder == 2:
        return segment + "=="
    if remainder == 3:
        return segment + "="
    return None


def decode_payload(token: str) -> Optional[dict[str, Any]]:
    """Decode the claims of *token* without verifying it.

    Returns:
        The payload as a dict, or ``None`` when the token does not have
        exactly three segments or the payload is not base64url JSON object.
    """
    if not isinstance(token, str):
        return None
    parts = token.split(".")
    if len(parts) != 3:
        return None
    padded = _restore_padding(parts[1])
    if padded is None:
        return None
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError):
        return None
    return payload if isinstance(payload, dict) else None


def token_expiry(token: str) -> Optional[int]:
    """Return the ``exp`` claim in seconds since the epoch, or ``None``."""
    payload = decode_payload(token)
    if payload is None:
        return None
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return int(exp)


def is_token_expired(token: str, now: float) -> bool:
    """True when *token* has no readable expiry or ``exp`` is not after *now* (epoch seconds)."""
    exp = token_expiry(token)
    return exp is None or exp <= now
