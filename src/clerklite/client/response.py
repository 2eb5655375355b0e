"""Normalised Frontend API responses and model parsing helpers.

Successful responses are JSON objects shaped like::

    {"response": {...}, "client": {...}}

where ``client`` is only present on calls that change the client's session
list (completing a sign-in, signing out, ...). :class:`ApiResponse` keeps the
whole payload and exposes both halves. :func:`parse_model` turns a raw
fragment into a model, reporting validation failures as
:class:`~clerklite.exceptions.MalformedResponseError` so callers deal with
one error family.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from clerklite.exceptions import MalformedResponseError

M = TypeVar("M", bound=BaseModel)


@dataclass
class ApiResponse:
    """A successful (status < 400) Frontend API response."""

    status: int
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def response(self) -> Any:
        """The ``response`` field, or the whole payload when there is none."""
        if "response" in self.payload:
            return self.payload["response"]
        return self.payload

    @property
    def client(self) -> Optional[dict[str, Any]]:
        value = self.payload.get("client")
        return value if isinstance(value, dict) else None


def parse_model(model: type[M], data: Any, status: int = 0) -> M:
    """Validate *data* as *model*.

    Raises:
        MalformedResponseError: If *data* does not match the model.
    """
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Unexpected {model.__name__} payload: {exc.error_count()} validation error(s)",
            status=status,
        ) from exc


def parse_model_list(model: type[M], data: Any, status: int = 0) -> list[M]:
    """Validate a JSON array of *model*. A ``{"data": [...]}`` wrapper is unwrapped."""
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        data = data["data"]
    if not isinstance(data, list):
        raise MalformedResponseError(
            f"Expected a list of {model.__name__}, got {type(data).__name__}", status=status
        )
    return [parse_model(model, item, status) for item in data]
