"""In-memory authentication state held by :class:`~clerklite.sdk.ClerkSDK`."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from clerklite.models import Client, Environment, Organization, Session, User


@dataclass
class AuthState:
    """Everything the SDK currently knows about the signed-in user.

    ``session``, ``user`` and ``organization`` change together and only
    through the SDK's adopt and clear transitions. ``organizations`` holds
    the most recent :meth:`~clerklite.sdk.ClerkSDK.list_organizations` result.
    """

    session: Optional[Session] = None
    user: Optional[User] = None
    organization: Optional[Organization] = None
    client: Optional[Client] = None
    environment: Optional[Environment] = None
    organizations: list[Organization] = field(default_factory=list)
    loaded: bool = False

    def is_signed_in(self, now: Optional[datetime] = None) -> bool:
        return self.session is not None and self.session.is_active(now)

    def set_session(self, session: Session) -> None:
        self.session = session
        self.user = session.user
        self.organization = session.organization

    def clear_session(self) -> None:
        self.session = None
        self.user = None
        self.organization = None
        self.organizations = []
