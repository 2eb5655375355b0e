"""Canonical Pydantic models shared across all clerklite modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`RestorationPolicy`, :class:`OutputConfig`,
    :class:`GlobalConfig`, and :class:`Profile`.

**Provider models** -- parsed from Frontend API responses:
    :class:`Verification`, :class:`EmailAddress`, :class:`PhoneNumber`,
    :class:`User`, :class:`Organization`, :class:`Session`, :class:`Client`,
    :class:`Environment`, :class:`AuthFactor`, :class:`SignInAttempt`,
    :class:`SignUpAttempt`, and :class:`ErrorDetail`.

**Cache models** -- what the session and token caches persist:
    :class:`CacheEnvelope` and :class:`CachedToken`.

Provider models ignore unknown keys (the API returns far more than the SDK
reads) and accept timestamps either as epoch milliseconds or ISO-8601
strings. Naive datetimes are assumed to be UTC. Everything serialises back to
ISO-8601 with ``model_dump(mode="json")`` so a cache round-trip reproduces an
equal model.
"""

from __future__ import annotations

import enum
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


Timestamp = Annotated[datetime, AfterValidator(_ensure_utc)]
"""A datetime that is always timezone-aware UTC after validation."""


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_domain(value: str) -> str:
    """Strip whitespace, any URL scheme, and trailing slashes from a host."""
    value = value.strip()
    for prefix in ("https://", "http://"):
        if value.startswith(prefix):
            value = value[len(prefix):]
    return value.rstrip("/")


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every Frontend API call in a profile."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class RestorationPolicy(BaseModel):
    """Timing policy for session restoration, token caching, and refresh.

    The defaults mirror the values the hosted SDKs have used in practice.
    They are tuning knobs, not protocol constants.
    """

    trust_window_seconds: int = Field(
        default=6 * 60 * 60,
        description="Adopt a cached session without asking the server if it was written this recently",
    )
    offline_window_seconds: int = Field(
        default=24 * 60 * 60,
        description="Adopt a cached session when the server is unreachable if it was written this recently",
    )
    token_safety_margin_seconds: int = Field(
        default=5 * 60,
        description="Cached JWTs expiring sooner than this are treated as expired",
    )
    refresh_interval_seconds: float = Field(
        default=5 * 60, description="Interval between background session touches"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/clerklite/config.json``.

    Loaded and saved by :func:`~clerklite.config.load_global_config` and
    :func:`~clerklite.config.save_global_config`. See
    :func:`~clerklite.config.resolve_config` for the full precedence chain.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    output: OutputConfig = Field(default_factory=OutputConfig)


class Profile(BaseModel):
    """Per-instance profile stored as JSON under the ``profiles/`` config directory.

    Each profile points at one Clerk instance (its Frontend API domain) and
    bundles the request and restoration settings used to talk to it.
    Profiles are created with ``clerklite init`` and read by
    :func:`~clerklite.config.resolve_config`.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    domain: str = Field(description="Frontend API host, e.g. 'my-app.clerk.accounts.dev'")
    api_version: str = Field(default="2025-04-10", description="__clerk_api_version query value")
    js_version: str = Field(default="5.88.0", description="_clerk_js_version query value")
    policy: RestorationPolicy = Field(default_factory=RestorationPolicy)
    request: RequestConfig = Field(default_factory=RequestConfig)

    @field_validator("domain")
    @classmethod
    def _strip_scheme(cls, value: str) -> str:
        return normalize_domain(value)


# --- Provider models ---


class SessionStatus(str, enum.Enum):
    """Session states the SDK distinguishes.

    The provider may report other strings (``ended``, ``revoked``, ...);
    :attr:`Session.status` keeps those verbatim and only ``active`` counts
    as signed in.
    """

    ACTIVE = "active"
    PENDING = "pending"
    EXPIRED = "expired"
    REMOVED = "removed"


class VerificationStatus(str, enum.Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"


class AttemptStatus(str, enum.Enum):
    """Sign-in and sign-up statuses the flows branch on."""

    NEEDS_IDENTIFIER = "needs_identifier"
    NEEDS_FIRST_FACTOR = "needs_first_factor"
    NEEDS_SECOND_FACTOR = "needs_second_factor"
    MISSING_REQUIREMENTS = "missing_requirements"
    COMPLETE = "complete"


class ErrorDetail(BaseModel):
    """One entry of a Frontend API ``errors`` array."""

    code: str = ""
    message: str = ""
    long_message: Optional[str] = None
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("code", "message", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("meta", mode="before")
    @classmethod
    def _none_to_dict(cls, value: Any) -> Any:
        return {} if value is None else value


class Verification(BaseModel):
    """Verification record attached to an identifier or an attempt.

    Used both for the verification of a user's email address / phone number
    and for the in-progress verification of a sign-in factor or sign-up
    field, where ``attempts`` and ``expire_at`` are populated.
    """

    status: str
    strategy: Optional[str] = None
    attempts: int = 0
    expire_at: Optional[Timestamp] = None

    @field_validator("attempts", mode="before")
    @classmethod
    def _none_attempts(cls, value: Any) -> Any:
        return 0 if value is None else value

    @property
    def is_verified(self) -> bool:
        return self.status == VerificationStatus.VERIFIED

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expire_at is None:
            return False
        return (now or utcnow()) > self.expire_at

    def time_remaining(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        """Time until the verification expires, clamped at zero, or ``None`` without expiry."""
        if self.expire_at is None:
            return None
        remaining = self.expire_at - (now or utcnow())
        return max(remaining, timedelta(0))


class EmailAddress(BaseModel):
    id: str
    email_address: str
    verification: Optional[Verification] = None


class PhoneNumber(BaseModel):
    id: str
    phone_number: str
    verification: Optional[Verification] = None


class User(BaseModel):
    """A Clerk user. Replaced wholesale on every fetch or update."""

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email_addresses: list[EmailAddress] = Field(default_factory=list)
    phone_numbers: list[PhoneNumber] = Field(default_factory=list)
    profile_image_url: Optional[str] = None
    created_at: Optional[Timestamp] = None
    updated_at: Optional[Timestamp] = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def primary_email(self) -> Optional[str]:
        return self.email_addresses[0].email_address if self.email_addresses else None

    @property
    def primary_phone(self) -> Optional[str]:
        return self.phone_numbers[0].phone_number if self.phone_numbers else None


class Organization(BaseModel):
    id: str
    name: str
    slug: str
    members_count: int = 0
    pending_invitations_count: int = 0
    logo_url: Optional[str] = None
    public_metadata: dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[str] = None
    created_at: Optional[Timestamp] = None
    updated_at: Optional[Timestamp] = None

    @field_validator("members_count", "pending_invitations_count", mode="before")
    @classmethod
    def _none_count(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("public_metadata", mode="before")
    @classmethod
    def _none_metadata(cls, value: Any) -> Any:
        return {} if value is None else value


class Session(BaseModel):
    """A server-issued, time-bounded authenticated context for one user.

    A session counts as signed in only while ``status == "active"`` and the
    current time is before :attr:`expire_at`; see :meth:`is_active`.
    """

    id: str
    status: str
    user: User
    organization: Optional[Organization] = None
    last_active_organization_id: Optional[str] = None
    expire_at: Timestamp
    abandon_at: Timestamp
    created_at: Timestamp
    updated_at: Timestamp

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return self.status == SessionStatus.ACTIVE and (now or utcnow()) < self.expire_at

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expire_at

    def time_until_expiry(self, now: Optional[datetime] = None) -> timedelta:
        return max(self.expire_at - (now or utcnow()), timedelta(0))

    def with_user(self, user: User) -> Session:
        """Return a copy of this session carrying *user*."""
        return self.model_copy(update={"user": user})


class Client(BaseModel):
    """The provider's cookie-scoped record of one browser/device."""

    id: str
    sessions: list[Session] = Field(default_factory=list)
    last_active_session_id: Optional[str] = None
    created_at: Optional[Timestamp] = None
    updated_at: Optional[Timestamp] = None

    @field_validator("sessions", mode="before")
    @classmethod
    def _none_sessions(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def active_sessions(self) -> list[Session]:
        return [s for s in self.sessions if s.status == SessionStatus.ACTIVE]

    def find_session(self, session_id: Optional[str]) -> Optional[Session]:
        if session_id is None:
            return None
        return next((s for s in self.sessions if s.id == session_id), None)


class EnvironmentAuthConfig(BaseModel):
    identification_strategies: list[str] = Field(default_factory=list)
    first_factors: list[str] = Field(default_factory=list)
    second_factors: list[str] = Field(default_factory=list)


class UserSettings(BaseModel):
    attributes: dict[str, Any] = Field(default_factory=dict)
    restrictions: dict[str, Any] = Field(default_factory=dict)

    @field_validator("attributes", mode="before")
    @classmethod
    def _attribute_list(cls, value: Any) -> Any:
        # Older instances report attributes as a flat list of names.
        if isinstance(value, list):
            return {name: {"enabled": True} for name in value}
        return {} if value is None else value


class Environment(BaseModel):
    """Instance capabilities discovered from ``GET /environment``."""

    auth_config: EnvironmentAuthConfig = Field(default_factory=EnvironmentAuthConfig)
    user_settings: UserSettings = Field(default_factory=UserSettings)
    instance_type: str = "development"

    @property
    def is_development(self) -> bool:
        return self.instance_type == "development"


class AuthFactor(BaseModel):
    """One supported verification strategy of a sign-in attempt.

    Code strategies carry the id of the identifier they verify, which must
    be echoed back when preparing the factor.
    """

    strategy: str
    email_address_id: Optional[str] = None
    phone_number_id: Optional[str] = None
    safe_identifier: Optional[str] = None


class AuthAttempt(BaseModel):
    """Fields shared by sign-in and sign-up attempts."""

    id: str
    status: str
    created_session_id: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.status == AttemptStatus.COMPLETE


class SignInAttempt(AuthAttempt):
    identifier: Optional[str] = None
    supported_first_factors: list[AuthFactor] = Field(default_factory=list)
    supported_second_factors: list[AuthFactor] = Field(default_factory=list)
    first_factor_verification: Optional[Verification] = None
    second_factor_verification: Optional[Verification] = None

    @field_validator("supported_first_factors", "supported_second_factors", mode="before")
    @classmethod
    def _none_factors(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def needs_first_factor(self) -> bool:
        return self.status == AttemptStatus.NEEDS_FIRST_FACTOR

    @property
    def needs_second_factor(self) -> bool:
        return self.status == AttemptStatus.NEEDS_SECOND_FACTOR

    def find_first_factor(self, strategy: str) -> Optional[AuthFactor]:
        return next((f for f in self.supported_first_factors if f.strategy == strategy), None)

    def find_second_factor(self, strategy: str) -> Optional[AuthFactor]:
        return next((f for f in self.supported_second_factors if f.strategy == strategy), None)


class SignUpAttempt(AuthAttempt):
    email_address: Optional[str] = None
    phone_number: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    required_fields: list[str] = Field(default_factory=list)
    optional_fields: list[str] = Field(default_factory=list)
    missing_fields: list[str] = Field(default_factory=list)
    unverified_fields: list[str] = Field(default_factory=list)
    verifications: dict[str, Verification] = Field(default_factory=dict)
    created_user_id: Optional[str] = None

    @field_validator(
        "required_fields", "optional_fields", "missing_fields", "unverified_fields",
        mode="before",
    )
    @classmethod
    def _none_fields(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("verifications", mode="before")
    @classmethod
    def _drop_empty_verifications(cls, value: Any) -> Any:
        # The API lists every verifiable field, with null for the ones not started.
        if value is None:
            return {}
        if isinstance(value, dict):
            return {k: v for k, v in value.items() if v is not None}
        return value

    @property
    def needs_verification(self) -> bool:
        return bool(self.unverified_fields)


# --- Cache models ---


class CacheEnvelope(BaseModel):
    """What the session cache persists: the session plus its write time."""

    session: Session
    timestamp: int = Field(description="Write time in milliseconds since the epoch")


class CachedToken(BaseModel):
    """A cached session JWT with its decoded expiry."""

    jwt: str
    expires_at: int = Field(description="Token 'exp' claim in milliseconds since the epoch")
    cached_at: int = Field(description="Cache write time in milliseconds since the epoch")
