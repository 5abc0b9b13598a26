"""
Identity provider session schemas.

A Session is the opaque credential bundle issued by the identity provider.
It is owned by the IdentitySessionClient and only changes through sign-in,
sign-out, refresh and provider-driven change notifications.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, Field


class SessionUser(BaseModel):
    """Subject identity of a session."""

    id: str
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def full_name(self) -> str | None:
        return self.user_metadata.get("full_name") or self.user_metadata.get("name")


class Session(BaseModel):
    """
    Provider-issued session.

    Attributes:
        access_token: Bearer token presented to the provider and the REST API
        refresh_token: Token used to obtain a new access token
        token_type: Token type, typically "bearer"
        expires_at: When the access token expires (UTC), None if unknown
        user: Subject identity
    """

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_at: datetime | None = None
    user: SessionUser

    @property
    def subject_id(self) -> str:
        return self.user.id

    def is_expired(self, leeway_seconds: int = 0) -> bool:
        """
        Check if the access token has expired (or expires within the leeway).

        Args:
            leeway_seconds: Treat the token as expired this many seconds early.

        Returns:
            True if expired, False if valid or no expiry set.
        """
        if self.expires_at is None:
            return False

        expires = self.expires_at

        # Handle naive datetime
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)

        threshold = datetime.now(timezone.utc) + timedelta(seconds=leeway_seconds)
        return expires <= threshold
