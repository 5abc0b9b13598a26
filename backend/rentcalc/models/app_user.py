"""
AppUser model: the application's own record of a signed-in identity.

This module contains:
- UserRole: the roles an application user can hold
- AppUser database model (table owned by the REST API server, read here)
- ApplicationUser: the read model the auth layer works with
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class UserRole(str, Enum):
    """Role chosen by the user during provisioning."""

    OWNER = "owner"
    TENANT = "tenant"


class AppUser(SQLModel, table=True):
    """
    Application user record, keyed by the identity provider's subject id.

    A row only exists after the user has selected a role. Its absence for a
    signed-in identity is a legitimate state ("needs provisioning").

    Attributes:
        user_id: Subject id of the identity provider session (primary key)
        name: Display name taken from the provider's user metadata
        email: Email address of the identity
        user_type: "owner" or "tenant"
        personal_multiplier: Rent split weight used by the REST API
        phone_number: Optional contact number
    """

    __tablename__ = "app_user"

    user_id: str = Field(primary_key=True, max_length=64)
    name: str = Field(default="Unknown", max_length=255)
    email: str | None = Field(default=None, max_length=255, index=True)
    user_type: str = Field(max_length=20)
    personal_multiplier: float = Field(default=1.0)
    phone_number: str | None = Field(default=None, max_length=50)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )


@dataclass(frozen=True)
class ApplicationUser:
    """Provisioned application user as seen by the auth layer."""

    user_id: str
    role: UserRole
