"""
Models package for database models and schemas.

This package contains:
- AppUser database model and the ApplicationUser read model
- Session schemas issued by the identity provider
- AuthState variants

Import from this module for convenience:

    from rentcalc.models import AppUser, Session, AuthState

Or import from specific modules for clarity:

    from rentcalc.models.app_user import AppUser, UserRole
    from rentcalc.models.session import Session, SessionUser
    from rentcalc.models.auth_state import Authenticated
"""

# Re-export SQLModel for table creation
from sqlmodel import SQLModel

from rentcalc.models.app_user import (
    AppUser,
    ApplicationUser,
    UserRole,
)

from rentcalc.models.session import (
    Session,
    SessionUser,
)

from rentcalc.models.auth_state import (
    AuthState,
    Authenticated,
    Authenticating,
    Unauthenticated,
)

__all__ = [
    # SQLModel
    "SQLModel",
    # App user
    "AppUser",
    "ApplicationUser",
    "UserRole",
    # Session
    "Session",
    "SessionUser",
    # Auth state
    "AuthState",
    "Authenticated",
    "Authenticating",
    "Unauthenticated",
]
