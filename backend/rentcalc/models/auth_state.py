"""
Application-level authentication state.

AuthState is a tagged union; every call site handles the three variants
explicitly:

- Unauthenticated: no valid session
- Authenticating: valid session, no ApplicationUser record (needs role selection)
- Authenticated: valid session and a provisioned ApplicationUser with a role

It is never persisted and is recomputed on demand by AuthStateResolver.
"""

from dataclasses import dataclass, field
from typing import Literal

from rentcalc.models.app_user import ApplicationUser, UserRole
from rentcalc.models.session import SessionUser


@dataclass(frozen=True)
class Unauthenticated:
    kind: Literal["unauthenticated"] = field(default="unauthenticated", init=False)


@dataclass(frozen=True)
class Authenticating:
    """
    Signed in but not provisioned.

    lookup_failed is True when the ApplicationUser lookup itself failed;
    the state is the same, since no role can be asserted either way.
    """

    user: SessionUser
    lookup_failed: bool = False
    kind: Literal["authenticating"] = field(default="authenticating", init=False)


@dataclass(frozen=True)
class Authenticated:
    user: SessionUser
    app_user: ApplicationUser
    kind: Literal["authenticated"] = field(default="authenticated", init=False)

    @property
    def role(self) -> UserRole:
        return self.app_user.role


AuthState = Unauthenticated | Authenticating | Authenticated
