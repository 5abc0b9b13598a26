"""
Auth state resolution.

Combines the verified session user with the ApplicationUser lookup into an
AuthState, and turns an AuthState into navigation decisions:

- destination_for: where a user in a given state belongs
- gate_page: page-level role check (allow, redirect or deny)
"""

import logging
from dataclasses import dataclass
from typing import Literal

from rentcalc.auth.errors import UserLookupError
from rentcalc.auth.session_client import IdentitySessionClient
from rentcalc.core.config import settings
from rentcalc.models import (
    AuthState,
    Authenticated,
    Authenticating,
    Unauthenticated,
    UserRole,
)
from rentcalc.services.protocols import ApplicationUserStoreProtocol

logger = logging.getLogger(__name__)


DASHBOARD_PATHS: dict[UserRole, str] = {
    UserRole.OWNER: "/owner/dashboard",
    UserRole.TENANT: "/tenant/dashboard",
}


class AuthStateResolver:
    """
    Resolve the current AuthState.

    Read-only: resolve() never writes the ApplicationUser store, so it can be
    called repeatedly and concurrently. The session client may refresh the
    session while resolving; that is its own concern.
    """

    def __init__(
        self,
        session_client: IdentitySessionClient,
        user_store: ApplicationUserStoreProtocol,
    ):
        self.session_client = session_client
        self.user_store = user_store

    async def resolve(self) -> AuthState:
        user = await self.session_client.get_user()
        if user is None:
            return Unauthenticated()

        try:
            app_user = await self.user_store.get_by_subject(user.id)
        except UserLookupError as e:
            logger.warning(f"ApplicationUser lookup failed for subject {user.id}: {e}")
            return Authenticating(user=user, lookup_failed=True)

        if app_user is None:
            logger.info(f"No ApplicationUser for subject {user.id}, role selection required")
            return Authenticating(user=user)

        return Authenticated(user=user, app_user=app_user)


def dashboard_path(role: UserRole) -> str:
    return DASHBOARD_PATHS[role]


def destination_for(state: AuthState) -> str:
    """Where a user in this state should land."""
    if isinstance(state, Authenticated):
        return dashboard_path(state.role)
    if isinstance(state, Authenticating):
        return settings.USER_TYPE_SELECTION_PATH
    return settings.SIGN_IN_PATH


@dataclass(frozen=True)
class PageDecision:
    """
    Outcome of a page-level role check.

    Attributes:
        outcome: "allow", "redirect" or "deny"
        location: Redirect target (redirect only)
        role: The user's actual role (deny only)
        attempted_path: The page that was requested
    """

    outcome: Literal["allow", "redirect", "deny"]
    location: str | None = None
    role: UserRole | None = None
    attempted_path: str | None = None


def gate_page(state: AuthState, required_role: UserRole, attempted_path: str) -> PageDecision:
    """
    Decide whether a page that needs required_role may render.

    A role mismatch is an explicit denial, never a redirect, so the user
    sees why the page is unavailable.
    """
    if isinstance(state, Unauthenticated):
        return PageDecision("redirect", location=settings.SIGN_IN_PATH, attempted_path=attempted_path)

    if isinstance(state, Authenticating):
        return PageDecision(
            "redirect",
            location=settings.USER_TYPE_SELECTION_PATH,
            attempted_path=attempted_path,
        )

    if state.role != required_role:
        logger.info(
            f"Access denied: role {state.role.value} requested {attempted_path} "
            f"(requires {required_role.value})"
        )
        return PageDecision("deny", role=state.role, attempted_path=attempted_path)

    return PageDecision("allow", role=state.role, attempted_path=attempted_path)
