"""
Page routes for the dashboard.

Each page resolves the AuthState and renders JSON view data, or redirects:
- /login: sign-in entry point
- /user-type-selection: role selection for signed-in, unprovisioned users
- /owner/dashboard, /tenant/dashboard: role-gated dashboards

A role mismatch on a dashboard renders an access-denied view (403) rather
than redirecting.
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from rentcalc.api.deps import RentApiDep, ResolverDep, SessionClientDep
from rentcalc.auth.callback import (
    AUTH_FAILED,
    NO_CODE_VERIFIER,
    NO_SESSION,
    SESSION_FAILED,
    SIGN_IN_FAILED,
)
from rentcalc.auth.resolver import AuthStateResolver, dashboard_path, destination_for, gate_page
from rentcalc.core.config import settings
from rentcalc.models import Authenticating, UserRole
from rentcalc.services.rent_api import RentApiError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])


SIGN_IN_ERROR_MESSAGES = {
    AUTH_FAILED: "Sign-in failed. Please try again.",
    NO_CODE_VERIFIER: "Your sign-in session expired. Please start again.",
    NO_SESSION: "No active session was found. Please sign in.",
    SESSION_FAILED: "Your session could not be established. Please sign in again.",
    SIGN_IN_FAILED: "Sign-in is currently unavailable. Please try again later.",
}


# Response models
class LoginPageResponse(BaseModel):
    """Sign-in page view data."""

    sign_in_url: str
    error: str | None = None
    message: str | None = None


class UserTypeSelectionPageResponse(BaseModel):
    """Role selection view data."""

    user_id: str
    email: str | None = None
    name: str | None = None
    roles: list[str]


class UserTypeSelectionRequest(BaseModel):
    role: UserRole


class DashboardResponse(BaseModel):
    """Dashboard shell view data."""

    role: str
    user_id: str
    email: str | None = None


class AccessDeniedResponse(BaseModel):
    """Shown when a signed-in user opens another role's page."""

    detail: str
    role: str
    attempted_path: str
    dashboard_url: str


@router.get("/login", response_model=LoginPageResponse)
async def login_page(request: Request, error: str | None = None) -> LoginPageResponse:
    """
    Sign-in entry point.

    Unknown error tags are passed through without a message.
    """
    return LoginPageResponse(
        sign_in_url=str(request.url_for("sign_in")),
        error=error,
        message=SIGN_IN_ERROR_MESSAGES.get(error) if error else None,
    )


@router.get("/user-type-selection", response_model=UserTypeSelectionPageResponse)
async def user_type_selection_page(resolver: ResolverDep):
    """
    Role selection for signed-in users without an application user.

    Provisioned users go to their dashboard instead.
    """
    state = await resolver.resolve()
    if not isinstance(state, Authenticating):
        return RedirectResponse(url=destination_for(state), status_code=status.HTTP_302_FOUND)

    return UserTypeSelectionPageResponse(
        user_id=state.user.id,
        email=state.user.email,
        name=state.user.full_name,
        roles=[role.value for role in UserRole],
    )


@router.post("/user-type-selection")
async def select_user_type(
    body: UserTypeSelectionRequest,
    resolver: ResolverDep,
    session_client: SessionClientDep,
    rent_api: RentApiDep,
):
    """
    Provision the application user with the chosen role.

    Only allowed while authenticating; on success redirects to the role's
    dashboard.
    """
    state = await resolver.resolve()
    if not isinstance(state, Authenticating):
        return RedirectResponse(url=destination_for(state), status_code=status.HTTP_303_SEE_OTHER)

    session = await session_client.get_session()
    if session is None:
        return RedirectResponse(url=settings.SIGN_IN_PATH, status_code=status.HTTP_303_SEE_OTHER)

    try:
        result = await rent_api.select_user_type(body.role, session.access_token)
    except RentApiError as e:
        logger.error(f"Role selection failed for subject {state.user.id}: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": "Role selection is currently unavailable. Please try again later."},
        )

    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": result.error or "Role selection failed"},
        )

    logger.info(f"Subject {state.user.id} selected role {body.role.value}")
    return RedirectResponse(
        url=dashboard_path(result.role or body.role),
        status_code=status.HTTP_303_SEE_OTHER,
    )


async def _render_dashboard(request: Request, resolver: AuthStateResolver, required_role: UserRole):
    state = await resolver.resolve()
    decision = gate_page(state, required_role, request.url.path)

    if decision.outcome == "redirect":
        return RedirectResponse(url=decision.location, status_code=status.HTTP_302_FOUND)

    if decision.outcome == "deny":
        denied = AccessDeniedResponse(
            detail=f"This page is not available to {decision.role.value} accounts.",
            role=decision.role.value,
            attempted_path=request.url.path,
            dashboard_url=dashboard_path(decision.role),
        )
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content=denied.model_dump())

    return DashboardResponse(role=decision.role.value, user_id=state.user.id, email=state.user.email)


@router.get("/owner/dashboard", response_model=DashboardResponse)
async def owner_dashboard(request: Request, resolver: ResolverDep):
    return await _render_dashboard(request, resolver, UserRole.OWNER)


@router.get("/tenant/dashboard", response_model=DashboardResponse)
async def tenant_dashboard(request: Request, resolver: ResolverDep):
    return await _render_dashboard(request, resolver, UserRole.TENANT)
