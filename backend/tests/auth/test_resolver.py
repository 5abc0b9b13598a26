"""Tests for AuthStateResolver and the navigation helpers."""

from unittest.mock import AsyncMock

import pytest

from rentcalc.auth.errors import UserLookupError
from rentcalc.auth.resolver import AuthStateResolver, destination_for, gate_page
from rentcalc.models import (
    ApplicationUser,
    Authenticated,
    Authenticating,
    SessionUser,
    Unauthenticated,
    UserRole,
)

USER = SessionUser(id="u1", email="u1@example.com")


def _resolver(user: SessionUser | None, app_user=None, lookup_error: Exception | None = None):
    session_client = AsyncMock()
    session_client.get_user.return_value = user
    user_store = AsyncMock()
    if lookup_error is not None:
        user_store.get_by_subject.side_effect = lookup_error
    else:
        user_store.get_by_subject.return_value = app_user
    return AuthStateResolver(session_client, user_store), user_store


class TestResolve:
    """Tests for AuthStateResolver.resolve."""

    @pytest.mark.asyncio
    async def test_no_session_is_unauthenticated(self):
        resolver, user_store = _resolver(None)

        state = await resolver.resolve()

        assert isinstance(state, Unauthenticated)
        assert state.kind == "unauthenticated"
        user_store.get_by_subject.assert_not_called()

    @pytest.mark.asyncio
    async def test_session_without_app_user_is_authenticating(self):
        resolver, user_store = _resolver(USER, app_user=None)

        state = await resolver.resolve()

        assert isinstance(state, Authenticating)
        assert state.user.id == "u1"
        assert state.lookup_failed is False
        user_store.get_by_subject.assert_awaited_once_with("u1")

    @pytest.mark.asyncio
    async def test_session_with_owner_record_is_authenticated_owner(self):
        resolver, _ = _resolver(USER, app_user=ApplicationUser("u1", UserRole.OWNER))

        state = await resolver.resolve()

        assert isinstance(state, Authenticated)
        assert state.role == UserRole.OWNER

    @pytest.mark.asyncio
    async def test_session_with_tenant_record_is_authenticated_tenant(self):
        resolver, _ = _resolver(USER, app_user=ApplicationUser("u1", UserRole.TENANT))

        state = await resolver.resolve()

        assert state.kind == "authenticated"
        assert state.role == UserRole.TENANT

    @pytest.mark.asyncio
    async def test_lookup_failure_is_authenticating_and_flagged(self):
        resolver, _ = _resolver(USER, lookup_error=UserLookupError("lookup_failed", "db down"))

        state = await resolver.resolve()

        assert isinstance(state, Authenticating)
        assert state.lookup_failed is True

    @pytest.mark.asyncio
    async def test_resolve_is_repeatable(self):
        resolver, _ = _resolver(USER, app_user=ApplicationUser("u1", UserRole.OWNER))

        assert await resolver.resolve() == await resolver.resolve()


class TestDestinationFor:
    """Tests for destination_for."""

    def test_unauthenticated_goes_to_sign_in(self):
        assert destination_for(Unauthenticated()) == "/login"

    def test_authenticating_goes_to_role_selection(self):
        assert destination_for(Authenticating(user=USER)) == "/user-type-selection"

    def test_owner_goes_to_owner_dashboard(self):
        state = Authenticated(user=USER, app_user=ApplicationUser("u1", UserRole.OWNER))
        assert destination_for(state) == "/owner/dashboard"

    def test_tenant_goes_to_tenant_dashboard(self):
        state = Authenticated(user=USER, app_user=ApplicationUser("u1", UserRole.TENANT))
        assert destination_for(state) == "/tenant/dashboard"


class TestGatePage:
    """Tests for page-level role checks."""

    def test_unauthenticated_redirects_to_sign_in(self):
        decision = gate_page(Unauthenticated(), UserRole.OWNER, "/owner/dashboard")
        assert decision.outcome == "redirect"
        assert decision.location == "/login"

    def test_authenticating_redirects_to_role_selection(self):
        decision = gate_page(Authenticating(user=USER), UserRole.OWNER, "/owner/dashboard")
        assert decision.outcome == "redirect"
        assert decision.location == "/user-type-selection"

    def test_matching_role_is_allowed(self):
        state = Authenticated(user=USER, app_user=ApplicationUser("u1", UserRole.OWNER))
        decision = gate_page(state, UserRole.OWNER, "/owner/dashboard")
        assert decision.outcome == "allow"

    def test_role_mismatch_is_denied_not_redirected(self):
        state = Authenticated(user=USER, app_user=ApplicationUser("u1", UserRole.TENANT))

        decision = gate_page(state, UserRole.OWNER, "/owner/dashboard")

        assert decision.outcome == "deny"
        assert decision.location is None
        assert decision.role == UserRole.TENANT
        assert decision.attempted_path == "/owner/dashboard"
