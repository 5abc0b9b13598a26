"""Tests for RouteGuardMiddleware."""

import asyncio

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from rentcalc.auth.cookies import ClientCookieJar
from rentcalc.auth.pkce import generate_pkce_pair
from rentcalc.auth.route_guard import RouteGuardMiddleware, is_protected_path
from rentcalc.auth.session_client import CookieSessionStore
from rentcalc.core.encryption import get_encryption
from rentcalc.services.identity import MockIdentityProvider


def _guarded_app(provider) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RouteGuardMiddleware, provider_factory=lambda: provider)

    @app.get("/owner/dashboard")
    async def owner_dashboard(request: Request):
        return {"page": "owner", "query": dict(request.query_params)}

    @app.get("/tenant/dashboard")
    async def tenant_dashboard():
        return {"page": "tenant"}

    @app.get("/owners")
    async def owners():
        return {"page": "owners"}

    @app.get("/public")
    async def public():
        return {"page": "public"}

    return app


def _signed_in_cookie(provider: MockIdentityProvider) -> dict[str, str]:
    """Session cookie for a fresh mock sign-in."""
    pair = generate_pkce_pair()
    code = provider.issue_code(code_challenge=pair.code_challenge)
    session = asyncio.run(provider.exchange_code(code, pair.code_verifier))

    jar = ClientCookieJar()
    CookieSessionStore(jar, secure=False, encryption=get_encryption()).save(session)
    return {"rentcalc-auth-token": jar.get("rentcalc-auth-token")}


class TestIsProtectedPath:
    def test_prefix_itself(self):
        assert is_protected_path("/owner", ["/owner"])

    def test_nested_path(self):
        assert is_protected_path("/owner/dashboard", ["/owner"])

    def test_segment_boundary(self):
        assert not is_protected_path("/owners", ["/owner"])

    def test_unprotected(self):
        assert not is_protected_path("/login", ["/owner", "/tenant"])


class TestRouteGuard:
    """Tests for the middleware against a minimal app."""

    def test_protected_path_without_session_redirects_to_sign_in(self):
        client = TestClient(_guarded_app(MockIdentityProvider()))

        response = client.get("/owner/dashboard?tab=payments", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "/login"

    def test_protected_path_with_session_proceeds_unmodified(self):
        provider = MockIdentityProvider()
        client = TestClient(_guarded_app(provider), cookies=_signed_in_cookie(provider))

        response = client.get("/owner/dashboard?tab=payments", follow_redirects=False)

        assert response.status_code == 200
        assert response.json() == {"page": "owner", "query": {"tab": "payments"}}

    def test_guard_does_not_check_roles(self):
        """Role gating is left to the page; any valid session passes the guard."""
        provider = MockIdentityProvider()
        client = TestClient(_guarded_app(provider), cookies=_signed_in_cookie(provider))

        response = client.get("/tenant/dashboard", follow_redirects=False)

        assert response.status_code == 200

    def test_unprotected_path_passes_without_session(self):
        provider = MockIdentityProvider()
        client = TestClient(_guarded_app(provider))

        response = client.get("/public")

        assert response.status_code == 200
        assert provider._call_history == []

    def test_similar_prefix_is_not_protected(self):
        client = TestClient(_guarded_app(MockIdentityProvider()))

        response = client.get("/owners", follow_redirects=False)

        assert response.status_code == 200

    def test_bare_role_root_redirects_to_role_selection(self):
        provider = MockIdentityProvider()
        client = TestClient(_guarded_app(provider), cookies=_signed_in_cookie(provider))

        response = client.get("/owner", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "/user-type-selection"

    def test_post_without_session_redirects_with_see_other(self):
        client = TestClient(_guarded_app(MockIdentityProvider()))

        response = client.post("/owner/dashboard", json={}, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_head_without_session_keeps_temporary_redirect(self):
        client = TestClient(_guarded_app(MockIdentityProvider()))

        response = client.head("/owner/dashboard", follow_redirects=False)

        assert response.status_code == 307

    def test_post_to_bare_role_root_redirects_with_see_other(self):
        provider = MockIdentityProvider()
        client = TestClient(_guarded_app(provider), cookies=_signed_in_cookie(provider))

        response = client.post("/tenant", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/user-type-selection"

    def test_revoked_session_redirects_and_clears_cookie(self):
        provider = MockIdentityProvider()
        cookies = _signed_in_cookie(provider)
        for access_token in list(provider._access_tokens):
            provider._access_tokens.pop(access_token)
        client = TestClient(_guarded_app(provider), cookies=cookies)

        response = client.get("/owner/dashboard", follow_redirects=False)

        assert response.status_code == 307
        assert "rentcalc-auth-token=" in response.headers.get("set-cookie", "")

    def test_garbage_cookie_fails_closed(self):
        client = TestClient(
            _guarded_app(MockIdentityProvider()),
            cookies={"rentcalc-auth-token": "not-a-fernet-token"},
        )

        response = client.get("/owner/dashboard", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "/login"

    def test_provider_exception_fails_closed(self):
        def broken_factory():
            raise RuntimeError("provider misconfigured")

        app = FastAPI()
        app.add_middleware(RouteGuardMiddleware, provider_factory=broken_factory)

        @app.get("/owner/dashboard")
        async def owner_dashboard():
            return {"page": "owner"}

        response = TestClient(app).get("/owner/dashboard", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "/login"

    def test_expired_session_is_refreshed_and_cookie_rewritten(self):
        provider = MockIdentityProvider(session_ttl_seconds=0)
        cookies = _signed_in_cookie(provider)
        provider.session_ttl_seconds = 3600
        client = TestClient(_guarded_app(provider), cookies=cookies)

        response = client.get("/owner/dashboard", follow_redirects=False)

        assert response.status_code == 200
        assert "rentcalc-auth-token=" in response.headers["set-cookie"]
        assert any(c["method"] == "refresh_session" for c in provider._call_history)
