"""
Tests for the server-driven OAuth routes.

The mock identity provider is used (IDENTITY_PROVIDER_URL=mock in
conftest.py): its authorize URL points straight back at the callback with
a code bound to the PKCE challenge.
"""

from urllib.parse import parse_qs, urlsplit

from fastapi.testclient import TestClient

from rentcalc.auth.pkce import generate_code_challenge
from rentcalc.core.config import settings
from rentcalc.services.identity import MockIdentityProvider


class TestSignIn:
    """Tests for GET /auth/sign-in"""

    def test_redirects_to_provider_with_verifier_cookie(
        self, client: TestClient, identity_provider: MockIdentityProvider
    ):
        response = client.get("/auth/sign-in", follow_redirects=False)

        assert response.status_code == 302
        location = urlsplit(response.headers["location"])
        assert location.path == "/api/auth/callback"
        assert "code" in parse_qs(location.query)

        verifier = client.cookies.get("pkce_code_verifier")
        assert verifier is not None
        set_cookie = response.headers["set-cookie"]
        assert "Path=/" in set_cookie
        assert "SameSite=lax" in set_cookie
        assert "Max-Age=600" in set_cookie

        call = identity_provider._call_history[-1]
        assert call["method"] == "authorize_url"
        assert call["provider"] == "google"
        assert call["redirect_to"] == "http://testserver/api/auth/callback"

    def test_challenge_is_derived_from_cookie_verifier(
        self, client: TestClient, identity_provider: MockIdentityProvider
    ):
        response = client.get("/auth/sign-in", follow_redirects=False)

        code = parse_qs(urlsplit(response.headers["location"]).query)["code"][0]
        verifier = client.cookies.get("pkce_code_verifier")
        assert identity_provider._codes[code].code_challenge == generate_code_challenge(verifier)

    def test_provider_failure_redirects_to_sign_in_with_error(
        self, client: TestClient, identity_provider: MockIdentityProvider
    ):
        identity_provider.fail_sign_in = True

        response = client.get("/auth/sign-in", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/login?error=sign_in_failed"
        assert client.cookies.get("pkce_code_verifier") is None

    def test_unknown_provider_redirects_to_sign_in_with_error(self, client: TestClient):
        response = client.get("/auth/sign-in?provider=myspace", follow_redirects=False)

        assert response.headers["location"] == "/login?error=sign_in_failed"


class TestOAuthCallback:
    """Tests for GET /api/auth/callback"""

    def test_new_user_lands_on_role_selection(self, client: TestClient, sign_in):
        location = sign_in()

        assert location == "/user-type-selection"
        assert client.cookies.get("pkce_code_verifier") is None
        assert client.cookies.get("rentcalc-auth-token") is not None

    def test_session_cookie_is_http_only(self, client: TestClient):
        start = client.get("/auth/sign-in", follow_redirects=False)

        response = client.get(start.headers["location"], follow_redirects=False)

        session_cookie = next(
            c for c in response.headers.get_list("set-cookie") if c.startswith("rentcalc-auth-token=")
        )
        assert "HttpOnly" in session_cookie
        assert "SameSite=lax" in session_cookie

    def test_provisioned_owner_lands_on_owner_dashboard(
        self, client: TestClient, sign_in, provision
    ):
        provision("owner")

        assert sign_in() == "/owner/dashboard"

    def test_provisioned_tenant_lands_on_tenant_dashboard(
        self, client: TestClient, sign_in, provision
    ):
        provision("tenant")

        assert sign_in() == "/tenant/dashboard"

    def test_provider_error_routes_to_auth_failed(
        self, client: TestClient, identity_provider: MockIdentityProvider
    ):
        response = client.get(
            "/api/auth/callback?error=access_denied&error_description=User+cancelled",
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/login?error=auth_failed"
        assert not any(c["method"] == "exchange_code" for c in identity_provider._call_history)

    def test_no_code_and_no_session_routes_to_no_session(self, client: TestClient):
        response = client.get("/api/auth/callback", follow_redirects=False)

        assert response.headers["location"] == "/login?error=no_session"

    def test_no_code_with_session_routes_to_destination(self, client: TestClient, sign_in):
        sign_in()

        response = client.get("/api/auth/callback", follow_redirects=False)

        assert response.headers["location"] == "/user-type-selection"

    def test_reused_code_routes_to_auth_failed(self, client: TestClient):
        start = client.get("/auth/sign-in", follow_redirects=False)
        callback_url = start.headers["location"]
        client.get(callback_url, follow_redirects=False)

        response = client.get(callback_url, follow_redirects=False)

        assert response.headers["location"] == "/login?error=auth_failed"

    def test_unknown_code_routes_to_auth_failed(self, client: TestClient):
        response = client.get("/api/auth/callback?code=abc123", follow_redirects=False)

        assert response.headers["location"] == "/login?error=auth_failed"
        assert client.cookies.get("rentcalc-auth-token") is None

    def test_missing_verifier_when_required(
        self, client: TestClient, identity_provider: MockIdentityProvider, monkeypatch
    ):
        monkeypatch.setattr(settings, "SERVER_CALLBACK_REQUIRES_VERIFIER", True)
        start = client.get("/auth/sign-in", follow_redirects=False)
        client.cookies.delete("pkce_code_verifier")

        response = client.get(start.headers["location"], follow_redirects=False)

        assert response.headers["location"] == "/login?error=no_code_verifier"
        assert not any(c["method"] == "exchange_code" for c in identity_provider._call_history)

    def test_missing_verifier_when_not_required_attempts_exchange(
        self, client: TestClient, identity_provider: MockIdentityProvider
    ):
        """The code is bound to a challenge, so the provider rejects the exchange."""
        start = client.get("/auth/sign-in", follow_redirects=False)
        client.cookies.delete("pkce_code_verifier")

        response = client.get(start.headers["location"], follow_redirects=False)

        assert response.headers["location"] == "/login?error=auth_failed"
        exchange = [c for c in identity_provider._call_history if c["method"] == "exchange_code"]
        assert exchange[0]["has_verifier"] is False


class TestSignOut:
    """Tests for POST /auth/sign-out"""

    def test_sign_out_clears_session_and_redirects(
        self, client: TestClient, identity_provider: MockIdentityProvider, sign_in
    ):
        sign_in()

        response = client.post("/auth/sign-out", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"
        assert client.cookies.get("rentcalc-auth-token") is None
        assert identity_provider._access_tokens == {}

    def test_protected_page_after_sign_out_redirects(self, client: TestClient, sign_in):
        sign_in()
        client.post("/auth/sign-out", follow_redirects=False)

        response = client.get("/user-type-selection", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "/login"

    def test_provider_failure_still_signs_out_locally(
        self, client: TestClient, identity_provider: MockIdentityProvider, sign_in
    ):
        sign_in()
        identity_provider.fail_sign_out = True

        response = client.post("/auth/sign-out", follow_redirects=False)

        assert response.headers["location"] == "/login"
        assert client.cookies.get("rentcalc-auth-token") is None

    def test_sign_out_without_session(self, client: TestClient):
        response = client.post("/auth/sign-out", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"
