"""Tests for the sign-in endpoints."""

import pytest
from unittest.mock import AsyncMock, patch

from api.auth import callback, password
from src.models.user import AuthenticatedUser, OAuthStart
from src.utils.errors import AuthenticationError
from tests.utils.helpers import build_handler, response_json, response_status, sent_headers


@pytest.fixture
def google_user():
    return AuthenticatedUser(user_id="uid-123", name="Jane Doe", email="jane@example.com", access_token="tok")


@pytest.mark.unit
class TestGoogleCallback:
    def test_starts_oauth_flow_with_verifier_cookie(self):
        start = OAuthStart(url="https://accounts.example.com/o/auth", code_verifier="verifier-xyz")
        with patch('api.auth.callback.get_google_sign_in_url', return_value=start):
            h = build_handler(callback.handler, "GET", "/api/auth/callback")
            h.do_GET()

        assert response_status(h) == 302
        headers = sent_headers(h)
        assert headers["Location"] == "https://accounts.example.com/o/auth"
        cookie = headers["Set-Cookie"]
        assert cookie.startswith("sb_code_verifier=verifier-xyz")
        assert "HttpOnly" in cookie
        assert "Path=/api/auth" in cookie

    def test_completes_sign_in_with_cookie_verifier(self, google_user):
        with patch('api.auth.callback.complete_oauth_sign_in', new=AsyncMock(return_value=google_user)) as complete:
            h = build_handler(callback.handler, "GET", "/api/auth/callback?code=abc",
                              headers={"Cookie": "theme=dark; sb_code_verifier=verifier-xyz"})
            h.do_GET()

        assert response_status(h) == 200
        payload = response_json(h)
        assert payload["user_id"] == "uid-123"
        assert payload["redirect_to"] == "/"
        complete.assert_awaited_once_with("abc", "verifier-xyz")
        assert "Max-Age=0" in sent_headers(h)["Set-Cookie"]

    def test_query_verifier_accepted(self, google_user):
        with patch('api.auth.callback.complete_oauth_sign_in', new=AsyncMock(return_value=google_user)) as complete:
            h = build_handler(callback.handler, "GET", "/api/auth/callback?code=abc&code_verifier=xyz")
            h.do_GET()

        assert response_status(h) == 200
        complete.assert_awaited_once_with("abc", "xyz")

    def test_missing_verifier(self):
        with patch('api.auth.callback.complete_oauth_sign_in', new=AsyncMock()) as complete:
            h = build_handler(callback.handler, "GET", "/api/auth/callback?code=abc")
            h.do_GET()

        assert response_status(h) == 401
        assert response_json(h)["redirect_to"] == "/sign-in"
        complete.assert_not_called()

    def test_failure_returns_to_sign_in(self):
        with patch('api.auth.callback.complete_oauth_sign_in',
                   new=AsyncMock(side_effect=AuthenticationError("Could not authorize with Google"))):
            h = build_handler(callback.handler, "GET", "/api/auth/callback?code=abc",
                              headers={"Cookie": "sb_code_verifier=verifier-xyz"})
            h.do_GET()

        assert response_status(h) == 401
        assert response_json(h) == {"error": "Could not authorize with Google", "redirect_to": "/sign-in"}


@pytest.mark.unit
class TestPasswordEndpoint:
    def test_sign_in(self, google_user):
        with patch('api.auth.password.sign_in_with_password', new=AsyncMock(return_value=google_user)) as sign_in:
            h = build_handler(password.handler, "POST", "/api/auth/password",
                              body={"email": "jane@example.com", "password": "pw"})
            h.do_POST()

        assert response_status(h) == 200
        sign_in.assert_awaited_once_with("jane@example.com", "pw")

    def test_sign_up_when_name_given(self, google_user):
        with patch('api.auth.password.sign_up', new=AsyncMock(return_value=google_user)) as register:
            h = build_handler(password.handler, "POST", "/api/auth/password",
                              body={"email": "jane@example.com", "password": "pw", "name": "Jane Doe"})
            h.do_POST()

        assert response_status(h) == 200
        register.assert_awaited_once_with("jane@example.com", "pw", "Jane Doe")

    def test_bad_credentials(self):
        with patch('api.auth.password.sign_in_with_password',
                   new=AsyncMock(side_effect=AuthenticationError("Bad user credentials"))):
            h = build_handler(password.handler, "POST", "/api/auth/password",
                              body={"email": "jane@example.com", "password": "wrong"})
            h.do_POST()

        assert response_status(h) == 401
        assert response_json(h)["error"] == "Bad user credentials"

    def test_missing_fields(self):
        h = build_handler(password.handler, "POST", "/api/auth/password", body={"email": "jane@example.com"})
        h.do_POST()
        assert response_status(h) == 400
