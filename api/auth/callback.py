"""Google sign-in endpoint: without ?code= it starts the OAuth flow, with it completes sign-in."""

from http.server import BaseHTTPRequestHandler

from src.services.auth_service import SIGN_IN_PATH, complete_oauth_sign_in, get_google_sign_in_url
from src.utils.errors import AuthenticationError, SupabaseError
from src.utils.http import (
    build_cookie,
    query_params,
    read_cookie,
    run_async,
    send_json,
    send_redirect,
)
from src.utils.logging import get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)

# PKCE verifier carried between the redirect to Google and the callback
CODE_VERIFIER_COOKIE = "sb_code_verifier"
COOKIE_PATH = "/api/auth"
COOKIE_MAX_AGE_SECONDS = 600


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for the Google OAuth round trip."""

    def do_GET(self):
        params = query_params(self)
        code = params.get("code")
        expired_cookie = {
            "Set-Cookie": build_cookie(CODE_VERIFIER_COOKIE, "", path=COOKIE_PATH, max_age=0)
        }

        try:
            if not code:
                start = get_google_sign_in_url()
                send_redirect(self, start.url, headers={
                    "Set-Cookie": build_cookie(
                        CODE_VERIFIER_COOKIE,
                        start.code_verifier,
                        path=COOKIE_PATH,
                        max_age=COOKIE_MAX_AGE_SECONDS,
                    )
                })
                return
            code_verifier = params.get("code_verifier") or read_cookie(self, CODE_VERIFIER_COOKIE)
            if not code_verifier:
                raise AuthenticationError("Missing PKCE code verifier")
            user = run_async(self, complete_oauth_sign_in(code, code_verifier))
        except (AuthenticationError, SupabaseError) as e:
            logger.warning("Google sign in failed", error=str(e))
            send_json(self, 401, {
                "error": "Could not authorize with Google",
                "redirect_to": SIGN_IN_PATH,
            }, headers=expired_cookie)
            return

        send_json(self, 200, {
            "user_id": user.user_id,
            "name": user.name,
            "email": user.email,
            "access_token": user.access_token,
            "redirect_to": "/",
        }, headers=expired_cookie)
