"""Email/password auth endpoint: POST {"email", "password"} signs in, add "name" to sign up."""

from http.server import BaseHTTPRequestHandler

from src.services.auth_service import sign_in_with_password, sign_up
from src.utils.errors import AuthenticationError, BadRequestError, SupabaseError
from src.utils.http import read_json_body, run_async, send_json
from src.utils.logging import get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


async def _sign_in(body: dict):
    email = body.get("email") or ""
    password = body.get("password") or ""
    if body.get("name"):
        return await sign_up(email, password, body["name"])
    return await sign_in_with_password(email, password)


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for email/password sign-in and sign-up."""

    def do_POST(self):
        try:
            body = read_json_body(self)
            if not body.get("email") or not body.get("password"):
                send_json(self, 400, {"error": "email and password are required"})
                return
            user = run_async(self, _sign_in(body))
        except BadRequestError as e:
            send_json(self, 400, {"error": str(e)})
            return
        except (AuthenticationError, SupabaseError) as e:
            logger.warning("Password auth failed", error_type=type(e).__name__)
            send_json(self, 401, {"error": "Bad user credentials"})
            return

        send_json(self, 200, {
            "user_id": user.user_id,
            "name": user.name,
            "email": user.email,
            "access_token": user.access_token,
            "redirect_to": "/",
        })
