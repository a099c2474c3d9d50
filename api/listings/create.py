"""Create listing endpoint."""

from http.server import BaseHTTPRequestHandler

from src.services.auth_service import get_current_user
from src.services.listing_form import ListingForm
from src.services.listing_submission import submit_new_listing
from src.utils.errors import AuthenticationError, BadRequestError, ListingValidationError
from src.utils.http import bearer_token, decode_images, read_json_body, run_async, send_json, send_result
from src.utils.logging import get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


async def _create(token, body):
    user = await get_current_user(token)
    form = ListingForm(geolocation_enabled=bool(body.get("geolocation_enabled")))
    for field_id, value in (body.get("fields") or {}).items():
        form.mutate(field_id, value)
    form.mutate("images", decode_images(body.get("images")))
    return await submit_new_listing(form, user)


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for new listings."""

    def do_POST(self):
        try:
            body = read_json_body(self)
            result = run_async(self, _create(bearer_token(self), body))
        except AuthenticationError as e:
            send_json(self, 401, {"error": str(e), "redirect_to": "/sign-in"})
            return
        except (BadRequestError, ListingValidationError) as e:
            send_json(self, 400, {"error": str(e)})
            return
        except Exception as e:
            logger.error("Error creating listing", exc_info=True, error=str(e))
            send_json(self, 500, {"error": "internal server error"})
            return

        if result.ok:
            self.send_response(201)
            self.send_header('Content-Type', 'application/json')
            self.send_header('Location', result.redirect_to)
            self.end_headers()
            self.wfile.write(result.model_dump_json().encode('utf-8'))
            return
        send_result(self, result)
