"""Edit listing endpoint: GET loads the form, POST submits changes, DELETE removes the listing."""

from http.server import BaseHTTPRequestHandler

from src.services.auth_service import get_current_user
from src.services.listing_submission import (
    delete_listing,
    open_edit_form,
    submit_listing_edit,
)
from src.utils.errors import AuthenticationError, BadRequestError, ListingValidationError
from src.utils.http import (
    bearer_token,
    decode_images,
    query_params,
    read_json_body,
    run_async,
    send_json,
    send_result,
)
from src.utils.logging import get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


def _form_payload(form) -> dict:
    return {
        "fields": form.fields,
        "image_urls": form.image_urls,
        "geolocation_enabled": form.geolocation_enabled,
    }


async def _load(token, listing_id, geolocation_enabled):
    user = await get_current_user(token)
    return await open_edit_form(listing_id, user, geolocation_enabled=geolocation_enabled)


async def _submit(token, body):
    user = await get_current_user(token)
    listing_id = body.get("listing_id")
    if not listing_id:
        raise ListingValidationError("listing_id is required")

    form, failure = await open_edit_form(
        listing_id, user, geolocation_enabled=bool(body.get("geolocation_enabled"))
    )
    if failure:
        return failure

    for field_id, value in (body.get("fields") or {}).items():
        form.mutate(field_id, value)
    if "images" in body:
        form.mutate("images", decode_images(body.get("images")))

    return await submit_listing_edit(listing_id, form, user)


async def _delete(token, listing_id):
    user = await get_current_user(token)
    return await delete_listing(listing_id, user)


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for listing edits."""

    def do_GET(self):
        params = query_params(self)
        listing_id = params.get("listing_id")
        if not listing_id:
            send_json(self, 400, {"error": "listing_id is required"})
            return
        try:
            form, failure = run_async(
                self, _load(bearer_token(self), listing_id, params.get("geolocation") == "true")
            )
        except AuthenticationError as e:
            send_json(self, 401, {"error": str(e), "redirect_to": "/sign-in"})
            return
        except Exception as e:
            logger.error("Error loading listing for edit", exc_info=True, error=str(e))
            send_json(self, 500, {"error": "internal server error"})
            return

        if failure:
            send_result(self, failure)
            return
        send_json(self, 200, _form_payload(form))

    def do_POST(self):
        try:
            body = read_json_body(self)
            result = run_async(self, _submit(bearer_token(self), body))
        except AuthenticationError as e:
            send_json(self, 401, {"error": str(e), "redirect_to": "/sign-in"})
            return
        except (BadRequestError, ListingValidationError) as e:
            send_json(self, 400, {"error": str(e)})
            return
        except Exception as e:
            logger.error("Error submitting listing edit", exc_info=True, error=str(e))
            send_json(self, 500, {"error": "internal server error"})
            return

        send_result(self, result)

    def do_DELETE(self):
        listing_id = query_params(self).get("listing_id")
        if not listing_id:
            send_json(self, 400, {"error": "listing_id is required"})
            return
        try:
            result = run_async(self, _delete(bearer_token(self), listing_id))
        except AuthenticationError as e:
            send_json(self, 401, {"error": str(e), "redirect_to": "/sign-in"})
            return
        except Exception as e:
            logger.error("Error deleting listing", exc_info=True, error=str(e))
            send_json(self, 500, {"error": "internal server error"})
            return

        send_result(self, result)
