"""Browse listings endpoint: ?type=sale|rent, ?offers=true, ?user=<id>, or ?listing_id=<id>."""

from http.server import BaseHTTPRequestHandler

from src.services.listing_browser import (
    browse_category,
    browse_offers,
    browse_owner_listings,
    get_listing,
)
from src.utils.errors import ListingNotFoundError, SupabaseError
from src.utils.http import query_params, run_async, send_json
from src.utils.logging import get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


class handler(BaseHTTPRequestHandler):
    """Vercel serverless function handler for public listing pages."""

    def do_GET(self):
        params = query_params(self)
        try:
            page = int(params.get("page", "0"))
        except ValueError:
            send_json(self, 400, {"error": "page must be an integer"})
            return

        try:
            if params.get("listing_id"):
                listing = run_async(self, get_listing(params["listing_id"]))
                send_json(self, 200, listing.model_dump(mode="json"))
                return
            if params.get("type"):
                result = run_async(self, browse_category(params["type"], page=page))
            elif params.get("offers") == "true":
                result = run_async(self, browse_offers(page=page))
            elif params.get("user"):
                result = run_async(self, browse_owner_listings(params["user"], page=page))
            else:
                send_json(self, 400, {"error": "one of type, offers, user or listing_id is required"})
                return
        except ValueError:
            send_json(self, 400, {"error": f"unknown listing type: {params.get('type')}"})
            return
        except ListingNotFoundError:
            send_json(self, 404, {"error": "Listing does not exist"})
            return
        except SupabaseError as e:
            logger.error("Error browsing listings", error=str(e))
            send_json(self, 502, {"error": "Could not fetch listings"})
            return

        send_json(self, 200, result.model_dump(mode="json"))
