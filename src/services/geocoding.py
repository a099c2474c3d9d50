"""Geocoding service - resolve a free-text address to coordinates via the Google Geocoding API."""

from typing import Optional

import httpx
from pydantic import BaseModel

from src.models.listing import Geolocation
from src.utils.errors import AddressResolutionError
from src.utils.logging import get_structured_logger, log_timing, mask_sensitive_data
from src.utils.settings import Settings

logger = get_structured_logger(__name__)

ZERO_RESULTS = "ZERO_RESULTS"


class GeocodeResult(BaseModel):
    """Resolved address."""
    geolocation: Geolocation
    formatted_address: str


def parse_geocode_response(data: dict) -> tuple[Geolocation, Optional[str]]:
    """
    Extract coordinates and formatted address from a geocoding payload.

    Coordinates default to 0/0 when the first result is missing; the address
    is None when the service reports zero results or omits it.
    """
    results = data.get("results") or []
    first = results[0] if results else {}
    location = (first.get("geometry") or {}).get("location") or {}

    geolocation = Geolocation(
        lat=location.get("lat") or 0,
        lng=location.get("lng") or 0,
    )

    if data.get("status") == ZERO_RESULTS:
        return geolocation, None
    return geolocation, first.get("formatted_address")


async def geocode_address(
    address: str,
    client: Optional[httpx.AsyncClient] = None
) -> GeocodeResult:
    """
    Resolve an address with one GET to the geocoding endpoint.

    Raises AddressResolutionError when the key is missing, the request fails,
    or no formatted address comes back.
    """
    if not address or not address.strip():
        raise AddressResolutionError("Please enter a correct address")

    api_key = Settings.GEOCODE_API_KEY
    if not api_key:
        raise AddressResolutionError("GEOCODE_API_KEY not set")

    params = {"address": address.strip(), "key": api_key}
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=Settings.GEOCODE_TIMEOUT_SECONDS)

    try:
        with log_timing("geocode_address", logger=logger):
            response = await client.get(Settings.GEOCODE_URL, params=params)
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(
            "Geocoding request failed",
            error=mask_sensitive_data(str(e)),
            error_type=type(e).__name__
        )
        raise AddressResolutionError(f"Geocoding request failed: {type(e).__name__}") from e
    finally:
        if owns_client:
            await client.aclose()

    geolocation, formatted_address = parse_geocode_response(data)
    if not formatted_address or "undefined" in formatted_address:
        logger.warning(
            "Address could not be resolved",
            geocode_status=data.get("status"),
            result_count=len(data.get("results") or [])
        )
        raise AddressResolutionError("Please enter a correct address")

    logger.info(
        "Address resolved",
        geocode_status=data.get("status"),
        lat=geolocation.lat,
        lng=geolocation.lng
    )
    return GeocodeResult(geolocation=geolocation, formatted_address=formatted_address)
