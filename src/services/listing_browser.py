"""Listing browse queries - category pages, offers and a user's own listings."""

from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from src.models.listing import Listing, ListingType
from src.services.supabase_client import get_listing_row, query_listing_rows
from src.utils.errors import ListingNotFoundError, SupabaseError
from src.utils.logging import get_structured_logger, mask_user_id
from src.utils.settings import Settings

logger = get_structured_logger(__name__)


class ListingPage(BaseModel):
    """One page of listings, newest first."""
    listings: list[Listing] = Field(default_factory=list)
    page: int = 0
    next_page: Optional[int] = Field(None, description="Next page number, None on the last page")


def _parse_rows(rows: list[dict]) -> list[Listing]:
    listings = []
    for row in rows:
        try:
            listings.append(Listing.from_row(row))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed listing row",
                listing_id=row.get("listing_id"),
                error_count=e.error_count()
            )
    return listings


async def _browse(filters: dict[str, str], page: int, page_size: Optional[int]) -> ListingPage:
    page = max(page, 0)
    size = page_size or Settings.LISTINGS_PAGE_SIZE
    # one extra row tells us whether another page exists
    rows = await query_listing_rows(filters, offset=page * size, limit=size + 1)
    has_more = len(rows) > size
    return ListingPage(
        listings=_parse_rows(rows[:size]),
        page=page,
        next_page=page + 1 if has_more else None,
    )


async def browse_category(
    listing_type: ListingType | str,
    page: int = 0,
    page_size: Optional[int] = None
) -> ListingPage:
    """Listings for sale or for rent."""
    listing_type = ListingType(listing_type)
    result = await _browse({"document->>type": listing_type.value}, page, page_size)
    logger.info(
        "Browsed category",
        listing_type=listing_type.value,
        page=page,
        result_count=len(result.listings)
    )
    return result


async def browse_offers(page: int = 0, page_size: Optional[int] = None) -> ListingPage:
    """Listings with an active discount offer."""
    result = await _browse({"document->>offer": "true"}, page, page_size)
    logger.info("Browsed offers", page=page, result_count=len(result.listings))
    return result


async def browse_owner_listings(
    user_id: str,
    page: int = 0,
    page_size: Optional[int] = None
) -> ListingPage:
    """Listings owned by one user (profile page)."""
    result = await _browse({"user_ref": user_id}, page, page_size)
    logger.info(
        "Browsed owner listings",
        user_id=mask_user_id(user_id),
        result_count=len(result.listings)
    )
    return result


async def get_listing(listing_id: str) -> Listing:
    """Read one listing or raise ListingNotFoundError."""
    row = await get_listing_row(listing_id)
    if row is None:
        raise ListingNotFoundError(f"Listing not found: {listing_id}")
    try:
        return Listing.from_row(row)
    except ValidationError as e:
        raise SupabaseError(f"Malformed listing document: {listing_id}") from e
