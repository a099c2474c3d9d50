"""Supabase client wrapper with async context manager support."""

from typing import Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from src.utils.errors import SupabaseError
from src.utils.settings import Settings
import logging

logger = logging.getLogger(__name__)

# Postgres accepts 'now' as timestamp input, so the database clock stamps the row
SERVER_TIMESTAMP = "now"

LISTINGS_TABLE = "listings"
USERS_TABLE = "users"

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = Settings.SUPABASE_URL
        key = Settings.supabase_key()

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY) must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"supabase_url": url})

    return _client


def create_auth_client() -> Client:
    """Fresh client for end-user auth flows, so user sessions never land on the shared client."""
    url = Settings.SUPABASE_URL
    key = Settings.SUPABASE_ANON_KEY or Settings.supabase_key()
    if not url or not key:
        raise SupabaseError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")

    options = ClientOptions(
        auto_refresh_token=False,
        persist_session=False,
        flow_type="pkce",
    )
    return create_client(url, key, options)


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "error_type": exc_type.__name__}
            )
        return False


# Users table operations
async def get_user_profile(user_id: str) -> Optional[dict]:
    """Get a marketplace user profile by auth user ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table(USERS_TABLE).select("*").eq("user_id", user_id).execute()
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise SupabaseError(f"Failed to get user profile: {e}")


async def create_user_profile(profile_data: dict) -> dict:
    """Create a marketplace user profile."""
    async with SupabaseClient() as client:
        try:
            row = {**profile_data, "timestamp": SERVER_TIMESTAMP}
            result = client.table(USERS_TABLE).insert(row).execute()
            if result.data and len(result.data) > 0:
                return result.data[0]
            raise SupabaseError("Failed to create user profile: no data returned")
        except SupabaseError:
            raise
        except Exception as e:
            raise SupabaseError(f"Failed to create user profile: {e}")


# Listings table operations
async def get_listing_row(listing_id: str) -> Optional[dict]:
    """Get a listing row by ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table(LISTINGS_TABLE).select("*").eq("listing_id", listing_id).execute()
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise SupabaseError(f"Failed to get listing: {e}")


async def create_listing_row(listing_id: str, user_ref: str, document: dict) -> dict:
    """Insert a new listing document."""
    async with SupabaseClient() as client:
        try:
            result = client.table(LISTINGS_TABLE).insert({
                "listing_id": listing_id,
                "user_ref": user_ref,
                "document": document,
                "timestamp": SERVER_TIMESTAMP,
            }).execute()
            if result.data and len(result.data) > 0:
                return result.data[0]
            raise SupabaseError("Failed to create listing: no data returned")
        except SupabaseError:
            raise
        except Exception as e:
            raise SupabaseError(f"Failed to create listing: {e}")


async def overwrite_listing_row(listing_id: str, user_ref: str, document: dict) -> dict:
    """Replace the whole listing document; keys absent from document are gone afterwards."""
    async with SupabaseClient() as client:
        try:
            result = client.table(LISTINGS_TABLE).update({
                "user_ref": user_ref,
                "document": document,
                "timestamp": SERVER_TIMESTAMP,
            }).eq("listing_id", listing_id).execute()
            if result.data and len(result.data) > 0:
                return result.data[0]
            raise SupabaseError(f"Failed to overwrite listing: {listing_id}")
        except SupabaseError:
            raise
        except Exception as e:
            raise SupabaseError(f"Failed to overwrite listing: {e}")


async def delete_listing_row(listing_id: str) -> None:
    """Delete a listing row."""
    async with SupabaseClient() as client:
        try:
            client.table(LISTINGS_TABLE).delete().eq("listing_id", listing_id).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to delete listing: {e}")


async def query_listing_rows(
    filters: dict[str, str],
    offset: int = 0,
    limit: int = 10
) -> list[dict]:
    """Query listings by equality filters, newest first.

    Filter keys may address document fields with PostgREST JSON paths,
    e.g. ``{"document->>type": "rent"}``.
    """
    async with SupabaseClient() as client:
        try:
            query = client.table(LISTINGS_TABLE).select("*")
            for column, value in filters.items():
                query = query.eq(column, value)
            result = query.order("timestamp", desc=True).range(offset, offset + limit - 1).execute()
            return result.data if result.data else []
        except Exception as e:
            raise SupabaseError(f"Failed to query listings: {e}")
