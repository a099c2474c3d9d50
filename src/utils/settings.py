"""Application settings read from environment variables."""

import os


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() == "true"


class Settings:
    """Centralized application configuration."""

    # Backend project configuration
    SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
    SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "")
    STORAGE_BUCKET = os.environ.get("STORAGE_BUCKET", "listing-images")

    # Geocoding
    GEOCODE_API_KEY = os.environ.get("GEOCODE_API_KEY", "")
    GEOCODE_URL = os.environ.get(
        "GEOCODE_URL", "https://maps.googleapis.com/maps/api/geocode/json"
    )
    GEOCODE_TIMEOUT_SECONDS = float(os.environ.get("GEOCODE_TIMEOUT_SECONDS", "10"))

    # Listing rules
    ENFORCE_IMAGE_LIMIT = _env_flag("ENFORCE_IMAGE_LIMIT", "true")
    LISTING_WRITE_MODE = os.environ.get("LISTING_WRITE_MODE", "overwrite").lower()
    LISTINGS_PAGE_SIZE = int(os.environ.get("LISTINGS_PAGE_SIZE", "10"))

    # Auth
    OAUTH_REDIRECT_URL = os.environ.get(
        "OAUTH_REDIRECT_URL", "http://localhost:3000/api/auth/callback"
    )

    @classmethod
    def supabase_key(cls) -> str:
        """Prefer the service role key; fall back to the public anon key."""
        return cls.SUPABASE_SERVICE_ROLE_KEY or cls.SUPABASE_ANON_KEY
