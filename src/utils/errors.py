"""Error handling utilities."""


class MarketplaceError(Exception):
    """Base exception for the house marketplace backend."""
    pass


class SupabaseError(MarketplaceError):
    """Supabase operation error."""
    pass


class AuthenticationError(MarketplaceError):
    """Sign-in or session resolution failed."""
    pass


class AuthorizationError(MarketplaceError):
    """Acting user is not allowed to touch the listing."""
    pass


class ListingNotFoundError(MarketplaceError):
    """Listing does not exist."""
    pass


class ListingValidationError(MarketplaceError):
    """Listing form failed validation."""
    pass


class AddressResolutionError(MarketplaceError):
    """Geocoding returned no usable result."""
    pass


class ImageUploadError(MarketplaceError):
    """One or more image uploads failed."""
    pass


class PersistenceError(SupabaseError):
    """Listing document write rejected."""
    pass


class BadRequestError(MarketplaceError):
    """Malformed HTTP request body."""
    pass
