"""Listing models."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, model_validator


MIN_PRICE = 50
MAX_PRICE = 750_000_000
MAX_IMAGES = 6

# Keys that live only on the edit form and must never reach the store
FORM_ONLY_FIELDS = ("address", "images", "latitude", "longitude")

# Fields an owner may change through the edit form
EDITABLE_FIELDS = (
    "type",
    "name",
    "bedrooms",
    "bathrooms",
    "parking",
    "furnished",
    "location",
    "geolocation",
    "offer",
    "regular_price",
    "discounted_price",
    "image_urls",
)


class ListingType(str, Enum):
    """Listing type values."""
    SALE = "sale"
    RENT = "rent"


class Geolocation(BaseModel):
    """Latitude/longitude pair."""
    lat: float = Field(0.0, allow_inf_nan=False, description="Latitude")
    lng: float = Field(0.0, allow_inf_nan=False, description="Longitude")


class ListingDetails(BaseModel):
    """Editable listing fields shared by the form and the stored document."""
    type: ListingType = Field(..., description="sale or rent")
    name: str = Field(..., min_length=10, max_length=32, description="Listing title")
    bedrooms: int = Field(..., ge=1, le=50, description="Bedroom count")
    bathrooms: int = Field(..., ge=1, le=50, description="Bathroom count")
    parking: bool = Field(False, description="Parking spot available")
    furnished: bool = Field(False, description="Furnished")
    offer: bool = Field(False, description="Discount offer active")
    regular_price: int = Field(..., ge=MIN_PRICE, le=MAX_PRICE, description="Regular price")
    discounted_price: Optional[int] = Field(
        None,
        ge=0,
        le=MAX_PRICE,
        description="Discounted price, only meaningful when offer is true"
    )

    @model_validator(mode="after")
    def _check_offer_price(self):
        if self.offer:
            if self.discounted_price is None or self.discounted_price < MIN_PRICE:
                raise ValueError(f"Discounted price must be at least {MIN_PRICE} when an offer is active")
            if self.discounted_price >= self.regular_price:
                raise ValueError("Discounted price needs to be less than the regular price")
        return self


class Listing(ListingDetails):
    """Real estate listing as stored in the listings table document."""
    listing_id: Optional[str] = Field(None, description="Listing ID (text)")
    location: str = Field(..., min_length=1, description="Formatted address")
    geolocation: Geolocation = Field(default_factory=Geolocation, description="Coordinates")
    image_urls: list[str] = Field(
        default_factory=list,
        max_length=MAX_IMAGES,
        description="Public image URLs, first is the cover"
    )
    user_ref: str = Field(..., description="Owner user ID")
    timestamp: Optional[str] = Field(None, description="Server-assigned write time")

    def to_document(self) -> dict[str, Any]:
        """Serialize to the stored JSON document."""
        document = self.model_dump(
            mode="json",
            exclude={"listing_id", "timestamp"},
        )
        if not self.offer:
            document.pop("discounted_price", None)
        return document

    @classmethod
    def from_row(cls, row: dict) -> "Listing":
        """Build a listing from a listings table row."""
        document = dict(row.get("document") or {})
        document["listing_id"] = row.get("listing_id")
        document["user_ref"] = row.get("user_ref") or document.get("user_ref")
        document["timestamp"] = row.get("timestamp")
        return cls.model_validate(document)

    @property
    def cover_image(self) -> Optional[str]:
        return self.image_urls[0] if self.image_urls else None

    @property
    def canonical_path(self) -> str:
        return f"/category/{self.type.value}/{self.listing_id}"
