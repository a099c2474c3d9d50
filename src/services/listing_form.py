"""Listing form state - field values plus transient UI flags for one editing session."""

from typing import Any, Optional, Union

from pydantic import TypeAdapter

from src.models.form import (
    FORM_FIELDS,
    FieldUpdate,
    ImageFile,
    SelectImages,
    SetFlag,
    SetNumber,
    SetText,
)
from src.models.listing import Listing
from src.utils.errors import ListingValidationError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

_field_update_adapter = TypeAdapter(FieldUpdate)


def default_form_fields() -> dict[str, Any]:
    """Initial values of a blank form."""
    return {
        "type": "rent",
        "name": "",
        "bedrooms": 1,
        "bathrooms": 1,
        "parking": False,
        "furnished": False,
        "address": "",
        "offer": False,
        "regular_price": 0,
        "discounted_price": 0,
        "latitude": 0,
        "longitude": 0,
    }


def to_field_update(field_id: str, raw_value: Any) -> FieldUpdate:
    """
    Translate a raw input event into a typed update command.

    A file selection becomes SelectImages, the strings "true"/"false" become
    flags, numbers stay numbers and everything else is stored as text.
    """
    if isinstance(raw_value, (list, tuple)) and all(isinstance(f, ImageFile) for f in raw_value):
        return SelectImages(files=list(raw_value))
    if raw_value == "true" or raw_value is True:
        return SetFlag(field=field_id, value=True)
    if raw_value == "false" or raw_value is False:
        return SetFlag(field=field_id, value=False)
    if isinstance(raw_value, (int, float)):
        return SetNumber(field=field_id, value=raw_value)
    if isinstance(raw_value, str):
        return SetText(field=field_id, value=raw_value)
    raise ListingValidationError(f"Unsupported value for field '{field_id}'")


class ListingForm:
    """Mutable form record owned by a single editing session."""

    def __init__(self, fields: Optional[dict[str, Any]] = None, geolocation_enabled: bool = False):
        self.fields: dict[str, Any] = default_form_fields()
        if fields:
            self.fields.update(fields)
        self.images: list[ImageFile] = []
        self.image_urls: list[str] = []
        self.owner_ref: Optional[str] = None
        self.geolocation_enabled = geolocation_enabled
        self.loading = False
        self.active = True

    @classmethod
    def from_listing(cls, listing: Listing, geolocation_enabled: bool = False) -> "ListingForm":
        form = cls(geolocation_enabled=geolocation_enabled)
        form.load_listing(listing)
        return form

    def load_listing(self, listing: Listing) -> None:
        """Populate the form from a stored listing; the address box shows the stored location."""
        self.fields.update({
            "type": listing.type.value,
            "name": listing.name,
            "bedrooms": listing.bedrooms,
            "bathrooms": listing.bathrooms,
            "parking": listing.parking,
            "furnished": listing.furnished,
            "address": listing.location,
            "offer": listing.offer,
            "regular_price": listing.regular_price,
            "discounted_price": listing.discounted_price or 0,
            "latitude": listing.geolocation.lat,
            "longitude": listing.geolocation.lng,
        })
        self.image_urls = list(listing.image_urls)
        self.owner_ref = listing.user_ref
        self.images = []

    def mutate(self, field_id: str, raw_value: Union[str, int, float, bool, list[ImageFile]]) -> None:
        """Single entry point for raw input events."""
        self.apply(to_field_update(field_id, raw_value))

    def apply(self, update: Union[FieldUpdate, dict]) -> None:
        """Apply a typed update command. No value validation happens here."""
        if isinstance(update, dict):
            update = _field_update_adapter.validate_python(update)

        if isinstance(update, SelectImages):
            # later selections replace earlier ones entirely
            self.images = list(update.files)
            return

        if update.field not in FORM_FIELDS:
            raise ListingValidationError(f"Unknown form field: {update.field}")
        self.fields[update.field] = update.value

    def set_geolocation_enabled(self, enabled: bool) -> None:
        self.geolocation_enabled = enabled

    def set_loading(self, loading: bool) -> None:
        if not self.active:
            logger.debug("Ignoring loading update on detached form", loading=loading)
            return
        self.loading = loading

    def detach(self) -> None:
        """Mark the session torn down; in-flight calls keep running but stop touching state."""
        self.active = False

    def __getitem__(self, field_id: str) -> Any:
        return self.fields[field_id]
