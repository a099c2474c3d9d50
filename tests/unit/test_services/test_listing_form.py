"""Tests for the listing form state holder."""

import pytest

from src.models.form import SelectImages, SetFlag, SetNumber, SetText
from src.models.listing import Listing
from src.services.listing_form import ListingForm, default_form_fields, to_field_update
from src.utils.errors import ListingValidationError
from tests.utils.factories import create_image_files


@pytest.mark.unit
class TestToFieldUpdate:
    def test_flags(self):
        assert to_field_update("offer", "true") == SetFlag(field="offer", value=True)
        assert to_field_update("offer", "false") == SetFlag(field="offer", value=False)
        assert to_field_update("parking", True) == SetFlag(field="parking", value=True)

    def test_numbers_and_text(self):
        assert to_field_update("bedrooms", 3) == SetNumber(field="bedrooms", value=3)
        assert to_field_update("latitude", 12.34) == SetNumber(field="latitude", value=12.34)
        assert to_field_update("name", "Sunny Loft") == SetText(field="name", value="Sunny Loft")

    def test_file_selection(self):
        files = create_image_files(2)
        update = to_field_update("images", files)
        assert isinstance(update, SelectImages)
        assert [f.name for f in update.files] == ["photo0.jpg", "photo1.jpg"]

    def test_unsupported_value(self):
        with pytest.raises(ListingValidationError):
            to_field_update("name", {"nested": True})


@pytest.mark.unit
class TestListingForm:
    def test_defaults(self):
        form = ListingForm()

        assert form.fields == default_form_fields()
        assert form["type"] == "rent"
        assert form.images == []
        assert form.loading is False
        assert form.active is True
        assert form.geolocation_enabled is False

    def test_mutate_sets_field(self):
        form = ListingForm()
        form.mutate("name", "Sunny Loft Downtown")
        form.mutate("offer", "true")
        form.mutate("bedrooms", 4)

        assert form["name"] == "Sunny Loft Downtown"
        assert form["offer"] is True
        assert form["bedrooms"] == 4

    def test_mutate_stores_invalid_values(self):
        """Validation is deferred to submission."""
        form = ListingForm()
        form.mutate("regular_price", "abc")
        assert form["regular_price"] == "abc"

    def test_unknown_field_rejected(self):
        with pytest.raises(ListingValidationError):
            ListingForm().mutate("colour", "red")

    def test_image_selection_replaces_previous(self):
        """Selecting images twice keeps only the second selection."""
        form = ListingForm()
        form.mutate("images", create_image_files(3))
        second = create_image_files(1)
        form.mutate("images", second)

        assert form.images == second

    def test_apply_dict_command(self):
        form = ListingForm()
        form.apply({"kind": "text", "field": "address", "value": "1 Main St"})
        assert form["address"] == "1 Main St"

    def test_from_listing(self, listing_row):
        listing = Listing.from_row(listing_row)
        form = ListingForm.from_listing(listing, geolocation_enabled=True)

        assert form["address"] == listing.location
        assert form["latitude"] == listing.geolocation.lat
        assert form["longitude"] == listing.geolocation.lng
        assert form["discounted_price"] == 0
        assert form.image_urls == listing.image_urls
        assert form.owner_ref == listing.user_ref
        assert form.geolocation_enabled is True

    def test_detached_form_ignores_loading(self):
        form = ListingForm()
        form.set_loading(True)
        form.detach()
        form.set_loading(False)

        assert form.loading is True
        assert form.active is False

    def test_set_geolocation_enabled(self):
        form = ListingForm()
        form.set_geolocation_enabled(True)
        assert form.geolocation_enabled is True
