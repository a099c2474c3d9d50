"""Listing submission workflows - load for edit, edit, create and delete.

Every workflow returns a SubmissionResult. Service errors are caught at this
boundary and turned into a user-facing notification; nothing is retried.
"""

import math
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError
from ulid import ULID

from src.models.listing import (
    EDITABLE_FIELDS,
    MAX_IMAGES,
    Geolocation,
    Listing,
    ListingDetails,
)
from src.models.submission import ErrorCategory, Notification, SubmissionResult
from src.models.user import AuthenticatedUser
from src.services.geocoding import geocode_address
from src.services.image_storage import (
    ProgressCallback,
    discard_uploaded,
    object_path_from_url,
    upload_images,
)
from src.services.listing_browser import get_listing
from src.services.listing_form import ListingForm
from src.services.supabase_client import (
    create_listing_row,
    delete_listing_row,
    get_listing_row,
    overwrite_listing_row,
)
from src.utils.errors import (
    AddressResolutionError,
    AuthorizationError,
    ImageUploadError,
    ListingNotFoundError,
    ListingValidationError,
    MarketplaceError,
    PersistenceError,
    SupabaseError,
)
from src.utils.logging import get_structured_logger, log_timing, mask_user_id
from src.utils.settings import Settings

logger = get_structured_logger(__name__)

HOME_PATH = "/"
PROFILE_PATH = "/profile"

PRICE_ORDER_MESSAGE = "Discounted price needs to be less than the regular price"
NOT_OWNER_MESSAGE = "You can not edit that listing"
NOT_FOUND_MESSAGE = "Listing does not exist"
UPLOAD_FAILED_MESSAGE = "Images not uploaded"
SAVE_FAILED_MESSAGE = "Could not save listing"

_CATEGORIES: list[tuple[type, ErrorCategory]] = [
    (AuthorizationError, ErrorCategory.AUTHORIZATION),
    (ListingNotFoundError, ErrorCategory.NOT_FOUND),
    (ListingValidationError, ErrorCategory.VALIDATION),
    (AddressResolutionError, ErrorCategory.ADDRESS_RESOLUTION),
    (ImageUploadError, ErrorCategory.UPLOAD),
    (SupabaseError, ErrorCategory.PERSISTENCE),
]

# Persist step: (listing_id, listing) -> stored row
Writer = Callable[[str, Listing], Awaitable[dict]]


def generate_listing_id() -> str:
    """Generate a text-based listing ID (ULID)."""
    return str(ULID())


def categorize(error: MarketplaceError) -> ErrorCategory:
    for error_type, category in _CATEGORIES:
        if isinstance(error, error_type):
            return category
    return ErrorCategory.PERSISTENCE


def failure_result(
    error: MarketplaceError,
    listing_id: Optional[str] = None,
    warnings: Optional[list[Notification]] = None
) -> SubmissionResult:
    """Convert a workflow error into a failed SubmissionResult."""
    category = categorize(error)
    messages = {
        ErrorCategory.AUTHORIZATION: NOT_OWNER_MESSAGE,
        ErrorCategory.NOT_FOUND: NOT_FOUND_MESSAGE,
        ErrorCategory.UPLOAD: UPLOAD_FAILED_MESSAGE,
        ErrorCategory.PERSISTENCE: SAVE_FAILED_MESSAGE,
    }
    redirect = HOME_PATH if category in (ErrorCategory.AUTHORIZATION, ErrorCategory.NOT_FOUND) else None
    return SubmissionResult(
        ok=False,
        listing_id=listing_id,
        redirect_to=redirect,
        notification=Notification(level="error", message=messages.get(category, str(error))),
        error_category=category,
        warnings=warnings or [],
    )


async def load_listing_for_edit(listing_id: str, user: AuthenticatedUser) -> Listing:
    """Read a listing and refuse it unless the acting user owns it."""
    listing = await get_listing(listing_id)
    if listing.user_ref != user.user_id:
        logger.warning(
            "Edit refused, user does not own listing",
            listing_id=listing_id,
            user_id=mask_user_id(user.user_id)
        )
        raise AuthorizationError(NOT_OWNER_MESSAGE)
    return listing


async def open_edit_form(
    listing_id: str,
    user: AuthenticatedUser,
    geolocation_enabled: bool = False
) -> tuple[Optional[ListingForm], Optional[SubmissionResult]]:
    """Produce a populated form, or the failure that redirects the caller away."""
    try:
        listing = await load_listing_for_edit(listing_id, user)
    except MarketplaceError as e:
        return None, failure_result(e, listing_id=listing_id)
    return ListingForm.from_listing(listing, geolocation_enabled=geolocation_enabled), None


def _to_int(value: Any) -> Optional[int]:
    """Prices are whole numbers; fractions, infinities and NaN are rejected, not truncated."""
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ListingValidationError(f"Not a number: {value!r}")
    if not math.isfinite(number) or not number.is_integer():
        raise ListingValidationError(f"Not a whole number: {value!r}")
    return int(number)


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid value").removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


def validate_details(form: ListingForm) -> ListingDetails:
    """Price ordering first, then the field rules; no network involved."""
    regular_price = _to_int(form["regular_price"])
    discounted_price = _to_int(form["discounted_price"])
    if regular_price is not None and discounted_price is not None and discounted_price >= regular_price:
        raise ListingValidationError(PRICE_ORDER_MESSAGE)

    try:
        return ListingDetails.model_validate({
            "type": form["type"],
            "name": form["name"],
            "bedrooms": form["bedrooms"],
            "bathrooms": form["bathrooms"],
            "parking": form["parking"],
            "furnished": form["furnished"],
            "offer": form["offer"],
            "regular_price": regular_price,
            "discounted_price": discounted_price,
        })
    except ValidationError as e:
        raise ListingValidationError(_first_error(e)) from e


def check_image_count(form: ListingForm, warnings: list[Notification]) -> None:
    """Reject more than MAX_IMAGES selections, or only warn when the limit is not enforced."""
    if len(form.images) <= MAX_IMAGES:
        return
    message = f"Max {MAX_IMAGES} images"
    if Settings.ENFORCE_IMAGE_LIMIT:
        raise ListingValidationError(message)
    logger.warning("Image limit exceeded, continuing", image_count=len(form.images))
    warnings.append(Notification(level="error", message=message))


async def resolve_location(form: ListingForm) -> tuple[Geolocation, str]:
    """Geocode the address, or take the typed coordinates verbatim."""
    if form.geolocation_enabled:
        result = await geocode_address(str(form["address"]))
        return result.geolocation, result.formatted_address

    try:
        geolocation = Geolocation(lat=form["latitude"], lng=form["longitude"])
    except ValidationError as e:
        raise ListingValidationError(_first_error(e)) from e
    location = str(form["address"]).strip()
    if not location:
        raise ListingValidationError("Please enter an address")
    return geolocation, location


def assemble_listing(
    details: ListingDetails,
    location: str,
    geolocation: Geolocation,
    image_urls: list[str],
    user_ref: str,
    listing_id: str
) -> Listing:
    """Merge validated fields with resolved location and images; form-only keys are dropped."""
    data = details.model_dump()
    if not details.offer:
        data.pop("discounted_price", None)
    try:
        return Listing(
            **data,
            listing_id=listing_id,
            location=location,
            geolocation=geolocation,
            image_urls=image_urls,
            user_ref=user_ref,
        )
    except ValidationError as e:
        raise ListingValidationError(_first_error(e)) from e


async def _overwrite(listing_id: str, listing: Listing) -> dict:
    return await overwrite_listing_row(listing_id, listing.user_ref, listing.to_document())


async def _patch(listing_id: str, listing: Listing) -> dict:
    """Merge only allow-listed fields into the stored document."""
    row = await get_listing_row(listing_id)
    if row is None:
        raise ListingNotFoundError(f"Listing not found: {listing_id}")
    document = dict(row.get("document") or {})
    updates = listing.to_document()
    for field in EDITABLE_FIELDS:
        if field in updates:
            document[field] = updates[field]
        else:
            document.pop(field, None)
    return await overwrite_listing_row(listing_id, listing.user_ref, document)


async def _create(listing_id: str, listing: Listing) -> dict:
    return await create_listing_row(listing_id, listing.user_ref, listing.to_document())


def edit_writer() -> Writer:
    return _patch if Settings.LISTING_WRITE_MODE == "patch" else _overwrite


async def _commit(
    form: ListingForm,
    user: AuthenticatedUser,
    listing_id: str,
    write: Writer,
    warnings: list[Notification],
    require_images: bool = False,
    on_progress: Optional[ProgressCallback] = None
) -> Listing:
    details = validate_details(form)
    check_image_count(form, warnings)
    if require_images and not form.images:
        raise ListingValidationError("Please select at least one image")

    geolocation, location = await resolve_location(form)

    uploaded: list[str] = []
    if form.images:
        uploaded = await upload_images(form.images, user.user_id, on_progress)
        image_urls = uploaded
    else:
        image_urls = list(form.image_urls)

    try:
        listing = assemble_listing(details, location, geolocation, image_urls, user.user_id, listing_id)
        with log_timing("write_listing", logger=logger, listing_id=listing_id):
            row = await write(listing_id, listing)
    except SupabaseError as e:
        await _discard_urls(uploaded)
        raise PersistenceError(str(e)) from e
    except MarketplaceError:
        await _discard_urls(uploaded)
        raise

    stored = Listing.from_row(row) if row.get("document") else listing
    form.image_urls = list(stored.image_urls)
    form.images = []
    return stored


async def _discard_urls(urls: list[str]) -> None:
    paths = [path for path in (object_path_from_url(url) for url in urls) if path]
    if paths:
        await discard_uploaded(paths)


def _success(listing: Listing, warnings: list[Notification], message: str) -> SubmissionResult:
    return SubmissionResult(
        ok=True,
        listing_id=listing.listing_id,
        redirect_to=listing.canonical_path,
        notification=Notification(level="success", message=message),
        warnings=warnings,
    )


async def submit_listing_edit(
    listing_id: str,
    form: ListingForm,
    user: AuthenticatedUser,
    on_progress: Optional[ProgressCallback] = None
) -> SubmissionResult:
    """Validate, geocode, upload and overwrite an existing listing owned by user."""
    warnings: list[Notification] = []
    form.set_loading(True)
    try:
        if form.owner_ref is None:
            # form was never loaded from the store, so ownership is still unchecked
            form.owner_ref = (await load_listing_for_edit(listing_id, user)).user_ref
        if form.owner_ref != user.user_id:
            raise AuthorizationError(NOT_OWNER_MESSAGE)
        with log_timing("submit_listing_edit", logger=logger, listing_id=listing_id):
            listing = await _commit(form, user, listing_id, edit_writer(), warnings, on_progress=on_progress)
    except MarketplaceError as e:
        logger.warning(
            "Listing edit rejected",
            listing_id=listing_id,
            error_category=categorize(e).value,
            error=str(e)
        )
        return failure_result(e, listing_id=listing_id, warnings=warnings)
    finally:
        form.set_loading(False)

    logger.info("Listing saved", listing_id=listing_id, image_count=len(listing.image_urls))
    return _success(listing, warnings, "Listing saved")


async def submit_new_listing(
    form: ListingForm,
    user: AuthenticatedUser,
    on_progress: Optional[ProgressCallback] = None
) -> SubmissionResult:
    """Create a listing owned by user."""
    warnings: list[Notification] = []
    listing_id = generate_listing_id()
    form.set_loading(True)
    try:
        with log_timing("submit_new_listing", logger=logger, listing_id=listing_id):
            listing = await _commit(
                form, user, listing_id, _create, warnings,
                require_images=True, on_progress=on_progress
            )
    except MarketplaceError as e:
        logger.warning(
            "Listing creation rejected",
            error_category=categorize(e).value,
            error=str(e)
        )
        return failure_result(e, warnings=warnings)
    finally:
        form.set_loading(False)

    form.owner_ref = user.user_id
    logger.info("Listing created", listing_id=listing_id, user_id=mask_user_id(user.user_id))
    return _success(listing, warnings, "Listing saved")


async def delete_listing(listing_id: str, user: AuthenticatedUser) -> SubmissionResult:
    """Delete an owned listing, then its images."""
    try:
        listing = await load_listing_for_edit(listing_id, user)
        await delete_listing_row(listing_id)
    except SupabaseError as e:
        return failure_result(PersistenceError(str(e)), listing_id=listing_id)
    except MarketplaceError as e:
        return failure_result(e, listing_id=listing_id)

    await _discard_urls(listing.image_urls)
    logger.info("Listing deleted", listing_id=listing_id, user_id=mask_user_id(user.user_id))
    return SubmissionResult(
        ok=True,
        listing_id=listing_id,
        redirect_to=PROFILE_PATH,
        notification=Notification(level="success", message="Successfully deleted listing"),
    )
