"""Image storage service - listing image uploads to Supabase Storage."""

import asyncio
import uuid
from typing import Callable, Optional

from supabase import Client

from src.models.form import ImageFile
from src.models.submission import UploadProgress
from src.services.supabase_client import SupabaseClient
from src.utils.errors import ImageUploadError, SupabaseError
from src.utils.logging import get_structured_logger, log_timing, mask_user_id
from src.utils.settings import Settings

logger = get_structured_logger(__name__)

IMAGE_PREFIX = "images"

ProgressCallback = Callable[[UploadProgress], None]


def build_object_path(owner_id: str, file_name: str) -> str:
    """Namespace by owner and file name; the uuid keeps repeated names apart."""
    return f"{IMAGE_PREFIX}/{owner_id}-{file_name}-{uuid.uuid4()}"


def object_path_from_url(url: str) -> Optional[str]:
    """Recover the object path from a public URL issued for our bucket."""
    marker = f"/object/public/{Settings.STORAGE_BUCKET}/"
    if marker not in url:
        return None
    return url.split(marker, 1)[1].split("?", 1)[0] or None


def _upload_blocking(client: Client, path: str, image: ImageFile) -> str:
    bucket = client.storage.from_(Settings.STORAGE_BUCKET)
    bucket.upload(
        path=path,
        file=image.content,
        file_options={"content-type": image.content_type, "upsert": "false"},
    )
    return bucket.get_public_url(path)


def _report(on_progress: Optional[ProgressCallback], progress: UploadProgress) -> None:
    logger.debug(
        f"Upload is {progress.percent:.0f}% done",
        object_path=progress.path,
        upload_state=progress.state
    )
    if on_progress is not None:
        on_progress(progress)


async def upload_image(
    client: Client,
    image: ImageFile,
    owner_id: str,
    on_progress: Optional[ProgressCallback] = None
) -> tuple[str, str]:
    """Upload one image; returns (object_path, public_url)."""
    path = build_object_path(owner_id, image.name)
    _report(on_progress, UploadProgress(path=path, state="running", total_bytes=image.size))

    try:
        # supabase-py is synchronous, so each transfer gets its own worker thread
        url = await asyncio.to_thread(_upload_blocking, client, path, image)
    except Exception as e:
        _report(on_progress, UploadProgress(path=path, state="error", total_bytes=image.size))
        raise ImageUploadError(f"Failed to upload {image.name}: {e}") from e

    _report(
        on_progress,
        UploadProgress(
            path=path,
            state="success",
            bytes_transferred=image.size,
            total_bytes=image.size
        )
    )
    return path, url


async def upload_images(
    images: list[ImageFile],
    owner_id: str,
    on_progress: Optional[ProgressCallback] = None
) -> list[str]:
    """
    Upload every image concurrently and return public URLs in selection order.

    All-or-nothing: the first failure aborts the batch with ImageUploadError.
    Uploads still in flight are awaited so that every object that did land
    can be removed again before the error propagates.
    """
    if not images:
        return []

    async with SupabaseClient() as client:
        with log_timing(
            "upload_images",
            logger=logger,
            image_count=len(images),
            owner_id=mask_user_id(owner_id)
        ):
            tasks = [
                asyncio.create_task(upload_image(client, image, owner_id, on_progress))
                for image in images
            ]
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)

            failure = next(
                (task.exception() for task in tasks if task in done and task.exception()),
                None
            )
            if failure is None:
                return [task.result()[1] for task in tasks]

            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

            uploaded = [
                task.result()[0]
                for task in tasks
                if not task.cancelled() and task.exception() is None
            ]
            logger.error(
                "Image upload failed, discarding batch",
                error=str(failure),
                image_count=len(images),
                uploaded_count=len(uploaded)
            )
            await discard_uploaded(uploaded)
            raise failure


async def remove_images(paths: list[str]) -> None:
    """Delete objects from the listing image bucket."""
    if not paths:
        return
    async with SupabaseClient() as client:
        try:
            await asyncio.to_thread(client.storage.from_(Settings.STORAGE_BUCKET).remove, paths)
            logger.info("Removed listing images", object_count=len(paths))
        except Exception as e:
            raise SupabaseError(f"Failed to remove images: {e}")


async def discard_uploaded(paths: list[str]) -> None:
    """Compensating cleanup; a failure here is logged and the original error wins."""
    try:
        await remove_images(paths)
    except SupabaseError as e:
        logger.warning(
            "Could not remove orphaned uploads",
            error=str(e),
            object_paths=paths
        )
