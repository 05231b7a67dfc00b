"""
Media documents: delete validation, download URLs, links and upload waiting.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Callable, Optional
from urllib.parse import urlparse

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from backend.db import DocumentStore, doc_path
from backend.storage import StorageClient
from media_pipeline.asset_urls import (
    ensure_token_download_url,
    rotate_token_download_url,
)
from shared.constants import (
    DEFAULT_LINK_FONT_COLOR,
    PREFERRED_IMAGE_DERIVATIVE,
    PREFERRED_VIDEO_DERIVATIVE,
)
from shared.errors import (
    DeadlineExceededError,
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
)
from shared.firebase_constants import MEDIA_COLLECTION, MEDIASETS_COLLECTION
from shared.types import (
    DeleteValidationResult,
    MediaLink,
    MediaLinkProvider,
    MediaType,
    to_document,
)

logger = logging.getLogger(__name__)

REFERENCED_BY_MEDIASET = "media-referenced-by-mediaset"

_HEX_COLOR = re.compile(r"^#[0-9a-f]{6}$")


def _media_path(media_id: str) -> str:
    return doc_path(MEDIA_COLLECTION, media_id)


def _require_media_id(media_id: Optional[str]) -> str:
    if not media_id:
        raise InvalidArgumentError("mediaId-required")
    return media_id


def _references_live_mediaset(store: DocumentStore, media: dict) -> bool:
    mediaset_id = media.get("mediaSetId")
    if not mediaset_id:
        return False
    mediaset = store.get(doc_path(MEDIASETS_COLLECTION, mediaset_id))
    return mediaset is not None and not mediaset.get("deletedAt")


def is_media_referenced(store: DocumentStore, media_id: str) -> bool:
    media = store.get(_media_path(media_id))
    if media is None:
        return False
    return _references_live_mediaset(store, media)


def validate_delete(
    store: DocumentStore, media_id: Optional[str]
) -> DeleteValidationResult:
    """
    Soft-deletes a media document unless a live media set still references it.

    A refusal is a normal result, not an error, and writes nothing.
    """
    media_id = _require_media_id(media_id)
    media = store.get(_media_path(media_id))
    if media is None:
        raise NotFoundError("media-not-found")

    if _references_live_mediaset(store, media):
        return DeleteValidationResult(allowed=False, reason=REFERENCED_BY_MEDIASET)

    store.update(
        _media_path(media_id),
        {"deletedAt": SERVER_TIMESTAMP, "modifiedAt": SERVER_TIMESTAMP},
    )
    logger.info("Soft-deleted media %s", media_id)
    return DeleteValidationResult(allowed=True)


def preferred_derivative_path(media: dict) -> str:
    """Storage path of the derivative offered for download."""
    derivatives = (media.get("paths") or {}).get("derivatives") or {}
    if not derivatives:
        raise FailedPreconditionError("no-derivatives")
    preferred_key = (
        PREFERRED_VIDEO_DERIVATIVE
        if media.get("type") == MediaType.VIDEO
        else PREFERRED_IMAGE_DERIVATIVE
    )
    entry = derivatives.get(preferred_key) or next(iter(derivatives.values()))
    storage_path = entry.get("storagePath") if isinstance(entry, dict) else entry
    if not storage_path:
        raise FailedPreconditionError("no-derivatives")
    return storage_path


def _load_downloadable_media(store: DocumentStore, media_id: Optional[str]) -> dict:
    media_id = _require_media_id(media_id)
    media = store.get(_media_path(media_id))
    if media is None:
        raise NotFoundError("media-not-found")
    if media.get("deletedAt"):
        raise FailedPreconditionError("media-deleted")
    return media


def _token_url(
    storage: StorageClient, storage_path: str, resolver: Callable[..., str]
) -> str:
    try:
        return resolver(storage, storage_path)
    except FileNotFoundError as e:
        raise NotFoundError("file-not-found") from e


def generate_download_url(
    store: DocumentStore, storage: StorageClient, media_id: Optional[str]
) -> dict:
    """Returns the stored download URL, creating a token URL on first use."""
    media = _load_downloadable_media(store, media_id)
    if media.get("downloadURL"):
        return {"downloadURL": media["downloadURL"]}

    url = _token_url(storage, preferred_derivative_path(media), ensure_token_download_url)
    store.update(
        _media_path(media_id),
        {"downloadURL": url, "modifiedAt": SERVER_TIMESTAMP},
    )
    return {"downloadURL": url}


def regenerate_download_url(
    store: DocumentStore, storage: StorageClient, media_id: Optional[str]
) -> dict:
    """Rotates the download token so previously shared links stop working."""
    media = _load_downloadable_media(store, media_id)
    url = _token_url(storage, preferred_derivative_path(media), rotate_token_download_url)
    store.update(
        _media_path(media_id),
        {"downloadURL": url, "modifiedAt": SERVER_TIMESTAMP},
    )
    logger.info("Rotated download token for media %s", media_id)
    return {"downloadURL": url}


def sanitize_hex_color(value: Optional[str]) -> str:
    color = (value or "").strip().lower()
    return color if _HEX_COLOR.match(color) else DEFAULT_LINK_FONT_COLOR


def is_valid_link_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def set_media_link(
    store: DocumentStore,
    media_id: str,
    provider: Optional[str],
    url: Optional[str] = None,
    font_color: Optional[str] = None,
) -> Optional[dict]:
    """
    Sets or clears the marketplace link shown over a media item.

    `provider` of None or "none" clears the link. Returns the stored link.
    """
    if not provider or provider == "none":
        store.update(
            _media_path(media_id), {"link": None, "modifiedAt": SERVER_TIMESTAMP}
        )
        return None

    if provider not in (MediaLinkProvider.ZORA, MediaLinkProvider.OBJKT):
        raise InvalidArgumentError(f"Unknown link provider: {provider}")
    url = (url or "").strip()
    if not url:
        raise InvalidArgumentError("A link URL is required.")
    if not is_valid_link_url(url):
        raise InvalidArgumentError("The link URL must be http or https.")

    link = to_document(
        MediaLink(str(provider), url, sanitize_hex_color(font_color)),
        exclude=("updated_at",),
    )
    store.update(
        _media_path(media_id),
        {
            "link": {**link, "updatedAt": SERVER_TIMESTAMP},
            "modifiedAt": SERVER_TIMESTAMP,
        },
    )
    return link


def list_media(
    store: DocumentStore,
    *,
    media_type: Optional[str] = None,
    include_deleted: bool = False,
) -> list[dict]:
    """Media library listing, newest first."""
    filters = [("type", "==", media_type)] if media_type else []
    records = store.query(
        MEDIA_COLLECTION, filters=filters, order_by="createdAt", descending=True
    )
    return [
        {"id": record.id, **record.data}
        for record in records
        if include_deleted or not record.data.get("deletedAt")
    ]


def find_media_by_upload_id(store: DocumentStore, upload_id: str) -> Optional[dict]:
    records = store.query(
        MEDIA_COLLECTION, filters=[("uploadId", "==", upload_id)], limit=1
    )
    if not records:
        return None
    return {"id": records[0].id, **records[0].data}


def wait_for_media_by_upload_id(
    store: DocumentStore,
    upload_id: str,
    *,
    require_processed: bool = False,
    timeout: float = 120.0,
    poll_interval: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> dict:
    """
    Polls until the storage trigger has created (and optionally processed)
    the media document for an upload.

    Raises DeadlineExceededError after `timeout` seconds.
    """
    if not upload_id:
        raise InvalidArgumentError("uploadId is required.")
    deadline = clock() + timeout
    while True:
        media = find_media_by_upload_id(store, upload_id)
        if media is not None and (media.get("processed") or not require_processed):
            return media
        if clock() >= deadline:
            raise DeadlineExceededError("Timed out waiting for media processing.")
        sleep(poll_interval)
