"""
Exhibitions: ordered pages with a feature media, attachments and a rich text body.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Optional, Sequence

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from backend.db import DocumentStore, doc_path
from shared.errors import InvalidArgumentError, NotFoundError
from shared.firebase_constants import EXHIBITIONS_COLLECTION, MEDIA_COLLECTION
from shared.types import Exhibition, MediaType, to_document

logger = logging.getLogger(__name__)

_TAG = re.compile(r"<[^>]+>")
_SPACES = re.compile(r"\s+")

EDITABLE_FIELDS = ("title", "dateAndLocation", "body", "featureMediaId", "mediaIds")


def _exhibition_path(exhibition_id: str) -> str:
    return doc_path(EXHIBITIONS_COLLECTION, exhibition_id)


def unique_ids(ids: Optional[Sequence[str]]) -> list[str]:
    """De-duplicates ids keeping their first position."""
    return list(dict.fromkeys(i for i in ids or [] if i))


def strip_html(body: Optional[str]) -> str:
    text = _TAG.sub(" ", body or "")
    return _SPACES.sub(" ", html.unescape(text)).strip()


def next_exhibition_order(store: DocumentStore) -> int:
    last = store.query(EXHIBITIONS_COLLECTION, order_by="order", descending=True, limit=1)
    last_order = last[0].data.get("order") if last else None
    if isinstance(last_order, (int, float)) and not isinstance(last_order, bool):
        return int(last_order) + 1
    return 0


def create_exhibition(
    store: DocumentStore,
    *,
    title: str,
    body: str = "",
    date_and_location: Optional[str] = None,
    feature_media_id: Optional[str] = None,
    media_ids: Optional[Sequence[str]] = None,
) -> dict:
    if not (title or "").strip():
        raise InvalidArgumentError("An exhibition needs a title.")
    exhibition_id = store.new_id(EXHIBITIONS_COLLECTION)
    exhibition = Exhibition(
        id=exhibition_id,
        title=title,
        body=body,
        date_and_location=date_and_location,
        feature_media_id=feature_media_id or None,
        media_ids=unique_ids(media_ids),
        order=next_exhibition_order(store),
    )
    data = to_document(exhibition)
    data["createdAt"] = data["updatedAt"] = SERVER_TIMESTAMP
    store.set(_exhibition_path(exhibition_id), data)
    logger.info("Created exhibition %s", exhibition_id)
    return get_exhibition(store, exhibition_id)


def update_exhibition(store: DocumentStore, exhibition_id: str, changes: dict) -> dict:
    """Applies the given camelCase field changes; unknown fields are rejected."""
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidArgumentError(f"Unknown exhibition fields: {sorted(unknown)}")
    if store.get(_exhibition_path(exhibition_id)) is None:
        raise NotFoundError(f"Exhibition not found: {exhibition_id}")

    update = dict(changes)
    if "mediaIds" in update:
        update["mediaIds"] = unique_ids(update["mediaIds"])
    if "featureMediaId" in update:
        update["featureMediaId"] = update["featureMediaId"] or None
    update["updatedAt"] = SERVER_TIMESTAMP
    store.update(_exhibition_path(exhibition_id), update)
    return get_exhibition(store, exhibition_id)


def delete_exhibition(store: DocumentStore, exhibition_id: str) -> None:
    store.delete(_exhibition_path(exhibition_id))
    logger.info("Deleted exhibition %s", exhibition_id)


def get_exhibition(store: DocumentStore, exhibition_id: str) -> dict:
    data = store.get(_exhibition_path(exhibition_id))
    if data is None:
        raise NotFoundError(f"Exhibition not found: {exhibition_id}")
    return {"id": exhibition_id, **data}


def list_exhibitions(store: DocumentStore) -> list[dict]:
    records = store.query(EXHIBITIONS_COLLECTION, order_by="order")
    return [{"id": record.id, **record.data} for record in records]


def reorder_exhibitions(store: DocumentStore, exhibition_ids: Sequence[str]) -> None:
    batch = store.batch()
    for index, exhibition_id in enumerate(exhibition_ids):
        batch.update(_exhibition_path(exhibition_id), {"order": index})
    batch.commit()


def _storage_path(entry) -> Optional[str]:
    return entry.get("storagePath") if isinstance(entry, dict) else None


def poster_path(media: Optional[dict]) -> Optional[str]:
    """Preview image of a media: the poster for videos, a WebP derivative otherwise."""
    if not media:
        return None
    paths = media.get("paths") or {}
    if media.get("type") == MediaType.VIDEO:
        return _storage_path(paths.get("poster"))
    derivatives = paths.get("derivatives") or {}
    return (
        _storage_path(derivatives.get("webp_medium"))
        or _storage_path(derivatives.get("webp_small"))
        or _storage_path(paths.get("original"))
    )


def build_admin_row(store: DocumentStore, exhibition: dict) -> dict:
    media_ids = exhibition.get("mediaIds") or []
    preview_id = exhibition.get("featureMediaId") or (media_ids[0] if media_ids else None)
    preview = store.get(doc_path(MEDIA_COLLECTION, preview_id)) if preview_id else None
    order = exhibition.get("order")
    return {
        "id": exhibition["id"],
        "title": exhibition.get("title") or "",
        "dateAndLocation": exhibition.get("dateAndLocation") or "",
        "body": strip_html(exhibition.get("body")),
        "posterPath": poster_path(preview),
        "videoCount": len(media_ids) + (1 if exhibition.get("featureMediaId") else 0),
        "order": order if isinstance(order, (int, float)) else 0,
    }


def list_admin_rows(store: DocumentStore) -> list[dict]:
    return [build_admin_row(store, exhibition) for exhibition in list_exhibitions(store)]
