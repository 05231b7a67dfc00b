"""
Works organizer: media sets per category and the ordered items inside them.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from backend.db import DocumentStore, doc_path
from shared.constants import MAX_ITEM_FLEX, MIN_CAROUSEL_MEDIA, MIN_ITEM_FLEX
from shared.errors import InvalidArgumentError, NotFoundError
from shared.firebase_constants import MEDIASET_ITEMS_COLLECTION, MEDIASETS_COLLECTION
from shared.types import MediaSet, MediaSetCategory, to_document

logger = logging.getLogger(__name__)


def _mediaset_path(mediaset_id: str) -> str:
    return doc_path(MEDIASETS_COLLECTION, mediaset_id)


def items_collection(mediaset_id: str) -> str:
    return doc_path(MEDIASETS_COLLECTION, mediaset_id, MEDIASET_ITEMS_COLLECTION)


def _item_path(mediaset_id: str, item_id: str) -> str:
    return doc_path(items_collection(mediaset_id), item_id)


def _validate_category(category: str) -> str:
    try:
        return MediaSetCategory(category).value
    except ValueError as e:
        raise InvalidArgumentError(f"Unknown category: {category}") from e


def _require_mediaset(store: DocumentStore, mediaset_id: str) -> dict:
    mediaset = store.get(_mediaset_path(mediaset_id))
    if mediaset is None:
        raise NotFoundError(f"Media set not found: {mediaset_id}")
    return mediaset


def list_mediasets(store: DocumentStore, category: str) -> list[dict]:
    """Live media sets of a category, ordered by `ordering`."""
    category = _validate_category(category)
    records = store.query(
        MEDIASETS_COLLECTION,
        filters=[("category", "==", category)],
        order_by="ordering",
    )
    return [
        {"id": record.id, **record.data}
        for record in records
        if not record.data.get("deletedAt")
    ]


def create_mediaset(store: DocumentStore, category: str, position: str = "end") -> dict:
    """
    Adds an empty media set before or after the existing ones.

    Args:
        store (DocumentStore): Target document store.
        category (str): One of the media set categories.
        position (str): "start" or "end".

    Returns:
        dict: The new media set document including its id.
    """
    if position not in ("start", "end"):
        raise InvalidArgumentError(f"Unknown position: {position}")
    existing = list_mediasets(store, category)
    orderings = [ms.get("ordering") or 0 for ms in existing]
    if not orderings:
        ordering = 0
    elif position == "start":
        ordering = min(orderings) - 1
    else:
        ordering = max(orderings) + 1

    mediaset_id = store.new_id(MEDIASETS_COLLECTION)
    doc = to_document(
        MediaSet(mediaset_id, category=_validate_category(category), ordering=ordering)
    )
    doc.update({"createdAt": SERVER_TIMESTAMP, "modifiedAt": SERVER_TIMESTAMP})
    store.set(_mediaset_path(mediaset_id), doc)
    logger.info("Created media set %s in %s at %s", mediaset_id, category, position)
    return {"id": mediaset_id, **store.get(_mediaset_path(mediaset_id))}


def reorder_mediasets(store: DocumentStore, mediaset_ids: Sequence[str]) -> None:
    batch = store.batch()
    for index, mediaset_id in enumerate(mediaset_ids):
        batch.update(_mediaset_path(mediaset_id), {"ordering": index})
    batch.commit()


def soft_delete_mediaset(store: DocumentStore, mediaset_id: str) -> None:
    _require_mediaset(store, mediaset_id)
    store.update(_mediaset_path(mediaset_id), {"deletedAt": SERVER_TIMESTAMP})
    logger.info("Soft-deleted media set %s", mediaset_id)


def list_items(store: DocumentStore, mediaset_id: str) -> list[dict]:
    records = store.query(items_collection(mediaset_id), order_by="order")
    return [{"id": record.id, **record.data} for record in records]


def _next_item_order(store: DocumentStore, mediaset_id: str) -> int:
    last = store.query(
        items_collection(mediaset_id), order_by="order", descending=True, limit=1
    )
    max_order = (last[0].data.get("order") or 0) if last else -1
    return max_order + 1


def add_single_item(store: DocumentStore, mediaset_id: str, media_id: str) -> dict:
    """Adds one media as its own slot; the item id is the media id."""
    if not media_id:
        raise InvalidArgumentError("mediaId is required.")
    _require_mediaset(store, mediaset_id)
    item = {
        "mediaId": media_id,
        "order": _next_item_order(store, mediaset_id),
        "flex": 1,
    }
    store.set(_item_path(mediaset_id, media_id), item)
    return {"id": media_id, **item}


def _carousel_refs(media_ids: Sequence[str]) -> list[dict]:
    media_ids = [media_id for media_id in media_ids if media_id]
    if len(media_ids) < MIN_CAROUSEL_MEDIA:
        raise InvalidArgumentError(
            f"A carousel needs at least {MIN_CAROUSEL_MEDIA} media."
        )
    return [{"mediaId": media_id, "order": index} for index, media_id in enumerate(media_ids)]


def add_carousel_item(
    store: DocumentStore, mediaset_id: str, media_ids: Sequence[str]
) -> dict:
    """Adds a carousel slot whose members keep the selection order."""
    refs = _carousel_refs(media_ids)
    _require_mediaset(store, mediaset_id)
    item_id = store.new_id(items_collection(mediaset_id))
    item = {
        "mediaId": refs[0]["mediaId"],
        "mediaItems": refs,
        "order": _next_item_order(store, mediaset_id),
        "flex": 1,
    }
    store.set(_item_path(mediaset_id, item_id), item)
    return {"id": item_id, **item}


def update_carousel(
    store: DocumentStore, mediaset_id: str, item_id: str, media_ids: Sequence[str]
) -> dict:
    refs = _carousel_refs(media_ids)
    update = {"mediaId": refs[0]["mediaId"], "mediaItems": refs}
    store.update(_item_path(mediaset_id, item_id), update)
    return {"id": item_id, **update}


def remove_item(store: DocumentStore, mediaset_id: str, item_id: str) -> None:
    store.delete(_item_path(mediaset_id, item_id))


def reorder_items(store: DocumentStore, mediaset_id: str, item_ids: Sequence[str]) -> None:
    batch = store.batch()
    for index, item_id in enumerate(item_ids):
        batch.update(_item_path(mediaset_id, item_id), {"order": index})
    batch.commit()


def set_item_flex(
    store: DocumentStore, mediaset_id: str, item_id: str, flex: int
) -> None:
    if not MIN_ITEM_FLEX <= flex <= MAX_ITEM_FLEX:
        raise InvalidArgumentError(
            f"flex must be between {MIN_ITEM_FLEX} and {MAX_ITEM_FLEX}."
        )
    store.update(_item_path(mediaset_id, item_id), {"flex": flex})


def _item_media_ids(item: dict) -> Iterable[str]:
    if item.get("mediaId"):
        yield item["mediaId"]
    for entry in item.get("mediaItems") or []:
        if isinstance(entry, dict) and entry.get("mediaId"):
            yield entry["mediaId"]


def assigned_media_ids(store: DocumentStore, category: str) -> set[str]:
    """Media already placed in any live media set of the category."""
    assigned: set[str] = set()
    for mediaset in list_mediasets(store, category):
        for record in store.query(items_collection(mediaset["id"])):
            assigned.update(_item_media_ids(record.data))
    return assigned


def find_mediaset(store: DocumentStore, mediaset_id: str) -> Optional[dict]:
    mediaset = store.get(_mediaset_path(mediaset_id))
    return {"id": mediaset_id, **mediaset} if mediaset is not None else None
