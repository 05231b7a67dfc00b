"""
Read model for the public site plus the about-me and contact singletons.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from backend.db import DocumentStore, doc_path
from backend.exhibitions import list_exhibitions, strip_html, unique_ids
from backend.mediasets import items_collection, list_mediasets
from media_pipeline.asset_selectors import select_assets
from media_pipeline.asset_urls import build_storage_url
from shared.firebase_constants import (
    ABOUT_ME_COLLECTION,
    CONTACT_COLLECTION,
    MEDIA_COLLECTION,
    SITE_CONTENT_DOC_ID,
)
from shared.types import MediaSetCategory, MediaSetItem, from_document

logger = logging.getLogger(__name__)

_PARAGRAPH = re.compile(r"<p\b[^>]*>(.*?)</p>", re.IGNORECASE | re.DOTALL)


def media_assets(media: dict, bucket: str, mobile: bool = False) -> dict:
    """Selected renditions for a device class, each with its public URL."""
    return {
        key: {**asset, "url": build_storage_url(bucket, asset["storagePath"])}
        if asset
        else None
        for key, asset in select_assets(media, mobile).items()
    }


def _visible_media(
    store: DocumentStore, media_id: str, bucket: Optional[str], mobile: bool
) -> Optional[dict]:
    media = store.get(doc_path(MEDIA_COLLECTION, media_id))
    if media is None or not media.get("processed") or media.get("deletedAt"):
        return None
    media = {**media, "id": media_id}
    if bucket:
        media["assets"] = media_assets(media, bucket, mobile)
    return media


def _category_rows(
    store: DocumentStore,
    category: str,
    expand_carousels: bool,
    bucket: Optional[str],
    mobile: bool,
) -> list[dict]:
    rows = []
    for mediaset in list_mediasets(store, category):
        media = []
        for record in store.query(items_collection(mediaset["id"]), order_by="order"):
            item = from_document(MediaSetItem, record.id, record.data)
            media_ids = item.ordered_media_ids()
            if not expand_carousels:
                media_ids = [record.data["mediaId"]] if record.data.get("mediaId") else []
            resolved = [
                m
                for m in (_visible_media(store, i, bucket, mobile) for i in media_ids)
                if m
            ]
            if not resolved:
                continue

            flex = record.data.get("flex")
            primary = {**resolved[0], "flex": 1 if flex is None else flex}
            if expand_carousels:
                is_carousel = len(resolved) > 1
                primary.update(
                    {
                        "itemId": record.id,
                        "isCarouselItem": is_carousel,
                        "carouselMedia": resolved if is_carousel else None,
                    }
                )
            media.append(primary)

        if media:
            rows.append({"mediaset": mediaset, "media": media})
    return rows


def fetch_category_media(
    store: DocumentStore,
    category: str,
    bucket: Optional[str] = None,
    mobile: bool = False,
) -> list[dict]:
    """
    Media sets of a category with their visible media, in display order.

    Each entry is {"mediaset": {...}, "media": [...]}; the media list holds
    one primary media per item, carousel members listed in `carouselMedia`.
    Media that is missing, unprocessed or soft-deleted is dropped and sets
    left without media are omitted.
    With a bucket, each media also carries `assets`: the low/high (and
    poster or original) renditions chosen for the device class, with URLs.
    """
    return _category_rows(store, category, True, bucket, mobile)


def fetch_home_media_sets(
    store: DocumentStore, bucket: Optional[str] = None, mobile: bool = False
) -> list[dict]:
    return _category_rows(store, MediaSetCategory.HOME, False, bucket, mobile)


def get_about_me(store: DocumentStore) -> Optional[dict]:
    data = store.get(doc_path(ABOUT_ME_COLLECTION, SITE_CONTENT_DOC_ID))
    if data is None:
        logger.warning("No about-me document found.")
    return data


def save_about_me(
    store: DocumentStore,
    *,
    title: str,
    content: str,
    image_id: Optional[str] = None,
    education_title: str = "",
    education_content: str = "",
) -> dict:
    store.set(
        doc_path(ABOUT_ME_COLLECTION, SITE_CONTENT_DOC_ID),
        {
            "title": title,
            "content": content,
            "imageId": image_id,
            "subcontent": {
                "education": {"title": education_title, "content": education_content}
            },
        },
        merge=True,
    )
    return get_about_me(store)


def get_contact(store: DocumentStore) -> Optional[dict]:
    data = store.get(doc_path(CONTACT_COLLECTION, SITE_CONTENT_DOC_ID))
    if data is None:
        logger.warning("No contact document found.")
        return None
    items = sorted(data.get("items") or [], key=lambda item: item.get("order") or 0)
    return {"items": items}


def save_contact(store: DocumentStore, items: list[dict]) -> dict:
    """Trims entries, drops empty ones and renumbers `order` by position."""
    cleaned = []
    for item in items:
        label = (item.get("label") or "").strip()
        url = (item.get("url") or "").strip()
        if not label and not url:
            continue
        cleaned.append(
            {"id": item.get("id"), "label": label, "url": url, "order": len(cleaned)}
        )
    store.set(
        doc_path(CONTACT_COLLECTION, SITE_CONTENT_DOC_ID), {"items": cleaned}, merge=True
    )
    return {"items": cleaned}


def body_paragraphs(body: Optional[str]) -> list[str]:
    trimmed = (body or "").strip()
    if not trimmed:
        return []
    paragraphs = [p.strip() for p in _PARAGRAPH.findall(trimmed) if p.strip()]
    if paragraphs:
        return paragraphs
    text = strip_html(trimmed)
    return [text] if text else []


def fetch_public_exhibitions(store: DocumentStore) -> list[dict]:
    """Exhibitions in display order with their non-deleted media, feature first."""
    rows = []
    for exhibition in list_exhibitions(store):
        media_ids = unique_ids(
            [exhibition.get("featureMediaId")] + list(exhibition.get("mediaIds") or [])
        )
        media_items = []
        for media_id in media_ids:
            media = store.get(doc_path(MEDIA_COLLECTION, media_id))
            if media is not None and not media.get("deletedAt"):
                media_items.append({**media, "id": media_id})
        rows.append(
            {
                "id": exhibition["id"],
                "title": exhibition.get("title") or "",
                "meta": (exhibition.get("dateAndLocation") or "").strip() or None,
                "paragraphs": body_paragraphs(exhibition.get("body")),
                "mediaItems": media_items or None,
            }
        )
    return rows
