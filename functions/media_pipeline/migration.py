# Copyright 2025 The Studio Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""Converts legacy `artworks` documents into media sets plus media documents."""

import logging
import time
from datetime import datetime, timezone

from backend.db import DocumentStore, doc_path
from shared.firebase_constants import (
    LEGACY_ARTWORKS_COLLECTION,
    MEDIA_COLLECTION,
    MEDIASETS_COLLECTION,
)
from shared.types import MediaSet, MediaType, to_document

logger = logging.getLogger(__name__)


def _mediaset_from_artwork(mediaset_id: str, old: dict, now: datetime) -> dict:
    ordering = old.get("ordering")
    mediaset = MediaSet(
        id=mediaset_id,
        title=old.get("title") or "",
        description=old.get("description") or "",
        owner_uid=old.get("ownerUID"),
        ordering=ordering if ordering is not None else int(time.time() * 1000),
        created_at=old.get("created_at") or now,
        modified_at=old.get("modified_at") or now,
        published_at=old.get("published_at") or now,
        deleted_at=old.get("deleted_at"),
    )
    # Migrated documents keep their id as a field.
    return to_document(mediaset, exclude=())


def _media_from_image_url(
    media_id: str, mediaset_id: str, image_url: str, old: dict, now: datetime
) -> dict:
    # The storage object behind a legacy URL is unknown, so the media stays
    # unprocessed and only carries the URL.
    return {
        "id": media_id,
        "mediaSetId": mediaset_id,
        "type": MediaType.IMAGE.value,
        "storagePath": "",
        "paths": {"original": image_url, "derivatives": {}},
        "downloadURL": image_url,
        "createdAt": old.get("created_at") or now,
        "modifiedAt": now,
        "processed": False,
    }


def migrate_artworks_to_assets(store: DocumentStore, dry_run: bool = False) -> dict:
    """
    Writes one media set per artwork and one media document per image URL.

    Args:
        store (DocumentStore): Target document store.
        dry_run (bool): Log what would be written without writing it.

    Returns:
        dict: {"success": True, "migrated": <number of artworks>}.
    """
    artworks = store.query(LEGACY_ARTWORKS_COLLECTION)
    logger.info("Found %d artworks to migrate.", len(artworks))

    for artwork in artworks:
        old = artwork.data
        now = datetime.now(timezone.utc)
        mediaset_id = store.new_id(MEDIASETS_COLLECTION)
        image_urls = old.get("images") if isinstance(old.get("images"), list) else []

        if dry_run:
            logger.info(
                "[dry-run] artwork %s -> mediaset with %d images",
                artwork.id,
                len(image_urls),
            )
            continue

        store.set(
            doc_path(MEDIASETS_COLLECTION, mediaset_id),
            _mediaset_from_artwork(mediaset_id, old, now),
        )
        for image_url in image_urls:
            media_id = store.new_id(MEDIA_COLLECTION)
            store.set(
                doc_path(MEDIA_COLLECTION, media_id),
                _media_from_image_url(media_id, mediaset_id, image_url, old, now),
            )
        logger.info("Migrated artwork %s -> mediaset %s", artwork.id, mediaset_id)

    return {"success": True, "migrated": len(artworks)}
