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

"""
Derivative generation for uploaded media.

Each run creates the media document first (processed=False) so clients can
follow `processing.stage` / `processing.progress`, then generates and uploads
the derivatives, deletes the original upload and marks the document processed.
A failure leaves the document unprocessed and propagates to the caller.
"""

from __future__ import annotations

import logging
import math
import os
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from backend.db import DocumentStore, doc_path
from backend.storage import StorageClient
from media_pipeline import ffmpeg, images
from media_pipeline.uploads import UploadMetadata, parse_upload_metadata
from shared.constants import (
    DERIVATIVES_PREFIX,
    IMAGE_UPLOAD_PREFIX,
    MAX_CONCURRENT_TRANSCODES,
    VIDEO_CODEC,
    VIDEO_RESOLUTIONS,
    VIDEO_UPLOAD_PREFIX,
)
from shared.firebase_constants import MEDIA_COLLECTION
from shared.types import (
    AssetFile,
    AssetPaths,
    Media,
    MediaOrigin,
    MediaProcessing,
    MediaType,
    ProcessingStage,
    to_document,
)

logger = logging.getLogger(__name__)

# Signed derivative URLs are effectively permanent.
SIGNED_URL_EXPIRY = datetime(2500, 3, 1, tzinfo=timezone.utc)

IMAGE_STAGE_PROGRESS = {
    ProcessingStage.CREATED: 20,
    ProcessingStage.DOWNLOAD_START: 30,
    ProcessingStage.DOWNLOADED: 35,
    ProcessingStage.VARIANTS_READY: 55,
    ProcessingStage.DERIVATIVES_READY: 75,
    ProcessingStage.ORIGINAL_DELETED: 85,
    ProcessingStage.DONE: 100,
}

VIDEO_STAGE_PROGRESS = {
    ProcessingStage.CREATED: 15,
    ProcessingStage.DOWNLOAD_START: 20,
    ProcessingStage.DOWNLOADED: 25,
    ProcessingStage.METADATA: 30,
    ProcessingStage.POSTER_GENERATED: 40,
    ProcessingStage.POSTER_UPLOADED: 50,
    ProcessingStage.TRANSCODE_360: 60,
    ProcessingStage.TRANSCODE_720: 70,
    ProcessingStage.TRANSCODE_1080: 80,
    ProcessingStage.DERIVATIVES_READY: 85,
    ProcessingStage.ORIGINAL_DELETED: 90,
    ProcessingStage.DONE: 100,
}


@dataclass
class UploadedObject:
    """The parts of a finalized storage object the pipeline needs."""

    name: str
    content_type: Optional[str] = None
    size: Optional[int] = None
    metadata: Dict[str, str] = field(default_factory=dict)


def safe_unlink(local_path: Optional[str]) -> None:
    if not local_path:
        return
    try:
        os.remove(local_path)
    except FileNotFoundError:
        pass


def download_to_tmp(storage: StorageClient, storage_path: str, tmp_dir: str) -> str:
    filename = os.path.basename(storage_path)
    local_path = os.path.join(tmp_dir, f"{uuid.uuid4().hex}-{filename}")
    storage.download_to_file(storage_path, local_path)
    return local_path


def _file_size(local_path: str) -> Optional[int]:
    try:
        return os.path.getsize(local_path)
    except OSError:
        return None


def _delete_original(storage: StorageClient, storage_path: str) -> None:
    try:
        storage.delete(storage_path)
    except FileNotFoundError:
        logger.warning("Original upload %s already removed", storage_path)


class _ProgressReporter:
    def __init__(self, store: DocumentStore, media_id: str, stages: dict):
        self._store = store
        self._path = doc_path(MEDIA_COLLECTION, media_id)
        self._stages = stages
        self._lock = threading.Lock()

    def __call__(self, stage: ProcessingStage) -> None:
        with self._lock:
            self._store.set(
                self._path,
                {
                    "processing": {
                        "stage": stage.value,
                        "progress": self._stages[stage],
                        "updatedAt": SERVER_TIMESTAMP,
                    }
                },
                merge=True,
            )


def round_half_up(value: float) -> int:
    """Rounds halves upward (2.5 -> 3), where round() would give 2."""
    return math.floor(value + 0.5)


def _resolve_media_id(store: DocumentStore, upload: UploadMetadata) -> str:
    return upload.upload_id or store.new_id(MEDIA_COLLECTION)


def _initial_document(
    media_id: str,
    media_type: str,
    obj: UploadedObject,
    upload: UploadMetadata,
    initial_progress: int,
) -> dict:
    media = Media(
        id=media_id,
        type=str(media_type),
        storage_path=obj.name,
        paths=AssetPaths(original=AssetFile(storage_path=obj.name)),
        upload_id=upload.upload_id or media_id,
        original_filename=upload.original_filename,
        origin=MediaOrigin(
            context=upload.origin_context,
            exhibition_id=upload.exhibition_id,
            role=upload.origin_role,
        ),
        width=0,
        height=0,
        duration=0 if media_type == MediaType.VIDEO else None,
        mime_type=obj.content_type,
        size_bytes=int(obj.size) if obj.size is not None else None,
        processing=MediaProcessing(ProcessingStage.CREATED.value, initial_progress),
    )
    data = to_document(media)
    # Sentinels are set after serialization; asdict would copy them.
    data["createdAt"] = data["modifiedAt"] = SERVER_TIMESTAMP
    data["processing"]["updatedAt"] = SERVER_TIMESTAMP
    return data


def _upload_derivative(
    storage: StorageClient, local_path: str, dest: str, content_type: str
) -> dict:
    size = _file_size(local_path)
    storage.upload_file(local_path, dest, content_type)
    return {
        "storagePath": dest,
        "downloadURL": storage.signed_read_url(dest, SIGNED_URL_EXPIRY),
        "sizeBytes": size,
    }


def is_image_upload(obj: UploadedObject) -> bool:
    return (obj.content_type or "").startswith("image/") and obj.name.startswith(
        f"{IMAGE_UPLOAD_PREFIX}/"
    )


def is_video_upload(obj: UploadedObject) -> bool:
    return (obj.content_type or "").startswith("video/") and obj.name.startswith(
        f"{VIDEO_UPLOAD_PREFIX}/"
    )


def process_image_upload(
    store: DocumentStore,
    storage: StorageClient,
    obj: UploadedObject,
    tmp_dir: str = "/tmp",
) -> Optional[str]:
    """
    Generates the WebP derivatives for an uploaded image.

    Returns the media id, or None if the object is not an image upload.
    """
    if not is_image_upload(obj):
        return None

    upload = parse_upload_metadata(obj.name, obj.metadata)
    media_id = _resolve_media_id(store, upload)
    media_path = doc_path(MEDIA_COLLECTION, media_id)
    report = _ProgressReporter(store, media_id, IMAGE_STAGE_PROGRESS)

    store.set(
        media_path,
        _initial_document(
            media_id,
            MediaType.IMAGE,
            obj,
            upload,
            IMAGE_STAGE_PROGRESS[ProcessingStage.CREATED],
        ),
        merge=False,
    )
    logger.info("Image pipeline: created initial doc %s for %s", media_id, obj.name)
    report(ProcessingStage.DOWNLOAD_START)

    local_path = download_to_tmp(storage, obj.name, tmp_dir)
    report(ProcessingStage.DOWNLOADED)
    variants: Dict[str, images.ImageVariant] = {}
    try:
        variants = images.create_webp_variants(local_path, tmp_dir)
        logger.info("Image pipeline: variants %s ready for %s", list(variants), media_id)
        report(ProcessingStage.VARIANTS_READY)

        derivatives = {}
        for key, variant in variants.items():
            dest = f"{DERIVATIVES_PREFIX}/{media_id}/{key}.webp"
            derivatives[key] = _upload_derivative(
                storage, variant.path, dest, "image/webp"
            )
            safe_unlink(variant.path)
        report(ProcessingStage.DERIVATIVES_READY)

        # storagePath stays on the document as a record of the input.
        _delete_original(storage, obj.name)
        report(ProcessingStage.ORIGINAL_DELETED)

        large = variants.get("webp_large")
        store.set(
            media_path,
            {
                "paths": {
                    "original": {"storagePath": obj.name, "downloadURL": None},
                    "derivatives": derivatives,
                },
                "width": large.width if large else 0,
                "height": large.height if large else 0,
                "modifiedAt": SERVER_TIMESTAMP,
                "processed": True,
            },
            merge=True,
        )
        report(ProcessingStage.DONE)
        logger.info("Image pipeline: completed %s", media_id)
    finally:
        safe_unlink(local_path)
        for variant in variants.values():
            safe_unlink(variant.path)
    return media_id


def process_video_upload(
    store: DocumentStore,
    storage: StorageClient,
    obj: UploadedObject,
    tmp_dir: str = "/tmp",
    max_workers: int = MAX_CONCURRENT_TRANSCODES,
) -> Optional[str]:
    """
    Generates the poster and WebM renditions for an uploaded video.

    Transcodes run on a small thread pool; each finished rendition reports its
    own `transcode_{name}` stage.

    Returns the media id, or None if the object is not a video upload.
    """
    if not is_video_upload(obj):
        return None

    upload = parse_upload_metadata(obj.name, obj.metadata)
    media_id = _resolve_media_id(store, upload)
    media_path = doc_path(MEDIA_COLLECTION, media_id)
    report = _ProgressReporter(store, media_id, VIDEO_STAGE_PROGRESS)

    store.set(
        media_path,
        _initial_document(
            media_id,
            MediaType.VIDEO,
            obj,
            upload,
            VIDEO_STAGE_PROGRESS[ProcessingStage.CREATED],
        ),
        merge=False,
    )
    logger.info("Video pipeline: created initial doc %s for %s", media_id, obj.name)
    report(ProcessingStage.DOWNLOAD_START)

    local_path = download_to_tmp(storage, obj.name, tmp_dir)
    report(ProcessingStage.DOWNLOADED)
    poster_local = os.path.join(tmp_dir, f"{uuid.uuid4().hex}-poster.webp")
    try:
        meta = ffmpeg.probe_metadata(local_path)
        video_format = meta.get("format") or {}
        streams = meta.get("streams") or [{}]
        duration = (
            round_half_up(float(video_format["duration"]))
            if video_format.get("duration")
            else None
        )
        report(ProcessingStage.METADATA)

        ffmpeg.generate_poster(local_path, poster_local)
        report(ProcessingStage.POSTER_GENERATED)
        poster = _upload_derivative(
            storage,
            poster_local,
            f"{DERIVATIVES_PREFIX}/{media_id}/poster.webp",
            "image/webp",
        )
        poster.pop("sizeBytes", None)
        report(ProcessingStage.POSTER_UPLOADED)
        safe_unlink(poster_local)

        derivatives = {}
        derivatives_lock = threading.Lock()

        def _transcode(name: str, height: int) -> None:
            out_local = os.path.join(tmp_dir, f"{uuid.uuid4().hex}-{name}.webm")
            try:
                ffmpeg.transcode_to_webm(local_path, out_local, height)
                entry = _upload_derivative(
                    storage,
                    out_local,
                    f"{DERIVATIVES_PREFIX}/{media_id}/video_{name}.webm",
                    "video/webm",
                )
                with derivatives_lock:
                    derivatives[f"webm_{name}"] = entry
                logger.info("Video pipeline: %sp ready for %s", name, media_id)
                report(ProcessingStage(f"transcode_{name}"))
            finally:
                safe_unlink(out_local)

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(_transcode, name, height)
                for name, height in VIDEO_RESOLUTIONS
            ]
            for future in futures:
                future.result()
        report(ProcessingStage.DERIVATIVES_READY)

        _delete_original(storage, obj.name)
        report(ProcessingStage.ORIGINAL_DELETED)

        bit_rate = video_format.get("bit_rate")
        store.update(
            media_path,
            {
                "paths.derivatives": derivatives,
                "paths.poster": poster,
                "width": streams[0].get("width") or 0,
                "height": streams[0].get("height") or 0,
                "duration": duration,
                "codec": VIDEO_CODEC,
                "bitrate": int(bit_rate) if bit_rate else None,
                "modifiedAt": SERVER_TIMESTAMP,
                "processed": True,
            },
        )
        report(ProcessingStage.DONE)
        logger.info("Video pipeline: completed %s", media_id)
    finally:
        safe_unlink(local_path)
        safe_unlink(poster_local)
    return media_id
