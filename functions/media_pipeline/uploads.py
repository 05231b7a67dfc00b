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
Upload planning (client side of the storage contract) and parsing of the
custom metadata the storage triggers receive.
"""

import posixpath
import re
import time
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

from shared.constants import (
    IMAGE_UPLOAD_PREFIX,
    MAX_UPLOAD_FILENAME_LENGTH,
    VIDEO_UPLOAD_PREFIX,
)
from shared.errors import InvalidArgumentError
from shared.types import MediaType, OriginContext, OriginRole

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]+")


@dataclass
class UploadPlan:
    upload_id: str
    storage_path: str
    media_type: str
    content_type: str
    metadata: Dict[str, str]

    @property
    def headers(self) -> Dict[str, str]:
        """Headers a signed PUT request must send to attach the metadata."""
        headers = {f"x-goog-meta-{key}": value for key, value in self.metadata.items()}
        headers["Content-Type"] = self.content_type
        return headers


@dataclass
class UploadMetadata:
    upload_id: str
    original_filename: str
    origin_context: str
    origin_role: str
    exhibition_id: Optional[str]


def sanitize_filename(name: str) -> str:
    safe = _UNSAFE_FILENAME_CHARS.sub("-", name or "")
    safe = safe.lstrip("-")[:MAX_UPLOAD_FILENAME_LENGTH]
    return safe or "file"


def default_origin_role(origin_context: str) -> str:
    if origin_context == OriginContext.EXHIBITION:
        return OriginRole.ATTACHMENT
    return OriginRole.GALLERY


def media_type_for(content_type: str) -> str:
    return MediaType.VIDEO if (content_type or "").startswith("video/") else MediaType.IMAGE


def plan_upload(
    filename: str,
    content_type: str,
    *,
    origin_context: str = OriginContext.GALLERY,
    origin_role: Optional[str] = None,
    exhibition_id: Optional[str] = None,
    timestamp_ms: Optional[int] = None,
) -> UploadPlan:
    if not (content_type or "").startswith(("image/", "video/")):
        raise InvalidArgumentError(f"Unsupported content type: {content_type!r}")
    if origin_context not in (OriginContext.GALLERY, OriginContext.EXHIBITION):
        raise InvalidArgumentError(f"Unknown origin context: {origin_context!r}")

    upload_id = str(uuid.uuid4())
    media_type = media_type_for(content_type)
    prefix = VIDEO_UPLOAD_PREFIX if media_type == MediaType.VIDEO else IMAGE_UPLOAD_PREFIX
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    storage_path = f"{prefix}/{timestamp_ms}/{sanitize_filename(filename)}"

    return UploadPlan(
        upload_id=upload_id,
        storage_path=storage_path,
        media_type=media_type,
        content_type=content_type,
        metadata={
            "uploadId": upload_id,
            "originalFilename": filename,
            "originContext": str(origin_context),
            "originRole": str(origin_role or default_origin_role(origin_context)),
            "exhibitionId": exhibition_id or "",
        },
    )


def _lookup(metadata: Dict[str, str], *keys: str) -> Optional[str]:
    # Metadata sent as x-goog-meta-* headers may arrive lower-cased.
    lowered = {str(k).lower(): v for k, v in metadata.items()}
    for key in keys:
        if key in metadata:
            return metadata[key]
        if key.lower() in lowered:
            return lowered[key.lower()]
    return None


def parse_upload_metadata(
    storage_path: str, metadata: Optional[Dict[str, str]]
) -> UploadMetadata:
    metadata = metadata or {}
    path_filename = posixpath.basename(storage_path)

    upload_id = _lookup(metadata, "uploadId", "upload_id")
    original_filename = _lookup(metadata, "originalFilename", "original_filename")
    if not isinstance(original_filename, str) or not original_filename.strip():
        original_filename = path_filename

    origin_context = (
        OriginContext.EXHIBITION
        if _lookup(metadata, "originContext") == OriginContext.EXHIBITION
        else OriginContext.GALLERY
    )
    role = _lookup(metadata, "originRole", "role")
    if role not in (OriginRole.FEATURE, OriginRole.ATTACHMENT):
        role = default_origin_role(origin_context)

    return UploadMetadata(
        upload_id=upload_id if isinstance(upload_id, str) else "",
        original_filename=original_filename,
        origin_context=str(origin_context),
        origin_role=str(role),
        exhibition_id=_lookup(metadata, "exhibitionId") or None,
    )
