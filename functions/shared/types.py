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

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any, Dict, List, Optional

from dacite import Config, from_dict

from shared.json_utils import convert_keys


class MediaType(StrEnum):
    IMAGE = "image"
    VIDEO = "video"


class OriginContext(StrEnum):
    GALLERY = "gallery"
    EXHIBITION = "exhibition"


class OriginRole(StrEnum):
    GALLERY = "gallery"
    FEATURE = "feature"
    ATTACHMENT = "attachment"


class MediaLinkProvider(StrEnum):
    ZORA = "zora"
    OBJKT = "objkt"


class MediaSetCategory(StrEnum):
    HOME = "home"
    CAVES = "caves"
    LANDSCAPES = "landscapes"


class ProcessingStage(StrEnum):
    CREATED = "created"
    DOWNLOAD_START = "download_start"
    DOWNLOADED = "downloaded"
    METADATA = "metadata"
    VARIANTS_READY = "variants_ready"
    POSTER_GENERATED = "poster_generated"
    POSTER_UPLOADED = "poster_uploaded"
    TRANSCODE_360 = "transcode_360"
    TRANSCODE_720 = "transcode_720"
    TRANSCODE_1080 = "transcode_1080"
    DERIVATIVES_READY = "derivatives_ready"
    ORIGINAL_DELETED = "original_deleted"
    DONE = "done"


@dataclass
class AssetFile:
    storage_path: str
    download_url: Optional[str] = None
    size_bytes: Optional[int] = None


@dataclass
class AssetPaths:
    original: AssetFile
    derivatives: Dict[str, AssetFile] = field(default_factory=dict)
    poster: Optional[AssetFile] = None


@dataclass
class MediaProcessing:
    stage: str
    progress: int
    updated_at: Any = None  # Firestore timestamp


@dataclass
class MediaOrigin:
    context: str = OriginContext.GALLERY
    exhibition_id: Optional[str] = None
    role: Optional[str] = None


@dataclass
class MediaLink:
    provider: str
    url: str
    font_color: Optional[str] = None
    updated_at: Any = None


@dataclass
class Media:
    """A single uploaded image or video and its generated derivatives."""

    id: str
    type: str
    storage_path: str
    paths: AssetPaths
    upload_id: str = ""
    media_set_id: Optional[str] = None
    original_filename: Optional[str] = None
    origin: MediaOrigin = field(default_factory=MediaOrigin)
    title: str = ""
    description: Optional[str] = ""
    width: Optional[int] = None
    height: Optional[int] = None
    duration: Optional[float] = None  # seconds, videos only
    mime_type: Optional[str] = None
    size_bytes: Optional[int] = None
    blur_hash: Optional[str] = None  # images only
    codec: Optional[str] = None  # videos only, e.g. "vp9"
    bitrate: Optional[int] = None
    created_at: Any = None
    modified_at: Any = None
    deleted_at: Any = None
    processed: bool = False
    processing: Optional[MediaProcessing] = None
    link: Optional[MediaLink] = None


@dataclass
class MediaSet:
    """A categorized, ordered row of media shown on the public site."""

    id: str
    category: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    owner_uid: Optional[str] = None
    ordering: float = 0
    created_at: Any = None
    modified_at: Any = None
    published_at: Any = None
    deleted_at: Any = None


@dataclass
class MediaRef:
    media_id: Optional[str] = None
    order: int = 0


@dataclass
class MediaSetItem:
    """
    One slot of a media set. Carousel slots list their members in
    `media_items`; `media_id` always points at the primary media.
    """

    id: str
    media_id: Optional[str] = None
    media_items: Optional[List[MediaRef]] = None
    order: int = 0
    flex: int = 1

    def ordered_media_ids(self) -> List[str]:
        if self.media_items:
            members = sorted(self.media_items, key=lambda ref: ref.order or 0)
            ids = [ref.media_id for ref in members if ref.media_id]
            if ids:
                return ids
        return [self.media_id] if self.media_id else []


@dataclass
class Exhibition:
    id: str
    title: str
    body: str = ""
    date_and_location: Optional[str] = None
    feature_media_id: Optional[str] = None
    media_ids: List[str] = field(default_factory=list)
    order: int = 0
    created_at: Any = None
    updated_at: Any = None


@dataclass
class DeleteValidationResult:
    allowed: bool
    reason: Optional[str] = None


DACITE_CONFIG = Config(check_types=False)


def from_document(data_class, doc_id: str, data: dict):
    """Builds a dataclass from a camelCase Firestore payload."""
    payload = convert_keys(dict(data), "camel_to_snake")
    payload["id"] = doc_id
    return from_dict(data_class=data_class, data=payload, config=DACITE_CONFIG)


def to_document(instance, *, exclude: tuple = ("id",)) -> dict:
    """Serializes a dataclass to a camelCase Firestore payload."""
    payload = asdict(instance)
    for key in exclude:
        payload.pop(key, None)
    return convert_keys(payload, "snake_to_camel")
