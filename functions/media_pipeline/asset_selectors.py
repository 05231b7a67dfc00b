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
Picks which stored rendition the public site loads first (low) and upgrades
to (high), per device class. Works on camelCase media documents.
"""

from typing import Iterable, Optional, Sequence

IMAGE_360_GROUP = ("webp_360", "webp_small")
IMAGE_720_GROUP = ("webp_720", "webp_medium")
IMAGE_1080_GROUP = ("webp_1080", "webp_large")

VIDEO_360_GROUP = ("webm_360",)
VIDEO_720_GROUP = ("webm_720",)
VIDEO_1080_GROUP = ("webm_1080",)


def first_available(items: Iterable[Optional[dict]]) -> Optional[dict]:
    """First asset that has a storage path."""
    for item in items:
        if isinstance(item, dict) and item.get("storagePath"):
            return item
    return None


def _pick(derivatives: dict, group: Sequence[str]) -> Optional[dict]:
    return first_available(derivatives.get(key) for key in group)


def _paths(media: dict) -> dict:
    paths = media.get("paths")
    return paths if isinstance(paths, dict) else {}


def select_image_assets(media: dict, mobile: bool) -> dict:
    paths = _paths(media)
    derivatives = paths.get("derivatives") or {}
    g360 = _pick(derivatives, IMAGE_360_GROUP)
    g720 = _pick(derivatives, IMAGE_720_GROUP)
    g1080 = _pick(derivatives, IMAGE_1080_GROUP)
    original = paths.get("original")
    if not isinstance(original, dict):
        original = None

    if mobile:
        low_order = [g720, g1080, original]
        high_order = [g720, g1080, g360, original]
    else:
        low_order = [g720, g1080, g360, original]
        high_order = [g1080, g720, g360, original]

    return {
        "low": first_available(low_order),
        "high": first_available(high_order),
        "original": original,
    }


def select_video_assets(media: dict, mobile: bool) -> dict:
    paths = _paths(media)
    derivatives = paths.get("derivatives") or {}
    v360 = _pick(derivatives, VIDEO_360_GROUP)
    v720 = _pick(derivatives, VIDEO_720_GROUP)
    v1080 = _pick(derivatives, VIDEO_1080_GROUP)

    if mobile:
        low_order = [v360, v720, v1080]
        high_order = [v720, v1080, v360]
    else:
        low_order = [v720, v1080, v360]
        high_order = [v1080, v720, v360]

    poster_order = [
        paths.get("poster"),
        derivatives.get("webp_medium"),
        derivatives.get("webp_large"),
        derivatives.get("webp_small"),
        v720,
        v360,
    ]

    return {
        "low": first_available(low_order),
        "high": first_available(high_order),
        "poster": first_available(poster_order),
    }


def select_assets(media: dict, mobile: bool = False) -> dict:
    if media.get("type") == "video":
        return select_video_assets(media, mobile)
    return select_image_assets(media, mobile)
