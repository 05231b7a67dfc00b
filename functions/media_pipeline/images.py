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

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from typing import Dict, Mapping

from PIL import Image

from shared.constants import WEBP_VARIANT_WIDTHS

logger = logging.getLogger(__name__)


@dataclass
class ImageVariant:
    path: str
    width: int
    height: int


def _webp_compatible(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "RGBA"):
        return image
    if image.mode in ("LA", "PA") or "transparency" in image.info:
        return image.convert("RGBA")
    return image.convert("RGB")


def create_webp_variants(
    local_path: str,
    out_dir: str = "/tmp",
    widths: Mapping[str, int] = WEBP_VARIANT_WIDTHS,
) -> Dict[str, ImageVariant]:
    """
    Writes one WebP file per target width, preserving the aspect ratio.

    Images narrower than a target are re-encoded at their own size rather than
    enlarged.

    Args:
        local_path (str): Path of the source image.
        out_dir (str): Directory for the generated files.
        widths (Mapping[str, int]): Variant key -> target width.

    Returns:
        Dict[str, ImageVariant]: Variant key -> generated file and dimensions.
    """
    results: Dict[str, ImageVariant] = {}
    with Image.open(local_path) as source:
        source.load()
        image = _webp_compatible(source)
        original_width, original_height = image.size

        for key, width in widths.items():
            if original_width > width:
                height = max(1, round(original_height * width / original_width))
                resized = image.resize((width, height), Image.Resampling.LANCZOS)
            else:
                resized = image
            out_path = os.path.join(out_dir, f"{uuid.uuid4().hex}-{key}.webp")
            resized.save(out_path, format="WEBP")
            results[key] = ImageVariant(
                path=out_path, width=resized.width, height=resized.height
            )
            logger.debug("Wrote %s (%dx%d)", out_path, resized.width, resized.height)

    return results
