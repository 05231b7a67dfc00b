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

# Storage layout
IMAGE_UPLOAD_PREFIX = "uploads/images"
VIDEO_UPLOAD_PREFIX = "uploads/videos"
DERIVATIVES_PREFIX = "temp-assets"
FIREBASE_DOWNLOAD_HOST = "https://firebasestorage.googleapis.com"
PUBLIC_STORAGE_HOST = "https://storage.googleapis.com"
DOWNLOAD_TOKENS_METADATA_KEY = "firebaseStorageDownloadTokens"

# Image derivatives: key -> target width in pixels.
WEBP_VARIANT_WIDTHS = {
    "webp_thumb": 320,
    "webp_small": 640,
    "webp_medium": 1280,
    "webp_large": 1920,
}

# Video derivatives: name -> target height in pixels.
VIDEO_RESOLUTIONS = (
    ("360", 360),
    ("720", 720),
    ("1080", 1080),
)
MAX_CONCURRENT_TRANSCODES = 2
VIDEO_CODEC = "vp9"
POSTER_WIDTH = 1280
POSTER_SEEK_SECONDS = 1

PREFERRED_IMAGE_DERIVATIVE = "webp_medium"
PREFERRED_VIDEO_DERIVATIVE = "webm_720"

MAX_UPLOAD_FILENAME_LENGTH = 80

MIN_ITEM_FLEX = 1
MAX_ITEM_FLEX = 4
MIN_CAROUSEL_MEDIA = 2

DEFAULT_LINK_FONT_COLOR = "#ffffff"

# Lab configurator
DEFAULT_TAX_PERCENT = 15.0
DEFAULT_VALID_DAYS = 30
DEFAULT_CURRENCY = "USD"
SAMPLE_CODE_PREFIX = "M-"
WORK_ORDER_NUMBER_PREFIX = "OT-TMP"
