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

import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional
from urllib.parse import parse_qs, quote, urlparse

from backend.storage import StorageClient
from shared.constants import (
    DOWNLOAD_TOKENS_METADATA_KEY,
    FIREBASE_DOWNLOAD_HOST,
    PUBLIC_STORAGE_HOST,
)

DEFAULT_SIGNED_URL_TTL_SECONDS = 6 * 60 * 60


def build_storage_url(bucket: str, storage_path: Optional[str]) -> str:
    """Public Cloud Storage URL with each path segment percent-encoded."""
    if not storage_path:
        return ""
    encoded = "/".join(quote(segment, safe="") for segment in storage_path.split("/"))
    return f"{PUBLIC_STORAGE_HOST}/{bucket}/{encoded}"


def build_token_download_url(bucket: str, storage_path: str, token: str) -> str:
    encoded = quote(storage_path, safe="")
    return f"{FIREBASE_DOWNLOAD_HOST}/v0/b/{bucket}/o/{encoded}?alt=media&token={token}"


def ensure_token_download_url(storage: StorageClient, storage_path: str) -> str:
    """
    Returns a Firebase token download URL, adding a token to the object's
    metadata only if it has none.

    Raises FileNotFoundError if the object does not exist.
    """
    metadata = storage.get_custom_metadata(storage_path)
    if metadata is None:
        raise FileNotFoundError(storage_path)
    # The metadata value may hold several comma-separated tokens.
    token = (metadata.get(DOWNLOAD_TOKENS_METADATA_KEY) or "").split(",")[0].strip()
    if not token:
        token = str(uuid.uuid4())
        storage.set_custom_metadata(
            storage_path, {**metadata, DOWNLOAD_TOKENS_METADATA_KEY: token}
        )
    return build_token_download_url(storage.bucket_name, storage_path, token)


def rotate_token_download_url(storage: StorageClient, storage_path: str) -> str:
    """Replaces the object's download token, invalidating earlier links."""
    metadata = storage.get_custom_metadata(storage_path)
    if metadata is None:
        raise FileNotFoundError(storage_path)
    token = str(uuid.uuid4())
    storage.set_custom_metadata(
        storage_path, {**metadata, DOWNLOAD_TOKENS_METADATA_KEY: token}
    )
    return build_token_download_url(storage.bucket_name, storage_path, token)


def extract_expiry(
    url: str,
    default_ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS,
    now: Optional[float] = None,
) -> float:
    """Expiry (epoch seconds) from a signed URL's `Expires` parameter."""
    now = time.time() if now is None else now
    try:
        raw = parse_qs(urlparse(url).query).get("Expires")
        if raw:
            return float(raw[0])
    except ValueError:
        pass
    return now + default_ttl_seconds


@dataclass
class _CacheEntry:
    url: str
    expires_at: float


class SignedUrlCache:
    """
    Per-path cache of signed read URLs.

    Entries expire at the URL's own `Expires` time (or after the default TTL).
    Every write drops all expired entries, so the cache only holds live URLs.
    """

    def __init__(
        self,
        resolver: Callable[[str], str],
        default_ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._resolver = resolver
        self._default_ttl = default_ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get_cached(self, storage_path: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(storage_path)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[storage_path]
                return None
            return entry.url

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def put(self, storage_path: str, url: str) -> None:
        now = self._clock()
        expires_at = extract_expiry(url, self._default_ttl, now)
        with self._lock:
            expired = [
                path
                for path, entry in self._entries.items()
                if entry.expires_at <= now
            ]
            for path in expired:
                del self._entries[path]
            self._entries[storage_path] = _CacheEntry(url, expires_at)

    def resolve(self, storage_path: str) -> str:
        cached = self.get_cached(storage_path)
        if cached:
            return cached
        url = self._resolver(storage_path)
        self.put(storage_path, url)
        return url
