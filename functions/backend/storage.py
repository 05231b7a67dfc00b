"""
Storage abstraction for Firebase Storage (Cloud Storage) and in-memory testing.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Protocol
from urllib.parse import quote


class StorageClient(Protocol):
    """Defines the operations the media pipeline and API need from storage."""

    bucket_name: str

    def download_to_file(self, path: str, local_path: str) -> None:
        ...

    def upload_file(
        self, src_path: str, dest_path: str, content_type: Optional[str] = None
    ) -> None:
        ...

    def delete(self, path: str) -> None:
        ...

    def exists(self, path: str) -> bool:
        ...

    def signed_read_url(self, path: str, expires_at: datetime) -> str:
        ...

    def presign_put(
        self,
        path: str,
        content_type: str,
        headers: Optional[dict] = None,
        expires_in: int = 3600,
    ) -> str:
        ...

    def get_custom_metadata(self, path: str) -> Optional[dict]:
        """Returns the object's custom metadata, or None if it does not exist."""
        ...

    def set_custom_metadata(self, path: str, metadata: dict) -> None:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    bucket_name: str = "studio-test.appspot.com"
    base_url: str = "https://example.test/storage"
    stored_objects: dict = field(default_factory=dict)
    content_types: dict = field(default_factory=dict)
    custom_metadata: dict = field(default_factory=dict)

    def put_bytes(
        self,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> None:
        self.stored_objects[path] = data
        self.content_types[path] = content_type
        self.custom_metadata[path] = dict(metadata or {})

    def download_to_file(self, path: str, local_path: str) -> None:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        with open(local_path, "wb") as f:
            f.write(stored)

    def upload_file(
        self, src_path: str, dest_path: str, content_type: Optional[str] = None
    ) -> None:
        with open(src_path, "rb") as f:
            self.put_bytes(dest_path, f.read(), content_type)

    def delete(self, path: str) -> None:
        if path not in self.stored_objects:
            raise FileNotFoundError(path)
        self.stored_objects.pop(path)
        self.content_types.pop(path, None)
        self.custom_metadata.pop(path, None)

    def exists(self, path: str) -> bool:
        return path in self.stored_objects

    def signed_read_url(self, path: str, expires_at: datetime) -> str:
        return f"{self.base_url}/{quote(path)}?op=get&Expires={int(expires_at.timestamp())}"

    def presign_put(
        self,
        path: str,
        content_type: str,
        headers: Optional[dict] = None,
        expires_in: int = 3600,
    ) -> str:
        expires = int(time.time()) + expires_in
        return f"{self.base_url}/{quote(path)}?op=put&Expires={expires}"

    def get_custom_metadata(self, path: str) -> Optional[dict]:
        if path not in self.stored_objects:
            return None
        return dict(self.custom_metadata.get(path) or {})

    def set_custom_metadata(self, path: str, metadata: dict) -> None:
        if path not in self.stored_objects:
            raise FileNotFoundError(path)
        self.custom_metadata[path] = dict(metadata)


class FirebaseStorageClient:
    """
    Cloud Storage client for the project's Firebase bucket.

    Uses the firebase_admin app initialized by the caller.
    """

    def __init__(self, bucket_name: Optional[str] = None):
        from firebase_admin import storage

        self._bucket = storage.bucket(bucket_name)
        self.bucket_name = self._bucket.name

    def download_to_file(self, path: str, local_path: str) -> None:
        self._bucket.blob(path).download_to_filename(local_path)

    def upload_file(
        self, src_path: str, dest_path: str, content_type: Optional[str] = None
    ) -> None:
        self._bucket.blob(dest_path).upload_from_filename(
            src_path, content_type=content_type
        )

    def delete(self, path: str) -> None:
        from google.api_core import exceptions as google_exceptions

        try:
            self._bucket.blob(path).delete()
        except google_exceptions.NotFound as e:
            raise FileNotFoundError(path) from e

    def exists(self, path: str) -> bool:
        return self._bucket.blob(path).exists()

    def signed_read_url(self, path: str, expires_at: datetime) -> str:
        # V2 signatures allow the far-future expiries used for derivatives.
        return self._bucket.blob(path).generate_signed_url(
            expiration=expires_at, method="GET", version="v2"
        )

    def presign_put(
        self,
        path: str,
        content_type: str,
        headers: Optional[dict] = None,
        expires_in: int = 3600,
    ) -> str:
        return self._bucket.blob(path).generate_signed_url(
            version="v4",
            expiration=timedelta(seconds=expires_in),
            method="PUT",
            content_type=content_type,
            headers=headers or None,
        )

    def get_custom_metadata(self, path: str) -> Optional[dict]:
        blob = self._bucket.get_blob(path)
        if blob is None:
            return None
        return dict(blob.metadata or {})

    def set_custom_metadata(self, path: str, metadata: dict) -> None:
        blob = self._bucket.get_blob(path)
        if blob is None:
            raise FileNotFoundError(path)
        blob.metadata = metadata
        blob.patch()
