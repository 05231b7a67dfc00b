"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Header

from backend.config import get_settings
from backend.db import DocumentStore, FirestoreDocumentStore, InMemoryDocumentStore
from backend.storage import FirebaseStorageClient, InMemoryStorageClient, StorageClient
from media_pipeline.asset_urls import SignedUrlCache
from shared.errors import UnauthenticatedError

logger = logging.getLogger(__name__)

_document_store: DocumentStore | None = None
_storage_client: StorageClient | None = None
_signed_url_cache: SignedUrlCache | None = None


def _ensure_firebase_app() -> None:
    import firebase_admin

    if not firebase_admin._apps:
        settings = get_settings()
        options = {}
        if settings.storage_bucket:
            options["storageBucket"] = settings.storage_bucket
        if settings.firebase_project_id:
            options["projectId"] = settings.firebase_project_id
        firebase_admin.initialize_app(options=options or None)


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so state persists across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.firebase_project_id:
        _document_store = InMemoryDocumentStore()
    else:
        _ensure_firebase_app()
        _document_store = FirestoreDocumentStore()
    return _document_store


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _ensure_firebase_app()
        _storage_client = FirebaseStorageClient(settings.storage_bucket)
    return _storage_client


def get_signed_url_cache() -> SignedUrlCache:
    """Signed read URLs for derivatives, reused until they expire."""
    global _signed_url_cache
    if _signed_url_cache:
        return _signed_url_cache

    ttl = get_settings().signed_url_ttl_seconds

    def resolve(path: str) -> str:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        return get_storage_client().signed_read_url(path, expires_at)

    _signed_url_cache = SignedUrlCache(resolve, default_ttl_seconds=ttl)
    return _signed_url_cache


def require_user(authorization: Optional[str] = Header(None)) -> dict:
    """
    Verifies the Firebase ID token in the `Authorization: Bearer` header.

    Returns the decoded token claims (uid, email, ...).
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthenticatedError("unauthenticated")

    from firebase_admin import auth

    _ensure_firebase_app()
    try:
        return auth.verify_id_token(token.strip())
    except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError) as e:
        logger.warning("Rejected ID token: %s", e)
        raise UnauthenticatedError("unauthenticated") from e
