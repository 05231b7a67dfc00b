"""
Unauthenticated read routes backing the public site.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from backend import site_content
from backend.db import DocumentStore
from backend.dependencies import (
    get_document_store,
    get_signed_url_cache,
    get_storage_client,
)
from backend.storage import StorageClient
from media_pipeline.asset_urls import SignedUrlCache
from shared.constants import DERIVATIVES_PREFIX
from shared.errors import InvalidArgumentError, NotFoundError
from shared.types import MediaSetCategory

router = APIRouter(prefix="/public")


@router.get("/home")
def home_media_sets(
    mobile: bool = False,
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    return {
        "mediasets": site_content.fetch_home_media_sets(
            store, storage.bucket_name, mobile
        )
    }


@router.get("/works/{category}")
def category_media(
    category: MediaSetCategory,
    mobile: bool = False,
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    return {
        "mediasets": site_content.fetch_category_media(
            store, category, storage.bucket_name, mobile
        )
    }


@router.get("/assets/signed-url")
def signed_asset_url(
    path: str = Query(..., min_length=1),
    cache: SignedUrlCache = Depends(get_signed_url_cache),
):
    """Signed read URL for a derivative, served from cache until it expires."""
    if not path.startswith(f"{DERIVATIVES_PREFIX}/") or ".." in path.split("/"):
        raise InvalidArgumentError("path must point at a stored derivative")
    return {"path": path, "url": cache.resolve(path)}


@router.get("/exhibitions")
def exhibitions(store: DocumentStore = Depends(get_document_store)):
    return {"exhibitions": site_content.fetch_public_exhibitions(store)}


@router.get("/about-me")
def about_me(store: DocumentStore = Depends(get_document_store)):
    data = site_content.get_about_me(store)
    if data is None:
        raise NotFoundError("No About Me document found.")
    return data


@router.get("/contact")
def contact(store: DocumentStore = Depends(get_document_store)):
    data = site_content.get_contact(store)
    if data is None:
        raise NotFoundError("No Contact document found.")
    return data
