"""
Admin HTTP routes for the studio backend API.

Every route requires a Firebase ID token; responses carry documents in
their stored (camelCase) shape.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend import exhibitions, media_library, mediasets, site_content
from backend.config import get_settings
from backend.db import DocumentStore
from backend.dependencies import get_document_store, get_storage_client, require_user
from backend.schemas import (
    AboutMeRequest,
    AddItemRequest,
    AssignedMediaResponse,
    ConfigurationResponse,
    ContactRequest,
    CreateMediaSetRequest,
    DeleteValidationResponse,
    DraftEditRequest,
    DownloadUrlResponse,
    ExhibitionPatch,
    ExhibitionRequest,
    ItemFlexRequest,
    ListingResponse,
    MediaLinkRequest,
    MediaListResponse,
    ReorderRequest,
    StatusResponse,
    UpdateCarouselRequest,
    UploadRequest,
    UploadResponse,
    WorkOrderRequest,
)
from backend.storage import StorageClient
from lab import catalogs, configurations, listings, pricing, work_orders
from lab.types import Configuration, Matrix
from media_pipeline.uploads import plan_upload
from shared.errors import NotFoundError
from shared.json_utils import convert_keys

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", dependencies=[Depends(require_user)])


# Media library


@router.post("/uploads", response_model=UploadResponse, status_code=201)
def create_upload(
    payload: UploadRequest,
    storage: StorageClient = Depends(get_storage_client),
):
    """
    Plans an upload and returns a signed PUT URL. The storage trigger creates
    the media document once the object lands.
    """
    plan = plan_upload(
        payload.filename,
        payload.content_type,
        origin_context=payload.origin_context,
        origin_role=payload.origin_role,
        exhibition_id=payload.exhibition_id,
    )
    url = storage.presign_put(
        plan.storage_path,
        plan.content_type,
        headers=plan.headers,
        expires_in=get_settings().upload_url_expires_seconds,
    )
    return UploadResponse(
        upload_id=plan.upload_id,
        storage_path=plan.storage_path,
        media_type=plan.media_type,
        upload_url=url,
        headers=plan.headers,
    )


@router.get("/media", response_model=MediaListResponse)
def list_media(
    media_type: Optional[str] = Query(None, alias="type", pattern="^(image|video)$"),
    include_deleted: bool = Query(False),
    store: DocumentStore = Depends(get_document_store),
):
    return MediaListResponse(
        media=media_library.list_media(
            store, media_type=media_type, include_deleted=include_deleted
        )
    )


@router.get("/media/by-upload/{upload_id}")
def wait_for_upload(
    upload_id: str,
    require_processed: bool = Query(False),
    timeout: Optional[float] = Query(None, gt=0, le=600),
    store: DocumentStore = Depends(get_document_store),
):
    settings = get_settings()
    return media_library.wait_for_media_by_upload_id(
        store,
        upload_id,
        require_processed=require_processed,
        timeout=timeout if timeout is not None else settings.media_wait_timeout_seconds,
        poll_interval=settings.media_wait_poll_seconds,
    )


@router.get("/media/{media_id}/referenced")
def media_referenced(media_id: str, store: DocumentStore = Depends(get_document_store)):
    return {
        "media_id": media_id,
        "referenced": media_library.is_media_referenced(store, media_id),
    }


@router.delete("/media/{media_id}", response_model=DeleteValidationResponse)
def delete_media(media_id: str, store: DocumentStore = Depends(get_document_store)):
    result = media_library.validate_delete(store, media_id)
    return DeleteValidationResponse(allowed=result.allowed, reason=result.reason)


@router.post("/media/{media_id}/download-url", response_model=DownloadUrlResponse)
def generate_download_url(
    media_id: str,
    regenerate: bool = Query(False),
    store: DocumentStore = Depends(get_document_store),
    storage: StorageClient = Depends(get_storage_client),
):
    if regenerate:
        result = media_library.regenerate_download_url(store, storage, media_id)
    else:
        result = media_library.generate_download_url(store, storage, media_id)
    return DownloadUrlResponse(download_url=result["downloadURL"])


@router.put("/media/{media_id}/link")
def set_media_link(
    media_id: str,
    payload: MediaLinkRequest,
    store: DocumentStore = Depends(get_document_store),
):
    link = media_library.set_media_link(
        store, media_id, payload.provider, payload.url, payload.font_color
    )
    return {"link": link}


@router.delete("/media/{media_id}/link")
def clear_media_link(media_id: str, store: DocumentStore = Depends(get_document_store)):
    media_library.set_media_link(store, media_id, None)
    return {"link": None}


# Works organizer


@router.get("/mediasets")
def list_mediasets(
    category: str = Query(...), store: DocumentStore = Depends(get_document_store)
):
    return {"mediasets": mediasets.list_mediasets(store, category)}


@router.post("/mediasets", status_code=201)
def create_mediaset(
    payload: CreateMediaSetRequest, store: DocumentStore = Depends(get_document_store)
):
    return mediasets.create_mediaset(store, payload.category, payload.position)


@router.put("/mediasets/order", response_model=StatusResponse)
def reorder_mediasets(
    payload: ReorderRequest, store: DocumentStore = Depends(get_document_store)
):
    mediasets.reorder_mediasets(store, payload.ids)
    return StatusResponse(status="ok")


@router.delete("/mediasets/{mediaset_id}", response_model=StatusResponse)
def delete_mediaset(mediaset_id: str, store: DocumentStore = Depends(get_document_store)):
    mediasets.soft_delete_mediaset(store, mediaset_id)
    return StatusResponse(status="ok")


@router.get("/mediasets/assigned-media", response_model=AssignedMediaResponse)
def assigned_media(
    category: str = Query(...), store: DocumentStore = Depends(get_document_store)
):
    ids = mediasets.assigned_media_ids(store, category)
    return AssignedMediaResponse(category=category, media_ids=sorted(ids))


@router.get("/mediasets/{mediaset_id}")
def get_mediaset(mediaset_id: str, store: DocumentStore = Depends(get_document_store)):
    mediaset = mediasets.find_mediaset(store, mediaset_id)
    if mediaset is None:
        raise NotFoundError(f"Media set not found: {mediaset_id}")
    return mediaset


@router.get("/mediasets/{mediaset_id}/items")
def list_items(mediaset_id: str, store: DocumentStore = Depends(get_document_store)):
    return {"items": mediasets.list_items(store, mediaset_id)}


@router.post("/mediasets/{mediaset_id}/items", status_code=201)
def add_item(
    mediaset_id: str,
    payload: AddItemRequest,
    store: DocumentStore = Depends(get_document_store),
):
    if payload.mode == "carousel":
        return mediasets.add_carousel_item(store, mediaset_id, payload.media_ids)
    return mediasets.add_single_item(store, mediaset_id, payload.media_ids[0])


@router.put("/mediasets/{mediaset_id}/items/order", response_model=StatusResponse)
def reorder_items(
    mediaset_id: str,
    payload: ReorderRequest,
    store: DocumentStore = Depends(get_document_store),
):
    mediasets.reorder_items(store, mediaset_id, payload.ids)
    return StatusResponse(status="ok")


@router.put("/mediasets/{mediaset_id}/items/{item_id}/carousel")
def update_carousel(
    mediaset_id: str,
    item_id: str,
    payload: UpdateCarouselRequest,
    store: DocumentStore = Depends(get_document_store),
):
    return mediasets.update_carousel(store, mediaset_id, item_id, payload.media_ids)


@router.put(
    "/mediasets/{mediaset_id}/items/{item_id}/flex", response_model=StatusResponse
)
def set_item_flex(
    mediaset_id: str,
    item_id: str,
    payload: ItemFlexRequest,
    store: DocumentStore = Depends(get_document_store),
):
    mediasets.set_item_flex(store, mediaset_id, item_id, payload.flex)
    return StatusResponse(status="ok")


@router.delete("/mediasets/{mediaset_id}/items/{item_id}", response_model=StatusResponse)
def remove_item(
    mediaset_id: str, item_id: str, store: DocumentStore = Depends(get_document_store)
):
    mediasets.remove_item(store, mediaset_id, item_id)
    return StatusResponse(status="ok")


# Exhibitions


def _exhibition_fields(payload: ExhibitionPatch) -> dict:
    return convert_keys(payload.model_dump(exclude_unset=True), "snake_to_camel")


@router.get("/exhibitions")
def list_exhibitions(store: DocumentStore = Depends(get_document_store)):
    return {"exhibitions": exhibitions.list_admin_rows(store)}


@router.post("/exhibitions", status_code=201)
def create_exhibition(
    payload: ExhibitionRequest, store: DocumentStore = Depends(get_document_store)
):
    return exhibitions.create_exhibition(
        store,
        title=payload.title,
        body=payload.body,
        date_and_location=payload.date_and_location,
        feature_media_id=payload.feature_media_id,
        media_ids=payload.media_ids,
    )


@router.put("/exhibitions/order", response_model=StatusResponse)
def reorder_exhibitions(
    payload: ReorderRequest, store: DocumentStore = Depends(get_document_store)
):
    exhibitions.reorder_exhibitions(store, payload.ids)
    return StatusResponse(status="ok")


@router.get("/exhibitions/{exhibition_id}")
def get_exhibition(exhibition_id: str, store: DocumentStore = Depends(get_document_store)):
    return exhibitions.get_exhibition(store, exhibition_id)


@router.patch("/exhibitions/{exhibition_id}")
def update_exhibition(
    exhibition_id: str,
    payload: ExhibitionPatch,
    store: DocumentStore = Depends(get_document_store),
):
    return exhibitions.update_exhibition(store, exhibition_id, _exhibition_fields(payload))


@router.delete("/exhibitions/{exhibition_id}", response_model=StatusResponse)
def delete_exhibition(
    exhibition_id: str, store: DocumentStore = Depends(get_document_store)
):
    exhibitions.delete_exhibition(store, exhibition_id)
    return StatusResponse(status="ok")


# Site content


@router.put("/about-me")
def save_about_me(payload: AboutMeRequest, store: DocumentStore = Depends(get_document_store)):
    return site_content.save_about_me(
        store,
        title=payload.title,
        content=payload.content,
        image_id=payload.image_id,
        education_title=payload.education_title,
        education_content=payload.education_content,
    )


@router.put("/contact")
def save_contact(payload: ContactRequest, store: DocumentStore = Depends(get_document_store)):
    return site_content.save_contact(store, [item.model_dump() for item in payload.items])


# Lab: catalogs, configurations, work orders


@router.get("/catalogs/{matrix}")
def get_catalog(matrix: Matrix):
    return {
        "parameters": [asdict(p) for p in catalogs.parameters_for(matrix)],
        "packages": [asdict(p) for p in catalogs.packages_for(matrix)],
    }


@router.post("/configurations/draft")
def edit_configuration_draft(payload: DraftEditRequest):
    """Resizes samples, adds catalog analyses and refreshes draft totals."""
    return pricing.apply_draft_edits(
        payload.draft,
        agreed_count=payload.agreed_count,
        parameter_ids=payload.parameter_ids,
        package_ids=payload.package_ids,
    )


@router.post("/configurations", response_model=ConfigurationResponse, status_code=201)
def create_configuration(
    payload: Configuration, store: DocumentStore = Depends(get_document_store)
):
    return ConfigurationResponse(id=configurations.create_configuration(store, payload))


@router.get("/configurations/{request_id}")
def get_configuration(request_id: str, store: DocumentStore = Depends(get_document_store)):
    configuration = configurations.get_configuration(store, request_id)
    if configuration is None:
        raise NotFoundError("Service request not found.")
    return configuration


@router.put("/configurations/{request_id}", response_model=ConfigurationResponse)
def update_configuration(
    request_id: str,
    payload: Configuration,
    store: DocumentStore = Depends(get_document_store),
):
    configurations.update_configuration(store, request_id, payload)
    return ConfigurationResponse(id=request_id)


@router.get("/service-requests", response_model=ListingResponse)
def list_service_requests(
    q: Optional[str] = Query(None), store: DocumentStore = Depends(get_document_store)
):
    rows = listings.list_service_requests(store, query=q)
    return ListingResponse(rows=[row.to_dict() for row in rows], total=len(rows))


@router.delete("/service-requests/{request_id}")
def delete_service_request(
    request_id: str,
    store: DocumentStore = Depends(get_document_store),
    user: dict = Depends(require_user),
):
    return work_orders.delete_service_request(
        store,
        request_id,
        deleted_by_uid=user.get("uid"),
        deleted_by_email=user.get("email"),
    )


@router.get("/work-orders", response_model=ListingResponse)
def list_work_orders(
    q: Optional[str] = Query(None),
    sort: str = Query("updatedAt"),
    direction: str = Query("desc", pattern="^(asc|desc)$"),
    store: DocumentStore = Depends(get_document_store),
):
    rows = listings.list_work_orders(store, query=q, sort_key=sort, direction=direction)
    return ListingResponse(rows=[row.to_dict() for row in rows], total=len(rows))


@router.post("/work-orders", status_code=201)
def create_work_order(
    payload: WorkOrderRequest, store: DocumentStore = Depends(get_document_store)
):
    return work_orders.create_work_order(
        store, payload.source_request_id, force_emit=payload.force_emit
    )


@router.post("/work-orders/complete")
def complete_work_order(
    payload: WorkOrderRequest, store: DocumentStore = Depends(get_document_store)
):
    return work_orders.complete_work_order(
        store,
        work_order_id=payload.work_order_id,
        source_request_id=payload.source_request_id,
    )


@router.post("/work-orders/pause")
def pause_work_order(
    payload: WorkOrderRequest, store: DocumentStore = Depends(get_document_store)
):
    return work_orders.pause_work_order(store, payload.source_request_id)


@router.post("/work-orders/resume")
def resume_work_order(
    payload: WorkOrderRequest, store: DocumentStore = Depends(get_document_store)
):
    return work_orders.resume_work_order(store, payload.source_request_id)
