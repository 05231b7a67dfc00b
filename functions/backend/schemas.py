"""
Pydantic schemas for the studio FastAPI backend.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from shared.constants import MAX_ITEM_FLEX, MIN_CAROUSEL_MEDIA, MIN_ITEM_FLEX


class UploadRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=512)
    content_type: str
    origin_context: Literal["gallery", "exhibition"] = "gallery"
    origin_role: Optional[Literal["gallery", "feature", "attachment"]] = None
    exhibition_id: Optional[str] = None


class UploadResponse(BaseModel):
    upload_id: str
    storage_path: str
    media_type: str
    upload_url: str
    headers: dict[str, str]


class DeleteValidationResponse(BaseModel):
    allowed: bool
    reason: Optional[str] = None


class DownloadUrlResponse(BaseModel):
    download_url: str


class MediaLinkRequest(BaseModel):
    provider: Optional[Literal["zora", "objkt", "none"]] = None
    url: Optional[str] = None
    font_color: Optional[str] = None


class MediaListResponse(BaseModel):
    media: list[dict]


class CreateMediaSetRequest(BaseModel):
    category: Literal["home", "caves", "landscapes"]
    position: Literal["start", "end"] = "end"


class ReorderRequest(BaseModel):
    ids: list[str]


class AddItemRequest(BaseModel):
    mode: Literal["single", "carousel"] = "single"
    media_ids: list[str] = Field(..., min_length=1)


class UpdateCarouselRequest(BaseModel):
    media_ids: list[str] = Field(..., min_length=MIN_CAROUSEL_MEDIA)


class ItemFlexRequest(BaseModel):
    flex: int = Field(..., ge=MIN_ITEM_FLEX, le=MAX_ITEM_FLEX)


class AssignedMediaResponse(BaseModel):
    category: str
    media_ids: list[str]


class ExhibitionRequest(BaseModel):
    title: str = Field(..., min_length=1)
    date_and_location: Optional[str] = None
    body: str = ""
    feature_media_id: Optional[str] = None
    media_ids: list[str] = Field(default_factory=list)


class ExhibitionPatch(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    date_and_location: Optional[str] = None
    body: Optional[str] = None
    feature_media_id: Optional[str] = None
    media_ids: Optional[list[str]] = None


class ConfigurationResponse(BaseModel):
    id: str


class DraftEditRequest(BaseModel):
    draft: dict
    agreed_count: Optional[int] = Field(None, ge=0)
    parameter_ids: list[str] = Field(default_factory=list)
    package_ids: list[str] = Field(default_factory=list)


class WorkOrderRequest(BaseModel):
    source_request_id: Optional[str] = None
    work_order_id: Optional[str] = None
    force_emit: bool = False


class AboutMeRequest(BaseModel):
    title: str
    content: str
    image_id: Optional[str] = None
    education_title: str = ""
    education_content: str = ""


class ContactItemPayload(BaseModel):
    id: Optional[str] = None
    label: str = ""
    url: str = ""


class ContactRequest(BaseModel):
    items: list[ContactItemPayload]


class ListingResponse(BaseModel):
    rows: list[dict]
    total: int


class StatusResponse(BaseModel):
    status: Literal["ok"]
