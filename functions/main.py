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

# Cloud functions for the studio backend - media derivatives, download URLs,
# delete validation and the lab work-order lifecycle.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.

# Standard library imports
from dataclasses import asdict

# Third-party library imports
from firebase_admin import initialize_app
from firebase_functions import https_fn, logger, options, storage_fn

# Local application imports
from backend import media_library
from backend.config import get_settings
from backend.db import DocumentStore, FirestoreDocumentStore
from backend.storage import FirebaseStorageClient, StorageClient
from lab import work_orders
from media_pipeline import migration, processing
from shared.errors import StudioError

initialize_app()

settings = get_settings()

IMAGE_UPLOAD_TIMEOUT = 540
VIDEO_UPLOAD_TIMEOUT = 2000


def _document_store() -> DocumentStore:
    return FirestoreDocumentStore()


def _storage_client(bucket_name: str | None = None) -> StorageClient:
    return FirebaseStorageClient(bucket_name)


def _to_https_error(error: StudioError) -> https_fn.HttpsError:
    try:
        code = https_fn.FunctionsErrorCode(error.code)
    except ValueError:
        code = https_fn.FunctionsErrorCode.INTERNAL
    return https_fn.HttpsError(code, error.message)


def _payload(req: https_fn.CallableRequest) -> dict:
    """Callable data as a dict; any other payload reads as empty."""
    return req.data if isinstance(req.data, dict) else {}


def _require_auth(req: https_fn.CallableRequest, message: str) -> None:
    if req.auth is None:
        raise https_fn.HttpsError(https_fn.FunctionsErrorCode.UNAUTHENTICATED, message)


def _uploaded_object(event: storage_fn.CloudEvent) -> processing.UploadedObject:
    data = event.data
    size = data.size
    return processing.UploadedObject(
        name=data.name,
        content_type=data.content_type,
        size=int(size) if size is not None else None,
        metadata=dict(data.metadata or {}),
    )


@storage_fn.on_object_finalized(
    bucket=settings.storage_bucket,
    region=settings.functions_region,
    timeout_sec=IMAGE_UPLOAD_TIMEOUT,
    memory=options.MemoryOption.GB_2,
    cpu=1,
)
def on_image_upload(event: storage_fn.CloudEvent[storage_fn.StorageObjectData]) -> None:
    """
    Generates WebP derivatives for images uploaded under uploads/images/.
    Objects outside that prefix, or without an image content type, are ignored.
    """
    obj = _uploaded_object(event)
    if not processing.is_image_upload(obj):
        return

    logger.info(f"[on_image_upload] processing {obj.name}")
    try:
        media_id = processing.process_image_upload(
            _document_store(),
            _storage_client(event.data.bucket),
            obj,
            tmp_dir=settings.tmp_dir,
        )
    except Exception as e:
        logger.error(f"[on_image_upload] failed for {obj.name}: {e}")
        raise
    logger.info(f"[on_image_upload] done media={media_id}")


@storage_fn.on_object_finalized(
    bucket=settings.storage_bucket,
    region=settings.functions_region,
    timeout_sec=VIDEO_UPLOAD_TIMEOUT,
    memory=options.MemoryOption.GB_8,
    cpu=4,
)
def on_video_upload(event: storage_fn.CloudEvent[storage_fn.StorageObjectData]) -> None:
    """
    Generates the poster and VP9 WebM renditions for videos uploaded under
    uploads/videos/.
    """
    obj = _uploaded_object(event)
    if not processing.is_video_upload(obj):
        return

    logger.info(f"[on_video_upload] processing {obj.name}")
    try:
        media_id = processing.process_video_upload(
            _document_store(),
            _storage_client(event.data.bucket),
            obj,
            tmp_dir=settings.tmp_dir,
        )
    except Exception as e:
        logger.error(f"[on_video_upload] failed for {obj.name}: {e}")
        raise
    logger.info(f"[on_video_upload] done media={media_id}")


@https_fn.on_call(region=settings.functions_region)
def validate_delete(req: https_fn.CallableRequest) -> dict:
    """
    Soft-deletes a media document unless an active media set references it.

    Args:
        req (https_fn.CallableRequest): The request, containing the mediaId.

    Returns:
        dict: {"allowed": bool, "reason"?: str}
    """
    _require_auth(req, "unauthenticated")
    try:
        result = media_library.validate_delete(
            _document_store(), _payload(req).get("mediaId")
        )
    except StudioError as e:
        raise _to_https_error(e)
    return {key: value for key, value in asdict(result).items() if value is not None}


@https_fn.on_call(region=settings.functions_region)
def generate_download_url(req: https_fn.CallableRequest) -> dict:
    _require_auth(req, "unauthenticated")
    try:
        return media_library.generate_download_url(
            _document_store(), _storage_client(), _payload(req).get("mediaId")
        )
    except StudioError as e:
        raise _to_https_error(e)


@https_fn.on_call(region=settings.functions_region)
def regenerate_download_url(req: https_fn.CallableRequest) -> dict:
    _require_auth(req, "unauthenticated")
    try:
        return media_library.regenerate_download_url(
            _document_store(), _storage_client(), _payload(req).get("mediaId")
        )
    except StudioError as e:
        raise _to_https_error(e)


@https_fn.on_call(region=settings.functions_region)
def create_work_order(req: https_fn.CallableRequest) -> dict:
    """
    Emits (or returns the already linked) work order for a service request.

    Args:
        req (https_fn.CallableRequest): The request, containing sourceRequestId
            and an optional forceEmit flag.

    Returns:
        dict: {"workOrderId", "workOrderNumber", "alreadyExists"}
    """
    _require_auth(req, "Authentication is required.")
    data = _payload(req)
    try:
        result = work_orders.create_work_order(
            _document_store(),
            data.get("sourceRequestId"),
            force_emit=data.get("forceEmit") is True,
        )
    except StudioError as e:
        raise _to_https_error(e)
    logger.info(
        f"[create_work_order] {result['workOrderId']} "
        f"for {data.get('sourceRequestId')} (existing={result['alreadyExists']})"
    )
    return result


@https_fn.on_call(region=settings.functions_region)
def complete_work_order(req: https_fn.CallableRequest) -> dict:
    _require_auth(req, "Authentication is required.")
    data = _payload(req)
    try:
        return work_orders.complete_work_order(
            _document_store(),
            work_order_id=data.get("workOrderId"),
            source_request_id=data.get("sourceRequestId"),
        )
    except StudioError as e:
        raise _to_https_error(e)


@https_fn.on_call(region=settings.functions_region)
def pause_work_order(req: https_fn.CallableRequest) -> dict:
    _require_auth(req, "Authentication is required.")
    try:
        return work_orders.pause_work_order(
            _document_store(), _payload(req).get("sourceRequestId")
        )
    except StudioError as e:
        raise _to_https_error(e)


@https_fn.on_call(region=settings.functions_region)
def resume_work_order(req: https_fn.CallableRequest) -> dict:
    _require_auth(req, "Authentication is required.")
    try:
        return work_orders.resume_work_order(
            _document_store(), _payload(req).get("sourceRequestId")
        )
    except StudioError as e:
        raise _to_https_error(e)


@https_fn.on_call(region=settings.functions_region)
def delete_service_request(req: https_fn.CallableRequest) -> dict:
    _require_auth(req, "Authentication is required.")
    token = req.auth.token or {}
    try:
        result = work_orders.delete_service_request(
            _document_store(),
            _payload(req).get("sourceRequestId"),
            deleted_by_uid=req.auth.uid,
            deleted_by_email=token.get("email"),
        )
    except StudioError as e:
        raise _to_https_error(e)
    logger.info(f"[delete_service_request] archived {result['deletedRequestId']}")
    return result


@https_fn.on_call(
    region=settings.functions_region,
    timeout_sec=540,
    memory=options.MemoryOption.MB_512,
)
def migrate_artworks_to_assets(req: https_fn.CallableRequest) -> dict:
    """One-off conversion of legacy artworks into media sets and media."""
    _require_auth(req, "Authentication is required.")
    dry_run = _payload(req).get("dryRun") is True
    result = migration.migrate_artworks_to_assets(_document_store(), dry_run=dry_run)
    logger.info(f"[migrate_artworks_to_assets] migrated={result['migrated']}")
    return result
