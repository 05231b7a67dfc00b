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
Work-order lifecycle: issue from a service request, pause, resume, complete,
and cancel when the source request is deleted.

Every operation runs inside a single document-store transaction so the work
order and its source request never disagree about status.
"""

import logging
import secrets
import string
from datetime import datetime
from typing import Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from backend.db import DocumentStore, Transaction, doc_path
from lab.types import ServiceRequestStatus, WorkOrderStatus
from shared.constants import WORK_ORDER_NUMBER_PREFIX
from shared.errors import FailedPreconditionError, InvalidArgumentError, NotFoundError
from shared.firebase_constants import (
    DELETED_SERVICE_REQUESTS_COLLECTION,
    SERVICE_REQUESTS_COLLECTION,
    WORK_ORDERS_COLLECTION,
)

logger = logging.getLogger(__name__)

_NUMBER_ALPHABET = string.digits + string.ascii_uppercase


def build_temp_work_order_number(year: Optional[int] = None) -> str:
    """Provisional number such as OT-TMP-2025-4F7K2Q9A."""
    year = year or datetime.now().year
    suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(8))
    return f"{WORK_ORDER_NUMBER_PREFIX}-{year}-{suffix}"


def _require_id(value: Optional[str], name: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidArgumentError(f"{name} is required.")
    return value


def _request_path(request_id: str) -> str:
    return doc_path(SERVICE_REQUESTS_COLLECTION, request_id)


def _work_order_path(work_order_id: str) -> str:
    return doc_path(WORK_ORDERS_COLLECTION, work_order_id)


def _find_work_order_by_source(tx: Transaction, source_request_id: str):
    records = tx.query(
        WORK_ORDERS_COLLECTION,
        filters=[("sourceRequestId", "==", source_request_id)],
        limit=1,
    )
    return records[0] if records else None


def create_work_order(
    store: DocumentStore, source_request_id: Optional[str], force_emit: bool = False
) -> dict:
    source_request_id = _require_id(source_request_id, "sourceRequestId")
    request_path = _request_path(source_request_id)

    def _create(tx: Transaction) -> dict:
        source = tx.get(request_path)
        if source is None:
            raise NotFoundError("Service request not found.")
        if not source.get("isWorkOrder") and not force_emit:
            raise FailedPreconditionError(
                "This service request is not eligible to generate a work order."
            )

        linked_id = source.get("linkedWorkOrderId")
        if linked_id:
            existing = tx.get(_work_order_path(linked_id)) or {}
            return {
                "workOrderId": linked_id,
                "workOrderNumber": existing.get("workOrderNumber") or "OT-EXISTING",
                "alreadyExists": True,
            }

        work_order_id = store.new_id(WORK_ORDERS_COLLECTION)
        work_order_number = build_temp_work_order_number()
        tx.set(
            _work_order_path(work_order_id),
            {
                "workOrderNumber": work_order_number,
                "status": WorkOrderStatus.ISSUED.value,
                "sourceRequestId": source_request_id,
                "sourceReference": source.get("reference"),
                "matrix": source.get("matrix"),
                "notes": source.get("notes") or "",
                "client": source.get("client"),
                "samples": source.get("samples"),
                "analyses": source.get("analyses"),
                "pricing": source.get("pricing"),
                "createdAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
                "issuedAt": SERVER_TIMESTAMP,
            },
        )
        tx.update(
            request_path,
            {
                "isWorkOrder": True,
                "status": ServiceRequestStatus.CONVERTED_TO_WORK_ORDER.value,
                "linkedWorkOrderId": work_order_id,
                "updatedAt": SERVER_TIMESTAMP,
            },
        )
        return {
            "workOrderId": work_order_id,
            "workOrderNumber": work_order_number,
            "alreadyExists": False,
        }

    result = store.run_transaction(_create)
    if not result["alreadyExists"]:
        logger.info(
            "Issued work order %s for request %s",
            result["workOrderNumber"],
            source_request_id,
        )
    return result


def complete_work_order(
    store: DocumentStore,
    work_order_id: Optional[str] = None,
    source_request_id: Optional[str] = None,
) -> dict:
    work_order_id = (work_order_id or "").strip()
    source_request_input = (source_request_id or "").strip()
    if not work_order_id and not source_request_input:
        raise InvalidArgumentError("workOrderId or sourceRequestId is required.")

    def _complete(tx: Transaction) -> dict:
        resolved_id = work_order_id
        if not resolved_id:
            record = _find_work_order_by_source(tx, source_request_input)
            if record is None:
                raise NotFoundError(
                    "No work order found for the provided sourceRequestId."
                )
            resolved_id = record.id

        work_order = tx.get(_work_order_path(resolved_id))
        if work_order is None:
            raise NotFoundError("Work order not found.")

        request_id = source_request_input or str(
            work_order.get("sourceRequestId") or ""
        ).strip()
        if not request_id:
            raise FailedPreconditionError(
                "The work order has no sourceRequestId to update."
            )
        if tx.get(_request_path(request_id)) is None:
            raise NotFoundError("Source service request not found.")

        tx.update(
            _work_order_path(resolved_id),
            {
                "status": WorkOrderStatus.COMPLETED.value,
                "completedAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            },
        )
        tx.update(
            _request_path(request_id),
            {
                "status": ServiceRequestStatus.WORK_ORDER_COMPLETED.value,
                "updatedAt": SERVER_TIMESTAMP,
            },
        )
        return {
            "workOrderId": resolved_id,
            "workOrderNumber": work_order.get("workOrderNumber") or resolved_id,
            "sourceRequestId": request_id,
            "status": WorkOrderStatus.COMPLETED.value,
        }

    return store.run_transaction(_complete)


def _set_linked_status(
    store: DocumentStore,
    source_request_id: Optional[str],
    *,
    work_order_status: WorkOrderStatus,
    stamp_field: str,
    request_status: ServiceRequestStatus,
    action: str,
) -> dict:
    source_request_id = _require_id(source_request_id, "sourceRequestId")
    request_path = _request_path(source_request_id)

    def _apply(tx: Transaction) -> dict:
        source = tx.get(request_path)
        if source is None:
            raise NotFoundError("Service request not found.")
        linked_id = source.get("linkedWorkOrderId")
        if not linked_id:
            raise FailedPreconditionError(
                f"This request has no linked work order to {action}."
            )
        work_order = tx.get(_work_order_path(linked_id))
        if work_order is None:
            raise NotFoundError("Linked work order not found.")

        tx.update(
            _work_order_path(linked_id),
            {
                "status": work_order_status.value,
                stamp_field: SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            },
        )
        tx.update(
            request_path,
            {
                "isWorkOrder": True,
                "status": request_status.value,
                "updatedAt": SERVER_TIMESTAMP,
            },
        )
        return {
            "workOrderId": linked_id,
            "workOrderNumber": work_order.get("workOrderNumber") or linked_id,
            "status": work_order_status.value,
        }

    return store.run_transaction(_apply)


def pause_work_order(store: DocumentStore, source_request_id: Optional[str]) -> dict:
    return _set_linked_status(
        store,
        source_request_id,
        work_order_status=WorkOrderStatus.PAUSED,
        stamp_field="pausedAt",
        request_status=ServiceRequestStatus.WORK_ORDER_PAUSED,
        action="pause",
    )


def resume_work_order(store: DocumentStore, source_request_id: Optional[str]) -> dict:
    return _set_linked_status(
        store,
        source_request_id,
        work_order_status=WorkOrderStatus.ISSUED,
        stamp_field="resumedAt",
        request_status=ServiceRequestStatus.CONVERTED_TO_WORK_ORDER,
        action="resume",
    )


def delete_service_request(
    store: DocumentStore,
    source_request_id: Optional[str],
    *,
    deleted_by_uid: Optional[str] = None,
    deleted_by_email: Optional[str] = None,
) -> dict:
    """
    Archives a service request under deleted_service_requests and removes it.

    The linked work order (or, failing that, any work order created from this
    request) is marked cancelled.
    """
    source_request_id = _require_id(source_request_id, "sourceRequestId")
    request_path = _request_path(source_request_id)

    def _delete(tx: Transaction) -> None:
        source = tx.get(request_path)
        if source is None:
            raise NotFoundError("Service request not found.")

        linked_id = source.get("linkedWorkOrderId")
        linked_id = linked_id.strip() if isinstance(linked_id, str) else ""
        work_order_id = None
        if linked_id and tx.get(_work_order_path(linked_id)) is not None:
            work_order_id = linked_id
        if work_order_id is None:
            record = _find_work_order_by_source(tx, source_request_id)
            if record is not None:
                work_order_id = record.id

        if work_order_id:
            tx.set(
                _work_order_path(work_order_id),
                {
                    "status": WorkOrderStatus.CANCELLED.value,
                    "cancelledAt": SERVER_TIMESTAMP,
                    "updatedAt": SERVER_TIMESTAMP,
                },
                merge=True,
            )

        tx.set(
            doc_path(DELETED_SERVICE_REQUESTS_COLLECTION, source_request_id),
            {
                **source,
                "originalRequestId": source_request_id,
                "deletedAt": SERVER_TIMESTAMP,
                "deletedBy": {"uid": deleted_by_uid, "email": deleted_by_email},
            },
        )
        tx.delete(request_path)

    store.run_transaction(_delete)
    logger.info("Archived service request %s", source_request_id)
    return {"deletedRequestId": source_request_id}
