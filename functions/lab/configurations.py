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

import logging
from typing import Any, Dict, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from backend.db import DocumentStore, doc_path
from lab import pricing
from lab.types import (
    Configuration,
    ConfigurationStatus,
    ConfigurationType,
    ServiceRequestStatus,
)
from shared.firebase_constants import SERVICE_REQUESTS_COLLECTION

logger = logging.getLogger(__name__)

_FINAL_REQUEST_STATUSES = {
    ServiceRequestStatus.SUBMITTED,
    ServiceRequestStatus.CONVERTED_TO_WORK_ORDER,
    ServiceRequestStatus.WORK_ORDER_PAUSED,
}


def to_service_request_status(status: str) -> str:
    if status == ConfigurationStatus.FINAL:
        return ServiceRequestStatus.SUBMITTED
    return ServiceRequestStatus.DRAFT


def to_configuration_status(status: Optional[str]) -> str:
    if status in _FINAL_REQUEST_STATUSES:
        return ConfigurationStatus.FINAL
    return ConfigurationStatus.DRAFT


def to_is_work_order(configuration_type: str) -> bool:
    return configuration_type in (ConfigurationType.WORK_ORDER, ConfigurationType.BOTH)


def _to_request_fields(configuration: Configuration) -> Dict[str, Any]:
    payload = configuration.model_dump(by_alias=True, mode="python")
    configuration_type = payload.pop("type")
    totals = pricing.compute_totals(
        configuration_type,
        payload["analyses"]["items"],
        configuration.samples.agreed_count,
        configuration.pricing.tax_percent,
    )
    if totals is not None:
        payload["pricing"].update(totals)
    payload["isWorkOrder"] = to_is_work_order(configuration_type)
    payload["status"] = to_service_request_status(payload["status"])
    return payload


def create_configuration(store: DocumentStore, configuration: Configuration) -> str:
    request_id = store.new_id(SERVICE_REQUESTS_COLLECTION)
    data = _to_request_fields(configuration)
    data.update(
        {
            "linkedWorkOrderId": None,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        }
    )
    store.set(doc_path(SERVICE_REQUESTS_COLLECTION, request_id), data)
    logger.info(
        "Created service request %s (%s, %s)",
        request_id,
        data["status"],
        configuration.reference,
    )
    return request_id


def update_configuration(
    store: DocumentStore, request_id: str, configuration: Configuration
) -> None:
    """Overwrites the editable fields; raises NotFoundError for unknown ids."""
    data = _to_request_fields(configuration)
    data["updatedAt"] = SERVER_TIMESTAMP
    store.update(doc_path(SERVICE_REQUESTS_COLLECTION, request_id), data)


def get_configuration(store: DocumentStore, request_id: str) -> Optional[dict]:
    data = store.get(doc_path(SERVICE_REQUESTS_COLLECTION, request_id))
    if data is None:
        return None
    request_status = data.get("status")
    return {
        **data,
        "id": request_id,
        "type": (
            ConfigurationType.BOTH
            if data.get("isWorkOrder")
            else ConfigurationType.PROFORMA
        ),
        "status": to_configuration_status(request_status),
        "serviceRequestStatus": request_status,
    }
