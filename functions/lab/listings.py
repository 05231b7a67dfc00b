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
Table rows for the service-request and work-order listings.

Stored documents are read defensively: any missing or malformed field falls
back to a display default instead of failing the whole listing.
"""

import math
import re
import unicodedata
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from backend.db import DocumentRecord, DocumentStore
from shared.constants import DEFAULT_TAX_PERCENT
from shared.errors import InvalidArgumentError
from shared.firebase_constants import SERVICE_REQUESTS_COLLECTION, WORK_ORDERS_COLLECTION
from shared.json_utils import convert_keys

MATRIX_LABELS = {"water": "Agua", "soil": "Suelo"}

WORK_ORDER_STATUS_LABELS = {
    "issued": "OT emitida",
    "paused": "OT pausada",
    "completed": "OT finalizada",
    "cancelled": "OT cancelada",
    "unknown": "Estado desconocido",
}

SERVICE_REQUEST_STATUS_LABELS = {
    "draft": "(Borrador)",
    "submitted": "Proforma enviada",
    "converted_to_work_order": "Convertida a OT",
    "work_order_paused": "Orden de trabajo pausada",
    "work_order_completed": "Orden de trabajo finalizada",
    "cancelled": "Cancelada",
}

# Traffic-light colour names shown in the OT column; searchable by name.
OT_COLOR_LABELS = {
    "paused": "amarillo",
    "completed": "verde suave",
    "cancelled": "gris",
    "issued": "verde",
}

_OT_SORT_RANK = {"paused": 1, "issued": 2, "completed": 3, "cancelled": 4}

SORT_KEYS = (
    "reference",
    "ot",
    "matrix",
    "client",
    "samples",
    "analyses",
    "status",
    "notes",
    "updatedAt",
)


@dataclass
class ListingClient:
    business_name: str = ""
    tax_id: str = ""
    contact_name: str = ""


@dataclass
class ListingRow:
    id: str
    number: str
    reference: str
    source_request_id: str
    notes: str
    matrix: str
    status: str
    status_label: str
    is_work_order: bool
    client: ListingClient = field(default_factory=ListingClient)
    sample_items: List[Dict[str, str]] = field(default_factory=list)
    analysis_items: List[Dict[str, Any]] = field(default_factory=list)
    tax_percent: float = DEFAULT_TAX_PERCENT
    client_business_name: str = "—"
    agreed_count: int = 0
    analyses_count: int = 0
    total: float = 0
    subtotal: float = 0
    updated_at_label: str = "—"
    updated_at_ms: int = 0

    def to_dict(self) -> dict:
        return convert_keys(asdict(self), "snake_to_camel")


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_number(value: Any, default: float = 0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _as_int(value: Any) -> int:
    return int(_as_number(value, 0))


def _text(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


def format_timestamp(value: Any) -> str:
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y %H:%M") + " hs"
    return "—"


def timestamp_ms(value: Any) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    return 0


def _client(value: Any) -> ListingClient:
    client = _as_dict(value)
    return ListingClient(
        business_name=_text(client.get("businessName")),
        tax_id=_text(client.get("taxId")),
        contact_name=_text(client.get("contactName")),
    )


def _sample_items(samples: dict) -> List[Dict[str, str]]:
    items = samples.get("items")
    if not isinstance(items, list):
        return []
    return [
        {
            "sampleCode": _text(_as_dict(item).get("sampleCode"), "—"),
            "sampleType": _text(_as_dict(item).get("sampleType"), "Sin tipo"),
        }
        for item in items
    ]


def _analysis_items(analyses: dict) -> List[Dict[str, Any]]:
    items = analyses.get("items")
    if not isinstance(items, list):
        return []
    return [
        {
            "parameterLabelEs": _text(
                _as_dict(item).get("parameterLabelEs"), "Parámetro"
            ),
            "unitPrice": _as_number(_as_dict(item).get("unitPrice")),
        }
        for item in items
    ]


def _common_fields(data: dict) -> dict:
    pricing = _as_dict(data.get("pricing"))
    samples = _as_dict(data.get("samples"))
    analyses = _as_dict(data.get("analyses"))
    client = _client(data.get("client"))
    analysis_items = analyses.get("items")
    return {
        "notes": _text(data.get("notes")),
        "matrix": data.get("matrix") or "water",
        "client": client,
        "sample_items": _sample_items(samples),
        "analysis_items": _analysis_items(analyses),
        "tax_percent": _as_number(pricing.get("taxPercent"), DEFAULT_TAX_PERCENT),
        "client_business_name": client.business_name or "—",
        "agreed_count": _as_int(samples.get("agreedCount")),
        "analyses_count": len(analysis_items) if isinstance(analysis_items, list) else 0,
        "total": _as_number(pricing.get("total")),
        "subtotal": _as_number(pricing.get("subtotal")),
        "updated_at_label": format_timestamp(data.get("updatedAt")),
        "updated_at_ms": timestamp_ms(data.get("updatedAt")),
    }


def build_work_order_row(record: DocumentRecord) -> ListingRow:
    data = record.data
    status = str(data.get("status") or "").lower()
    if status not in _OT_SORT_RANK:
        status = "unknown"
    return ListingRow(
        id=record.id,
        number=_text(data.get("workOrderNumber"), record.id),
        reference=_text(data.get("sourceReference"), "—"),
        source_request_id=_text(data.get("sourceRequestId")),
        status=status,
        status_label=WORK_ORDER_STATUS_LABELS[status],
        is_work_order=True,
        **_common_fields(data),
    )


def build_service_request_row(record: DocumentRecord) -> ListingRow:
    data = record.data
    status = data.get("status") or "draft"
    reference = _text(data.get("reference"), "—")
    return ListingRow(
        id=record.id,
        number=reference,
        reference=reference,
        source_request_id=record.id,
        status=status,
        status_label=SERVICE_REQUEST_STATUS_LABELS.get(status, status),
        is_work_order=bool(data.get("isWorkOrder")),
        **_common_fields(data),
    )


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def collation_key(text: Optional[str]) -> List[Any]:
    """
    Accent- and case-insensitive key with natural number ordering, so
    "OT-2" sorts before "OT-10" and "Níquel" equals "niquel".
    """
    parts = re.split(r"(\d+)", _fold((text or "").strip()))
    return [int(part) if index % 2 else part for index, part in enumerate(parts)]


def _searchable_text(row: ListingRow) -> str:
    parts = [
        row.number,
        row.reference,
        row.source_request_id,
        row.notes,
        row.matrix,
        MATRIX_LABELS.get(row.matrix, row.matrix),
        row.status,
        row.status_label,
        row.client.business_name,
        row.client.tax_id,
        row.client.contact_name,
        row.client_business_name,
        str(row.agreed_count),
        str(row.analyses_count),
        str(row.total),
        str(row.subtotal),
        str(row.tax_percent),
        row.updated_at_label,
    ]
    if row.is_work_order:
        parts.append(OT_COLOR_LABELS.get(row.status, "rojo"))
    for sample in row.sample_items:
        parts.extend([sample["sampleCode"], sample["sampleType"]])
    for analysis in row.analysis_items:
        parts.extend([analysis["parameterLabelEs"], str(analysis["unitPrice"])])
    return _fold(" ".join(parts))


def search_rows(rows: List[ListingRow], query: Optional[str]) -> List[ListingRow]:
    needle = _fold((query or "").strip())
    if not needle:
        return list(rows)
    return [row for row in rows if needle in _searchable_text(row)]


_SORT_VALUES: Dict[str, Callable[[ListingRow], Any]] = {
    "reference": lambda row: collation_key(row.number),
    "ot": lambda row: _OT_SORT_RANK.get(row.status, 0),
    "matrix": lambda row: collation_key(MATRIX_LABELS.get(row.matrix, row.matrix)),
    "client": lambda row: collation_key(row.client_business_name),
    "samples": lambda row: row.agreed_count,
    "analyses": lambda row: row.analyses_count,
    "status": lambda row: collation_key(row.status_label),
    "notes": lambda row: collation_key(row.notes),
    "updatedAt": lambda row: row.updated_at_ms,
}


def sort_rows(
    rows: List[ListingRow], sort_key: str = "updatedAt", direction: str = "desc"
) -> List[ListingRow]:
    """Sorts by `sort_key`, breaking ties by the row number."""
    if sort_key not in _SORT_VALUES:
        raise InvalidArgumentError(f"Unsupported sort key: {sort_key}")
    value = _SORT_VALUES[sort_key]
    return sorted(
        rows,
        key=lambda row: (value(row), collation_key(row.number)),
        reverse=direction == "desc",
    )


def list_work_orders(
    store: DocumentStore,
    *,
    query: Optional[str] = None,
    sort_key: str = "updatedAt",
    direction: str = "desc",
) -> List[ListingRow]:
    records = store.query(WORK_ORDERS_COLLECTION, order_by="updatedAt", descending=True)
    rows = [build_work_order_row(record) for record in records]
    return sort_rows(search_rows(rows, query), sort_key, direction)


def list_service_requests(
    store: DocumentStore, *, query: Optional[str] = None
) -> List[ListingRow]:
    records = store.query(
        SERVICE_REQUESTS_COLLECTION, order_by="updatedAt", descending=True
    )
    rows = [build_service_request_row(record) for record in records]
    return search_rows(rows, query)
