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

import re
from datetime import datetime
from enum import StrEnum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from shared.constants import DEFAULT_CURRENCY, DEFAULT_TAX_PERCENT, DEFAULT_VALID_DAYS

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ConfigurationStatus(StrEnum):
    DRAFT = "draft"
    FINAL = "final"


class ConfigurationType(StrEnum):
    PROFORMA = "proforma"
    WORK_ORDER = "work_order"
    BOTH = "both"


class Matrix(StrEnum):
    WATER = "water"
    SOIL = "soil"


class ServiceRequestStatus(StrEnum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    CONVERTED_TO_WORK_ORDER = "converted_to_work_order"
    WORK_ORDER_PAUSED = "work_order_paused"
    WORK_ORDER_COMPLETED = "work_order_completed"
    CANCELLED = "cancelled"


class WorkOrderStatus(StrEnum):
    ISSUED = "issued"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CamelModel(BaseModel):
    """Accepts and emits the camelCase keys stored in Firestore."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, use_enum_values=True
    )


class ConfigurationClient(CamelModel):
    business_name: str = Field(..., min_length=1)
    tax_id: str = Field(..., min_length=1)
    contact_name: str = Field(..., min_length=1)
    contact_role: Optional[str] = None
    email: str
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not _EMAIL_PATTERN.match(value):
            raise ValueError("invalid email address")
        return value


class ConfigurationSampleItem(CamelModel):
    sample_code: str = Field(..., min_length=1)
    sample_type: str = Field(..., min_length=1)
    taken_at: Optional[datetime] = None
    notes: str = ""


class ConfigurationSamples(CamelModel):
    agreed_count: int = Field(..., ge=1)
    additional_count: int = 0
    executed_count: int = 1
    items: List[ConfigurationSampleItem]


class ConfigurationAnalysisItem(CamelModel):
    parameter_id: str
    parameter_label_es: str
    unit: str
    method: str
    range_offered: str = ""
    is_accredited: bool = False
    turnaround: Literal["standard", "urgent"] = "standard"
    unit_price: Optional[float] = 0
    applies_to_sample_codes: Optional[List[str]] = None


class ConfigurationAnalyses(CamelModel):
    apply_mode: Literal["all_samples", "by_sample"] = "all_samples"
    items: List[ConfigurationAnalysisItem] = Field(..., min_length=1)


class ConfigurationPricing(CamelModel):
    currency: Literal["USD"] = DEFAULT_CURRENCY
    subtotal: Optional[float] = None
    tax_percent: Optional[float] = DEFAULT_TAX_PERCENT
    total: Optional[float] = None
    valid_days: Optional[int] = DEFAULT_VALID_DAYS


class Configuration(CamelModel):
    """A quote (proforma) and/or work-order request as edited by the admin."""

    type: ConfigurationType
    matrix: Matrix
    reference: str = Field(..., min_length=1)
    status: ConfigurationStatus = ConfigurationStatus.DRAFT
    notes: str = ""
    client: ConfigurationClient
    samples: ConfigurationSamples
    analyses: ConfigurationAnalyses
    pricing: ConfigurationPricing = Field(default_factory=ConfigurationPricing)
