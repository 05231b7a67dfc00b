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
Draft-editing helpers for configurations.

These work on camelCase draft payloads rather than validated models because a
draft in progress may still have blank sample types or no analyses.
"""

from typing import Any, Dict, List, Optional, Sequence

from lab import catalogs
from lab.types import ConfigurationType
from shared.constants import DEFAULT_TAX_PERCENT, SAMPLE_CODE_PREFIX
from shared.errors import InvalidArgumentError


def sample_code(index: int) -> str:
    """Code for the sample at zero-based `index`, e.g. M-001."""
    return f"{SAMPLE_CODE_PREFIX}{index + 1:03d}"


def resize_samples(samples: Dict[str, Any], agreed_count: int) -> Dict[str, Any]:
    target = agreed_count or 1
    items = list(samples.get("items") or [])
    if target > len(items):
        for index in range(len(items), target):
            items.append(
                {
                    "sampleCode": sample_code(index),
                    "sampleType": "",
                    "takenAt": None,
                    "notes": "",
                }
            )
    else:
        items = items[:target]
    return {
        **samples,
        "agreedCount": agreed_count,
        "executedCount": target,
        "items": items,
    }


def analysis_item_from_parameter(parameter: catalogs.Parameter) -> Dict[str, Any]:
    return {
        "parameterId": parameter.id,
        "parameterLabelEs": parameter.label_es,
        "unit": parameter.default_unit,
        "method": parameter.default_method,
        "rangeOffered": parameter.default_range or "",
        "isAccredited": parameter.accredited_default,
        "turnaround": "standard",
        "unitPrice": 0,
        "appliesToSampleCodes": None,
    }


def add_parameter(
    items: List[Dict[str, Any]], matrix: str, parameter_id: str
) -> List[Dict[str, Any]]:
    if any(item.get("parameterId") == parameter_id for item in items):
        return list(items)
    parameter = catalogs.find_parameter(matrix, parameter_id)
    if parameter is None:
        return list(items)
    return [*items, analysis_item_from_parameter(parameter)]


def add_package(
    items: List[Dict[str, Any]], matrix: str, package_id: str
) -> List[Dict[str, Any]]:
    """Appends the package's parameters that are not already listed.

    Parameters missing from the matrix catalog are skipped, so a soil package
    added to a water configuration adds nothing.
    """
    package = catalogs.find_package(package_id)
    if package is None:
        raise InvalidArgumentError(f"Unknown analysis package: {package_id}")
    result = list(items)
    for parameter_id in package.parameter_ids:
        result = add_parameter(result, matrix, parameter_id)
    return result


def compute_totals(
    configuration_type: str,
    items: List[Dict[str, Any]],
    agreed_count: int,
    tax_percent: Optional[float] = None,
) -> Optional[Dict[str, float]]:
    """
    Returns {"subtotal", "total"} for a quote, or None for work-order-only
    configurations, which carry no pricing.
    """
    if configuration_type == ConfigurationType.WORK_ORDER:
        return None
    subtotal = sum((item.get("unitPrice") or 0) * agreed_count for item in items)
    tax = tax_percent or DEFAULT_TAX_PERCENT
    return {"subtotal": subtotal, "total": subtotal + subtotal * tax / 100}


def apply_draft_edits(
    draft: Dict[str, Any],
    *,
    agreed_count: Optional[int] = None,
    parameter_ids: Sequence[str] = (),
    package_ids: Sequence[str] = (),
) -> Dict[str, Any]:
    """
    Applies sample resizing and analysis additions to a draft, then refreshes
    its pricing totals.
    """
    matrix = draft.get("matrix") or "water"
    samples = dict(draft.get("samples") or {})
    if agreed_count is not None:
        samples = resize_samples(samples, agreed_count)

    items = list((draft.get("analyses") or {}).get("items") or [])
    for package_id in package_ids:
        items = add_package(items, matrix, package_id)
    for parameter_id in parameter_ids:
        items = add_parameter(items, matrix, parameter_id)

    pricing = dict(draft.get("pricing") or {})
    totals = compute_totals(
        draft.get("type") or ConfigurationType.PROFORMA,
        items,
        samples.get("agreedCount") or 0,
        pricing.get("taxPercent"),
    )
    if totals is not None:
        pricing.update(totals)
    return {
        **draft,
        "samples": samples,
        "analyses": {**(draft.get("analyses") or {}), "items": items},
        "pricing": pricing,
    }
