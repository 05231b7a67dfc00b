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
from typing import Any, Literal

# Keys that are data (derivative names, storage paths) rather than field names.
PRESERVED_KEY_PARENTS = {"derivatives"}


def camel_to_snake(value: str) -> str:
    # "downloadURL" -> "download_url", "ownerUID" -> "owner_uid"
    value = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", value)
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", value)
    return value.lower()


def snake_to_camel(value: str) -> str:
    head, *rest = value.split("_")
    return head + "".join(_camel_word(word) for word in rest)


def _camel_word(word: str) -> str:
    if word in ("url", "uid"):
        return word.upper()
    return word[:1].upper() + word[1:]


def convert_keys(
    data: Any, direction: Literal["camel_to_snake", "snake_to_camel"]
) -> Any:
    """
    Recursively converts dictionary keys between camelCase and snake_case.

    Keys under a `derivatives` mapping are variant names (`webp_small`,
    `webm_720`) and are left untouched in both directions.
    """
    convert = camel_to_snake if direction == "camel_to_snake" else snake_to_camel
    return _convert(data, convert)


def _convert(data: Any, convert) -> Any:
    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            new_key = convert(key) if isinstance(key, str) else key
            if new_key in PRESERVED_KEY_PARENTS and isinstance(value, dict):
                result[new_key] = {
                    variant: _convert(entry, convert)
                    for variant, entry in value.items()
                }
            else:
                result[new_key] = _convert(value, convert)
        return result
    if isinstance(data, list):
        return [_convert(item, convert) for item in data]
    return data
