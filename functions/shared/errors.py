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

from typing import Optional


class StudioError(Exception):
    """Base error carrying a short machine-readable code."""

    code = "internal"

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class InvalidArgumentError(StudioError):
    code = "invalid-argument"


class NotFoundError(StudioError):
    code = "not-found"


class FailedPreconditionError(StudioError):
    code = "failed-precondition"


class UnauthenticatedError(StudioError):
    code = "unauthenticated"


class DeadlineExceededError(StudioError):
    code = "deadline-exceeded"
