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

MEDIA_COLLECTION = "media"
MEDIASETS_COLLECTION = "mediasets"
MEDIASET_ITEMS_COLLECTION = "items"
EXHIBITIONS_COLLECTION = "exhibitions"
SERVICE_REQUESTS_COLLECTION = "service_requests"
DELETED_SERVICE_REQUESTS_COLLECTION = "deleted_service_requests"
WORK_ORDERS_COLLECTION = "work_orders"
ABOUT_ME_COLLECTION = "about_me"
CONTACT_COLLECTION = "contact"
SITE_CONTENT_DOC_ID = "default"

# Pre-media-library collection, only read by the artworks migration.
LEGACY_ARTWORKS_COLLECTION = "artworks"
