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

import unittest

from media_pipeline import asset_selectors


def _asset(path):
    return {"storagePath": path}


class SelectImageAssetsTest(unittest.TestCase):

    def setUp(self):
        self.media = {
            "type": "image",
            "paths": {
                "original": _asset("uploads/images/1/a.png"),
                "derivatives": {
                    "webp_small": _asset("small"),
                    "webp_medium": _asset("medium"),
                    "webp_large": _asset("large"),
                },
            },
        }

    def test_desktop(self):
        result = asset_selectors.select_assets(self.media)

        self.assertEqual(result["low"], _asset("medium"))
        self.assertEqual(result["high"], _asset("large"))
        self.assertEqual(result["original"], _asset("uploads/images/1/a.png"))

    def test_mobile_stays_at_720(self):
        result = asset_selectors.select_assets(self.media, mobile=True)

        self.assertEqual(result["low"], _asset("medium"))
        self.assertEqual(result["high"], _asset("medium"))

    def test_resolution_named_keys_win(self):
        self.media["paths"]["derivatives"]["webp_720"] = _asset("720")

        result = asset_selectors.select_assets(self.media)

        self.assertEqual(result["low"], _asset("720"))

    def test_entries_without_storage_path_are_skipped(self):
        derivatives = self.media["paths"]["derivatives"]
        derivatives["webp_medium"] = {"storagePath": ""}
        derivatives["webp_large"] = None

        result = asset_selectors.select_assets(self.media)

        self.assertEqual(result["low"], _asset("small"))
        self.assertEqual(result["high"], _asset("small"))

    def test_legacy_string_original(self):
        media = {"paths": {"original": "https://example.com/a.jpg", "derivatives": {}}}

        result = asset_selectors.select_assets(media)

        self.assertEqual(result, {"low": None, "high": None, "original": None})


class SelectVideoAssetsTest(unittest.TestCase):

    def setUp(self):
        self.media = {
            "type": "video",
            "paths": {
                "poster": _asset("poster"),
                "derivatives": {
                    "webm_360": _asset("360"),
                    "webm_720": _asset("720"),
                    "webm_1080": _asset("1080"),
                },
            },
        }

    def test_desktop(self):
        result = asset_selectors.select_assets(self.media)

        self.assertEqual(result["low"], _asset("720"))
        self.assertEqual(result["high"], _asset("1080"))
        self.assertEqual(result["poster"], _asset("poster"))

    def test_mobile(self):
        result = asset_selectors.select_assets(self.media, mobile=True)

        self.assertEqual(result["low"], _asset("360"))
        self.assertEqual(result["high"], _asset("720"))

    def test_poster_falls_back_to_renditions(self):
        del self.media["paths"]["poster"]
        del self.media["paths"]["derivatives"]["webm_720"]

        result = asset_selectors.select_assets(self.media)

        self.assertEqual(result["poster"], _asset("360"))
        self.assertEqual(result["low"], _asset("1080"))

    def test_missing_paths(self):
        result = asset_selectors.select_assets({"type": "video", "paths": None})

        self.assertEqual(result, {"low": None, "high": None, "poster": None})


if __name__ == "__main__":
    unittest.main()
