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

from backend.db import InMemoryDocumentStore, doc_path
from media_pipeline import migration
from shared.firebase_constants import (
    LEGACY_ARTWORKS_COLLECTION,
    MEDIA_COLLECTION,
    MEDIASETS_COLLECTION,
)


class MigrateArtworksTest(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.store.set(
            doc_path(LEGACY_ARTWORKS_COLLECTION, "a1"),
            {
                "title": "Cueva",
                "ownerUID": "owner",
                "ordering": 3,
                "images": ["https://example.com/1.jpg", "https://example.com/2.jpg"],
            },
        )
        self.store.set(doc_path(LEGACY_ARTWORKS_COLLECTION, "a2"), {"images": "bad"})

    def test_dry_run_writes_nothing(self):
        result = migration.migrate_artworks_to_assets(self.store, dry_run=True)

        self.assertEqual(result, {"success": True, "migrated": 2})
        self.assertEqual(self.store.query(MEDIASETS_COLLECTION), [])
        self.assertEqual(self.store.query(MEDIA_COLLECTION), [])

    def test_migration(self):
        result = migration.migrate_artworks_to_assets(self.store)

        self.assertEqual(result["migrated"], 2)
        mediasets = {r.data["title"]: r for r in self.store.query(MEDIASETS_COLLECTION)}
        self.assertEqual(set(mediasets), {"Cueva", ""})
        cueva = mediasets["Cueva"]
        self.assertEqual(cueva.data["id"], cueva.id)
        self.assertEqual(cueva.data["ordering"], 3)
        self.assertEqual(cueva.data["ownerUID"], "owner")
        self.assertIsNone(cueva.data["deletedAt"])
        self.assertIsNotNone(cueva.data["publishedAt"])
        self.assertIsInstance(mediasets[""].data["ordering"], int)

        media = self.store.query(
            MEDIA_COLLECTION, filters=[("mediaSetId", "==", cueva.id)]
        )
        self.assertEqual(
            sorted(m.data["downloadURL"] for m in media),
            ["https://example.com/1.jpg", "https://example.com/2.jpg"],
        )
        for record in media:
            self.assertEqual(record.data["type"], "image")
            self.assertFalse(record.data["processed"])
            self.assertEqual(record.data["paths"]["original"], record.data["downloadURL"])
        self.assertEqual(len(self.store.query(MEDIA_COLLECTION)), 2)


if __name__ == "__main__":
    unittest.main()
