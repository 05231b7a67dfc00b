import unittest

from backend import exhibitions
from backend.db import InMemoryDocumentStore, doc_path
from shared.errors import InvalidArgumentError, NotFoundError
from shared.firebase_constants import MEDIA_COLLECTION


class ExhibitionTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()

    def _create(self, title, **kwargs):
        return exhibitions.create_exhibition(self.store, title=title, **kwargs)

    def test_helpers(self):
        self.assertEqual(exhibitions.unique_ids(["a", "b", "a", "", None]), ["a", "b"])
        self.assertEqual(exhibitions.unique_ids(None), [])
        stripped = exhibitions.strip_html("<p>Uno &amp; dos</p>\n<p> tres</p>")
        self.assertEqual(stripped, "Uno & dos tres")
        self.assertEqual(exhibitions.strip_html(None), "")

    def test_create_appends_order(self):
        first = self._create("Cuevas", media_ids=["m1", "m2", "m1"])
        second = self._create("Paisajes", feature_media_id="")

        self.assertEqual(first["order"], 0)
        self.assertEqual(first["mediaIds"], ["m1", "m2"])
        self.assertEqual(second["order"], 1)
        self.assertIsNone(second["featureMediaId"])
        self.assertEqual(
            [e["id"] for e in exhibitions.list_exhibitions(self.store)],
            [first["id"], second["id"]],
        )

    def test_create_requires_title(self):
        with self.assertRaises(InvalidArgumentError):
            self._create("  ")

    def test_update(self):
        created = self._create("Cuevas", body="<p>a</p>")

        updated = exhibitions.update_exhibition(
            self.store,
            created["id"],
            {"title": "Cuevas II", "mediaIds": ["m2", "m2"], "featureMediaId": ""},
        )

        self.assertEqual(updated["title"], "Cuevas II")
        self.assertEqual(updated["mediaIds"], ["m2"])
        self.assertIsNone(updated["featureMediaId"])
        self.assertEqual(updated["body"], "<p>a</p>")
        with self.assertRaises(InvalidArgumentError):
            exhibitions.update_exhibition(self.store, created["id"], {"order": 9})
        with self.assertRaises(NotFoundError):
            exhibitions.update_exhibition(self.store, "missing", {"title": "x"})

    def test_reorder_and_delete(self):
        a = self._create("A")["id"]
        b = self._create("B")["id"]
        c = self._create("C")["id"]

        exhibitions.reorder_exhibitions(self.store, [c, a, b])
        self.assertEqual(
            [e["id"] for e in exhibitions.list_exhibitions(self.store)], [c, a, b]
        )

        exhibitions.delete_exhibition(self.store, a)
        with self.assertRaises(NotFoundError):
            exhibitions.get_exhibition(self.store, a)
        self.assertEqual(self._create("D")["order"], 3)

    def test_poster_path(self):
        video = {
            "type": "video",
            "paths": {"poster": {"storagePath": "poster.webp"}, "derivatives": {}},
        }
        image = {
            "type": "image",
            "paths": {
                "original": {"storagePath": "orig.png"},
                "derivatives": {"webp_small": {"storagePath": "small.webp"}},
            },
        }
        legacy = {"paths": {"original": "https://example.com/a.jpg"}}

        self.assertEqual(exhibitions.poster_path(video), "poster.webp")
        self.assertEqual(exhibitions.poster_path(image), "small.webp")
        self.assertIsNone(exhibitions.poster_path(legacy))
        self.assertIsNone(exhibitions.poster_path(None))

    def test_admin_rows(self):
        self.store.set(
            doc_path(MEDIA_COLLECTION, "feature"),
            {"type": "video", "paths": {"poster": {"storagePath": "p.webp"}}},
        )
        self._create(
            "Cuevas",
            body="<p>Texto <b>largo</b></p>",
            date_and_location="2024, Quito",
            feature_media_id="feature",
            media_ids=["m1", "m2"],
        )
        self._create("Vacía")

        rows = exhibitions.list_admin_rows(self.store)

        self.assertEqual(rows[0]["title"], "Cuevas")
        self.assertEqual(rows[0]["body"], "Texto largo")
        self.assertEqual(rows[0]["dateAndLocation"], "2024, Quito")
        self.assertEqual(rows[0]["posterPath"], "p.webp")
        self.assertEqual(rows[0]["videoCount"], 3)
        self.assertEqual(rows[1]["posterPath"], None)
        self.assertEqual(rows[1]["videoCount"], 0)
        self.assertEqual(rows[1]["dateAndLocation"], "")


if __name__ == "__main__":
    unittest.main()
