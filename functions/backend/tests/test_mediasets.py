import unittest

from backend import mediasets
from backend.db import InMemoryDocumentStore
from shared.errors import InvalidArgumentError, NotFoundError


class MediaSetTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()

    def _ids(self, category="caves"):
        return [ms["id"] for ms in mediasets.list_mediasets(self.store, category)]

    def test_create_positions(self):
        first = mediasets.create_mediaset(self.store, "caves")
        last = mediasets.create_mediaset(self.store, "caves", "end")
        top = mediasets.create_mediaset(self.store, "caves", "start")

        self.assertEqual(first["ordering"], 0)
        self.assertEqual(last["ordering"], 1)
        self.assertEqual(top["ordering"], -1)
        self.assertEqual(top["category"], "caves")
        self.assertIsNone(top["deletedAt"])
        self.assertEqual(self._ids(), [top["id"], first["id"], last["id"]])

    def test_categories_are_separate(self):
        mediasets.create_mediaset(self.store, "caves")
        home = mediasets.create_mediaset(self.store, "home")

        self.assertEqual(home["ordering"], 0)
        self.assertEqual(self._ids("home"), [home["id"]])

    def test_invalid_arguments(self):
        with self.assertRaises(InvalidArgumentError):
            mediasets.create_mediaset(self.store, "portraits")
        with self.assertRaises(InvalidArgumentError):
            mediasets.create_mediaset(self.store, "home", "middle")
        with self.assertRaises(InvalidArgumentError):
            mediasets.list_mediasets(self.store, "portraits")

    def test_reorder_and_soft_delete(self):
        a = mediasets.create_mediaset(self.store, "caves")["id"]
        b = mediasets.create_mediaset(self.store, "caves")["id"]
        c = mediasets.create_mediaset(self.store, "caves")["id"]

        mediasets.reorder_mediasets(self.store, [c, a, b])
        self.assertEqual(self._ids(), [c, a, b])

        mediasets.soft_delete_mediaset(self.store, a)
        self.assertEqual(self._ids(), [c, b])
        self.assertIsNotNone(mediasets.find_mediaset(self.store, a)["deletedAt"])
        self.assertIsNone(mediasets.find_mediaset(self.store, "missing"))
        with self.assertRaises(NotFoundError):
            mediasets.soft_delete_mediaset(self.store, "missing")


class MediaSetItemTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.mediaset_id = mediasets.create_mediaset(self.store, "landscapes")["id"]

    def _items(self):
        return mediasets.list_items(self.store, self.mediaset_id)

    def test_single_items_append_in_order(self):
        first = mediasets.add_single_item(self.store, self.mediaset_id, "m1")
        second = mediasets.add_single_item(self.store, self.mediaset_id, "m2")

        self.assertEqual(first, {"id": "m1", "mediaId": "m1", "order": 0, "flex": 1})
        self.assertEqual(second["order"], 1)
        self.assertEqual([item["id"] for item in self._items()], ["m1", "m2"])

    def test_single_item_validation(self):
        with self.assertRaises(InvalidArgumentError):
            mediasets.add_single_item(self.store, self.mediaset_id, "")
        with self.assertRaises(NotFoundError):
            mediasets.add_single_item(self.store, "missing", "m1")

    def test_carousel_items(self):
        mediasets.add_single_item(self.store, self.mediaset_id, "m1")
        item = mediasets.add_carousel_item(
            self.store, self.mediaset_id, ["m3", "", "m2"]
        )

        self.assertEqual(item["mediaId"], "m3")
        self.assertEqual(
            item["mediaItems"],
            [{"mediaId": "m3", "order": 0}, {"mediaId": "m2", "order": 1}],
        )
        self.assertEqual(item["order"], 1)

        updated = mediasets.update_carousel(
            self.store, self.mediaset_id, item["id"], ["m4", "m3", "m2"]
        )
        self.assertEqual(updated["mediaId"], "m4")
        stored = self._items()[1]
        self.assertEqual(
            [ref["mediaId"] for ref in stored["mediaItems"]], ["m4", "m3", "m2"]
        )

    def test_carousel_needs_two_media(self):
        with self.assertRaises(InvalidArgumentError):
            mediasets.add_carousel_item(self.store, self.mediaset_id, ["m1"])
        item = mediasets.add_carousel_item(self.store, self.mediaset_id, ["m1", "m2"])
        with self.assertRaises(InvalidArgumentError):
            mediasets.update_carousel(self.store, self.mediaset_id, item["id"], ["m1"])

    def test_reorder_remove_and_flex(self):
        for media_id in ("m1", "m2", "m3"):
            mediasets.add_single_item(self.store, self.mediaset_id, media_id)

        mediasets.reorder_items(self.store, self.mediaset_id, ["m3", "m1", "m2"])
        self.assertEqual([item["id"] for item in self._items()], ["m3", "m1", "m2"])

        mediasets.remove_item(self.store, self.mediaset_id, "m1")
        self.assertEqual([item["id"] for item in self._items()], ["m3", "m2"])
        self.assertEqual(
            mediasets.add_single_item(self.store, self.mediaset_id, "m4")["order"], 3
        )

        mediasets.set_item_flex(self.store, self.mediaset_id, "m2", 4)
        self.assertEqual(self._items()[1]["flex"], 4)
        for flex in (0, 5):
            with self.assertRaises(InvalidArgumentError):
                mediasets.set_item_flex(self.store, self.mediaset_id, "m2", flex)

    def test_assigned_media_ids(self):
        mediasets.add_single_item(self.store, self.mediaset_id, "m1")
        mediasets.add_carousel_item(self.store, self.mediaset_id, ["m2", "m3"])
        deleted = mediasets.create_mediaset(self.store, "landscapes")["id"]
        mediasets.add_single_item(self.store, deleted, "m9")
        mediasets.soft_delete_mediaset(self.store, deleted)
        other = mediasets.create_mediaset(self.store, "caves")["id"]
        mediasets.add_single_item(self.store, other, "m8")

        self.assertEqual(
            mediasets.assigned_media_ids(self.store, "landscapes"), {"m1", "m2", "m3"}
        )


if __name__ == "__main__":
    unittest.main()
