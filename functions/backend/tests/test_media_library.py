import unittest
from datetime import datetime, timezone

from backend import media_library
from backend.db import InMemoryDocumentStore, doc_path
from backend.storage import InMemoryStorageClient
from shared.constants import DOWNLOAD_TOKENS_METADATA_KEY
from shared.errors import (
    DeadlineExceededError,
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
)
from shared.firebase_constants import MEDIA_COLLECTION, MEDIASETS_COLLECTION


def _media_path(media_id):
    return doc_path(MEDIA_COLLECTION, media_id)


class ValidateDeleteTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()

    def test_requires_media_id(self):
        with self.assertRaises(InvalidArgumentError):
            media_library.validate_delete(self.store, "")

    def test_missing_media(self):
        with self.assertRaises(NotFoundError):
            media_library.validate_delete(self.store, "m1")

    def test_referenced_by_live_mediaset(self):
        self.store.set(doc_path(MEDIASETS_COLLECTION, "ms1"), {"deletedAt": None})
        self.store.set(_media_path("m1"), {"mediaSetId": "ms1"})

        result = media_library.validate_delete(self.store, "m1")

        self.assertFalse(result.allowed)
        self.assertEqual(result.reason, media_library.REFERENCED_BY_MEDIASET)
        self.assertTrue(media_library.is_media_referenced(self.store, "m1"))
        self.assertNotIn("deletedAt", self.store.get(_media_path("m1")))

    def test_deleted_or_missing_mediaset_does_not_block(self):
        self.store.set(
            doc_path(MEDIASETS_COLLECTION, "ms1"),
            {"deletedAt": datetime(2025, 1, 1, tzinfo=timezone.utc)},
        )
        self.store.set(_media_path("m1"), {"mediaSetId": "ms1"})
        self.store.set(_media_path("m2"), {"mediaSetId": "gone"})

        self.assertTrue(media_library.validate_delete(self.store, "m1").allowed)
        self.assertTrue(media_library.validate_delete(self.store, "m2").allowed)
        self.assertIsNotNone(self.store.get(_media_path("m1"))["deletedAt"])
        self.assertFalse(media_library.is_media_referenced(self.store, "missing"))


class DownloadUrlTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.storage = InMemoryStorageClient()

    def _media(self, media_id, media_type, derivatives):
        self.store.set(
            _media_path(media_id),
            {"type": media_type, "paths": {"derivatives": derivatives}},
        )

    def test_preferred_derivative_path(self):
        image = {
            "type": "image",
            "paths": {
                "derivatives": {
                    "webp_small": {"storagePath": "s"},
                    "webp_medium": {"storagePath": "m"},
                }
            },
        }
        video = {
            "type": "video",
            "paths": {
                "derivatives": {
                    "webm_360": {"storagePath": "360"},
                    "webm_720": {"storagePath": "720"},
                }
            },
        }
        fallback = {"type": "image", "paths": {"derivatives": {"webp_thumb": "t"}}}

        self.assertEqual(media_library.preferred_derivative_path(image), "m")
        self.assertEqual(media_library.preferred_derivative_path(video), "720")
        self.assertEqual(media_library.preferred_derivative_path(fallback), "t")
        with self.assertRaises(FailedPreconditionError):
            media_library.preferred_derivative_path({"paths": {"derivatives": {}}})

    def test_generate_reuses_stored_url(self):
        path = "temp-assets/m1/webp_medium.webp"
        self.storage.put_bytes(path, b"x")
        self._media("m1", "image", {"webp_medium": {"storagePath": path}})

        first = media_library.generate_download_url(self.store, self.storage, "m1")
        second = media_library.generate_download_url(self.store, self.storage, "m1")

        self.assertEqual(first, second)
        url = first["downloadURL"]
        self.assertIn("/o/temp-assets%2Fm1%2Fwebp_medium.webp?alt=media&token=", url)
        self.assertEqual(self.store.get(_media_path("m1"))["downloadURL"], url)

    def test_regenerate_rotates_token(self):
        path = "temp-assets/m1/video_720.webm"
        self.storage.put_bytes(
            path, b"x", metadata={DOWNLOAD_TOKENS_METADATA_KEY: "old"}
        )
        self._media("m1", "video", {"webm_720": {"storagePath": path}})

        result = media_library.regenerate_download_url(self.store, self.storage, "m1")

        self.assertFalse(result["downloadURL"].endswith("token=old"))
        stored = self.store.get(_media_path("m1"))
        self.assertEqual(stored["downloadURL"], result["downloadURL"])

    def test_errors(self):
        with self.assertRaises(InvalidArgumentError):
            media_library.generate_download_url(self.store, self.storage, None)
        with self.assertRaises(NotFoundError):
            media_library.generate_download_url(self.store, self.storage, "nope")

        self._media("m1", "image", {"webp_medium": {"storagePath": "missing.webp"}})
        with self.assertRaises(NotFoundError) as ctx:
            media_library.generate_download_url(self.store, self.storage, "m1")
        self.assertEqual(ctx.exception.message, "file-not-found")

        self._media("m2", "image", {})
        with self.assertRaises(FailedPreconditionError) as ctx:
            media_library.generate_download_url(self.store, self.storage, "m2")
        self.assertEqual(ctx.exception.message, "no-derivatives")


class MediaLinkTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.store.set(_media_path("m1"), {"type": "image"})

    def test_sanitize_hex_color(self):
        self.assertEqual(media_library.sanitize_hex_color(" #AABBCC "), "#aabbcc")
        self.assertEqual(media_library.sanitize_hex_color("red"), "#ffffff")
        self.assertEqual(media_library.sanitize_hex_color("#abc"), "#ffffff")
        self.assertEqual(media_library.sanitize_hex_color(None), "#ffffff")

    def test_set_and_clear_link(self):
        link = media_library.set_media_link(
            self.store, "m1", "zora", " https://zora.co/piece ", "#00FF00"
        )

        self.assertEqual(
            link,
            {
                "provider": "zora",
                "url": "https://zora.co/piece",
                "fontColor": "#00ff00",
            },
        )
        stored = self.store.get(_media_path("m1"))["link"]
        self.assertEqual(stored["url"], "https://zora.co/piece")
        self.assertIsNotNone(stored["updatedAt"])

        self.assertIsNone(media_library.set_media_link(self.store, "m1", "none"))
        self.assertIsNone(self.store.get(_media_path("m1"))["link"])

    def test_invalid_link(self):
        with self.assertRaises(InvalidArgumentError):
            media_library.set_media_link(self.store, "m1", "opensea", "https://x.io")
        with self.assertRaises(InvalidArgumentError):
            media_library.set_media_link(self.store, "m1", "objkt", "  ")
        with self.assertRaises(InvalidArgumentError):
            media_library.set_media_link(self.store, "m1", "objkt", "ftp://objkt.com/a")

    def test_missing_media(self):
        with self.assertRaises(NotFoundError):
            media_library.set_media_link(self.store, "nope", None)


class ListAndWaitTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        for media_id, day, media_type, extra in (
            ("old", 1, "image", {}),
            ("new", 3, "video", {}),
            ("gone", 2, "image", {"deletedAt": datetime(2025, 2, 1)}),
        ):
            self.store.set(
                _media_path(media_id),
                {"type": media_type, "createdAt": datetime(2025, 1, day), **extra},
            )

    def test_list_media(self):
        ids = [m["id"] for m in media_library.list_media(self.store)]
        self.assertEqual(ids, ["new", "old"])

        media = media_library.list_media(self.store, include_deleted=True)
        ids = [m["id"] for m in media]
        self.assertEqual(ids, ["new", "gone", "old"])

        media = media_library.list_media(self.store, media_type="image")
        ids = [m["id"] for m in media]
        self.assertEqual(ids, ["old"])

    def test_find_by_upload_id(self):
        self.store.set(_media_path("u1"), {"uploadId": "u1", "processed": False})

        found = media_library.find_media_by_upload_id(self.store, "u1")
        self.assertEqual(found["id"], "u1")
        self.assertIsNone(media_library.find_media_by_upload_id(self.store, "u2"))

    def test_wait_until_processed(self):
        self.store.set(_media_path("u1"), {"uploadId": "u1", "processed": False})
        sleeps = []

        def _sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) == 2:
                self.store.update(_media_path("u1"), {"processed": True})

        media = media_library.wait_for_media_by_upload_id(
            self.store, "u1", require_processed=True, poll_interval=0.5, sleep=_sleep
        )

        self.assertTrue(media["processed"])
        self.assertEqual(sleeps, [0.5, 0.5])

    def test_wait_returns_unprocessed_when_allowed(self):
        self.store.set(_media_path("u1"), {"uploadId": "u1", "processed": False})

        media = media_library.wait_for_media_by_upload_id(
            self.store, "u1", sleep=self.fail
        )

        self.assertEqual(media["id"], "u1")

    def test_wait_times_out(self):
        now = [0.0]

        def _sleep(seconds):
            now[0] += seconds

        with self.assertRaises(DeadlineExceededError):
            media_library.wait_for_media_by_upload_id(
                self.store, "u9", timeout=3, sleep=_sleep, clock=lambda: now[0]
            )
        self.assertEqual(now[0], 3)

    def test_wait_requires_upload_id(self):
        with self.assertRaises(InvalidArgumentError):
            media_library.wait_for_media_by_upload_id(self.store, "")


if __name__ == "__main__":
    unittest.main()
