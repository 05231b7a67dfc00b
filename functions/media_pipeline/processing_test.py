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

import io
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from PIL import Image as PIL_Image

from backend.db import InMemoryDocumentStore, doc_path
from backend.storage import InMemoryStorageClient
from media_pipeline import ffmpeg, processing
from shared.firebase_constants import MEDIA_COLLECTION


def _png_bytes(size) -> bytes:
    buffer = io.BytesIO()
    PIL_Image.new("RGB", size, color=(200, 40, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


def _write_output(input_path, output_path, *args, **kwargs):
    with open(output_path, "wb") as f:
        f.write(b"rendered")


class UploadFilterTest(unittest.TestCase):

    def test_is_image_upload(self):
        self.assertTrue(
            processing.is_image_upload(
                processing.UploadedObject("uploads/images/1/a.png", "image/png")
            )
        )
        self.assertFalse(
            processing.is_image_upload(
                processing.UploadedObject("temp-assets/m1/a.webp", "image/webp")
            )
        )
        self.assertFalse(
            processing.is_image_upload(
                processing.UploadedObject("uploads/images/1/a.mp4", "video/mp4")
            )
        )

    def test_is_video_upload(self):
        self.assertTrue(
            processing.is_video_upload(
                processing.UploadedObject("uploads/videos/1/a.mp4", "video/mp4")
            )
        )
        self.assertFalse(
            processing.is_video_upload(
                processing.UploadedObject("uploads/videos/1/a.mp4", None)
            )
        )


class _PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.storage = InMemoryStorageClient()
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def _media(self, media_id):
        return self.store.get(doc_path(MEDIA_COLLECTION, media_id))


class ProcessImageUploadTest(_PipelineTestCase):

    def setUp(self):
        super().setUp()
        self.path = "uploads/images/1700000000000/a.png"
        self.storage.put_bytes(self.path, _png_bytes((400, 200)), "image/png")
        self.obj = processing.UploadedObject(
            name=self.path,
            content_type="image/png",
            size=1234,
            metadata={"uploadId": "u1", "originalFilename": "Photo.png"},
        )

    def test_generates_derivatives(self):
        media_id = processing.process_image_upload(
            self.store, self.storage, self.obj, tmp_dir=self.tmp_dir
        )

        self.assertEqual(media_id, "u1")
        media = self._media("u1")
        self.assertTrue(media["processed"])
        self.assertEqual(media["type"], "image")
        self.assertEqual(media["uploadId"], "u1")
        self.assertEqual(media["originalFilename"], "Photo.png")
        self.assertEqual(media["sizeBytes"], 1234)
        self.assertEqual(media["storagePath"], self.path)
        self.assertIsNone(media["mediaSetId"])
        self.assertEqual((media["width"], media["height"]), (400, 200))
        self.assertEqual(media["processing"]["stage"], "done")
        self.assertEqual(media["processing"]["progress"], 100)

        derivatives = media["paths"]["derivatives"]
        self.assertEqual(
            set(derivatives), {"webp_thumb", "webp_small", "webp_medium", "webp_large"}
        )
        medium = derivatives["webp_medium"]
        self.assertEqual(medium["storagePath"], "temp-assets/u1/webp_medium.webp")
        self.assertIn("Expires=", medium["downloadURL"])
        self.assertGreater(medium["sizeBytes"], 0)
        self.assertEqual(self.storage.content_types[medium["storagePath"]], "image/webp")

        self.assertFalse(self.storage.exists(self.path))
        self.assertEqual(os.listdir(self.tmp_dir), [])

    def test_ignores_other_objects(self):
        obj = processing.UploadedObject("uploads/videos/1/a.mp4", "video/mp4")

        self.assertIsNone(
            processing.process_image_upload(self.store, self.storage, obj, self.tmp_dir)
        )
        self.assertEqual(self.store.query(MEDIA_COLLECTION), [])

    def test_failure_leaves_document_unprocessed(self):
        self.storage.put_bytes(self.path, b"not an image", "image/png")

        with self.assertRaises(Exception):
            processing.process_image_upload(
                self.store, self.storage, self.obj, tmp_dir=self.tmp_dir
            )

        media = self._media("u1")
        self.assertFalse(media["processed"])
        self.assertEqual(media["processing"]["stage"], "downloaded")
        self.assertTrue(self.storage.exists(self.path))
        self.assertEqual(os.listdir(self.tmp_dir), [])


class ProcessVideoUploadTest(_PipelineTestCase):

    def setUp(self):
        super().setUp()
        self.path = "uploads/videos/1700000000000/clip.mp4"
        self.storage.put_bytes(self.path, b"video-bytes", "video/mp4")
        self.obj = processing.UploadedObject(
            name=self.path,
            content_type="video/mp4",
            metadata={
                "uploadId": "v1",
                "originContext": "exhibition",
                "exhibitionId": "ex1",
            },
        )
        video_metadata = {
            "format": {"duration": "12.6", "bit_rate": "800000"},
            "streams": [{"width": 1920, "height": 1080}],
        }
        for name, kwargs in (
            ("probe_metadata", {"return_value": video_metadata}),
            ("generate_poster", {"side_effect": _write_output}),
            ("transcode_to_webm", {"side_effect": _write_output}),
        ):
            patcher = patch.object(ffmpeg, name, **kwargs)
            setattr(self, f"{name}_mock", patcher.start())
            self.addCleanup(patcher.stop)

    def test_generates_poster_and_renditions(self):
        media_id = processing.process_video_upload(
            self.store, self.storage, self.obj, tmp_dir=self.tmp_dir
        )

        self.assertEqual(media_id, "v1")
        media = self._media("v1")
        self.assertTrue(media["processed"])
        self.assertEqual(media["type"], "video")
        self.assertEqual(media["origin"]["context"], "exhibition")
        self.assertEqual(media["origin"]["exhibitionId"], "ex1")
        self.assertEqual(media["origin"]["role"], "attachment")
        self.assertEqual((media["width"], media["height"]), (1920, 1080))
        self.assertEqual(media["duration"], 13)
        self.assertEqual(media["codec"], "vp9")
        self.assertEqual(media["bitrate"], 800000)
        self.assertEqual(media["processing"]["progress"], 100)

        self.assertEqual(
            media["paths"]["poster"]["storagePath"], "temp-assets/v1/poster.webp"
        )
        self.assertNotIn("sizeBytes", media["paths"]["poster"])
        derivatives = media["paths"]["derivatives"]
        self.assertEqual(set(derivatives), {"webm_360", "webm_720", "webm_1080"})
        self.assertEqual(
            derivatives["webm_720"]["storagePath"], "temp-assets/v1/video_720.webm"
        )
        heights = sorted(call.args[2] for call in self.transcode_to_webm_mock.call_args_list)
        self.assertEqual(heights, [360, 720, 1080])

        self.assertFalse(self.storage.exists(self.path))
        self.assertEqual(os.listdir(self.tmp_dir), [])

    def test_half_second_durations_round_up(self):
        self.probe_metadata_mock.return_value = {
            "format": {"duration": "2.5"},
            "streams": [{"width": 640, "height": 360}],
        }

        processing.process_video_upload(
            self.store, self.storage, self.obj, tmp_dir=self.tmp_dir
        )

        self.assertEqual(self._media("v1")["duration"], 3)
        self.assertEqual(processing.round_half_up(4.5), 5)
        self.assertEqual(processing.round_half_up(4.4), 4)

    def test_transcode_failure_propagates(self):
        self.transcode_to_webm_mock.side_effect = ffmpeg.FfmpegError("boom")

        with self.assertRaises(ffmpeg.FfmpegError):
            processing.process_video_upload(
                self.store, self.storage, self.obj, tmp_dir=self.tmp_dir
            )

        self.assertFalse(self._media("v1")["processed"])
        self.assertTrue(self.storage.exists(self.path))
        self.assertEqual(os.listdir(self.tmp_dir), [])


if __name__ == "__main__":
    unittest.main()
