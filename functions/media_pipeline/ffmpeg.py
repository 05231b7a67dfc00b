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

"""Thin wrappers around the ffmpeg and ffprobe binaries."""

from __future__ import annotations

import json
import logging
import subprocess
from typing import List, Optional

from backend.config import get_settings
from shared.constants import POSTER_SEEK_SECONDS, POSTER_WIDTH

logger = logging.getLogger(__name__)

FFMPEG_BINARY = "ffmpeg"
FFPROBE_BINARY = "ffprobe"


class FfmpegError(RuntimeError):
    pass


def build_video_filter(height: int) -> str:
    return f"scale=-2:{height}:flags=lanczos,format=yuv420p"


def build_poster_filter(width: int = POSTER_WIDTH) -> str:
    return f"scale={width}:-2:flags=lanczos,format=yuv420p"


def transcode_command(
    input_path: str, output_path: str, height: int, binary: str = FFMPEG_BINARY
) -> List[str]:
    """VP9 WebM without audio, BT.709 colour tags."""
    return [
        binary,
        "-y",
        "-i",
        input_path,
        "-an",
        "-c:v",
        "libvpx-vp9",
        "-b:v",
        "0",
        "-crf",
        "30",
        "-vf",
        build_video_filter(height),
        "-pix_fmt",
        "yuv420p",
        "-colorspace",
        "bt709",
        "-color_primaries",
        "bt709",
        "-color_trc",
        "bt709",
        output_path,
    ]


def poster_command(
    input_path: str, output_path: str, binary: str = FFMPEG_BINARY
) -> List[str]:
    return [
        binary,
        "-y",
        "-i",
        input_path,
        "-ss",
        str(POSTER_SEEK_SECONDS),
        "-vframes",
        "1",
        "-vf",
        build_poster_filter(),
        "-c:v",
        "libwebp",
        "-quality",
        "80",
        output_path,
    ]


def probe_command(input_path: str, binary: str = FFPROBE_BINARY) -> List[str]:
    return [
        binary,
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        input_path,
    ]


def _run(command: List[str]) -> str:
    logger.debug("Running %s", " ".join(command))
    completed = subprocess.run(command, capture_output=True, text=True)
    if completed.returncode != 0:
        logger.error("%s failed: %s", command[0], completed.stderr[-2000:])
        raise FfmpegError(
            f"{command[0]} exited with status {completed.returncode}"
        )
    return completed.stdout


def transcode_to_webm(
    input_path: str, output_path: str, height: int, binary: Optional[str] = None
) -> None:
    binary = binary or get_settings().ffmpeg_path
    _run(transcode_command(input_path, output_path, height, binary))


def generate_poster(
    input_path: str, output_path: str, binary: Optional[str] = None
) -> None:
    binary = binary or get_settings().ffmpeg_path
    _run(poster_command(input_path, output_path, binary))


def probe_metadata(input_path: str, binary: Optional[str] = None) -> dict:
    """Returns ffprobe's JSON output ({"format": {...}, "streams": [...]})."""
    binary = binary or get_settings().ffprobe_path
    return json.loads(_run(probe_command(input_path, binary)) or "{}")
