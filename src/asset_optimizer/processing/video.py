"""视频转码：调用 ffmpeg，按原容器格式以中等码率重新编码。

ffmpeg 是可选依赖。使用前先检测可执行文件，再确认所需编码器齐全，
任一环节失败都只产生警告并返回原始字节。
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import aiofiles

LOGGER = logging.getLogger(__name__)

WarnCallback = Callable[[str], None]

FFMPEG_EXECUTABLE = "ffmpeg"
VIDEO_BITRATE = "1M"
AUDIO_BITRATE = "128k"

# 容器 -> (视频编码器, 音频编码器, ffmpeg 输出格式)
CONTAINER_ENCODERS = {
    "mp4": ("libx264", "aac", "mp4"),
    "webm": ("libvpx-vp9", "libopus", "webm"),
}


class VideoSupport(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    PARTIAL = "partial"


@dataclass(frozen=True, slots=True)
class VideoToolchain:
    """编码能力协商结果。"""

    status: VideoSupport
    executable: Optional[str] = None
    missing: tuple[str, ...] = field(default_factory=tuple)
    detail: str = ""


def ffmpeg_available() -> bool:
    """快速检测：PATH 中是否存在 ffmpeg。"""

    return shutil.which(FFMPEG_EXECUTABLE) is not None


def parse_encoders(listing: str) -> set[str]:
    """解析 ``ffmpeg -encoders`` 的输出，返回编码器名称集合。"""

    encoders: set[str] = set()
    in_table = False
    for line in listing.splitlines():
        stripped = line.strip()
        if stripped.startswith("------"):
            in_table = True
            continue
        if not in_table or not stripped:
            continue
        parts = stripped.split()
        if len(parts) >= 2:
            encoders.add(parts[1])
    return encoders


async def negotiate_toolchain(extension: str) -> VideoToolchain:
    """确认 ffmpeg 可以运行且具备目标容器所需的编码器。"""

    executable = shutil.which(FFMPEG_EXECUTABLE)
    if executable is None:
        return VideoToolchain(VideoSupport.UNAVAILABLE, detail="ffmpeg executable not found")

    try:
        proc = await asyncio.create_subprocess_exec(
            executable,
            "-hide_banner",
            "-encoders",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
    except OSError as exc:
        return VideoToolchain(VideoSupport.UNAVAILABLE, executable=executable, detail=str(exc))

    if proc.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip() or f"exit code {proc.returncode}"
        return VideoToolchain(VideoSupport.UNAVAILABLE, executable=executable, detail=detail)

    available = parse_encoders(stdout.decode("utf-8", errors="replace"))
    video_codec, audio_codec, _ = CONTAINER_ENCODERS[extension]
    missing = tuple(codec for codec in (video_codec, audio_codec) if codec not in available)
    if missing:
        return VideoToolchain(VideoSupport.PARTIAL, executable=executable, missing=missing)
    return VideoToolchain(VideoSupport.AVAILABLE, executable=executable)


def build_command(executable: str, source: Path, target: Path, extension: str) -> list[str]:
    video_codec, audio_codec, container = CONTAINER_ENCODERS[extension]
    command = [
        executable,
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-i",
        str(source),
        "-c:v",
        video_codec,
        "-b:v",
        VIDEO_BITRATE,
        "-c:a",
        audio_codec,
        "-b:a",
        AUDIO_BITRATE,
    ]
    if container == "mp4":
        command.extend(["-movflags", "+faststart"])
    command.extend(["-f", container, str(target)])
    return command


async def optimize_video(data: bytes, extension: str, name: str, warn: WarnCallback) -> bytes:
    """转码视频，任何失败都报告警告并返回原始字节。"""

    if extension not in CONTAINER_ENCODERS:
        return data

    if not ffmpeg_available():
        warn(
            f"[asset-optimizer] Skipping video optimization for {name}. "
            "ffmpeg not detected in this runtime."
        )
        return data

    toolchain = await negotiate_toolchain(extension)
    if toolchain.status is VideoSupport.UNAVAILABLE:
        warn(
            "[asset-optimizer] ffmpeg is not available. Install it to enable video optimization. "
            f"Skipping {name}. {toolchain.detail}"
        )
        return data
    if toolchain.status is VideoSupport.PARTIAL:
        warn(
            "[asset-optimizer] ffmpeg is present but missing conversion encoders "
            f"({', '.join(toolchain.missing)}). Skipping {name}."
        )
        return data

    assert toolchain.executable is not None
    try:
        return await _transcode(toolchain.executable, data, extension, name, warn)
    except Exception as exc:  # noqa: BLE001
        warn(f"[asset-optimizer] Failed to optimize video {name}: {exc}")
        return data


async def _transcode(executable: str, data: bytes, extension: str, name: str, warn: WarnCallback) -> bytes:
    with tempfile.TemporaryDirectory(prefix="asset_optimizer_") as tmpdir:
        source = Path(tmpdir) / f"input.{extension}"
        target = Path(tmpdir) / f"output.{extension}"
        async with aiofiles.open(source, "wb") as handle:
            await handle.write(data)

        command = build_command(executable, source, target, extension)
        LOGGER.debug("执行 ffmpeg：%s", " ".join(command))
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()

        if proc.returncode != 0:
            LOGGER.debug("ffmpeg 输出：%s", stderr.decode("utf-8", errors="replace"))
            warn(f"[asset-optimizer] ffmpeg could not convert {name}.")
            return data

        try:
            async with aiofiles.open(target, "rb") as handle:
                converted = await handle.read()
        except FileNotFoundError:
            converted = b""

        if not converted:
            warn(f"[asset-optimizer] ffmpeg did not produce output for {name}.")
            return data
        return converted
