"""位图压缩：基于 Pillow 按原格式重新编码。"""

from __future__ import annotations

import io
import logging
from typing import Callable

from PIL import Image, ImageOps

from asset_optimizer.core.formats import IMAGE_FORMATS

LOGGER = logging.getLogger(__name__)

WarnCallback = Callable[[str], None]

WEBP_METHOD = 4
AVIF_SPEED = 5
MIN_PALETTE_COLORS = 16

FAST_OCTREE = 2
MEDIAN_CUT = 0


def compress_image(
    data: bytes,
    image_format: str,
    quality: int,
    warn: WarnCallback = LOGGER.warning,
) -> bytes:
    """按 image_format 重新编码图片。

    失败时通过 warn 报告并返回原始字节，不向上抛出异常。
    avif 编码失败时改用 webp 重试。
    """

    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            if image_format == "png":
                return _encode_png(image, quality)
            if image_format in {"jpg", "jpeg"}:
                return _encode_jpeg(image, quality)
            if image_format == "avif":
                try:
                    return _encode_avif(image, quality)
                except Exception as exc:  # noqa: BLE001
                    warn(
                        "[asset-optimizer] AVIF encoding not supported. Falling back to WebP. "
                        f"Error message: {exc}"
                    )
                    return _encode_webp(image, quality)
            return _encode_webp(image, quality)
    except Exception as exc:  # noqa: BLE001
        warn(f"[asset-optimizer] Failed to compress image ({image_format}): {exc}")
        return data


def compress_image_buffer(data: bytes, image_format: str, quality: int) -> bytes:
    """对外的便捷入口：非位图格式原样返回。"""

    if image_format not in IMAGE_FORMATS:
        return data
    return compress_image(data, image_format, quality)


def _encode_png(image: Image.Image, quality: int) -> bytes:
    colors = max(MIN_PALETTE_COLORS, int(256 * quality / 100))
    quantized = quantize_image(image, colors)
    buffer = io.BytesIO()
    quantized.save(buffer, format="PNG", optimize=True, compress_level=9)
    return buffer.getvalue()


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    working = ImageOps.exif_transpose(image)
    if working.mode != "RGB":
        working = working.convert("RGB")
    buffer = io.BytesIO()
    working.save(
        buffer,
        format="JPEG",
        quality=quality,
        optimize=True,
        progressive=True,
        subsampling=0,  # 4:4:4
    )
    return buffer.getvalue()


def _encode_webp(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.save(
        buffer,
        format="WEBP",
        quality=quality,
        method=WEBP_METHOD,
        alpha_quality=quality,
        lossless=False,
        save_all=getattr(image, "n_frames", 1) > 1,
    )
    return buffer.getvalue()


def _encode_avif(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="AVIF", quality=quality, speed=AVIF_SPEED)
    return buffer.getvalue()


def quantize_image(image: Image.Image, colors: int) -> Image.Image:
    """转换为调色板图像；带透明通道时使用 FASTOCTREE。"""

    if image.mode in {"RGBA", "LA"} or (image.mode == "P" and "transparency" in image.info):
        return image.convert("RGBA").quantize(colors=colors, method=FAST_OCTREE)
    return image.convert("RGB").quantize(colors=colors, method=MEDIAN_CUT)
