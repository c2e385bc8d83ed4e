"""支持的资源格式登记表。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from asset_optimizer.core.exceptions import UnsupportedFormatError


class AssetCategory(str, Enum):
    """资源大类，决定由哪个编码器处理。"""

    IMAGE = "image"
    VECTOR = "vector"
    DATA = "data"
    VIDEO = "video"


@dataclass(frozen=True, slots=True)
class FormatDescriptor:
    """单个扩展名的描述信息。"""

    extension: str
    category: AssetCategory


IMAGE_FORMATS = ("png", "webp", "jpg", "jpeg", "avif")
VECTOR_FORMATS = ("svg",)
DATA_FORMATS = ("json",)
VIDEO_FORMATS = ("mp4", "webm")

_FORMAT_DESCRIPTORS = (
    *(FormatDescriptor(ext, AssetCategory.IMAGE) for ext in IMAGE_FORMATS),
    *(FormatDescriptor(ext, AssetCategory.VECTOR) for ext in VECTOR_FORMATS),
    *(FormatDescriptor(ext, AssetCategory.DATA) for ext in DATA_FORMATS),
    *(FormatDescriptor(ext, AssetCategory.VIDEO) for ext in VIDEO_FORMATS),
)

FORMATS_BY_EXTENSION: Mapping[str, FormatDescriptor] = MappingProxyType(
    {descriptor.extension: descriptor for descriptor in _FORMAT_DESCRIPTORS}
)


def get_descriptor_for_extension(extension: str) -> Optional[FormatDescriptor]:
    """按扩展名（不含点）查找描述信息，未知扩展名返回 None。"""

    return FORMATS_BY_EXTENSION.get(extension.lower())


def is_supported_format(extension: str) -> bool:
    return extension.lower() in FORMATS_BY_EXTENSION


def determine_format(path: Path | str) -> FormatDescriptor:
    """根据文件扩展名确定格式，无法识别时抛出 UnsupportedFormatError。"""

    extension = Path(path).suffix[1:].lower()
    if not extension:
        raise UnsupportedFormatError("Missing file extension")

    descriptor = FORMATS_BY_EXTENSION.get(extension)
    if descriptor is None:
        raise UnsupportedFormatError(f"Unsupported file format: {extension}")
    return descriptor
