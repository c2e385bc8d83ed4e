"""优化任务的配置模型。"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional

WarningCallback = Callable[[str], None]

DEFAULT_IMAGE_QUALITY = 80
MIN_QUALITY = 1
MAX_QUALITY = 100


@dataclass(slots=True)
class OptimizeOptions:
    """调用方传入的可选参数，未设置的字段使用默认值。"""

    image_quality: Optional[float] = None
    verbose: bool = False
    on_warning: Optional[WarningCallback] = None


@dataclass(frozen=True, slots=True)
class ResolvedOptions:
    """合并默认值并校验后的参数。"""

    image_quality: int = DEFAULT_IMAGE_QUALITY
    verbose: bool = False
    on_warning: Optional[WarningCallback] = None


def clamp_quality(value: float) -> int:
    """将质量参数限制在 [1, 100] 区间内。"""

    if math.isnan(value):
        raise ValueError("Image quality must be a valid number.")
    clamped = min(max(value, MIN_QUALITY), MAX_QUALITY)
    return int(round(clamped))


def resolve_options(options: Optional[OptimizeOptions] = None, **overrides: object) -> ResolvedOptions:
    """合并 OptimizeOptions 与关键字覆盖项，返回 ResolvedOptions。"""

    base = options or OptimizeOptions()
    quality = overrides.get("image_quality", base.image_quality)
    verbose = overrides.get("verbose", base.verbose)
    on_warning = overrides.get("on_warning", base.on_warning)

    return ResolvedOptions(
        image_quality=clamp_quality(DEFAULT_IMAGE_QUALITY if quality is None else float(quality)),
        verbose=bool(verbose),
        on_warning=on_warning if callable(on_warning) else None,
    )
