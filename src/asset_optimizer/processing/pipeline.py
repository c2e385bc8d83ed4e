"""优化流水线入口：校验参数、创建上下文、两轮遍历并汇总结果。"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from asset_optimizer.core.config import OptimizeOptions, resolve_options
from asset_optimizer.core.context import create_context
from asset_optimizer.core.exceptions import InvalidConfigurationError
from asset_optimizer.core.models import OptimizeResult
from asset_optimizer.core.report import build_optimize_result
from asset_optimizer.core.scanner import scan_input_folder
from asset_optimizer.processing.worker import process_asset

LOGGER = logging.getLogger(__name__)


async def configure(
    input_path: str,
    output_path: str,
    options: Optional[OptimizeOptions] = None,
    **overrides: object,
) -> OptimizeResult:
    """优化 input_path 下的所有资源并写入 output_path。

    两个路径解析后相同时进入原地替换模式：不会预先清理输出，
    无法识别的文件保持不动。关键字参数 image_quality、verbose、
    on_warning 会覆盖 options 中的同名字段。
    """

    if not input_path:
        raise InvalidConfigurationError("An input folder must be provided.")
    if not output_path:
        raise InvalidConfigurationError("An output folder must be provided.")

    resolved = resolve_options(options, **overrides)
    context = create_context(str(input_path), str(output_path), resolved)
    LOGGER.debug(
        "开始优化：%s -> %s（原地替换=%s，质量=%d）",
        context.input_folder,
        context.output_folder,
        context.is_self_replace,
        resolved.image_quality,
    )

    await scan_input_folder(context, process_asset)

    result = build_optimize_result(context)
    LOGGER.debug(
        "优化完成：扫描 %d 个，处理 %d 个，改进 %d 个",
        result.files_scanned,
        result.files_processed,
        result.files_optimized,
    )
    return result


def optimize_directory(
    input_path: str,
    output_path: str,
    options: Optional[OptimizeOptions] = None,
    **overrides: object,
) -> OptimizeResult:
    """configure 的同步封装，供非异步调用方使用。"""

    return asyncio.run(configure(input_path, output_path, options, **overrides))
