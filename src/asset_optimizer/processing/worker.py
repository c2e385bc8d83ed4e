"""单个文件的处理单元：分类、优化、体积比较、写出与累计。"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Awaitable, Callable

import aiofiles
import aiofiles.os

from asset_optimizer.core.context import OptimizationContext, record_warning
from asset_optimizer.core.exceptions import UnsupportedFormatError
from asset_optimizer.core.formats import AssetCategory, determine_format
from asset_optimizer.core.models import Asset
from asset_optimizer.core.report import describe_change
from asset_optimizer.processing.data import minify_json
from asset_optimizer.processing.image import compress_image
from asset_optimizer.processing.vector import minify_svg
from asset_optimizer.processing.video import optimize_video

LOGGER = logging.getLogger(__name__)

CategoryHandler = Callable[[OptimizationContext, Asset], Awaitable[Asset]]


async def process_asset(context: OptimizationContext, file_path: Path) -> None:
    """处理单个文件；无法识别格式的文件转交 copy_asset。"""

    try:
        descriptor = determine_format(file_path)
    except UnsupportedFormatError:
        await copy_asset(context, file_path)
        return

    relative_path = context.relative_path(file_path)
    context.trace("Processing %s: %s (%s)", descriptor.category.value, relative_path.as_posix(), descriptor.extension)

    async with aiofiles.open(file_path, "rb") as handle:
        data = await handle.read()

    original = Asset(
        filename=file_path.name,
        data=data,
        relative_path=relative_path,
        descriptor=descriptor,
    )
    original_size = original.size

    chosen = await optimize_asset(context, original)
    if chosen.size >= original_size:
        # 只接受严格变小的结果
        chosen = original
    optimized_size = chosen.size

    if context.is_self_replace and chosen is original:
        # 原地替换且没有改进时，源文件保持不动
        context.trace("Kept original file in place: %s", relative_path.as_posix())
    else:
        await write_optimized_asset(context, chosen)

    context.total_original_size += original_size
    context.total_optimized_size += optimized_size
    context.processed_files += 1
    if optimized_size < original_size:
        context.optimized_files += 1

    context.trace("%s: %s", relative_path.as_posix(), describe_change(original_size, optimized_size))


async def optimize_asset(context: OptimizationContext, asset: Asset) -> Asset:
    """按资源大类分发到对应的处理函数。"""

    handler = CATEGORY_HANDLERS.get(asset.category)
    if handler is None:
        return asset
    return await handler(context, asset)


async def _run_in_thread(context: OptimizationContext, func: Callable[..., bytes], *args: object) -> bytes:
    """在线程中执行同步编码器；警告先缓存，回到事件循环后再记录。"""

    warnings: list[str] = []
    result = await asyncio.to_thread(func, *args, warnings.append)
    for message in warnings:
        record_warning(context, message)
    return result


async def optimize_image_asset(context: OptimizationContext, asset: Asset) -> Asset:
    data = await _run_in_thread(context, compress_image, asset.data, asset.extension, context.options.image_quality)
    return asset.with_data(data)


async def optimize_vector_asset(context: OptimizationContext, asset: Asset) -> Asset:
    data = await _run_in_thread(context, minify_svg, asset.data, asset.relative_path.as_posix())
    return asset.with_data(data)


async def optimize_data_asset(context: OptimizationContext, asset: Asset) -> Asset:
    data = await _run_in_thread(context, minify_json, asset.data, asset.relative_path.as_posix())
    return asset.with_data(data)


async def optimize_video_asset(context: OptimizationContext, asset: Asset) -> Asset:
    data = await optimize_video(
        asset.data,
        asset.extension,
        asset.relative_path.as_posix(),
        lambda message: record_warning(context, message),
    )
    return asset.with_data(data)


CATEGORY_HANDLERS: dict[AssetCategory, CategoryHandler] = {
    AssetCategory.IMAGE: optimize_image_asset,
    AssetCategory.VECTOR: optimize_vector_asset,
    AssetCategory.DATA: optimize_data_asset,
    AssetCategory.VIDEO: optimize_video_asset,
}


async def write_optimized_asset(context: OptimizationContext, asset: Asset) -> None:
    destination = context.output_path_for(asset.relative_path)
    await aiofiles.os.makedirs(destination.parent, exist_ok=True)
    async with aiofiles.open(destination, "wb") as handle:
        await handle.write(asset.data)
    context.trace("Wrote optimized file: %s", asset.relative_path.as_posix())


async def copy_asset(context: OptimizationContext, file_path: Path) -> None:
    """原样复制无法识别的文件；原地替换模式下什么也不做。"""

    relative_path = context.relative_path(file_path)
    if context.is_self_replace:
        context.trace("Skipped copying unsupported file during self-replacement: %s", relative_path.as_posix())
        return

    destination = context.output_path_for(relative_path)
    await aiofiles.os.makedirs(destination.parent, exist_ok=True)
    await asyncio.to_thread(shutil.copyfile, file_path, destination)
    context.trace("Copied file: %s", relative_path.as_posix())
