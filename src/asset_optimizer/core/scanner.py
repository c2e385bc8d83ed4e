"""目录遍历：收集、清理、处理三个阶段。"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

import aiofiles.os

from asset_optimizer.core.context import OptimizationContext
from asset_optimizer.core.exceptions import InputFolderError

LOGGER = logging.getLogger(__name__)

AssetHandler = Callable[[OptimizationContext, Path], Awaitable[None]]


async def ensure_input_folder(context: OptimizationContext) -> None:
    """确认输入路径存在且为目录。"""

    try:
        is_dir = await aiofiles.os.path.isdir(context.input_folder)
    except OSError as exc:
        raise InputFolderError(f"Cannot access input folder: {context.input_folder}") from exc

    if is_dir:
        return
    if await aiofiles.os.path.exists(context.input_folder):
        raise InputFolderError(f"Input path is not a directory: {context.input_folder}")
    raise InputFolderError(f"Input folder does not exist: {context.input_folder}")


async def traverse_directory(
    context: OptimizationContext,
    directory: Path,
    handler: Optional[AssetHandler] = None,
) -> None:
    """并发遍历目录。

    handler 为 None 时只记录相对路径（收集阶段），不读取文件内容；
    否则把每个文件交给 handler 处理。
    """

    relative_dir = directory.relative_to(context.input_folder).as_posix()
    context.trace("Scanning directory: %s", relative_dir)

    names = await aiofiles.os.listdir(directory)
    await asyncio.gather(*(_visit_entry(context, directory / name, handler) for name in names))


async def _visit_entry(context: OptimizationContext, entry: Path, handler: Optional[AssetHandler]) -> None:
    if await aiofiles.os.path.isdir(entry):
        await traverse_directory(context, entry, handler)
        return

    if handler is None:
        context.scanned_files.add(context.relative_path(entry).as_posix())
    else:
        await handler(context, entry)


async def prepare_output_folder(context: OptimizationContext) -> None:
    """删除输出目录中与本次输入对应的旧文件。

    原地替换模式下直接跳过，否则会删除源文件。
    """

    context.trace("Preparing output folder: %s", context.output_folder)
    if context.is_self_replace:
        context.trace("Self-replacing mode detected; skipping cleanup of input files.")
        return

    await aiofiles.os.makedirs(context.output_folder, exist_ok=True)
    for relative in context.scanned_files:
        try:
            await aiofiles.os.remove(context.output_path_for(relative))
        except OSError:
            # 不存在或无法删除时忽略
            continue


async def scan_input_folder(context: OptimizationContext, handler: AssetHandler) -> None:
    """依次执行：校验输入、收集、清理旧输出、处理。"""

    context.trace("Scanning input folder: %s", context.input_folder)
    await ensure_input_folder(context)
    await traverse_directory(context, context.input_folder)
    LOGGER.debug("收集到 %d 个文件", len(context.scanned_files))
    await prepare_output_folder(context)
    await traverse_directory(context, context.input_folder, handler)
