"""单次优化任务的运行上下文。

每次调用 configure 都会创建一个全新的上下文，所有累计数据只存在于其中，
因此重复或并发调用之间不会互相影响。
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from asset_optimizer.core.config import ResolvedOptions

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class OptimizationContext:
    """路径、参数与运行期累计状态。"""

    provided_input: str
    provided_output: str
    input_folder: Path
    output_folder: Path
    is_self_replace: bool
    options: ResolvedOptions
    total_original_size: int = 0
    total_optimized_size: int = 0
    scanned_files: set[str] = field(default_factory=set)
    processed_files: int = 0
    optimized_files: int = 0
    # dict 保留插入顺序，用作有序去重集合
    warning_messages: dict[str, None] = field(default_factory=dict)

    def relative_path(self, path: Path) -> Path:
        return path.relative_to(self.input_folder)

    def output_path_for(self, relative: Path | str) -> Path:
        return self.output_folder / relative

    def trace(self, message: str, *args: object) -> None:
        """诊断日志：verbose 时以 INFO 输出，否则为 DEBUG。"""

        level = logging.INFO if self.options.verbose else logging.DEBUG
        LOGGER.log(level, message, *args)


def resolve_path(path: str) -> Path:
    """按当前工作目录解析用户给出的路径（支持 ~）。"""

    return Path(os.path.abspath(os.path.join(os.getcwd(), os.path.expanduser(path))))


def create_context(input_path: str, output_path: str, options: ResolvedOptions) -> OptimizationContext:
    """解析路径并创建上下文；两个路径解析后相同即视为原地替换模式。"""

    input_folder = resolve_path(input_path)
    output_folder = resolve_path(output_path)
    return OptimizationContext(
        provided_input=input_path,
        provided_output=output_path,
        input_folder=input_folder,
        output_folder=output_folder,
        is_self_replace=input_folder == output_folder,
        options=options,
    )


def record_warning(context: OptimizationContext, message: str) -> None:
    """记录警告；同一条消息在一次任务中只记录和通知一次。"""

    if message in context.warning_messages:
        return
    context.warning_messages[message] = None
    if context.options.on_warning is not None:
        context.options.on_warning(message)
    else:
        LOGGER.warning(message)
