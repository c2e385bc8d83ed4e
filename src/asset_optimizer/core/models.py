"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from asset_optimizer.core.formats import AssetCategory, FormatDescriptor


@dataclass(frozen=True, slots=True)
class Asset:
    """读入内存的单个文件。每次变换都生成新的 Asset，不原地修改。"""

    filename: str
    data: bytes
    relative_path: Path
    descriptor: FormatDescriptor

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def category(self) -> AssetCategory:
        return self.descriptor.category

    @property
    def extension(self) -> str:
        return self.descriptor.extension

    def with_data(self, data: bytes) -> "Asset":
        """返回替换了内容的新 Asset。"""

        return replace(self, data=data)


@dataclass(frozen=True, slots=True)
class OptimizeSummary:
    """结果摘要的三行文本。"""

    totals_line: str
    processed_line: str
    destination_line: str

    def lines(self) -> tuple[str, str, str]:
        return self.totals_line, self.processed_line, self.destination_line


@dataclass(frozen=True, slots=True)
class OptimizeResult:
    """一次优化任务的不可变结果快照。"""

    input: str
    output: str
    input_directory: Path
    output_directory: Path
    total_original_size: int
    total_optimized_size: int
    total_savings: int
    total_savings_percent: float
    files_scanned: int
    files_processed: int
    files_optimized: int
    warnings: tuple[str, ...]
    summary: OptimizeSummary
