"""结果汇总与体积格式化工具。"""

from __future__ import annotations

from asset_optimizer.core.context import OptimizationContext
from asset_optimizer.core.models import OptimizeResult, OptimizeSummary

SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_size(num_bytes: float) -> str:
    """将字节数格式化为 1024 进制的可读字符串，如 ``1.5 KB``。"""

    if num_bytes == 0:
        return "0 B"

    # 等价于 floor(log1024(n))，整数比较避免浮点误差
    index = 0
    while num_bytes >= 1024 ** (index + 1) and index < len(SIZE_UNITS) - 1:
        index += 1
    return f"{num_bytes / 1024 ** index:.1f} {SIZE_UNITS[index]}"


def describe_change(original: int, optimized: int) -> str:
    """生成 ``1.0 KB → 512.0 B (-512.0 B / 50.0%)`` 形式的变化描述。"""

    savings = original - optimized
    percent = savings / original * 100 if original > 0 else 0.0
    operator = "-" if savings > 0 else "+"
    return (
        f"{format_size(original)} → {format_size(optimized)} "
        f"({operator}{format_size(abs(savings))} / {percent:.1f}%)"
    )


def build_optimize_result(context: OptimizationContext) -> OptimizeResult:
    """由上下文生成最终结果，每次任务只调用一次。"""

    total_savings = context.total_original_size - context.total_optimized_size
    if context.total_original_size > 0:
        total_savings_percent = total_savings / context.total_original_size * 100
    else:
        total_savings_percent = 0

    summary = OptimizeSummary(
        totals_line=f"Total: {describe_change(context.total_original_size, context.total_optimized_size)}",
        processed_line=(
            f"Processed {context.processed_files} file(s); improvements on {context.optimized_files}."
        ),
        destination_line=f"Optimized assets from {context.provided_input} → {context.provided_output}",
    )

    return OptimizeResult(
        input=context.provided_input,
        output=context.provided_output,
        input_directory=context.input_folder,
        output_directory=context.output_folder,
        total_original_size=context.total_original_size,
        total_optimized_size=context.total_optimized_size,
        total_savings=total_savings,
        total_savings_percent=total_savings_percent,
        files_scanned=len(context.scanned_files),
        files_processed=context.processed_files,
        files_optimized=context.optimized_files,
        warnings=tuple(context.warning_messages),
        summary=summary,
    )
