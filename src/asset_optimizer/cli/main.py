"""命令行入口。"""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from typing import NoReturn, Optional, Sequence

import click
import typer
from rich.console import Console

from asset_optimizer.core.config import OptimizeOptions, clamp_quality
from asset_optimizer.core.context import resolve_path
from asset_optimizer.core.exceptions import InvalidArgumentsError
from asset_optimizer.processing.pipeline import optimize_directory
from asset_optimizer.utils import colors
from asset_optimizer.utils.logging import setup_logging

app = typer.Typer(help="批量优化目录中的图片、SVG、JSON 与视频资源。", add_completion=False)

console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)

SELF_REPLACE_WARNING = "Self-replacing mode will overwrite files in place and cannot be undone."


@dataclass(slots=True)
class ParsedArguments:
    """校验后的命令行参数。"""

    input: str
    output: str
    quality: Optional[int] = None
    verbose: bool = False
    self_replace: bool = False
    skip_warning: bool = False


def _parse_quality(value: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentsError("Image quality must be a valid number.") from exc
    if not math.isfinite(number):
        raise InvalidArgumentsError("Image quality must be a valid number.")
    return number


def parse_arguments(
    input_path: Optional[str],
    output_path: Optional[str],
    quality: Optional[str] = None,
    verbose: bool = False,
    self_replace: bool = False,
    skip_warning: bool = False,
) -> ParsedArguments:
    """校验参数组合并补全原地替换模式相关字段。"""

    if not input_path:
        raise InvalidArgumentsError("Missing required --input option.")

    if self_replace:
        if output_path:
            raise InvalidArgumentsError("The --self option cannot be used together with --output.")
        output_path = input_path
    elif not output_path:
        raise InvalidArgumentsError("Missing required --output option.")

    parsed = ParsedArguments(
        input=input_path,
        output=output_path,
        quality=clamp_quality(_parse_quality(quality)) if quality is not None else None,
        verbose=verbose,
        self_replace=self_replace,
        skip_warning=skip_warning,
    )

    if not parsed.self_replace and resolve_path(parsed.input) == resolve_path(parsed.output):
        parsed.self_replace = True

    return parsed


def confirm_self_replacing() -> bool:
    """交互式确认原地替换；非交互终端下直接报错。"""

    if not sys.stdin.isatty():
        raise InvalidArgumentsError(
            "Self-replacing mode requires an interactive terminal or the --skip-warning flag."
        )
    return typer.confirm("Continue?", default=False)


def _fail(exc: BaseException) -> NoReturn:
    err_console.print(colors.error(str(exc)))
    raise typer.Exit(code=1)


@app.command()
def run_cli(  # noqa: PLR0913
    input_path: Optional[str] = typer.Option(None, "--input", "-i", help="输入目录（必填）"),
    output_path: Optional[str] = typer.Option(None, "--output", "-o", help="输出目录，原地替换时省略"),
    quality: Optional[str] = typer.Option(None, "--quality", "-q", help="图片质量 1-100，超出范围自动截断"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出详细的处理日志"),
    self_replace: bool = typer.Option(False, "--self", "--in-place", "-s", help="直接覆盖输入目录中的文件"),
    skip_warning: bool = typer.Option(
        False, "--skip-warning", "--yes", "--force", "-y", help="原地替换时跳过确认提示"
    ),
) -> None:
    """优化输入目录中的资源文件。"""

    try:
        arguments = parse_arguments(input_path, output_path, quality, verbose, self_replace, skip_warning)
    except InvalidArgumentsError as exc:
        _fail(exc)

    setup_logging(arguments.verbose, err_console)
    logging.getLogger(__name__).debug("CLI 参数解析完成：%s", arguments)

    if arguments.self_replace and not arguments.skip_warning:
        err_console.print(colors.warn("WARNING:", bold=True) + " " + colors.warn(SELF_REPLACE_WARNING))
        try:
            confirmed = confirm_self_replacing()
        except InvalidArgumentsError as exc:
            _fail(exc)
        if not confirmed:
            console.print(colors.warn("Operation cancelled."))
            return

    collected_warnings: list[str] = []
    try:
        result = optimize_directory(
            arguments.input,
            arguments.output,
            OptimizeOptions(
                image_quality=arguments.quality,
                verbose=arguments.verbose,
                on_warning=collected_warnings.append,
            ),
        )
    except Exception as exc:  # noqa: BLE001
        _fail(exc)

    warnings = collected_warnings or list(result.warnings)

    console.print(colors.success(result.summary.totals_line))
    console.print(colors.info(result.summary.processed_line))
    console.print(colors.info(result.summary.destination_line))

    if warnings:
        err_console.print(colors.warn("Warnings:", bold=True))
        for message in warnings:
            err_console.print(colors.warn(f"• {message}"))


def main(argv: Optional[Sequence[str]] = None) -> None:
    """控制台脚本入口：任何错误（包括参数解析错误）都以退出码 1 结束。"""

    try:
        exit_code = app(args=list(argv) if argv is not None else None, prog_name="asset-optimizer", standalone_mode=False)
    except click.ClickException as exc:
        err_console.print(colors.error(exc.format_message()))
        raise SystemExit(1) from None
    except click.exceptions.Abort:
        err_console.print(colors.warn("Operation cancelled."))
        raise SystemExit(1) from None

    if isinstance(exit_code, int) and exit_code != 0:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
