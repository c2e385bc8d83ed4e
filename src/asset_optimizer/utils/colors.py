"""终端输出样式工具（rich markup）。"""

from __future__ import annotations

from rich.markup import escape

SUCCESS = "green"
INFO = "cyan"
WARN = "yellow"
ERROR = "red"


def styled(style: str, text: str, *, bold: bool = False) -> str:
    """为文本添加样式标记，文本中的方括号会被转义。"""

    if bold:
        style = f"bold {style}"
    return f"[{style}]{escape(text)}[/]"


def success(text: str, *, bold: bool = False) -> str:
    return styled(SUCCESS, text, bold=bold)


def info(text: str, *, bold: bool = False) -> str:
    return styled(INFO, text, bold=bold)


def warn(text: str, *, bold: bool = False) -> str:
    return styled(WARN, text, bold=bold)


def error(text: str, *, bold: bool = False) -> str:
    return styled(ERROR, text, bold=bold)
