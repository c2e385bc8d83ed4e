"""JSON 精简。"""

from __future__ import annotations

import json
from typing import Callable

WarnCallback = Callable[[str], None]


def _reject_constant(token: str) -> float:
    raise ValueError(f"Invalid JSON constant: {token}")


def minify_json(data: bytes, name: str, warn: WarnCallback) -> bytes:
    """去除 JSON 中的多余空白；解析失败时报告警告并返回原始字节。

    ``NaN``/``Infinity`` 不是合法 JSON，读入和写出时都按解析失败处理。
    """

    try:
        parsed = json.loads(data.decode("utf-8-sig"), parse_constant=_reject_constant)
        minified = json.dumps(parsed, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (UnicodeDecodeError, ValueError) as exc:
        warn(f"[asset-optimizer] Failed to minify JSON file {name}: {exc}")
        return data
    return minified.encode("utf-8")
