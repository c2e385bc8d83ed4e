"""SVG 精简：删除注释与多余空白，缩短小数精度。"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Callable

WarnCallback = Callable[[str], None]

FLOAT_PRECISION = 2

# 只对几何/数值属性做小数截断，id、href 等保持原样
NUMERIC_ATTRIBUTES = frozenset(
    {
        "d", "points", "transform", "viewBox",
        "x", "y", "x1", "y1", "x2", "y2", "dx", "dy",
        "cx", "cy", "r", "rx", "ry", "fx", "fy",
        "width", "height", "offset", "opacity",
        "fill-opacity", "stroke-opacity", "stop-opacity",
        "stroke-width", "stroke-dasharray", "stroke-dashoffset",
        "gradientTransform", "patternTransform",
    }
)

COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
XML_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>\s*")
WHITESPACE_BETWEEN_TAGS = re.compile(r">\s+<")
WHITESPACE_RUN = re.compile(r"\s+")
ATTRIBUTE_RE = re.compile(r"""(\s([\w:.-]+)=)("[^"]*"|'[^']*')""")
LONG_DECIMAL_RE = re.compile(r"(?<![\d.eE])-?\d*\.\d{%d,}(?![\deE])" % (FLOAT_PRECISION + 1))
CDATA_OR_TEXT_BLOCK_RE = re.compile(r"(<(style|script|text|tspan|textPath)\b.*?</\2>|<!\[CDATA\[.*?\]\]>)", re.DOTALL)


def minify_svg(data: bytes, name: str, warn: WarnCallback) -> bytes:
    """返回精简后的 SVG；无法解析时报告警告并返回原始字节。"""

    try:
        text = data.decode("utf-8")
        ET.fromstring(text.encode("utf-8"))
        minified = _minify_markup(text)
        # 结果必须仍是合法 XML
        ET.fromstring(minified.encode("utf-8"))
    except (UnicodeDecodeError, ET.ParseError):
        warn(f"[asset-optimizer] Failed to optimize SVG file: {name}")
        return data
    return minified.encode("utf-8")


def _minify_markup(text: str) -> str:
    text = XML_DECLARATION_RE.sub("", text)
    text = COMMENT_RE.sub("", text)

    # 文本与样式块内的空白有语义，先整体保护起来
    preserved: list[str] = []

    def _stash(match: re.Match[str]) -> str:
        preserved.append(match.group(0))
        return f"\x00{len(preserved) - 1}\x00"

    text = CDATA_OR_TEXT_BLOCK_RE.sub(_stash, text)
    text = WHITESPACE_BETWEEN_TAGS.sub("><", text)
    text = WHITESPACE_RUN.sub(" ", text)
    text = ATTRIBUTE_RE.sub(_round_attribute, text)
    text = re.sub(r"\x00(\d+)\x00", lambda m: preserved[int(m.group(1))], text)
    return text.strip()


def _round_attribute(match: re.Match[str]) -> str:
    prefix, name, value = match.group(1), match.group(2), match.group(3)
    quote = value[0]
    inner = value[1:-1].strip()
    if name in NUMERIC_ATTRIBUTES:
        inner = LONG_DECIMAL_RE.sub(_round_match, inner)
    return f"{prefix}{quote}{inner}{quote}"


def _round_match(match: re.Match[str]) -> str:
    # 路径数据中相邻数字可以不带分隔符，舍入后不能与后面的数字粘连
    rounded = _round_number(match.group(0))
    after = match.string[match.end() : match.end() + 1]
    if "." not in rounded and after == ".":
        rounded += " "
    return rounded


def _round_number(token: str) -> str:
    rounded = f"{float(token):.{FLOAT_PRECISION}f}".rstrip("0").rstrip(".")
    if rounded in {"-0", ""}:
        return "0"
    return rounded
