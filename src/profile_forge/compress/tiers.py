"""
三档渲染器与文本适配。

属性值渲染规则：
- 字符串原样输出，数字保留两位小数后去掉多余的零
- 列表：detailed 档全部展开，其余档只取前两项以 ``/`` 连接
- 映射：detailed 档输出 ``k=v`` 列表，其余档只取前两个键

# [Design Decision] 适配阶段先丢弃末尾属性、最后才做字符截断，
# 保证优先级最高的属性尽量完整地出现在文本中。
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from profile_forge.compress.base import CompressionTier
from profile_forge.tokenizer import CharBasedCounter, TiktokenCounter, TokenCounter

_COMPACT_ITEMS = 2
_TRIM_CHARS = " ,;:/|="


def format_value(value: object, expand: bool = False) -> str:
    """
    把属性值渲染为紧凑文本。

    参数:
        value: 属性值
        expand: 是否展开列表与映射的全部条目
    """
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float):
        return f"{round(value, 2):g}"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return " ".join(value.split())
    if isinstance(value, Mapping):
        entries = list(value.items())
        if not expand:
            entries = entries[:_COMPACT_ITEMS]
        return ", ".join(f"{k}={format_value(v)}" for k, v in entries)
    if isinstance(value, (list, tuple, set)):
        items = [format_value(item) for item in value]
        if expand:
            return ", ".join(items)
        return "/".join(items[:_COMPACT_ITEMS])
    return str(value)


def first_value(value: object) -> str:
    """ultra 档：只取值中最有代表性的一项。"""
    if isinstance(value, Mapping):
        for key in value:
            return str(key)
        return ""
    if isinstance(value, (list, tuple)):
        return format_value(value[0]) if value else ""
    return format_value(value)


class UltraRenderer:
    """ultra 档：单个值，无标签。"""

    @property
    def tier(self) -> CompressionTier:
        return CompressionTier.ULTRA

    def select(self, items: list[tuple[str, object]]) -> list[tuple[str, object]]:
        return items[:1]

    def render(self, items: list[tuple[str, object]]) -> str:
        if not items:
            return ""
        return first_value(items[0][1])


class StandardRenderer:
    """standard 档：约一半属性，``key:value``。"""

    @property
    def tier(self) -> CompressionTier:
        return CompressionTier.STANDARD

    def select(self, items: list[tuple[str, object]]) -> list[tuple[str, object]]:
        return items[: math.ceil(len(items) / 2)]

    def render(self, items: list[tuple[str, object]]) -> str:
        return ", ".join(f"{key}:{format_value(value)}" for key, value in items)


class DetailedRenderer:
    """detailed 档：全部属性，列表展开。"""

    @property
    def tier(self) -> CompressionTier:
        return CompressionTier.DETAILED

    def select(self, items: list[tuple[str, object]]) -> list[tuple[str, object]]:
        return list(items)

    def render(self, items: list[tuple[str, object]]) -> str:
        return "; ".join(f"{key}: {format_value(value, expand=True)}" for key, value in items)


DEFAULT_RENDERERS: dict[CompressionTier, UltraRenderer | StandardRenderer | DetailedRenderer] = {
    CompressionTier.ULTRA: UltraRenderer(),
    CompressionTier.STANDARD: StandardRenderer(),
    CompressionTier.DETAILED: DetailedRenderer(),
}


def truncate_text(text: str, max_tokens: int, counter: TokenCounter) -> str:
    """
    把文本截断到 max_tokens 以内。

    CharBasedCounter 直接按字符数换算，TiktokenCounter 按 Token 边界截断，
    其他计数器对前缀长度做二分查找。

    参数:
        text: 待截断的文本
        max_tokens: Token 上限
        counter: Token 计数器

    返回:
        截断后的文本（去掉末尾的分隔符）
    """
    if max_tokens <= 0:
        return ""
    if counter.count(text) <= max_tokens:
        return text

    if isinstance(counter, CharBasedCounter):
        cut = text[: counter.max_chars(max_tokens)]
    elif isinstance(counter, TiktokenCounter):
        cut = counter.truncate_to_tokens(text, max_tokens)
    else:
        low, high = 0, len(text)
        while low < high:
            mid = (low + high + 1) // 2
            if counter.count(text[:mid]) <= max_tokens:
                low = mid
            else:
                high = mid - 1
        cut = text[:low]
    return cut.rstrip(_TRIM_CHARS)
