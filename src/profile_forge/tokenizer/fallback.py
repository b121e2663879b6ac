"""
基于字符数的 Token 估算计数器。

采用 ``ceil(字符数 / 4)`` 的估算公式。这是压缩流水线的默认计数器：
它与模型无关、完全确定，保证同样的输入在任何环境下得到同样的
预算裁剪结果。需要精确计数时把 compress.tokenizer 设为 "auto"。
"""

from __future__ import annotations

import math


class CharBasedCounter:
    """
    基于字符数的 Token 估算计数器。

    用法::

        counter = CharBasedCounter()
        counter.count("Hello, world!")  # 4（13 个字符）

        counter = CharBasedCounter(chars_per_token=2.0)  # 中文文本
    """

    def __init__(self, chars_per_token: float = 4.0) -> None:
        """
        参数:
            chars_per_token: 每个 Token 对应的字符数，必须为正数
        """
        if chars_per_token <= 0:
            raise ValueError(f"chars_per_token 必须为正数，实际为 {chars_per_token}")
        self._ratio = chars_per_token

    def count(self, text: str) -> int:
        """估算文本的 Token 数量（空文本为 0）。"""
        if not text:
            return 0
        return math.ceil(len(text) / self._ratio)

    def max_chars(self, tokens: int) -> int:
        """给定 Token 数最多容纳的字符数。"""
        return max(0, int(tokens * self._ratio))

    @property
    def name(self) -> str:
        """Tokenizer 名称标识。"""
        return f"char_based:{self._ratio:g}"
