"""
基于 tiktoken 的 Token 计数器。

对 OpenAI 模型精确；对 Claude 等其他模型使用 cl100k_base 近似，
误差通常在 5% 以内，对画像提示的预算裁剪足够。
"""

from __future__ import annotations

import logging

import tiktoken

logger = logging.getLogger(__name__)


class TiktokenCounter:
    """
    基于 tiktoken 的 Token 计数器。

    用法::

        counter = TiktokenCounter("o200k_base")  # GPT-4o
        counter.count("Hello, world!")

    属性:
        encoding_name: tiktoken 编码方案名称
    """

    def __init__(self, encoding_name: str = "cl100k_base") -> None:
        self._encoding_name = encoding_name
        try:
            self._encoding = tiktoken.get_encoding(encoding_name)
        except (KeyError, ValueError) as e:
            logger.warning(
                "tiktoken 编码方案 '%s' 加载失败，回退到 cl100k_base。错误：%s",
                encoding_name,
                e,
            )
            self._encoding_name = "cl100k_base"
            self._encoding = tiktoken.get_encoding("cl100k_base")

    def count(self, text: str) -> int:
        """计算文本的 Token 数量。"""
        if not text:
            return 0
        return len(self._encoding.encode(text))

    @property
    def name(self) -> str:
        """Tokenizer 名称标识。"""
        return f"tiktoken:{self._encoding_name}"

    def truncate_to_tokens(self, text: str, max_tokens: int) -> str:
        """
        将文本截断到指定的 Token 数量（按 Token 边界）。

        参数:
            text: 待截断的文本
            max_tokens: 最大 Token 数

        返回:
            截断后的文本
        """
        if max_tokens <= 0:
            return ""
        tokens = self._encoding.encode(text)
        if len(tokens) <= max_tokens:
            return text
        return self._encoding.decode(tokens[:max_tokens])
