"""
TokenCounter 协议定义。

预算、配额和簇文本裁剪都以 Token 为单位，但不同模型使用不同的
Tokenizer。所有计数器只需实现 count() 与 name 即可接入。
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenCounter(Protocol):
    """
    Token 计数器协议。

    内置实现：
    - CharBasedCounter：ceil(字符数 / 4)，确定性、零依赖（默认）
    - TiktokenCounter：基于 tiktoken 的精确计数

    最小实现示例::

        class WordCounter:
            def count(self, text: str) -> int:
                return len(text.split())

            @property
            def name(self) -> str:
                return "words"
    """

    def count(self, text: str) -> int:
        """
        计算文本的 Token 数量。

        参数:
            text: 待计数的文本

        返回:
            Token 数量
        """
        ...

    @property
    def name(self) -> str:
        """Tokenizer 名称标识。"""
        ...
