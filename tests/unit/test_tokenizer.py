"""
Tokenizer 模块单元测试 — 测试 Token 计数器。

覆盖范围:
- tokenizer/protocol.py: TokenCounter Protocol
- tokenizer/fallback.py: CharBasedCounter
- tokenizer/tiktoken_counter.py: TiktokenCounter
- tokenizer/registry.py: get_tokenizer(), resolve_counter(), register_tokenizer()
"""

from __future__ import annotations

import pytest

from profile_forge.errors import TokenizerError
from profile_forge.tokenizer import (
    CharBasedCounter,
    TiktokenCounter,
    TokenCounter,
    clear_cache,
    get_tokenizer,
    register_tokenizer,
    resolve_counter,
)


@pytest.fixture(autouse=True)
def _clean_registry():
    clear_cache()
    yield
    clear_cache()


class TestCharBasedCounter:
    """CharBasedCounter 测试（默认确定性计数器）。"""

    def test_implements_protocol(self) -> None:
        """测试实现 TokenCounter 协议。"""
        assert isinstance(CharBasedCounter(), TokenCounter)

    def test_count_rounds_up(self) -> None:
        """测试 ceil(字符数 / 4)。"""
        counter = CharBasedCounter()
        assert counter.count("Hello, world!") == 4
        assert counter.count("abcd") == 1
        assert counter.count("abcde") == 2

    def test_count_empty(self) -> None:
        """测试空文本计为 0。"""
        assert CharBasedCounter().count("") == 0

    def test_custom_ratio(self) -> None:
        """测试自定义每 Token 字符数。"""
        counter = CharBasedCounter(chars_per_token=2.0)
        assert counter.count("abcde") == 3
        assert counter.name == "char_based:2"

    def test_invalid_ratio(self) -> None:
        """测试非正数比例被拒绝。"""
        with pytest.raises(ValueError, match="chars_per_token"):
            CharBasedCounter(chars_per_token=0)

    def test_max_chars(self) -> None:
        """测试 Token 数到字符数的换算。"""
        counter = CharBasedCounter()
        assert counter.max_chars(5) == 20
        assert counter.max_chars(-1) == 0

    def test_deterministic(self) -> None:
        """测试同样输入永远得到同样结果。"""
        counter = CharBasedCounter()
        text = "PROFILE: curious | systematic"
        assert counter.count(text) == counter.count(text)


class TestTiktokenCounter:
    """TiktokenCounter 测试（精确计数）。"""

    def test_create_counter(self) -> None:
        """测试创建计数器并实现协议。"""
        counter = TiktokenCounter()
        assert isinstance(counter, TokenCounter)
        assert counter.name == "tiktoken:cl100k_base"

    def test_count_english(self) -> None:
        """测试计数英文文本。"""
        counter = TiktokenCounter("o200k_base")
        count = counter.count("Hello, world! This is a test.")
        assert 0 < count < 20

    def test_count_empty(self) -> None:
        """测试空字符串。"""
        assert TiktokenCounter().count("") == 0

    def test_truncate_to_tokens(self) -> None:
        """测试按 Token 边界截断。"""
        counter = TiktokenCounter()
        text = "curious analytical methodical systematic focused direct concise"
        truncated = counter.truncate_to_tokens(text, 3)
        assert counter.count(truncated) <= 3
        assert text.startswith(truncated)

    def test_invalid_encoding_falls_back(self) -> None:
        """测试未知编码回退到 cl100k_base。"""
        counter = TiktokenCounter("no-such-encoding")
        assert counter.name == "tiktoken:cl100k_base"


class TestRegistry:
    """计数器注册表测试。"""

    def test_resolve_char_mode(self) -> None:
        """测试 char 模式始终返回字符计数器。"""
        counter = resolve_counter("char", "gpt-4o")
        assert isinstance(counter, CharBasedCounter)

    def test_resolve_unknown_mode(self) -> None:
        """测试未知计数模式抛出 TokenizerError。"""
        with pytest.raises(TokenizerError, match="bpe") as exc_info:
            resolve_counter("bpe", "gpt-4o")
        assert exc_info.value.details == {"mode": "bpe", "model": "gpt-4o"}

    def test_unknown_model_uses_char_counter(self) -> None:
        """测试没有编码映射的模型回退到字符计数器。"""
        counter = get_tokenizer("my-local-llm")
        assert isinstance(counter, CharBasedCounter)

    def test_counter_is_cached(self) -> None:
        """测试同一模型复用计数器实例。"""
        assert get_tokenizer("my-local-llm") is get_tokenizer("my-local-llm")

    def test_register_custom_counter(self) -> None:
        """测试注册自定义计数器后优先使用。"""

        class WordCounter:
            def count(self, text: str) -> int:
                return len(text.split())

            @property
            def name(self) -> str:
                return "words"

        register_tokenizer("custom-model", WordCounter())
        counter = get_tokenizer("custom-model")
        assert counter.name == "words"
        assert resolve_counter("auto", "custom-model").count("a b c") == 3

    def test_register_rejects_non_protocol(self) -> None:
        """测试未实现协议的对象被拒绝。"""
        with pytest.raises(TypeError, match="TokenCounter"):
            register_tokenizer("bad", object())  # type: ignore[arg-type]
