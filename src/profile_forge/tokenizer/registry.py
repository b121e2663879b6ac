"""
Tokenizer 注册表 — 根据模型名选择 Token 计数器。

# [DX Decision] 使用前缀匹配而非精确匹配，
# 因为模型名经常带日期或版本后缀（如 claude-3-5-sonnet-20241022）。
"""

from __future__ import annotations

import logging
import threading

from profile_forge.errors import TokenizerError
from profile_forge.tokenizer.fallback import CharBasedCounter
from profile_forge.tokenizer.protocol import TokenCounter
from profile_forge.tokenizer.tiktoken_counter import TiktokenCounter

logger = logging.getLogger(__name__)

# 模型名前缀到 tiktoken 编码方案的映射
_MODEL_TO_ENCODING: dict[str, str] = {
    "gpt-4o": "o200k_base",
    "chatgpt-4o": "o200k_base",
    "gpt-4": "cl100k_base",
    "gpt-3.5": "cl100k_base",
    "o1": "o200k_base",
    "o3": "o200k_base",
    # Anthropic 没有公开的本地 tokenizer，使用 cl100k_base 近似
    "claude": "cl100k_base",
}

_lock = threading.Lock()
_counter_cache: dict[str, TokenCounter] = {}
_custom_counters: dict[str, TokenCounter] = {}


def get_tokenizer(model: str) -> TokenCounter:
    """
    根据模型名获取 Token 计数器。

    查找优先级：
    1. 用户注册的自定义计数器
    2. 基于模型名前缀匹配的 tiktoken 编码方案
    3. CharBasedCounter

    参数:
        model: 模型名称

    返回:
        TokenCounter 实例
    """
    with _lock:
        if model in _custom_counters:
            return _custom_counters[model]
        if model in _counter_cache:
            return _counter_cache[model]

    encoding_name = _find_encoding(model)
    counter: TokenCounter | None = None

    if encoding_name:
        try:
            counter = TiktokenCounter(encoding_name)
        except Exception as e:
            # tiktoken 首次加载编码需要下载词表，离线环境会失败
            logger.warning(
                "为模型 '%s' 创建 tiktoken 计数器失败（编码：%s），回退到字符计数器。错误：%s",
                model,
                encoding_name,
                e,
            )

    if counter is None:
        logger.info("模型 '%s' 使用字符计数器（近似值）。", model)
        counter = CharBasedCounter()

    with _lock:
        _counter_cache[model] = counter
    return counter


def resolve_counter(mode: str, model: str) -> TokenCounter:
    """
    按策略配置选择计数器。

    参数:
        mode: "char"（确定性字符估算）或 "auto"（按模型选择）
        model: 模型名称

    返回:
        TokenCounter 实例

    异常:
        TokenizerError: mode 不是 char / auto
    """
    if mode == "auto":
        return get_tokenizer(model)
    if mode == "char":
        return CharBasedCounter()
    raise TokenizerError(
        what=f"未知的计数模式 '{mode}'。",
        why="compress.tokenizer 只支持 char（确定性字符估算）与 auto（按模型选择）。",
        how="把策略文件中的 compress.tokenizer 改为 char 或 auto。",
        details={"mode": mode, "model": model},
    )


def _find_encoding(model: str) -> str | None:
    """通过最长前缀匹配找到编码方案。"""
    model_lower = model.lower()
    for prefix in sorted(_MODEL_TO_ENCODING, key=len, reverse=True):
        if model_lower.startswith(prefix):
            return _MODEL_TO_ENCODING[prefix]
    return None


def register_tokenizer(model: str, counter: TokenCounter) -> None:
    """
    注册自定义 Token 计数器，注册后优先于内置计数器。

    参数:
        model: 模型名称
        counter: TokenCounter 实例

    异常:
        TypeError: counter 未实现 TokenCounter 协议
    """
    if not isinstance(counter, TokenCounter):
        raise TypeError(
            f"counter 必须实现 TokenCounter 协议，但 {type(counter).__name__} 缺少必要的方法。"
            f"需要实现：count(text) -> int, name -> str"
        )
    with _lock:
        _custom_counters[model] = counter
    logger.info("已为模型 '%s' 注册自定义 Tokenizer: %s", model, counter.name)


def clear_cache() -> None:
    """清除计数器缓存和自定义注册。通常仅在测试中使用。"""
    with _lock:
        _counter_cache.clear()
        _custom_counters.clear()
