"""
Profile Forge Token 计数模块。
"""

from profile_forge.tokenizer.fallback import CharBasedCounter
from profile_forge.tokenizer.protocol import TokenCounter
from profile_forge.tokenizer.registry import (
    clear_cache,
    get_tokenizer,
    register_tokenizer,
    resolve_counter,
)
from profile_forge.tokenizer.tiktoken_counter import TiktokenCounter

__all__ = [
    "CharBasedCounter",
    "TiktokenCounter",
    "TokenCounter",
    "clear_cache",
    "get_tokenizer",
    "register_tokenizer",
    "resolve_counter",
]
