"""
交互分类器 — 从原始消息推断交互类型与复杂度。

compress() 需要调用方提供 interaction_type 与 complexity。多数调用方
手里只有一条用户消息，这里用启发式规则把消息转换成这两个信号。

# [Design Decision] 使用整词匹配的正则而非子串包含：
# 子串匹配会让 "this" 命中 "hi"、"program" 命中 "pro"，
# 分类结果会随词表扩充悄悄漂移。

类型按固定顺序匹配，第一个命中的类型胜出：
question → emotional → technical → creative → greeting → analysis → standard
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from profile_forge.models.budget import InteractionType


@dataclass(frozen=True)
class InteractionSignals:
    """
    分类结果及中间信号。

    # [Design Decision] 暴露中间信号而非只返回类型，便于审计和调试。

    属性:
        interaction_type: 推断出的交互类型
        complexity: 复杂度 [0, 10]，保留一位小数
        message_length: 消息字符数
        word_count: 单词数量
        question_count: 问号数量
        code_block_count: 代码块数量
        has_comparison_words: 是否包含对比词
        has_reasoning_words: 是否包含推理词
        has_complex_task_words: 是否包含复杂任务词
        matched_pattern: 命中的关键词（standard 时为 None）
    """

    interaction_type: InteractionType
    complexity: float
    message_length: int
    word_count: int
    question_count: int
    code_block_count: int
    has_comparison_words: bool
    has_reasoning_words: bool
    has_complex_task_words: bool
    matched_pattern: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "interaction_type": self.interaction_type.value,
            "complexity": self.complexity,
            "message_length": self.message_length,
            "word_count": self.word_count,
            "question_count": self.question_count,
            "code_block_count": self.code_block_count,
            "has_comparison_words": self.has_comparison_words,
            "has_reasoning_words": self.has_reasoning_words,
            "has_complex_task_words": self.has_complex_task_words,
            "matched_pattern": self.matched_pattern,
        }


def _words(*words: str) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(w).replace(r"\ ", r"\s+") for w in words)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


# 有序：第一个命中的类型胜出
_TYPE_PATTERNS: tuple[tuple[InteractionType, re.Pattern[str]], ...] = (
    (
        InteractionType.QUESTION,
        _words(
            "what", "how", "why", "when", "where",
            "can you", "could you", "would you", "should", "do you",
        ),
    ),
    (
        InteractionType.EMOTIONAL,
        _words(
            "feel", "feeling", "felt", "emotion", "emotional", "upset", "happy",
            "sad", "worried", "excited", "frustrated", "love", "hate", "anxious",
        ),
    ),
    (
        InteractionType.TECHNICAL,
        _words(
            "code", "program", "programming", "algorithm", "system", "debug",
            "error", "function", "api", "database",
        ),
    ),
    (
        InteractionType.CREATIVE,
        _words(
            "create", "design", "imagine", "brainstorm", "idea", "ideas",
            "creative", "art", "story", "poem",
        ),
    ),
    (
        InteractionType.GREETING,
        _words("hello", "hi", "hey", "good morning", "good afternoon", "good evening"),
    ),
    (
        InteractionType.ANALYSIS,
        _words("analyze", "analyse", "analysis", "pattern", "patterns", "insight", "insights",
               "understand", "explain", "breakdown"),
    ),
)

_QUESTION_MARK = re.compile(r"[?？]")


class InteractionClassifier:
    """
    基于规则的交互分类器。

    用法::

        classifier = InteractionClassifier()
        signals = classifier.classify("Hi there!")
        signals.interaction_type   # InteractionType.GREETING
        signals.complexity         # 1.0

    复杂度 = min(10, 1 + 加权得分)，得分维度：
    - 长度：> 500 字符 +3，> 200 +2，> 80 +1
    - 复杂任务词 +2，对比词 +1，推理词 +0.5
    - 代码块 +1.5
    - 超过两个问号 +1
    """

    COMPARISON_KEYWORDS = _words(
        "compare", "contrast", "difference", "differences", "versus", "vs",
        "pros and cons", "advantages", "disadvantages", "trade-off", "tradeoffs",
    )
    REASONING_KEYWORDS = _words("why", "how", "explain", "reasoning", "rationale", "mechanism")
    COMPLEX_TASK_KEYWORDS = _words(
        "analyze", "analyse", "design", "generate", "implement", "optimize",
        "evaluate", "prove", "derive", "calculate", "architecture", "strategy",
    )
    CODE_BLOCK_PATTERN = re.compile(r"```[\s\S]*?```|^[ ]{4,}\S.*$", re.MULTILINE)

    def __init__(
        self,
        simple_threshold: int = 80,
        moderate_threshold: int = 200,
        complex_threshold: int = 500,
    ) -> None:
        """
        参数:
            simple_threshold: 超过该字符数长度得分 +1
            moderate_threshold: 超过该字符数长度得分 +2
            complex_threshold: 超过该字符数长度得分 +3
        """
        self.simple_threshold = simple_threshold
        self.moderate_threshold = moderate_threshold
        self.complex_threshold = complex_threshold

    def classify(self, message: str | None) -> InteractionSignals:
        """
        对一条消息分类。

        参数:
            message: 用户消息（None 或空白视为空消息）

        返回:
            InteractionSignals
        """
        text = (message or "").strip()
        interaction_type, matched = self.detect_type(text)

        length = len(text)
        question_count = len(_QUESTION_MARK.findall(text))
        code_block_count = len(self.CODE_BLOCK_PATTERN.findall(text))
        has_comparison = bool(self.COMPARISON_KEYWORDS.search(text))
        has_reasoning = bool(self.REASONING_KEYWORDS.search(text))
        has_complex_task = bool(self.COMPLEX_TASK_KEYWORDS.search(text))

        score = 0.0
        if length > self.complex_threshold:
            score += 3.0
        elif length > self.moderate_threshold:
            score += 2.0
        elif length > self.simple_threshold:
            score += 1.0
        if has_complex_task:
            score += 2.0
        if has_comparison:
            score += 1.0
        if has_reasoning:
            score += 0.5
        if code_block_count > 0:
            score += 1.5
        if question_count > 2:
            score += 1.0

        complexity = round(min(10.0, 1.0 + score), 1) if text else 0.0

        return InteractionSignals(
            interaction_type=interaction_type,
            complexity=complexity,
            message_length=length,
            word_count=len(text.split()),
            question_count=question_count,
            code_block_count=code_block_count,
            has_comparison_words=has_comparison,
            has_reasoning_words=has_reasoning,
            has_complex_task_words=has_complex_task,
            matched_pattern=matched,
        )

    def detect_type(self, text: str) -> tuple[InteractionType, str | None]:
        """按固定顺序匹配交互类型，返回类型与命中的关键词。"""
        if _QUESTION_MARK.search(text):
            return InteractionType.QUESTION, "?"
        for interaction_type, pattern in _TYPE_PATTERNS:
            match = pattern.search(text)
            if match:
                return interaction_type, match.group(0).lower()
        return InteractionType.STANDARD, None
