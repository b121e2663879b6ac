"""
交互分类器单元测试。

覆盖范围:
- routing/classifier.py: InteractionClassifier, InteractionSignals
"""

from __future__ import annotations

import pytest

from profile_forge.models.budget import InteractionType
from profile_forge.routing import InteractionClassifier


@pytest.fixture
def classifier() -> InteractionClassifier:
    return InteractionClassifier()


class TestDetectType:
    """交互类型判定测试。"""

    def test_greeting(self, classifier: InteractionClassifier) -> None:
        """测试问候语。"""
        signals = classifier.classify("Hi there!")
        assert signals.interaction_type is InteractionType.GREETING
        assert signals.matched_pattern == "hi"

    def test_question_mark_wins(self, classifier: InteractionClassifier) -> None:
        """测试问号优先于其他关键词。"""
        signals = classifier.classify("Hello, can you debug this?")
        assert signals.interaction_type is InteractionType.QUESTION
        assert signals.matched_pattern == "?"

    def test_question_words_without_mark(self, classifier: InteractionClassifier) -> None:
        """测试没有问号时的疑问词。"""
        signals = classifier.classify("could you walk me through the setup")
        assert signals.interaction_type is InteractionType.QUESTION
        assert signals.matched_pattern == "could you"

    def test_emotional(self, classifier: InteractionClassifier) -> None:
        """测试情绪类消息。"""
        signals = classifier.classify("I feel worried about tomorrow")
        assert signals.interaction_type is InteractionType.EMOTIONAL

    def test_technical(self, classifier: InteractionClassifier) -> None:
        """测试技术类消息。"""
        signals = classifier.classify("The database migration keeps failing")
        assert signals.interaction_type is InteractionType.TECHNICAL
        assert signals.matched_pattern == "database"

    def test_creative(self, classifier: InteractionClassifier) -> None:
        """测试创意类消息。"""
        signals = classifier.classify("Let's brainstorm names for the project")
        assert signals.interaction_type is InteractionType.CREATIVE

    def test_analysis(self, classifier: InteractionClassifier) -> None:
        """测试分析类消息。"""
        signals = classifier.classify("Please analyze the patterns in my sleep log")
        assert signals.interaction_type is InteractionType.ANALYSIS
        assert signals.matched_pattern == "analyze"

    def test_whole_word_matching(self, classifier: InteractionClassifier) -> None:
        """测试整词匹配：'this' 不会命中 'hi'，'programme' 不会命中 'program'。"""
        signals = classifier.classify("this programme is fine")
        assert signals.interaction_type is InteractionType.STANDARD
        assert signals.matched_pattern is None

    def test_standard_fallback(self, classifier: InteractionClassifier) -> None:
        """测试没有任何关键词时为 standard。"""
        signals = classifier.classify("Sounds good.")
        assert signals.interaction_type is InteractionType.STANDARD


class TestComplexity:
    """复杂度评分测试。"""

    def test_empty_message(self, classifier: InteractionClassifier) -> None:
        """测试空消息复杂度为 0。"""
        signals = classifier.classify("   ")
        assert signals.complexity == 0.0
        assert signals.word_count == 0

    def test_none_message(self, classifier: InteractionClassifier) -> None:
        """测试 None 视为空消息。"""
        signals = classifier.classify(None)
        assert signals.interaction_type is InteractionType.STANDARD
        assert signals.complexity == 0.0

    def test_short_message_baseline(self, classifier: InteractionClassifier) -> None:
        """测试短消息的基础复杂度为 1。"""
        assert classifier.classify("Hi there!").complexity == 1.0

    def test_complex_task_words(self, classifier: InteractionClassifier) -> None:
        """测试复杂任务词 +2。"""
        signals = classifier.classify("Please analyze the patterns in my sleep log")
        assert signals.has_complex_task_words
        assert signals.complexity == 3.0

    def test_code_block(self, classifier: InteractionClassifier) -> None:
        """测试代码块 +1.5。"""
        signals = classifier.classify("```x = 1```")
        assert signals.code_block_count == 1
        assert signals.complexity == 2.5

    def test_long_message(self, classifier: InteractionClassifier) -> None:
        """测试超过 500 字符 +3。"""
        signals = classifier.classify("word " * 120)
        assert signals.message_length > 500
        assert signals.complexity == 4.0

    def test_many_question_marks(self, classifier: InteractionClassifier) -> None:
        """测试超过两个问号 +1。"""
        signals = classifier.classify("Really? Sure? Okay?")
        assert signals.question_count == 3
        assert signals.complexity == 2.0

    def test_comparison_and_reasoning(self, classifier: InteractionClassifier) -> None:
        """测试对比词与推理词。"""
        signals = classifier.classify("Compare the pros and cons and explain the trade-off")
        assert signals.has_comparison_words
        assert signals.has_reasoning_words
        assert signals.complexity >= 2.5

    def test_complexity_capped(self, classifier: InteractionClassifier) -> None:
        """测试复杂度上限为 10。"""
        message = (
            "Analyze and compare, explain why??? ```code``` " + "details " * 100
        )
        assert classifier.classify(message).complexity <= 10.0

    def test_custom_length_thresholds(self) -> None:
        """测试自定义长度阈值。"""
        classifier = InteractionClassifier(simple_threshold=5, moderate_threshold=10, complex_threshold=20)
        assert classifier.classify("Sounds good.").complexity == 3.0


class TestSignals:
    """InteractionSignals 测试。"""

    def test_to_dict(self, classifier: InteractionClassifier) -> None:
        """测试序列化为字典。"""
        data = classifier.classify("Hi there!").to_dict()
        assert data["interaction_type"] == "greeting"
        assert data["complexity"] == 1.0
        assert set(data) >= {"message_length", "word_count", "question_count", "matched_pattern"}

    def test_frozen(self, classifier: InteractionClassifier) -> None:
        """测试结果不可变。"""
        signals = classifier.classify("Hi")
        with pytest.raises(AttributeError):
            signals.complexity = 5.0  # type: ignore[misc]
