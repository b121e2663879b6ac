"""
簇抽取规则表。

每个簇类别由一组有序抽取规则描述：属性名 → 点号源路径，可选一个变换函数。
规则顺序即属性优先级，ultra 档只输出第一个有值的属性。

派生属性（交互类型、复杂度档位、预测）由 derive 函数生成，
追加在原始属性之后，不计入可靠度与丰富度。
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from profile_forge.models.cluster import ClusterName
from profile_forge.models.context import IntelligenceContext, is_present

DeriveFn = Callable[[IntelligenceContext, str, float], dict[str, Any]]


@dataclass(frozen=True)
class ExtractionRule:
    """
    一条抽取规则。

    属性:
        attribute: 写入簇 content 的属性名
        source: 画像中的点号源路径
        transform: 可选变换，返回缺失值（None / 空容器）时该属性被跳过
    """

    attribute: str
    source: str
    transform: Callable[[Any], Any] | None = None

    def raw(self, context: IntelligenceContext) -> Any:
        """读取源路径上的原始值，缺失时为 None。"""
        value = context.get(self.source)
        return value if is_present(value) else None

    def extract(self, context: IntelligenceContext) -> Any:
        """读取并变换，结果缺失时为 None。"""
        value = self.raw(context)
        if value is None:
            return None
        if self.transform is not None:
            value = self.transform(value)
        return value if is_present(value) else None


@dataclass(frozen=True)
class ClusterSpec:
    """
    一个簇类别的抽取描述。

    属性:
        name: 簇类别
        rules: 有序抽取规则
        derive: 派生属性生成函数 (context, interaction_type, complexity) → 属性映射
        rules_in_content: 为 False 时规则只用于计算可靠度与丰富度，
            content 完全由 derive 生成（predictive 簇）
    """

    name: ClusterName
    rules: tuple[ExtractionRule, ...]
    derive: DeriveFn | None = None
    rules_in_content: bool = True

    @property
    def expected_sources(self) -> tuple[str, ...]:
        """去重后的期望源路径（保持顺序）。"""
        return tuple(dict.fromkeys(rule.source for rule in self.rules))


def count_attributes(value: Any) -> int:
    """标量计 1，列表与映射按长度计。"""
    if not is_present(value):
        return 0
    if isinstance(value, (list, tuple, set)):
        return sum(1 for item in value if is_present(item))
    if isinstance(value, Mapping):
        return sum(1 for item in value.values() if is_present(item))
    return 1


# ============================================================
# 变换函数
# ============================================================


def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        for item in value:
            if is_present(item):
                return item
        return None
    return value


def _rest(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [item for item in value if is_present(item)][1:]
    return None


def complexity_band(complexity: float) -> str:
    if complexity > 7:
        return "complex"
    if complexity > 4:
        return "moderate"
    return "simple"


# ============================================================
# 派生属性
# ============================================================

_LIKELY_NEEDS: dict[str, list[str]] = {
    "question": ["detailed explanation", "examples"],
    "technical": ["precise information", "implementation details"],
    "emotional": ["empathy", "support", "understanding"],
}

_FOCUS_KEYWORDS: tuple[str, ...] = ("technical", "personal", "creative")


def predict_needs(interaction_type: str) -> list[str]:
    """按交互类型预测对方可能需要的回复要素。"""
    return list(_LIKELY_NEEDS.get(interaction_type, []))


def predict_optimal_response(complexity: float) -> str:
    if complexity > 7:
        return "comprehensive-analytical"
    if complexity < 4:
        return "simple-direct"
    return "balanced-informative"


def predict_next_interaction(context: IntelligenceContext) -> str:
    return context.get_str("behavior.likely_next", "follow-up-question")


def detect_focus_area(context: IntelligenceContext) -> str:
    """在 current_moment 中查找焦点关键词。"""
    moment = context.get_str("context.current_moment").lower()
    for keyword in _FOCUS_KEYWORDS:
        if keyword in moment:
            return keyword
    return "general"


def _derive_contextual(context: IntelligenceContext, interaction_type: str, complexity: float) -> dict[str, Any]:
    return {
        "interaction_type": interaction_type,
        "complexity": complexity_band(complexity),
    }


def _derive_predictive(context: IntelligenceContext, interaction_type: str, complexity: float) -> dict[str, Any]:
    derived: dict[str, Any] = {}
    needs = predict_needs(interaction_type)
    if needs:
        derived["needs"] = needs
    derived["optimal_response"] = predict_optimal_response(complexity)
    derived["next_interaction"] = predict_next_interaction(context)
    derived["focus_area"] = detect_focus_area(context)
    derived["urgency"] = "high" if complexity > 8 else "normal"
    return derived


# ============================================================
# 默认规则表
# ============================================================

DEFAULT_CLUSTER_SPECS: dict[ClusterName, ClusterSpec] = {
    ClusterName.CORE: ClusterSpec(
        name=ClusterName.CORE,
        rules=(
            ExtractionRule("primary_trait", "personality.dominant_traits", _first),
            ExtractionRule("communication_style", "communication.tone"),
            ExtractionRule("secondary_traits", "personality.dominant_traits", _rest),
            ExtractionRule("values", "personality.values"),
            ExtractionRule("style", "communication.style"),
            ExtractionRule("verbosity", "communication.verbosity"),
            ExtractionRule("formality", "communication.formality"),
            ExtractionRule("trait_scores", "personality.traits"),
        ),
    ),
    ClusterName.DYNAMIC: ClusterSpec(
        name=ClusterName.DYNAMIC,
        rules=(
            ExtractionRule("mood", "current_state.mood"),
            ExtractionRule("energy", "current_state.energy"),
            ExtractionRule("emotional_state", "current_state.emotional"),
            ExtractionRule("focus", "current_state.focus"),
            ExtractionRule("stress", "current_state.stress"),
        ),
    ),
    ClusterName.CONTEXTUAL: ClusterSpec(
        name=ClusterName.CONTEXTUAL,
        rules=(
            ExtractionRule("current_moment", "context.current_moment"),
            ExtractionRule("recent_topics", "context.recent_topics"),
            ExtractionRule("goals", "context.goals"),
            ExtractionRule("recent_journey", "context.recent_journey"),
        ),
        derive=_derive_contextual,
    ),
    ClusterName.PREDICTIVE: ClusterSpec(
        name=ClusterName.PREDICTIVE,
        rules=(
            ExtractionRule("likely_next", "behavior.likely_next"),
            ExtractionRule("current_moment", "context.current_moment"),
            ExtractionRule("engagement", "behavior.engagement"),
        ),
        derive=_derive_predictive,
        rules_in_content=False,
    ),
    ClusterName.BEHAVIORAL: ClusterSpec(
        name=ClusterName.BEHAVIORAL,
        rules=(
            ExtractionRule("patterns", "behavior.patterns"),
            ExtractionRule("decision_style", "behavior.decision_style"),
            ExtractionRule("engagement", "behavior.engagement"),
            ExtractionRule("habits", "behavior.habits"),
            ExtractionRule("likely_next", "behavior.likely_next"),
        ),
    ),
    ClusterName.EMOTIONAL: ClusterSpec(
        name=ClusterName.EMOTIONAL,
        rules=(
            ExtractionRule("baseline", "emotional.baseline"),
            ExtractionRule("profile", "emotional.profile"),
            ExtractionRule("recent_shifts", "emotional.recent_shifts"),
            ExtractionRule("trends", "emotional.trends"),
        ),
    ),
    ClusterName.COGNITIVE: ClusterSpec(
        name=ClusterName.COGNITIVE,
        rules=(
            ExtractionRule("style", "cognitive.style"),
            ExtractionRule("problem_solving", "cognitive.problem_solving"),
            ExtractionRule("learning_velocity", "cognitive.learning_velocity"),
            ExtractionRule("complexity_preference", "cognitive.complexity_preference"),
        ),
    ),
}
