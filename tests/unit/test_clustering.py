"""
聚类引擎单元测试。

覆盖范围:
- clustering/engine.py: ClusteringEngine
- clustering/extractors.py: ExtractionRule, ClusterSpec, count_attributes, 派生属性
"""

from __future__ import annotations

from typing import Any

import pytest

from profile_forge.clustering import ClusteringEngine, ClusterSpec, ExtractionRule, count_attributes
from profile_forge.clustering.extractors import (
    complexity_band,
    detect_focus_area,
    predict_needs,
    predict_optimal_response,
)
from profile_forge.config.schema import ClusteringConfig
from profile_forge.models.cluster import CLUSTER_ORDER, ClusterName
from profile_forge.models.context import IntelligenceContext


class TestClusteringEngine:
    """ClusteringEngine 测试。"""

    def test_all_seven_clusters_in_fixed_order(self, rich_profile: dict[str, Any]) -> None:
        """测试输出七个簇且顺序固定。"""
        clusters = ClusteringEngine().cluster(rich_profile, "question", 6)
        assert list(clusters) == [name.value for name in CLUSTER_ORDER]

    def test_core_content_order(self, rich_clusters) -> None:
        """测试核心簇的属性顺序即优先级顺序。"""
        core = rich_clusters["core"]
        assert list(core.content) == [
            "primary_trait",
            "communication_style",
            "secondary_traits",
            "values",
            "verbosity",
            "formality",
        ]
        assert core.content["primary_trait"] == "curious"
        assert core.content["secondary_traits"] == ["analytical", "methodical"]

    def test_core_scores(self, rich_clusters) -> None:
        """测试核心簇的可靠度与丰富度。"""
        core = rich_clusters["core"]
        assert core.attribute_count == 8
        assert core.richness == pytest.approx(0.8)
        assert core.reliability == pytest.approx(5 / 7)
        assert core.priority == pytest.approx(0.9)

    def test_contextual_derived_attributes(self, rich_clusters) -> None:
        """测试语境簇追加交互类型与复杂度档位，且不计入丰富度。"""
        contextual = rich_clusters["contextual"]
        assert contextual.content["interaction_type"] == "question"
        assert contextual.content["complexity"] == "moderate"
        assert contextual.attribute_count == 5

    def test_predictive_cluster_is_derived(self, rich_clusters) -> None:
        """测试预测簇的内容完全由派生规则生成。"""
        predictive = rich_clusters["predictive"]
        assert predictive.content["needs"] == ["detailed explanation", "examples"]
        assert predictive.content["next_interaction"] == "deep-dive-question"
        assert predictive.content["focus_area"] == "technical"
        assert predictive.content["optimal_response"] == "balanced-informative"
        assert predictive.content["urgency"] == "normal"
        assert predictive.richness == pytest.approx(0.2)

    def test_empty_profile(self) -> None:
        """测试空画像得到七个空簇且不抛异常。"""
        clusters = ClusteringEngine().cluster(None)
        assert len(clusters) == 7
        for cluster in clusters.values():
            assert cluster.richness == 0.0
            assert not cluster.is_populated

    def test_missing_group_uses_default_reliability(self) -> None:
        """测试分组完全缺失时使用声明可靠度。"""
        clusters = ClusteringEngine().cluster({"personality": {"dominant_traits": ["calm"]}})
        assert clusters["cognitive"].reliability == pytest.approx(0.85)
        assert clusters["dynamic"].reliability == pytest.approx(0.7)

    def test_complexity_is_clamped(self, rich_profile: dict[str, Any]) -> None:
        """测试复杂度截断到 [0, 10]。"""
        clusters = ClusteringEngine().cluster(rich_profile, "analysis", 42)
        assert clusters["contextual"].content["complexity"] == "complex"
        assert clusters["predictive"].content["urgency"] == "high"

    def test_accepts_intelligence_context(self, rich_context: IntelligenceContext) -> None:
        """测试可直接传入属性树。"""
        clusters = ClusteringEngine().cluster(rich_context)
        assert clusters["dynamic"].content == {"mood": "focused", "energy": "high"}

    @pytest.mark.parametrize("interaction_type", ["greeting", "analysis", "emotional"])
    def test_priority_is_base_priority(self, rich_profile: dict[str, Any], interaction_type: str) -> None:
        """测试簇优先级只取配置表中的基础优先级，不随交互类型变化。"""
        engine = ClusteringEngine()
        clusters = engine.cluster(rich_profile, interaction_type, 6)
        for name, cluster in clusters.items():
            assert cluster.priority == engine.config.base_priority[name]

    def test_custom_saturation(self, rich_profile: dict[str, Any]) -> None:
        """测试丰富度饱和点可配置。"""
        engine = ClusteringEngine(ClusteringConfig(richness_saturation=4))
        assert engine.cluster(rich_profile)["core"].richness == 1.0

    def test_custom_spec(self, rich_profile: dict[str, Any]) -> None:
        """测试替换单个类别的抽取规则。"""
        spec = ClusterSpec(
            name=ClusterName.COGNITIVE,
            rules=(ExtractionRule("approach", "cognitive.problem_solving"),),
        )
        engine = ClusteringEngine(specs={ClusterName.COGNITIVE: spec})
        cognitive = engine.cluster(rich_profile)["cognitive"]
        assert cognitive.content == {"approach": "decomposition"}
        assert cognitive.reliability == 1.0


class TestExtractors:
    """抽取规则与派生函数测试。"""

    def test_count_attributes(self) -> None:
        """测试属性计数规则。"""
        assert count_attributes("x") == 1
        assert count_attributes(["a", "", "b"]) == 2
        assert count_attributes({"a": 1, "b": None}) == 1
        assert count_attributes(None) == 0
        assert count_attributes(0) == 1

    def test_rule_transform_drops_empty(self) -> None:
        """测试变换结果为空时属性被跳过。"""
        context = IntelligenceContext.from_raw({"personality": {"dominant_traits": ["solo"]}})
        rule = ExtractionRule("rest", "personality.dominant_traits", lambda v: v[1:])
        assert rule.raw(context) == ["solo"]
        assert rule.extract(context) is None

    def test_expected_sources_deduplicated(self) -> None:
        """测试期望源路径去重且保持顺序。"""
        spec = ClusterSpec(
            name=ClusterName.CORE,
            rules=(
                ExtractionRule("a", "personality.dominant_traits"),
                ExtractionRule("b", "communication.tone"),
                ExtractionRule("c", "personality.dominant_traits"),
            ),
        )
        assert spec.expected_sources == ("personality.dominant_traits", "communication.tone")

    @pytest.mark.parametrize(
        ("complexity", "band"),
        [(2, "simple"), (4, "simple"), (5, "moderate"), (7, "moderate"), (8, "complex")],
    )
    def test_complexity_band(self, complexity: float, band: str) -> None:
        """测试复杂度档位边界。"""
        assert complexity_band(complexity) == band

    def test_predictions(self) -> None:
        """测试需求与回复风格预测。"""
        assert predict_needs("emotional") == ["empathy", "support", "understanding"]
        assert predict_needs("greeting") == []
        assert predict_optimal_response(9) == "comprehensive-analytical"
        assert predict_optimal_response(2) == "simple-direct"

    def test_focus_area_default(self) -> None:
        """测试没有焦点关键词时为 general。"""
        assert detect_focus_area(IntelligenceContext()) == "general"
