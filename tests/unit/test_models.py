"""
数据模型单元测试。

覆盖范围:
- models/context.py: IntelligenceContext, is_present
- models/budget.py: 枚举, AllocationPlan
- models/cluster.py: Cluster
- models/record.py: CompressionMetadata, CompressionRecord
- models/experiment.py: Experiment
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from profile_forge.models import (
    CLUSTER_ORDER,
    AllocationPlan,
    Cluster,
    ClusterName,
    CompressionMetadata,
    CompressionRecord,
    CompressionResult,
    CompressionStrategy,
    Experiment,
    IntelligenceContext,
    InteractionType,
    TokenAllocation,
)
from profile_forge.models.context import is_present


# === IntelligenceContext 测试 ===


class TestIntelligenceContext:
    """属性树访问器测试。"""

    @pytest.fixture
    def ctx(self) -> IntelligenceContext:
        return IntelligenceContext.from_raw(
            {
                "personality": {"dominant_traits": ["curious", "", "calm"], "values": "clarity"},
                "communication": {"tone": "  direct  ", "verbosity": 3},
                "cognitive": {"learning_velocity": "0.7", "flag": True},
                "current_state": None,
            }
        )

    def test_get_path_and_index(self, ctx: IntelligenceContext) -> None:
        """测试点号路径与列表下标。"""
        assert ctx.get("personality.dominant_traits.0") == "curious"
        assert ctx.get("personality.dominant_traits.9", "none") == "none"
        assert ctx.get("personality.missing.deep", 1) == 1

    def test_get_str(self, ctx: IntelligenceContext) -> None:
        """测试字符串访问器去空白、数字转字符串。"""
        assert ctx.get_str("communication.tone") == "direct"
        assert ctx.get_str("communication.verbosity") == "3"
        assert ctx.get_str("personality.dominant_traits", "n/a") == "n/a"

    def test_get_float(self, ctx: IntelligenceContext) -> None:
        """测试数值访问器接受数字字符串、拒绝布尔值。"""
        assert ctx.get_float("cognitive.learning_velocity") == pytest.approx(0.7)
        assert ctx.get_float("cognitive.flag", -1.0) == -1.0
        assert ctx.get_float("communication.tone", 2.0) == 2.0

    def test_get_list(self, ctx: IntelligenceContext) -> None:
        """测试列表访问器过滤空值、包装单个字符串。"""
        assert ctx.get_list("personality.dominant_traits") == ["curious", "calm"]
        assert ctx.get_list("personality.values") == ["clarity"]
        assert ctx.get_list("behavior.patterns", ["x"]) == ["x"]

    def test_groups(self, ctx: IntelligenceContext) -> None:
        """测试分组读取与有内容的分组列表。"""
        assert ctx.group("current_state") == {}
        assert ctx.present_groups == ["personality", "communication", "cognitive"]
        assert not ctx.is_empty
        assert "personality" in repr(ctx)

    def test_from_raw_variants(self, ctx: IntelligenceContext) -> None:
        """测试各种输入类型。"""
        assert IntelligenceContext.from_raw(ctx) is ctx
        assert IntelligenceContext.from_raw(None).is_empty
        assert IntelligenceContext.from_raw("not a profile").is_empty

    def test_to_dict_is_deep_copy(self, ctx: IntelligenceContext) -> None:
        """测试 to_dict() 返回深拷贝。"""
        data = ctx.to_dict()
        data["personality"]["dominant_traits"].append("loud")
        assert ctx.get_list("personality.dominant_traits") == ["curious", "calm"]

    @pytest.mark.parametrize(
        ("value", "present"),
        [(None, False), ("  ", False), ([], False), ({}, False), (0, True), (False, True), ("x", True)],
    )
    def test_is_present(self, value: object, present: bool) -> None:
        """测试有内容判定。"""
        assert is_present(value) is present


# === 枚举与簇 ===


class TestEnumsAndClusters:
    """枚举与 Cluster 测试。"""

    def test_strategy_values(self) -> None:
        """测试三种策略。"""
        assert [s.value for s in CompressionStrategy] == ["minimal", "balanced", "comprehensive"]

    def test_interaction_types(self) -> None:
        """测试七种交互类型。"""
        assert {t.value for t in InteractionType} == {
            "greeting",
            "standard",
            "question",
            "technical",
            "analysis",
            "emotional",
            "creative",
        }

    def test_cluster_order(self) -> None:
        """测试固定簇顺序。"""
        assert [c.value for c in CLUSTER_ORDER] == [
            "core",
            "dynamic",
            "contextual",
            "predictive",
            "behavioral",
            "emotional",
            "cognitive",
        ]

    def test_cluster_is_frozen(self) -> None:
        """测试簇不可变且分数受范围约束。"""
        cluster = Cluster(name=ClusterName.CORE, content={"a": 1}, richness=0.1)
        assert cluster.is_populated
        with pytest.raises(ValidationError):
            cluster.richness = 0.5  # type: ignore[misc]
        with pytest.raises(ValidationError):
            Cluster(name=ClusterName.CORE, richness=1.5)

    def test_cluster_without_richness_is_not_populated(self) -> None:
        """测试只有派生内容的簇不算有数据。"""
        assert not Cluster(name=ClusterName.PREDICTIVE, content={"urgency": "normal"}).is_populated

    def test_allocation_plan(self) -> None:
        """测试分配方案的查询方法。"""
        plan = AllocationPlan(
            strategy=CompressionStrategy.BALANCED,
            total_budget=20,
            allocations=(
                TokenAllocation(cluster_name="core", token_count=14, weight=0.5),
                TokenAllocation(cluster_name="dynamic", token_count=0, weight=0.0),
            ),
        )
        assert plan.total_allocated == 14
        assert plan.tokens_for("core") == 14
        assert plan.tokens_for("cognitive") == 0
        assert plan.as_dict() == {"core": 14}


# === 结果与记录 ===


class TestRecords:
    """CompressionMetadata 与 CompressionRecord 测试。"""

    def test_deterministic_view_excludes_timing(self) -> None:
        """测试确定性视图排除耗时字段。"""
        a = CompressionMetadata(strategy="minimal", token_budget=36, actual_tokens=9, processing_time_ms=1.0)
        b = CompressionMetadata(strategy="minimal", token_budget=36, actual_tokens=9, processing_time_ms=7.0)
        assert a != b
        assert a.deterministic_view() == b.deterministic_view()
        assert "processing_time_ms" not in a.deterministic_view()

    def test_below_target(self) -> None:
        """测试质量未达标标记。"""
        meta = CompressionMetadata(strategy="balanced", token_budget=100, actual_tokens=80, quality_score=0.8)
        assert meta.below_target

    def test_effective_quality(self, record_factory) -> None:
        """测试下游观测质量优先。"""
        assert record_factory().effective_quality == 0.9
        assert record_factory(response_quality=0.4).effective_quality == 0.4

    def test_record_bounds(self, record_factory) -> None:
        """测试反馈值范围校验。"""
        with pytest.raises(ValidationError):
            record_factory(user_feedback=1.5)

    def test_from_result_clamps(self) -> None:
        """测试从结果构建记录时截断分数。"""
        result = CompressionResult(
            prompt_text="PROFILE: curious",
            metadata=CompressionMetadata(
                strategy="minimal",
                token_budget=36,
                actual_tokens=4,
                quality_score=1.2,
                efficiency=-0.1,
                model="claude-3",
                experiment="tiers",
            ),
            record_id="abc",
        )
        record = CompressionRecord.from_result(result, timestamp=1.0, user_feedback=0.8)
        assert record.quality_score == 1.0
        assert record.efficiency == 0.0
        assert record.model == "claude-3"
        assert record.experiment == "tiers"
        assert record.user_feedback == 0.8


# === 实验模型 ===


class TestExperimentModel:
    """Experiment 测试。"""

    def test_expiry_requires_start(self) -> None:
        """测试未启动的实验不会过期。"""
        experiment = Experiment(
            name="t",
            strategies=["minimal", "balanced"],
            traffic_split=[0.5, 0.5],
            duration_ms=1000,
            created_at=0.0,
        )
        assert not experiment.is_expired(10_000.0)
        experiment.start_time = 0.0
        assert not experiment.is_expired(1.0)
        assert experiment.is_expired(1.001)

    def test_summary(self) -> None:
        """测试摘要字段。"""
        experiment = Experiment(
            name="t",
            strategies=["minimal", "balanced"],
            traffic_split=[0.5, 0.5],
            duration_ms=1000,
            created_at=0.0,
        )
        summary = experiment.summary()
        assert summary["status"] == "created"
        assert summary["sample_sizes"] == {"minimal": 0, "balanced": 0}
        assert summary["winner"] is None
