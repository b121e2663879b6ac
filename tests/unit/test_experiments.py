"""
A/B 实验注册表单元测试。

覆盖范围:
- analytics/experiments.py: ExperimentRegistry, bucket_for, pick_strategy, build_report
- models/experiment.py: Experiment, StrategyMetrics
"""

from __future__ import annotations

import hashlib
from collections import Counter

import pytest

from profile_forge.analytics import ExperimentRegistry, bucket_for, pick_strategy
from profile_forge.errors import ExperimentError, ExperimentNotFoundError
from profile_forge.models.experiment import ExperimentStatus, StrategyMetrics


@pytest.fixture
def registry(clock) -> ExperimentRegistry:
    return ExperimentRegistry(clock=clock)


# === 分桶 ===


class TestBucketing:
    """分桶与策略选择测试。"""

    def test_bucket_is_sha256_of_participant(self) -> None:
        """测试桶位 = sha256(participant_id) mod 100。"""
        expected = int(hashlib.sha256(b"user-42").hexdigest(), 16) % 100
        assert bucket_for("user-42") == expected
        assert 0 <= bucket_for("") < 100

    def test_pick_by_cumulative_split(self) -> None:
        """测试按累计流量边界选择。"""
        strategies = ["minimal", "balanced"]
        assert pick_strategy(0, strategies, [0.5, 0.5]) == "minimal"
        assert pick_strategy(49, strategies, [0.5, 0.5]) == "minimal"
        assert pick_strategy(50, strategies, [0.5, 0.5]) == "balanced"

    def test_rounding_gap_falls_to_last(self) -> None:
        """测试舍入空隙落入最后一个策略。"""
        assert pick_strategy(99, ["minimal", "balanced"], [0.33, 0.66]) == "balanced"


# === 生命周期 ===


class TestLifecycle:
    """实验状态机测试。"""

    def test_create_then_start(self, registry: ExperimentRegistry, clock) -> None:
        """测试 created → active。"""
        created = registry.create("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        assert created.status is ExperimentStatus.CREATED
        assert registry.assign("tiers", "user-1") is None

        started = registry.start("tiers")
        assert started.status is ExperimentStatus.ACTIVE
        assert started.start_time == clock.now

    def test_start_twice_rejected(self, registry: ExperimentRegistry) -> None:
        """测试只有 created 状态可以启动。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        with pytest.raises(ExperimentError, match="无法启动"):
            registry.start("tiers")

    def test_duplicate_active_name_rejected(self, registry: ExperimentRegistry) -> None:
        """测试同名未结束实验不能重复创建。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        with pytest.raises(ExperimentError, match="已存在"):
            registry.create("tiers", ["minimal", "comprehensive"], [0.5, 0.5], 60_000)

    def test_ended_name_is_archived_on_recreate(self, registry: ExperimentRegistry) -> None:
        """测试同名已结束实验在新实验创建时被归档。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        registry.end("tiers")
        registry.create("tiers", ["minimal", "comprehensive"], [0.5, 0.5], 60_000)

        assert [e["status"] for e in registry.list_experiments()] == ["created"]
        statuses = sorted(e["status"] for e in registry.list_experiments(include_archived=True))
        assert statuses == ["archived", "created"]

    def test_end_is_idempotent(self, registry: ExperimentRegistry, clock) -> None:
        """测试重复结束返回同一份报告。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        first = registry.end("tiers")
        clock.advance(10)
        assert registry.end("tiers") == first

    def test_end_requires_active(self, registry: ExperimentRegistry) -> None:
        """测试未启动的实验不能结束。"""
        registry.create("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        with pytest.raises(ExperimentError, match="无法结束"):
            registry.end("tiers")

    def test_archive(self, registry: ExperimentRegistry) -> None:
        """测试 ended → archived，归档后不再可查。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        with pytest.raises(ExperimentError, match="无法归档"):
            registry.archive("tiers")
        registry.end("tiers")
        assert registry.archive("tiers").status is ExperimentStatus.ARCHIVED
        with pytest.raises(ExperimentNotFoundError):
            registry.get("tiers")

    def test_unknown_experiment(self, registry: ExperimentRegistry) -> None:
        """测试不存在的实验。"""
        assert registry.assign("nope", "user-1") is None
        with pytest.raises(ExperimentNotFoundError) as exc_info:
            registry.end("nope")
        assert exc_info.value.experiment == "nope"

    def test_snapshot_is_a_copy(self, registry: ExperimentRegistry) -> None:
        """测试 get() 返回的快照修改不影响注册表。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        snapshot = registry.get("tiers")
        snapshot.strategies.append("comprehensive")
        assert registry.get("tiers").strategies == ["minimal", "balanced"]


# === 参数校验 ===


class TestValidation:
    """实验参数校验测试。"""

    @pytest.mark.parametrize(
        ("strategies", "split", "duration"),
        [
            (["minimal"], [1.0], 1000),
            (["minimal", "balanced"], [0.5], 1000),
            (["minimal", "balanced"], [0.6, 0.6], 1000),
            (["minimal", "turbo"], [0.5, 0.5], 1000),
            (["minimal", "minimal"], [0.5, 0.5], 1000),
            (["minimal", "balanced"], [1.2, -0.2], 1000),
            (["minimal", "balanced"], [0.5, 0.5], 0),
        ],
    )
    def test_invalid_parameters(self, registry: ExperimentRegistry, strategies, split, duration) -> None:
        """测试无效参数被拒绝，且不会留下实验。"""
        with pytest.raises(ExperimentError) as exc_info:
            registry.create("bad", strategies, split, duration)
        assert exc_info.value.details["problems"]
        assert registry.list_experiments() == []

    def test_split_tolerance(self, registry: ExperimentRegistry) -> None:
        """测试流量比例之和允许 0.01 的误差。"""
        registry.create("ok", ["minimal", "balanced"], [0.333, 0.672], 1000)

    def test_empty_name(self, registry: ExperimentRegistry) -> None:
        """测试空实验名被拒绝。"""
        with pytest.raises(ExperimentError, match="参数无效"):
            registry.create("  ", ["minimal", "balanced"], [0.5, 0.5], 1000)


# === 分配 ===


class TestAssignment:
    """参与者分配测试。"""

    def test_sticky_assignment(self, registry: ExperimentRegistry) -> None:
        """测试同一参与者始终得到同一策略。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        first = registry.assign("tiers", "user-7")
        assert all(registry.assign("tiers", "user-7") == first for _ in range(20))

    def test_split_is_roughly_even(self, registry: ExperimentRegistry) -> None:
        """测试 1000 个参与者在 50/50 实验中大致均分。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        counts = Counter(registry.assign("tiers", f"user-{i}") for i in range(1000))
        assert set(counts) == {"minimal", "balanced"}
        assert 450 <= counts["minimal"] <= 550

    def test_full_traffic_to_one_strategy(self, registry: ExperimentRegistry) -> None:
        """测试 100/0 分配。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [1.0, 0.0], 60_000)
        assert {registry.assign("tiers", f"user-{i}") for i in range(200)} == {"minimal"}

    def test_lazy_expiry(self, registry: ExperimentRegistry, clock) -> None:
        """测试超时后下一次分配时结束实验。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 1_000)
        clock.advance(1.0)
        assert registry.assign("tiers", "user-1") is not None

        clock.advance(0.5)
        assert registry.get("tiers").status is ExperimentStatus.ACTIVE
        assert registry.assign("tiers", "user-1") is None

        experiment = registry.get("tiers")
        assert experiment.status is ExperimentStatus.ENDED
        assert experiment.report.end_reason == "expired"
        assert experiment.report.duration_ms == pytest.approx(1_500)


# === 结果与报告 ===


class TestReport:
    """实验结果与报告测试。"""

    def test_record_result_guards(self, registry: ExperimentRegistry) -> None:
        """测试只有活动实验中的已知策略可以记录结果。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        assert registry.record_result("tiers", "minimal", 0.9, 0.8, 10.0)
        assert not registry.record_result("tiers", "comprehensive", 0.9, 0.8, 10.0)
        assert not registry.record_result("other", "minimal", 0.9, 0.8, 10.0)
        assert registry.get("tiers").summary()["sample_sizes"] == {"minimal": 1, "balanced": 0}

    def test_winner_and_recommendations(self, registry: ExperimentRegistry) -> None:
        """测试综合分最高的策略胜出，低质量策略建议移除。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        registry.record_result("tiers", "minimal", 0.9, 0.8, 10.0)
        registry.record_result("tiers", "balanced", 0.6, 0.8, 10.0)

        report = registry.end("tiers")
        assert report.winner == "minimal"
        assert report.confidence == pytest.approx(0.01)
        assert report.per_strategy_metrics["minimal"].success_rate == 1.0
        assert report.recommendations == (
            "Use 'minimal' strategy as default (1.0% confidence)",
            "Consider removing 'balanced' strategy (low quality: 60.0%)",
        )
        assert registry.get("tiers").summary()["winner"] == "minimal"

    def test_no_winner_with_single_strategy_results(self, registry: ExperimentRegistry) -> None:
        """测试只有一个策略有结果时不评选胜出者。"""
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        registry.record_result("tiers", "minimal", 0.9, 0.8, 10.0)
        report = registry.end("tiers")
        assert report.winner is None
        assert report.confidence == 0.0
        assert report.per_strategy_metrics["balanced"].sample_size == 0

    def test_composite_score(self) -> None:
        """测试综合分对耗时做 1ms 下限。"""
        metrics = StrategyMetrics(sample_size=1, avg_quality=0.9, avg_efficiency=0.8, avg_processing_time_ms=0.2)
        assert metrics.composite_score == pytest.approx(0.9 * 0.8 / 0.01)

    def test_active_names(self, registry: ExperimentRegistry) -> None:
        """测试活动实验列表。"""
        registry.start_experiment("a", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        registry.create("b", ["minimal", "balanced"], [0.5, 0.5], 60_000)
        assert registry.active_names() == ["a"]
