"""
滚动指标计算 — 窗口聚合、趋势、异常、质量分析与基准百分位。

所有函数都是对记录快照的纯计算，不持有状态；时间由调用方传入，
测试中可以用固定时钟精确控制窗口边界。

异常判定（任一满足即为异常）：
- 质量 < anomaly_quality_below（默认 0.5）
- 处理耗时 > anomaly_processing_above_ms（默认 500ms）
- 效率 < anomaly_efficiency_below（默认 0.3）
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from typing import Any

from profile_forge.config.defaults import WINDOWS
from profile_forge.config.schema import AnalyticsConfig
from profile_forge.models.metrics import (
    Anomaly,
    AnomalyType,
    MetricsSnapshot,
    ModelPerformance,
    OptimizationAction,
    QualityAnalysis,
    TrendDirection,
    TrendReport,
)
from profile_forge.models.record import CompressionRecord

logger = logging.getLogger(__name__)

BENCHMARK_PERCENTILES: tuple[float, ...] = (0.50, 0.75, 0.90, 0.95)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def percentile(values: Sequence[float], p: float) -> float:
    """
    计算百分位数（线性插值）。

    参数:
        values: 已排序的数值列表
        p: 百分位数（0.0 ~ 1.0）
    """
    if not values:
        return 0.0
    if p <= 0:
        return values[0]
    if p >= 1:
        return values[-1]

    index = p * (len(values) - 1)
    lower_index = int(index)
    upper_index = lower_index + 1
    if upper_index >= len(values):
        return values[lower_index]

    fraction = index - lower_index
    return values[lower_index] * (1 - fraction) + values[upper_index] * fraction


def token_efficiency(record: CompressionRecord) -> float:
    """预算利用率 min(1, actual / budget)。"""
    if record.token_budget <= 0:
        return 0.0
    return min(1.0, record.actual_tokens / record.token_budget)


class MetricsCalculator:
    """
    滚动指标计算器。

    用法::

        calculator = MetricsCalculator(AnalyticsConfig())
        snapshot = calculator.compute_snapshot(records, "1h", now=time.time())
        actions = calculator.should_optimize(snapshot)

    参数:
        config: 分析层配置
    """

    def __init__(self, config: AnalyticsConfig | None = None) -> None:
        self.config = config or AnalyticsConfig()

    # --- 窗口 ---

    def resolve_window(self, window: str | None) -> str:
        """未知窗口名回退到默认窗口。"""
        if window in WINDOWS:
            return window
        if window is not None:
            logger.debug("未知窗口 '%s'，使用默认窗口 %s。", window, self.config.default_window)
        return self.config.default_window

    def select(
        self,
        records: Sequence[CompressionRecord],
        window: str | None,
        now: float,
    ) -> list[CompressionRecord]:
        """筛选窗口内的记录：now − seconds <= timestamp <= now。"""
        seconds = WINDOWS[self.resolve_window(window)]
        start = now - seconds
        return [r for r in records if start <= r.timestamp <= now]

    # --- 异常 ---

    def detect_anomalies(self, record: CompressionRecord) -> tuple[AnomalyType, ...]:
        """返回记录触发的异常类型（可能为空）。"""
        types: list[AnomalyType] = []
        if record.effective_quality < self.config.anomaly_quality_below:
            types.append(AnomalyType.LOW_QUALITY)
        if record.processing_time_ms > self.config.anomaly_processing_above_ms:
            types.append(AnomalyType.SLOW_PROCESSING)
        if record.efficiency < self.config.anomaly_efficiency_below:
            types.append(AnomalyType.LOW_EFFICIENCY)
        return tuple(types)

    def anomalies(self, records: Sequence[CompressionRecord]) -> list[Anomaly]:
        result: list[Anomaly] = []
        for record in records:
            types = self.detect_anomalies(record)
            if types:
                result.append(Anomaly(record_id=record.record_id, timestamp=record.timestamp, types=types))
        return result

    # --- 趋势 ---

    def trend(self, records: Sequence[CompressionRecord]) -> TrendReport:
        """
        前后两半窗口的平均质量对比。

        记录数少于 trend_min_records 时返回 insufficient_data。
        """
        if len(records) < self.config.trend_min_records:
            return TrendReport()

        ordered = sorted(records, key=lambda r: r.timestamp)
        midpoint = len(ordered) // 2
        older = _mean([r.effective_quality for r in ordered[:midpoint]])
        newer = _mean([r.effective_quality for r in ordered[midpoint:]])

        change_pct = (newer - older) / older * 100 if older > 0 else 0.0
        if abs(newer - older) <= self.config.trend_tolerance:
            direction = TrendDirection.STABLE
        elif newer > older:
            direction = TrendDirection.IMPROVING
        else:
            direction = TrendDirection.DECLINING

        return TrendReport(
            direction=direction,
            change_pct=round(change_pct, 2),
            confidence=min(len(records) / 100, 1.0),
        )

    # --- 快照 ---

    def compute_snapshot(
        self,
        records: Sequence[CompressionRecord],
        window: str | None,
        now: float,
    ) -> MetricsSnapshot:
        """
        计算一个窗口的滚动指标。

        参数:
            records: 全部记录快照
            window: 窗口名（未知时使用默认窗口）
            now: 当前时间（epoch 秒）
        """
        window = self.resolve_window(window)
        selected = self.select(records, window, now)
        total = len(selected)
        if not total:
            return MetricsSnapshot(window=window, generated_at=now)

        strategy_counts: dict[str, int] = defaultdict(int)
        for record in selected:
            strategy_counts[record.strategy] += 1

        return MetricsSnapshot(
            window=window,
            total_compressions=total,
            avg_quality=_mean([r.effective_quality for r in selected]),
            avg_efficiency=_mean([r.efficiency for r in selected]),
            avg_processing_time_ms=_mean([r.processing_time_ms for r in selected]),
            avg_compression_ratio=_mean([r.compression_ratio for r in selected]),
            avg_token_efficiency=_mean([token_efficiency(r) for r in selected]),
            strategy_distribution={
                strategy: count / total for strategy, count in sorted(strategy_counts.items())
            },
            model_performance=self._group_performance(selected, key="model"),
            trend=self.trend(selected),
            anomaly_count=len(self.anomalies(selected)),
            generated_at=now,
        )

    def should_optimize(self, snapshot: MetricsSnapshot) -> list[OptimizationAction]:
        """
        对比基准，返回需要执行的优化动作。

        空窗口不触发任何动作。
        """
        if snapshot.total_compressions == 0:
            return []
        benchmarks = self.config.benchmarks
        actions: list[OptimizationAction] = []
        if snapshot.avg_quality < benchmarks.quality_score:
            actions.append(OptimizationAction.IMPROVE_COMPRESSION_QUALITY)
        if snapshot.avg_token_efficiency < benchmarks.token_efficiency:
            actions.append(OptimizationAction.INCREASE_TOKEN_EFFICIENCY)
        if snapshot.avg_processing_time_ms > benchmarks.processing_time_ms:
            actions.append(OptimizationAction.OPTIMIZE_PROCESSING_SPEED)
        return actions

    def is_triggered(self, snapshot: MetricsSnapshot) -> bool:
        """基准被突破或异常数超过阈值。"""
        return bool(self.should_optimize(snapshot)) or (
            snapshot.anomaly_count > self.config.anomaly_trigger_count
        )

    # --- 质量分析 ---

    def quality_analysis(
        self,
        records: Sequence[CompressionRecord],
        window: str | None,
        now: float,
    ) -> QualityAnalysis:
        """质量分布、瓶颈与各策略的优化机会。"""
        window = self.resolve_window(window)
        selected = self.select(records, window, now)
        total = len(selected)

        distribution = {"excellent": 0, "good": 0, "fair": 0, "poor": 0}
        for record in selected:
            quality = record.effective_quality
            if quality >= 0.9:
                distribution["excellent"] += 1
            elif quality >= 0.8:
                distribution["good"] += 1
            elif quality >= 0.6:
                distribution["fair"] += 1
            else:
                distribution["poor"] += 1

        bottlenecks: list[dict[str, Any]] = []
        recommendations: list[str] = []
        if total:
            slow = sum(1 for r in selected if r.processing_time_ms > self.config.slow_processing_ms)
            if slow > total * 0.1:
                bottlenecks.append({"type": "SLOW_PROCESSING", "affected": slow, "share": slow / total})
                recommendations.append("Optimize compression algorithms for speed")
            low = sum(1 for r in selected if r.effective_quality < self.config.low_quality_below)
            if low > total * 0.2:
                bottlenecks.append({"type": "QUALITY_ISSUES", "affected": low, "share": low / total})
                recommendations.append("Review compression parameters for quality improvement")

        opportunities: list[dict[str, Any]] = []
        by_strategy: dict[str, list[CompressionRecord]] = defaultdict(list)
        for record in selected:
            by_strategy[record.strategy].append(record)
        for strategy in sorted(by_strategy):
            group = by_strategy[strategy]
            avg_quality = _mean([r.effective_quality for r in group])
            avg_efficiency = _mean([r.efficiency for r in group])
            if avg_quality < 0.8:
                opportunities.append({"strategy": strategy, "metric": "quality", "current": avg_quality})
                recommendations.append(f"Improve {strategy} strategy quality (current: {avg_quality:.1%})")
            if avg_efficiency < 0.7:
                opportunities.append({"strategy": strategy, "metric": "efficiency", "current": avg_efficiency})
                recommendations.append(f"Optimize {strategy} strategy efficiency (current: {avg_efficiency:.1%})")

        return QualityAnalysis(
            window=window,
            total_compressions=total,
            distribution=distribution,
            performance_by_strategy=self._group_performance(selected, key="strategy"),
            bottlenecks=tuple(bottlenecks),
            opportunities=tuple(opportunities),
            recommendations=tuple(recommendations),
        )

    # --- 基准 ---

    def benchmark(self, records: Sequence[CompressionRecord]) -> dict[str, Any]:
        """
        质量、耗时、效率的 p50/p75/p90/p95，以及各策略的统计。

        返回:
            {"sample_size", "quality", "processing_time_ms", "efficiency", "by_strategy", "targets"}
        """

        def _percentiles(values: list[float]) -> dict[str, float]:
            ordered = sorted(values)
            return {f"p{int(p * 100)}": percentile(ordered, p) for p in BENCHMARK_PERCENTILES}

        by_strategy: dict[str, list[CompressionRecord]] = defaultdict(list)
        for record in records:
            by_strategy[record.strategy].append(record)

        return {
            "sample_size": len(records),
            "quality": _percentiles([r.effective_quality for r in records]),
            "processing_time_ms": _percentiles([r.processing_time_ms for r in records]),
            "efficiency": _percentiles([r.efficiency for r in records]),
            "by_strategy": {
                strategy: {
                    "count": len(group),
                    "avg_quality": _mean([r.effective_quality for r in group]),
                    "avg_efficiency": _mean([r.efficiency for r in group]),
                    "avg_processing_time_ms": _mean([r.processing_time_ms for r in group]),
                }
                for strategy, group in sorted(by_strategy.items())
            },
            "targets": self.config.benchmarks.model_dump(),
        }

    def _group_performance(
        self,
        records: Sequence[CompressionRecord],
        key: str,
    ) -> dict[str, ModelPerformance]:
        groups: dict[str, list[CompressionRecord]] = defaultdict(list)
        for record in records:
            groups[getattr(record, key)].append(record)
        return {
            name: ModelPerformance(
                count=len(group),
                avg_quality=_mean([r.effective_quality for r in group]),
                avg_processing_time_ms=_mean([r.processing_time_ms for r in group]),
            )
            for name, group in sorted(groups.items())
        }
