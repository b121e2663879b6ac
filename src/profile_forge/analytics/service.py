"""
分析服务 — 记录缓冲区、滚动指标、实验与调优器的组合根。

Facade 与 HTTP 层只和本服务打交道：

- record()：写入记录、记录异常、把记录喂给调优器
- attach_outcome()：按 record_id 回填下游反馈，替换缓冲区中的记录并让调优器修订样本
- history()：最近的压缩记录
- get_metrics() / quality_analysis() / benchmark()：按窗口计算指标
- refresh()：重算所有窗口的快照，触发条件满足时执行一次调优
- optimization_status()：阈值、规则统计与最近一次刷新结果

# [Design Decision] 分析失败永远不影响压缩：record() 内部的调优失败
# 只记录日志，不向调用方抛出。
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from profile_forge.analytics.experiments import ExperimentRegistry
from profile_forge.analytics.metrics import MetricsCalculator
from profile_forge.analytics.recorder import CompressionRecorder
from profile_forge.analytics.tuning import AdaptiveTuner
from profile_forge.config.defaults import WINDOWS
from profile_forge.config.schema import AnalyticsConfig, TuningConfig
from profile_forge.models.metrics import MetricsSnapshot, OptimizationAction, QualityAnalysis
from profile_forge.models.record import CompressionRecord
from profile_forge.models.thresholds import AdaptiveThresholds

logger = logging.getLogger(__name__)


class AnalyticsService:
    """
    分析与自适应调优服务。

    用法::

        service = AnalyticsService(AnalyticsConfig(), TuningConfig())
        service.record(record)
        service.get_metrics("1h").avg_quality
        service.refresh()

    参数:
        config: 分析层配置
        tuning: 调优配置
        clock: 时间函数（epoch 秒），测试中可注入固定时钟
        recorder / calculator / experiments / tuner: 可注入的组件
    """

    def __init__(
        self,
        config: AnalyticsConfig | None = None,
        tuning: TuningConfig | None = None,
        clock: Callable[[], float] | None = None,
        recorder: CompressionRecorder | None = None,
        calculator: MetricsCalculator | None = None,
        experiments: ExperimentRegistry | None = None,
        tuner: AdaptiveTuner | None = None,
    ) -> None:
        self.config = config or AnalyticsConfig()
        self.clock = clock or time.time
        self.recorder = recorder or CompressionRecorder(self.config.max_records)
        self.calculator = calculator or MetricsCalculator(self.config)
        self.experiments = experiments or ExperimentRegistry(clock=self.clock)
        self.tuner = tuner or AdaptiveTuner(tuning)

        self._lock = threading.RLock()
        self._snapshots: dict[str, MetricsSnapshot] = {}
        self._last_actions: list[OptimizationAction] = []
        self._last_refresh: float | None = None
        self._refresh_count = 0

    # --- 写入 ---

    def record(self, record: CompressionRecord) -> bool:
        """
        写入一条压缩记录。

        返回:
            True 表示写入；重复的 record_id 返回 False
        """
        if not self.recorder.append(record):
            return False

        self._log_anomalies(record)
        try:
            self.tuner.learn(record)
        except Exception:
            logger.exception("调优器学习记录 %s 失败，已忽略。", record.record_id)
        return True

    def attach_outcome(
        self,
        record_id: str,
        user_feedback: float | None = None,
        response_quality: float | None = None,
    ) -> CompressionRecord | None:
        """
        为已写入的记录回填下游观测结果。

        每条记录只接受一次回填。新版本原位替换旧记录，
        指标随即按有效质量（response_quality 优先）计算，调优器修订对应样本。

        返回:
            回填后的记录；record_id 不在缓冲区或已回填过时返回 None

        异常:
            pydantic.ValidationError: 反馈值不在 [0, 1]
        """
        current = self.recorder.get(record_id)
        if current is None:
            return None
        if current.has_outcome:
            logger.warning("记录 %s 已回填过下游结果，忽略重复回填。", record_id)
            return None

        updated = current.with_outcome(user_feedback, response_quality)
        if not self.recorder.replace(updated):
            # 校验期间被环形缓冲区淘汰
            return None

        self._log_anomalies(updated)
        try:
            self.tuner.revise(updated)
        except Exception:
            logger.exception("调优器修订记录 %s 失败，已忽略。", record_id)
        return updated

    def _log_anomalies(self, record: CompressionRecord) -> None:
        anomalies = self.calculator.detect_anomalies(record)
        if anomalies:
            logger.warning(
                "压缩记录 %s 异常：%s（quality=%.2f, time=%.0fms, efficiency=%.2f）",
                record.record_id,
                ", ".join(a.value for a in anomalies),
                record.effective_quality,
                record.processing_time_ms,
                record.efficiency,
            )

    def record_experiment_result(
        self,
        experiment: str,
        strategy: str,
        quality: float,
        efficiency: float,
        processing_time_ms: float,
    ) -> bool:
        try:
            return self.experiments.record_result(experiment, strategy, quality, efficiency, processing_time_ms)
        except Exception:
            logger.exception("记录实验 %s 的结果失败，已忽略。", experiment)
            return False

    # --- 读取 ---

    def thresholds(self) -> AdaptiveThresholds:
        return self.tuner.thresholds()

    def get_metrics(self, window: str | None = None) -> MetricsSnapshot:
        """按窗口计算滚动指标（每次都基于最新记录计算）。"""
        return self.calculator.compute_snapshot(self.recorder.snapshot(), window, self.clock())

    def quality_analysis(self, window: str | None = None) -> QualityAnalysis:
        return self.calculator.quality_analysis(self.recorder.snapshot(), window, self.clock())

    def benchmark(self, window: str | None = None) -> dict[str, Any]:
        """
        质量、耗时、效率的百分位基准。

        参数:
            window: 窗口名；None 表示使用全部缓冲区记录
        """
        records = self.recorder.snapshot()
        if window is not None:
            records = self.calculator.select(records, window, self.clock())
        return self.calculator.benchmark(records)

    def history(self, limit: int = 100) -> list[CompressionRecord]:
        """最近 limit 条压缩记录（按写入顺序，新的在后）。"""
        return list(self.recorder.recent(limit))

    def cached_snapshots(self) -> dict[str, MetricsSnapshot]:
        """最近一次 refresh() 计算的各窗口快照。"""
        with self._lock:
            return dict(self._snapshots)

    def optimization_status(self) -> dict[str, Any]:
        thresholds = self.tuner.thresholds()
        with self._lock:
            return {
                "adaptive_thresholds": thresholds.model_dump(),
                "rule_stats": {
                    key: {**stats.model_dump(), "success_rate": stats.success_rate}
                    for key, stats in self.tuner.rule_stats().items()
                },
                "condition_stats": self.tuner.condition_stats(),
                "last_actions": [a.value for a in self._last_actions],
                "history_size": self.tuner.history_size,
                "record_count": len(self.recorder),
                "last_refresh": self._last_refresh,
                "refresh_count": self._refresh_count,
                "active_experiments": self.experiments.active_names(),
                "learning_rate": self.tuner.config.learning_rate,
            }

    # --- 刷新与调优 ---

    def refresh(self) -> list[OptimizationAction]:
        """
        重算所有窗口的快照；默认窗口触发优化条件时执行一次调优。

        返回:
            默认窗口需要执行的优化动作
        """
        now = self.clock()
        records = self.recorder.snapshot()
        snapshots = {
            window: self.calculator.compute_snapshot(records, window, now) for window in WINDOWS
        }
        primary = snapshots[self.calculator.resolve_window(None)]
        actions = self.calculator.should_optimize(primary)
        triggered = self.calculator.is_triggered(primary)

        with self._lock:
            self._snapshots = snapshots
            self._last_actions = actions
            self._last_refresh = now
            self._refresh_count += 1

        if triggered:
            logger.info(
                "触发优化：actions=%s anomalies=%d",
                [a.value for a in actions],
                primary.anomaly_count,
            )
            self.run_tuning_cycle()
        return actions

    def run_tuning_cycle(self) -> bool:
        """
        立即执行一次调优。

        返回:
            True 表示阈值已更新
        """
        try:
            return self.tuner.optimize()
        except Exception:
            logger.exception("调优周期执行失败，保持当前阈值。")
            return False
