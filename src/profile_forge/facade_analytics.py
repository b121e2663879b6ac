"""
ProfileForge 分析与调优扩展方法。

将实验、指标与后台调优相关的便捷方法从主 Facade 中拆分出来，
保持 facade.py 聚焦于压缩主路径。
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from profile_forge.analytics import AnalyticsService, TuningScheduler
    from profile_forge.models.experiment import Experiment, ExperimentReport
    from profile_forge.models.metrics import MetricsSnapshot, QualityAnalysis
    from profile_forge.models.record import CompressionRecord
    from profile_forge.models.thresholds import AdaptiveThresholds


class AnalyticsMixin:
    """
    分析与调优便捷方法 Mixin。

    # [Design Decision] 使用 Mixin 拆分分析方法，所有方法都只是
    # 对 AnalyticsService 的薄封装，状态全部由服务持有。
    """

    # 以下属性由 ProfileForge.__init__() 初始化
    _analytics: AnalyticsService
    _scheduler: TuningScheduler | None

    # --- A/B 实验 ---

    def start_experiment(
        self,
        name: str,
        strategies: Sequence[str],
        traffic_split: Sequence[float],
        duration_ms: float,
    ) -> Experiment:
        """
        创建并启动一个 A/B 实验。

        参数:
            name: 实验名
            strategies: 候选策略（至少两个）
            traffic_split: 与 strategies 等长的流量比例，总和为 1
            duration_ms: 名义时长（毫秒），超时后在下一次分配时自动结束

        异常:
            ExperimentError: 参数无效或同名实验尚未结束
        """
        return self._analytics.experiments.start_experiment(name, strategies, traffic_split, duration_ms)

    def assign_strategy(self, name: str, participant_id: str) -> str | None:
        """为参与者分配策略；实验不存在或不活动时返回 None。"""
        return self._analytics.experiments.assign(name, participant_id)

    def end_experiment(self, name: str) -> ExperimentReport:
        """结束实验并返回报告。"""
        return self._analytics.experiments.end(name)

    def archive_experiment(self, name: str) -> Experiment:
        return self._analytics.experiments.archive(name)

    def get_experiment(self, name: str) -> Experiment:
        return self._analytics.experiments.get(name)

    def list_experiments(self, include_archived: bool = False) -> list[dict[str, Any]]:
        return self._analytics.experiments.list_experiments(include_archived)

    # --- 指标 ---

    def get_metrics(self, window: str = "1h") -> MetricsSnapshot:
        """
        滚动窗口指标。

        参数:
            window: 1h / 24h / 7d / 30d（未知窗口回退到默认窗口）
        """
        return self._analytics.get_metrics(window)

    def get_compression_history(self, limit: int = 100) -> list[CompressionRecord]:
        """最近 limit 条压缩记录（按写入顺序，新的在后）。"""
        return self._analytics.history(limit)

    def get_quality_analysis(self, window: str = "1h") -> QualityAnalysis:
        return self._analytics.quality_analysis(window)

    def get_benchmark(self, window: str | None = None) -> dict[str, Any]:
        """质量、耗时、效率的 p50/p75/p90/p95 与各策略统计。"""
        return self._analytics.benchmark(window)

    def get_adaptive_thresholds(self) -> AdaptiveThresholds:
        return self._analytics.thresholds()

    def get_optimization_status(self) -> dict[str, Any]:
        status = self._analytics.optimization_status()
        status["background_tuning"] = self._scheduler is not None and self._scheduler.is_running
        return status

    def run_tuning_cycle(self) -> bool:
        """立即执行一次调优，返回阈值是否更新。"""
        return self._analytics.run_tuning_cycle()

    # --- 后台调优 ---

    async def start_background_tuning(self, interval: float | None = None) -> TuningScheduler:
        """
        启动后台刷新任务（需要运行中的事件循环）。

        参数:
            interval: 刷新周期（秒），None 时使用 analytics.refresh_interval_seconds
        """
        from profile_forge.analytics import TuningScheduler

        if self._scheduler is not None and self._scheduler.is_running:
            return self._scheduler
        self._scheduler = TuningScheduler(self._analytics, interval)
        await self._scheduler.start()
        return self._scheduler

    async def stop_background_tuning(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.stop()
            self._scheduler = None
