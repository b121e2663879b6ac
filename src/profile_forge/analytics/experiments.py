"""
A/B 实验注册表。

状态机：created → active → ended → archived

- 分桶：sha256(participant_id) 映射到 [0, 100)，按累计流量比例落入策略；
  舍入留下空隙时落入最后一个策略。同一参与者在实验活动期间永远得到同一策略。
- 过期是惰性的：只有在下一次 assign() 时才会发现实验已超时并结束。
- 同名的已结束实验在新实验创建时被归档。

# [Design Decision] 分桶只对 participant_id 取哈希而不混入实验名，
# 同一用户在同时运行的多个实验中落入相同的桶位，便于交叉分析。
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections.abc import Callable, Sequence

from profile_forge.errors import ExperimentError, ExperimentNotFoundError
from profile_forge.models.budget import CompressionStrategy
from profile_forge.models.experiment import (
    Experiment,
    ExperimentReport,
    ExperimentStatus,
    StrategyMetrics,
    StrategyResult,
)

logger = logging.getLogger(__name__)

KNOWN_STRATEGIES: frozenset[str] = frozenset(s.value for s in CompressionStrategy)
SPLIT_TOLERANCE = 0.01
SUCCESS_QUALITY = 0.8
DROP_QUALITY_BELOW = 0.7
MAX_CONFIDENCE = 0.95


def bucket_for(participant_id: str) -> int:
    """参与者 → [0, 100) 的稳定桶位。"""
    digest = hashlib.sha256(participant_id.encode("utf-8")).hexdigest()
    return int(digest, 16) % 100


def pick_strategy(bucket: int, strategies: Sequence[str], traffic_split: Sequence[float]) -> str:
    """按累计流量边界选择策略。"""
    cumulative = 0.0
    for strategy, share in zip(strategies, traffic_split):
        cumulative += share * 100
        if bucket < cumulative:
            return strategy
    return strategies[-1]


def build_report(experiment: Experiment, now: float, end_reason: str) -> ExperimentReport:
    """
    生成实验结束报告。

    胜出策略 = argmax(avg_quality × avg_efficiency / (max(avg_time, 1) / 100))，
    至少两个策略有结果时才评选。
    """
    metrics: dict[str, StrategyMetrics] = {}
    for strategy in experiment.strategies:
        results = experiment.results_by_strategy.get(strategy, [])
        n = len(results)
        if n:
            metrics[strategy] = StrategyMetrics(
                sample_size=n,
                avg_quality=sum(r.quality for r in results) / n,
                avg_efficiency=sum(r.efficiency for r in results) / n,
                avg_processing_time_ms=sum(r.processing_time_ms for r in results) / n,
                success_rate=sum(1 for r in results if r.quality > SUCCESS_QUALITY) / n,
            )
        else:
            metrics[strategy] = StrategyMetrics()

    confidence_per_strategy = {
        strategy: min(m.sample_size / 100, MAX_CONFIDENCE) for strategy, m in metrics.items()
    }
    with_results = [s for s in experiment.strategies if metrics[s].sample_size > 0]

    winner: str | None = None
    confidence = 0.0
    if len(with_results) >= 2:
        # 平局时保留先声明的策略
        winner = max(with_results, key=lambda s: (metrics[s].composite_score, -experiment.strategies.index(s)))
        confidence = min(confidence_per_strategy.values())

    recommendations: list[str] = []
    if winner is not None:
        recommendations.append(f"Use '{winner}' strategy as default ({confidence:.1%} confidence)")
    for strategy in with_results:
        quality = metrics[strategy].avg_quality
        if quality < DROP_QUALITY_BELOW:
            recommendations.append(f"Consider removing '{strategy}' strategy (low quality: {quality:.1%})")

    start = experiment.start_time if experiment.start_time is not None else experiment.created_at
    return ExperimentReport(
        experiment=experiment.name,
        duration_ms=max(0.0, (now - start) * 1000),
        winner=winner,
        confidence=confidence,
        confidence_per_strategy=confidence_per_strategy,
        per_strategy_metrics=metrics,
        recommendations=tuple(recommendations),
        end_reason=end_reason,
    )


class ExperimentRegistry:
    """
    A/B 实验注册表（一把 RLock 保护全部状态）。

    用法::

        registry = ExperimentRegistry()
        registry.start_experiment("tiers", ["minimal", "balanced"], [0.5, 0.5], 3_600_000)
        registry.assign("tiers", "user-42")   # "balanced"
        report = registry.end("tiers")

    参数:
        clock: 时间函数（epoch 秒），测试中可注入固定时钟
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.time
        self._lock = threading.RLock()
        self._experiments: dict[str, Experiment] = {}
        self._archived: list[Experiment] = []

    # --- 生命周期 ---

    def create(
        self,
        name: str,
        strategies: Sequence[str],
        traffic_split: Sequence[float],
        duration_ms: float,
    ) -> Experiment:
        """
        创建实验（状态 created）。

        异常:
            ExperimentError: 参数无效或同名实验尚未结束
        """
        strategies = list(strategies)
        traffic_split = [float(s) for s in traffic_split]
        self._validate(name, strategies, traffic_split, duration_ms)

        with self._lock:
            existing = self._experiments.get(name)
            if existing is not None:
                if existing.status in (ExperimentStatus.CREATED, ExperimentStatus.ACTIVE):
                    raise ExperimentError(
                        what=f"实验 '{name}' 已存在且尚未结束。",
                        why="同一时间只能有一个同名的未结束实验。",
                        how="先调用 end_experiment() 结束旧实验，或换一个实验名。",
                        experiment=name,
                    )
                self._archive_locked(existing)

            experiment = Experiment(
                name=name,
                strategies=strategies,
                traffic_split=traffic_split,
                duration_ms=float(duration_ms),
                created_at=self._clock(),
                results_by_strategy={s: [] for s in strategies},
            )
            self._experiments[name] = experiment
            logger.info("创建实验 %s：%s %s", name, strategies, traffic_split)
            return experiment.model_copy(deep=True)

    def start(self, name: str) -> Experiment:
        """created → active。"""
        with self._lock:
            experiment = self._require(name)
            if experiment.status is not ExperimentStatus.CREATED:
                raise ExperimentError(
                    what=f"实验 '{name}' 无法启动。",
                    why=f"当前状态为 {experiment.status.value}，只有 created 状态的实验可以启动。",
                    how="创建一个新实验。",
                    experiment=name,
                )
            experiment.status = ExperimentStatus.ACTIVE
            experiment.start_time = self._clock()
            return experiment.model_copy(deep=True)

    def start_experiment(
        self,
        name: str,
        strategies: Sequence[str],
        traffic_split: Sequence[float],
        duration_ms: float,
    ) -> Experiment:
        """创建并立即启动。"""
        with self._lock:
            self.create(name, strategies, traffic_split, duration_ms)
            return self.start(name)

    def end(self, name: str, reason: str = "manual") -> ExperimentReport:
        """
        结束实验并生成报告。已结束的实验直接返回原报告。

        异常:
            ExperimentNotFoundError: 实验不存在
            ExperimentError: 实验尚未启动
        """
        with self._lock:
            experiment = self._require(name)
            if experiment.status is ExperimentStatus.ENDED and experiment.report is not None:
                return experiment.report
            if experiment.status is not ExperimentStatus.ACTIVE:
                raise ExperimentError(
                    what=f"实验 '{name}' 无法结束。",
                    why=f"当前状态为 {experiment.status.value}。",
                    how="只有 active 状态的实验可以结束。",
                    experiment=name,
                )
            return self._end_locked(experiment, reason)

    def archive(self, name: str) -> Experiment:
        """ended → archived。"""
        with self._lock:
            experiment = self._require(name)
            if experiment.status is not ExperimentStatus.ENDED:
                raise ExperimentError(
                    what=f"实验 '{name}' 无法归档。",
                    why=f"当前状态为 {experiment.status.value}，只有 ended 状态的实验可以归档。",
                    how="先调用 end_experiment() 结束实验。",
                    experiment=name,
                )
            self._archive_locked(experiment)
            return experiment.model_copy(deep=True)

    # --- 分配与结果 ---

    def assign(self, name: str, participant_id: str) -> str | None:
        """
        为参与者分配策略。

        实验不存在、未激活或已过期时返回 None（过期实验在此时被结束）。
        """
        with self._lock:
            experiment = self._experiments.get(name)
            if experiment is None or not experiment.active:
                return None
            if experiment.is_expired(self._clock()):
                logger.info("实验 %s 已超过时长，自动结束。", name)
                self._end_locked(experiment, "expired")
                return None
            return pick_strategy(bucket_for(participant_id), experiment.strategies, experiment.traffic_split)

    def record_result(
        self,
        name: str,
        strategy: str,
        quality: float,
        efficiency: float,
        processing_time_ms: float,
    ) -> bool:
        """
        记录一次实验结果。

        返回:
            True 表示写入；实验不活动或策略不属于该实验时返回 False
        """
        with self._lock:
            experiment = self._experiments.get(name)
            if experiment is None or not experiment.active or strategy not in experiment.strategies:
                return False
            experiment.results_by_strategy.setdefault(strategy, []).append(
                StrategyResult(
                    quality=quality,
                    efficiency=efficiency,
                    processing_time_ms=processing_time_ms,
                    timestamp=self._clock(),
                )
            )
            return True

    # --- 查询 ---

    def get(self, name: str) -> Experiment:
        """返回实验快照。"""
        with self._lock:
            return self._require(name).model_copy(deep=True)

    def list_experiments(self, include_archived: bool = False) -> list[dict[str, object]]:
        """所有实验的摘要。"""
        with self._lock:
            summaries = [e.summary() for e in self._experiments.values()]
            if include_archived:
                summaries.extend(e.summary() for e in self._archived)
            return summaries

    def active_names(self) -> list[str]:
        with self._lock:
            return [name for name, e in self._experiments.items() if e.active]

    # --- 内部方法 ---

    def _require(self, name: str) -> Experiment:
        experiment = self._experiments.get(name)
        if experiment is None:
            raise ExperimentNotFoundError(
                what=f"实验 '{name}' 不存在。",
                how=f"当前实验：{', '.join(sorted(self._experiments)) or '（无）'}。",
                experiment=name,
            )
        return experiment

    def _end_locked(self, experiment: Experiment, reason: str) -> ExperimentReport:
        now = self._clock()
        experiment.status = ExperimentStatus.ENDED
        experiment.end_time = now
        experiment.report = build_report(experiment, now, reason)
        logger.info(
            "实验 %s 结束（%s）：winner=%s confidence=%.2f",
            experiment.name,
            reason,
            experiment.report.winner,
            experiment.report.confidence,
        )
        return experiment.report

    def _archive_locked(self, experiment: Experiment) -> None:
        experiment.status = ExperimentStatus.ARCHIVED
        self._archived.append(experiment)
        self._experiments.pop(experiment.name, None)

    def _validate(
        self,
        name: str,
        strategies: list[str],
        traffic_split: list[float],
        duration_ms: float,
    ) -> None:
        problems: list[str] = []
        if not name or not name.strip():
            problems.append("实验名不能为空")
        if len(strategies) < 2:
            problems.append(f"至少需要两个策略，实际为 {len(strategies)}")
        if len(strategies) != len(traffic_split):
            problems.append(f"策略数 {len(strategies)} 与流量比例数 {len(traffic_split)} 不一致")
        if abs(sum(traffic_split) - 1.0) > SPLIT_TOLERANCE:
            problems.append(f"流量比例之和为 {sum(traffic_split):.3f}，应为 1")
        if any(share < 0 for share in traffic_split):
            problems.append("流量比例不能为负数")
        unknown = [s for s in strategies if s not in KNOWN_STRATEGIES]
        if unknown:
            problems.append(f"未知策略 {unknown}")
        if len(set(strategies)) != len(strategies):
            problems.append("策略不能重复")
        if duration_ms <= 0:
            problems.append(f"时长必须为正数，实际为 {duration_ms}")

        if problems:
            raise ExperimentError(
                what=f"实验 '{name}' 参数无效。",
                why="；".join(problems) + "。",
                how=f"可用策略：{', '.join(sorted(KNOWN_STRATEGIES))}；流量比例与策略一一对应且总和为 1。",
                experiment=name,
                problems=problems,
            )
