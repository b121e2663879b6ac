"""
A/B 实验数据模型。

状态机：created → active → ended → archived。
实验由 ExperimentRegistry 独占持有并加锁修改，
对外只返回深拷贝快照。
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ExperimentStatus(str, Enum):
    CREATED = "created"
    ACTIVE = "active"
    ENDED = "ended"
    ARCHIVED = "archived"


class StrategyResult(BaseModel):
    """实验中某策略的一次压缩结果。"""

    model_config = ConfigDict(frozen=True)

    quality: float
    efficiency: float
    processing_time_ms: float
    timestamp: float


class StrategyMetrics(BaseModel):
    """
    单个策略在实验中的汇总表现。

    属性:
        sample_size: 样本数
        avg_quality: 平均质量
        avg_efficiency: 平均效率
        avg_processing_time_ms: 平均耗时
        success_rate: 质量 > 0.8 的样本比例
    """

    model_config = ConfigDict(frozen=True)

    sample_size: int = 0
    avg_quality: float = 0.0
    avg_efficiency: float = 0.0
    avg_processing_time_ms: float = 0.0
    success_rate: float = 0.0

    @property
    def composite_score(self) -> float:
        """质量 × 效率 / 归一化耗时，用于挑选胜出策略。"""
        return self.avg_quality * self.avg_efficiency / (max(self.avg_processing_time_ms, 1.0) / 100)


class ExperimentReport(BaseModel):
    """
    实验结束报告。

    属性:
        experiment: 实验名
        duration_ms: 实际运行时长
        winner: 胜出策略（结果不足两个策略时为 None）
        confidence: 整体置信度（各策略置信度的最小值）
        confidence_per_strategy: 各策略置信度 min(n / 100, 0.95)
        per_strategy_metrics: 各策略汇总
        recommendations: 建议列表
        end_reason: manual（显式结束）/ expired（惰性过期）
    """

    model_config = ConfigDict(frozen=True)

    experiment: str
    duration_ms: float
    winner: str | None = None
    confidence: float = 0.0
    confidence_per_strategy: dict[str, float] = Field(default_factory=dict)
    per_strategy_metrics: dict[str, StrategyMetrics] = Field(default_factory=dict)
    recommendations: tuple[str, ...] = ()
    end_reason: str = "manual"


class Experiment(BaseModel):
    """
    一个 A/B 实验。

    属性:
        name: 实验名（活动实验中唯一）
        strategies: 候选策略
        traffic_split: 与 strategies 等长的流量比例，总和为 1
        duration_ms: 名义时长
        created_at: 创建时间（epoch 秒）
        start_time: 启动时间
        end_time: 结束时间
        status: 当前状态
        results_by_strategy: 策略 → 结果列表
        report: 结束后生成的报告
    """

    name: str
    strategies: list[str]
    traffic_split: list[float]
    duration_ms: float
    created_at: float
    start_time: float | None = None
    end_time: float | None = None
    status: ExperimentStatus = ExperimentStatus.CREATED
    results_by_strategy: dict[str, list[StrategyResult]] = Field(default_factory=dict)
    report: ExperimentReport | None = None

    @property
    def active(self) -> bool:
        return self.status is ExperimentStatus.ACTIVE

    def is_expired(self, now: float) -> bool:
        """活动实验是否已超过名义时长。"""
        if self.start_time is None:
            return False
        return (now - self.start_time) * 1000 > self.duration_ms

    def summary(self) -> dict[str, Any]:
        """列表展示用的摘要。"""
        return {
            "name": self.name,
            "status": self.status.value,
            "strategies": list(self.strategies),
            "traffic_split": list(self.traffic_split),
            "duration_ms": self.duration_ms,
            "start_time": self.start_time,
            "sample_sizes": {
                strategy: len(self.results_by_strategy.get(strategy, []))
                for strategy in self.strategies
            },
            "winner": self.report.winner if self.report else None,
        }
