"""
分析层的输出模型：滚动指标快照、趋势、异常、质量分析与优化动作。
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class AnomalyType(str, Enum):
    LOW_QUALITY = "LOW_QUALITY"
    SLOW_PROCESSING = "SLOW_PROCESSING"
    LOW_EFFICIENCY = "LOW_EFFICIENCY"


class OptimizationAction(str, Enum):
    IMPROVE_COMPRESSION_QUALITY = "IMPROVE_COMPRESSION_QUALITY"
    INCREASE_TOKEN_EFFICIENCY = "INCREASE_TOKEN_EFFICIENCY"
    OPTIMIZE_PROCESSING_SPEED = "OPTIMIZE_PROCESSING_SPEED"


class Anomaly(BaseModel):
    """一条异常记录（一个记录可能触发多个类型）。"""

    model_config = ConfigDict(frozen=True)

    record_id: str
    timestamp: float
    types: tuple[AnomalyType, ...]


class TrendReport(BaseModel):
    """
    前后两半窗口的质量对比。

    属性:
        direction: 趋势方向
        change_pct: 新半段相对旧半段的变化百分比
        confidence: min(样本数 / 100, 1)
    """

    model_config = ConfigDict(frozen=True)

    direction: TrendDirection = TrendDirection.INSUFFICIENT_DATA
    change_pct: float = 0.0
    confidence: float = 0.0


class ModelPerformance(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int
    avg_quality: float
    avg_processing_time_ms: float


class MetricsSnapshot(BaseModel):
    """
    一个时间窗口内的滚动指标。

    属性:
        window: 窗口名（1h / 24h / 7d / 30d）
        total_compressions: 窗口内记录数
        avg_quality: 平均质量（优先使用下游观测质量）
        avg_efficiency: 平均效率
        avg_processing_time_ms: 平均耗时
        avg_compression_ratio: 平均压缩率
        avg_token_efficiency: 平均预算利用率
        strategy_distribution: 策略 → 占比
        model_performance: 模型 → 表现
        trend: 质量趋势
        anomaly_count: 窗口内异常记录数
        generated_at: 生成时间
    """

    model_config = ConfigDict(frozen=True)

    window: str
    total_compressions: int = 0
    avg_quality: float = 0.0
    avg_efficiency: float = 0.0
    avg_processing_time_ms: float = 0.0
    avg_compression_ratio: float = 0.0
    avg_token_efficiency: float = 0.0
    strategy_distribution: dict[str, float] = Field(default_factory=dict)
    model_performance: dict[str, ModelPerformance] = Field(default_factory=dict)
    trend: TrendReport = Field(default_factory=TrendReport)
    anomaly_count: int = 0
    generated_at: float = 0.0


class QualityAnalysis(BaseModel):
    """
    质量分布、瓶颈与优化机会。

    属性:
        total_compressions: 窗口内记录数
        distribution: excellent / good / fair / poor 计数
        performance_by_strategy: 策略 → 表现
        bottlenecks: 瓶颈描述列表
        opportunities: 各策略的优化机会
        recommendations: 建议列表
    """

    model_config = ConfigDict(frozen=True)

    window: str
    total_compressions: int = 0
    distribution: dict[str, int] = Field(default_factory=dict)
    performance_by_strategy: dict[str, ModelPerformance] = Field(default_factory=dict)
    bottlenecks: tuple[dict[str, Any], ...] = ()
    opportunities: tuple[dict[str, Any], ...] = ()
    recommendations: tuple[str, ...] = ()
