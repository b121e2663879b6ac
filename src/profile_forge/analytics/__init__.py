"""
分析与自适应调优层。

记录缓冲区 → 滚动指标 / A/B 实验 → 自适应调优 → 反馈到预算估算与质量目标。
"""

from profile_forge.analytics.experiments import ExperimentRegistry, bucket_for, pick_strategy
from profile_forge.analytics.metrics import MetricsCalculator, percentile, token_efficiency
from profile_forge.analytics.recorder import CompressionRecorder
from profile_forge.analytics.scheduler import TuningScheduler
from profile_forge.analytics.service import AnalyticsService
from profile_forge.analytics.tuning import AdaptiveTuner

__all__ = [
    "AdaptiveTuner",
    "AnalyticsService",
    "CompressionRecorder",
    "ExperimentRegistry",
    "MetricsCalculator",
    "TuningScheduler",
    "bucket_for",
    "percentile",
    "pick_strategy",
    "token_efficiency",
]
