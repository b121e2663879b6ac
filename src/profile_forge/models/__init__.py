"""
Profile Forge 数据模型。
"""

from profile_forge.models.budget import (
    AllocationPlan,
    BudgetEstimate,
    CompressionStrategy,
    InteractionType,
    ModelProfile,
    TokenAllocation,
)
from profile_forge.models.cluster import CLUSTER_ORDER, Cluster, ClusterName
from profile_forge.models.context import CONTEXT_GROUPS, IntelligenceContext
from profile_forge.models.experiment import (
    Experiment,
    ExperimentReport,
    ExperimentStatus,
    StrategyMetrics,
    StrategyResult,
)
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
from profile_forge.models.record import (
    CompressionMetadata,
    CompressionRecord,
    CompressionResult,
    OptimizationMetrics,
)
from profile_forge.models.thresholds import AdaptiveThresholds, RuleStats

__all__ = [
    "AdaptiveThresholds",
    "AllocationPlan",
    "Anomaly",
    "AnomalyType",
    "BudgetEstimate",
    "CLUSTER_ORDER",
    "CONTEXT_GROUPS",
    "Cluster",
    "ClusterName",
    "CompressionMetadata",
    "CompressionRecord",
    "CompressionResult",
    "CompressionStrategy",
    "Experiment",
    "ExperimentReport",
    "ExperimentStatus",
    "IntelligenceContext",
    "InteractionType",
    "MetricsSnapshot",
    "ModelPerformance",
    "ModelProfile",
    "OptimizationAction",
    "OptimizationMetrics",
    "QualityAnalysis",
    "RuleStats",
    "StrategyMetrics",
    "StrategyResult",
    "TokenAllocation",
    "TrendDirection",
    "TrendReport",
]
