"""
Profile Forge — 自适应画像压缩引擎。

把庞杂的行为画像压缩为受 Token 预算约束的提示片段：
语义聚类 → 预算估算 → 按优先级分配 → 分档压缩 → 质量优化 → 组装，
并根据下游观测到的回复质量持续自我调优。

快速上手::

    from profile_forge import ProfileForge

    forge = ProfileForge()
    result = forge.compress(profile, interaction_type="question", complexity=6)
    system_prompt += "\\n" + result.prompt_text
    forge.record_outcome(result, response_quality=0.9)
"""

from profile_forge.analytics import (
    AdaptiveTuner,
    AnalyticsService,
    CompressionRecorder,
    ExperimentRegistry,
    MetricsCalculator,
    TuningScheduler,
)
from profile_forge.budget import Allocator, BudgetEstimator
from profile_forge.clustering import ClusteringEngine
from profile_forge.compress import ClusterCompressor, TierBoundaries
from profile_forge.config import PolicyConfig, load_policy
from profile_forge.facade import ProfileForge
from profile_forge.models import (
    AdaptiveThresholds,
    Cluster,
    ClusterName,
    CompressionMetadata,
    CompressionRecord,
    CompressionResult,
    CompressionStrategy,
    ExperimentReport,
    IntelligenceContext,
    InteractionType,
    MetricsSnapshot,
    QualityAnalysis,
)
from profile_forge.pipeline import Pipeline, PipelineContext, PromptAssembler, create_default_pipeline
from profile_forge.quality import QualityOptimizer
from profile_forge.routing import InteractionClassifier, InteractionSignals

__version__ = "0.1.0"

__all__ = [
    # 顶层入口
    "ProfileForge",
    # 数据模型
    "IntelligenceContext",
    "Cluster",
    "ClusterName",
    "CompressionStrategy",
    "InteractionType",
    "CompressionResult",
    "CompressionMetadata",
    "CompressionRecord",
    "AdaptiveThresholds",
    "ExperimentReport",
    "MetricsSnapshot",
    "QualityAnalysis",
    # 流水线组件
    "Pipeline",
    "PipelineContext",
    "create_default_pipeline",
    "ClusteringEngine",
    "BudgetEstimator",
    "Allocator",
    "ClusterCompressor",
    "TierBoundaries",
    "QualityOptimizer",
    "PromptAssembler",
    "InteractionClassifier",
    "InteractionSignals",
    # 分析与调优
    "AnalyticsService",
    "AdaptiveTuner",
    "CompressionRecorder",
    "ExperimentRegistry",
    "MetricsCalculator",
    "TuningScheduler",
    # 配置
    "PolicyConfig",
    "load_policy",
    # 版本
    "__version__",
]
