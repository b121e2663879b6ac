"""
Profile Forge 配置：策略 Schema、YAML 加载与默认查找表。
"""

from profile_forge.config.defaults import DEFAULT_MODEL, list_models, register_model, resolve_model
from profile_forge.config.loader import load_policy, validate_policy_file
from profile_forge.config.schema import (
    AllocationConfig,
    AnalyticsConfig,
    BenchmarkConfig,
    BudgetConfig,
    ClusteringConfig,
    CompressConfig,
    PolicyConfig,
    QualityConfig,
    TuningConfig,
)

__all__ = [
    "DEFAULT_MODEL",
    "AllocationConfig",
    "AnalyticsConfig",
    "BenchmarkConfig",
    "BudgetConfig",
    "ClusteringConfig",
    "CompressConfig",
    "PolicyConfig",
    "QualityConfig",
    "TuningConfig",
    "list_models",
    "load_policy",
    "register_model",
    "resolve_model",
    "validate_policy_file",
]
