"""
画像聚类模块。
"""

from profile_forge.clustering.engine import ClusteringEngine
from profile_forge.clustering.extractors import (
    DEFAULT_CLUSTER_SPECS,
    ClusterSpec,
    ExtractionRule,
    count_attributes,
)

__all__ = [
    "DEFAULT_CLUSTER_SPECS",
    "ClusterSpec",
    "ClusteringEngine",
    "ExtractionRule",
    "count_attributes",
]
