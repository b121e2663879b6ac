"""
簇压缩模块。
"""

from profile_forge.compress.base import (
    CompressedCluster,
    CompressionTier,
    TierBoundaries,
    TierRenderer,
)
from profile_forge.compress.engine import ClusterCompressor
from profile_forge.compress.tiers import (
    DetailedRenderer,
    StandardRenderer,
    UltraRenderer,
    format_value,
    truncate_text,
)

__all__ = [
    "ClusterCompressor",
    "CompressedCluster",
    "CompressionTier",
    "DetailedRenderer",
    "StandardRenderer",
    "TierBoundaries",
    "TierRenderer",
    "UltraRenderer",
    "format_value",
    "truncate_text",
]
