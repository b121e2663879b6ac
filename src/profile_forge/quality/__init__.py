"""
质量评分与优化模块。
"""

from profile_forge.quality.optimizer import (
    OptimizationOutcome,
    QualityOptimizer,
    measure_efficiency,
)

__all__ = [
    "OptimizationOutcome",
    "QualityOptimizer",
    "measure_efficiency",
]
