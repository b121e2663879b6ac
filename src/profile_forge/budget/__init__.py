"""
预算估算与 Token 分配模块。
"""

from profile_forge.budget.allocator import Allocator, largest_remainder
from profile_forge.budget.estimator import BudgetEstimator
from profile_forge.budget.strategies import (
    effective_priorities,
    is_excluded,
    select_strategy,
)

__all__ = [
    "Allocator",
    "BudgetEstimator",
    "effective_priorities",
    "is_excluded",
    "largest_remainder",
    "select_strategy",
]
