"""
Allocator — 按有效权重把 Token 预算切分给各簇。

分配规则：
1. share = budget × effective / Σ effective，向下取整
2. 余数按小数部分从大到小逐个发放，小数部分相同时按固定簇顺序
3. 只要有参与分配的簇配额低于 min_cluster_tokens，就清零有效权重最低的簇，
   把预算重新分给剩余的簇（最多循环簇数次）

不变式：Σ token_count ≤ budget。
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping

from profile_forge.budget.strategies import effective_priorities, select_strategy
from profile_forge.config.schema import AllocationConfig
from profile_forge.models.budget import AllocationPlan, CompressionStrategy, TokenAllocation
from profile_forge.models.cluster import CLUSTER_ORDER, Cluster

logger = logging.getLogger(__name__)

_ORDER_INDEX = {name.value: index for index, name in enumerate(CLUSTER_ORDER)}


def largest_remainder(budget: int, weights: Mapping[str, float]) -> dict[str, int]:
    """
    最大余数法切分整数预算。

    参数:
        budget: 待切分的整数预算
        weights: 簇名 → 正权重

    返回:
        簇名 → 整数配额，总和不超过 budget
    """
    total = sum(weights.values())
    if budget <= 0 or total <= 0:
        return {name: 0 for name in weights}

    shares: dict[str, int] = {}
    fractions: list[tuple[float, int, str]] = []
    for name, weight in weights.items():
        exact = budget * weight / total
        floor = math.floor(exact)
        shares[name] = floor
        fractions.append((-(exact - floor), _ORDER_INDEX.get(name, len(_ORDER_INDEX)), name))

    remainder = budget - sum(shares.values())
    for _, _, name in sorted(fractions)[: max(0, remainder)]:
        shares[name] += 1
    return shares


class Allocator:
    """
    Token 分配器。

    用法::

        allocator = Allocator()
        strategy = allocator.select_strategy(budget)
        plan = allocator.allocate(clusters, budget, strategy)
        plan.tokens_for("core")

    参数:
        config: 分配配置（策略阈值、策略权重、排除列表、最小配额）
    """

    def __init__(self, config: AllocationConfig | None = None) -> None:
        self.config = config or AllocationConfig()

    def select_strategy(
        self,
        budget: int,
        forced: CompressionStrategy | str | None = None,
        tier_scale: float = 1.0,
    ) -> CompressionStrategy:
        """按预算选择策略，forced 非空时直接采用；tier_scale 来自自适应阈值。"""
        return select_strategy(budget, self.config, forced, tier_scale)

    def allocate(
        self,
        clusters: Mapping[str, Cluster],
        budget: int,
        strategy: CompressionStrategy,
    ) -> AllocationPlan:
        """
        执行分配。

        参数:
            clusters: 簇名 → Cluster
            budget: 总预算
            strategy: 压缩策略

        返回:
            AllocationPlan，allocations 覆盖全部七个簇（未分配为 0）
        """
        budget = max(0, int(budget))
        priorities = effective_priorities(clusters, strategy, self.config)
        active = {name: weight for name, weight in priorities.items() if weight > 0}
        zeroed: list[str] = []
        min_tokens = self.config.min_cluster_tokens

        shares = largest_remainder(budget, active)
        for _ in range(len(CLUSTER_ORDER)):
            if not active or all(shares[name] >= min_tokens for name in active):
                break
            # 权重相同时先清零固定顺序靠后的簇
            victim = min(active, key=lambda name: (active[name], -_ORDER_INDEX[name]))
            del active[victim]
            zeroed.append(victim)
            shares = largest_remainder(budget, active)

        if zeroed:
            logger.debug("预算 %d 不足，清零簇：%s", budget, zeroed)

        allocations = tuple(
            TokenAllocation(
                cluster_name=name.value,
                token_count=shares.get(name.value, 0),
                weight=priorities[name.value],
            )
            for name in CLUSTER_ORDER
        )
        return AllocationPlan(
            strategy=strategy,
            total_budget=budget,
            allocations=allocations,
            zeroed=tuple(zeroed),
        )
