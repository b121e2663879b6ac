"""
压缩策略 — 策略选择与簇权重计算。

三种策略对应三档预算：

1. **minimal**（预算 < 50）：只保留核心、当前状态等高价值簇，
   排除 predictive 与 behavioral
2. **balanced**（50 ~ 150）：排除 predictive
3. **comprehensive**（预算 > 150）：所有簇参与分配

两个分档阈值都乘以自适应调优给出的 tier_scale。

# [Design Decision] 策略选择与权重计算是纯函数，Allocator 只负责切分预算，
# 便于单独测试每一步。
"""

from __future__ import annotations

from collections.abc import Mapping

from profile_forge.config.schema import AllocationConfig
from profile_forge.models.budget import CompressionStrategy
from profile_forge.models.cluster import CLUSTER_ORDER, Cluster


def select_strategy(
    budget: int,
    config: AllocationConfig | None = None,
    forced: CompressionStrategy | str | None = None,
    tier_scale: float = 1.0,
) -> CompressionStrategy:
    """
    根据预算选择压缩策略。

    参数:
        budget: Token 预算
        config: 分配配置（阈值）
        forced: 调用方强制指定的策略，优先于阈值判断
        tier_scale: 自适应调优给出的分档缩放，两个阈值同时乘以该系数

    返回:
        CompressionStrategy
    """
    if forced is not None:
        return CompressionStrategy(forced)
    config = config or AllocationConfig()
    if budget < config.minimal_below * tier_scale:
        return CompressionStrategy.MINIMAL
    if budget > config.comprehensive_above * tier_scale:
        return CompressionStrategy.COMPREHENSIVE
    return CompressionStrategy.BALANCED


def is_excluded(
    cluster_name: str,
    strategy: CompressionStrategy,
    config: AllocationConfig | None = None,
) -> bool:
    """簇是否被策略排除。"""
    config = config or AllocationConfig()
    return cluster_name in config.excluded_clusters.get(strategy.value, [])


def effective_priorities(
    clusters: Mapping[str, Cluster],
    strategy: CompressionStrategy,
    config: AllocationConfig | None = None,
) -> dict[str, float]:
    """
    计算每个簇的有效权重。

        effective = strategy_weight × reliability × richness

    被策略排除的簇权重为 0。结果按固定簇顺序排列。
    """
    config = config or AllocationConfig()
    weights = config.strategy_weights.get(strategy.value, {})
    excluded = set(config.excluded_clusters.get(strategy.value, []))

    priorities: dict[str, float] = {}
    for name in CLUSTER_ORDER:
        cluster = clusters.get(name.value)
        if cluster is None or name.value in excluded:
            priorities[name.value] = 0.0
            continue
        priorities[name.value] = weights.get(name.value, 0.0) * cluster.reliability * cluster.richness
    return priorities
