"""
簇压缩器 — 按配额选择档位、渲染文本并适配到配额以内。

适配目标：allocation − label_overhead_tokens（为段落标签和分隔符预留）。
流程：
1. 按档位挑选属性并渲染
2. 超出目标时从末尾逐个丢弃属性（至少保留一个）
3. 仍超出时做字符级截断
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from profile_forge.compress.base import (
    CompressedCluster,
    CompressionTier,
    TierBoundaries,
    TierRenderer,
)
from profile_forge.compress.tiers import DEFAULT_RENDERERS, truncate_text
from profile_forge.config.schema import CompressConfig
from profile_forge.errors import CompressionError
from profile_forge.models.budget import AllocationPlan
from profile_forge.models.cluster import CLUSTER_ORDER, Cluster
from profile_forge.tokenizer import CharBasedCounter, TokenCounter

logger = logging.getLogger(__name__)


class ClusterCompressor:
    """
    簇压缩器。

    用法::

        compressor = ClusterCompressor()
        compressed = compressor.compress(cluster, allocation=36)
        compressed.tier   # CompressionTier.STANDARD
        compressed.text   # "primary_trait:curious, communication_style:warm"

    参数:
        config: 压缩配置（档位边界、标签预留）
        counter: Token 计数器（默认 CharBasedCounter）
        renderers: 自定义档位渲染器
    """

    def __init__(
        self,
        config: CompressConfig | None = None,
        counter: TokenCounter | None = None,
        renderers: Mapping[CompressionTier, TierRenderer] | None = None,
    ) -> None:
        self.config = config or CompressConfig()
        self.counter: TokenCounter = counter or CharBasedCounter()
        self._renderers: dict[CompressionTier, TierRenderer] = dict(DEFAULT_RENDERERS)
        if renderers:
            self._renderers.update(renderers)

    @property
    def default_boundaries(self) -> TierBoundaries:
        return TierBoundaries(
            ultra_max=self.config.ultra_max_tokens,
            standard_max=self.config.standard_max_tokens,
        )

    def compress(
        self,
        cluster: Cluster,
        allocation: int,
        boundaries: TierBoundaries | None = None,
        weight: float = 0.0,
    ) -> CompressedCluster:
        """
        压缩单个簇。

        参数:
            cluster: 待压缩的簇
            allocation: Token 配额（0 时输出为空）
            boundaries: 档位边界（None 使用配置值）
            weight: 有效权重，随结果一起返回

        返回:
            CompressedCluster

        异常:
            CompressionError: 渲染器返回了非字符串
        """
        boundaries = boundaries or self.default_boundaries
        tier = boundaries.tier_for(allocation)
        name = cluster.name.value
        available = len(cluster.content) if cluster.is_populated else 0

        if allocation <= 0 or not available:
            return CompressedCluster(
                name=name,
                text="",
                tier=tier,
                tokens=0,
                allocation=max(0, allocation),
                weight=weight,
                attributes_available=available,
            )

        renderer = self._renderers[tier]
        target = max(0, allocation - self.config.label_overhead_tokens)
        items = renderer.select(list(cluster.content.items()))
        text = self._render(renderer, items, name)

        while len(items) > 1 and self.counter.count(text) > target:
            items = items[:-1]
            text = self._render(renderer, items, name)

        truncated = False
        if self.counter.count(text) > target:
            text = truncate_text(text, target, self.counter)
            truncated = True
        if not text:
            items = []

        return CompressedCluster(
            name=name,
            text=text,
            tier=tier,
            tokens=self.counter.count(text),
            allocation=allocation,
            weight=weight,
            attributes_kept=len(items),
            attributes_available=available,
            truncated=truncated,
        )

    def compress_all(
        self,
        clusters: Mapping[str, Cluster],
        plan: AllocationPlan,
        boundaries: TierBoundaries | None = None,
    ) -> dict[str, CompressedCluster]:
        """
        按分配方案压缩所有簇。

        返回:
            簇名 → CompressedCluster，按固定簇顺序，只包含配额为正的簇
        """
        weights = {a.cluster_name: a.weight for a in plan.allocations}
        compressed: dict[str, CompressedCluster] = {}
        for name in CLUSTER_ORDER:
            allocation = plan.tokens_for(name.value)
            cluster = clusters.get(name.value)
            if allocation <= 0 or cluster is None:
                continue
            compressed[name.value] = self.compress(
                cluster,
                allocation,
                boundaries,
                weight=weights.get(name.value, 0.0),
            )
        return compressed

    def _render(self, renderer: TierRenderer, items: list[tuple[str, object]], name: str) -> str:
        text = renderer.render(items)
        if not isinstance(text, str):
            raise CompressionError(
                what=f"簇 '{name}' 的渲染结果不是字符串。",
                why=f"{type(renderer).__name__}.render() 返回了 {type(text).__name__}。",
                how="检查自定义 TierRenderer 的 render() 实现。",
            )
        return text
