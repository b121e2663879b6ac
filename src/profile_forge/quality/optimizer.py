"""
Quality Optimizer — 启发式质量评分与重新压缩循环。

质量分 = mean(长度分, 结构分)：
- 长度分：ideal_min_chars < len(prompt) < ideal_max_chars 时为 1.0，否则 0.7
- 结构分：ideal_min_clusters <= 出现的簇数 <= ideal_max_clusters 时为 1.0，否则 0.8

未达到目标时平移档位边界重新压缩（提示太短 → 更丰富的档位，
太长 → 更精简的档位），最多 max_iterations 次，返回得分最高的候选
（平局取最早的）。最后把提示裁剪到预算以内。

# [Design Decision] 质量不达标只体现在元数据里（quality_score < quality_target），
# 从不抛异常：调用方永远拿到一个可用的提示。
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from profile_forge.compress.base import CompressedCluster, TierBoundaries
from profile_forge.compress.engine import ClusterCompressor
from profile_forge.compress.tiers import truncate_text
from profile_forge.config.schema import QualityConfig
from profile_forge.models.budget import AllocationPlan, CompressionStrategy
from profile_forge.models.cluster import CLUSTER_ORDER, Cluster
from profile_forge.models.record import OptimizationMetrics
from profile_forge.pipeline.assemble import PromptAssembler

logger = logging.getLogger(__name__)

_ORDER_INDEX = {name.value: index for index, name in enumerate(CLUSTER_ORDER)}


@dataclass(frozen=True)
class OptimizationOutcome:
    """
    优化循环的输出。

    属性:
        compressed: 簇名 → 压缩结果（已做预算裁剪）
        prompt: 最终提示文本
        score: 最终提示的质量分
        iterations: 重新压缩的次数
        boundaries: 最佳候选使用的档位边界
        tokens: 最终提示的 Token 数
        rendered: 出现在提示中的簇名
        budget_trimmed: 是否做过预算裁剪
    """

    compressed: dict[str, CompressedCluster]
    prompt: str
    score: float
    iterations: int
    boundaries: TierBoundaries
    tokens: int
    rendered: tuple[str, ...]
    budget_trimmed: bool = False


@dataclass(frozen=True)
class _Candidate:
    compressed: dict[str, CompressedCluster]
    prompt: str
    score: float
    boundaries: TierBoundaries


class QualityOptimizer:
    """
    质量优化器。

    用法::

        optimizer = QualityOptimizer(compressor=ClusterCompressor())
        outcome = optimizer.optimize(clusters, plan, budget=120,
                                     strategy=CompressionStrategy.BALANCED, target=0.85)
        outcome.score, outcome.iterations

    参数:
        config: 质量配置
        compressor: 簇压缩器（其计数器也用于预算裁剪）
        assembler: 提示组装器
    """

    def __init__(
        self,
        config: QualityConfig | None = None,
        compressor: ClusterCompressor | None = None,
        assembler: PromptAssembler | None = None,
    ) -> None:
        self.config = config or QualityConfig()
        self.compressor = compressor or ClusterCompressor()
        self.assembler = assembler or PromptAssembler()

    # --- 评分 ---

    def length_score(self, prompt: str) -> float:
        if self.config.ideal_min_chars < len(prompt) < self.config.ideal_max_chars:
            return self.config.in_range_length_score
        return self.config.out_of_range_length_score

    def structure_score(self, cluster_count: int) -> float:
        if self.config.ideal_min_clusters <= cluster_count <= self.config.ideal_max_clusters:
            return self.config.in_range_structure_score
        return self.config.out_of_range_structure_score

    def score(self, prompt: str, cluster_count: int) -> float:
        """启发式质量分。"""
        return (self.length_score(prompt) + self.structure_score(cluster_count)) / 2

    # --- 优化循环 ---

    def optimize(
        self,
        clusters: Mapping[str, Cluster],
        plan: AllocationPlan,
        budget: int,
        strategy: CompressionStrategy,
        target: float,
    ) -> OptimizationOutcome:
        """
        压缩、评分，必要时平移档位边界重新压缩。

        参数:
            clusters: 簇名 → Cluster
            plan: 分配方案
            budget: 总预算（最终提示不超过该值）
            strategy: 压缩策略
            target: 质量目标

        返回:
            OptimizationOutcome
        """
        boundaries = self.compressor.default_boundaries
        current = self._candidate(clusters, plan, strategy, boundaries)
        best = current
        iterations = 0

        while best.score < target and iterations < self.config.max_iterations:
            length = len(current.prompt)
            if length <= self.config.ideal_min_chars:
                delta = -self.config.boundary_step
            elif length >= self.config.ideal_max_chars:
                delta = self.config.boundary_step
            else:
                # 长度已在理想区间，档位调整无法改善结构分
                break

            boundaries = boundaries.shifted(delta)
            iterations += 1
            current = self._candidate(clusters, plan, strategy, boundaries)
            if current.score > best.score:
                best = current

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "质量优化：score=%.3f target=%.3f iterations=%d boundaries=%s",
                best.score,
                target,
                iterations,
                best.boundaries,
            )

        compressed, prompt, trimmed = self.enforce_budget(best.compressed, budget, strategy)
        rendered = tuple(self.assembler.rendered_clusters(compressed, strategy))
        return OptimizationOutcome(
            compressed=compressed,
            prompt=prompt,
            score=self.score(prompt, len(rendered)),
            iterations=iterations,
            boundaries=best.boundaries,
            tokens=self.compressor.counter.count(prompt),
            rendered=rendered,
            budget_trimmed=trimmed,
        )

    def enforce_budget(
        self,
        compressed: Mapping[str, CompressedCluster],
        budget: int,
        strategy: CompressionStrategy,
    ) -> tuple[dict[str, CompressedCluster], str, bool]:
        """
        裁剪优先级最低的簇文本，直到提示不超过预算。

        返回:
            (裁剪后的压缩结果, 提示文本, 是否发生了裁剪)
        """
        counter = self.compressor.counter
        result = dict(compressed)
        prompt = self.assembler.assemble(result, strategy)
        trimmed = False

        for _ in range(2 * len(CLUSTER_ORDER)):
            tokens = counter.count(prompt)
            if tokens <= budget:
                return result, prompt, trimmed
            rendered = self.assembler.rendered_clusters(result, strategy)
            if not rendered:
                break
            victim = min(rendered, key=lambda name: (result[name].weight, -_ORDER_INDEX.get(name, 0)))
            entry = result[victim]
            keep = entry.tokens - (tokens - budget)
            text = truncate_text(entry.text, keep, counter) if keep > 0 else ""
            result[victim] = dataclasses.replace(
                entry,
                text=text,
                tokens=counter.count(text),
                attributes_kept=entry.attributes_kept if text else 0,
                truncated=True,
            )
            prompt = self.assembler.assemble(result, strategy)
            trimmed = True

        if counter.count(prompt) > budget:
            prompt = truncate_text(prompt, budget, counter)
            trimmed = True
        return result, prompt, trimmed

    def _candidate(
        self,
        clusters: Mapping[str, Cluster],
        plan: AllocationPlan,
        strategy: CompressionStrategy,
        boundaries: TierBoundaries,
    ) -> _Candidate:
        compressed = self.compressor.compress_all(clusters, plan, boundaries)
        prompt = self.assembler.assemble(compressed, strategy)
        rendered = self.assembler.rendered_clusters(compressed, strategy)
        return _Candidate(
            compressed=compressed,
            prompt=prompt,
            score=self.score(prompt, len(rendered)),
            boundaries=boundaries,
        )


def measure_efficiency(
    prompt: str,
    actual_tokens: int,
    budget: int,
    compressed: Mapping[str, CompressedCluster],
    clusters: Mapping[str, Cluster],
    rendered: tuple[str, ...] | list[str],
) -> OptimizationMetrics:
    """
    计算效率三分量。

    - token_efficiency = min(1, actual / budget)
    - semantic_density = min(1, 长度 > 3 的词数 / Token 数)
    - information_retention = 提示中保留的属性数 / 所有有数据簇的属性总数
    """
    token_efficiency = min(1.0, actual_tokens / budget) if budget > 0 else 0.0

    meaningful = sum(1 for word in prompt.split() if len(word) > 3)
    semantic_density = min(1.0, meaningful / actual_tokens) if actual_tokens > 0 else 0.0

    available = sum(len(c.content) for c in clusters.values() if c.is_populated)
    kept = sum(compressed[name].attributes_kept for name in rendered if name in compressed)
    retention = min(1.0, kept / available) if available > 0 else 0.0

    return OptimizationMetrics(
        token_efficiency=token_efficiency,
        semantic_density=semantic_density,
        information_retention=retention,
    )
