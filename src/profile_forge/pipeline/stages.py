"""
流水线标准阶段。

- ClusterStage：画像 → 七个加权簇
- BudgetStage：估算 Token 预算（或采用调用方指定的预算）
- AllocateStage：选择策略并切分预算
- OptimizeStage：压缩、质量循环、组装与预算裁剪
"""

from __future__ import annotations

import logging

from profile_forge.budget import Allocator, BudgetEstimator
from profile_forge.clustering import ClusteringEngine
from profile_forge.pipeline.base import PipelineContext
from profile_forge.quality import QualityOptimizer

logger = logging.getLogger(__name__)


class ClusterStage:
    """聚类阶段。"""

    def __init__(self, engine: ClusteringEngine | None = None) -> None:
        self.engine = engine or ClusteringEngine()

    @property
    def name(self) -> str:
        return "cluster"

    def process(self, context: PipelineContext) -> PipelineContext:
        context.clusters = self.engine.cluster(
            context.intelligence,
            context.interaction_type,
            context.complexity,
        )
        return context


class BudgetStage:
    """预算估算阶段。"""

    def __init__(self, estimator: BudgetEstimator | None = None) -> None:
        self.estimator = estimator or BudgetEstimator()

    @property
    def name(self) -> str:
        return "budget"

    def process(self, context: PipelineContext) -> PipelineContext:
        if context.token_budget is not None:
            context.estimate = self.estimator.fixed(context.model, context.token_budget)
        else:
            context.estimate = self.estimator.estimate(
                context.model,
                context.interaction_type,
                context.complexity,
                context.history_length,
                context.budget_scale,
            )
        if context.estimate.clamped:
            context.warnings.append(
                f"预算被截断到模型上下文窗口的上限比例：{context.estimate.token_budget} tokens。"
            )
        return context


class AllocateStage:
    """策略选择与分配阶段。"""

    def __init__(self, allocator: Allocator | None = None) -> None:
        self.allocator = allocator or Allocator()

    @property
    def name(self) -> str:
        return "allocate"

    def process(self, context: PipelineContext) -> PipelineContext:
        budget = context.budget
        context.strategy = self.allocator.select_strategy(budget, context.forced_strategy, context.tier_scale)
        context.plan = self.allocator.allocate(context.clusters, budget, context.strategy)
        if context.plan.zeroed:
            context.warnings.append(f"预算不足，已清零簇：{', '.join(context.plan.zeroed)}。")
        return context


class OptimizeStage:
    """压缩与质量优化阶段。"""

    def __init__(self, optimizer: QualityOptimizer | None = None) -> None:
        self.optimizer = optimizer or QualityOptimizer()

    @property
    def name(self) -> str:
        return "optimize"

    def process(self, context: PipelineContext) -> PipelineContext:
        if context.plan is None or context.strategy is None:
            raise ValueError("optimize 阶段需要先执行 allocate 阶段。")
        context.outcome = self.optimizer.optimize(
            context.clusters,
            context.plan,
            context.budget,
            context.strategy,
            context.quality_target,
        )
        if context.outcome.budget_trimmed:
            logger.debug("提示超出预算 %d，已裁剪低优先级簇。", context.budget)
        return context
