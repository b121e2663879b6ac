"""
Pipeline 基础结构 — 流水线阶段协议与编排器。

压缩流水线：Cluster → Budget → Allocate → Optimize（压缩 + 质量循环 + 组装）

每个阶段：
- 读取 PipelineContext 中上游阶段的产物
- 写入自己的产物
- 可以被独立测试、替换或跳过

# [Design Decision] 使用 Protocol 而非 ABC 定义阶段接口，
# 任何实现了 name 与 process() 的对象都可以作为阶段使用。
# 阶段是同步的：压缩是纯 CPU 计算，compress() 需要能在任意线程直接调用。
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from profile_forge.models.context import IntelligenceContext

if TYPE_CHECKING:
    from profile_forge.config.schema import PolicyConfig
    from profile_forge.models.budget import AllocationPlan, BudgetEstimate, CompressionStrategy
    from profile_forge.models.cluster import Cluster
    from profile_forge.quality.optimizer import OptimizationOutcome
    from profile_forge.tokenizer import TokenCounter

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """
    流水线运行时上下文 — 在各阶段之间传递的共享状态。

    # [Design Decision] 使用 dataclass 而非 dict 传递上下文，
    # 减少各阶段之间因为键名拼错导致的隐蔽 bug。
    """

    intelligence: IntelligenceContext = field(default_factory=IntelligenceContext)
    """画像属性树"""

    interaction_type: str = "standard"
    complexity: float = 5.0
    model: str | None = None
    history_length: int = 0

    token_budget: int | None = None
    """调用方显式指定的预算（None 表示由估算器计算）"""

    quality_target: float = 0.85
    forced_strategy: str | None = None
    budget_scale: float = 1.0
    tier_scale: float = 1.0

    # --- 各阶段产物 ---

    clusters: dict[str, Cluster] = field(default_factory=dict)
    estimate: BudgetEstimate | None = None
    strategy: CompressionStrategy | None = None
    plan: AllocationPlan | None = None
    outcome: OptimizationOutcome | None = None

    stage_timings_ms: dict[str, float] = field(default_factory=dict)
    """阶段名 → 耗时"""

    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    """自由扩展字段"""

    debug: bool = False

    @property
    def budget(self) -> int:
        return self.estimate.token_budget if self.estimate else 0

    @property
    def prompt(self) -> str:
        return self.outcome.prompt if self.outcome else ""


@runtime_checkable
class PipelineStage(Protocol):
    """
    流水线阶段协议。

    最小实现示例::

        class AuditStage:
            @property
            def name(self) -> str:
                return "audit"

            def process(self, context: PipelineContext) -> PipelineContext:
                context.metadata["audited"] = True
                return context
    """

    @property
    def name(self) -> str:
        """阶段名称，用于日志和错误定位。"""
        ...

    def process(self, context: PipelineContext) -> PipelineContext:
        """
        执行阶段逻辑。

        参数:
            context: 流水线上下文

        返回:
            更新后的上下文
        """
        ...


class Pipeline:
    """
    流水线编排器 — 按顺序执行各阶段。

    基本用法::

        pipeline = create_default_pipeline(policy)
        context = pipeline.execute(PipelineContext(intelligence=ctx))
        context.prompt

    跳过特定阶段::

        pipeline = Pipeline(stages=[...], skip_stages={"optimize"})
    """

    def __init__(
        self,
        stages: list[PipelineStage] | None = None,
        skip_stages: set[str] | None = None,
    ) -> None:
        """
        参数:
            stages: 阶段列表，按执行顺序排列
            skip_stages: 需要跳过的阶段名称集合
        """
        self._stages = stages or []
        self._skip_stages = skip_stages or set()

    @property
    def stage_names(self) -> list[str]:
        return [s.name for s in self._stages]

    def add_stage(self, stage: PipelineStage, position: int | None = None) -> None:
        """添加阶段（position 为 None 时追加到末尾）。"""
        if position is None:
            self._stages.append(stage)
        else:
            self._stages.insert(position, stage)

    def replace_stage(self, name: str, new_stage: PipelineStage) -> None:
        """按名称替换阶段。"""
        self._stages = [new_stage if s.name == name else s for s in self._stages]

    def execute(self, context: PipelineContext) -> PipelineContext:
        """
        执行完整的流水线。

        参数:
            context: 流水线上下文

        返回:
            填充了各阶段产物的上下文

        异常:
            PipelineStageError: 某个阶段执行失败
        """
        from profile_forge.errors import PipelineStageError

        for stage in self._stages:
            if stage.name in self._skip_stages:
                if context.debug:
                    logger.debug("跳过阶段: %s", stage.name)
                continue

            start_time = time.perf_counter()
            try:
                context = stage.process(context)
            except PipelineStageError:
                raise
            except Exception as e:
                elapsed_ms = (time.perf_counter() - start_time) * 1000
                logger.error("阶段 %s 执行失败（%.1fms）：%s", stage.name, elapsed_ms, e)
                raise PipelineStageError(
                    what=f"流水线阶段 '{stage.name}' 执行失败。",
                    why=str(e) or type(e).__name__,
                    how=f"检查 '{stage.name}' 阶段的配置和输入数据。",
                    stage_name=stage.name,
                ) from e

            elapsed_ms = (time.perf_counter() - start_time) * 1000
            context.stage_timings_ms[stage.name] = elapsed_ms
            if context.debug:
                logger.debug("阶段 %s 完成（%.2fms）", stage.name, elapsed_ms)

        return context


def create_default_pipeline(
    policy: PolicyConfig | None = None,
    counter: TokenCounter | None = None,
) -> Pipeline:
    """
    创建默认流水线（四个标准阶段）。

    # [DX Decision] 提供一键创建默认流水线的工厂函数，
    # 让 Facade 层的代码保持简洁。

    参数:
        policy: 策略配置（None 使用默认值）
        counter: Token 计数器（None 时按 compress.tokenizer 选择）

    返回:
        Cluster → Budget → Allocate → Optimize 的 Pipeline
    """
    # 延迟导入避免循环依赖
    from profile_forge.budget import Allocator, BudgetEstimator
    from profile_forge.clustering import ClusteringEngine
    from profile_forge.compress import ClusterCompressor
    from profile_forge.config.defaults import DEFAULT_MODEL
    from profile_forge.config.schema import PolicyConfig
    from profile_forge.pipeline.assemble import PromptAssembler
    from profile_forge.pipeline.stages import (
        AllocateStage,
        BudgetStage,
        ClusterStage,
        OptimizeStage,
    )
    from profile_forge.quality import QualityOptimizer
    from profile_forge.tokenizer import resolve_counter

    policy = policy or PolicyConfig()
    counter = counter or resolve_counter(policy.compress.tokenizer, policy.budget.default_model or DEFAULT_MODEL)

    compressor = ClusterCompressor(policy.compress, counter)
    optimizer = QualityOptimizer(
        policy.quality,
        compressor=compressor,
        assembler=PromptAssembler(policy.allocation),
    )

    return Pipeline(stages=[
        ClusterStage(ClusteringEngine(policy.clustering)),
        BudgetStage(BudgetEstimator(policy.budget, policy.model_profiles())),
        AllocateStage(Allocator(policy.allocation)),
        OptimizeStage(optimizer),
    ])
