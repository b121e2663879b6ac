"""
预算相关数据模型：模型画像、压缩策略、预算估算结果与分配方案。
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CompressionStrategy(str, Enum):
    """压缩策略：控制纳入哪些簇、以及各簇的权重。"""

    MINIMAL = "minimal"
    BALANCED = "balanced"
    COMPREHENSIVE = "comprehensive"


class InteractionType(str, Enum):
    """
    交互类型。

    预算估算器按交互类型查表得到预算乘数；
    未识别的类型按 STANDARD 处理（乘数 1.0）。
    """

    GREETING = "greeting"
    STANDARD = "standard"
    QUESTION = "question"
    TECHNICAL = "technical"
    ANALYSIS = "analysis"
    EMOTIONAL = "emotional"
    CREATIVE = "creative"


class ModelProfile(BaseModel):
    """
    目标模型的压缩画像。

    属性:
        model_id: 模型标识
        max_context_tokens: 最大上下文窗口
        optimal_tokens: 画像提示的基础"最佳"Token 额度
        semantic_understanding: 语义理解能力评分 [0, 1]
        compression_tolerance: 对高压缩文本的容忍度 [0, 1]
    """

    model_config = ConfigDict(frozen=True)

    model_id: str
    max_context_tokens: int = Field(gt=0)
    optimal_tokens: int = Field(gt=0)
    semantic_understanding: float = Field(default=0.9, ge=0.0, le=1.0)
    compression_tolerance: float = Field(default=0.8, ge=0.0, le=1.0)


class BudgetEstimate(BaseModel):
    """
    预算估算结果，携带每个乘数便于审计。

    属性:
        token_budget: 最终 Token 预算
        model: 使用的模型画像 ID
        base_tokens: 模型基础额度
        complexity_factor: 复杂度乘数
        interaction_multiplier: 交互类型乘数
        history_factor: 对话长度乘数
        budget_scale: 自适应调优给出的缩放系数
        clamped: 是否被上下文窗口比例上限截断
    """

    model_config = ConfigDict(frozen=True)

    token_budget: int = Field(ge=0)
    model: str
    base_tokens: int
    complexity_factor: float
    interaction_multiplier: float
    history_factor: float
    budget_scale: float = 1.0
    clamped: bool = False


class TokenAllocation(BaseModel):
    """单个簇的 Token 配额。"""

    model_config = ConfigDict(frozen=True)

    cluster_name: str
    token_count: int = Field(ge=0)
    weight: float = Field(ge=0.0)


class AllocationPlan(BaseModel):
    """
    一次分配的完整方案。

    不变式：sum(token_count) <= total_budget。

    属性:
        strategy: 采用的压缩策略
        total_budget: 总预算
        allocations: 按固定簇顺序排列的配额
        zeroed: 因低于最小可用配额而被清零的簇
    """

    model_config = ConfigDict(frozen=True)

    strategy: CompressionStrategy
    total_budget: int = Field(ge=0)
    allocations: tuple[TokenAllocation, ...] = ()
    zeroed: tuple[str, ...] = ()

    @property
    def total_allocated(self) -> int:
        return sum(a.token_count for a in self.allocations)

    def tokens_for(self, cluster_name: str) -> int:
        """返回指定簇的配额，未分配时为 0。"""
        for allocation in self.allocations:
            if allocation.cluster_name == cluster_name:
                return allocation.token_count
        return 0

    def as_dict(self) -> dict[str, int]:
        """簇名 → Token 数（仅含正配额）。"""
        return {a.cluster_name: a.token_count for a in self.allocations if a.token_count > 0}
