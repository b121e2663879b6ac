"""
压缩结果与压缩记录。

- CompressionResult：compress() 的返回值（提示文本 + 元数据）
- CompressionRecord：写入分析环形缓冲区的不可变日志条目

两者都是冻结模型：结果一旦返回就不再修改。每次压缩都会写入一条记录，
下游反馈到达时用 with_outcome() 生成带观测值的新版本，按 record_id 替换旧版本。
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OptimizationMetrics(BaseModel):
    """
    压缩效率的三个分量。

    属性:
        token_efficiency: 预算利用率 min(1, actual / budget)
        semantic_density: 有效词（长度 > 3）与 Token 数之比，截断到 [0, 1]
        information_retention: 保留属性数 / 可用属性数
    """

    model_config = ConfigDict(frozen=True)

    token_efficiency: float = Field(default=0.5, ge=0.0, le=1.0)
    semantic_density: float = Field(default=0.5, ge=0.0, le=1.0)
    information_retention: float = Field(default=0.5, ge=0.0, le=1.0)

    @property
    def efficiency(self) -> float:
        """三个分量的平均值。"""
        return (self.token_efficiency + self.semantic_density + self.information_retention) / 3


class CompressionMetadata(BaseModel):
    """
    一次压缩的元数据。

    除 processing_time_ms 外，相同输入与相同自适应阈值下所有字段完全一致。
    """

    model_config = ConfigDict(frozen=True)

    strategy: str
    token_budget: int = Field(ge=0)
    actual_tokens: int = Field(ge=0)
    compression_ratio: float = 0.0
    quality_score: float = 0.0
    quality_target: float = 0.85
    processing_time_ms: float = 0.0
    clusters_used: tuple[str, ...] = ()
    allocations: dict[str, int] = Field(default_factory=dict)
    model: str = ""
    interaction_type: str = "standard"
    complexity: float = 5.0
    iterations: int = 0
    optimization: OptimizationMetrics = Field(default_factory=OptimizationMetrics)
    efficiency: float = 0.5
    experiment: str | None = None
    error: bool = False
    fallback: bool = False
    error_type: str | None = None

    @property
    def below_target(self) -> bool:
        return self.quality_score < self.quality_target

    def deterministic_view(self) -> dict[str, Any]:
        """排除耗时字段后的字典，用于确定性比对。"""
        return self.model_dump(exclude={"processing_time_ms"})


class CompressionResult(BaseModel):
    """
    compress() 的返回值。

    属性:
        prompt_text: 组装好的提示片段（永远非空）
        metadata: 压缩元数据
        record_id: 记录引用，传给 record_outcome() 写入分析日志
    """

    model_config = ConfigDict(frozen=True)

    prompt_text: str
    metadata: CompressionMetadata
    record_id: str


class CompressionRecord(BaseModel):
    """
    分析日志条目（只追加、不可变）。

    属性:
        record_id: 对应 CompressionResult.record_id
        timestamp: 写入时间（epoch 秒）
        user_feedback: 用户满意度 [0, 1]（可选）
        response_quality: 下游观测到的回复质量 [0, 1]（可选）
    """

    model_config = ConfigDict(frozen=True)

    record_id: str
    timestamp: float
    model: str = ""
    interaction_type: str = "standard"
    strategy: str = "balanced"
    token_budget: int = Field(default=0, ge=0)
    actual_tokens: int = Field(default=0, ge=0)
    compression_ratio: float = 0.0
    quality_score: float = Field(default=0.0, ge=0.0, le=1.0)
    efficiency: float = Field(default=0.5, ge=0.0, le=1.0)
    processing_time_ms: float = Field(default=0.0, ge=0.0)
    clusters_used: tuple[str, ...] = ()
    user_feedback: float | None = Field(default=None, ge=0.0, le=1.0)
    response_quality: float | None = Field(default=None, ge=0.0, le=1.0)
    experiment: str | None = None
    error: bool = False
    fallback: bool = False

    @property
    def effective_quality(self) -> float:
        """有下游观测质量时优先使用它，否则使用启发式质量分。"""
        if self.response_quality is not None:
            return self.response_quality
        return self.quality_score

    @property
    def has_outcome(self) -> bool:
        return self.user_feedback is not None or self.response_quality is not None

    def with_outcome(
        self,
        user_feedback: float | None = None,
        response_quality: float | None = None,
    ) -> CompressionRecord:
        """
        返回附带下游观测结果的新记录（其余字段不变）。

        异常:
            pydantic.ValidationError: 反馈值不在 [0, 1]
        """
        return CompressionRecord.model_validate(
            {
                **self.model_dump(),
                "user_feedback": user_feedback,
                "response_quality": response_quality,
            }
        )

    @classmethod
    def from_result(
        cls,
        result: CompressionResult,
        timestamp: float,
        user_feedback: float | None = None,
        response_quality: float | None = None,
    ) -> CompressionRecord:
        """从压缩结果构建日志条目。"""
        meta = result.metadata
        return cls(
            record_id=result.record_id,
            timestamp=timestamp,
            model=meta.model,
            interaction_type=meta.interaction_type,
            strategy=meta.strategy,
            token_budget=meta.token_budget,
            actual_tokens=meta.actual_tokens,
            compression_ratio=meta.compression_ratio,
            quality_score=min(1.0, max(0.0, meta.quality_score)),
            efficiency=min(1.0, max(0.0, meta.efficiency)),
            processing_time_ms=max(0.0, meta.processing_time_ms),
            clusters_used=meta.clusters_used,
            user_feedback=user_feedback,
            response_quality=response_quality,
            experiment=meta.experiment,
            error=meta.error,
            fallback=meta.fallback,
        )
