"""
策略配置的 Schema 定义与校验。

压缩流水线的所有启发式数值（乘数、阈值、权重、窗口、学习率）
都通过 YAML 策略文件定义，本模块定义 Schema 并负责校验。

# [Design Decision] 使用 Pydantic 模型作为 Schema 定义，
# 字段上的 description 同时是配置文档。
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from profile_forge.config.defaults import (
    CLUSTER_BASE_PRIORITY,
    CLUSTER_DEFAULT_RELIABILITY,
    DEFAULT_MODEL,
    INTERACTION_MULTIPLIERS,
    STRATEGY_EXCLUSIONS,
    STRATEGY_WEIGHTS,
    WINDOWS,
)
from profile_forge.models.budget import ModelProfile
from profile_forge.models.cluster import ClusterName

_CLUSTER_NAMES = {c.value for c in ClusterName}
_STRATEGY_NAMES = {"minimal", "balanced", "comprehensive"}


class BudgetConfig(BaseModel):
    """预算估算配置。"""

    default_model: str = Field(default=DEFAULT_MODEL, description="默认模型")
    max_context_fraction: float = Field(
        default=0.1,
        description="预算上限占模型上下文窗口的比例",
        gt=0.0,
        le=1.0,
    )
    complexity_factor_cap: float = Field(default=2.0, description="复杂度乘数上限", gt=0.0)
    interaction_multipliers: dict[str, float] = Field(
        default_factory=lambda: dict(INTERACTION_MULTIPLIERS),
        description="交互类型 → 预算乘数",
    )
    default_interaction_multiplier: float = Field(
        default=1.0,
        description="未识别交互类型的乘数",
        gt=0.0,
    )
    long_history_turns: int = Field(default=10, description="超过该轮数视为长对话", ge=0)
    long_history_multiplier: float = Field(default=1.3, gt=0.0)
    short_history_turns: int = Field(default=3, description="少于该轮数视为短对话", ge=0)
    short_history_multiplier: float = Field(default=0.8, gt=0.0)

    @field_validator("interaction_multipliers")
    @classmethod
    def _validate_multipliers(cls, value: dict[str, float]) -> dict[str, float]:
        for name, multiplier in value.items():
            if multiplier <= 0:
                raise ValueError(f"交互类型 '{name}' 的乘数必须为正数，实际为 {multiplier}")
        return value

    @model_validator(mode="after")
    def _validate_history(self) -> BudgetConfig:
        if self.short_history_turns > self.long_history_turns:
            raise ValueError(
                f"short_history_turns ({self.short_history_turns}) 不能大于 "
                f"long_history_turns ({self.long_history_turns})。"
            )
        return self


class AllocationConfig(BaseModel):
    """分配器配置。"""

    minimal_below: int = Field(default=50, description="预算低于该值时选择 minimal 策略", ge=0)
    comprehensive_above: int = Field(
        default=150,
        description="预算高于该值时选择 comprehensive 策略",
        ge=0,
    )
    min_cluster_tokens: int = Field(
        default=6,
        description="单个簇的最小可用配额，低于该值的簇被清零",
        ge=0,
    )
    strategy_weights: dict[str, dict[str, float]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in STRATEGY_WEIGHTS.items()},
        description="策略 → 簇 → 基础权重",
    )
    excluded_clusters: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in STRATEGY_EXCLUSIONS.items()},
        description="策略 → 被排除的簇",
    )

    @model_validator(mode="after")
    def _validate_tables(self) -> AllocationConfig:
        if self.minimal_below >= self.comprehensive_above:
            raise ValueError(
                f"minimal_below ({self.minimal_below}) 必须小于 "
                f"comprehensive_above ({self.comprehensive_above})。"
            )
        for strategy, weights in self.strategy_weights.items():
            if strategy not in _STRATEGY_NAMES:
                raise ValueError(f"未知策略 '{strategy}'，可用：{sorted(_STRATEGY_NAMES)}")
            for cluster, weight in weights.items():
                if cluster not in _CLUSTER_NAMES:
                    raise ValueError(f"策略 '{strategy}' 中出现未知簇 '{cluster}'")
                if not 0.0 <= weight <= 1.0:
                    raise ValueError(f"策略 '{strategy}' 中簇 '{cluster}' 的权重 {weight} 不在 [0, 1]")
        for strategy, clusters in self.excluded_clusters.items():
            unknown = set(clusters) - _CLUSTER_NAMES
            if strategy not in _STRATEGY_NAMES or unknown:
                raise ValueError(f"excluded_clusters 配置无效：策略 '{strategy}'，未知簇 {sorted(unknown)}")
        return self


class ClusteringConfig(BaseModel):
    """聚类配置。"""

    richness_saturation: int = Field(
        default=10,
        description="丰富度饱和点：属性条目数达到该值时 richness = 1",
        gt=0,
    )
    base_priority: dict[str, float] = Field(
        default_factory=lambda: dict(CLUSTER_BASE_PRIORITY),
        description="簇类别 → 基础优先级",
    )
    default_reliability: dict[str, float] = Field(
        default_factory=lambda: dict(CLUSTER_DEFAULT_RELIABILITY),
        description="簇类别 → 数据缺失时的声明可靠度",
    )

    @model_validator(mode="after")
    def _validate_tables(self) -> ClusteringConfig:
        for table_name in ("base_priority", "default_reliability"):
            table: dict[str, float] = getattr(self, table_name)
            for cluster, value in table.items():
                if cluster not in _CLUSTER_NAMES:
                    raise ValueError(f"{table_name} 中出现未知簇 '{cluster}'")
                if not 0.0 <= value <= 1.0:
                    raise ValueError(f"{table_name}['{cluster}'] = {value} 不在 [0, 1]")
        return self


class CompressConfig(BaseModel):
    """簇压缩配置。"""

    ultra_max_tokens: int = Field(default=20, description="配额低于该值使用 ultra 档", ge=0)
    standard_max_tokens: int = Field(default=50, description="配额低于该值使用 standard 档", ge=0)
    label_overhead_tokens: int = Field(
        default=4,
        description="每个簇为段落标签和分隔符预留的 Token 数",
        ge=0,
    )
    tokenizer: str = Field(
        default="char",
        description="Token 计数器：char（确定性字符估算）/ auto（按模型选择 tiktoken）",
    )

    @field_validator("tokenizer")
    @classmethod
    def _validate_tokenizer(cls, value: str) -> str:
        if value not in ("char", "auto"):
            raise ValueError(f"tokenizer 只能是 'char' 或 'auto'，实际为 '{value}'")
        return value

    @model_validator(mode="after")
    def _validate_tiers(self) -> CompressConfig:
        if self.ultra_max_tokens > self.standard_max_tokens:
            raise ValueError("ultra_max_tokens 不能大于 standard_max_tokens。")
        return self


class QualityConfig(BaseModel):
    """质量优化配置。"""

    max_iterations: int = Field(default=3, description="重新压缩的最大次数", ge=0, le=20)
    ideal_min_chars: int = Field(default=100, description="理想提示长度下界（字符）", ge=0)
    ideal_max_chars: int = Field(default=800, description="理想提示长度上界（字符）", gt=0)
    ideal_min_clusters: int = Field(default=3, description="理想簇数下界（含）", ge=0)
    ideal_max_clusters: int = Field(default=7, description="理想簇数上界（含）", ge=0)
    in_range_length_score: float = Field(default=1.0, ge=0.0, le=1.0)
    out_of_range_length_score: float = Field(default=0.7, ge=0.0, le=1.0)
    in_range_structure_score: float = Field(default=1.0, ge=0.0, le=1.0)
    out_of_range_structure_score: float = Field(default=0.8, ge=0.0, le=1.0)
    boundary_step: int = Field(default=10, description="每次迭代档位边界的调整步长", gt=0)

    @model_validator(mode="after")
    def _validate_ranges(self) -> QualityConfig:
        if self.ideal_min_chars >= self.ideal_max_chars:
            raise ValueError("ideal_min_chars 必须小于 ideal_max_chars。")
        if self.ideal_min_clusters > self.ideal_max_clusters:
            raise ValueError("ideal_min_clusters 不能大于 ideal_max_clusters。")
        return self


class BenchmarkConfig(BaseModel):
    """性能基准，滚动指标低于基准时触发优化。"""

    quality_score: float = Field(default=0.85, ge=0.0, le=1.0)
    token_efficiency: float = Field(default=0.8, ge=0.0, le=1.0)
    processing_time_ms: float = Field(default=100.0, gt=0.0)
    user_satisfaction: float = Field(default=0.9, ge=0.0, le=1.0)


class AnalyticsConfig(BaseModel):
    """分析层配置。"""

    max_records: int = Field(default=10_000, description="压缩记录环形缓冲区大小", gt=0)
    default_window: str = Field(default="1h", description="默认滚动窗口")
    refresh_interval_seconds: float = Field(
        default=30.0,
        description="后台指标重算周期（秒）",
        gt=0.0,
    )
    anomaly_quality_below: float = Field(default=0.5, ge=0.0, le=1.0)
    anomaly_processing_above_ms: float = Field(default=500.0, gt=0.0)
    anomaly_efficiency_below: float = Field(default=0.3, ge=0.0, le=1.0)
    anomaly_trigger_count: int = Field(default=5, description="异常数超过该值触发优化", ge=0)
    trend_min_records: int = Field(default=10, description="计算趋势所需的最少记录数", ge=2)
    trend_tolerance: float = Field(default=0.01, description="判定为 stable 的变化幅度", ge=0.0)
    slow_processing_ms: float = Field(default=200.0, description="瓶颈分析中的慢处理阈值", gt=0.0)
    low_quality_below: float = Field(default=0.7, description="瓶颈分析中的低质量阈值", ge=0.0, le=1.0)
    benchmarks: BenchmarkConfig = Field(default_factory=BenchmarkConfig)

    @field_validator("default_window")
    @classmethod
    def _validate_window(cls, value: str) -> str:
        if value not in WINDOWS:
            raise ValueError(f"default_window 必须是 {sorted(WINDOWS)} 之一，实际为 '{value}'")
        return value


class TuningConfig(BaseModel):
    """自适应调优配置。"""

    learning_rate: float = Field(default=0.1, description="学习率", gt=0.0, le=1.0)
    initial_quality: float = Field(default=0.85, ge=0.0, le=1.0)
    initial_efficiency: float = Field(default=0.8, ge=0.0, le=1.0)
    initial_speed_ms: float = Field(default=100.0, gt=0.0)
    initial_cost: float = Field(default=0.01, gt=0.0)
    quality_bounds: tuple[float, float] = Field(default=(0.7, 0.95))
    efficiency_bounds: tuple[float, float] = Field(default=(0.6, 0.9))
    speed_bounds_ms: tuple[float, float] = Field(default=(20.0, 500.0))
    cost_bounds: tuple[float, float] = Field(default=(0.001, 1.0))
    budget_scale_bounds: tuple[float, float] = Field(default=(0.5, 1.5))
    tier_scale_bounds: tuple[float, float] = Field(
        default=(0.5, 1.5),
        description="策略分档阈值缩放系数的上下界",
    )
    success_step: float = Field(default=0.001, description="成功时阈值上调步长", ge=0.0)
    failure_step: float = Field(default=0.002, description="失败时阈值下调步长", ge=0.0)
    min_history: int = Field(default=10, description="执行优化所需的最少记录数", ge=1)
    budget_bucket: int = Field(default=50, description="按预算分桶统计的桶宽", gt=0)

    @model_validator(mode="after")
    def _validate_bounds(self) -> TuningConfig:
        for name in (
            "quality_bounds",
            "efficiency_bounds",
            "speed_bounds_ms",
            "cost_bounds",
            "budget_scale_bounds",
            "tier_scale_bounds",
        ):
            low, high = getattr(self, name)
            if low > high:
                raise ValueError(f"{name} 的下界 {low} 大于上界 {high}。")
        low, high = self.quality_bounds
        if not low <= self.initial_quality <= high:
            raise ValueError(f"initial_quality {self.initial_quality} 不在 quality_bounds {self.quality_bounds} 内。")
        low, high = self.efficiency_bounds
        if not low <= self.initial_efficiency <= high:
            raise ValueError(
                f"initial_efficiency {self.initial_efficiency} 不在 efficiency_bounds {self.efficiency_bounds} 内。"
            )
        return self


class PolicyConfig(BaseModel):
    """
    完整的策略配置 — 对应 YAML 策略文件的根结构。

    每个字段都有合理的默认值，空文件即可使用。

    YAML 文件示例::

        version: "1.0"
        budget:
          default_model: claude-3
          max_context_fraction: 0.1
        allocation:
          minimal_below: 50
          comprehensive_above: 150
        analytics:
          refresh_interval_seconds: 30
        tuning:
          learning_rate: 0.1
        models:
          my-model:
            max_context_tokens: 32000
            optimal_tokens: 120
    """

    version: str = Field(default="1.0", description="策略版本")
    name: str = Field(default="default", description="策略名称")
    description: str = Field(default="", description="策略描述")

    budget: BudgetConfig = Field(default_factory=BudgetConfig)
    allocation: AllocationConfig = Field(default_factory=AllocationConfig)
    clustering: ClusteringConfig = Field(default_factory=ClusteringConfig)
    compress: CompressConfig = Field(default_factory=CompressConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    tuning: TuningConfig = Field(default_factory=TuningConfig)
    models: dict[str, dict[str, float | int | str]] = Field(
        default_factory=dict,
        description="自定义模型画像：模型名 → {max_context_tokens, optimal_tokens, ...}",
    )

    @field_validator("models")
    @classmethod
    def _validate_models(
        cls,
        value: dict[str, dict[str, float | int | str]],
    ) -> dict[str, dict[str, float | int | str]]:
        for model_id, fields in value.items():
            ModelProfile(model_id=model_id.lower(), **{k: v for k, v in fields.items() if k != "model_id"})
        return value

    def model_profiles(self) -> dict[str, ModelProfile]:
        """把 models 段转换为 ModelProfile 字典（键统一为小写）。"""
        return {
            model_id.lower(): ModelProfile(
                model_id=model_id.lower(),
                **{k: v for k, v in fields.items() if k != "model_id"},
            )
            for model_id, fields in self.models.items()
        }
