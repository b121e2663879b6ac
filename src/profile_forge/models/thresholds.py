"""
自适应阈值与规则统计的只读快照。

真正的可变状态由 AdaptiveTuner 加锁持有，这里的模型都是冻结的，
读取方拿到的永远是某一时刻的一致视图。
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AdaptiveThresholds(BaseModel):
    """
    自适应阈值快照。

    属性:
        quality: 质量阈值，也是 Quality Optimizer 的默认目标
        efficiency: 效率阈值
        speed_ms: 处理耗时目标（由成功记录的耗时派生）
        cost: 成本目标（由成功记录的预算利用率派生）
        budget_scale: Budget Estimator 的缩放系数
        tier_scale: Allocator 策略分档阈值（minimal_below / comprehensive_above）的缩放系数，
            小于 1 时更多预算落入更丰富的策略
        update_count: 累计更新次数
    """

    model_config = ConfigDict(frozen=True)

    quality: float = Field(default=0.85, ge=0.0, le=1.0)
    efficiency: float = Field(default=0.8, ge=0.0, le=1.0)
    speed_ms: float = Field(default=100.0, gt=0.0)
    cost: float = Field(default=0.01, gt=0.0)
    budget_scale: float = Field(default=1.0, gt=0.0)
    tier_scale: float = Field(default=1.0, gt=0.0)
    update_count: int = Field(default=0, ge=0)


class RuleStats(BaseModel):
    """
    按 "模型_策略" 聚合的规则统计。

    属性:
        successes: 成功次数
        failures: 失败次数
        avg_quality: 平均质量
        avg_speed_ms: 平均耗时
        optimal_token_budget: 学习到的最佳预算
        confidence: min(总次数 / 100, 1)
    """

    model_config = ConfigDict(frozen=True)

    successes: int = 0
    failures: int = 0
    avg_quality: float = 0.0
    avg_speed_ms: float = 0.0
    optimal_token_budget: float = 0.0
    confidence: float = 0.0

    @property
    def total(self) -> int:
        return self.successes + self.failures

    @property
    def success_rate(self) -> float:
        return self.successes / self.total if self.total else 0.0
