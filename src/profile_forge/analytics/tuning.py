"""
自适应调优器 — 从压缩记录中学习阈值、预算缩放与策略分档。

三条更新路径：

1. learn(record)：每条新记录都会微调质量/效率阈值，更新 "模型_策略" 规则统计，
   并按 "模型_策略_预算桶" 条件键保存最近样本
2. revise(record)：下游反馈到达后，用带观测值的新版本替换同一 record_id 的样本，
   并以新的有效质量再走一步阈值调整
3. optimize()：优化触发时执行，把 speed / cost / budget_scale 按学习率
   拉向成功记录的观测值；按条件键的成功率比较 minimal 与更丰富的策略，
   调整 Allocator 使用的 tier_scale

报错结果与兜底结果不参与学习：它们反映的是输入或故障，不是压缩参数的好坏。
所有可变状态由一把 RLock 保护，读取方拿到的是冻结快照。
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any

from profile_forge.config.schema import TuningConfig
from profile_forge.models.budget import CompressionStrategy
from profile_forge.models.record import CompressionRecord
from profile_forge.models.thresholds import AdaptiveThresholds, RuleStats

logger = logging.getLogger(__name__)

# 每个条件键参与优化的最近样本数
RECENT_PER_CONDITION = 10

_RICHER_STRATEGIES = frozenset({CompressionStrategy.BALANCED.value, CompressionStrategy.COMPREHENSIVE.value})


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def _approach(current: float, target: float, rate: float) -> float:
    """按学习率向目标值移动一步。"""
    return current + (target - current) * rate


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


@dataclass
class _RuleState:
    successes: int = 0
    failures: int = 0
    avg_quality: float = 0.0
    avg_speed_ms: float = 0.0
    optimal_token_budget: float = 0.0

    def freeze(self) -> RuleStats:
        total = self.successes + self.failures
        return RuleStats(
            successes=self.successes,
            failures=self.failures,
            avg_quality=self.avg_quality,
            avg_speed_ms=self.avg_speed_ms,
            optimal_token_budget=self.optimal_token_budget,
            confidence=min(total / 100, 1.0),
        )


class AdaptiveTuner:
    """
    自适应阈值与规则统计的唯一持有者。

    用法::

        tuner = AdaptiveTuner(TuningConfig())
        tuner.learn(record)
        tuner.thresholds().quality      # 下一次压缩的质量目标
        tuner.optimize()                 # 优化触发时调用
        tuner.thresholds().tier_scale    # 下一次分配的策略分档缩放

    参数:
        config: 调优配置（学习率、步长、各阈值上下界）
    """

    def __init__(self, config: TuningConfig | None = None) -> None:
        self.config = config or TuningConfig()
        self._lock = threading.RLock()
        self._reset_locked()

    def _reset_locked(self) -> None:
        cfg = self.config
        self._quality = cfg.initial_quality
        self._efficiency = cfg.initial_efficiency
        self._speed_ms = _clamp(cfg.initial_speed_ms, cfg.speed_bounds_ms)
        self._cost = _clamp(cfg.initial_cost, cfg.cost_bounds)
        self._budget_scale = _clamp(1.0, cfg.budget_scale_bounds)
        self._tier_scale = _clamp(1.0, cfg.tier_scale_bounds)
        self._update_count = 0
        self._rules: dict[str, _RuleState] = {}
        self._history: dict[str, deque[tuple[CompressionRecord, bool]]] = defaultdict(
            lambda: deque(maxlen=RECENT_PER_CONDITION)
        )
        self._learned = 0

    # --- 读取 ---

    def thresholds(self) -> AdaptiveThresholds:
        """当前阈值的冻结快照。"""
        with self._lock:
            return AdaptiveThresholds(
                quality=self._quality,
                efficiency=self._efficiency,
                speed_ms=self._speed_ms,
                cost=self._cost,
                budget_scale=self._budget_scale,
                tier_scale=self._tier_scale,
                update_count=self._update_count,
            )

    def rule_stats(self) -> dict[str, RuleStats]:
        with self._lock:
            return {key: state.freeze() for key, state in sorted(self._rules.items())}

    def condition_stats(self) -> dict[str, dict[str, Any]]:
        """条件键 → 策略、最近样本数与成功率。"""
        with self._lock:
            return {
                key: {
                    "strategy": entries[-1][0].strategy,
                    "samples": len(entries),
                    "success_rate": sum(1 for _, success in entries if success) / len(entries),
                }
                for key, entries in sorted(self._history.items())
                if entries
            }

    @property
    def history_size(self) -> int:
        """已学习的记录总数。"""
        with self._lock:
            return self._learned

    # --- 学习 ---

    def condition_key(self, record: CompressionRecord) -> str:
        """模型_策略_预算桶。"""
        bucket = self.config.budget_bucket
        return f"{record.model}_{record.strategy}_{record.token_budget // bucket * bucket}"

    @staticmethod
    def is_learnable(record: CompressionRecord) -> bool:
        return not (record.error or record.fallback)

    def learn(self, record: CompressionRecord) -> bool:
        """
        从一条新记录学习。

        成功 = 有效质量 > 当前质量阈值。成功时阈值小幅上调，
        失败时下调（下调步长更大），随后截断到配置的上下界。

        返回:
            本条记录是否判定为成功；报错或兜底记录不学习，返回 False
        """
        if not self.is_learnable(record):
            logger.debug("记录 %s 是报错或兜底结果，跳过学习。", record.record_id)
            return False

        quality = record.effective_quality
        with self._lock:
            success = self._step_locked(quality)
            self._count_locked(record, quality, success)
            self._history[self.condition_key(record)].append((record, success))
            self._learned += 1

            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "学习记录 %s：quality=%.3f success=%s → 阈值 %.3f",
                    record.record_id,
                    quality,
                    success,
                    self._quality,
                )
        return success

    def revise(self, record: CompressionRecord) -> bool:
        """
        用带下游观测的新版本替换已学习的样本。

        新版本以有效质量（通常是 response_quality）重新判定成功与否：
        阈值再走一步，规则统计撤销旧判定、计入新判定。
        样本已从条件历史中淘汰时作为最新样本追加。

        返回:
            新版本是否判定为成功
        """
        if not self.is_learnable(record):
            return False

        quality = record.effective_quality
        with self._lock:
            success = self._step_locked(quality)
            entries = self._history[self.condition_key(record)]
            previous: bool | None = None
            for index, (existing, verdict) in enumerate(entries):
                if existing.record_id == record.record_id:
                    previous = verdict
                    entries[index] = (record, success)
                    break
            if previous is None:
                entries.append((record, success))
            else:
                rule = self._rules.setdefault(self._rule_key(record), _RuleState())
                if previous:
                    rule.successes = max(0, rule.successes - 1)
                else:
                    rule.failures = max(0, rule.failures - 1)
            self._count_locked(record, quality, success)

            logger.debug(
                "修订记录 %s：quality=%.3f success=%s（原判定 %s）",
                record.record_id,
                quality,
                success,
                previous,
            )
        return success

    def _rule_key(self, record: CompressionRecord) -> str:
        return f"{record.model}_{record.strategy}"

    def _step_locked(self, quality: float) -> bool:
        cfg = self.config
        success = quality > self._quality
        step = cfg.success_step if success else -cfg.failure_step
        self._quality = _clamp(self._quality + step, cfg.quality_bounds)
        self._efficiency = _clamp(self._efficiency + step, cfg.efficiency_bounds)
        return success

    def _count_locked(self, record: CompressionRecord, quality: float, success: bool) -> None:
        rule = self._rules.setdefault(self._rule_key(record), _RuleState())
        if not success:
            rule.failures += 1
            return
        rule.successes += 1
        n = rule.successes
        rule.avg_quality += (quality - rule.avg_quality) / n
        rule.avg_speed_ms += (record.processing_time_ms - rule.avg_speed_ms) / n
        if rule.optimal_token_budget <= 0:
            rule.optimal_token_budget = float(record.token_budget)
        else:
            rule.optimal_token_budget = _approach(
                rule.optimal_token_budget, record.token_budget, self.config.learning_rate
            )

    # --- 优化 ---

    def optimize(self) -> bool:
        """
        执行一次优化：把 speed、cost、budget_scale、tier_scale 按学习率拉向成功记录的观测值。

        - speed 目标 = 成功记录的平均耗时
        - cost 目标 = 成功记录的平均预算利用率（actual / budget）
        - budget_scale 目标 = 当前缩放 × 成功记录平均预算 / 全部记录平均预算
        - tier_scale 目标 = 当前缩放 × minimal 条件的平均成功率 / 更丰富策略条件的平均成功率

        返回:
            True 表示参数已更新；样本不足或没有成功记录时返回 False
        """
        cfg = self.config
        rate = cfg.learning_rate
        with self._lock:
            recent = [entry for entries in self._history.values() for entry in entries]
            if len(recent) < cfg.min_history:
                logger.debug("调优样本不足：%d < %d", len(recent), cfg.min_history)
                return False
            successful = [record for record, success in recent if success]
            if not successful:
                logger.info("最近 %d 条记录均未达到质量阈值，跳过本轮调优。", len(recent))
                return False

            avg_speed = sum(r.processing_time_ms for r in successful) / len(successful)
            budgeted = [r for r in successful if r.token_budget > 0]
            if budgeted:
                avg_cost = sum(r.actual_tokens / r.token_budget for r in budgeted) / len(budgeted)
                self._cost = _clamp(_approach(self._cost, avg_cost, rate), cfg.cost_bounds)
            self._speed_ms = _clamp(_approach(self._speed_ms, avg_speed, rate), cfg.speed_bounds_ms)

            overall_budget = sum(record.token_budget for record, _ in recent) / len(recent)
            if overall_budget > 0:
                success_budget = sum(r.token_budget for r in successful) / len(successful)
                target_scale = self._budget_scale * success_budget / overall_budget
                self._budget_scale = _clamp(
                    _approach(self._budget_scale, target_scale, rate), cfg.budget_scale_bounds
                )

            self._tune_tiers_locked(rate)

            self._update_count += 1
            logger.info(
                "调优完成（第 %d 次）：speed=%.1fms cost=%.3f budget_scale=%.3f tier_scale=%.3f",
                self._update_count,
                self._speed_ms,
                self._cost,
                self._budget_scale,
                self._tier_scale,
            )
            return True

    def _tune_tiers_locked(self, rate: float) -> None:
        # 每个条件键权重相同，单个热点预算桶不会主导比较
        minimal: list[float] = []
        richer: list[float] = []
        for entries in self._history.values():
            if not entries:
                continue
            strategy = entries[-1][0].strategy
            success_rate = sum(1 for _, success in entries if success) / len(entries)
            if strategy == CompressionStrategy.MINIMAL.value:
                minimal.append(success_rate)
            elif strategy in _RICHER_STRATEGIES:
                richer.append(success_rate)

        if not minimal or not richer:
            return
        richer_rate = _mean(richer)
        if richer_rate <= 0:
            return
        target = self._tier_scale * _mean(minimal) / richer_rate
        self._tier_scale = _clamp(_approach(self._tier_scale, target, rate), self.config.tier_scale_bounds)

    def reset(self) -> None:
        """恢复初始阈值并清空学习状态。"""
        with self._lock:
            self._reset_locked()
