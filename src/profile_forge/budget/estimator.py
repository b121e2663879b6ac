"""
预算估算器 — 为画像提示计算 Token 预算。

    budget = optimal_tokens
             × min(cap, 0.5 + complexity / 10)
             × interaction_multiplier
             × history_factor
             × budget_scale
    budget = round(min(budget, max_context_tokens × max_context_fraction))

估算完全确定，唯一的可变输入是自适应调优给出的 budget_scale。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from profile_forge.config.defaults import resolve_model
from profile_forge.config.schema import BudgetConfig
from profile_forge.models.budget import BudgetEstimate, ModelProfile

logger = logging.getLogger(__name__)


class BudgetEstimator:
    """
    Token 预算估算器。

    用法::

        estimator = BudgetEstimator()
        estimate = estimator.estimate("claude-3", "greeting", complexity=1, history_length=5)
        estimate.token_budget  # 36

    参数:
        config: 预算配置
        profiles: 额外的模型画像（通常来自策略文件）
        strict_models: 未知模型是否抛出 ModelNotFoundError
    """

    def __init__(
        self,
        config: BudgetConfig | None = None,
        profiles: Mapping[str, ModelProfile] | None = None,
        strict_models: bool = False,
    ) -> None:
        self.config = config or BudgetConfig()
        self._profiles = dict(profiles or {})
        self._strict = strict_models

    def resolve(self, model: str | None) -> ModelProfile:
        """解析模型名，None 时使用配置的默认模型。"""
        return resolve_model(model or self.config.default_model, self._profiles, strict=self._strict)

    def complexity_factor(self, complexity: float) -> float:
        complexity = min(10.0, max(0.0, float(complexity)))
        return min(self.config.complexity_factor_cap, 0.5 + complexity / 10)

    def interaction_multiplier(self, interaction_type: str) -> float:
        return self.config.interaction_multipliers.get(
            interaction_type, self.config.default_interaction_multiplier
        )

    def history_factor(self, history_length: int) -> float:
        if history_length > self.config.long_history_turns:
            return self.config.long_history_multiplier
        if history_length < self.config.short_history_turns:
            return self.config.short_history_multiplier
        return 1.0

    def estimate(
        self,
        model: str | None,
        interaction_type: str = "standard",
        complexity: float = 5.0,
        history_length: int = 0,
        budget_scale: float = 1.0,
    ) -> BudgetEstimate:
        """
        估算 Token 预算。

        参数:
            model: 模型名（None 使用默认模型）
            interaction_type: 交互类型，未识别时乘数为 1.0
            complexity: 复杂度，截断到 [0, 10]
            history_length: 对话轮数
            budget_scale: 自适应缩放系数

        返回:
            BudgetEstimate（携带每个乘数）
        """
        profile = self.resolve(model)
        complexity_factor = self.complexity_factor(complexity)
        multiplier = self.interaction_multiplier(interaction_type)
        history_factor = self.history_factor(max(0, int(history_length)))

        raw = profile.optimal_tokens * complexity_factor * multiplier * history_factor * budget_scale
        cap = profile.max_context_tokens * self.config.max_context_fraction
        clamped = raw > cap
        budget = round(min(raw, cap))

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "预算估算：model=%s base=%d × %.2f × %.2f × %.2f × %.3f → %d%s",
                profile.model_id,
                profile.optimal_tokens,
                complexity_factor,
                multiplier,
                history_factor,
                budget_scale,
                budget,
                "（已截断）" if clamped else "",
            )

        return BudgetEstimate(
            token_budget=budget,
            model=profile.model_id,
            base_tokens=profile.optimal_tokens,
            complexity_factor=complexity_factor,
            interaction_multiplier=multiplier,
            history_factor=history_factor,
            budget_scale=budget_scale,
            clamped=clamped,
        )

    def fixed(self, model: str | None, token_budget: int) -> BudgetEstimate:
        """调用方显式指定预算时使用，跳过所有乘数。"""
        profile = self.resolve(model)
        return BudgetEstimate(
            token_budget=max(0, int(token_budget)),
            model=profile.model_id,
            base_tokens=profile.optimal_tokens,
            complexity_factor=1.0,
            interaction_multiplier=1.0,
            history_factor=1.0,
            budget_scale=1.0,
        )
