"""
ProfileForge — 顶层 Facade API。

这是 Profile Forge 的主入口：把行为画像压缩为受 Token 预算约束的
提示片段，并把下游观测到的回复质量反馈给自适应调优层。

最简用法::

    from profile_forge import ProfileForge

    forge = ProfileForge()
    result = forge.compress(profile, interaction_type="question", complexity=6)
    result.prompt_text            # → 拼进系统提示
    forge.record_outcome(result, response_quality=0.92)

按消息自动判定交互类型::

    result = forge.compress_message(profile, "Can you compare these two designs?")

# [DX Decision] compress() 永远不向调用方抛出：流水线内部失败会被记录日志，
# 并返回一句兜底提示，聊天主流程不会因为画像压缩失败而中断。
"""

from __future__ import annotations

import json
import logging
import math
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

from profile_forge.analytics import AnalyticsService
from profile_forge.config.defaults import resolve_model
from profile_forge.config.loader import load_policy
from profile_forge.config.schema import PolicyConfig
from profile_forge.facade_analytics import AnalyticsMixin
from profile_forge.models.context import IntelligenceContext
from profile_forge.models.record import (
    CompressionMetadata,
    CompressionRecord,
    CompressionResult,
    OptimizationMetrics,
)
from profile_forge.pipeline.base import Pipeline, PipelineContext, create_default_pipeline
from profile_forge.quality.optimizer import measure_efficiency
from profile_forge.routing import InteractionClassifier, InteractionSignals
from profile_forge.tokenizer import TokenCounter, resolve_counter

logger = logging.getLogger(__name__)

FALLBACK_TEMPLATE = "User shows {interaction_type} communication pattern."
DEFAULT_INTERACTION_TYPE = "standard"
DEFAULT_COMPLEXITY = 5.0


def fallback_prompt(interaction_type: str) -> str:
    """兜底提示：画像为空或流水线失败时使用。"""
    return FALLBACK_TEMPLATE.format(interaction_type=interaction_type or DEFAULT_INTERACTION_TYPE)


def normalize_interaction_type(value: Any) -> str:
    """去空白转小写；None、空串或非字符串输入按 standard 处理。"""
    if not isinstance(value, str) or not value.strip():
        return DEFAULT_INTERACTION_TYPE
    return value.strip().lower()


def coerce_number(value: Any, default: float, name: str) -> float:
    """
    把调用方输入转为有限浮点数。

    compress() 对外承诺不抛异常，无法解析的数字（"high"、NaN、inf、None）
    记录 warning 后使用默认值。
    """
    if isinstance(value, bool):
        logger.warning("%s=%r 不是数字，使用默认值 %s。", name, value, default)
        return float(default)
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("%s=%r 不是数字，使用默认值 %s。", name, value, default)
        return float(default)
    if not math.isfinite(number):
        logger.warning("%s=%r 不是有限数，使用默认值 %s。", name, value, default)
        return float(default)
    return number


def compression_ratio(intelligence: IntelligenceContext, prompt: str) -> float:
    """1 − 提示长度 / 原始画像序列化长度，截断到 [0, 1]；空画像为 0。"""
    if intelligence.is_empty:
        return 0.0
    raw = json.dumps(intelligence.to_dict(), ensure_ascii=False, default=str, sort_keys=True)
    if not raw:
        return 0.0
    return max(0.0, min(1.0, 1 - len(prompt) / len(raw)))


class ProfileForge(AnalyticsMixin):
    """
    Profile Forge 顶层入口。

    所有依赖都可以注入；不注入时根据策略配置创建默认实现。

    基本初始化::

        forge = ProfileForge()

    带策略文件::

        forge = ProfileForge.from_policy("configs/profile_forge.yaml")

    自定义组件::

        forge = ProfileForge(
            policy=PolicyConfig(),
            analytics=AnalyticsService(clock=fake_clock),
            counter=CharBasedCounter(),
        )

    参数:
        policy: 策略配置（None 时使用默认值）
        pipeline: 自定义流水线（高级用法）
        analytics: 分析服务（记录、指标、实验、调优）
        classifier: 交互分类器
        counter: Token 计数器（None 时按 compress.tokenizer 选择）
        clock: 时间函数（epoch 秒），用于记录时间戳
        debug: 是否输出阶段级调试日志
    """

    def __init__(
        self,
        policy: PolicyConfig | None = None,
        pipeline: Pipeline | None = None,
        analytics: AnalyticsService | None = None,
        classifier: InteractionClassifier | None = None,
        counter: TokenCounter | None = None,
        clock: Callable[[], float] | None = None,
        debug: bool = False,
    ) -> None:
        self._policy = policy or PolicyConfig()
        self._debug = debug
        self._clock = clock or time.time
        self._counter = counter or resolve_counter(
            self._policy.compress.tokenizer, self._policy.budget.default_model
        )
        self._pipeline = pipeline or create_default_pipeline(self._policy, counter=self._counter)
        self._analytics = analytics or AnalyticsService(
            self._policy.analytics,
            self._policy.tuning,
            clock=self._clock,
        )
        self._classifier = classifier or InteractionClassifier()
        self._scheduler: Any = None

        if self._debug:
            logger.debug(
                "ProfileForge 初始化完成：policy=%s, tokenizer=%s, stages=%s",
                self._policy.name,
                self._counter.name,
                self._pipeline.stage_names,
            )

    @classmethod
    def from_policy(
        cls,
        path: str | Path | None = None,
        overrides: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> ProfileForge:
        """
        从 YAML 策略文件创建实例。

        参数:
            path: 策略文件路径（None 时按默认搜索路径查找，找不到则使用默认配置）
            overrides: 覆盖配置（深度合并）
            **kwargs: 透传给构造函数的其他依赖

        异常:
            PolicyLoadError: 文件不存在或无法解析
            ConfigValidationError: 配置校验失败
        """
        return cls(policy=load_policy(path=path, overrides=overrides), **kwargs)

    # --- 压缩 ---

    def compress(
        self,
        context: Any,
        interaction_type: str = "standard",
        complexity: float = 5.0,
        *,
        model: str | None = None,
        token_budget: int | None = None,
        quality_target: float | None = None,
        history_length: int = 0,
        force_strategy: str | None = None,
        experiment: str | None = None,
        participant_id: str | None = None,
    ) -> CompressionResult:
        """
        压缩画像为提示片段，并把本次压缩写入分析日志。

        参数:
            context: 画像（映射、IntelligenceContext 或 None）
            interaction_type: 交互类型（greeting / question / analysis / ...）
            complexity: 复杂度 [0, 10]，无法解析为数字时按 5.0 处理
            model: 目标模型（None 时使用策略中的默认模型）
            token_budget: 强制预算（None 时由估算器计算）
            quality_target: 质量目标（None 时使用当前自适应质量阈值）
            history_length: 对话轮数
            force_strategy: 强制压缩策略
            experiment: A/B 实验名（需同时提供 participant_id）
            participant_id: 参与者 ID，用于实验分桶

        返回:
            CompressionResult — prompt_text 永远非空
        """
        start_time = time.perf_counter()
        interaction_type = normalize_interaction_type(interaction_type)
        complexity = coerce_number(complexity, DEFAULT_COMPLEXITY, "complexity")
        history_length = max(0, int(coerce_number(history_length, 0, "history_length")))
        model = str(model) if model else self._policy.budget.default_model

        try:
            result = self._compress(
                context,
                interaction_type,
                complexity,
                model,
                history_length,
                token_budget,
                quality_target,
                force_strategy,
                experiment,
                participant_id,
                start_time,
            )
        except Exception as e:
            logger.exception("画像压缩失败，返回兜底提示。")
            result = self._error_result(interaction_type, complexity, model, e, start_time)

        self._record(result)
        if self._debug:
            logger.debug(
                "压缩完成：strategy=%s budget=%d tokens=%d quality=%.2f",
                result.metadata.strategy,
                result.metadata.token_budget,
                result.metadata.actual_tokens,
                result.metadata.quality_score,
            )
        return result

    def _compress(
        self,
        context: Any,
        interaction_type: str,
        complexity: float,
        model: str,
        history_length: int,
        token_budget: Any,
        quality_target: Any,
        force_strategy: str | None,
        experiment: str | None,
        participant_id: str | None,
        start_time: float,
    ) -> CompressionResult:
        intelligence = IntelligenceContext.from_raw(context)
        thresholds = self._analytics.thresholds()
        target = thresholds.quality
        if quality_target is not None:
            target = min(1.0, max(0.0, coerce_number(quality_target, thresholds.quality, "quality_target")))
        budget: int | None = None
        if token_budget is not None:
            budget = max(0, int(coerce_number(token_budget, 0, "token_budget")))

        assigned: str | None = None
        if experiment and participant_id:
            assigned = self._analytics.experiments.assign(experiment, participant_id)
            if assigned is not None:
                force_strategy = assigned

        pipeline_context = PipelineContext(
            intelligence=intelligence,
            interaction_type=interaction_type,
            complexity=complexity,
            model=model,
            history_length=history_length,
            token_budget=budget,
            quality_target=target,
            forced_strategy=force_strategy,
            budget_scale=thresholds.budget_scale,
            tier_scale=thresholds.tier_scale,
            debug=self._debug,
        )
        if assigned is not None:
            pipeline_context.metadata["experiment"] = experiment

        try:
            pipeline_context = self._pipeline.execute(pipeline_context)
            result = self._build_result(pipeline_context, intelligence, start_time, target)
        except Exception as e:
            logger.exception("画像压缩失败，返回兜底提示。")
            return self._error_result(
                interaction_type, complexity, model, e, start_time, target, pipeline_context
            )

        if assigned is not None and experiment is not None:
            meta = result.metadata
            self._analytics.record_experiment_result(
                experiment, assigned, meta.quality_score, meta.efficiency, meta.processing_time_ms
            )
        return result

    def _record(self, result: CompressionResult) -> None:
        try:
            self._analytics.record(CompressionRecord.from_result(result, timestamp=self._clock()))
        except Exception:
            logger.exception("写入压缩记录 %s 失败，已忽略。", result.record_id)

    def compress_message(self, context: Any, message: str, **options: Any) -> CompressionResult:
        """
        先对用户消息分类，再按分类结果压缩。

        options 中显式传入的 interaction_type / complexity 优先于分类结果。
        """
        signals = self.classify(message)
        interaction_type = options.pop("interaction_type", signals.interaction_type.value)
        complexity = options.pop("complexity", signals.complexity)
        return self.compress(context, interaction_type, complexity, **options)

    def classify(self, message: str | None) -> InteractionSignals:
        """判定消息的交互类型与复杂度。"""
        return self._classifier.classify(message)

    def record_outcome(
        self,
        ref: CompressionResult | str,
        user_feedback: float | None = None,
        response_quality: float | None = None,
    ) -> CompressionRecord | None:
        """
        为一次压缩回填下游观测结果。

        compress() 已经写入了记录，这里按 record_id 把反馈附加到该记录上；
        每条记录只接受一次回填。记录已被环形缓冲区淘汰、且传入的是结果对象时，
        按结果重新写入一条带反馈的记录。

        参数:
            ref: compress() 的返回值，或其 record_id
            user_feedback: 用户满意度 [0, 1]
            response_quality: 下游回复质量 [0, 1]，优先于启发式质量分参与指标与调优

        返回:
            回填后的记录；record_id 未知或已回填过时返回 None
        """
        record_id = ref.record_id if isinstance(ref, CompressionResult) else ref
        if self._analytics.recorder.contains(record_id):
            return self._analytics.attach_outcome(record_id, user_feedback, response_quality)

        if isinstance(ref, CompressionResult):
            record = CompressionRecord.from_result(
                ref,
                timestamp=self._clock(),
                user_feedback=user_feedback,
                response_quality=response_quality,
            )
            return record if self._analytics.record(record) else None

        logger.warning("未找到压缩记录 %s，无法回填。", record_id)
        return None

    # --- 结果构建 ---

    def _build_result(
        self,
        ctx: PipelineContext,
        intelligence: IntelligenceContext,
        start_time: float,
        target: float,
    ) -> CompressionResult:
        outcome = ctx.outcome
        estimate = ctx.estimate
        if outcome is None or estimate is None or ctx.plan is None or ctx.strategy is None:
            raise ValueError("流水线未产出压缩结果，检查是否跳过了必需阶段。")

        prompt = outcome.prompt
        fallback = not prompt.strip()
        if fallback:
            prompt = fallback_prompt(ctx.interaction_type)
            actual_tokens = self._counter.count(prompt)
            optimization = OptimizationMetrics(
                token_efficiency=min(1.0, actual_tokens / ctx.budget) if ctx.budget > 0 else 0.0,
                semantic_density=0.0,
                information_retention=0.0,
            )
            clusters_used: tuple[str, ...] = ()
            quality = 0.0
        else:
            actual_tokens = outcome.tokens
            optimization = measure_efficiency(
                prompt, actual_tokens, ctx.budget, outcome.compressed, ctx.clusters, outcome.rendered
            )
            clusters_used = outcome.rendered
            quality = outcome.score

        metadata = CompressionMetadata(
            strategy=ctx.strategy.value,
            token_budget=ctx.budget,
            actual_tokens=actual_tokens,
            compression_ratio=compression_ratio(intelligence, prompt),
            quality_score=quality,
            quality_target=target,
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
            clusters_used=clusters_used,
            allocations=ctx.plan.as_dict(),
            model=estimate.model,
            interaction_type=ctx.interaction_type,
            complexity=ctx.complexity,
            iterations=outcome.iterations,
            optimization=optimization,
            efficiency=optimization.efficiency,
            experiment=ctx.metadata.get("experiment"),
            fallback=fallback,
        )
        return CompressionResult(prompt_text=prompt, metadata=metadata, record_id=uuid.uuid4().hex)

    def _error_result(
        self,
        interaction_type: str,
        complexity: float,
        model: str,
        error: Exception,
        start_time: float,
        target: float | None = None,
        ctx: PipelineContext | None = None,
    ) -> CompressionResult:
        """
        流水线失败时的兜底结果。

        只使用已经过 coerce 的标量，构建过程本身不会因为调用方输入而失败。
        """
        prompt = fallback_prompt(interaction_type)
        estimate = ctx.estimate if ctx is not None else None
        resolved_model = estimate.model if estimate is not None else resolve_model(
            model, self._policy.model_profiles()
        ).model_id
        metadata = CompressionMetadata(
            strategy="fallback",
            token_budget=estimate.token_budget if estimate is not None else 0,
            actual_tokens=self._counter.count(prompt),
            quality_score=0.0,
            quality_target=target if target is not None else self._policy.tuning.initial_quality,
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
            model=resolved_model,
            interaction_type=interaction_type,
            complexity=complexity,
            optimization=OptimizationMetrics(
                token_efficiency=0.0, semantic_density=0.0, information_retention=0.0
            ),
            efficiency=0.0,
            experiment=ctx.metadata.get("experiment") if ctx is not None else None,
            error=True,
            fallback=True,
            error_type=type(error.__cause__ or error).__name__,
        )
        return CompressionResult(prompt_text=prompt, metadata=metadata, record_id=uuid.uuid4().hex)

    # --- 便捷属性 ---

    @property
    def policy(self) -> PolicyConfig:
        """当前策略配置。"""
        return self._policy

    @property
    def pipeline(self) -> Pipeline:
        """当前流水线实例（可用于替换阶段）。"""
        return self._pipeline

    @property
    def analytics(self) -> AnalyticsService:
        return self._analytics

    @property
    def counter(self) -> TokenCounter:
        return self._counter

    def __repr__(self) -> str:
        return (
            f"ProfileForge(policy='{self._policy.name}', "
            f"model='{self._policy.budget.default_model}', "
            f"tokenizer='{self._counter.name}')"
        )
