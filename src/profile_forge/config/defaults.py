"""
默认配置与静态查找表。

# [DX Decision] 内置常见模型的压缩画像，调用方只传模型名即可得到
# 窗口大小和基础 Token 额度。所有表都可以在 YAML 策略里覆盖，
# 这里的数值只是起点，需要结合实际回复质量做经验调优。

包含：
- 模型画像注册表（MODEL_PROFILES）与 resolve_model()
- 交互类型预算乘数
- 簇类别的基础优先级与默认可靠度
- 各压缩策略的簇权重与排除列表
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from profile_forge.errors import ModelNotFoundError
from profile_forge.models.budget import ModelProfile

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"

# ============================================================
# 模型画像注册表
# ============================================================

MODEL_PROFILES: dict[str, ModelProfile] = {
    "gpt-4o": ModelProfile(
        model_id="gpt-4o",
        max_context_tokens=128_000,
        optimal_tokens=150,
        semantic_understanding=0.95,
        compression_tolerance=0.8,
    ),
    "claude-3": ModelProfile(
        model_id="claude-3",
        max_context_tokens=200_000,
        optimal_tokens=200,
        semantic_understanding=0.92,
        compression_tolerance=0.75,
    ),
    "gpt-4": ModelProfile(
        model_id="gpt-4",
        max_context_tokens=8_000,
        optimal_tokens=100,
        semantic_understanding=0.88,
        compression_tolerance=0.85,
    ),
}

# ============================================================
# 预算估算表
# ============================================================

INTERACTION_MULTIPLIERS: dict[str, float] = {
    "greeting": 0.3,
    "standard": 1.0,
    "question": 1.2,
    "technical": 1.5,
    "analysis": 1.8,
    "emotional": 1.3,
    "creative": 1.4,
}

# ============================================================
# 簇类别表
# ============================================================

CLUSTER_BASE_PRIORITY: dict[str, float] = {
    "core": 0.9,
    "dynamic": 1.0,
    "contextual": 1.0,
    "predictive": 0.6,
    "behavioral": 0.7,
    "emotional": 0.85,
    "cognitive": 0.75,
}

# 分组完全缺失时使用的声明可靠度
CLUSTER_DEFAULT_RELIABILITY: dict[str, float] = {
    "core": 0.9,
    "dynamic": 0.7,
    "contextual": 0.8,
    "predictive": 0.6,
    "behavioral": 0.8,
    "emotional": 0.75,
    "cognitive": 0.85,
}

# ============================================================
# 压缩策略表
# ============================================================

STRATEGY_WEIGHTS: dict[str, dict[str, float]] = {
    "minimal": {
        "core": 1.0,
        "dynamic": 0.8,
        "contextual": 0.6,
        "predictive": 0.2,
        "behavioral": 0.3,
        "emotional": 0.4,
        "cognitive": 0.3,
    },
    "balanced": {
        "core": 1.0,
        "dynamic": 0.9,
        "contextual": 0.8,
        "predictive": 0.6,
        "behavioral": 0.7,
        "emotional": 0.7,
        "cognitive": 0.6,
    },
    "comprehensive": {
        "core": 1.0,
        "dynamic": 1.0,
        "contextual": 0.9,
        "predictive": 0.8,
        "behavioral": 0.8,
        "emotional": 0.8,
        "cognitive": 0.7,
    },
}

STRATEGY_EXCLUSIONS: dict[str, list[str]] = {
    "minimal": ["predictive", "behavioral"],
    "balanced": ["predictive"],
    "comprehensive": [],
}


# ============================================================
# 滚动指标窗口（窗口名 → 秒）
# ============================================================

WINDOWS: dict[str, int] = {
    "1h": 3_600,
    "24h": 86_400,
    "7d": 604_800,
    "30d": 2_592_000,
}


def resolve_model(
    model_id: str | None,
    profiles: Mapping[str, ModelProfile] | None = None,
    strict: bool = False,
) -> ModelProfile:
    """
    解析模型名为模型画像。

    查找顺序：
    1. 精确匹配（先查 profiles，再查内置注册表）
    2. 最长前缀匹配（如 "claude-3-5-sonnet" → "claude-3"）
    3. 回退到 DEFAULT_MODEL（strict=True 时抛出异常）

    参数:
        model_id: 模型名，None 或空字符串视为默认模型
        profiles: 额外的模型画像（通常来自策略文件），优先于内置注册表
        strict: 未找到时是否抛出 ModelNotFoundError

    返回:
        ModelProfile 实例

    异常:
        ModelNotFoundError: strict=True 且模型未知
    """
    registry: dict[str, ModelProfile] = dict(MODEL_PROFILES)
    if profiles:
        registry.update(profiles)

    if not model_id:
        return registry[DEFAULT_MODEL]

    key = model_id.strip().lower()
    if key in registry:
        return registry[key]

    for prefix in sorted(registry, key=len, reverse=True):
        if key.startswith(prefix):
            return registry[prefix]

    if strict:
        raise ModelNotFoundError(
            what=f"未找到模型 '{model_id}'。",
            why="该模型不在内置模型画像中，也未在策略文件的 models 段注册。",
            how=f"可用模型：{', '.join(sorted(registry))}。"
                "如需自定义模型，请在策略文件的 models 段添加画像。",
            model_id=model_id,
            available_models=sorted(registry),
        )

    logger.warning("未知模型 '%s'，回退到 %s 的画像。", model_id, DEFAULT_MODEL)
    return registry[DEFAULT_MODEL]


def register_model(model_id: str, profile: ModelProfile) -> None:
    """
    注册自定义模型画像（进程级，影响之后所有 resolve_model 调用）。

    参数:
        model_id: 模型名（统一转为小写）
        profile: 模型画像

    示例::

        register_model("my-local-model", ModelProfile(
            model_id="my-local-model",
            max_context_tokens=32_000,
            optimal_tokens=120,
        ))
    """
    MODEL_PROFILES[model_id.strip().lower()] = profile


def list_models(profiles: Mapping[str, ModelProfile] | None = None) -> list[str]:
    """列出所有可用模型名。"""
    names = set(MODEL_PROFILES)
    if profiles:
        names.update(profiles)
    return sorted(names)
