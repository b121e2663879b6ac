"""
结构化异常体系 — 错误信息即文档。

每条异常遵循"三段式"规范：
1. What went wrong（发生了什么）
2. Why it happened（为什么发生）
3. How to fix it（怎么修）

注意：压缩主路径（ProfileForge.compress）不会向调用方抛出这些异常，
流水线内部失败会被转换为兜底提示。这里的异常面向配置加载、
实验管理等运维调用。

示例::

    ExperimentError(
        what="实验 'tier-test' 的流量分配无效。",
        why="traffic_split 的总和为 0.8，必须等于 1.0。",
        how="调整 traffic_split，例如 [0.5, 0.5]。",
    )
"""

from __future__ import annotations

from typing import Any


class ProfileForgeError(Exception):
    """
    Profile Forge 异常基类。

    所有 Profile Forge 异常都继承自此类，支持三段式错误消息。

    属性:
        what: 发生了什么
        why: 为什么发生
        how: 怎么修复
        details: 额外的上下文信息（用于调试）
    """

    def __init__(
        self,
        what: str,
        why: str = "",
        how: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.what = what
        self.why = why
        self.how = how
        self.details = details or {}

        parts = [what]
        if why:
            parts.append(f"→ 原因：{why}")
        if how:
            parts.append(f"→ 修复建议：{how}")

        self.full_message = "\n".join(parts)
        super().__init__(self.full_message)

    def __str__(self) -> str:
        return self.full_message

    def to_dict(self) -> dict[str, Any]:
        """转换为字典格式，用于 JSON API 响应。"""
        result: dict[str, Any] = {
            "error_type": type(self).__name__,
            "what": self.what,
        }
        if self.why:
            result["why"] = self.why
        if self.how:
            result["how"] = self.how
        if self.details:
            result["details"] = self.details
        return result


# === 流水线相关异常 ===


class PipelineError(ProfileForgeError):
    """流水线异常基类。"""

    pass


class PipelineStageError(PipelineError):
    """
    流水线阶段异常。

    当流水线某个阶段执行失败时抛出，携带阶段名称。
    ProfileForge.compress 会捕获它并返回兜底提示。

    示例::

        raise PipelineStageError(
            what="流水线阶段 'cluster' 执行失败。",
            why="自定义提取规则抛出了 TypeError。",
            how="检查提取规则的 transform 函数。",
            stage_name="cluster",
        )
    """

    def __init__(
        self,
        what: str,
        why: str = "",
        how: str = "",
        stage_name: str = "",
        **kwargs: Any,
    ) -> None:
        details = {"stage_name": stage_name}
        details.update(kwargs)
        super().__init__(what=what, why=why, how=how, details=details)
        self.stage_name = stage_name


# === 配置相关异常 ===


class ConfigValidationError(ProfileForgeError):
    """
    配置校验异常。

    当 YAML 策略文件格式错误或字段不合法时抛出。

    示例::

        raise ConfigValidationError(
            what="策略文件 'configs/prod.yaml' 校验失败。",
            why="字段 'allocation → minimal_below' 必须小于 comprehensive_above。",
            how="调整两个阈值，使 minimal_below < comprehensive_above。",
            config_path="configs/prod.yaml",
            field_path="allocation.minimal_below",
        )
    """

    def __init__(
        self,
        what: str,
        why: str = "",
        how: str = "",
        config_path: str = "",
        field_path: str = "",
        **kwargs: Any,
    ) -> None:
        details = {
            "config_path": config_path,
            "field_path": field_path,
        }
        details.update(kwargs)
        super().__init__(what=what, why=why, how=how, details=details)
        self.config_path = config_path
        self.field_path = field_path


class PolicyLoadError(ProfileForgeError):
    """
    策略加载异常。

    当策略文件不存在、格式错误或无法解析时抛出。
    """

    def __init__(
        self,
        what: str,
        why: str = "",
        how: str = "",
        file_path: str = "",
        **kwargs: Any,
    ) -> None:
        details = {"file_path": file_path}
        details.update(kwargs)
        super().__init__(what=what, why=why, how=how, details=details)
        self.file_path = file_path


# === 模型相关异常 ===


class ModelNotFoundError(ProfileForgeError):
    """
    模型未找到异常。

    仅在 resolve_model(..., strict=True) 时抛出；
    默认情况下未知模型会回退到 gpt-4o 画像。
    """

    def __init__(
        self,
        what: str,
        why: str = "",
        how: str = "",
        model_id: str = "",
        available_models: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        details: dict[str, Any] = {"model_id": model_id}
        if available_models:
            details["available_models"] = available_models
        details.update(kwargs)
        super().__init__(what=what, why=why, how=how, details=details)
        self.model_id = model_id


# === Tokenizer 相关异常 ===


class TokenizerError(ProfileForgeError):
    """
    Tokenizer 异常。

    当 Token 计数失败或 Tokenizer 不可用时抛出。
    """

    pass


# === 压缩相关异常 ===


class CompressionError(ProfileForgeError):
    """
    压缩异常。

    当簇压缩或质量优化过程中出现无法恢复的错误时抛出。
    """

    pass


# === 实验相关异常 ===


class ExperimentError(ProfileForgeError):
    """
    A/B 实验异常。

    实验参数无效（策略数、流量分配、时长）或状态迁移非法时抛出。
    """

    def __init__(
        self,
        what: str,
        why: str = "",
        how: str = "",
        experiment: str = "",
        **kwargs: Any,
    ) -> None:
        details = {"experiment": experiment}
        details.update(kwargs)
        super().__init__(what=what, why=why, how=how, details=details)
        self.experiment = experiment


class ExperimentNotFoundError(ExperimentError):
    """指定名称的实验不存在。"""

    pass
