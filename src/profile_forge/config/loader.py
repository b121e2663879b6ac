"""
策略文件加载。

一份策略由三层叠加而成：PolicyConfig 的内置默认值 → YAML 策略文件 →
调用方传入的 overrides。文件位置按以下顺序确定：

1. 显式传入的 path
2. 环境变量 ``PROFILE_FORGE_POLICY``
3. 当前目录下的约定位置（见 POLICY_LOCATIONS）

都没有时直接使用默认值，所以零配置也能启动。

# [DX Decision] 校验失败时列出每个出错字段的点号路径（如 tuning.learning_rate），
# CLI 的 validate 命令逐条展示，用户不必对照 Pydantic 的原始报错。
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from profile_forge.config.schema import PolicyConfig
from profile_forge.errors import ConfigValidationError, PolicyLoadError

logger = logging.getLogger(__name__)

POLICY_ENV_VAR = "PROFILE_FORGE_POLICY"

POLICY_LOCATIONS: tuple[Path, ...] = (
    Path("profile_forge.yaml"),
    Path("profile_forge.yml"),
    Path(".profile_forge/policy.yaml"),
    Path("configs/profile_forge.yaml"),
)


def discover_policy_path() -> Path | None:
    """按环境变量与约定位置查找策略文件，找不到返回 None。"""
    from_env = os.environ.get(POLICY_ENV_VAR, "").strip()
    if from_env:
        return Path(from_env)
    return next((candidate for candidate in POLICY_LOCATIONS if candidate.is_file()), None)


def load_policy(
    path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> PolicyConfig:
    """
    加载并校验策略配置。

    参数:
        path: YAML 文件路径，None 时自动查找
        overrides: 深度合并到文件内容之上的覆盖项

    返回:
        PolicyConfig 实例

    异常:
        PolicyLoadError: 文件不存在、无法读取或不是 YAML 映射
        ConfigValidationError: 字段校验失败
    """
    policy_path = Path(path) if path is not None else discover_policy_path()
    if policy_path is None:
        logger.debug("未找到策略文件，使用内置默认策略。")
        layered: dict[str, Any] = {}
        source = "<default>"
    else:
        layered = read_policy_mapping(policy_path)
        source = str(policy_path)
        logger.info("已加载策略文件：%s", source)

    if overrides:
        layered = merge_layers(layered, overrides)
    return _build_policy(layered, source)


def read_policy_mapping(path: Path) -> dict[str, Any]:
    """读取 YAML 文件并确认根元素是映射；空文件视为空映射。"""
    if not path.is_file():
        raise PolicyLoadError(
            what=f"策略文件 '{path}' 不存在。",
            why=f"'{path.absolute()}' 不是一个可读的文件。",
            how="检查路径，或运行 'profile-forge init' 在当前目录生成默认策略文件。",
            file_path=str(path),
        )

    try:
        parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise PolicyLoadError(
            what=f"无法读取策略文件 '{path}'。",
            why=str(e),
            how="检查文件权限，并确认文件使用 UTF-8 编码。",
            file_path=str(path),
        ) from e
    except yaml.YAMLError as e:
        raise PolicyLoadError(
            what=f"策略文件 '{path}' 不是合法的 YAML。",
            why=str(e),
            how="按报错中的行列号修正语法（常见原因：缩进不一致、括号未闭合）。",
            file_path=str(path),
        ) from e

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise PolicyLoadError(
            what=f"策略文件 '{path}' 的根元素必须是字典。",
            why=f"解析结果的类型是 {type(parsed).__name__}。",
            how="根元素应为按配置段组织的键值对，例如：\n"
                "  budget:\n"
                "    default_model: gpt-4o\n"
                "  allocation:\n"
                "    minimal_below: 50",
            file_path=str(path),
        )
    return parsed


def merge_layers(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """深度合并：两侧都是映射的键递归合并，其余键由 override 取代。"""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_layers(current, value)
        else:
            merged[key] = value
    return merged


def _build_policy(layered: dict[str, Any], source: str) -> PolicyConfig:
    try:
        return PolicyConfig.model_validate(layered)
    except ValidationError as e:
        problems = [
            (".".join(str(part) for part in issue["loc"]) or "<root>", issue["msg"])
            for issue in e.errors()
        ]
        raise ConfigValidationError(
            what=f"策略配置 '{source}' 校验失败（{len(problems)} 个错误）。",
            why="\n".join(f"  {field}: {message}" for field, message in problems),
            how="按字段路径修正对应配置段，删除字段即回退到默认值。"
                "可以先用 'profile-forge validate <path>' 预校验。",
            config_path=source,
            field_path=problems[0][0],
            problems=[f"{field}: {message}" for field, message in problems],
        ) from e


def validate_policy_file(path: str | Path) -> list[str]:
    """
    校验策略文件，不抛出异常。

    返回:
        错误信息列表，空列表表示通过。字段校验失败时每个字段一条，
        文件级错误（不存在、语法错误）只有一条。
    """
    try:
        load_policy(path)
    except ConfigValidationError as e:
        return [f"{e.config_path} 校验失败 → {problem}" for problem in e.details.get("problems", [])]
    except PolicyLoadError as e:
        return [e.full_message]
    return []
