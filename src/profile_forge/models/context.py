"""
IntelligenceContext — 画像数据的属性树封装。

上游信号存储提供的画像是一个"映射套映射"的结构，除了顶层分组名之外
没有固定 Schema。如果在压缩逻辑里到处写 ``data.get("a", {}).get("b")``，
缺失数据的处理就会散落在各处，而且很难保证每处都有合理默认值。

本模块把原始映射包装成一棵只读属性树，所有读取都走带类型的访问器，
缺失或类型不符时返回**显式默认值**，从不抛异常。

识别的顶层分组：

- ``personality``：核心人格（dominant_traits、traits、values）
- ``communication``：沟通风格（tone、style、verbosity、formality）
- ``current_state``：当前状态（mood、energy、emotional、focus、stress）
- ``context``：当前语境（current_moment、recent_topics、goals、recent_journey）
- ``behavior``：行为模式（patterns、decision_style、engagement、habits、likely_next）
- ``emotional``：情绪画像（baseline、profile、recent_shifts、trends）
- ``cognitive``：认知风格（style、problem_solving、learning_velocity、complexity_preference）

用法::

    ctx = IntelligenceContext.from_raw({
        "personality": {"dominant_traits": ["curious", "analytical"]},
    })
    ctx.get_list("personality.dominant_traits")   # ["curious", "analytical"]
    ctx.get_str("communication.tone", "neutral")  # "neutral"（缺失 → 默认值）
    ctx.get("personality.dominant_traits.0")      # "curious"
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

CONTEXT_GROUPS: tuple[str, ...] = (
    "personality",
    "communication",
    "current_state",
    "context",
    "behavior",
    "emotional",
    "cognitive",
)


def is_present(value: Any) -> bool:
    """
    判断一个属性值是否"有内容"。

    None、空白字符串、空容器都视为缺失；数字 0 和 False 视为有效值。
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    if isinstance(value, Mapping):
        return len(value) > 0
    return True


class IntelligenceContext:
    """
    画像属性树 — 带默认值的只读访问器集合。

    路径使用点号分隔，列表元素可以用数字下标访问
    （如 ``"personality.dominant_traits.0"``）。

    参数:
        data: 原始嵌套映射。非映射输入视为空画像。
    """

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data) if isinstance(data, Mapping) else {}

    @classmethod
    def from_raw(cls, raw: Any) -> IntelligenceContext:
        """
        从任意输入构建属性树。

        参数:
            raw: None、映射或已有的 IntelligenceContext

        返回:
            IntelligenceContext 实例（输入无效时为空画像）
        """
        if isinstance(raw, IntelligenceContext):
            return raw
        if isinstance(raw, Mapping):
            return cls(raw)
        if raw is not None:
            logger.debug("画像输入类型为 %s，按空画像处理", type(raw).__name__)
        return cls()

    # --- 通用访问 ---

    def get(self, path: str, default: Any = None) -> Any:
        """按点号路径读取原始值，缺失时返回 default。"""
        node: Any = self._data
        for key in path.split("."):
            if isinstance(node, Mapping) and key in node:
                node = node[key]
            elif isinstance(node, (list, tuple)) and key.isdigit() and int(key) < len(node):
                node = node[int(key)]
            else:
                return default
        return default if node is None else node

    def has(self, path: str) -> bool:
        """路径存在且有内容。"""
        return is_present(self.get(path))

    # --- 带类型的访问器 ---

    def get_str(self, path: str, default: str = "") -> str:
        """读取字符串。数字会被转换为字符串，其余类型返回默认值。"""
        value = self.get(path)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return default

    def get_float(self, path: str, default: float = 0.0) -> float:
        """读取数值。可解析的数字字符串也会被接受。"""
        value = self.get(path)
        if isinstance(value, bool):
            return default
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                return default
        return default

    def get_list(self, path: str, default: list[Any] | None = None) -> list[Any]:
        """读取列表。单个非空字符串会被包装为单元素列表。"""
        value = self.get(path)
        if isinstance(value, (list, tuple)):
            return [item for item in value if is_present(item)]
        if isinstance(value, str) and value.strip():
            return [value.strip()]
        return list(default) if default is not None else []

    def get_mapping(self, path: str) -> dict[str, Any]:
        """读取映射，缺失时返回空字典。"""
        value = self.get(path)
        if isinstance(value, Mapping):
            return dict(value)
        return {}

    def group(self, name: str) -> dict[str, Any]:
        """读取一个顶层分组。"""
        return self.get_mapping(name)

    # --- 整体属性 ---

    @property
    def is_empty(self) -> bool:
        """所有已识别分组均无内容。"""
        return not any(is_present(self._data.get(name)) for name in CONTEXT_GROUPS)

    @property
    def present_groups(self) -> list[str]:
        """有内容的已识别分组。"""
        return [name for name in CONTEXT_GROUPS if is_present(self._data.get(name))]

    def to_dict(self) -> dict[str, Any]:
        """返回原始数据的深拷贝。"""
        return copy.deepcopy(self._data)

    def __repr__(self) -> str:
        return f"IntelligenceContext(groups={self.present_groups})"
