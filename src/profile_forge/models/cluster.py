"""
Cluster — 画像语义簇。

簇是一次压缩调用内的派生实体：从画像中按类别抽取出的一组属性，
附带优先级、可靠度和丰富度三个分数。簇不会被持久化，
生命周期仅限于单次 compress() 调用。
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ClusterName(str, Enum):
    """
    簇类别。

    枚举的声明顺序就是所有"按固定顺序"处理的地方使用的顺序
    （分配余数、预算裁剪的平局处理等）。
    """

    CORE = "core"
    DYNAMIC = "dynamic"
    CONTEXTUAL = "contextual"
    PREDICTIVE = "predictive"
    BEHAVIORAL = "behavioral"
    EMOTIONAL = "emotional"
    COGNITIVE = "cognitive"


CLUSTER_ORDER: tuple[ClusterName, ...] = tuple(ClusterName)


class Cluster(BaseModel):
    """
    一个语义簇。

    属性:
        name: 簇类别
        content: 有序属性映射，第一个键是优先级最高的属性
        priority: 类别基础优先级 [0, 1]
        reliability: 可靠度，期望属性的实际出现比例 [0, 1]
        richness: 丰富度，min(1, attribute_count / saturation) [0, 1]
        attribute_count: 原始数据中的属性条目数（派生属性不计）
    """

    model_config = ConfigDict(frozen=True)

    name: ClusterName
    content: dict[str, Any] = Field(default_factory=dict)
    priority: float = Field(default=0.0, ge=0.0, le=1.0)
    reliability: float = Field(default=0.0, ge=0.0, le=1.0)
    richness: float = Field(default=0.0, ge=0.0, le=1.0)
    attribute_count: int = Field(default=0, ge=0)

    @property
    def is_populated(self) -> bool:
        """簇是否有来自原始画像的数据。"""
        return self.richness > 0 and bool(self.content)
