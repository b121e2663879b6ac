"""
簇压缩的基础协议与数据结构。

簇压缩器把一个簇的属性映射压缩为一段文本，长度适配该簇的 Token 配额。
按配额大小分三档：

- **ultra**（< 20）：只保留第一个属性的值，不带标签
- **standard**（20 ~ 49）：前 ceil(n/2) 个属性，``key:value`` 以 ``, `` 连接
- **detailed**（>= 50）：全部属性，``key: value`` 以 ``; `` 连接，列表展开

# [Design Decision] 档位边界是可平移的值对象而非常量，
# 质量优化器通过平移边界让同一配额落入更丰富或更精简的档位。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class CompressionTier(str, Enum):
    """压缩档位。"""

    ULTRA = "ultra"
    STANDARD = "standard"
    DETAILED = "detailed"


@dataclass(frozen=True)
class TierBoundaries:
    """
    档位边界。

    属性:
        ultra_max: 配额低于该值使用 ultra 档
        standard_max: 配额低于该值使用 standard 档，否则 detailed
    """

    ultra_max: int = 20
    standard_max: int = 50

    def tier_for(self, allocation: int) -> CompressionTier:
        """按配额选择档位。"""
        if allocation < self.ultra_max:
            return CompressionTier.ULTRA
        if allocation < self.standard_max:
            return CompressionTier.STANDARD
        return CompressionTier.DETAILED

    def shifted(self, delta: int) -> TierBoundaries:
        """
        平移边界。

        参数:
            delta: 负数让同一配额落入更丰富的档位，正数则相反

        返回:
            新的 TierBoundaries（下界截断为 0）
        """
        return TierBoundaries(
            ultra_max=max(0, self.ultra_max + delta),
            standard_max=max(0, self.standard_max + delta),
        )


@dataclass(frozen=True)
class CompressedCluster:
    """
    单个簇的压缩结果。

    属性:
        name: 簇名
        text: 压缩后的文本（可能为空）
        tier: 使用的档位
        tokens: 文本的 Token 数
        allocation: 该簇的配额
        weight: 分配时的有效权重（预算裁剪时据此排序）
        attributes_kept: 文本中保留的属性数
        attributes_available: 簇中可用的属性数
        truncated: 是否发生了字符级截断
    """

    name: str
    text: str
    tier: CompressionTier
    tokens: int
    allocation: int
    weight: float = 0.0
    attributes_kept: int = 0
    attributes_available: int = 0
    truncated: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.text


class TierRenderer(Protocol):
    """
    档位渲染器协议。

    # [Design Decision] 使用 Protocol 而非抽象基类，
    # 自定义渲染器无需继承即可替换内置档位。
    """

    @property
    def tier(self) -> CompressionTier:
        """对应的档位。"""
        ...

    def select(self, items: list[tuple[str, object]]) -> list[tuple[str, object]]:
        """从有序属性中挑出本档位保留的属性。"""
        ...

    def render(self, items: list[tuple[str, object]]) -> str:
        """把属性渲染为文本。"""
        ...
