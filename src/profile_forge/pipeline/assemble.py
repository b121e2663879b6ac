"""
Prompt Assembler — 把压缩后的簇按固定段落组装为提示文本。

段落顺序与标签固定：

1. ``PROFILE:``        core, cognitive
2. ``CURRENT STATE:``  dynamic, emotional
3. ``CONTEXT:``        contextual
4. ``BEHAVIOR:``       behavioral
5. ``GUIDANCE:``       predictive

段落之间以换行分隔，同一段落内的簇以 `` | `` 连接。
空簇和被策略排除的簇整体跳过，没有内容的段落不输出标签。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from profile_forge.budget.strategies import is_excluded
from profile_forge.compress.base import CompressedCluster
from profile_forge.config.schema import AllocationConfig
from profile_forge.models.budget import CompressionStrategy

logger = logging.getLogger(__name__)

SECTION_LAYOUT: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("PROFILE:", ("core", "cognitive")),
    ("CURRENT STATE:", ("dynamic", "emotional")),
    ("CONTEXT:", ("contextual",)),
    ("BEHAVIOR:", ("behavioral",)),
    ("GUIDANCE:", ("predictive",)),
)

CLUSTER_SEPARATOR = " | "
SECTION_SEPARATOR = "\n"


class PromptAssembler:
    """
    提示组装器。

    用法::

        assembler = PromptAssembler()
        text = assembler.assemble(compressed, CompressionStrategy.BALANCED)
        # "PROFILE: curious | style:systematic\\nCURRENT STATE: mood:focused"

    参数:
        config: 分配配置（用于判断策略排除的簇）
    """

    def __init__(self, config: AllocationConfig | None = None) -> None:
        self.config = config or AllocationConfig()

    def sections(
        self,
        compressed: Mapping[str, CompressedCluster],
        strategy: CompressionStrategy,
    ) -> list[tuple[str, list[str]]]:
        """
        计算非空段落。

        返回:
            [(段落标签, [簇名, ...]), ...]，只包含有内容的段落
        """
        result: list[tuple[str, list[str]]] = []
        for label, names in SECTION_LAYOUT:
            members = [
                name
                for name in names
                if name in compressed
                and not compressed[name].is_empty
                and not is_excluded(name, strategy, self.config)
            ]
            if members:
                result.append((label, members))
        return result

    def assemble(
        self,
        compressed: Mapping[str, CompressedCluster],
        strategy: CompressionStrategy,
    ) -> str:
        """
        组装提示文本。

        参数:
            compressed: 簇名 → 压缩结果
            strategy: 压缩策略

        返回:
            提示文本（没有任何内容时为空字符串）
        """
        lines = [
            f"{label} {CLUSTER_SEPARATOR.join(compressed[name].text for name in members)}"
            for label, members in self.sections(compressed, strategy)
        ]
        return SECTION_SEPARATOR.join(lines)

    def rendered_clusters(
        self,
        compressed: Mapping[str, CompressedCluster],
        strategy: CompressionStrategy,
    ) -> list[str]:
        """实际出现在提示中的簇名（按段落顺序）。"""
        return [name for _, members in self.sections(compressed, strategy) for name in members]
