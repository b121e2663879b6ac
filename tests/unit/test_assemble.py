"""
Prompt Assembler 单元测试。

覆盖范围:
- pipeline/assemble.py: PromptAssembler, SECTION_LAYOUT
"""

from __future__ import annotations

import pytest

from profile_forge.compress import CompressedCluster, CompressionTier
from profile_forge.models.budget import CompressionStrategy
from profile_forge.pipeline import SECTION_LAYOUT, PromptAssembler


def _cc(name: str, text: str, weight: float = 0.5) -> CompressedCluster:
    return CompressedCluster(
        name=name,
        text=text,
        tier=CompressionTier.STANDARD,
        tokens=len(text) // 4,
        allocation=30,
        weight=weight,
        attributes_kept=1 if text else 0,
    )


@pytest.fixture
def compressed() -> dict[str, CompressedCluster]:
    return {
        "core": _cc("core", "curious"),
        "dynamic": _cc("dynamic", "mood:focused"),
        "predictive": _cc("predictive", "needs:examples"),
        "emotional": _cc("emotional", ""),
        "cognitive": _cc("cognitive", "systematic"),
    }


class TestPromptAssembler:
    """PromptAssembler 测试。"""

    def test_section_order_and_separators(self, compressed) -> None:
        """测试段落顺序、簇分隔符与段落分隔符。"""
        text = PromptAssembler().assemble(compressed, CompressionStrategy.BALANCED)
        assert text == "PROFILE: curious | systematic\nCURRENT STATE: mood:focused"

    def test_excluded_cluster_skipped(self, compressed) -> None:
        """测试被策略排除的簇即使有文本也不出现。"""
        text = PromptAssembler().assemble(compressed, CompressionStrategy.BALANCED)
        assert "GUIDANCE:" not in text
        assert "needs:examples" not in text

    def test_comprehensive_includes_guidance(self, compressed) -> None:
        """测试 comprehensive 策略输出 GUIDANCE 段。"""
        text = PromptAssembler().assemble(compressed, CompressionStrategy.COMPREHENSIVE)
        assert text.splitlines()[-1] == "GUIDANCE: needs:examples"

    def test_empty_sections_omitted(self) -> None:
        """测试没有内容的段落不输出标签。"""
        text = PromptAssembler().assemble(
            {"contextual": _cc("contextual", "topic:python")}, CompressionStrategy.MINIMAL
        )
        assert text == "CONTEXT: topic:python"

    def test_nothing_to_assemble(self) -> None:
        """测试没有任何内容时返回空串。"""
        assert PromptAssembler().assemble({}, CompressionStrategy.BALANCED) == ""

    def test_rendered_clusters(self, compressed) -> None:
        """测试实际出现的簇按段落顺序列出。"""
        rendered = PromptAssembler().rendered_clusters(compressed, CompressionStrategy.BALANCED)
        assert rendered == ["core", "cognitive", "dynamic"]

    def test_layout_covers_every_cluster_once(self) -> None:
        """测试段落布局恰好覆盖七个簇。"""
        names = [name for _, members in SECTION_LAYOUT for name in members]
        assert sorted(names) == sorted(
            ["core", "dynamic", "contextual", "predictive", "behavioral", "emotional", "cognitive"]
        )
