"""
聚类引擎 — 把画像属性树切分为七个加权语义簇。

每个簇携带三个分数：
- priority：类别基础优先级（配置表）
- reliability：期望源路径中实际出现的比例；一个都没有时取声明默认值
- richness：min(1, 属性条目数 / 饱和点)，只统计原始数据

缺失的画像得到七个空簇，从不抛异常。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from profile_forge.clustering.extractors import (
    DEFAULT_CLUSTER_SPECS,
    ClusterSpec,
    count_attributes,
)
from profile_forge.config.schema import ClusteringConfig
from profile_forge.models.cluster import CLUSTER_ORDER, Cluster, ClusterName
from profile_forge.models.context import IntelligenceContext

logger = logging.getLogger(__name__)


class ClusteringEngine:
    """
    聚类引擎。

    用法::

        engine = ClusteringEngine()
        clusters = engine.cluster(context, "question", complexity=6)
        clusters["core"].content      # {"primary_trait": "curious", ...}
        clusters["core"].richness     # 0.4

    参数:
        config: 聚类配置（基础优先级、默认可靠度、丰富度饱和点）
        specs: 自定义抽取规则表，未提供的类别使用默认规则
    """

    def __init__(
        self,
        config: ClusteringConfig | None = None,
        specs: Mapping[ClusterName, ClusterSpec] | None = None,
    ) -> None:
        self.config = config or ClusteringConfig()
        self._specs: dict[ClusterName, ClusterSpec] = dict(DEFAULT_CLUSTER_SPECS)
        if specs:
            self._specs.update(specs)

    def cluster(
        self,
        context: IntelligenceContext | Mapping[str, Any] | None,
        interaction_type: str = "standard",
        complexity: float = 5.0,
    ) -> dict[str, Cluster]:
        """
        对画像执行聚类。

        参数:
            context: 画像（映射、属性树或 None）
            interaction_type: 交互类型，用于派生属性
            complexity: 复杂度，截断到 [0, 10]

        返回:
            簇名 → Cluster，按固定簇顺序排列，七个类别全部存在
        """
        ctx = IntelligenceContext.from_raw(context)
        complexity = min(10.0, max(0.0, float(complexity)))

        clusters: dict[str, Cluster] = {}
        for name in CLUSTER_ORDER:
            clusters[name.value] = self._build(self._specs[name], ctx, interaction_type, complexity)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "聚类完成：%s",
                {name: round(c.richness, 2) for name, c in clusters.items()},
            )
        return clusters

    def _build(
        self,
        spec: ClusterSpec,
        context: IntelligenceContext,
        interaction_type: str,
        complexity: float,
    ) -> Cluster:
        name = spec.name.value
        content: dict[str, Any] = {}
        attribute_count = 0

        for rule in spec.rules:
            if spec.rules_in_content:
                value = rule.extract(context)
                if value is None:
                    continue
                content[rule.attribute] = value
                attribute_count += count_attributes(value)
            else:
                attribute_count += count_attributes(rule.raw(context))

        expected = spec.expected_sources
        present = sum(1 for source in expected if context.has(source))
        if present:
            reliability = present / len(expected)
        else:
            reliability = self.config.default_reliability.get(name, 0.5)

        if spec.derive is not None:
            for key, value in spec.derive(context, interaction_type, complexity).items():
                content.setdefault(key, value)

        richness = min(1.0, attribute_count / self.config.richness_saturation)

        return Cluster(
            name=spec.name,
            content=content,
            priority=self.config.base_priority.get(name, 0.5),
            reliability=reliability,
            richness=richness,
            attribute_count=attribute_count,
        )
