"""
测试套件共享 Fixtures 和配置。

本文件定义了所有测试中可复用的 fixtures、固定时钟和记录构造函数。
"""

from __future__ import annotations

import copy
from typing import Any

import pytest

from profile_forge import ProfileForge
from profile_forge.analytics import AnalyticsService
from profile_forge.clustering import ClusteringEngine
from profile_forge.config.schema import PolicyConfig
from profile_forge.models.cluster import Cluster
from profile_forge.models.context import IntelligenceContext
from profile_forge.models.record import CompressionRecord
from profile_forge.tokenizer import CharBasedCounter

EPOCH = 1_700_000_000.0

RICH_PROFILE: dict[str, Any] = {
    "personality": {
        "dominant_traits": ["curious", "analytical", "methodical"],
        "values": ["clarity", "autonomy"],
    },
    "communication": {"tone": "direct", "verbosity": "concise", "formality": "casual"},
    "current_state": {"mood": "focused", "energy": "high"},
    "context": {
        "current_moment": "debugging a technical design problem",
        "recent_topics": ["python", "system design", "caching"],
        "goals": ["ship the feature this week"],
    },
    "behavior": {
        "patterns": ["asks follow-up questions", "prefers examples"],
        "decision_style": "data-driven",
        "likely_next": "deep-dive-question",
    },
    "emotional": {"baseline": "calm", "recent_shifts": ["mild frustration"]},
    "cognitive": {"style": "systematic", "problem_solving": "decomposition"},
}


class FakeClock:
    """可手动推进的固定时钟（epoch 秒）。"""

    def __init__(self, start: float = EPOCH) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_record(**overrides: Any) -> CompressionRecord:
    """构造一条压缩记录，字段可按需覆盖。"""
    fields: dict[str, Any] = {
        "record_id": "rec-1",
        "timestamp": EPOCH,
        "model": "gpt-4o",
        "interaction_type": "question",
        "strategy": "balanced",
        "token_budget": 120,
        "actual_tokens": 100,
        "compression_ratio": 0.6,
        "quality_score": 0.9,
        "efficiency": 0.8,
        "processing_time_ms": 10.0,
    }
    fields.update(overrides)
    return CompressionRecord(**fields)


# === 数据 Fixtures ===


@pytest.fixture
def rich_profile() -> dict[str, Any]:
    """七个分组都有内容的画像（深拷贝，测试间互不影响）。"""
    return copy.deepcopy(RICH_PROFILE)


@pytest.fixture
def rich_context(rich_profile: dict[str, Any]) -> IntelligenceContext:
    return IntelligenceContext.from_raw(rich_profile)


@pytest.fixture
def rich_clusters(rich_profile: dict[str, Any]) -> dict[str, Cluster]:
    """rich_profile 在 question / 复杂度 6 下的聚类结果。"""
    return ClusteringEngine().cluster(rich_profile, "question", 6)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def counter() -> CharBasedCounter:
    return CharBasedCounter()


# === 组件 Fixtures ===


@pytest.fixture
def policy() -> PolicyConfig:
    return PolicyConfig()


@pytest.fixture
def analytics(clock: FakeClock) -> AnalyticsService:
    return AnalyticsService(clock=clock)


@pytest.fixture
def forge(policy: PolicyConfig, counter: CharBasedCounter, clock: FakeClock) -> ProfileForge:
    """使用确定性字符计数器和固定时钟的 ProfileForge。"""
    return ProfileForge(policy=policy, counter=counter, clock=clock)


@pytest.fixture
def record_factory():
    """make_record 的 fixture 形式，测试模块无需导入 conftest。"""
    return make_record
