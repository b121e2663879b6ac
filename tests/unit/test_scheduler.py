"""
后台调优调度器单元测试。

覆盖范围:
- analytics/scheduler.py: TuningScheduler
"""

from __future__ import annotations

import asyncio

import pytest

from profile_forge.analytics import AnalyticsService, TuningScheduler


class FlakyService(AnalyticsService):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def refresh(self):
        self.calls += 1
        raise RuntimeError("refresh failed")


class TestTuningScheduler:
    """TuningScheduler 测试。"""

    def test_invalid_interval(self, analytics: AnalyticsService) -> None:
        """测试非正数周期被拒绝。"""
        with pytest.raises(ValueError, match="interval"):
            TuningScheduler(analytics, interval=0)

    def test_default_interval_from_config(self, analytics: AnalyticsService) -> None:
        """测试默认周期来自分析配置。"""
        assert TuningScheduler(analytics).interval == analytics.config.refresh_interval_seconds

    @pytest.mark.asyncio
    async def test_periodic_refresh(self, analytics: AnalyticsService) -> None:
        """测试后台任务周期性刷新指标。"""
        scheduler = TuningScheduler(analytics, interval=0.01)
        await scheduler.start()
        assert scheduler.is_running
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert not scheduler.is_running
        assert scheduler.runs >= 1
        assert analytics.optimization_status()["refresh_count"] >= 1

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, analytics: AnalyticsService) -> None:
        """测试重复启动不创建新任务。"""
        scheduler = TuningScheduler(analytics, interval=10)
        await scheduler.start()
        task = scheduler._task
        await scheduler.start()
        assert scheduler._task is task
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, analytics: AnalyticsService) -> None:
        """测试未启动时 stop() 是空操作。"""
        scheduler = TuningScheduler(analytics, interval=1)
        await scheduler.stop()
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_context_manager(self, analytics: AnalyticsService) -> None:
        """测试 async with 自动启停。"""
        async with TuningScheduler(analytics, interval=0.01) as scheduler:
            assert scheduler.is_running
            await asyncio.sleep(0.05)
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_loop_alive(self) -> None:
        """测试刷新失败后下一个周期继续执行。"""
        service = FlakyService()
        scheduler = TuningScheduler(service, interval=0.01)
        await scheduler.start()
        await asyncio.sleep(0.1)
        assert scheduler.is_running
        await scheduler.stop()
        assert service.calls >= 2
