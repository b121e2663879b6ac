"""
后台调优调度器 — 周期性执行 AnalyticsService.refresh()。

调度器是一个显式的 asyncio 任务：start() 创建，stop() 取消并等待退出。
compress() 永远不等待它。

用法::

    async with TuningScheduler(service, interval=30):
        ...  # 期间每 30 秒刷新一次指标
"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType

from profile_forge.analytics.service import AnalyticsService

logger = logging.getLogger(__name__)


class TuningScheduler:
    """
    周期性刷新调度器。

    参数:
        service: 分析服务
        interval: 刷新周期（秒），None 时使用 service.config.refresh_interval_seconds
    """

    def __init__(self, service: AnalyticsService, interval: float | None = None) -> None:
        self.service = service
        self.interval = interval if interval is not None else service.config.refresh_interval_seconds
        if self.interval <= 0:
            raise ValueError(f"interval 必须为正数，实际为 {self.interval}")
        self._task: asyncio.Task[None] | None = None
        self.runs = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """启动后台任务（已运行时不重复启动）。"""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="profile-forge-tuning")
        logger.info("后台调优已启动，周期 %.1fs。", self.interval)

    async def stop(self) -> None:
        """取消后台任务并等待其退出。"""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("后台调优已停止（共刷新 %d 次）。", self.runs)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.service.refresh()
            except Exception:
                logger.exception("指标刷新失败，下一个周期重试。")
            self.runs += 1

    async def __aenter__(self) -> TuningScheduler:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()
