"""
刷新调度器
启动时立即刷新全部数据源一次，之后在每个整点（配置时区）再次刷新。
每轮按固定顺序逐个刷新，数据源之间间隔固定时间以避开上游限流；
每个拿到新数据的数据源记录一条快照，单个数据源失败只记录日志，不影响其余数据源。
"""

import asyncio
import logging
import math
from contextlib import suppress
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from volume_service.config import VolumeServiceSettings, settings as default_settings
from volume_service.errors import UpstreamError
from volume_service.services.pipeline import PipelineState

logger = logging.getLogger(__name__)

IDLE = "idle"
REFRESHING = "refreshing"


class RefreshScheduler:
    """两状态调度器：idle（等待下一个整点） / refreshing（逐个刷新数据源）"""

    def __init__(
        self,
        pipeline: PipelineState,
        settings: VolumeServiceSettings = default_settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._pipeline = pipeline
        self._interval = settings.SOURCE_INTERVAL_DELAY
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.state = IDLE
        self.passes = 0

    # ── 时间计算 ──────────────────────────────────────────

    def next_boundary(self, now: Optional[float] = None) -> float:
        """
        下一个整点的 epoch 秒

        按当前 UTC 偏移在绝对时间上推算，夏令时切换当天也不会跳过或重复整点。
        """
        if now is None:
            now = self._pipeline.now()
        offset = datetime.fromtimestamp(now, tz=self._pipeline.tz).utcoffset().total_seconds()
        local = now + offset
        return (math.floor(local / 3600) + 1) * 3600 - offset

    def seconds_until_next_hour(self, now: Optional[float] = None) -> float:
        if now is None:
            now = self._pipeline.now()
        return max(0.0, self.next_boundary(now) - now)

    # ── 刷新 ──────────────────────────────────────────────

    async def run_pass(self) -> Dict[str, bool]:
        """
        刷新全部数据源一轮，返回 {source_id: 是否记录了新快照}
        """
        self.state = REFRESHING
        outcomes: Dict[str, bool] = {}
        try:
            for idx, source_id in enumerate(self._pipeline.source_ids):
                if idx > 0 and self._interval > 0:
                    await self._sleep(self._interval)
                outcomes[source_id] = await self._refresh_one(source_id)
        finally:
            self.state = IDLE
            self.passes += 1
        ok = sum(outcomes.values())
        logger.info(f"🔄 第 {self.passes} 轮刷新完成: {ok}/{len(outcomes)} 个数据源已更新")
        return outcomes

    async def _refresh_one(self, source_id: str) -> bool:
        try:
            outcome = await self._pipeline.refresh(source_id, force=True)
        except UpstreamError as exc:
            logger.error(f"❌ [{source_id}] 刷新失败: {exc}")
            return False
        except Exception as exc:
            logger.error(f"❌ [{source_id}] 刷新出现未预期异常: {exc}", exc_info=True)
            return False
        if not outcome.fresh:
            return False
        self._pipeline.record_snapshot(source_id)
        return True

    async def run(self, max_passes: Optional[int] = None) -> None:
        """启动刷新 + 每小时整点刷新；max_passes 仅用于测试"""
        logger.info(f"🚀 启动刷新: {', '.join(self._pipeline.source_ids)}")
        await self.run_pass()
        while max_passes is None or self.passes < max_passes:
            target = self.next_boundary()
            logger.info(f"⏰ 下次刷新: {self.seconds_until_next_hour():.0f}s 后")
            await self._sleep_until(target)
            await self.run_pass()

    async def _sleep_until(self, target: float) -> None:
        # 醒得过早（时钟漂移）时补足剩余时间，保证快照时间落在整点之后
        while True:
            remaining = target - self._pipeline.now()
            if remaining <= 0:
                return
            await self._sleep(remaining)

    # ── 生命周期 ──────────────────────────────────────────

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="refresh-scheduler")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("调度器已停止")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
