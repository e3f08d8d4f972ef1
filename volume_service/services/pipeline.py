"""
刷新管道
整合数据获取、缓存、快照三层：每个数据源一份时效缓存，全部数据源共用一个快照历史。
PipelineState 在应用启动时构建一次，经 app.state 传给调度器与查询服务。
"""

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

import httpx

from volume_service.config import VolumeServiceSettings, settings as default_settings
from volume_service.errors import UnknownSource, UpstreamError
from volume_service.layers.acquisition import AcquisitionLayer
from volume_service.layers.cache import FreshnessCache
from volume_service.layers.history import SnapshotStore
from volume_service.models.ticker import FetchResult, Snapshot
from volume_service.sources import SourceAdapter, build_adapters

logger = logging.getLogger(__name__)


@dataclass
class SourceState:
    """单个数据源的运行时状态，只由该数据源自己的刷新路径写入"""

    adapter: SourceAdapter
    cache: FreshnessCache[FetchResult]
    last_error: Optional[str] = None
    last_attempt_at: Optional[float] = None
    fetch_count: int = field(default=0)
    generation: int = field(default=0)       # 每次成功写入缓存后递增
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


@dataclass
class RefreshOutcome:
    result: FetchResult
    fresh: bool        # 本次是否真正拉取到了新数据


class PipelineState:
    """全部数据源的缓存与快照"""

    def __init__(
        self,
        adapters: List[SourceAdapter],
        settings: VolumeServiceSettings = default_settings,
        clock: Callable[[], float] = time.time,
    ):
        self._clock = clock
        self.started_at = clock()
        self.tz = ZoneInfo(settings.TZ)
        self.sources: "OrderedDict[str, SourceState]" = OrderedDict(
            (
                adapter.source_id,
                SourceState(
                    adapter=adapter,
                    cache=FreshnessCache(settings.TICKER_CACHE_TTL, clock=clock),
                ),
            )
            for adapter in adapters
        )
        self.snapshots = SnapshotStore(
            max_size=settings.SNAPSHOT_HISTORY_SIZE, tz=self.tz, clock=clock
        )

    @property
    def source_ids(self) -> List[str]:
        return list(self.sources)

    def now(self) -> float:
        return self._clock()

    def get_source(self, source_id: str) -> SourceState:
        try:
            return self.sources[source_id]
        except KeyError:
            raise UnknownSource(source_id) from None

    # ── 刷新 ──────────────────────────────────────────────

    async def refresh(self, source_id: str, force: bool = False) -> RefreshOutcome:
        """
        刷新单个数据源

        缓存有效且未强制刷新时直接返回缓存，不访问上游；
        上游失败时回退到上一次的结果（可能已过期），没有任何结果时抛出 UpstreamError。
        同一数据源同时只有一个拉取在进行，等待中的调用直接复用刚写入的结果。
        """
        state = self.get_source(source_id)
        if not force and state.cache.is_valid():
            logger.debug(f"[{source_id}] 缓存命中")
            return RefreshOutcome(result=state.cache.get(), fresh=False)

        seen = state.generation
        async with state.lock:
            if state.generation != seen:
                # 等待期间已有新结果写入；强制刷新的调用方视其为本次拉取的新数据
                logger.debug(f"[{source_id}] 复用并发拉取的结果")
                return RefreshOutcome(result=state.cache.get(), fresh=force)
            if not force and state.cache.is_valid():
                return RefreshOutcome(result=state.cache.get(), fresh=False)

            state.last_attempt_at = self._clock()
            state.fetch_count += 1
            try:
                result = await state.adapter.fetch()
            except UpstreamError as exc:
                state.last_error = str(exc)
                cached = state.cache.get()
                if cached is not None:
                    logger.warning(f"⚠️ [{source_id}] 拉取失败，返回旧数据: {exc}")
                    return RefreshOutcome(result=cached, fresh=False)
                raise

            state.cache.set(result)
            state.generation += 1
            state.last_error = None
            return RefreshOutcome(result=result, fresh=True)

    def record_snapshot(self, source_id: str) -> Optional[Snapshot]:
        """以当前缓存结果生成一条快照（仅由定时刷新调用）"""
        result = self.get_source(source_id).cache.get()
        if result is None:
            return None
        return self.snapshots.record(source_id, result)

    def history(self, source_id: str) -> List[Snapshot]:
        self.get_source(source_id)
        return self.snapshots.history(source_id)

    def status(self) -> Dict[str, dict]:
        """各数据源的就绪状态（供健康检查）"""
        result: Dict[str, dict] = {}
        for source_id, state in self.sources.items():
            cache = state.cache
            degraded = state.adapter.degraded
            result[source_id] = {
                "hasData": cache.has_value(),
                "snapshotCount": self.snapshots.count(source_id),
                "lastUpdate": None if cache.stored_at is None else int(cache.stored_at * 1000),
                "fresh": cache.is_valid(),
                "fetchCount": state.fetch_count,
                "lastAttempt": None if state.last_attempt_at is None else int(state.last_attempt_at * 1000),
                "lastError": state.last_error,
                "degraded": [d.message for d in degraded] or None,
            }
        return result


def build_pipeline(
    client: httpx.AsyncClient,
    settings: VolumeServiceSettings = default_settings,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PipelineState:
    """按配置构建全部适配器与管道状态（应用启动时调用一次）"""
    acquisition = AcquisitionLayer(client, settings=settings, sleep=sleep)
    adapters = build_adapters(acquisition, settings=settings, clock=clock)
    return PipelineState(adapters, settings=settings, clock=clock)
