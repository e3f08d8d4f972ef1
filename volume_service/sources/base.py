"""
数据源适配器基类

每个适配器负责一家交易所 / 一个市场：
  1. 拉取辅助数据（交易对白名单、代币列表等），独立缓存，失败时沿用上次结果或不做过滤
  2. 拉取 24h 行情
  3. 过滤报价币种 / 白名单
  4. 交给处理层做单位换算与排名
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import httpx
import pandas as pd

from volume_service.config import VolumeServiceSettings, settings as default_settings
from volume_service.errors import AuxiliaryDataDegraded, UpstreamError
from volume_service.layers.acquisition import AcquisitionLayer
from volume_service.layers.cache import FreshnessCache
from volume_service.layers.processing import ProcessingLayer, get_processing_layer
from volume_service.models.ticker import FetchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 请求失败或响应结构不符合预期时可能出现的异常
UPSTREAM_FAILURES = (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError)
AUX_FAILURES = (UpstreamError,) + UPSTREAM_FAILURES


class SourceAdapter(ABC):
    """数据源适配器：fetch() 返回 FetchResult 或抛出 UpstreamError"""

    source_id: str = ""
    label: str = ""
    route: str = ""
    native_currency: str = "USD"

    def __init__(
        self,
        acquisition: AcquisitionLayer,
        settings: VolumeServiceSettings = default_settings,
        processor: Optional[ProcessingLayer] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._acq = acquisition
        self._settings = settings
        self._proc = processor or get_processing_layer()
        self._clock = clock
        # 本次拉取中的全部降级记录
        self.degraded: List[AuxiliaryDataDegraded] = []

    # ── 对外接口 ──────────────────────────────────────────

    async def fetch(self) -> FetchResult:
        self.degraded = []
        try:
            df = await self.fetch_frame()
        except UpstreamError:
            raise
        except UPSTREAM_FAILURES as exc:
            raise UpstreamError(self.source_id, f"{type(exc).__name__}: {exc}", cause=exc) from exc

        records, total = self._proc.rank_by_volume(df, self._settings.TOP_N)
        result = FetchResult(
            records=records,
            fetched_at=int(self._clock() * 1000),
            total_considered=total,
        )
        logger.info(f"✅ [{self.source_id}] 数据更新完成: {len(records)} 个交易对 / 合计 {total}")
        return result

    def describe(self) -> dict:
        return {
            "id": self.source_id,
            "label": self.label,
            "endpoint": self.route,
            "nativeCurrency": self.native_currency,
            "currency": "USD",
        }

    # ── 子类实现 ──────────────────────────────────────────

    @abstractmethod
    async def fetch_frame(self) -> pd.DataFrame:
        """拉取并过滤行情，返回处理层标准化后的 DataFrame"""

    # ── 公共工具 ──────────────────────────────────────────

    async def _load_auxiliary(
        self,
        what: str,
        cache: FreshnessCache[T],
        loader: Callable[[], Awaitable[T]],
    ) -> Optional[T]:
        """
        读取辅助数据：缓存有效直接返回；否则重新拉取。
        拉取失败时记录降级，返回上次成功值（可能为 None，表示不做过滤）。
        """
        if cache.is_valid():
            return cache.get()
        try:
            value = await loader()
        except AUX_FAILURES as exc:
            fallback = cache.get()
            action = "沿用上次结果" if fallback is not None else "不做过滤"
            self._degrade(what, exc, action)
            return fallback
        cache.set(value)
        return value

    def _degrade(self, what: str, cause: Optional[BaseException] = None, action: str = "") -> None:
        record = AuxiliaryDataDegraded(self.source_id, what, cause)
        self.degraded.append(record)
        logger.warning(f"⚠️ {record}" + (f"（{action}）" if action else ""))

    async def _pause(self) -> None:
        """辅助请求与行情请求之间的间隔"""
        delay = self._settings.AUX_REQUEST_DELAY
        if delay > 0:
            await self._acq.sleep(delay)

    def _expect_list(self, payload: Any, what: str) -> List[Any]:
        if not isinstance(payload, list):
            raise UpstreamError(
                self.source_id,
                f"{what} 响应结构异常: 期望 list，实际 {type(payload).__name__}",
            )
        return payload
