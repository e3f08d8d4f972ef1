"""
交易所数据源适配器
  binance-futures  Binance USDT-M 永续
  bitget-spot      Bitget 现物
  upbit-spot       Upbit KRW 现物（换算为 USD）
  binance-alpha    Binance Alpha 代币合约
"""

import time
from typing import Callable, Dict, List, Type

from volume_service.config import VolumeServiceSettings, settings as default_settings
from volume_service.layers.acquisition import AcquisitionLayer
from volume_service.sources.base import SourceAdapter
from volume_service.sources.binance import BinanceAlphaAdapter, BinanceFuturesAdapter
from volume_service.sources.bitget import BitgetSpotAdapter
from volume_service.sources.upbit import UpbitSpotAdapter

SOURCE_REGISTRY: Dict[str, Type[SourceAdapter]] = {
    cls.source_id: cls
    for cls in (BinanceFuturesAdapter, BitgetSpotAdapter, UpbitSpotAdapter, BinanceAlphaAdapter)
}


def build_adapters(
    acquisition: AcquisitionLayer,
    settings: VolumeServiceSettings = default_settings,
    clock: Callable[[], float] = time.time,
) -> List[SourceAdapter]:
    """按 ENABLED_SOURCES 的顺序实例化适配器，未知 id 直接报错"""
    unknown = [sid for sid in settings.ENABLED_SOURCES if sid not in SOURCE_REGISTRY]
    if unknown:
        raise ValueError(f"未知数据源: {', '.join(unknown)}")
    return [
        SOURCE_REGISTRY[sid](acquisition, settings=settings, clock=clock)
        for sid in settings.ENABLED_SOURCES
    ]


__all__ = [
    "SOURCE_REGISTRY",
    "SourceAdapter",
    "BinanceFuturesAdapter",
    "BinanceAlphaAdapter",
    "BitgetSpotAdapter",
    "UpbitSpotAdapter",
    "build_adapters",
]
