"""Bitget 现物数据源（v2 公共接口）"""

import logging
from typing import List, Set

import pandas as pd

from volume_service.errors import UpstreamError
from volume_service.layers.cache import FreshnessCache
from volume_service.sources.base import SourceAdapter

logger = logging.getLogger(__name__)

_QUOTE = "USDT"
_OK_CODE = "00000"


class BitgetSpotAdapter(SourceAdapter):
    source_id = "bitget-spot"
    label = "Bitget Spot"
    route = "/api/bitget/spot/top100"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._base_url = self._settings.BITGET_BASE_URL
        self._symbols_cache: FreshnessCache[Set[str]] = FreshnessCache(
            self._settings.SYMBOL_LIST_CACHE_TTL, clock=self._clock
        )

    async def fetch_frame(self) -> pd.DataFrame:
        allowed = await self._load_auxiliary("交易对列表", self._symbols_cache, self._fetch_online_symbols)
        await self._pause()
        tickers = await self._fetch_tickers()

        rows = []
        for t in tickers:
            symbol = str(t.get("symbol", ""))
            if not symbol.endswith(_QUOTE):
                continue
            if allowed is not None and symbol not in allowed:
                continue
            rows.append({
                "symbol": symbol,
                "last_price": t.get("lastPr"),
                "price_change_percent": t.get("change24h"),
                "quote_volume": t.get("quoteVolume"),
                "volume": t.get("baseVolume"),
                "high_price": t.get("high24h"),
                "low_price": t.get("low24h"),
            })
        # change24h 为小数（0.0123 = 1.23%）
        return self._proc.normalize_tickers(rows, change_scale=100.0)

    async def _fetch_online_symbols(self) -> Set[str]:
        payload = await self._acq.get_json(f"{self._base_url}/api/v2/spot/public/symbols")
        data = self._unwrap(payload, "spot/public/symbols")
        symbols = {
            s["symbol"]
            for s in data
            if s.get("status") == "online" and s.get("quoteCoin") == _QUOTE
        }
        logger.info(f"✅ [{self.source_id}] 在线交易对数: {len(symbols)}")
        return symbols

    async def _fetch_tickers(self) -> List[dict]:
        payload = await self._acq.get_json(f"{self._base_url}/api/v2/spot/market/tickers")
        return self._unwrap(payload, "spot/market/tickers")

    def _unwrap(self, payload: dict, what: str) -> List[dict]:
        code = str(payload.get("code"))
        if code != _OK_CODE:
            raise UpstreamError(self.source_id, f"{what} 返回错误码 {code}: {payload.get('msg')}")
        return self._expect_list(payload.get("data"), what)
