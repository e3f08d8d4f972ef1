"""
Upbit KRW 现物数据源

价格 / 成交额均为 KRW，用同批次 KRW-USDT 行情的价格 P 换算为 USD（usd = krw / P）；
同批次缺少该行情时使用配置的兜底汇率。交易对统一写作 BTCUSDT 形式。
"""

import logging
import math
from typing import Dict, List, Tuple

import pandas as pd

from volume_service.layers.cache import FreshnessCache
from volume_service.sources.base import SourceAdapter

logger = logging.getLogger(__name__)

_PREFIX = "KRW-"
_RATE_MARKET = "KRW-USDT"


class UpbitSpotAdapter(SourceAdapter):
    source_id = "upbit-spot"
    label = "Upbit KRW Spot"
    route = "/api/upbit/spot/top100"
    native_currency = "KRW"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._base_url = self._settings.UPBIT_BASE_URL
        self._markets_cache: FreshnessCache[Dict[str, str]] = FreshnessCache(
            self._settings.SYMBOL_LIST_CACHE_TTL, clock=self._clock
        )
        self.last_rate: float = self._settings.KRW_USD_FALLBACK_RATE

    async def fetch_frame(self) -> pd.DataFrame:
        markets = await self._load_auxiliary("市场列表", self._markets_cache, self._fetch_markets)
        await self._pause()
        tickers = await self._fetch_tickers()

        rate, from_batch = self.conversion_rate(tickers)
        self.last_rate = rate
        if not from_batch:
            self._degrade(f"{_RATE_MARKET} 汇率", action=f"使用兜底汇率 {rate}")

        rows = []
        for t in tickers:
            market = str(t.get("market", ""))
            if not market.startswith(_PREFIX) or market == _RATE_MARKET:
                continue
            if markets is not None and market not in markets:
                continue
            base = market[len(_PREFIX):]
            english_name = markets.get(market) if markets else None
            rows.append({
                "symbol": f"{base}USDT",
                "display_name": english_name if english_name and english_name.upper() != base else None,
                "last_price": t.get("trade_price"),
                "price_change_percent": t.get("signed_change_rate"),
                "quote_volume": t.get("acc_trade_price_24h"),
                "volume": t.get("acc_trade_volume_24h"),
                "high_price": t.get("high_price"),
                "low_price": t.get("low_price"),
            })
        # signed_change_rate 为小数
        return self._proc.normalize_tickers(rows, price_divisor=rate, change_scale=100.0)

    def describe(self) -> dict:
        info = super().describe()
        info["conversionRate"] = self.last_rate
        return info

    def conversion_rate(self, tickers: List[dict]) -> Tuple[float, bool]:
        """返回 (KRW/USD 汇率, 是否取自同批次行情)"""
        for t in tickers:
            if t.get("market") == _RATE_MARKET:
                try:
                    price = float(t.get("trade_price"))
                except (TypeError, ValueError):
                    break
                if math.isfinite(price) and price > 0:
                    return price, True
                break
        return self._settings.KRW_USD_FALLBACK_RATE, False

    async def _fetch_markets(self) -> Dict[str, str]:
        """返回 {KRW-XXX: 英文名}"""
        payload = await self._acq.get_json(f"{self._base_url}/v1/market/all", params={"isDetails": "false"})
        data = self._expect_list(payload, "market/all")
        markets = {
            m["market"]: str(m.get("english_name") or "")
            for m in data
            if str(m.get("market", "")).startswith(_PREFIX)
        }
        logger.info(f"✅ [{self.source_id}] KRW 市场数: {len(markets)}")
        return markets

    async def _fetch_tickers(self) -> List[dict]:
        payload = await self._acq.get_json(
            f"{self._base_url}/v1/ticker/all", params={"quote_currencies": "KRW"}
        )
        return self._expect_list(payload, "ticker/all")
