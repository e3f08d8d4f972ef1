"""
Binance 数据源
  - binance-futures : USDT-M 永续，仅保留 exchangeInfo 中 TRADING 状态的合约（排除已下架 / 待下架）
  - binance-alpha   : 同一份合约行情，仅保留 Binance Alpha 代币列表中的币种
"""

import logging
import re
from typing import Dict, List, Optional, Set

import pandas as pd

from volume_service.layers.cache import FreshnessCache
from volume_service.sources.base import SourceAdapter

logger = logging.getLogger(__name__)

_QUOTE = "USDT"
_ALPHA_TOKEN_LIST_PATH = "/bapi/defi/v1/public/wallet-direct/buw/wallet/cex/alpha/all/token/list"

# 合约常见的数量级前缀，如 1000PEPEUSDT
_MULTIPLIER_PREFIX = re.compile(r"^(1000000|10000|1000|1M)(?=[A-Z])")


class BinanceTickerAdapter(SourceAdapter):
    """USDT-M 合约 24h 行情的公共部分，子类决定过滤方式"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._base_url = self._settings.BINANCE_FUTURES_BASE_URL

    async def _fetch_tickers(self) -> List[dict]:
        payload = await self._acq.get_json(f"{self._base_url}/fapi/v1/ticker/24hr")
        return self._expect_list(payload, "ticker/24hr")

    @staticmethod
    def _to_row(ticker: dict, display_name: Optional[str] = None) -> dict:
        return {
            "symbol": ticker.get("symbol"),
            "display_name": display_name,
            "last_price": ticker.get("lastPrice"),
            "price_change_percent": ticker.get("priceChangePercent"),
            "quote_volume": ticker.get("quoteVolume"),
            "volume": ticker.get("volume"),
            "high_price": ticker.get("highPrice"),
            "low_price": ticker.get("lowPrice"),
            "weighted_avg_price": ticker.get("weightedAvgPrice"),
            "trade_count": ticker.get("count"),
        }


class BinanceFuturesAdapter(BinanceTickerAdapter):
    source_id = "binance-futures"
    label = "Binance USDT-M Futures"
    route = "/api/volume/top100"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._symbols_cache: FreshnessCache[Set[str]] = FreshnessCache(
            self._settings.SYMBOL_LIST_CACHE_TTL, clock=self._clock
        )

    async def fetch_frame(self) -> pd.DataFrame:
        allowed = await self._load_auxiliary("exchangeInfo", self._symbols_cache, self._fetch_active_symbols)
        await self._pause()
        tickers = await self._fetch_tickers()

        rows = []
        for t in tickers:
            symbol = str(t.get("symbol", ""))
            if not symbol.endswith(_QUOTE):
                continue
            if allowed is not None and symbol not in allowed:
                continue
            rows.append(self._to_row(t))
        return self._proc.normalize_tickers(rows)

    async def _fetch_active_symbols(self) -> Set[str]:
        payload = await self._acq.get_json(f"{self._base_url}/fapi/v1/exchangeInfo")
        symbols = {
            s["symbol"]
            for s in payload["symbols"]
            if s.get("status") == "TRADING" and s["symbol"].endswith(_QUOTE)
        }
        logger.info(f"✅ [{self.source_id}] 活跃合约数: {len(symbols)} (USDT-M TRADING)")
        return symbols


class BinanceAlphaAdapter(BinanceTickerAdapter):
    """Binance Alpha 代币对应的 USDT-M 合约"""

    source_id = "binance-alpha"
    label = "Binance Alpha Futures"
    route = "/api/binance/alpha/top100"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._web_base_url = self._settings.BINANCE_WEB_BASE_URL
        self._tokens_cache: FreshnessCache[Dict[str, str]] = FreshnessCache(
            self._settings.TOKEN_LIST_CACHE_TTL, clock=self._clock
        )

    async def fetch_frame(self) -> pd.DataFrame:
        tokens = await self._load_auxiliary("Alpha 代币列表", self._tokens_cache, self._fetch_alpha_tokens)
        await self._pause()
        tickers = await self._fetch_tickers()

        rows = []
        for t in tickers:
            symbol = str(t.get("symbol", ""))
            if not symbol.endswith(_QUOTE):
                continue
            display_name = None
            if tokens is not None:
                base = alpha_base(symbol[: -len(_QUOTE)], tokens)
                if base is None:
                    continue
                name = tokens[base]
                if name and name.upper() != base:
                    display_name = name
            rows.append(self._to_row(t, display_name))
        return self._proc.normalize_tickers(rows)

    async def _fetch_alpha_tokens(self) -> Dict[str, str]:
        """返回 {代币符号(大写): 代币名称}"""
        payload = await self._acq.get_json(f"{self._web_base_url}{_ALPHA_TOKEN_LIST_PATH}")
        data = self._expect_list(payload.get("data"), "alpha token list")
        tokens = {
            str(item["symbol"]).upper(): str(item.get("name") or "")
            for item in data
            if item.get("symbol")
        }
        logger.info(f"✅ [{self.source_id}] Alpha 代币数: {len(tokens)}")
        return tokens


def alpha_base(base: str, tokens: Dict[str, str]) -> Optional[str]:
    """合约基础币种匹配 Alpha 代币，兼容 1000XXX 这类数量级前缀"""
    if base in tokens:
        return base
    stripped = _MULTIPLIER_PREFIX.sub("", base)
    if stripped != base and stripped in tokens:
        return stripped
    return None
