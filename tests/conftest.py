"""
测试公共夹具：可控时钟 + 模拟交易所（httpx.MockTransport）
"""

import os
import sys
from collections import Counter
from datetime import datetime
from zoneinfo import ZoneInfo

import httpx
import pytest

# 确保仓库根目录在 sys.path
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from volume_service.config import VolumeServiceSettings  # noqa: E402

TZ = "Asia/Tokyo"
START = datetime(2026, 10, 18, 9, 30, 0, tzinfo=ZoneInfo(TZ)).timestamp()


class FakeClock:
    """可手动推进的时钟；sleep 不真正等待，只推进时间并记录等待时长"""

    def __init__(self, start: float = START):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# ─────────────────────────────────────────────────────────
# 模拟交易所响应
# ─────────────────────────────────────────────────────────

BINANCE_EXCHANGE_INFO = {
    "symbols": [
        {"symbol": "BTCUSDT", "status": "TRADING"},
        {"symbol": "ETHUSDT", "status": "TRADING"},
        {"symbol": "SOLUSDT", "status": "TRADING"},
        {"symbol": "KOGEUSDT", "status": "TRADING"},
        {"symbol": "1000CATUSDT", "status": "TRADING"},
        {"symbol": "BADUSDT", "status": "TRADING"},
        {"symbol": "DELISTEDUSDT", "status": "SETTLING"},
        {"symbol": "BTCUSDC", "status": "TRADING"},
    ]
}

BINANCE_TICKERS = [
    {"symbol": "SOLUSDT", "lastPrice": "150.5", "priceChangePercent": "3.10", "quoteVolume": "2000000000"},
    {"symbol": "BTCUSDT", "lastPrice": "65000.1", "priceChangePercent": "1.25", "quoteVolume": "9000000000",
     "volume": "138000.5", "highPrice": "66000", "lowPrice": "64000.5", "weightedAvgPrice": "65217.3", "count": "2500000"},
    {"symbol": "ETHUSDT", "lastPrice": "3000", "priceChangePercent": "-0.50", "quoteVolume": "5000000000"},
    {"symbol": "KOGEUSDT", "lastPrice": "48.2", "priceChangePercent": "0.00", "quoteVolume": "100000000"},
    {"symbol": "1000CATUSDT", "lastPrice": "0.012", "priceChangePercent": "-7.5", "quoteVolume": "50000000"},
    {"symbol": "BADUSDT", "lastPrice": "abc", "priceChangePercent": "1", "quoteVolume": "999999999999"},
    {"symbol": "DELISTEDUSDT", "lastPrice": "1", "priceChangePercent": "0", "quoteVolume": "8000000000"},
    {"symbol": "BTCUSDC", "lastPrice": "65000", "priceChangePercent": "1.2", "quoteVolume": "10000000000"},
]

ALPHA_TOKENS = {
    "code": "000000",
    "success": True,
    "data": [
        {"symbol": "KOGE", "name": "BNB48 Club Token", "alphaId": "ALPHA_1"},
        {"symbol": "CAT", "name": "cat", "alphaId": "ALPHA_2"},
        {"symbol": "NOFUT", "name": "No Futures", "alphaId": "ALPHA_3"},
    ],
}

BITGET_SYMBOLS = {
    "code": "00000",
    "msg": "success",
    "data": [
        {"symbol": "BTCUSDT", "quoteCoin": "USDT", "status": "online"},
        {"symbol": "ETHUSDT", "quoteCoin": "USDT", "status": "online"},
        {"symbol": "XYZUSDT", "quoteCoin": "USDT", "status": "offline"},
        {"symbol": "ETHBTC", "quoteCoin": "BTC", "status": "online"},
    ],
}

BITGET_TICKERS = {
    "code": "00000",
    "msg": "success",
    "data": [
        {"symbol": "BTCUSDT", "lastPr": "65000", "change24h": "0.0125", "quoteVolume": "1000000",
     "baseVolume": "15.4", "high24h": "65500", "low24h": "64100"},
        {"symbol": "ETHUSDT", "lastPr": "3000", "change24h": "-0.02", "quoteVolume": "2000000"},
        {"symbol": "XYZUSDT", "lastPr": "1", "change24h": "0.5", "quoteVolume": "9000000"},
        {"symbol": "ETHBTC", "lastPr": "0.05", "change24h": "0", "quoteVolume": "90000000"},
    ],
}

UPBIT_MARKETS = [
    {"market": "KRW-BTC", "korean_name": "비트코인", "english_name": "Bitcoin"},
    {"market": "KRW-ETH", "korean_name": "이더리움", "english_name": "Ethereum"},
    {"market": "KRW-USDT", "korean_name": "테더", "english_name": "Tether"},
    {"market": "KRW-SUI", "korean_name": "수이", "english_name": "Sui"},
    {"market": "BTC-ETH", "korean_name": "이더리움", "english_name": "Ethereum"},
]

UPBIT_TICKERS = [
    {"market": "KRW-BTC", "trade_price": 91000000, "signed_change_rate": 0.01, "acc_trade_price_24h": 140000000000,
     "acc_trade_volume_24h": 1540.2, "high_price": 92400000, "low_price": 89600000},
    {"market": "KRW-ETH", "trade_price": 4200000, "signed_change_rate": -0.005, "acc_trade_price_24h": 70000000000},
    {"market": "KRW-USDT", "trade_price": 1400, "signed_change_rate": 0.0, "acc_trade_price_24h": 500000000000},
    {"market": "KRW-SUI", "trade_price": 5600, "signed_change_rate": 0.1, "acc_trade_price_24h": 14000000000},
]

BINANCE_INFO_PATH = "/fapi/v1/exchangeInfo"
BINANCE_TICKER_PATH = "/fapi/v1/ticker/24hr"
ALPHA_TOKEN_PATH = "/bapi/defi/v1/public/wallet-direct/buw/wallet/cex/alpha/all/token/list"
BITGET_SYMBOLS_PATH = "/api/v2/spot/public/symbols"
BITGET_TICKER_PATH = "/api/v2/spot/market/tickers"
UPBIT_MARKETS_PATH = "/v1/market/all"
UPBIT_TICKER_PATH = "/v1/ticker/all"


class FakeExchanges:
    """
    模拟四家交易所的公开接口

    calls   : 按路径统计请求次数
    fail    : {路径: 状态码}，命中时返回该错误状态
    payloads: 可替换任意路径的响应体
    """

    def __init__(self):
        self.calls = Counter()
        self.fail = {}
        self.payloads = {
            BINANCE_INFO_PATH: BINANCE_EXCHANGE_INFO,
            BINANCE_TICKER_PATH: BINANCE_TICKERS,
            ALPHA_TOKEN_PATH: ALPHA_TOKENS,
            BITGET_SYMBOLS_PATH: BITGET_SYMBOLS,
            BITGET_TICKER_PATH: BITGET_TICKERS,
            UPBIT_MARKETS_PATH: UPBIT_MARKETS,
            UPBIT_TICKER_PATH: UPBIT_TICKERS,
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls[path] += 1
        if path in self.fail:
            return httpx.Response(self.fail[path], json={"msg": "error"})
        if path not in self.payloads:
            return httpx.Response(404, json={"msg": "not found"})
        return httpx.Response(200, json=self.payloads[path])

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())


def make_settings(**overrides) -> VolumeServiceSettings:
    values = {
        "TZ": TZ,
        "SCHEDULER_ENABLED": False,
        "LOG_LEVEL": "DEBUG",
    }
    values.update(overrides)
    return VolumeServiceSettings(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def exchanges():
    return FakeExchanges()


@pytest.fixture
def settings():
    return make_settings()
