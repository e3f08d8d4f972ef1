"""行情 / 排名 / 快照数据模型"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TickerRecord(BaseModel):
    """单个数据源单次拉取中的一个交易对（金额均已换算为 USD）"""

    model_config = ConfigDict(frozen=True)

    symbol: str
    display_name: Optional[str] = None
    last_price: float
    price_change_percent: float
    quote_volume: float
    # 以下字段并非每个交易所都提供，缺失时不出现在响应中
    volume: Optional[float] = None              # 基础币种成交量
    high_price: Optional[float] = None
    low_price: Optional[float] = None
    weighted_avg_price: Optional[float] = None
    trade_count: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "symbol": self.symbol,
            "lastPrice": self.last_price,
            "priceChangePercent": self.price_change_percent,
            "quoteVolume": self.quote_volume,
        }
        if self.display_name:
            payload["displayName"] = self.display_name
        for key, value in (
            ("volume", self.volume),
            ("highPrice", self.high_price),
            ("lowPrice", self.low_price),
            ("weightedAvgPrice", self.weighted_avg_price),
            ("count", self.trade_count),
        ):
            if value is not None:
                payload[key] = value
        return payload


class FetchResult(BaseModel):
    """一次成功刷新的结果：按成交额降序的前 N 条 + 参与排名的总数"""

    model_config = ConfigDict(frozen=True)

    records: List[TickerRecord]
    fetched_at: int                 # epoch ms
    total_considered: int

    def to_payload(self) -> Dict[str, Any]:
        return {
            "data": [r.to_payload() for r in self.records],
            "timestamp": self.fetched_at,
            "total": self.total_considered,
        }


class RankEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: int = Field(ge=1)
    volume: float


class Snapshot(BaseModel):
    """某一整点时刻的排名快照，创建后不可修改"""

    model_config = ConfigDict(frozen=True)

    label: str                      # 本地时区 HH:MM
    captured_at: int                # epoch ms
    rankings: Dict[str, RankEntry]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "time": self.label,
            "timestamp": self.captured_at,
            "rankings": {
                symbol: {"rank": entry.rank, "volume": entry.volume}
                for symbol, entry in self.rankings.items()
            },
        }
