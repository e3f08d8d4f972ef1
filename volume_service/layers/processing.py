"""
Layer 3 – 数据处理层
对适配器提取的原始行情行进行清洗、单位换算、去重，并按成交额排名截断。
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from volume_service.models.ticker import TickerRecord

logger = logging.getLogger(__name__)

_NUMERIC_COLS = ["last_price", "price_change_percent", "quote_volume"]
# 可选列：缺失或无法解析时置空，不影响该行参与排名
_OPTIONAL_COLS = ["volume", "high_price", "low_price", "weighted_avg_price", "trade_count"]
# 以计价货币表示的列，需要随币种换算
_PRICE_COLS = ["last_price", "quote_volume", "high_price", "low_price", "weighted_avg_price"]
_COLUMNS = ["symbol", "display_name"] + _NUMERIC_COLS + _OPTIONAL_COLS


class ProcessingLayer:
    """数据处理层：清洗 + 换算 + 排名"""

    def normalize_tickers(
        self,
        rows: List[Dict[str, Any]],
        price_divisor: float = 1.0,
        change_scale: float = 1.0,
    ) -> pd.DataFrame:
        """
        将原始行情行标准化为 DataFrame

        标准列：symbol, display_name, last_price, price_change_percent, quote_volume
        可选列：volume, high_price, low_price, weighted_avg_price, trade_count

        Args:
            rows: 适配器提取的原始行（数值可以是字符串）
            price_divisor: 计价金额的换算除数（本币 → USD），1 表示已是 USD；
                           基础币种成交量与成交笔数不参与换算
            change_scale: 涨跌幅缩放系数，上游给出小数时传 100
        """
        if not rows:
            return pd.DataFrame(columns=_COLUMNS)

        df = pd.DataFrame(rows)
        for col in _COLUMNS:
            if col not in df.columns:
                df[col] = None

        # 类型转换，必填列无法解析或非有限值的行直接丢弃
        numeric = _NUMERIC_COLS + _OPTIONAL_COLS
        for col in numeric:
            df[col] = pd.to_numeric(df[col], errors="coerce")
        df[numeric] = df[numeric].replace([float("inf"), float("-inf")], float("nan"))
        before = len(df)
        df = df.dropna(subset=["symbol"] + _NUMERIC_COLS)
        dropped = before - len(df)
        if dropped:
            logger.debug(f"丢弃 {dropped} 条无效行情")

        df = df.drop_duplicates(subset=["symbol"], keep="first").copy()

        if price_divisor != 1.0:
            df[_PRICE_COLS] = df[_PRICE_COLS] / price_divisor
        if change_scale != 1.0:
            df["price_change_percent"] = df["price_change_percent"] * change_scale

        return df[_COLUMNS].reset_index(drop=True)

    def rank_by_volume(
        self, df: pd.DataFrame, top_n: int
    ) -> Tuple[List[TickerRecord], int]:
        """按 quote_volume 降序排序并截取前 top_n，返回 (记录, 参与排名总数)"""
        if df.empty:
            return [], 0
        total = len(df)
        ranked = df.sort_values("quote_volume", ascending=False, kind="mergesort").head(top_n)
        return self.to_records(ranked), total

    def to_records(self, df: pd.DataFrame) -> List[TickerRecord]:
        """DataFrame 转换为 TickerRecord 列表"""
        if df.empty:
            return []
        records = []
        for row in df.to_dict(orient="records"):
            count = _optional_float(row.get("trade_count"))
            records.append(TickerRecord(
                symbol=str(row["symbol"]),
                display_name=_optional_str(row["display_name"]),
                last_price=float(row["last_price"]),
                price_change_percent=float(row["price_change_percent"]),
                quote_volume=float(row["quote_volume"]),
                volume=_optional_float(row.get("volume")),
                high_price=_optional_float(row.get("high_price")),
                low_price=_optional_float(row.get("low_price")),
                weighted_avg_price=_optional_float(row.get("weighted_avg_price")),
                trade_count=None if count is None else int(count),
            ))
        return records


def _optional_str(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return str(value) or None


def _optional_float(value: Any) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


# ── 模块级别单例 ──────────────────────────────────────────
_processor: Optional[ProcessingLayer] = None


def get_processing_layer() -> ProcessingLayer:
    global _processor
    if _processor is None:
        _processor = ProcessingLayer()
    return _processor
