"""
成交额排行服务配置模块
支持从环境变量 / .env 读取配置，重试常量与换算汇率均作为可覆盖的默认值
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 全部数据源，顺序即刷新顺序
ALL_SOURCES = ["binance-futures", "bitget-spot", "upbit-spot", "binance-alpha"]

_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


class VolumeServiceSettings(BaseSettings):
    """成交额排行服务配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── 基础配置 ──────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3001)
    DEBUG: bool = Field(default=False)
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"]
    )

    # ── 数据源配置 ─────────────────────────────────────────
    ENABLED_SOURCES: List[str] = Field(default_factory=lambda: list(ALL_SOURCES))
    BINANCE_FUTURES_BASE_URL: str = Field(default="https://fapi.binance.com")
    BINANCE_WEB_BASE_URL: str = Field(default="https://www.binance.com")
    BITGET_BASE_URL: str = Field(default="https://api.bitget.com")
    UPBIT_BASE_URL: str = Field(default="https://api.upbit.com")

    # ── HTTP / 重试配置 ───────────────────────────────────
    HTTP_TIMEOUT: float = Field(default=15.0)        # 单次请求超时（秒）
    HTTP_USER_AGENT: str = Field(default=_DEFAULT_USER_AGENT)
    RETRY_MAX_ATTEMPTS: int = Field(default=3)
    RETRY_BASE_DELAY: float = Field(default=1.0)     # 第 n 次重试前等待 2^n * base 秒

    # ── 缓存配置 ──────────────────────────────────────────
    TICKER_CACHE_TTL: int = Field(default=60)            # 行情缓存有效期（秒）
    SYMBOL_LIST_CACHE_TTL: int = Field(default=1800)     # 交易对列表有效期
    TOKEN_LIST_CACHE_TTL: int = Field(default=600)       # Alpha 代币列表有效期
    TOP_N: int = Field(default=100)
    SNAPSHOT_HISTORY_SIZE: int = Field(default=6)

    # ── 调度配置 ──────────────────────────────────────────
    SCHEDULER_ENABLED: bool = Field(default=True)
    SOURCE_INTERVAL_DELAY: float = Field(default=1.0)    # 数据源之间的间隔（秒）
    AUX_REQUEST_DELAY: float = Field(default=0.5)        # 辅助请求与行情请求之间的间隔

    # ── 币种换算 ──────────────────────────────────────────
    KRW_USD_FALLBACK_RATE: float = Field(default=1400.0)  # 同批次无 KRW-USDT 行情时使用

    # ── 日志配置 ──────────────────────────────────────────
    LOG_LEVEL: str = Field(default="INFO")
    TZ: str = Field(default="Asia/Tokyo")


@lru_cache
def get_settings() -> VolumeServiceSettings:
    """获取全局配置（单例）"""
    return VolumeServiceSettings()


settings = get_settings()
