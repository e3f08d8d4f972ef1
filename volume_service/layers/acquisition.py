"""
Layer 1 – 数据获取层
封装对交易所公开 REST 接口的请求：共享 httpx 异步客户端 + 有界重试 / 指数退避。

重试规则：
  - 最多尝试 RETRY_MAX_ATTEMPTS 次，第 n 次重试前等待 2^n * RETRY_BASE_DELAY 秒
  - 4xx 视为终止性错误直接抛出，418 / 429（限流）除外
  - 超时、网络错误、5xx 一律重试，耗尽后抛出最后一次的原始异常
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from volume_service.config import VolumeServiceSettings, settings as default_settings

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

_RETRYABLE_CLIENT_STATUS = (418, 429)


def is_retryable(exc: Exception) -> bool:
    """判断一次失败是否值得重试"""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if 400 <= status < 500:
            return status in _RETRYABLE_CLIENT_STATUS
    return True


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Sleep = asyncio.sleep,
) -> httpx.Response:
    """带重试的 GET 请求，成功返回响应，失败抛出原始 httpx 异常"""
    for attempt in range(max_attempts):
        if attempt > 0:
            delay = (2 ** attempt) * base_delay
            logger.info(f"⏳ 重试 {attempt}/{max_attempts - 1} - 等待 {delay:.1f}s: {url}")
            await sleep(delay)
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response
        except httpx.HTTPError as exc:
            status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
            logger.error(
                f"❌ 请求失败（第 {attempt + 1}/{max_attempts} 次）: {url} - "
                f"Status: {status or 'N/A'} - {exc}"
            )
            if not is_retryable(exc) or attempt == max_attempts - 1:
                raise
    raise RuntimeError("max_attempts 必须 >= 1")


def build_http_client(
    settings: VolumeServiceSettings = default_settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """创建共享的异步 HTTP 客户端（浏览器风格请求头，规避 WAF）"""
    return httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT,
        transport=transport,
        follow_redirects=True,
        headers={
            "User-Agent": settings.HTTP_USER_AGENT,
            "Accept": "application/json",
            "Accept-Language": "en-US,en;q=0.9",
        },
    )


class AcquisitionLayer:
    """数据获取层：统一的 JSON 拉取入口，重试参数取自配置"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: VolumeServiceSettings = default_settings,
        sleep: Sleep = asyncio.sleep,
    ):
        self._client = client
        self._max_attempts = settings.RETRY_MAX_ATTEMPTS
        self._base_delay = settings.RETRY_BASE_DELAY
        self._sleep = sleep

    @property
    def sleep(self) -> Sleep:
        return self._sleep

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await fetch_with_retry(
            self._client,
            url,
            params=params,
            max_attempts=self._max_attempts,
            base_delay=self._base_delay,
            sleep=self._sleep,
        )
        return response.json()
