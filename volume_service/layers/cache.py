"""
Layer 2 – 缓存层
单槽时效缓存：每个数据源（以及每份辅助数据）各持有一个实例，只保存最近一次的结果。
过期数据不会被清除，失败时仍可作为“最后一次成功值”返回。
"""

import time
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class FreshnessCache(Generic[T]):
    """单槽缓存：保存最近一次结果及其写入时刻，在有效期内视为新鲜"""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.time):
        self._ttl = ttl
        self._clock = clock
        self._value: Optional[T] = None
        self._stored_at: Optional[float] = None

    @property
    def stored_at(self) -> Optional[float]:
        """写入时刻（epoch 秒），从未写入时为 None"""
        return self._stored_at

    def has_value(self) -> bool:
        return self._stored_at is not None

    def is_valid(self) -> bool:
        if self._stored_at is None:
            return False
        return self._clock() - self._stored_at < self._ttl

    def get(self) -> Optional[T]:
        """返回缓存值（无论是否过期），从未写入时为 None"""
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        self._stored_at = self._clock()
