"""
Layer 2b – 快照历史
按数据源保存最近 N 个整点排名快照（先进先出），用于展示排名 / 成交额的漂移。
"""

import logging
import time
from collections import deque
from datetime import datetime, tzinfo
from typing import Callable, Deque, Dict, List, Optional

from volume_service.models.ticker import FetchResult, RankEntry, Snapshot

logger = logging.getLogger(__name__)


class SnapshotStore:
    """各数据源的有界快照历史，旧 → 新排列，超出上限时丢弃最旧的一条"""

    def __init__(
        self,
        max_size: int = 6,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], float] = time.time,
    ):
        if max_size < 1:
            raise ValueError("max_size 必须 >= 1")
        self._max_size = max_size
        self._tz = tz
        self._clock = clock
        self._histories: Dict[str, Deque[Snapshot]] = {}

    def record(self, source_id: str, result: FetchResult) -> Snapshot:
        """由一次拉取结果生成快照并追加到该数据源的历史"""
        now = self._clock()
        label = datetime.fromtimestamp(now, tz=self._tz).strftime("%H:%M")
        rankings = {
            record.symbol: RankEntry(rank=idx, volume=record.quote_volume)
            for idx, record in enumerate(result.records, start=1)
        }
        snapshot = Snapshot(label=label, captured_at=int(now * 1000), rankings=rankings)

        history = self._histories.setdefault(source_id, deque(maxlen=self._max_size))
        history.append(snapshot)
        logger.info(f"📸 [{source_id}] 快照 {label} 已记录（{len(rankings)} 个交易对，历史 {len(history)}/{self._max_size}）")
        return snapshot

    def history(self, source_id: str) -> List[Snapshot]:
        return list(self._histories.get(source_id, ()))

    def count(self, source_id: str) -> int:
        return len(self._histories.get(source_id, ()))
