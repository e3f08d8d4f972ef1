"""
查询服务
只读：返回各数据源最近一次结果 + 快照历史，不访问上游、不生成快照。
手动刷新遵守时效缓存，同样不生成快照。
"""

import logging
from typing import Any, Dict, List

from volume_service.errors import NoDataAvailable
from volume_service.services.pipeline import PipelineState

logger = logging.getLogger(__name__)


class VolumeQueryService:
    def __init__(self, pipeline: PipelineState):
        self._pipeline = pipeline

    def latest(self, source_id: str) -> Dict[str, Any]:
        """
        最近一次结果 + 快照历史

        Raises:
            UnknownSource: 数据源未配置
            NoDataAvailable: 数据源尚未成功拉取过
        """
        state = self._pipeline.get_source(source_id)
        result = state.cache.get()
        if result is None:
            raise NoDataAvailable(source_id)

        payload = result.to_payload()
        payload["snapshots"] = [s.to_payload() for s in self._pipeline.history(source_id)]
        payload["source"] = source_id
        payload["ageMs"] = max(0, int(self._pipeline.now() * 1000) - result.fetched_at)
        return payload

    async def refresh(self, source_id: str) -> Dict[str, Any]:
        """手动刷新：缓存有效时不访问上游"""
        outcome = await self._pipeline.refresh(source_id)
        logger.info(f"[{source_id}] 手动刷新（{'新数据' if outcome.fresh else '缓存'}）")
        payload = self.latest(source_id)
        payload["refreshed"] = outcome.fresh
        return payload

    def list_sources(self) -> List[Dict[str, Any]]:
        status = self._pipeline.status()
        sources = []
        for source_id, state in self._pipeline.sources.items():
            item = state.adapter.describe()
            item["ready"] = status[source_id]["hasData"]
            sources.append(item)
        return sources

    def health(self) -> Dict[str, Any]:
        return {
            "uptime": round(self._pipeline.now() - self._pipeline.started_at, 3),
            "sources": self._pipeline.status(),
        }

    def is_ready(self) -> bool:
        return any(state.cache.has_value() for state in self._pipeline.sources.values())
