"""
成交额排行路由
GET  /api/volume/top100                 - Binance USDT-M 永续
GET  /api/binance/alpha/top100          - Binance Alpha
GET  /api/bitget/spot/top100            - Bitget 现物
GET  /api/upbit/spot/top100             - Upbit 现物（已换算 USD）
GET  /api/sources                       - 已配置的数据源
GET  /api/sources/{source_id}           - 任一数据源的最新排行 + 快照
POST /api/sources/{source_id}/refresh   - 手动刷新（遵守时效缓存，不生成快照）
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from volume_service.errors import NoDataAvailable, UnknownSource, UpstreamError, VolumeServiceError
from volume_service.models.response import ApiResponse
from volume_service.services.query_service import VolumeQueryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["成交额排行"])


def get_query_service(request: Request) -> VolumeQueryService:
    return request.app.state.query_service


def _error(exc: VolumeServiceError) -> JSONResponse:
    if isinstance(exc, UnknownSource):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, NoDataAvailable):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(exc, UpstreamError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=code, content=ApiResponse.from_error(exc).model_dump())


def _latest(svc: VolumeQueryService, source_id: str):
    try:
        return svc.latest(source_id)
    except VolumeServiceError as exc:
        return _error(exc)


@router.get("/volume/top100")
async def binance_futures_top100(svc: VolumeQueryService = Depends(get_query_service)):
    """Binance USDT-M 永续 成交额 TOP 100"""
    return _latest(svc, "binance-futures")


@router.get("/binance/alpha/top100")
async def binance_alpha_top100(svc: VolumeQueryService = Depends(get_query_service)):
    return _latest(svc, "binance-alpha")


@router.get("/bitget/spot/top100")
async def bitget_spot_top100(svc: VolumeQueryService = Depends(get_query_service)):
    return _latest(svc, "bitget-spot")


@router.get("/upbit/spot/top100")
async def upbit_spot_top100(svc: VolumeQueryService = Depends(get_query_service)):
    return _latest(svc, "upbit-spot")


@router.get("/sources", response_model=ApiResponse)
async def list_sources(svc: VolumeQueryService = Depends(get_query_service)):
    """已配置的数据源列表"""
    sources = svc.list_sources()
    return ApiResponse.ok(data={"sources": sources, "count": len(sources)})


@router.get("/sources/{source_id}")
async def source_top100(source_id: str, svc: VolumeQueryService = Depends(get_query_service)):
    return _latest(svc, source_id)


@router.post("/sources/{source_id}/refresh")
async def refresh_source(source_id: str, svc: VolumeQueryService = Depends(get_query_service)):
    """手动刷新指定数据源"""
    try:
        return await svc.refresh(source_id)
    except VolumeServiceError as exc:
        logger.warning(f"手动刷新失败: {exc}")
        return _error(exc)
