"""健康检查路由"""

import time

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from volume_service import __version__
from volume_service.models.response import ApiResponse
from volume_service.routers.volume import get_query_service
from volume_service.services.query_service import VolumeQueryService

router = APIRouter(tags=["健康检查"])


@router.get("/api/health", response_model=ApiResponse)
async def health(request: Request, svc: VolumeQueryService = Depends(get_query_service)):
    """服务健康检查：运行时长 + 各数据源是否有数据、快照数、最后更新时间"""
    info = svc.health()
    scheduler = request.app.state.scheduler
    return ApiResponse.ok(
        data={
            "status": "ok",
            "version": __version__,
            "timestamp": int(time.time()),
            "service": "Exchange Volume Service",
            "uptime": info["uptime"],
            "sources": info["sources"],
            "scheduler": {
                "state": scheduler.state,
                "running": scheduler.running,
                "passes": scheduler.passes,
            },
        },
        message="服务运行正常",
    )


@router.get("/healthz")
async def healthz():
    """Kubernetes liveness probe"""
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(svc: VolumeQueryService = Depends(get_query_service)):
    """Kubernetes readiness probe：至少一个数据源已有数据"""
    ready = svc.is_ready()
    code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content={"ready": ready})
