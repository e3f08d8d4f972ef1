"""
交易所成交额排行服务
FastAPI 应用程序入口

启动方式:
    uvicorn volume_service.main:app --host 0.0.0.0 --port 3001
    python -m volume_service.main
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from volume_service import __version__
from volume_service.config import VolumeServiceSettings, settings as default_settings
from volume_service.layers.acquisition import build_http_client
from volume_service.routers import health, volume
from volume_service.services.pipeline import build_pipeline
from volume_service.services.query_service import VolumeQueryService
from volume_service.services.scheduler import RefreshScheduler

# ── 日志配置 ──────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, default_settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    settings: VolumeServiceSettings = default_settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    创建应用实例

    Args:
        settings: 服务配置
        transport: 替换 httpx 传输层（测试时注入 MockTransport）
    """

    # ── 生命周期管理 ──────────────────────────────────────
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用启动/关闭生命周期钩子"""
        logger.info("=" * 60)
        logger.info(f"🚀 Exchange Volume Service v{__version__} 启动中")
        logger.info(f"   Sources   : {', '.join(settings.ENABLED_SOURCES)}")
        logger.info(f"   Timezone  : {settings.TZ}")
        logger.info(f"   Scheduler : {'enabled' if settings.SCHEDULER_ENABLED else 'disabled'}")
        logger.info("=" * 60)

        client = build_http_client(settings, transport=transport)
        pipeline = build_pipeline(client, settings=settings)
        scheduler = RefreshScheduler(pipeline, settings=settings)
        app.state.pipeline = pipeline
        app.state.scheduler = scheduler
        app.state.query_service = VolumeQueryService(pipeline)

        # 启动刷新在后台进行，首次成功前查询返回 503
        if settings.SCHEDULER_ENABLED:
            scheduler.start()
        else:
            logger.warning("⚠️ 调度器未启用，仅能通过手动刷新获取数据")

        yield

        logger.info("🔄 服务正在关闭...")
        await scheduler.stop()
        await client.aclose()
        logger.info("✅ 服务已关闭")

    # ── 应用实例 ──────────────────────────────────────────
    app = FastAPI(
        title="Exchange Volume Service",
        description=(
            "多交易所 24h 成交额排行服务：\n"
            "- 📊 Binance 永续 / Binance Alpha / Bitget 现物 / Upbit 现物\n"
            "- 💱 统一换算为 USD，按成交额取前 100\n"
            "- 📸 每小时整点记录排名快照，保留最近 6 个\n"
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── CORS 中间件 ───────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── 请求计时中间件 ─────────────────────────────────────
    @app.middleware("http")
    async def add_process_time(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = f"{(time.time() - start) * 1000:.1f}ms"
        return response

    # ── 全局异常处理 ──────────────────────────────────────
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"未处理的异常: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "内部服务错误", "message": str(exc)},
        )

    # ── 注册路由 ──────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(volume.router)

    # ── 根路由 ───────────────────────────────────────────
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "Exchange Volume Service",
            "version": __version__,
            "docs": "/docs",
            "health": "/api/health",
        }

    return app


app = create_app()


def run() -> None:
    uvicorn.run(
        "volume_service.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.DEBUG,
        log_level=default_settings.LOG_LEVEL.lower(),
    )


# ── 直接运行入口 ──────────────────────────────────────────
if __name__ == "__main__":
    run()
