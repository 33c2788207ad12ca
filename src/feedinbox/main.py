"""feedinbox 主应用入口."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from feedinbox import __version__
from feedinbox.api import categories, feeds, ingest, items
from feedinbox.config import get_settings
from feedinbox.errors import IngestionError
from feedinbox.models.database import close_db, init_db
from feedinbox.scheduler import create_scheduler, shutdown_scheduler

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期管理."""
    app_settings = get_settings()

    # 启动时初始化
    logger.info("正在初始化数据库...")
    await init_db(app_settings.database_url)

    app.state.scheduler = None
    if app_settings.refresh_enabled:
        logger.info("正在启动定时任务...")
        app.state.scheduler = create_scheduler(app_settings)

    logger.info("feedinbox 启动完成！")
    yield

    # 关闭时清理
    logger.info("正在关闭...")
    await shutdown_scheduler(app.state.scheduler)
    await close_db()
    logger.info("feedinbox 已关闭")


app = FastAPI(
    title="feedinbox",
    description="稍后阅读应用的 RSS/Atom 订阅源摄取服务",
    version=__version__,
    lifespan=lifespan,
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_methods=["POST", "OPTIONS", "GET", "PATCH", "DELETE"],
    allow_headers=["apikey", "content-type"],
)


@app.exception_handler(IngestionError)
async def ingestion_error_handler(request: Request, exc: IngestionError) -> JSONResponse:
    """摄取错误 -> 对应状态码."""
    if exc.status_code >= 500:
        logger.warning("%s %s 失败: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求体格式错误按 400 处理."""
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """统一错误响应格式."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """未预期的异常."""
    logger.exception("%s %s 未处理的异常", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc)})


# 注册路由
app.include_router(ingest.router, prefix="/functions/v1/fetch-feeds")
app.include_router(ingest.router, prefix="/api/ingest")
app.include_router(feeds.router)
app.include_router(items.router)
app.include_router(categories.router)


@app.get("/")
async def root() -> dict:
    """根路径."""
    return {
        "name": "feedinbox",
        "version": __version__,
        "description": "RSS/Atom 订阅源摄取服务",
    }


@app.get("/health")
async def health() -> dict:
    """健康检查."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "feedinbox.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
