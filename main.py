"""BookLibrio Store - 商城首页 Feed 服务入口。"""

from fastapi import FastAPI
from fastapi.concurrency import asynccontextmanager
from fastapi.routing import APIRoute
from loguru import logger
from starlette.middleware.cors import CORSMiddleware

from src.core.config import settings
from src.core.domain.exceptions import DomainException
from src.core.infrastructure.logging import setup_logging
from src.core.interfaces.http.exceptions import (
    domain_exception_handler,
    global_exception_handler,
)
from src.core.interfaces.http.routers import api_router
from src.modules.catalog.infrastructure.dependencies import catalog_client
from src.modules.feed.application import dependencies as feed_app_deps
from src.modules.feed.infrastructure import dependencies as feed_infra_deps


def custom_generate_unique_id(route: APIRoute) -> str:
    """Generate unique operation IDs for OpenAPI."""
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("Starting BookLibrio store feed...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Catalog API: {settings.CATALOG_API_BASE_URL}")

    yield

    logger.info("Shutting down BookLibrio store feed...")
    await feed_infra_deps.feed_session_registry.close_all()
    await catalog_client.aclose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=(
        "商城首页 Feed 服务 - 并发聚合目录、书单与榜单，组装可无限滚动的首页\n\n"
        "## 会话\n\n"
        "- `GET /store/home` 创建会话并返回首页\n"
        "- `POST /store/home/{session_id}/more` 加载更多\n"
        "- `POST /store/home/{session_id}/refresh` 下拉刷新"
    ),
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    root_path=settings.ROOTPATH,
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)

# Dependency overrides (application -> infrastructure)
app.dependency_overrides[feed_app_deps.get_feed_session_registry] = (
    feed_infra_deps.get_feed_session_registry
)

# Exception handlers
app.add_exception_handler(DomainException, domain_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# CORS middleware
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint.

    检查目录服务是否可达：
    - healthy: 目录服务正常
    - degraded: 目录服务可达但返回错误（Feed 会以空分区降级）
    - unhealthy: 目录服务不可达

    Returns:
        健康检查结果，包含整体状态和各组件状态
    """
    catalog_health_result = await catalog_client.check_health()

    if catalog_health_result.status.value == "ok":
        overall_status = "healthy"
    elif catalog_health_result.reachable:
        overall_status = "degraded"
    else:
        overall_status = "unhealthy"

    return {
        "status": overall_status,
        "environment": settings.ENVIRONMENT,
        "version": "0.1.0",
        "components": {"catalog": catalog_health_result.to_dict()},
        "sessions": len(feed_infra_deps.feed_session_registry),
    }


@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to BookLibrio Store API",
        "docs": f"{settings.API_V1_STR}/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.SERVER_PORT,
        reload=settings.ENVIRONMENT == "local",
    )
