"""
食堂餐单规划服务 - 主应用入口

主要功能模块：
- 食堂、店铺与菜单浏览
- 店铺评分（客户端指纹令牌 + 限流）
- 可复现、可分享的餐单生成

技术栈：FastAPI + DuckDB + JWT
"""

import json
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router, share_router
from .config.settings import settings
from .core.database import DatabaseManager, db_manager
from .core.error_handler import (
    application_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import BaseApplicationError
from .services.catalog_repository import CatalogRepository


def seed_catalog(db: DatabaseManager, seed_path: str) -> dict:
    """食堂表为空时从 JSON 文件导入目录数据，返回导入数量"""
    repository = CatalogRepository(db)
    if repository.count_canteens() > 0:
        return {}
    with Path(seed_path).open(encoding="utf-8") as f:
        document = json.load(f)
    return repository.load_catalog(document)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    try:
        db_manager.init_database()
        print("Database initialized successfully")
        if settings.catalog_seed_path:
            counts = seed_catalog(db_manager, settings.catalog_seed_path)
            if counts:
                print(f"Catalog loaded from {settings.catalog_seed_path}: {counts}")
    except Exception as e:
        print(f"Database initialization failed: {e}")
        # 不要让应用启动失败，允许在运行时重试

    yield

    db_manager.close()


def create_app() -> FastAPI:
    """创建FastAPI应用"""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="食堂浏览、店铺评分与餐单生成API",
        debug=settings.debug,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册异常处理器
    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # 注册路由
    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(share_router)

    @app.get("/health")
    async def health_check():
        try:
            db_manager.get_connection()
            return {
                "status": "healthy",
                "version": settings.api_version,
                "database": "connected"
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "version": settings.api_version,
                "database": f"error: {str(e)}"
            }

    @app.get("/")
    async def root():
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "description": "食堂浏览、店铺评分与餐单生成API"
        }

    return app


# 应用实例
app = create_app()


if __name__ == "__main__":
    import uvicorn
    print(f"Starting {settings.api_title} on http://127.0.0.1:8000")
    uvicorn.run(app, host="127.0.0.1", port=8000)
