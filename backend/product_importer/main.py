from contextlib import asynccontextmanager

from fastapi import FastAPI
from product_importer.core.config import settings
from product_importer.core.logging import configure_logging
from product_importer.api.v1 import api_v1
from product_importer.db import create_all, dispose_engine


logger = configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 空库直接建表；生产由外部迁移工具管理
    create_all()
    logger.info("%s started (env=%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
    yield
    dispose_engine()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.include_router(api_v1, prefix=settings.API_PREFIX)

# 根路径健康探活（方便测试或 Docker 健康检查）
@app.get("/")
def root():
    return {
        "app": settings.PROJECT_NAME,
        "env": settings.ENVIRONMENT,
        "ok": True
    }
