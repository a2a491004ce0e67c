
from fastapi import APIRouter

from .routes_health import router as health_router
from .product_import import router as product_import_router


api_v1 = APIRouter()
api_v1.include_router(health_router)          # /health
api_v1.include_router(product_import_router)  # /products/import, /products/{id}
