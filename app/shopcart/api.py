from fastapi import APIRouter

from app.shopcart.core.config import settings
from app.shopcart.routers.carts import router as carts_router
from app.shopcart.routers.health import router as health_router
from app.shopcart.routers.metrics import router as metrics_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(carts_router, tags=["carts"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
