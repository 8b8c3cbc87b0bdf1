from fastapi import APIRouter

from app.invtrack.core.config import settings
from app.invtrack.routers.health import router as health_router
from app.invtrack.routers.item_types import router as item_types_router
from app.invtrack.routers.items import router as items_router
from app.invtrack.routers.metrics import router as metrics_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["ops"])
api_router.include_router(item_types_router, tags=["item-types"])
api_router.include_router(items_router, tags=["items"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
