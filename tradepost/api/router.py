from fastapi import APIRouter
from tradepost.api.v1.health import router as health_router
from tradepost.api.v1.auth import router as auth_router
from tradepost.api.v1.trades import router as trades_router
from tradepost.api.v1.currencies import router as currencies_router
from tradepost.api.v1.inventory import router as inventory_router
from tradepost.api.v1.notifications import router as notifications_router


api_router = APIRouter()
api_router.include_router(health_router, prefix="/v1", tags=["health"])
api_router.include_router(auth_router, prefix="/v1", tags=["auth"])
api_router.include_router(trades_router, prefix="/v1", tags=["trades"])
api_router.include_router(currencies_router, prefix="/v1", tags=["currencies"])
api_router.include_router(inventory_router, prefix="/v1", tags=["inventory"])
api_router.include_router(notifications_router, prefix="/v1/notifications", tags=["notifications"])
