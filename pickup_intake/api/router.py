from fastapi import APIRouter

from pickup_intake.api.v1 import health, pickup_orders

api_router = APIRouter()

api_router.include_router(health.router, prefix="/v1", tags=["health"])
api_router.include_router(pickup_orders.router, prefix="/v1/pickup-orders", tags=["pickup-orders"])
