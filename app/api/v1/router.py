"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from app.api.v1 import admin, appointments, experts, orders, products

api_router = APIRouter()

api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(experts.router, prefix="/experts", tags=["experts"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
