"""API sub-routers assembled into a single api_router."""

from fastapi import APIRouter

from src.api.routers.builder import router as builder_router
from src.api.routers.health import router as health_router
from src.api.routers.reports import router as reports_router
from src.api.routers.statements import router as statements_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(reports_router, prefix="/reports", tags=["reports"])
api_router.include_router(statements_router, prefix="/statements", tags=["statements"])
api_router.include_router(builder_router, prefix="/builder", tags=["builder"])
