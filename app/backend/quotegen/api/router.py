"""Top-level API router."""

from fastapi import APIRouter

from quotegen.api.routes.activity_logs import router as activity_logs_router
from quotegen.api.routes.auth import router as auth_router
from quotegen.api.routes.clients import router as clients_router
from quotegen.api.routes.dashboard import router as dashboard_router
from quotegen.api.routes.health import router as health_router
from quotegen.api.routes.items import router as items_router
from quotegen.api.routes.quotations import router as quotations_router
from quotegen.api.routes.reports import router as reports_router
from quotegen.api.routes.users import router as users_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(clients_router)
api_router.include_router(items_router)
api_router.include_router(quotations_router)
api_router.include_router(activity_logs_router)
api_router.include_router(reports_router)
api_router.include_router(dashboard_router)
