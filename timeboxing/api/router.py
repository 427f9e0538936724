"""Top-level API router."""

from fastapi import APIRouter

from timeboxing.api.routes.absences import router as absences_router
from timeboxing.api.routes.admin import router as admin_router
from timeboxing.api.routes.ads import router as ads_router
from timeboxing.api.routes.allocations import router as allocations_router
from timeboxing.api.routes.clients import router as clients_router
from timeboxing.api.routes.deadlines import router as deadlines_router
from timeboxing.api.routes.employees import router as employees_router
from timeboxing.api.routes.health import router as health_router
from timeboxing.api.routes.me import router as me_router
from timeboxing.api.routes.planner import router as planner_router
from timeboxing.api.routes.reports import router as reports_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(admin_router)
api_router.include_router(employees_router)
api_router.include_router(clients_router)
api_router.include_router(allocations_router)
api_router.include_router(absences_router)
api_router.include_router(planner_router)
api_router.include_router(deadlines_router)
api_router.include_router(reports_router)
api_router.include_router(ads_router)
