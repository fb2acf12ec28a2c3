from fastapi import APIRouter

from frontdesk.api.routes import admin, auth, emergency, health, navigation, reports, visitors

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(navigation.router, prefix="/navigation", tags=["navigation"])
api_router.include_router(visitors.router, prefix="/visitors", tags=["visitors"])
api_router.include_router(emergency.router, prefix="/emergency", tags=["emergency"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
