"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import auth, health, modules, roles

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(roles.router, prefix="/roles", tags=["roles"])
router.include_router(modules.router, prefix="/modules", tags=["modules"])
