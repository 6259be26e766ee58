"""API v1 routes."""

from fastapi import APIRouter

from callbook.api.v1 import auth, health, records, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, tags=["users"])
router.include_router(records.router, prefix="/records", tags=["records"])
