"""
API v1 Router
"""

from fastapi import APIRouter

from aloha.api.v1 import auth, groups, permissions, tweets, users

router = APIRouter()

# Include all endpoint routers
router.include_router(auth.router)
router.include_router(users.router)
router.include_router(groups.router)
router.include_router(permissions.router)
router.include_router(tweets.router)

__all__ = ["router"]
