"""
API routers
"""

from fastapi import APIRouter
from .battle_routes import router as battle_router
from .contender_routes import router as contender_router
from .matching_routes import router as matching_router

# Main router
api_router = APIRouter()

# Feature routers
api_router.include_router(contender_router, prefix="/contenders", tags=["contenders"])
api_router.include_router(matching_router, prefix="/matching", tags=["matching"])
api_router.include_router(battle_router, prefix="/battles", tags=["battles"])
