from fastapi import APIRouter

from deadlock_mod_manager.routers.conflicts import router as conflicts_router
from deadlock_mod_manager.routers.downloads import router as downloads_router
from deadlock_mod_manager.routers.mods import router as mods_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(mods_router)
api_router.include_router(conflicts_router)
api_router.include_router(downloads_router)
