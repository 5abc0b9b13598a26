from fastapi import APIRouter

from rentcalc.api.routes.auth import api_router as auth_router

from .utils.health import router as health_router

router = APIRouter()
router.include_router(health_router, prefix="/utils")
router.include_router(auth_router)
