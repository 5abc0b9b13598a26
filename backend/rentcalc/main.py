"""
RentCalc backend application.

Run locally with:
    uvicorn rentcalc.main:app --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rentcalc.api.routes import auth, pages
from rentcalc.api.routes.v1.router import router as api_router
from rentcalc.auth.route_guard import RouteGuardMiddleware
from rentcalc.core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.APP_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)

app.add_middleware(RouteGuardMiddleware)

# CORS must wrap the route guard (middleware added last runs first)
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)
app.include_router(auth.router)
app.include_router(pages.router)

logger.info(f"{settings.PROJECT_NAME} {settings.APP_VERSION} starting ({settings.ENVIRONMENT})")
