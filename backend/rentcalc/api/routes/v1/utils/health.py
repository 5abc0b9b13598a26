import logging

from fastapi import APIRouter
from sqlmodel import select

from rentcalc.api.deps import SessionDep
from rentcalc.core.config import settings
from rentcalc.services.identity import is_mock_identity_provider_enabled

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health-check")
async def health_check(session: SessionDep):
    """
    Health check endpoint that verifies backend and database connectivity.

    The identity provider is reported by mode only; it is not called.
    """
    try:
        session.exec(select(1)).first()
        db_status = "healthy"
        db_message = "Database connection successful"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "unhealthy"
        db_message = "Database connection failed"

    overall_status = "healthy" if db_status == "healthy" else "unhealthy"

    return {
        "status": overall_status,
        "message": "Backend is running",
        "version": settings.APP_VERSION,
        "database": {"status": db_status, "message": db_message},
        "identity_provider": {"mode": "mock" if is_mock_identity_provider_enabled() else "remote"},
    }
