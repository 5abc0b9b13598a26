"""
ApplicationUser lookup backed by the app_user table.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from rentcalc.auth.errors import UserLookupError
from rentcalc.crud import get_app_user
from rentcalc.models import ApplicationUser, UserRole

logger = logging.getLogger(__name__)


class SqlApplicationUserStore:
    """
    Reads ApplicationUser records through a request-scoped database session.

    "No row" and "lookup failed" are kept apart: the first returns None,
    the second raises UserLookupError.
    """

    def __init__(self, session: Session):
        self.session = session

    async def get_by_subject(self, subject_id: str) -> ApplicationUser | None:
        try:
            record = get_app_user(session=self.session, user_id=subject_id)
        except SQLAlchemyError as e:
            logger.error(f"app_user lookup failed: {e}")
            raise UserLookupError("lookup_failed", "Database error during app_user lookup") from e

        if record is None:
            return None

        try:
            role = UserRole(record.user_type)
        except ValueError as e:
            raise UserLookupError(
                "invalid_role",
                f"Unknown user_type {record.user_type!r} for subject {subject_id}",
            ) from e

        return ApplicationUser(user_id=record.user_id, role=role)
