"""
CRUD operations for AppUser model.

The app_user table is written by the REST API server during role
selection; this service only reads it.
"""

from sqlmodel import Session

from rentcalc.models import AppUser


def get_app_user(*, session: Session, user_id: str) -> AppUser | None:
    """
    Get an application user by identity provider subject id.

    Args:
        session: Database session
        user_id: Subject id of the provider session

    Returns:
        AppUser if found, None otherwise
    """
    return session.get(AppUser, user_id)
