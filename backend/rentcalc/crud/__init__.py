"""
CRUD operations module.
"""

from rentcalc.crud.app_user import get_app_user

__all__ = [
    # App user
    "get_app_user",
]
