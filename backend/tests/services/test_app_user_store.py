"""Tests for SqlApplicationUserStore."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from rentcalc.auth.errors import UserLookupError
from rentcalc.models import AppUser, UserRole
from rentcalc.services.app_user_store import SqlApplicationUserStore


class TestSqlApplicationUserStore:
    """Tests for get_by_subject."""

    @pytest.mark.asyncio
    async def test_absent_record_returns_none(self, session: Session):
        store = SqlApplicationUserStore(session)

        assert await store.get_by_subject("nobody") is None

    @pytest.mark.asyncio
    async def test_present_record_returns_application_user(self, session: Session):
        session.add(AppUser(user_id="u1", user_type="tenant", email="u1@example.com"))
        session.commit()

        app_user = await SqlApplicationUserStore(session).get_by_subject("u1")

        assert app_user.user_id == "u1"
        assert app_user.role == UserRole.TENANT

    @pytest.mark.asyncio
    async def test_unknown_role_raises_lookup_error(self, session: Session):
        session.add(AppUser(user_id="u1", user_type="landlord"))
        session.commit()

        with pytest.raises(UserLookupError) as exc_info:
            await SqlApplicationUserStore(session).get_by_subject("u1")

        assert exc_info.value.error == "invalid_role"

    @pytest.mark.asyncio
    async def test_database_error_raises_lookup_error(self):
        broken = MagicMock()
        broken.get.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        with pytest.raises(UserLookupError) as exc_info:
            await SqlApplicationUserStore(broken).get_by_subject("u1")

        assert exc_info.value.error == "lookup_failed"
        assert isinstance(exc_info.value, LookupError)
