"""Tests for the user access object."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from racecalendar.core.exceptions import UserNotFoundError, UserValidationError
from racecalendar.models.interest import Interest
from racecalendar.models.race import Race
from racecalendar.models.user import User
from racecalendar.services.race_access import RaceAccess
from racecalendar.services.user_access import UserAccess


class TestUserAccess:
    """Tests for user persistence operations."""

    async def test_save_and_load(self, db_session: AsyncSession):
        user = UserAccess(
            db_session,
            {"name": " Giulia ", "email": "giulia@example.com", "interests": [Interest.SKYRACE]},
        )
        await user.save_user()

        assert len(user.id) == 24

        loaded = await UserAccess.load(db_session, user.id)
        assert loaded.name == "Giulia"
        assert loaded.interests == ["skyrace"]

    async def test_save_missing_email(self, db_session: AsyncSession):
        user = UserAccess(db_session, {"name": "Nameless"})

        with pytest.raises(UserValidationError) as exc_info:
            await user.save_user()

        assert exc_info.value.missing == ["email"]

    async def test_load_unknown_user(self, db_session: AsyncSession):
        with pytest.raises(UserNotFoundError):
            await UserAccess.load(db_session, "9" * 24)

    async def test_update_with_changes(self, db_session: AsyncSession, test_user: User):
        user = await UserAccess.load(db_session, test_user.id)

        await user.update_user({"interests": ["road", "relay"]})

        reloaded = await UserAccess.load(db_session, test_user.id)
        assert reloaded.interests == ["road", "relay"]
        assert reloaded.name == "Test Runner"

    async def test_update_local_state(self, db_session: AsyncSession, test_user: User):
        user = await UserAccess.load(db_session, test_user.id)
        user.name = "Renamed Runner"

        await user.update_user()

        assert (await UserAccess.load(db_session, test_user.id)).name == "Renamed Runner"

    async def test_delete_keeps_owned_races(
        self, db_session: AsyncSession, test_user: User, sample_race: Race
    ):
        user = await UserAccess.load(db_session, test_user.id)

        assert await user.delete_user() is True
        assert await user.delete_user() is False

        race = await RaceAccess.load(db_session, sample_race.id)
        assert race.owner_id == test_user.id

    async def test_get_all_users(self, db_session: AsyncSession, test_user: User, other_user: User):
        users = await UserAccess.get_all_users(db_session)

        assert {user.email for user in users} == {"runner@example.com", "other@example.com"}
