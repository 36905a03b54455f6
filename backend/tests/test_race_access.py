"""Tests for the race access object."""

from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from racecalendar.core.exceptions import PersistenceError, RaceNotFoundError, RaceValidationError
from racecalendar.models.interest import Interest
from racecalendar.models.race import Race, RaceComment
from racecalendar.models.user import User
from racecalendar.services.race_access import RaceAccess


def _new_race_properties(owner_id: str) -> dict:
    return {
        "owner_id": owner_id,
        "title": "Dolomiti Trail",
        "length": 21.5,
        "race_date": date(2024, 6, 1),
        "typology": Interest.TRAIL,
    }


class TestConstruction:
    """Tests for building access objects."""

    async def test_load_populates_fields(self, db_session: AsyncSession, sample_race: Race):
        race = await RaceAccess.load(db_session, sample_race.id)

        assert race.id == sample_race.id
        assert race.title == "Dolomiti Trail"
        assert race.race_date == date(2024, 6, 1)
        assert race.typology == "trail"
        assert race.comments == []
        assert race.likes == []

    async def test_load_unknown_id(self, db_session: AsyncSession):
        with pytest.raises(RaceNotFoundError) as exc_info:
            await RaceAccess.load(db_session, "f" * 24)

        assert "f" * 24 in str(exc_info.value)

    async def test_properties_never_set_id(self, db_session: AsyncSession):
        race = RaceAccess(db_session, {"id": "c" * 24, "title": "  Ponte Run  "})

        assert race.id == ""
        assert race.title == "Ponte Run"


class TestSaveRace:
    """Tests for inserting races."""

    async def test_save_assigns_id(self, db_session: AsyncSession, test_user: User):
        race = RaceAccess(db_session, _new_race_properties(test_user.id))
        await race.save_race()

        assert len(race.id) == 24
        assert race.comments == []
        assert race.likes == []
        assert race.created_at is not None

        stored = await db_session.get(Race, race.id)
        assert stored.title == "Dolomiti Trail"
        assert stored.owner_id == test_user.id

    async def test_save_missing_fields(self, db_session: AsyncSession, test_user: User):
        race = RaceAccess(db_session, {"owner_id": test_user.id, "title": "No Date"})

        with pytest.raises(RaceValidationError) as exc_info:
            await race.save_race()

        assert exc_info.value.missing == ["length", "race_date"]
        assert race.id == ""

    async def test_save_store_failure(self, db_session: AsyncSession, test_user: User):
        race = RaceAccess(db_session, _new_race_properties(test_user.id))

        with patch.object(
            db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("down"))
        ):
            with pytest.raises(PersistenceError) as exc_info:
                await race.save_race()

        assert str(exc_info.value) == "Failed to insert race"
        assert race.id == ""


class TestUpdateRace:
    """Tests for writing race changes."""

    async def test_update_without_changes_writes_local_fields(
        self, db_session: AsyncSession, sample_race: Race
    ):
        race = await RaceAccess.load(db_session, sample_race.id)
        race.title = "Dolomiti Skyrace"
        race.length = 23.0

        await race.update_race()

        reloaded = await RaceAccess.load(db_session, sample_race.id)
        assert reloaded.title == "Dolomiti Skyrace"
        assert reloaded.length == 23.0
        assert reloaded.id == sample_race.id

    async def test_update_with_changes_only_touches_present_fields(
        self, db_session: AsyncSession, sample_race: Race
    ):
        race = await RaceAccess.load(db_session, sample_race.id)

        await race.update_race({"description": "New route"})

        assert race.description == "New route"
        assert race.title == "Dolomiti Trail"
        assert race.length == 21.5

    async def test_update_ignores_id(self, db_session: AsyncSession, sample_race: Race):
        race = await RaceAccess.load(db_session, sample_race.id)

        await race.update_race({"id": "d" * 24, "title": "Renamed"})

        assert race.id == sample_race.id
        assert (await RaceAccess.load(db_session, sample_race.id)).title == "Renamed"

    async def test_update_unknown_id(self, db_session: AsyncSession):
        race = RaceAccess(db_session, {"title": "Ghost"})
        race.id = "e" * 24

        with pytest.raises(RaceNotFoundError):
            await race.update_race({"title": "Still ghost"})

    async def test_likes_only_update_keeps_comments(
        self, db_session: AsyncSession, sample_race: Race, test_user: User, other_user: User
    ):
        race = await RaceAccess.load(db_session, sample_race.id)
        await race.add_comment(other_user.id, "Bellissima!")

        await race.update_race({"likes": [{"user_id": test_user.id}]}, acting_user_id=test_user.id)

        assert [c["content"] for c in race.comments] == ["Bellissima!"]
        assert [like["user_id"] for like in race.likes] == [test_user.id]

    async def test_like_merge_leaves_other_users(
        self, db_session: AsyncSession, sample_race: Race, test_user: User, other_user: User
    ):
        race = await RaceAccess.load(db_session, sample_race.id)
        await race.toggle_like(other_user.id)

        # Stale list from a client that never saw the other user's like
        await race.update_race({"likes": [{"user_id": test_user.id}]}, acting_user_id=test_user.id)
        assert {like["user_id"] for like in race.likes} == {test_user.id, other_user.id}

        await race.update_race({"likes": []}, acting_user_id=test_user.id)
        assert [like["user_id"] for like in race.likes] == [other_user.id]

    async def test_comment_merge_appends_new_entries_only(
        self, db_session: AsyncSession, sample_race: Race, test_user: User, other_user: User
    ):
        race = await RaceAccess.load(db_session, sample_race.id)
        await race.add_comment(other_user.id, "First!")

        await race.update_race(
            {
                "comments": [
                    {"user_id": other_user.id, "content": "First!"},
                    {"user_id": other_user.id, "content": "Forged"},
                    {"user_id": test_user.id, "content": "See you there"},
                ]
            },
            acting_user_id=test_user.id,
        )

        assert [(c["user_id"], c["content"]) for c in race.comments] == [
            (other_user.id, "First!"),
            (test_user.id, "See you there"),
        ]

    async def test_comment_merge_never_removes(
        self, db_session: AsyncSession, sample_race: Race, test_user: User
    ):
        race = await RaceAccess.load(db_session, sample_race.id)
        await race.add_comment(test_user.id, "Kept")

        await race.update_race({"comments": []}, acting_user_id=test_user.id)

        assert [c["content"] for c in race.comments] == ["Kept"]


class TestDeleteRace:
    """Tests for removing races."""

    async def test_delete_removes_race_and_children(
        self, db_session: AsyncSession, sample_race: Race, test_user: User
    ):
        race = await RaceAccess.load(db_session, sample_race.id)
        await race.add_comment(test_user.id, "Bye")

        assert await race.delete_race() is True

        with pytest.raises(RaceNotFoundError):
            await RaceAccess.load(db_session, sample_race.id)
        count = await db_session.scalar(select(func.count()).select_from(RaceComment))
        assert count == 0

    async def test_delete_missing_id_is_noop(
        self, db_session: AsyncSession, sample_races: list[Race]
    ):
        race = RaceAccess(db_session)
        race.id = "0" * 24

        assert await race.delete_race() is False
        assert len(await RaceAccess.get_all_races(db_session)) == 3


class TestGetAllRaces:
    """Tests for listing races."""

    async def test_returns_every_race(self, db_session: AsyncSession, sample_races: list[Race]):
        races = await RaceAccess.get_all_races(db_session)

        assert {race.title for race in races} == {
            "Garda Half",
            "Lavaredo Ultra",
            "Adige Marathon",
        }

    async def test_empty_store(self, db_session: AsyncSession):
        assert await RaceAccess.get_all_races(db_session) == []


class TestLikesAndComments:
    """Tests for likes and comments on a race."""

    async def test_toggle_like_twice_restores_state(
        self, db_session: AsyncSession, sample_race: Race, test_user: User
    ):
        race = await RaceAccess.load(db_session, sample_race.id)
        before = [like["user_id"] for like in race.likes]

        assert await race.toggle_like(test_user.id) is True
        assert [like["user_id"] for like in race.likes] == [test_user.id]

        assert await race.toggle_like(test_user.id) is False
        assert [like["user_id"] for like in race.likes] == before

    async def test_add_comment_appends_in_order(
        self, db_session: AsyncSession, sample_race: Race, test_user: User, other_user: User
    ):
        race = await RaceAccess.load(db_session, sample_race.id)
        await race.add_comment(test_user.id, "One")
        await race.add_comment(other_user.id, "Two")
        before = [c["content"] for c in race.comments]

        comment = await race.add_comment(test_user.id, "  Three  ")

        assert comment["content"] == "Three"
        assert comment["user_id"] == test_user.id
        assert [c["content"] for c in race.comments] == before + ["Three"]


class TestViews:
    """Tests for serialized forms."""

    async def test_is_owned_by(self, db_session: AsyncSession, sample_race: Race, test_user: User):
        race = await RaceAccess.load(db_session, sample_race.id)

        assert race.is_owned_by(test_user.id)
        assert not race.is_owned_by("b" * 24)
        assert not race.is_owned_by(None)

    async def test_to_schema_uses_document_names(
        self, db_session: AsyncSession, sample_race: Race, test_user: User
    ):
        race = await RaceAccess.load(db_session, sample_race.id)
        await race.toggle_like(test_user.id)

        data = race.to_schema().model_dump(mode="json", by_alias=True)

        assert data["idowner"] == test_user.id
        assert data["data"] == "2024-06-01"
        assert data["typology"] == "trail"
        assert data["likes"][0]["userId"] == test_user.id
        assert data["otherImage"] == []
