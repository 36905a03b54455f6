"""Access object for a single race aggregate.

A ``RaceAccess`` mirrors one race, including its embedded comments and
likes, and keeps its fields in step with the store after every call.
Objects bound to an existing race are built with ``await
RaceAccess.load(session, race_id)``; ``RaceAccess(session, properties)``
describes a race that has not been saved yet.
"""

import logging
from collections import Counter
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from racecalendar.core.exceptions import RaceNotFoundError, RaceValidationError
from racecalendar.models.base import utcnow
from racecalendar.models.interest import Interest
from racecalendar.models.race import Race, RaceComment, RaceLike
from racecalendar.models.schemas import RaceRead
from racecalendar.services.store import store_operation

logger = logging.getLogger(__name__)

# Scalar fields written by save/update
TRACKED_FIELDS = (
    "owner_id",
    "title",
    "description",
    "length",
    "race_date",
    "principal_image",
    "other_images",
    "typology",
    "latitude",
    "longitude",
)
REQUIRED_FIELDS = ("title", "length", "race_date")
SOCIAL_FIELDS = ("comments", "likes")


def _column_value(field: str, value: Any) -> Any:
    if field == "typology" and isinstance(value, Interest):
        return value.value
    if field == "other_images" and value is not None:
        return list(value)
    if field in ("title", "description") and isinstance(value, str):
        return value.strip()
    return value


def _entry_value(entry: Any, key: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(key)
    return getattr(entry, key, None)


class RaceAccess:
    """One race and its persistence operations."""

    entity = "race"

    def __init__(self, session: AsyncSession, properties: Optional[Mapping[str, Any]] = None):
        self.session = session
        self.id: str = ""
        self.owner_id: str = ""
        self.title: str = ""
        self.description: str = ""
        self.length: Optional[float] = None
        self.race_date: Optional[date] = None
        self.principal_image: str = ""
        self.other_images: list[str] = []
        self.typology: Optional[str] = None
        self.latitude: Optional[float] = None
        self.longitude: Optional[float] = None
        self.created_at: Optional[datetime] = None
        self.comments: list[dict[str, Any]] = []
        self.likes: list[dict[str, Any]] = []

        if properties:
            self.assign(properties)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    async def load(cls, session: AsyncSession, race_id: str) -> "RaceAccess":
        """Return an access object populated from the stored race.

        Raises:
            RaceNotFoundError: If no race has this id.
        """
        race = cls(session)
        await race.get_race_by_id(race_id)
        return race

    @classmethod
    def from_record(cls, session: AsyncSession, record: Race) -> "RaceAccess":
        race = cls(session)
        race._refresh(record)
        return race

    def assign(self, properties: Mapping[str, Any]) -> None:
        """Copy known fields from ``properties`` onto the local object.

        The id is never taken from ``properties``.
        """
        for field in TRACKED_FIELDS + ("created_at",):
            if field in properties:
                setattr(self, field, _column_value(field, properties[field]))

    def _refresh(self, record: Race) -> None:
        self.id = record.id
        self.owner_id = record.owner_id
        self.title = record.title
        self.description = record.description or ""
        self.length = record.length
        self.race_date = record.race_date
        self.principal_image = record.principal_image or ""
        self.other_images = list(record.other_images or [])
        self.typology = record.typology
        self.latitude = record.latitude
        self.longitude = record.longitude
        self.created_at = record.created_at
        self.comments = [
            {"user_id": c.user_id, "content": c.content, "date": c.date}
            for c in record.comments
        ]
        self.likes = [{"user_id": like.user_id, "date": like.date} for like in record.likes]

    async def _find(self, race_id: str) -> Optional[Race]:
        result = await self.session.execute(
            select(Race)
            .where(Race.id == race_id)
            .options(selectinload(Race.comments), selectinload(Race.likes))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _require_record(self) -> Race:
        record = await self._find(self.id) if self.id else None
        if record is None:
            raise RaceNotFoundError(self.id)
        return record

    # ------------------------------------------------------------------
    # Store operations
    # ------------------------------------------------------------------

    async def get_race_by_id(self, race_id: str) -> "RaceAccess":
        """Fetch a race and replace every local field with the stored values."""
        async with store_operation(self.session, self.entity, "get"):
            record = await self._find(race_id)
        if record is None:
            raise RaceNotFoundError(race_id)
        self._refresh(record)
        return self

    async def save_race(self) -> "RaceAccess":
        """Insert the local object as a new race and adopt the assigned id.

        Raises:
            RaceValidationError: If title, length or date is missing.
        """
        missing = [field for field in REQUIRED_FIELDS if not getattr(self, field)]
        if missing:
            raise RaceValidationError(missing)

        record = Race(
            owner_id=self.owner_id,
            title=self.title,
            description=self.description or "",
            length=self.length,
            race_date=self.race_date,
            principal_image=self.principal_image or "",
            other_images=list(self.other_images or []),
            typology=self.typology,
            latitude=self.latitude,
            longitude=self.longitude,
            created_at=self.created_at or utcnow(),
            comments=[],
            likes=[],
        )
        async with store_operation(self.session, self.entity, "insert"):
            self.session.add(record)
            await self.session.commit()

        self._refresh(record)
        logger.info("Created race %s owned by %s", self.id, self.owner_id)
        return self

    async def update_race(
        self,
        changes: Optional[Mapping[str, Any]] = None,
        acting_user_id: Optional[str] = None,
    ) -> "RaceAccess":
        """Write changes to the stored race and return the updated state.

        Without ``changes`` every tracked scalar field of the local object is
        written; comments and likes are left alone. With ``changes`` only the
        fields present are written, and ``likes``/``comments`` are merged
        into what is stored instead of replacing it. The race id never
        changes.
        """
        async with store_operation(self.session, self.entity, "update"):
            record = await self._require_record()
            if changes is None:
                for field in TRACKED_FIELDS:
                    setattr(record, field, _column_value(field, getattr(self, field)))
            else:
                for field, value in changes.items():
                    if field in TRACKED_FIELDS:
                        setattr(record, field, _column_value(field, value))
                if changes.get("likes") is not None:
                    self._merge_likes(record, changes["likes"], acting_user_id)
                if changes.get("comments") is not None:
                    self._merge_comments(record, changes["comments"], acting_user_id)
            await self.session.commit()

        self._refresh(record)
        logger.info("Updated race %s", self.id)
        return self

    async def delete_race(self) -> bool:
        """Remove the race. Deleting a missing id is not an error.

        Returns:
            True if a record was removed.
        """
        async with store_operation(self.session, self.entity, "delete"):
            record = await self._find(self.id) if self.id else None
            if record is None:
                return False
            await self.session.delete(record)
            await self.session.commit()

        logger.info("Deleted race %s", self.id)
        return True

    @classmethod
    async def get_all_races(cls, session: AsyncSession) -> list["RaceAccess"]:
        """Return every race, unfiltered and unordered."""
        async with store_operation(session, cls.entity, "list"):
            result = await session.execute(
                select(Race).execution_options(populate_existing=True)
            )
            records = result.scalars().all()
        return [cls.from_record(session, record) for record in records]

    # ------------------------------------------------------------------
    # Likes & comments
    # ------------------------------------------------------------------

    async def toggle_like(self, user_id: str) -> bool:
        """Add or remove ``user_id``'s like.

        Returns:
            True if the user likes the race after the call.
        """
        async with store_operation(self.session, self.entity, "toggle_like"):
            record = await self._require_record()
            existing = next((like for like in record.likes if like.user_id == user_id), None)
            if existing is not None:
                record.likes.remove(existing)
            else:
                record.likes.append(RaceLike(user_id=user_id, date=utcnow()))
            await self.session.commit()

        self._refresh(record)
        return existing is None

    async def add_comment(self, user_id: str, content: str) -> dict[str, Any]:
        """Append one comment and return it."""
        async with store_operation(self.session, self.entity, "add_comment"):
            record = await self._require_record()
            comment = RaceComment(user_id=user_id, content=content.strip(), date=utcnow())
            record.comments.append(comment)
            await self.session.commit()

        self._refresh(record)
        return self.comments[-1]

    def _merge_likes(
        self,
        record: Race,
        likes: Iterable[Any],
        acting_user_id: Optional[str],
    ) -> None:
        wanted = {_entry_value(like, "user_id") for like in likes}
        stored = {like.user_id: like for like in record.likes}

        if acting_user_id is None:
            # No acting user: only add, never remove someone else's like
            for user_id in wanted - stored.keys():
                record.likes.append(RaceLike(user_id=user_id, date=utcnow()))
            return

        if acting_user_id in wanted and acting_user_id not in stored:
            record.likes.append(RaceLike(user_id=acting_user_id, date=utcnow()))
        elif acting_user_id not in wanted and acting_user_id in stored:
            record.likes.remove(stored[acting_user_id])

    def _merge_comments(
        self,
        record: Race,
        comments: Iterable[Any],
        acting_user_id: Optional[str],
    ) -> None:
        already = Counter((c.user_id, c.content) for c in record.comments)
        for entry in comments:
            user_id = _entry_value(entry, "user_id")
            content = (_entry_value(entry, "content") or "").strip()
            if not content:
                continue
            if acting_user_id is not None and user_id != acting_user_id:
                continue
            key = (user_id, content)
            if already[key] > 0:
                already[key] -= 1
                continue
            record.comments.append(
                RaceComment(
                    user_id=user_id,
                    content=content,
                    date=_entry_value(entry, "date") or utcnow(),
                )
            )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def is_owned_by(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and self.owner_id == user_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "length": self.length,
            "race_date": self.race_date,
            "principal_image": self.principal_image,
            "other_images": list(self.other_images),
            "typology": self.typology,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "created_at": self.created_at,
            "comments": [dict(c) for c in self.comments],
            "likes": [dict(like) for like in self.likes],
        }

    def to_schema(self) -> RaceRead:
        return RaceRead.model_validate(self.to_dict())

    def __repr__(self) -> str:
        return f"<RaceAccess(id={self.id!r}, title={self.title!r})>"
