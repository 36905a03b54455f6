"""Access object for user profiles."""

import logging
from typing import Any, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from racecalendar.core.exceptions import UserNotFoundError, UserValidationError
from racecalendar.models.interest import Interest
from racecalendar.models.schemas import UserRead
from racecalendar.models.user import User
from racecalendar.services.store import store_operation

logger = logging.getLogger(__name__)

TRACKED_FIELDS = ("name", "email", "interests")
REQUIRED_FIELDS = ("name", "email")


def _interest_values(interests: Any) -> list[str]:
    return [i.value if isinstance(i, Interest) else str(i) for i in (interests or [])]


class UserAccess:
    """One user profile and its persistence operations.

    Deleting a user does not touch the races they own.
    """

    entity = "user"

    def __init__(self, session: AsyncSession, properties: Optional[Mapping[str, Any]] = None):
        self.session = session
        self.id: str = ""
        self.name: str = ""
        self.email: str = ""
        self.interests: list[str] = []

        if properties:
            self.assign(properties)

    @classmethod
    async def load(cls, session: AsyncSession, user_id: str) -> "UserAccess":
        """Return an access object populated from the stored user.

        Raises:
            UserNotFoundError: If no user has this id.
        """
        user = cls(session)
        await user.get_user_by_id(user_id)
        return user

    def assign(self, properties: Mapping[str, Any]) -> None:
        for field in TRACKED_FIELDS:
            if field in properties and properties[field] is not None:
                value = properties[field]
                if field == "interests":
                    value = _interest_values(value)
                elif isinstance(value, str):
                    value = value.strip()
                setattr(self, field, value)

    def _refresh(self, record: User) -> None:
        self.id = record.id
        self.name = record.name
        self.email = record.email
        self.interests = list(record.interests or [])

    async def _find(self, user_id: str) -> Optional[User]:
        result = await self.session.execute(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: str) -> "UserAccess":
        """Fetch a user and replace the local fields with the stored values."""
        async with store_operation(self.session, self.entity, "get"):
            record = await self._find(user_id)
        if record is None:
            raise UserNotFoundError(user_id)
        self._refresh(record)
        return self

    async def save_user(self) -> "UserAccess":
        """Insert the local object as a new user and adopt the assigned id."""
        missing = [field for field in REQUIRED_FIELDS if not getattr(self, field)]
        if missing:
            raise UserValidationError(missing)

        record = User(name=self.name, email=self.email, interests=list(self.interests))
        async with store_operation(self.session, self.entity, "insert"):
            self.session.add(record)
            await self.session.commit()

        self._refresh(record)
        logger.info("Created user %s", self.id)
        return self

    async def update_user(self, changes: Optional[Mapping[str, Any]] = None) -> "UserAccess":
        """Write changes (or the whole local state) to the stored user."""
        if changes is not None:
            self.assign(changes)

        async with store_operation(self.session, self.entity, "update"):
            record = await self._find(self.id) if self.id else None
            if record is None:
                raise UserNotFoundError(self.id)
            record.name = self.name
            record.email = self.email
            record.interests = list(self.interests)
            await self.session.commit()

        self._refresh(record)
        return self

    async def delete_user(self) -> bool:
        """Remove the user. Owned races are left in place."""
        async with store_operation(self.session, self.entity, "delete"):
            record = await self._find(self.id) if self.id else None
            if record is None:
                return False
            await self.session.delete(record)
            await self.session.commit()

        logger.info("Deleted user %s", self.id)
        return True

    @classmethod
    async def get_all_users(cls, session: AsyncSession) -> list["UserAccess"]:
        async with store_operation(session, cls.entity, "list"):
            result = await session.execute(select(User))
            records = result.scalars().all()
        users = []
        for record in records:
            user = cls(session)
            user._refresh(record)
            users.append(user)
        return users

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "interests": list(self.interests),
        }

    def to_schema(self) -> UserRead:
        return UserRead.model_validate(self.to_dict())
