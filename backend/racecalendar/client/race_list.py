"""Race list controller for calendar clients.

Holds the race list a page renders and applies each user action to it
before the server confirms it. A failed request restores the list as it
was before the action and leaves a message in ``error``.
"""

import copy
import logging
from datetime import datetime, timezone
from operator import attrgetter
from typing import Any, Callable, Mapping, Optional

import httpx
from pydantic import ValidationError

from racecalendar.core.session import SessionContext
from racecalendar.models.interest import Interest
from racecalendar.models.schemas import (
    CommentSchema,
    LikeSchema,
    RaceCreate,
    RaceRead,
    RaceUpdate,
)

logger = logging.getLogger(__name__)

LOAD_ERROR = "Could not load races."
LIKE_ERROR = "Could not update like. Try again."
COMMENT_ERROR = "Could not add comment. Try again."
CREATE_ERROR = "Could not create race."
EDIT_ERROR = "Could not save changes."
DELETE_ERROR = "Could not delete race."
MISSING_FIELDS_ERROR = "Please fill title, length and date."
INVALID_FORM_ERROR = "Please check the race details."

# Local id for a created race until the server assigns one
PENDING_ID = "pending"


def _form_value(form: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = form.get(key)
        if value not in (None, ""):
            return value
    return None


class RaceListController:
    """Race list state with optimistic mutations."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        session: Optional[SessionContext] = None,
        on_sign_in: Optional[Callable[[], None]] = None,
        api_base: str = "/api/v1/race",
    ):
        self.http = http
        self.session = session
        self.on_sign_in = on_sign_in
        self.api_base = api_base.rstrip("/")
        self.races: list[RaceRead] = []
        self.error: Optional[str] = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _url(self, race_id: Optional[str] = None) -> str:
        return f"{self.api_base}/{race_id}" if race_id else self.api_base

    def _sort(self) -> None:
        self.races.sort(key=attrgetter("race_date"))

    def _find(self, race_id: str) -> Optional[RaceRead]:
        return next((race for race in self.races if race.id == race_id), None)

    def _require_session(self) -> bool:
        if self.session is None:
            if self.on_sign_in is not None:
                self.on_sign_in()
            return False
        return True

    def _rollback(self, snapshot: list[RaceRead], message: str, exc: Exception) -> None:
        logger.warning("%s (%s)", message, exc)
        self.races = snapshot
        self.error = message

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        response = await self.http.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_races(self) -> list[RaceRead]:
        """Load every race and sort by event date, earliest first."""
        try:
            response = await self._send("GET", self._url())
            races = [RaceRead.model_validate(item) for item in response.json()]
        except (httpx.HTTPError, ValidationError) as e:
            logger.warning("%s (%s)", LOAD_ERROR, e)
            self.error = LOAD_ERROR
            return self.races

        self.races = races
        self._sort()
        self.error = None
        return self.races

    def filter_races(self, search: str = "", typology: Optional[Interest | str] = None) -> list[RaceRead]:
        """Races whose title or description contains ``search`` and whose
        typology matches, in list order. An unknown typology matches nothing.
        The list itself is not changed."""
        needle = search.strip().lower()
        try:
            wanted = Interest(typology) if typology else None
        except ValueError:
            return []

        matches = []
        for race in self.races:
            if needle and needle not in race.title.lower() and needle not in race.description.lower():
                continue
            if wanted is not None and race.typology != wanted:
                continue
            matches.append(race)
        return matches

    def typologies(self) -> list[Interest]:
        """Distinct typologies present in the list."""
        return sorted({race.typology for race in self.races if race.typology}, key=attrgetter("value"))

    def is_owner(self, race: RaceRead) -> bool:
        return self.session is not None and race.owner_id == self.session.user.id

    # ------------------------------------------------------------------
    # Likes & comments
    # ------------------------------------------------------------------

    async def toggle_like(self, race_id: str) -> bool:
        """Flip the signed-in user's like on a race.

        Returns:
            True if the server accepted the change.
        """
        if not self._require_session():
            return False
        race = self._find(race_id)
        if race is None:
            return False

        snapshot = copy.deepcopy(self.races)
        user_id = self.session.user.id
        if any(like.user_id == user_id for like in race.likes):
            race.likes = [like for like in race.likes if like.user_id != user_id]
        else:
            race.likes = race.likes + [LikeSchema(user_id=user_id, date=datetime.now(timezone.utc))]

        body = {"likes": [like.model_dump(mode="json", by_alias=True) for like in race.likes]}
        try:
            await self._send("PUT", self._url(race_id), json=body)
        except httpx.HTTPError as e:
            self._rollback(snapshot, LIKE_ERROR, e)
            return False

        self.error = None
        return True

    async def add_comment(self, race_id: str, text: str) -> bool:
        """Append a comment by the signed-in user. Blank text does nothing."""
        content = text.strip()
        if not content:
            return False
        if not self._require_session():
            return False
        race = self._find(race_id)
        if race is None:
            return False

        snapshot = copy.deepcopy(self.races)
        comment = CommentSchema(
            user_id=self.session.user.id,
            content=content,
            date=datetime.now(timezone.utc),
        )
        race.comments = race.comments + [comment]

        body = {"comments": [c.model_dump(mode="json", by_alias=True) for c in race.comments]}
        try:
            await self._send("PUT", self._url(race_id), json=body)
        except httpx.HTTPError as e:
            self._rollback(snapshot, COMMENT_ERROR, e)
            return False

        self.error = None
        return True

    # ------------------------------------------------------------------
    # Create / edit / delete
    # ------------------------------------------------------------------

    async def create_race(self, form: Mapping[str, Any]) -> Optional[RaceRead]:
        """Add a race from a form and return the server's version."""
        if not self._require_session():
            return None

        required = (
            _form_value(form, "title"),
            _form_value(form, "length"),
            _form_value(form, "data", "race_date"),
        )
        if not all(required):
            self.error = MISSING_FIELDS_ERROR
            return None

        try:
            draft = RaceCreate.model_validate(form)
            pending = RaceRead.model_validate(
                {
                    **draft.model_dump(),
                    "id": PENDING_ID,
                    "owner_id": self.session.user.id,
                }
            )
        except ValidationError:
            self.error = INVALID_FORM_ERROR
            return None

        snapshot = copy.deepcopy(self.races)
        self.races.insert(0, pending)

        try:
            response = await self._send(
                "POST",
                self._url(),
                json=draft.model_dump(mode="json", by_alias=True, exclude_none=True),
            )
            created = RaceRead.model_validate(response.json())
        except (httpx.HTTPError, ValidationError) as e:
            self._rollback(snapshot, CREATE_ERROR, e)
            return None

        self.races = [created if race is pending else race for race in self.races]
        self._sort()
        self.error = None
        return created

    async def save_edit(self, form: Mapping[str, Any]) -> Optional[RaceRead]:
        """Save an edited race. A form without an id creates a new race.

        The list is not re-sorted afterwards.
        """
        race_id = form.get("id")
        if not race_id:
            return await self.create_race(form)
        if not self._require_session():
            return None
        race = self._find(race_id)
        if race is None:
            return None

        try:
            changes = RaceUpdate.model_validate(
                {key: value for key, value in form.items() if key not in ("id", "comments", "likes")}
            )
            edited = RaceRead.model_validate(
                {**race.model_dump(), **changes.model_dump(exclude_unset=True, exclude_none=True)}
            )
        except ValidationError:
            self.error = INVALID_FORM_ERROR
            return None

        snapshot = copy.deepcopy(self.races)
        index = self.races.index(race)
        self.races[index] = edited

        try:
            response = await self._send(
                "PUT",
                self._url(race_id),
                json=changes.model_dump(mode="json", by_alias=True, exclude_unset=True),
            )
            saved = RaceRead.model_validate(response.json())
        except (httpx.HTTPError, ValidationError) as e:
            self._rollback(snapshot, EDIT_ERROR, e)
            return None

        self.races = [saved if r is edited else r for r in self.races]
        self.error = None
        return saved

    async def delete_race(self, race_id: str) -> bool:
        """Remove a race from the list and from the server."""
        if not self._require_session():
            return False

        snapshot = copy.deepcopy(self.races)
        self.races = [race for race in self.races if race.id != race_id]

        try:
            await self._send("DELETE", self._url(race_id))
        except httpx.HTTPError as e:
            self._rollback(snapshot, DELETE_ERROR, e)
            return False

        self.error = None
        return True
