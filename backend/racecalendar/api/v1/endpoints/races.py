"""Race API endpoints for the community calendar.

Reads are public. Every mutation needs a session; editing race fields and
deleting are reserved to the owner, while likes and comments are open to
any signed-in user.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from racecalendar.api.v1.endpoints.auth import CurrentSession
from racecalendar.core.database import get_db
from racecalendar.core.exceptions import RaceNotFoundError
from racecalendar.core.session import SessionContext
from racecalendar.models.schemas import (
    CommentCreate,
    ErrorResponse,
    MessageResponse,
    RaceCreate,
    RaceRead,
    RaceUpdate,
)
from racecalendar.services.race_access import SOCIAL_FIELDS, RaceAccess

router = APIRouter()

# Fields an update may clear by sending null
NULLABLE_FIELDS = {"typology", "latitude", "longitude"}

ERROR_RESPONSES = {500: {"model": ErrorResponse}}


def _ensure_owner(race: RaceAccess, session: SessionContext) -> None:
    if not race.is_owned_by(session.user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the race owner can do this",
        )


@router.get("", response_model=list[RaceRead], responses=ERROR_RESPONSES)
async def list_races(
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List every race. Ordering is left to the client."""
    races = await RaceAccess.get_all_races(db)
    return [race.to_schema() for race in races]


@router.get("/{race_id}", response_model=RaceRead)
async def get_race(
    race_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get a single race."""
    race = await RaceAccess.load(db, race_id)
    return race.to_schema()


@router.post(
    "",
    response_model=RaceRead,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def create_race(
    race_data: RaceCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: CurrentSession,
):
    """Create a race owned by the signed-in user."""
    properties = race_data.model_dump(exclude_none=True)
    properties["owner_id"] = session.user.id

    race = RaceAccess(db, properties)
    await race.save_race()
    return race.to_schema()


@router.put("/{race_id}", response_model=RaceRead, responses=ERROR_RESPONSES)
async def update_race(
    race_id: str,
    race_data: RaceUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: CurrentSession,
):
    """Update a race with the fields present in the body.

    ``likes`` and ``comments`` are merged for the signed-in user instead of
    overwriting what is stored; any other field requires ownership.
    """
    changes = {
        field: value
        for field, value in race_data.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_FIELDS
    }

    race = await RaceAccess.load(db, race_id)
    if set(changes) - set(SOCIAL_FIELDS):
        _ensure_owner(race, session)

    await race.update_race(changes, acting_user_id=session.user.id)
    return race.to_schema()


@router.delete("", status_code=status.HTTP_400_BAD_REQUEST, response_model=ErrorResponse)
async def delete_race_without_id():
    """Reject deletes that do not name a race."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Id is required"},
    )


@router.delete("/{race_id}", response_model=MessageResponse, responses=ERROR_RESPONSES)
async def delete_race(
    race_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: CurrentSession,
):
    """Delete a race. Deleting an unknown id succeeds without changes."""
    try:
        race = await RaceAccess.load(db, race_id)
    except RaceNotFoundError:
        return MessageResponse(message="Race deleted successfully")

    _ensure_owner(race, session)
    await race.delete_race()
    return MessageResponse(message="Race deleted successfully")


@router.post("/{race_id}/like", response_model=RaceRead, responses=ERROR_RESPONSES)
async def toggle_like(
    race_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: CurrentSession,
):
    """Like the race, or remove the like if the user already liked it."""
    race = await RaceAccess.load(db, race_id)
    await race.toggle_like(session.user.id)
    return race.to_schema()


@router.post(
    "/{race_id}/comments",
    response_model=RaceRead,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def add_comment(
    race_id: str,
    comment: CommentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: CurrentSession,
):
    """Append a comment by the signed-in user."""
    race = await RaceAccess.load(db, race_id)
    await race.add_comment(session.user.id, comment.content)
    return race.to_schema()
