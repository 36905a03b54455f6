"""User profile endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from racecalendar.api.v1.endpoints.auth import CurrentSession
from racecalendar.core.database import get_db
from racecalendar.core.session import SessionContext
from racecalendar.models.schemas import (
    ErrorResponse,
    MessageResponse,
    UserCreate,
    UserRead,
    UserUpdate,
)
from racecalendar.services.user_access import UserAccess

router = APIRouter()


def _ensure_self(user_id: str, session: SessionContext) -> None:
    if session.user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Users can only change their own profile",
        )


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get a user profile."""
    user = await UserAccess.load(db, user_id)
    return user.to_schema()


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    responses={500: {"model": ErrorResponse}},
)
async def create_user(
    user_data: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a user profile."""
    user = UserAccess(db, user_data.model_dump())
    await user.save_user()
    return user.to_schema()


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: CurrentSession,
):
    """Update the signed-in user's profile."""
    _ensure_self(user_id, session)

    user = await UserAccess.load(db, user_id)
    await user.update_user(user_data.model_dump(exclude_unset=True))
    return user.to_schema()


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: CurrentSession,
):
    """Delete the signed-in user's profile. Their races stay listed."""
    _ensure_self(user_id, session)

    user = UserAccess(db)
    user.id = user_id
    await user.delete_user()
    return MessageResponse(message="User deleted successfully")
