"""Pydantic schemas for the race and user documents.

Wire names follow the calendar's document shape (``idowner``, ``data``,
``principalimage``, ``otherImage``, ``createdAt``, ``userId``); attribute
names stay snake_case. Both spellings are accepted on input.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from racecalendar.models.interest import Interest


def _coerce_date(value: Any) -> Any:
    # Browsers post full ISO timestamps for date inputs
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    if isinstance(value, datetime):
        return value.date()
    return value


class DocumentSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


# Embedded documents
class CommentSchema(DocumentSchema):
    user_id: str = Field(..., alias="userId", min_length=1)
    content: str = Field(..., min_length=1, max_length=2000)
    date: Optional[datetime] = None


class LikeSchema(DocumentSchema):
    user_id: str = Field(..., alias="userId", min_length=1)
    date: Optional[datetime] = None


# Race Schemas
class RaceCreate(DocumentSchema):
    """Body of POST /race. Owner is taken from the session."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    length: float = Field(..., gt=0)
    race_date: date = Field(..., alias="data")
    principal_image: str = Field("", alias="principalimage", max_length=500)
    other_images: list[str] = Field(default_factory=list, alias="otherImage")
    typology: Optional[Interest] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    coerce_race_date = field_validator("race_date", mode="before")(_coerce_date)


class RaceUpdate(DocumentSchema):
    """Body of PUT /race/{id}. Only the fields sent are written."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    length: Optional[float] = Field(None, gt=0)
    race_date: Optional[date] = Field(None, alias="data")
    principal_image: Optional[str] = Field(None, alias="principalimage", max_length=500)
    other_images: Optional[list[str]] = Field(None, alias="otherImage")
    typology: Optional[Interest] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    comments: Optional[list[CommentSchema]] = None
    likes: Optional[list[LikeSchema]] = None

    coerce_race_date = field_validator("race_date", mode="before")(_coerce_date)


class RaceRead(DocumentSchema):
    """A race as returned by the API."""

    id: str
    owner_id: str = Field(..., alias="idowner")
    title: str
    description: str = ""
    length: float
    race_date: date = Field(..., alias="data")
    principal_image: str = Field("", alias="principalimage")
    other_images: list[str] = Field(default_factory=list, alias="otherImage")
    typology: Optional[Interest] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    comments: list[CommentSchema] = Field(default_factory=list)
    likes: list[LikeSchema] = Field(default_factory=list)

    coerce_race_date = field_validator("race_date", mode="before")(_coerce_date)


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Comment must not be blank")
        return value


# User Schemas
class UserCreate(DocumentSchema):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    interests: list[Interest] = Field(default_factory=list)


class UserUpdate(DocumentSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    interests: Optional[list[Interest]] = None


class UserRead(DocumentSchema):
    id: str
    name: str
    email: str
    interests: list[Interest] = Field(default_factory=list)


# Generic bodies
class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
