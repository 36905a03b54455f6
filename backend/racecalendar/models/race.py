"""Race model with embedded comments and likes."""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from racecalendar.core.database import Base
from racecalendar.models.base import BaseModel, generate_id, utcnow


class Race(BaseModel):
    """A running event on the community calendar."""

    __tablename__ = "races"

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=generate_id)
    # Soft reference to users.id: deleting a user leaves their races in place
    owner_id: Mapped[str] = mapped_column(String(24), index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    length: Mapped[float] = mapped_column(Float, nullable=False)  # km
    race_date: Mapped[date] = mapped_column(Date, index=True)

    # Images
    principal_image: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    other_images: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)

    typology: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, index=True)

    # Location
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Relationships
    comments: Mapped[list["RaceComment"]] = relationship(
        "RaceComment",
        back_populates="race",
        cascade="all, delete-orphan",
        order_by="RaceComment.id",
        lazy="selectin",
    )
    likes: Mapped[list["RaceLike"]] = relationship(
        "RaceLike",
        back_populates="race",
        cascade="all, delete-orphan",
        order_by="RaceLike.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Race(id={self.id}, title={self.title}, date={self.race_date})>"


class RaceComment(Base):
    """Comment appended to a race. Never edited once stored."""

    __tablename__ = "race_comments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    race_id: Mapped[str] = mapped_column(
        ForeignKey("races.id", ondelete="CASCADE"),
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(24), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    race: Mapped["Race"] = relationship("Race", back_populates="comments")

    def __repr__(self) -> str:
        return f"<RaceComment(race_id={self.race_id}, user_id={self.user_id})>"


class RaceLike(Base):
    """A user's like on a race; at most one per (race, user)."""

    __tablename__ = "race_likes"
    __table_args__ = (
        UniqueConstraint("race_id", "user_id", name="uq_race_like_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    race_id: Mapped[str] = mapped_column(
        ForeignKey("races.id", ondelete="CASCADE"),
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(24), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    race: Mapped["Race"] = relationship("Race", back_populates="likes")

    def __repr__(self) -> str:
        return f"<RaceLike(race_id={self.race_id}, user_id={self.user_id})>"
