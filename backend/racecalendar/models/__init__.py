"""Database models for RaceCalendar."""

from racecalendar.models.interest import Interest
from racecalendar.models.race import Race, RaceComment, RaceLike
from racecalendar.models.user import User

__all__ = [
    "Interest",
    # Race
    "Race",
    "RaceComment",
    "RaceLike",
    # User
    "User",
]
