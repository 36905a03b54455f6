"""Service layer for RaceCalendar.

Access objects wrap record store operations for one entity each.
"""

from racecalendar.services.race_access import RaceAccess
from racecalendar.services.user_access import UserAccess

__all__ = [
    "RaceAccess",
    "UserAccess",
]
