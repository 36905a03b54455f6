"""Interest categories shared by race typology and user interests."""

from enum import Enum


class Interest(str, Enum):
    """Closed set of race categories."""

    ROAD = "road"
    TRAIL = "trail"
    SKYRACE = "skyrace"
    ULTRA = "ultra"
    VERTICAL = "vertical"
    CROSS_COUNTRY = "cross_country"
    MOUNTAIN = "mountain"
    RELAY = "relay"
