from enum import Enum
from typing import NewType

# IDs
EdgeID = NewType("EdgeID", int)
NodeID = NewType("NodeID", int)
WayID = NewType("WayID", int)
RoadElementID = NewType("RoadElementID", str)

# Coordinates
LatLon = tuple[float, float]


class WayAccess(str, Enum):
    """Outcome of the access check for a single map way."""

    WAY = "WAY"
    FERRY = "FERRY"
    CAN_SKIP = "CAN_SKIP"

    @property
    def can_skip(self) -> bool:
        return self is WayAccess.CAN_SKIP

    @property
    def is_ferry(self) -> bool:
        return self is WayAccess.FERRY


class WeightingName(str, Enum):
    """Weightings a route request can select."""

    FASTEST = "fastest"
    SHORTEST = "shortest"
    FASTEST_WITH_TRAFFIC = "fastest_with_traffic"


class TrafficMatchMode(str, Enum):
    """How road-element ids are linked to way ids."""

    SUBSTRING = "substring"  # road element id contains the way id anywhere
    BOUNDARY = "boundary"  # way id must not be flanked by other digits
