"""Per-way access and speed classification for motor vehicles."""

import logging
import re
from dataclasses import dataclass, replace
from typing import Protocol

from core.types import WayAccess
from roadnet.io.osm import Way
from roadnet.vehicles.profiles import CAR, VehicleProfile

logger = logging.getLogger(__name__)

MPH_TO_KPH = 1.609344


class AccessPolicyError(Exception):
    """Raised when a way's tags cannot be classified."""


@dataclass(frozen=True)
class AccessDecision:
    """Access flags and speeds assigned to every edge of a way."""

    access: WayAccess
    forward: bool = False
    backward: bool = False
    forward_speed_kph: float = 0.0
    backward_speed_kph: float = 0.0

    @classmethod
    def skip(cls) -> "AccessDecision":
        return cls(access=WayAccess.CAN_SKIP)

    @property
    def usable(self) -> bool:
        return not self.access.can_skip and (self.forward or self.backward)


@dataclass(frozen=True)
class WayClassification:
    """Result of classifying a way.

    ``decision`` is always usable by the caller; when ``error`` is set it is
    the fallback decision computed before the failure.
    """

    decision: AccessDecision
    error: AccessPolicyError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AccessPolicy(Protocol):
    """Way classifier consulted once per way during import."""

    profile: VehicleProfile

    def classify(self, way: Way) -> WayClassification: ...

    def is_barrier(self, node_tags: dict[str, str]) -> bool: ...


def parse_speed(value: str | None) -> float | None:
    """Parse an OSM ``maxspeed`` value into kph.

    Returns:
        Speed in kph, or None if the value is missing or unparseable
    """
    if not value:
        return None
    value = value.strip().lower()
    if value == "none":
        return 150.0
    if value == "walk":
        return 6.0
    # Multiple values, e.g. "50;30": take the first
    value = value.split(";")[0].strip()
    match = re.fullmatch(r"(\d+(?:\.\d+)?)\s*(mph|km/h|kmh|kph)?", value)
    if match is None:
        return None
    speed = float(match.group(1))
    if match.group(2) == "mph":
        speed *= MPH_TO_KPH
    return speed if speed > 0 else None


def _tag_values(value: str) -> list[str]:
    return [v.strip() for v in value.split(";") if v.strip()]


class CarAccessPolicy:
    """Access and speed rules for ordinary motor cars."""

    DEFAULT_SPEEDS: dict[str, float] = {
        "motorway": 100,
        "motorway_link": 70,
        "motorroad": 90,
        "trunk": 70,
        "trunk_link": 65,
        "primary": 65,
        "primary_link": 60,
        "secondary": 60,
        "secondary_link": 50,
        "tertiary": 50,
        "tertiary_link": 40,
        "unclassified": 30,
        "residential": 30,
        "living_street": 5,
        "service": 20,
        "road": 20,
        "track": 15,
    }

    BAD_SURFACES = frozenset(
        {
            "cobblestone",
            "grass_paver",
            "gravel",
            "sand",
            "paving_stones",
            "dirt",
            "ground",
            "grass",
            "unpaved",
            "compacted",
        }
    )
    BAD_SURFACE_SPEED_KPH = 30.0
    FERRY_SPEED_KPH = 10.0

    def __init__(self, profile: VehicleProfile = CAR, block_fords: bool = False) -> None:
        self.profile = profile
        self.block_fords = block_fords

        # Ordered: the first tag present on a way decides
        self.restrictions: list[str] = ["motorcar", "motor_vehicle", "vehicle", "access"]
        self.restricted_values: set[str] = {
            "agricultural",
            "forestry",
            "no",
            "restricted",
            "delivery",
            "military",
            "emergency",
            "private",
        }
        self.intended_values: set[str] = {"yes", "designated", "permissive", "destination"}
        self.oneways: set[str] = {"yes", "true", "1", "-1"}
        self.ferries: set[str] = {"ferry", "shuttle_train"}
        self.barriers: set[str] = {
            "kissing_gate",
            "fence",
            "bollard",
            "stile",
            "turnstile",
            "cycle_barrier",
            "motorcycle_barrier",
            "block",
            "bus_trap",
            "sump_buster",
        }

    @property
    def name(self) -> str:
        return self.profile.name

    def get_access(self, way: Way) -> WayAccess:
        highway = way.get_tag("highway")
        first_value = way.get_first_priority_tag(self.restrictions)

        if highway is None:
            if way.has_tag("route", *self.ferries):
                values = _tag_values(first_value)
                if any(v in self.restricted_values for v in values):
                    return WayAccess.CAN_SKIP
                return WayAccess.FERRY
            return WayAccess.CAN_SKIP

        if highway == "service" and way.has_tag("service", "emergency_access"):
            return WayAccess.CAN_SKIP

        if highway not in self.DEFAULT_SPEEDS:
            return WayAccess.CAN_SKIP

        if way.has_tag("impassable", "yes") or way.has_tag("status", "impassable"):
            return WayAccess.CAN_SKIP

        for value in _tag_values(first_value):
            if value in self.restricted_values:
                return WayAccess.CAN_SKIP
            if value in self.intended_values:
                return WayAccess.WAY

        if self.block_fords and (highway == "ford" or way.has_tag("ford")):
            return WayAccess.CAN_SKIP

        return WayAccess.WAY

    def get_speed(self, way: Way) -> float:
        """Free-flow speed from the highway class, before maxspeed is applied.

        Raises:
            AccessPolicyError: If the highway class has no default speed
        """
        highway = way.get_tag("highway")
        speed = self.DEFAULT_SPEEDS.get(highway or "")
        if speed is None:
            raise AccessPolicyError(f"{self.name}, no speed found for highway={highway}")
        return float(speed)

    def apply_max_speed(self, way: Way, speed: float) -> float:
        max_speed = parse_speed(way.get_tag("maxspeed"))
        if max_speed is not None:
            # Legal limits are rarely reached on average
            speed = max_speed * 0.9
        if way.get_tag("surface") in self.BAD_SURFACES:
            speed = min(speed, self.BAD_SURFACE_SPEED_KPH)
        return min(speed, self.profile.speed_cap_kph)

    def is_roundabout(self, way: Way) -> bool:
        return way.has_tag("junction", "roundabout", "circular")

    def is_oneway(self, way: Way) -> bool:
        return (
            way.has_tag("oneway", *self.oneways)
            or way.has_tag("vehicle:backward", *self.restricted_values)
            or way.has_tag("vehicle:forward", *self.restricted_values)
            or way.has_tag("motor_vehicle:backward", *self.restricted_values)
            or way.has_tag("motor_vehicle:forward", *self.restricted_values)
        )

    def is_forward_oneway(self, way: Way) -> bool:
        return (
            not way.has_tag("oneway", "-1")
            and not way.has_tag("vehicle:forward", *self.restricted_values)
            and not way.has_tag("motor_vehicle:forward", *self.restricted_values)
        )

    def is_backward_oneway(self, way: Way) -> bool:
        return (
            way.has_tag("oneway", "-1")
            or way.has_tag("vehicle:forward", *self.restricted_values)
            or way.has_tag("motor_vehicle:forward", *self.restricted_values)
        )

    def handle_way_tags(self, way: Way) -> AccessDecision:
        """Compute access flags and speeds for a way.

        Raises:
            AccessPolicyError: If the tags cannot be classified
        """
        access = self.get_access(way)
        if access.can_skip:
            return AccessDecision.skip()

        if access.is_ferry:
            speed = self.profile.store_speed(self.FERRY_SPEED_KPH)
            return AccessDecision(access, True, True, speed, speed)

        speed = self.profile.store_speed(self.apply_max_speed(way, self.get_speed(way)))
        decision = AccessDecision(access, True, True, speed, speed)

        if self.is_oneway(way) or self.is_roundabout(way):
            decision = replace(
                decision,
                forward=self.is_forward_oneway(way),
                backward=self.is_backward_oneway(way),
            )
        return decision

    def classify(self, way: Way) -> WayClassification:
        try:
            return WayClassification(self.handle_way_tags(way))
        except Exception as e:
            error = AccessPolicyError(f"Failed to classify way {way.id} for {self.name}: {e}")
            error.__cause__ = e
            return WayClassification(AccessDecision.skip(), error)

    def is_barrier(self, node_tags: dict[str, str]) -> bool:
        """Whether a node with these tags blocks passage for this vehicle."""
        first_value = ""
        for key in self.restrictions:
            if node_tags.get(key):
                first_value = node_tags[key]
                break

        if node_tags.get("barrier") in self.barriers:
            return not any(v in self.intended_values for v in _tag_values(first_value))
        if any(v in self.restricted_values for v in _tag_values(first_value)):
            return True
        if self.block_fords and node_tags.get("ford") == "yes":
            return True
        return False
