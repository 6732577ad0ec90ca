"""Access rules for taxis.

Taxis may use public-transport and emergency infrastructure that an ordinary
car may not: bus lanes, pedestrian zones open to PSV, emergency access roads,
and roads closed to general traffic.
"""

import logging
from dataclasses import replace

from core.types import WayAccess
from roadnet.io.osm import Way
from roadnet.vehicles.access import (
    AccessDecision,
    AccessPolicyError,
    CarAccessPolicy,
    WayClassification,
)
from roadnet.vehicles.profiles import TAXI, VehicleProfile

logger = logging.getLogger(__name__)


class TaxiAccessPolicy(CarAccessPolicy):
    PEDESTRIAN_SPEED_KPH = 30.0

    def __init__(self, profile: VehicleProfile = TAXI, block_fords: bool = False) -> None:
        super().__init__(profile, block_fords)

        self.restrictions.remove("motorcar")
        for tag in ("psv", "bus", "taxi", "emergency", "motor_vehicle"):
            if tag not in self.restrictions:
                self.restrictions.append(tag)

        self.restricted_values -= {"no", "private", "restricted", "emergency"}
        self.barriers -= {"bus_trap", "sump_buster"}

    def has_vehicle_tag(self, way: Way) -> bool:
        """Whether the way is explicitly open to PSV, emergency vehicles or taxis."""
        return (
            way.has_tag("psv", "yes")
            or way.has_tag("emergency", "yes")
            or way.has_tag("taxi", "yes")
        )

    def is_emergency_access(self, way: Way) -> bool:
        return way.has_tag("emergency", "yes") and way.has_tag("service", "emergency_access")

    def is_pedestrian_zone(self, way: Way) -> bool:
        return way.has_tag("highway", "pedestrian") and self.has_vehicle_tag(way)

    def get_access(self, way: Way) -> WayAccess:
        if self.is_emergency_access(way):
            return WayAccess.WAY
        if self.is_pedestrian_zone(way):
            return WayAccess.WAY
        return super().get_access(way)

    def pedestrian_zone_decision(self) -> AccessDecision:
        speed = self.profile.store_speed(self.PEDESTRIAN_SPEED_KPH)
        return AccessDecision(WayAccess.WAY, True, True, speed, speed)

    def apply_psv_backward(self, way: Way, decision: AccessDecision) -> AccessDecision:
        """Open the reverse direction when the way has a backward PSV lane."""
        if not way.has_tag("lanes:psv:backward") or decision.access.can_skip:
            return decision
        backward_speed = decision.backward_speed_kph or decision.forward_speed_kph
        return replace(decision, backward=True, backward_speed_kph=backward_speed)

    def handle_way_tags(self, way: Way) -> AccessDecision:
        if self.get_access(way).can_skip:
            return AccessDecision.skip()
        if self.is_pedestrian_zone(way):
            return self.pedestrian_zone_decision()
        decision = super().handle_way_tags(way)
        return self.apply_psv_backward(way, decision)

    def classify(self, way: Way) -> WayClassification:
        """Classify a way, keeping the last decision reached if a step fails."""
        decision = AccessDecision.skip()
        try:
            if self.get_access(way).can_skip:
                return WayClassification(decision)
            if self.is_pedestrian_zone(way):
                return WayClassification(self.pedestrian_zone_decision())
            decision = super().handle_way_tags(way)
            decision = self.apply_psv_backward(way, decision)
        except Exception as e:
            error = AccessPolicyError(f"Failed to classify way {way.id} for {self.name}: {e}")
            error.__cause__ = e
            logger.warning(f"Keeping fallback decision for way {way.id}: {e}")
            return WayClassification(decision, error)
        return WayClassification(decision)
