"""Edge weighting functions used by the path search.

A weighting maps a directed edge traversal to a non-negative cost, or
``math.inf`` when the edge must not be used. Weightings are side-effect free
and may be composed by wrapping.
"""

import logging
import math
from typing import Protocol

from core.types import TrafficMatchMode, WayID
from roadnet.graph.edge import Edge
from roadnet.graph.way_index import EdgeOutOfRangeError, EdgeWayIndex
from roadnet.traffic.snapshot import RoadSegmentTraffic, TrafficSnapshot
from roadnet.vehicles.profiles import VehicleProfile

logger = logging.getLogger(__name__)

# length_m / speed_kph * SPEED_CONV gives seconds
SPEED_CONV = 3.6


class Weighting(Protocol):
    """Protocol for edge weightings."""

    name: str

    def calc_edge_weight(self, edge: Edge, reverse: bool) -> float:
        """Cost of traversing ``edge``; ``reverse`` selects to_node -> from_node."""
        ...


class ShortestWeighting:
    """Cost is the edge length in meters."""

    name = "shortest"

    def calc_edge_weight(self, edge: Edge, reverse: bool) -> float:
        if not edge.has_access(reverse):
            return math.inf
        return edge.length_m


class FastestWeighting:
    """Cost is free-flow travel time in seconds."""

    name = "fastest"

    def __init__(self, profile: VehicleProfile) -> None:
        self.profile = profile

    def max_speed_kph(self, edge: Edge, reverse: bool) -> float:
        """Edge free-flow speed capped at the vehicle's top storable speed."""
        return min(edge.speed_kph(reverse), self.profile.speed_cap_kph)

    def calc_edge_weight(self, edge: Edge, reverse: bool) -> float:
        if not edge.has_access(reverse):
            return math.inf
        speed = self.max_speed_kph(edge, reverse)
        if speed <= 0:
            return math.inf
        return edge.length_m / speed * SPEED_CONV


class TrafficWeighting:
    """Travel time derated by typical traffic density (Greenshield's model).

    Traffic is reported per road element; every road element whose id embeds
    the edge's way id contributes. Edges without traffic data, or missing
    from the index, use the base weighting.
    """

    name = "fastest_with_traffic"

    def __init__(
        self,
        base: FastestWeighting,
        snapshot: TrafficSnapshot,
        index: EdgeWayIndex,
        match_mode: TrafficMatchMode = TrafficMatchMode.SUBSTRING,
    ) -> None:
        self.base = base
        self.snapshot = snapshot
        self.index = index
        self.match_mode = match_mode
        self._segments_by_way: dict[WayID, list[RoadSegmentTraffic]] = {}

    def _segments(self, way_id: WayID) -> list[RoadSegmentTraffic]:
        segments = self._segments_by_way.get(way_id)
        if segments is None:
            segments = self.snapshot.segments_for_way(way_id, self.match_mode)
            self._segments_by_way[way_id] = segments
        return segments

    def calc_edge_weight(self, edge: Edge, reverse: bool) -> float:
        if not edge.has_access(reverse):
            return math.inf

        try:
            way_id = self.index.lookup(edge.id)
        except EdgeOutOfRangeError:
            return self.base.calc_edge_weight(edge, reverse)

        segments = self._segments(way_id)
        if not segments:
            return self.base.calc_edge_weight(edge, reverse)

        average_density = sum(s.average_density for s in segments) / len(segments)
        max_density = segments[-1].max_density

        # Saturated road
        if average_density > max_density:
            return math.inf

        max_speed = self.base.max_speed_kph(edge, reverse)
        if max_density == 0:
            speed = max_speed
        else:
            speed = max_speed * (1 - average_density / max_density)
        if speed <= 0:
            return math.inf
        return edge.length_m / speed * SPEED_CONV
