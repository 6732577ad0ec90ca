"""Per-request weighting composition and route computation."""

import logging
import math
import threading
from datetime import datetime
from pathlib import Path

from core.geometry.polyline import encode_polyline
from core.settings import RouterSettings
from core.types import NodeID, TrafficMatchMode, WeightingName
from roadnet.io.map_manager import LoadedMap, get_graph_location, import_map, import_or_load
from roadnet.routing.block_area import BlockArea, BlockAreaWeighting
from roadnet.routing.dto import RoutePathDTO, RouteRequest, RouteResponse
from roadnet.routing.navigator import Navigator, RoutePath
from roadnet.routing.weighting import (
    FastestWeighting,
    ShortestWeighting,
    TrafficWeighting,
    Weighting,
)
from roadnet.traffic.snapshot import (
    DirectoryTrafficSource,
    TrafficBucket,
    TrafficSnapshot,
    TrafficSource,
    load_snapshot,
)
from roadnet.vehicles import create_policy, get_profile
from roadnet.vehicles.profiles import VehicleProfile

logger = logging.getLogger(__name__)


class RouteNotFoundError(LookupError):
    """Raised when no path connects two waypoints."""


class RoutingContext:
    """Loaded map plus traffic data for one vehicle + weighting profile.

    The map is read-only while searches run and is swapped as a unit by
    :meth:`swap_map`. Traffic snapshots are loaded once per bucket and shared.
    """

    def __init__(
        self,
        loaded_map: LoadedMap,
        profile: VehicleProfile,
        weighting: WeightingName,
        traffic_source: TrafficSource,
        match_mode: TrafficMatchMode = TrafficMatchMode.SUBSTRING,
    ) -> None:
        self._map = loaded_map
        self.profile = profile
        self.weighting = weighting
        self.traffic_source = traffic_source
        self.match_mode = match_mode
        self._snapshots: dict[TrafficBucket, TrafficSnapshot] = {}
        self._lock = threading.Lock()

    @property
    def map(self) -> LoadedMap:
        return self._map

    def swap_map(self, loaded_map: LoadedMap) -> None:
        """Replace graph and index together; searches already running keep the old pair."""
        with self._lock:
            self._map = loaded_map
        logger.info(f"Swapped map for {self.profile.name}/{self.weighting.value}")

    def snapshot_for(self, start: datetime) -> TrafficSnapshot:
        bucket = TrafficBucket.from_datetime(start)
        with self._lock:
            snapshot = self._snapshots.get(bucket)
        if snapshot is None:
            snapshot = load_snapshot(bucket, self.traffic_source)
            with self._lock:
                snapshot = self._snapshots.setdefault(bucket, snapshot)
        return snapshot

    def create_weighting(
        self,
        loaded_map: LoadedMap,
        start: datetime,
        block_area: BlockArea | None = None,
    ) -> Weighting:
        """Compose the weighting for one request."""
        base = FastestWeighting(self.profile)
        weighting: Weighting
        if self.weighting is WeightingName.SHORTEST:
            weighting = ShortestWeighting()
        elif self.weighting is WeightingName.FASTEST_WITH_TRAFFIC:
            if len(loaded_map.index) == 0:
                logger.warning("Edge-to-way index is empty, routing without traffic")
                weighting = base
            else:
                weighting = TrafficWeighting(
                    base, self.snapshot_for(start), loaded_map.index, self.match_mode
                )
        else:
            weighting = base

        if block_area is not None and len(block_area) > 0:
            weighting = BlockAreaWeighting(weighting, block_area)
        logger.debug(f"Composed weighting {weighting.name} for {self.profile.name}")
        return weighting


class RoutingService:
    """Computes routes for requests; one context per vehicle + weighting."""

    def __init__(
        self,
        settings: RouterSettings,
        data_dir: str | Path = ".",
        traffic_source: TrafficSource | None = None,
    ) -> None:
        self.settings = settings
        self.data_dir = Path(data_dir)
        self.traffic_source = traffic_source or DirectoryTrafficSource(settings.typical_ttt_path)
        self.navigator = Navigator()
        self._contexts: dict[tuple[str, WeightingName], RoutingContext] = {}
        # Guards the dicts only; imports run under the per-profile lock
        self._lock = threading.Lock()
        self._profile_locks: dict[tuple[str, WeightingName], threading.Lock] = {}

    def _profile_lock(self, key: tuple[str, WeightingName]) -> threading.Lock:
        with self._lock:
            return self._profile_locks.setdefault(key, threading.Lock())

    def _location(self, vehicle: str, weighting: WeightingName) -> Path:
        return get_graph_location(
            self.data_dir, self.settings.location_prefix, vehicle, weighting.value
        )

    def get_context(self, vehicle: str, weighting: WeightingName) -> RoutingContext:
        """Context for a profile, loading or importing its map on first use.

        Only requests for the same profile wait while its map is imported.
        """
        key = (vehicle, weighting)
        with self._lock:
            context = self._contexts.get(key)
        if context is not None:
            return context

        with self._profile_lock(key):
            with self._lock:
                context = self._contexts.get(key)
            if context is None:
                loaded = import_or_load(
                    self.settings.map_file,
                    self._location(vehicle, weighting),
                    create_policy(vehicle),
                )
                context = RoutingContext(
                    loaded,
                    get_profile(vehicle),
                    weighting,
                    self.traffic_source,
                    self.settings.traffic_match,
                )
                with self._lock:
                    context = self._contexts.setdefault(key, context)
        return context

    def reload(self, vehicle: str, weighting: WeightingName) -> RoutingContext:
        """Re-import a profile's map and swap it into the running context.

        Searches already holding the previous map finish on it.

        Raises:
            FileNotFoundError: If the map file doesn't exist
            ValueError: If the map file is malformed
        """
        key = (vehicle, weighting)
        context = self.get_context(vehicle, weighting)
        with self._profile_lock(key):
            loaded = import_map(
                self.settings.map_file,
                self._location(vehicle, weighting),
                create_policy(vehicle),
            )
            context.swap_map(loaded)
        return context

    def route(self, request: RouteRequest) -> RouteResponse:
        """Route through all waypoints in order.

        Raises:
            RouteNotFoundError: If any leg has no path
            InvalidBlockAreaError: If the avoid area cannot be parsed
        """
        context = self.get_context(request.vehicle, request.weighting)
        loaded_map = context.map
        graph = loaded_map.graph

        block_area = (
            BlockArea.from_feature_collection(request.avoid_area) if request.avoid_area else None
        )
        start = request.start_datetime or datetime.now()
        weighting = context.create_weighting(loaded_map, start, block_area)
        heuristic_speed = (
            None if request.weighting is WeightingName.SHORTEST else context.profile.speed_cap_kph
        )

        snapped: list[NodeID] = []
        for lat, lon in request.waypoints:
            node_id = graph.find_nearest_node(lat, lon)
            if node_id is None:
                raise RouteNotFoundError("Graph is empty")
            snapped.append(node_id)

        legs: list[RoutePath] = []
        for leg_start, leg_goal in zip(snapped, snapped[1:]):
            path = self.navigator.find_route(leg_start, leg_goal, graph, weighting, heuristic_speed)
            if not path.found:
                raise RouteNotFoundError(f"No route from node {leg_start} to node {leg_goal}")
            legs.append(path)

        points: list[tuple[float, float]] = []
        distance = 0.0
        time_s = 0.0
        time_weighting = FastestWeighting(context.profile)
        for path in legs:
            leg_points = path.points(graph)
            if points and leg_points and points[-1] == leg_points[0]:
                leg_points = leg_points[1:]
            points.extend(leg_points)
            distance += path.distance_m
            if request.weighting is WeightingName.SHORTEST:
                time_s += self.navigator.calculate_route_cost(path, time_weighting)
            else:
                time_s += path.weight

        if math.isinf(time_s):
            raise RouteNotFoundError("Route has no finite travel time")

        path_dto = RoutePathDTO(
            bbox=list(graph.bounds()),
            points=encode_polyline(points, include_elevation=False),
            points_encoded=True,
            elevation=False,
            distance=distance,
            time=round(time_s * 1000),
        )
        logger.info(
            f"Routed {len(request.waypoints)} waypoints for {request.vehicle}/"
            f"{request.weighting.value}: {distance:.0f} m, {time_s:.0f} s"
        )
        return RouteResponse(paths=[path_dto])
