"""Request-scoped no-go regions and the weighting that enforces them."""

import logging
import math
from collections.abc import Sequence
from typing import Any, Literal, Protocol

import orjson
from pydantic import BaseModel, Field, ValidationError, field_validator
from shapely.geometry import LineString, Point
from shapely.geometry import Polygon as ShapelyPolygon

from core.geometry.distance import point_segment_distance_m
from core.types import LatLon
from roadnet.graph.edge import Edge
from roadnet.routing.weighting import Weighting

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_M = 1.0


class InvalidBlockAreaError(ValueError):
    """Raised when an avoid-area payload cannot be parsed."""


class ExcludedRegion(Protocol):
    def intersects(self, geometry: Sequence[LatLon]) -> bool: ...


class Circle:
    """Circle around (lat, lon) with a radius in meters."""

    def __init__(self, lat: float, lon: float, radius_m: float = DEFAULT_RADIUS_M) -> None:
        if radius_m < 0:
            raise ValueError(f"radius must be non-negative, got {radius_m}")
        self.lat = lat
        self.lon = lon
        self.radius_m = radius_m

    def intersects(self, geometry: Sequence[LatLon]) -> bool:
        if not geometry:
            return False
        if len(geometry) == 1:
            lat, lon = geometry[0]
            return point_segment_distance_m(self.lat, self.lon, lat, lon, lat, lon) <= self.radius_m
        for (lat1, lon1), (lat2, lon2) in zip(geometry, geometry[1:]):
            if point_segment_distance_m(self.lat, self.lon, lat1, lon1, lat2, lon2) <= self.radius_m:
                return True
        return False

    def __repr__(self) -> str:
        return f"Circle(lat={self.lat}, lon={self.lon}, radius_m={self.radius_m})"


class Polygon:
    """Polygon given by parallel latitude and longitude lists (outer ring only)."""

    def __init__(self, lats: Sequence[float], lons: Sequence[float]) -> None:
        if len(lats) != len(lons):
            raise ValueError("lats and lons must have the same length")
        if len(lats) < 3:
            raise ValueError("A polygon needs at least 3 vertices")
        # shapely works in (x, y) = (lon, lat)
        self._shape = ShapelyPolygon(list(zip(lons, lats)))

    def intersects(self, geometry: Sequence[LatLon]) -> bool:
        if not geometry:
            return False
        coords = [(lon, lat) for lat, lon in geometry]
        shape = Point(coords[0]) if len(coords) == 1 else LineString(coords)
        return bool(self._shape.intersects(shape))

    def __repr__(self) -> str:
        return f"Polygon(vertices={len(self._shape.exterior.coords) - 1})"


class GeoJSONGeometry(BaseModel):
    type: str
    coordinates: Any


class GeoJSONFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    geometry: GeoJSONGeometry
    properties: dict[str, Any] | None = Field(default_factory=dict)

    @field_validator("properties")
    @classmethod
    def default_properties(cls, v: dict[str, Any] | None) -> dict[str, Any]:
        """Treat ``"properties": null`` like an empty object."""
        return v or {}


class FeatureCollection(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[GeoJSONFeature] = Field(default_factory=list)


class BlockArea:
    """Set of excluded regions; an edge touching any of them is blocked."""

    def __init__(self, regions: Sequence[ExcludedRegion] = ()) -> None:
        self._regions: list[ExcludedRegion] = list(regions)

    def add_region(self, region: ExcludedRegion) -> None:
        self._regions.append(region)

    @property
    def regions(self) -> tuple[ExcludedRegion, ...]:
        return tuple(self._regions)

    def __len__(self) -> int:
        return len(self._regions)

    def intersects(self, edge: Edge) -> bool:
        return any(region.intersects(edge.geometry) for region in self._regions)

    @classmethod
    def from_feature_collection(cls, data: str | bytes | dict[str, Any]) -> "BlockArea":
        """Build from a GeoJSON FeatureCollection.

        ``Point`` features become circles (``radius`` property in meters,
        default 1) and ``Polygon`` features use their outer ring. Coordinates
        are in (lon, lat) order. Other geometry types are ignored.

        Raises:
            InvalidBlockAreaError: If the payload is not a valid FeatureCollection
        """
        try:
            raw = orjson.loads(data) if isinstance(data, (str, bytes)) else data
            collection = FeatureCollection.model_validate(raw)
        except (orjson.JSONDecodeError, ValidationError) as e:
            raise InvalidBlockAreaError(f"Invalid avoid area: {e}") from e

        block_area = cls()
        for position, feature in enumerate(collection.features):
            geometry = feature.geometry
            try:
                if geometry.type == "Point":
                    lon, lat = float(geometry.coordinates[0]), float(geometry.coordinates[1])
                    radius = float(feature.properties.get("radius", DEFAULT_RADIUS_M))
                    block_area.add_region(Circle(lat, lon, radius))
                elif geometry.type == "Polygon":
                    ring = geometry.coordinates[0]
                    block_area.add_region(
                        Polygon([float(c[1]) for c in ring], [float(c[0]) for c in ring])
                    )
                else:
                    logger.debug(f"Ignoring avoid-area feature {position} of type {geometry.type}")
            except (TypeError, ValueError, IndexError) as e:
                raise InvalidBlockAreaError(f"Invalid avoid-area feature {position}: {e}") from e
        return block_area


class BlockAreaWeighting:
    """Wraps a weighting and blocks every edge that touches the block area.

    The inner weighting is not evaluated for blocked edges.
    """

    name = "block_area"

    def __init__(self, inner: Weighting, block_area: BlockArea) -> None:
        self.inner = inner
        self.block_area = block_area

    def calc_edge_weight(self, edge: Edge, reverse: bool) -> float:
        if self.block_area.intersects(edge):
            return math.inf
        return self.inner.calc_edge_weight(edge, reverse)
