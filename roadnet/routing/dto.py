"""DTOs for route requests and responses."""

from datetime import datetime
from typing import Any

import orjson
from pydantic import BaseModel, Field, field_validator

from core.types import WeightingName
from roadnet.vehicles.profiles import PROFILES


class RouteRequest(BaseModel):
    """Per-request routing configuration.

    Attributes:
        waypoints: (lat, lon) pairs, at least two
        vehicle: Vehicle profile name
        weighting: Weighting to route with
        avoid_area: Optional GeoJSON FeatureCollection of regions to avoid
        start_datetime: Departure time selecting the traffic bucket; now if None
    """

    waypoints: list[tuple[float, float]]
    vehicle: str = "car"
    weighting: WeightingName = WeightingName.FASTEST
    avoid_area: dict[str, Any] | None = None
    start_datetime: datetime | None = None

    @field_validator("waypoints")
    @classmethod
    def validate_waypoints(cls, v: list[tuple[float, float]]) -> list[tuple[float, float]]:
        """Ensure there are at least two waypoints with valid coordinates."""
        if len(v) < 2:
            raise ValueError("at least two waypoints are required")
        for lat, lon in v:
            if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
                raise ValueError(f"waypoint out of range: {lat},{lon}")
        return v

    @field_validator("vehicle")
    @classmethod
    def validate_vehicle(cls, v: str) -> str:
        """Ensure the vehicle has a profile."""
        if v not in PROFILES:
            raise ValueError(f"unknown vehicle: {v}")
        return v

    @classmethod
    def from_query(
        cls,
        waypoints: str,
        vehicle: str = "car",
        avoid_area: str = "",
        start_datetime: str = "",
        weighting: str = "fastest",
    ) -> "RouteRequest":
        """Create a request from query-string style parameters.

        ``waypoints`` is ``lon,lat;lon,lat;...``; ``start_datetime`` is ISO 8601.
        """
        points: list[tuple[float, float]] = []
        for pair in waypoints.split(";"):
            if not pair.strip():
                continue
            parts = pair.split(",")
            if len(parts) != 2:
                raise ValueError(f"waypoint must be 'lon,lat', got: {pair}")
            lon, lat = float(parts[0]), float(parts[1])
            points.append((lat, lon))

        return cls(
            waypoints=points,
            vehicle=vehicle,
            weighting=WeightingName(weighting),
            avoid_area=orjson.loads(avoid_area) if avoid_area else None,
            start_datetime=datetime.fromisoformat(start_datetime) if start_datetime else None,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RouteRequest":
        """Create a request from a parameter mapping with optional fields."""
        return cls.from_query(
            waypoints=data.get("waypoints", ""),
            vehicle=data.get("vehicle") or "car",
            avoid_area=data.get("avoid_area") or "",
            start_datetime=data.get("start_datetime") or "",
            weighting=data.get("weighting") or "fastest",
        )


class RoutePathDTO(BaseModel):
    """One path in a route response."""

    bbox: list[float]
    points: str
    points_encoded: bool = True
    elevation: bool = False
    distance: float = Field(ge=0.0, description="Meters")
    time: int = Field(ge=0, description="Milliseconds")


class RouteResponse(BaseModel):
    paths: list[RoutePathDTO] = Field(default_factory=list)
    info: dict[str, Any] = Field(
        default_factory=lambda: {"copyrights": ["GraphHopper", "OpenStreetMap contributors"]}
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
