"""Typical traffic density snapshots keyed by (weekday, hour) bucket."""

import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Protocol

import orjson
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from core.types import RoadElementID, TrafficMatchMode, WayID

logger = logging.getLogger(__name__)


class RoadSegmentTraffic(BaseModel):
    """Traffic statistics for one road element.

    Accepts the field names used by the typical-ttt exports (``ttt`` / ``max``)
    as well as the descriptive names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    average_density: float = Field(
        ge=0.0, validation_alias=AliasChoices("average_density", "ttt")
    )
    max_density: float = Field(ge=0.0, validation_alias=AliasChoices("max_density", "max"))


@dataclass(frozen=True)
class TrafficBucket:
    """A (weekday, hour) slot; weekday 0 is Monday."""

    weekday: int
    hour: int

    def __post_init__(self) -> None:
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"weekday must be between 0 and 6, got {self.weekday}")
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour must be between 0 and 23, got {self.hour}")

    @property
    def key(self) -> str:
        """Resource key, e.g. ``0_08`` for Monday 08:00."""
        return f"{self.weekday}_{self.hour:02d}"

    @classmethod
    def from_datetime(cls, moment: datetime) -> "TrafficBucket":
        return cls(weekday=moment.weekday(), hour=moment.hour)


def way_id_pattern(way_id: WayID, mode: TrafficMatchMode) -> re.Pattern[str]:
    """Regex deciding whether a road-element id belongs to ``way_id``."""
    token = re.escape(str(way_id))
    if mode is TrafficMatchMode.BOUNDARY:
        return re.compile(rf"(?<!\d){token}(?!\d)")
    return re.compile(token)


class TrafficSnapshot(Mapping[RoadElementID, RoadSegmentTraffic]):
    """Immutable mapping of road-element id to traffic statistics for one bucket."""

    def __init__(
        self,
        records: Mapping[str, RoadSegmentTraffic] | None = None,
        bucket: TrafficBucket | None = None,
    ) -> None:
        # Insertion order is kept: the last matching record supplies max density
        self._records: Mapping[RoadElementID, RoadSegmentTraffic] = MappingProxyType(
            {RoadElementID(key): value for key, value in (records or {}).items()}
        )
        self.bucket = bucket

    @classmethod
    def empty(cls, bucket: TrafficBucket | None = None) -> "TrafficSnapshot":
        return cls({}, bucket)

    def __getitem__(self, key: RoadElementID) -> RoadSegmentTraffic:
        return self._records[key]

    def __iter__(self) -> Iterator[RoadElementID]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        bucket = self.bucket.key if self.bucket else None
        return f"TrafficSnapshot(bucket={bucket}, records={len(self._records)})"

    def segments_for_way(
        self, way_id: WayID, mode: TrafficMatchMode = TrafficMatchMode.SUBSTRING
    ) -> list[RoadSegmentTraffic]:
        """Records whose road-element id embeds ``way_id``, in snapshot order."""
        pattern = way_id_pattern(way_id, mode)
        return [record for key, record in self._records.items() if pattern.search(key)]


class TrafficSource(Protocol):
    """Keyed store of raw traffic bucket resources."""

    def read(self, key: str) -> bytes:
        """Return the raw resource for ``key``.

        Raises:
            OSError: If the resource cannot be read
        """
        ...


class DirectoryTrafficSource:
    """Reads ``{key}.json`` files from a directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def read(self, key: str) -> bytes:
        return (self.directory / f"{key}.json").read_bytes()


def parse_snapshot(data: bytes, bucket: TrafficBucket | None = None) -> TrafficSnapshot:
    """Parse a bucket resource, dropping records that fail validation.

    Raises:
        ValueError: If the resource is not a JSON object
    """
    raw = orjson.loads(data)
    if not isinstance(raw, dict):
        raise ValueError("Traffic bucket must be a JSON object")

    records: dict[str, RoadSegmentTraffic] = {}
    for element_id, payload in raw.items():
        try:
            records[element_id] = RoadSegmentTraffic.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                f"Dropping traffic record {element_id!r}: {e.error_count()} validation error(s)"
            )
    return TrafficSnapshot(records, bucket)


def load_snapshot(bucket: TrafficBucket, source: TrafficSource) -> TrafficSnapshot:
    """Load the snapshot for ``bucket``, degrading to an empty one on failure."""
    try:
        data = source.read(bucket.key)
    except OSError as e:
        logger.warning(f"Traffic bucket {bucket.key} unavailable: {e}")
        return TrafficSnapshot.empty(bucket)

    try:
        snapshot = parse_snapshot(data, bucket)
    except ValueError as e:
        # orjson.JSONDecodeError is a ValueError subclass
        logger.warning(f"Traffic bucket {bucket.key} is malformed: {e}")
        return TrafficSnapshot.empty(bucket)

    logger.info(f"Loaded {len(snapshot)} traffic records for bucket {bucket.key}")
    return snapshot
