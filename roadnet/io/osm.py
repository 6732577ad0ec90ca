"""Minimal OSM-style map records consumed by the importer."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import orjson

from core.types import NodeID, WayID


@dataclass(frozen=True)
class MapNode:
    id: NodeID
    lat: float
    lon: float
    tags: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Way:
    """A tagged path through an ordered list of map nodes."""

    id: WayID
    node_refs: tuple[NodeID, ...]
    tags: dict[str, str] = field(default_factory=dict)

    def get_tag(self, key: str, default: str | None = None) -> str | None:
        return self.tags.get(key, default)

    def has_tag(self, key: str, *values: str) -> bool:
        """Whether ``key`` is present, optionally with one of ``values``."""
        if key not in self.tags:
            return False
        return not values or self.tags[key] in values

    def get_first_priority_tag(self, keys: list[str]) -> str:
        """Value of the first key in ``keys`` the way carries, or ``""``."""
        for key in keys:
            value = self.tags.get(key)
            if value:
                return value
        return ""


@dataclass
class MapExtract:
    nodes: dict[NodeID, MapNode]
    ways: list[Way]


def _tags(raw: Any) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"tags must be an object, got {type(raw).__name__}")
    return {str(k): str(v) for k, v in raw.items()}


def load_osm_json(filepath: str | Path) -> MapExtract:
    """Read a JSON map extract.

    Format: ``{"nodes": [{"id", "lat", "lon", "tags"?}], "ways": [{"id", "nodes", "tags"?}]}``

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the extract is malformed
    """
    raw = orjson.loads(Path(filepath).read_bytes())
    if not isinstance(raw, dict):
        raise ValueError("Map extract must be a JSON object")

    try:
        nodes = {
            NodeID(int(n["id"])): MapNode(
                id=NodeID(int(n["id"])),
                lat=float(n["lat"]),
                lon=float(n["lon"]),
                tags=_tags(n.get("tags")),
            )
            for n in raw.get("nodes", [])
        }
        ways = [
            Way(
                id=WayID(int(w["id"])),
                node_refs=tuple(NodeID(int(ref)) for ref in w["nodes"]),
                tags=_tags(w.get("tags")),
            )
            for w in raw.get("ways", [])
        ]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed map extract {filepath}: {e}") from e

    return MapExtract(nodes=nodes, ways=ways)
