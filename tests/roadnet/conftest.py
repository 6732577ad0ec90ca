"""Shared map fixtures.

The sample map has a direct primary road 1 -> 2 -> 3 (way 100) and a slower
residential detour 1 -> 4 -> 3 (way 200):

    4
   / \\
  1-2-3
"""

from pathlib import Path
from typing import Any

import orjson
import pytest

from core.types import NodeID, WayID
from roadnet.io.osm import MapExtract, MapNode, Way

SAMPLE_MAP: dict[str, Any] = {
    "nodes": [
        {"id": 1, "lat": 43.77, "lon": 11.25},
        {"id": 2, "lat": 43.77, "lon": 11.26},
        {"id": 3, "lat": 43.77, "lon": 11.27},
        {"id": 4, "lat": 43.78, "lon": 11.26},
    ],
    "ways": [
        {"id": 100, "nodes": [1, 2, 3], "tags": {"highway": "primary"}},
        {"id": 200, "nodes": [1, 4, 3], "tags": {"highway": "residential"}},
    ],
}


@pytest.fixture
def sample_extract() -> MapExtract:
    nodes = {
        NodeID(n["id"]): MapNode(id=NodeID(n["id"]), lat=n["lat"], lon=n["lon"])
        for n in SAMPLE_MAP["nodes"]
    }
    ways = [
        Way(id=WayID(w["id"]), node_refs=tuple(NodeID(r) for r in w["nodes"]), tags=w["tags"])
        for w in SAMPLE_MAP["ways"]
    ]
    return MapExtract(nodes=nodes, ways=ways)


@pytest.fixture
def sample_map_file(tmp_path: Path) -> Path:
    path = tmp_path / "sample.osm.json"
    path.write_bytes(orjson.dumps(SAMPLE_MAP))
    return path
