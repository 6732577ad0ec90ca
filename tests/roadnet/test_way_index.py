"""Tests for the edge-to-way index."""

from pathlib import Path

import pytest

from core.types import EdgeID, WayID
from roadnet.graph.way_index import CorruptIndexError, EdgeOutOfRangeError, EdgeWayIndex


def build_index(way_ids: list[int]) -> EdgeWayIndex:
    index = EdgeWayIndex()
    for edge_id, way_id in enumerate(way_ids):
        index.record(EdgeID(edge_id), WayID(way_id))
    return index


def test_record_and_lookup() -> None:
    """Test ways are found at their edge position, duplicates kept."""
    index = build_index([100, 100, 200])
    assert len(index) == 3
    assert index.lookup(EdgeID(0)) == 100
    assert index.lookup(EdgeID(1)) == 100
    assert index.lookup(EdgeID(2)) == 200


def test_record_out_of_order_rejected() -> None:
    """Test edges must be recorded in id order."""
    index = build_index([100])
    with pytest.raises(ValueError):
        index.record(EdgeID(5), WayID(1))
    assert len(index) == 1


@pytest.mark.parametrize("edge_id", [-1, 3, 100])
def test_lookup_out_of_range(edge_id: int) -> None:
    """Test lookups outside the index raise EdgeOutOfRangeError."""
    index = build_index([1, 2, 3])
    with pytest.raises(EdgeOutOfRangeError):
        index.lookup(EdgeID(edge_id))


def test_out_of_range_is_index_error() -> None:
    """Test callers catching IndexError also handle lookup misses."""
    with pytest.raises(IndexError):
        EdgeWayIndex().lookup(EdgeID(0))


def test_serialize_round_trip() -> None:
    """Test the full 64-bit way id range survives serialisation."""
    index = build_index([1, 2**63 - 1, -5, 42, 42])
    restored = EdgeWayIndex.deserialize(index.serialize())
    assert restored == index
    assert list(restored) == [1, 2**63 - 1, -5, 42, 42]


def test_serialize_format_is_json_array() -> None:
    """Test the index is stored as a plain JSON array."""
    assert build_index([7, 8]).serialize() == b"[7,8]"


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"not json",
        b"{\"a\": 1}",
        b"[1, 2, \"three\"]",
        b"[1, 2.5]",
        b"[1, true]",
        b"[1, null]",
        b"[1, 2",
    ],
)
def test_deserialize_corrupt_data(data: bytes) -> None:
    """Test corrupt index data raises CorruptIndexError."""
    with pytest.raises(CorruptIndexError):
        EdgeWayIndex.deserialize(data)


def test_save_and_load(tmp_path: Path) -> None:
    """Test saving creates parent directories and loads back."""
    index = build_index([10, 11, 12])
    path = tmp_path / "nested" / "edgeToWayMap.json"
    index.save(path)
    assert EdgeWayIndex.load(path) == index
    # No temporary files left behind
    assert [p.name for p in path.parent.iterdir()] == ["edgeToWayMap.json"]


def test_load_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        EdgeWayIndex.load(tmp_path / "missing.json")


def test_save_replaces_existing_file(tmp_path: Path) -> None:
    """Test saving over an existing index replaces it."""
    path = tmp_path / "edgeToWayMap.json"
    build_index([1, 2, 3]).save(path)
    build_index([9]).save(path)
    assert list(EdgeWayIndex.load(path)) == [9]
