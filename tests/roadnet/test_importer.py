"""Tests for importing map records into a graph."""

import logging

import pytest

from core.types import EdgeID, NodeID, WayID
from roadnet.graph.way_index import EdgeWayIndex
from roadnet.io.importer import GraphImporter
from roadnet.io.osm import MapExtract, MapNode, Way, load_osm_json
from roadnet.vehicles import CarAccessPolicy, TaxiAccessPolicy


def test_sample_extract_edges_and_index(sample_extract: MapExtract) -> None:
    """Test each usable segment becomes one edge recorded against its way."""
    index = EdgeWayIndex()
    importer = GraphImporter(CarAccessPolicy())
    importer.add_listener(index.record)
    graph = importer.import_extract(sample_extract)

    assert graph.get_edge_count() == 4
    assert graph.get_node_count() == 4
    assert list(index) == [100, 100, 200, 200]
    assert len(index) == graph.get_edge_count()

    edge = graph.edges[EdgeID(0)]
    assert (edge.from_node, edge.to_node) == (1, 2)
    assert edge.forward_speed_kph == 65.0
    assert edge.length_m == pytest.approx(804, rel=0.01)
    assert graph.edges[EdgeID(3)].forward_speed_kph == 30.0


def test_listeners_called_in_creation_order(sample_extract: MapExtract) -> None:
    """Test every listener sees each edge in the order it is created."""
    calls: list[tuple[EdgeID, WayID]] = []
    other: list[EdgeID] = []
    importer = GraphImporter(CarAccessPolicy())
    importer.add_listener(lambda edge_id, way_id: calls.append((edge_id, way_id)))
    importer.add_listener(lambda edge_id, way_id: other.append(edge_id))
    importer.import_extract(sample_extract)

    assert calls == [(0, 100), (1, 100), (2, 200), (3, 200)]
    assert other == [0, 1, 2, 3]


def test_skipped_ways_create_no_edges(sample_extract: MapExtract) -> None:
    """Test ways the policy skips add no edges."""
    sample_extract.ways.append(
        Way(id=WayID(300), node_refs=(NodeID(2), NodeID(4)), tags={"highway": "footway"})
    )
    graph = GraphImporter(CarAccessPolicy()).import_extract(sample_extract)
    assert graph.get_edge_count() == 4


def test_barrier_blocks_leaving_its_node() -> None:
    """Test a barrier node stops traffic passing through it."""
    nodes = {
        NodeID(1): MapNode(NodeID(1), 43.77, 11.25),
        NodeID(2): MapNode(NodeID(2), 43.77, 11.26, {"barrier": "bollard"}),
        NodeID(3): MapNode(NodeID(3), 43.77, 11.27),
    }
    ways = [Way(WayID(1), (NodeID(1), NodeID(2), NodeID(3)), {"highway": "residential"})]
    graph = GraphImporter(CarAccessPolicy()).import_ways(nodes, ways)

    into_barrier, out_of_barrier = graph.edges[EdgeID(0)], graph.edges[EdgeID(1)]
    assert into_barrier.forward_access and not into_barrier.backward_access
    assert not out_of_barrier.forward_access and out_of_barrier.backward_access


def test_barrier_depends_on_vehicle() -> None:
    """Test the same node can block one vehicle and not another."""
    nodes = {
        NodeID(1): MapNode(NodeID(1), 43.77, 11.25, {"barrier": "bus_trap"}),
        NodeID(2): MapNode(NodeID(2), 43.77, 11.26),
    }
    ways = [Way(WayID(1), (NodeID(1), NodeID(2)), {"highway": "residential"})]
    car_edge = GraphImporter(CarAccessPolicy()).import_ways(nodes, ways).edges[EdgeID(0)]
    taxi_edge = GraphImporter(TaxiAccessPolicy()).import_ways(nodes, ways).edges[EdgeID(0)]
    assert not car_edge.forward_access
    assert taxi_edge.forward_access


def test_missing_node_segment_dropped() -> None:
    """Test segments referencing unknown nodes are dropped."""
    nodes = {
        NodeID(1): MapNode(NodeID(1), 43.77, 11.25),
        NodeID(2): MapNode(NodeID(2), 43.77, 11.26),
    }
    ways = [Way(WayID(1), (NodeID(1), NodeID(2), NodeID(9)), {"highway": "residential"})]
    graph = GraphImporter(CarAccessPolicy()).import_ways(nodes, ways)
    assert graph.get_edge_count() == 1


def test_recovered_classification_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    """Test a failed classification is logged and the way keeps its fallback decision."""
    nodes = {
        NodeID(1): MapNode(NodeID(1), 43.77, 11.25),
        NodeID(2): MapNode(NodeID(2), 43.77, 11.26),
    }
    ways = [
        Way(
            WayID(5),
            (NodeID(1), NodeID(2)),
            {"highway": "footway", "service": "emergency_access", "emergency": "yes"},
        )
    ]
    with caplog.at_level(logging.WARNING):
        graph = GraphImporter(TaxiAccessPolicy()).import_ways(nodes, ways)
    assert graph.get_edge_count() == 0
    assert "Way 5" in caplog.text


class TestLoadOsmJson:
    """Test reading OSM JSON extracts."""

    def test_loads_sample(self, sample_map_file) -> None:
        """Test the sample extract is read with all nodes and ways."""
        extract = load_osm_json(sample_map_file)
        assert sorted(extract.nodes) == [1, 2, 3, 4]
        assert [way.id for way in extract.ways] == [100, 200]
        assert extract.ways[0].node_refs == (1, 2, 3)
        assert extract.ways[0].tags == {"highway": "primary"}

    def test_missing_file(self, tmp_path) -> None:
        """Test a missing extract raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_osm_json(tmp_path / "missing.json")

    @pytest.mark.parametrize(
        "content",
        [b"[]", b'{"nodes": [{"id": 1}]}', b'{"ways": [{"id": 1, "nodes": 5}]}'],
    )
    def test_malformed(self, tmp_path, content: bytes) -> None:
        """Test malformed extracts raise ValueError."""
        path = tmp_path / "bad.json"
        path.write_bytes(content)
        with pytest.raises(ValueError):
            load_osm_json(path)
