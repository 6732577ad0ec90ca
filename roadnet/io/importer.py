"""Builds a road graph from map records, notifying listeners per created edge."""

import logging
from collections.abc import Callable, Iterable

from core.geometry.distance import haversine_m
from core.types import EdgeID, NodeID, WayID
from roadnet.graph.edge import Edge
from roadnet.graph.graph import Graph
from roadnet.graph.node import Node
from roadnet.io.osm import MapExtract, MapNode, Way
from roadnet.vehicles.access import AccessPolicy

logger = logging.getLogger(__name__)

EdgeCreatedListener = Callable[[EdgeID, WayID], None]


class GraphImporter:
    """Imports ways into a fresh graph using one vehicle's access policy.

    Each way is classified once. Usable ways are split into one edge per
    consecutive node pair, and every listener is called with
    ``(edge_id, way_id)`` in edge-creation order.
    """

    def __init__(self, policy: AccessPolicy) -> None:
        self.policy = policy
        self._listeners: list[EdgeCreatedListener] = []

    def add_listener(self, listener: EdgeCreatedListener) -> None:
        self._listeners.append(listener)

    def import_extract(self, extract: MapExtract) -> Graph:
        return self.import_ways(extract.nodes, extract.ways)

    def import_ways(self, nodes: dict[NodeID, MapNode], ways: Iterable[Way]) -> Graph:
        graph = Graph()
        barriers: dict[NodeID, bool] = {}
        skipped = 0
        recovered = 0

        def is_barrier(node: MapNode) -> bool:
            if node.id not in barriers:
                barriers[node.id] = self.policy.is_barrier(node.tags)
            return barriers[node.id]

        for way in ways:
            result = self.policy.classify(way)
            if result.error is not None:
                recovered += 1
                logger.warning(f"Way {way.id}: {result.error}; using fallback decision")
            decision = result.decision
            if not decision.usable:
                skipped += 1
                continue

            for from_ref, to_ref in zip(way.node_refs, way.node_refs[1:]):
                from_node = nodes.get(from_ref)
                to_node = nodes.get(to_ref)
                if from_node is None or to_node is None:
                    logger.debug(f"Way {way.id} references missing node, segment dropped")
                    continue
                for map_node in (from_node, to_node):
                    if map_node.id not in graph.nodes:
                        graph.add_node(
                            Node(id=map_node.id, lat=map_node.lat, lon=map_node.lon, tags=map_node.tags)
                        )

                # A barrier blocks leaving the node it sits on
                edge = Edge(
                    id=graph.next_edge_id(),
                    from_node=from_node.id,
                    to_node=to_node.id,
                    length_m=haversine_m(from_node.lat, from_node.lon, to_node.lat, to_node.lon),
                    forward_access=decision.forward and not is_barrier(from_node),
                    backward_access=decision.backward and not is_barrier(to_node),
                    forward_speed_kph=decision.forward_speed_kph,
                    backward_speed_kph=decision.backward_speed_kph,
                    geometry=((from_node.lat, from_node.lon), (to_node.lat, to_node.lon)),
                )
                graph.add_edge(edge)
                for listener in self._listeners:
                    listener(edge.id, way.id)

        logger.info(
            f"Imported {graph.get_edge_count()} edges for {self.policy.profile.name} "
            f"({skipped} ways skipped, {recovered} recovered)"
        )
        return graph
