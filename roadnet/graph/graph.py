import json
import math
import xml.etree.ElementTree as ET
from collections.abc import Iterator

from core.geometry.polyline import decode_polyline, encode_polyline
from core.types import EdgeID, NodeID
from roadnet.graph.edge import Edge
from roadnet.graph.node import Node

GRAPHML_NS = "http://graphml.graphdrawing.org/xmlns"

# Geometry is persisted with a finer resolution than route output.
GEOMETRY_PRECISION = 1e7


class Graph:
    """Road graph of nodes and edges produced by a single import pass.

    Edge ids are dense and assigned in creation order starting at 0.
    """

    def __init__(self) -> None:
        self.nodes: dict[NodeID, Node] = {}
        self.edges: dict[EdgeID, Edge] = {}
        self.out_adj: dict[NodeID, list[EdgeID]] = {}  # node -> edges starting here
        self.in_adj: dict[NodeID, list[EdgeID]] = {}  # node -> edges ending here

    def add_node(self, node: Node) -> None:
        """Add a node to the graph."""
        if node.id in self.nodes:
            raise ValueError(f"Node {node.id} already exists")

        self.nodes[node.id] = node
        self.out_adj[node.id] = []
        self.in_adj[node.id] = []

    def next_edge_id(self) -> EdgeID:
        """Id the next added edge must carry."""
        return EdgeID(len(self.edges))

    def add_edge(self, edge: Edge) -> None:
        """Add an edge to the graph."""
        if edge.id in self.edges:
            raise ValueError(f"Edge {edge.id} already exists")
        if edge.id != self.next_edge_id():
            raise ValueError(f"Edge {edge.id} out of sequence, expected {self.next_edge_id()}")

        # Validate that both nodes exist
        if edge.from_node not in self.nodes:
            raise ValueError(f"Node {edge.from_node} does not exist")
        if edge.to_node not in self.nodes:
            raise ValueError(f"Node {edge.to_node} does not exist")

        self.edges[edge.id] = edge
        self.out_adj[edge.from_node].append(edge.id)
        self.in_adj[edge.to_node].append(edge.id)

    def get_outgoing_edges(self, node_id: NodeID) -> list[Edge]:
        """Get all edges whose from_node is ``node_id``."""
        return [self.edges[edge_id] for edge_id in self.out_adj.get(node_id, [])]

    def get_incoming_edges(self, node_id: NodeID) -> list[Edge]:
        """Get all edges whose to_node is ``node_id``."""
        return [self.edges[edge_id] for edge_id in self.in_adj.get(node_id, [])]

    def iter_traversals(self, node_id: NodeID) -> Iterator[tuple[Edge, bool]]:
        """Yield (edge, reverse) pairs for every way to leave ``node_id``.

        Access flags are not checked here; weightings decide whether a
        traversal is usable.
        """
        for edge in self.get_outgoing_edges(node_id):
            yield edge, False
        for edge in self.get_incoming_edges(node_id):
            yield edge, True

    def get_node_count(self) -> int:
        """Get the number of nodes in the graph."""
        return len(self.nodes)

    def get_edge_count(self) -> int:
        """Get the number of edges in the graph."""
        return len(self.edges)

    def bounds(self) -> tuple[float, float, float, float]:
        """Bounding box as (min_lon, min_lat, max_lon, max_lat)."""
        if not self.nodes:
            return (0.0, 0.0, 0.0, 0.0)
        lats = [node.lat for node in self.nodes.values()]
        lons = [node.lon for node in self.nodes.values()]
        return (min(lons), min(lats), max(lons), max(lats))

    def find_nearest_node(self, lat: float, lon: float) -> NodeID | None:
        """Closest node by equirectangular distance, or None on an empty graph."""
        best: NodeID | None = None
        best_dist = math.inf
        cos_lat = math.cos(math.radians(lat))
        for node in self.nodes.values():
            dx = (node.lon - lon) * cos_lat
            dy = node.lat - lat
            dist = dx * dx + dy * dy
            if dist < best_dist:
                best_dist = dist
                best = node.id
        return best

    def __str__(self) -> str:
        """String representation of the graph."""
        return f"Graph(nodes={len(self.nodes)}, edges={len(self.edges)})"

    def __repr__(self) -> str:
        """Detailed representation of the graph."""
        return f"Graph(nodes={list(self.nodes.keys())}, edges={list(self.edges.keys())})"

    def to_graphml(self, filepath: str) -> None:
        """Export graph to GraphML format."""
        root = ET.Element("graphml", xmlns=GRAPHML_NS)

        # Node attributes
        for key_id, name, attr_type in (
            ("node_lat", "lat", "double"),
            ("node_lon", "lon", "double"),
            ("node_tags", "tags", "string"),
        ):
            ET.SubElement(
                root, "key", {"id": key_id, "for": "node", "attr.name": name, "attr.type": attr_type}
            )

        # Edge attributes
        for key_id, name, attr_type in (
            ("edge_length", "length_m", "double"),
            ("edge_fwd_access", "forward_access", "boolean"),
            ("edge_bwd_access", "backward_access", "boolean"),
            ("edge_fwd_speed", "forward_speed_kph", "double"),
            ("edge_bwd_speed", "backward_speed_kph", "double"),
            ("edge_geometry", "geometry", "string"),
        ):
            ET.SubElement(
                root, "key", {"id": key_id, "for": "edge", "attr.name": name, "attr.type": attr_type}
            )

        graph = ET.SubElement(root, "graph", id="graph", edgedefault="directed")

        for node_id, node in self.nodes.items():
            node_elem = ET.SubElement(graph, "node", id=str(node_id))
            ET.SubElement(node_elem, "data", key="node_lat").text = repr(node.lat)
            ET.SubElement(node_elem, "data", key="node_lon").text = repr(node.lon)
            ET.SubElement(node_elem, "data", key="node_tags").text = json.dumps(node.tags)

        # Edges are written in id order so a reload preserves the sequence
        for edge_id in sorted(self.edges):
            edge = self.edges[edge_id]
            edge_elem = ET.SubElement(
                graph, "edge", id=str(edge_id), source=str(edge.from_node), target=str(edge.to_node)
            )
            ET.SubElement(edge_elem, "data", key="edge_length").text = repr(edge.length_m)
            ET.SubElement(edge_elem, "data", key="edge_fwd_access").text = str(
                edge.forward_access
            ).lower()
            ET.SubElement(edge_elem, "data", key="edge_bwd_access").text = str(
                edge.backward_access
            ).lower()
            ET.SubElement(edge_elem, "data", key="edge_fwd_speed").text = repr(
                edge.forward_speed_kph
            )
            ET.SubElement(edge_elem, "data", key="edge_bwd_speed").text = repr(
                edge.backward_speed_kph
            )
            ET.SubElement(edge_elem, "data", key="edge_geometry").text = encode_polyline(
                edge.geometry, precision=GEOMETRY_PRECISION
            )

        tree = ET.ElementTree(root)
        ET.indent(tree, space="  ", level=0)
        tree.write(filepath, encoding="utf-8", xml_declaration=True)

    @classmethod
    def from_graphml(cls, filepath: str) -> "Graph":
        """Import graph from GraphML format.

        Raises:
            ValueError: If the file is missing required elements or attributes
        """
        try:
            tree = ET.parse(filepath)
        except ET.ParseError as e:
            raise ValueError(f"Invalid GraphML file {filepath}: {e}") from e
        root = tree.getroot()

        namespace = {"default": GRAPHML_NS}
        graph = cls()

        graph_elem = root.find("default:graph", namespace)
        if graph_elem is None:
            graph_elem = root.find("graph")
        if graph_elem is None:
            raise ValueError("No graph element found in GraphML file")

        node_elems = graph_elem.findall("default:node", namespace) or graph_elem.findall("node")
        for node_elem in node_elems:
            node_id_attr = node_elem.get("id")
            if node_id_attr is None:
                raise ValueError("Node missing id attribute")
            data = _read_data(node_elem, namespace)

            if "node_lat" not in data or "node_lon" not in data:
                raise ValueError(f"Node {node_id_attr} missing coordinates")

            try:
                tags = json.loads(data.get("node_tags") or "{}")
            except json.JSONDecodeError as e:
                raise ValueError(f"Failed to parse tags for node {node_id_attr}: {e}") from e

            graph.add_node(
                Node(
                    id=NodeID(int(node_id_attr)),
                    lat=float(data["node_lat"]),
                    lon=float(data["node_lon"]),
                    tags=tags,
                )
            )

        edge_elems = graph_elem.findall("default:edge", namespace) or graph_elem.findall("edge")
        parsed: list[Edge] = []
        for edge_elem in edge_elems:
            edge_id_attr = edge_elem.get("id")
            source = edge_elem.get("source")
            target = edge_elem.get("target")
            if edge_id_attr is None or source is None or target is None:
                raise ValueError("Edge missing id, source or target attribute")
            data = _read_data(edge_elem, namespace)
            if "edge_length" not in data:
                raise ValueError(f"Edge {edge_id_attr} missing required attributes")

            parsed.append(
                Edge(
                    id=EdgeID(int(edge_id_attr)),
                    from_node=NodeID(int(source)),
                    to_node=NodeID(int(target)),
                    length_m=float(data["edge_length"]),
                    forward_access=data.get("edge_fwd_access", "true") == "true",
                    backward_access=data.get("edge_bwd_access", "true") == "true",
                    forward_speed_kph=float(data.get("edge_fwd_speed", 0.0)),
                    backward_speed_kph=float(data.get("edge_bwd_speed", 0.0)),
                    geometry=tuple(
                        (lat, lon)
                        for lat, lon in decode_polyline(
                            data.get("edge_geometry", ""), precision=GEOMETRY_PRECISION
                        )
                    ),
                )
            )

        for edge in sorted(parsed, key=lambda e: e.id):
            graph.add_edge(edge)

        return graph


def _read_data(elem: ET.Element, namespace: dict[str, str]) -> dict[str, str]:
    data_elems = elem.findall("default:data", namespace) or elem.findall("data")
    return {
        key: data_elem.text or ""
        for data_elem in data_elems
        if (key := data_elem.get("key")) is not None
    }
