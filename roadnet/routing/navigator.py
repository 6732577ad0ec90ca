"""A* path search over the road graph driven by a pluggable weighting."""

import heapq
import math
from dataclasses import dataclass, field

from core.geometry.distance import haversine_m
from core.types import NodeID
from roadnet.graph.edge import Edge
from roadnet.graph.graph import Graph
from roadnet.routing.weighting import SPEED_CONV, Weighting


@dataclass
class RoutePath:
    """Result of a path search.

    Attributes:
        nodes: Node ids from start to goal (inclusive)
        traversals: (edge, reverse) pairs in travel order
        weight: Total weighting cost
    """

    nodes: list[NodeID] = field(default_factory=list)
    traversals: list[tuple[Edge, bool]] = field(default_factory=list)
    weight: float = math.inf

    @property
    def found(self) -> bool:
        return bool(self.nodes)

    @property
    def distance_m(self) -> float:
        return sum(edge.length_m for edge, _ in self.traversals)

    def points(self, graph: Graph) -> list[tuple[float, float]]:
        """Coordinates along the path, following each edge's geometry."""
        points: list[tuple[float, float]] = []
        for edge, reverse in self.traversals:
            geometry = list(reversed(edge.geometry)) if reverse else list(edge.geometry)
            if points and geometry and points[-1] == geometry[0]:
                geometry = geometry[1:]
            points.extend(geometry)
        if not points and self.nodes:
            node = graph.nodes[self.nodes[0]]
            points.append((node.lat, node.lon))
        return points


class Navigator:
    """Provides A* pathfinding between graph nodes."""

    def find_route(
        self,
        start: NodeID,
        goal: NodeID,
        graph: Graph,
        weighting: Weighting,
        heuristic_speed_kph: float | None = None,
    ) -> RoutePath:
        """Find the cheapest route from start to goal under ``weighting``.

        Args:
            start: Starting node ID
            goal: Destination node ID
            graph: Graph to navigate
            weighting: Edge cost function; infinite cost marks an unusable edge
            heuristic_speed_kph: Top speed for the straight-line time estimate
                when the weighting is a travel time. None runs plain Dijkstra.

        Returns:
            RoutePath; ``found`` is False when no path exists.
        """
        if start not in graph.nodes or goal not in graph.nodes:
            return RoutePath()

        # Edge case: start equals goal
        if start == goal:
            return RoutePath(nodes=[start], weight=0.0)

        goal_node = graph.nodes[goal]

        def heuristic(node_id: NodeID) -> float:
            if heuristic_speed_kph is None:
                return 0.0
            node = graph.nodes[node_id]
            distance = haversine_m(node.lat, node.lon, goal_node.lat, goal_node.lon)
            return distance / heuristic_speed_kph * SPEED_CONV

        # Priority queue: (f_score, counter, node_id)
        counter = 0  # Tie-breaker for equal f_scores
        open_set: list[tuple[float, int, NodeID]] = [(heuristic(start), counter, start)]
        counter += 1

        g_score: dict[NodeID, float] = {start: 0.0}
        came_from: dict[NodeID, tuple[NodeID, Edge, bool]] = {}
        closed: set[NodeID] = set()

        while open_set:
            _, _, current = heapq.heappop(open_set)
            if current in closed:
                continue
            closed.add(current)

            if current == goal:
                return self._reconstruct(came_from, start, goal, g_score[goal])

            current_g = g_score[current]
            for edge, reverse in graph.iter_traversals(current):
                neighbor = edge.adj_node(reverse)
                if neighbor in closed:
                    continue

                edge_cost = weighting.calc_edge_weight(edge, reverse)
                if math.isinf(edge_cost):
                    continue
                tentative_g = current_g + edge_cost

                if neighbor not in g_score or tentative_g < g_score[neighbor]:
                    came_from[neighbor] = (current, edge, reverse)
                    g_score[neighbor] = tentative_g
                    heapq.heappush(open_set, (tentative_g + heuristic(neighbor), counter, neighbor))
                    counter += 1

        # No path found
        return RoutePath()

    @staticmethod
    def _reconstruct(
        came_from: dict[NodeID, tuple[NodeID, Edge, bool]],
        start: NodeID,
        goal: NodeID,
        weight: float,
    ) -> RoutePath:
        nodes = [goal]
        traversals: list[tuple[Edge, bool]] = []
        current = goal
        while current != start:
            previous, edge, reverse = came_from[current]
            traversals.append((edge, reverse))
            nodes.append(previous)
            current = previous
        nodes.reverse()
        traversals.reverse()
        return RoutePath(nodes=nodes, traversals=traversals, weight=weight)

    def calculate_route_cost(self, path: RoutePath, weighting: Weighting) -> float:
        """Re-evaluate a path's cost under another weighting."""
        return sum(weighting.calc_edge_weight(edge, reverse) for edge, reverse in path.traversals)
