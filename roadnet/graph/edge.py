from dataclasses import dataclass, field

from core.types import EdgeID, LatLon, NodeID


@dataclass(frozen=True)
class Edge:
    """Road segment between two nodes.

    A single edge covers both travel directions; ``forward_access`` applies
    from ``from_node`` to ``to_node`` and ``backward_access`` to the reverse.
    ``geometry`` includes both end points.
    """

    id: EdgeID
    from_node: NodeID
    to_node: NodeID
    length_m: float
    forward_access: bool = True
    backward_access: bool = True
    forward_speed_kph: float = 0.0
    backward_speed_kph: float = 0.0
    geometry: tuple[LatLon, ...] = field(default_factory=tuple)

    def has_access(self, reverse: bool) -> bool:
        """Whether the edge may be travelled in the given direction."""
        return self.backward_access if reverse else self.forward_access

    def speed_kph(self, reverse: bool) -> float:
        """Free-flow speed stored for the given direction."""
        return self.backward_speed_kph if reverse else self.forward_speed_kph

    def adj_node(self, reverse: bool) -> NodeID:
        return self.from_node if reverse else self.to_node
