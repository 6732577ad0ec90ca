from dataclasses import dataclass, field

from core.types import NodeID


@dataclass
class Node:
    id: NodeID
    lat: float
    lon: float
    tags: dict[str, str] = field(default_factory=dict)
