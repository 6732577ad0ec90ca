"""Edge to map-way mapping built during import."""

import logging
import os
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path

import orjson

from core.types import EdgeID, WayID

logger = logging.getLogger(__name__)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class EdgeOutOfRangeError(IndexError):
    """Raised when an edge id has no entry in the index."""


class CorruptIndexError(ValueError):
    """Raised when persisted index data cannot be decoded."""


class EdgeWayIndex:
    """Sequential table mapping edge ids to the way they were created from.

    Edge ids are dense and start at 0, so the way id for edge ``n`` lives at
    position ``n``. Entries are appended in edge-creation order and never
    reordered or removed.
    """

    def __init__(self, way_ids: Iterable[int] = ()) -> None:
        self._way_ids: list[WayID] = [WayID(way_id) for way_id in way_ids]

    def record(self, edge_id: EdgeID, way_id: WayID) -> None:
        """Append the way id for the next edge.

        Raises:
            ValueError: If ``edge_id`` is not the next id in sequence
        """
        if edge_id != len(self._way_ids):
            raise ValueError(
                f"Edge {edge_id} recorded out of order, expected {len(self._way_ids)}"
            )
        self._way_ids.append(way_id)

    def lookup(self, edge_id: EdgeID) -> WayID:
        """Way id for an edge.

        Raises:
            EdgeOutOfRangeError: If the edge is negative or past the end
        """
        if edge_id < 0 or edge_id >= len(self._way_ids):
            raise EdgeOutOfRangeError(
                f"Edge {edge_id} not in index of size {len(self._way_ids)}"
            )
        return self._way_ids[edge_id]

    def __len__(self) -> int:
        return len(self._way_ids)

    def __iter__(self) -> Iterator[WayID]:
        return iter(self._way_ids)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EdgeWayIndex):
            return NotImplemented
        return self._way_ids == other._way_ids

    def __repr__(self) -> str:
        return f"EdgeWayIndex(size={len(self._way_ids)})"

    def serialize(self) -> bytes:
        """Encode as a JSON array of 64-bit integers."""
        return orjson.dumps(self._way_ids)

    @classmethod
    def deserialize(cls, data: bytes) -> "EdgeWayIndex":
        """Decode bytes produced by :meth:`serialize`.

        Raises:
            CorruptIndexError: If the data is not an array of 64-bit integers
        """
        try:
            raw = orjson.loads(data)
        except orjson.JSONDecodeError as e:
            raise CorruptIndexError(f"Edge-to-way index is not valid JSON: {e}") from e

        if not isinstance(raw, list):
            raise CorruptIndexError("Edge-to-way index must be a JSON array")
        for position, value in enumerate(raw):
            # bool is an int subclass but never a valid way id
            if not isinstance(value, int) or isinstance(value, bool):
                raise CorruptIndexError(f"Entry {position} is not an integer: {value!r}")
            if not _INT64_MIN <= value <= _INT64_MAX:
                raise CorruptIndexError(f"Entry {position} does not fit in 64 bits: {value}")

        return cls(raw)

    def save(self, filepath: str | Path) -> None:
        """Write the index atomically so readers never see a partial file."""
        target = Path(filepath)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(self.serialize())
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.info(f"Saved edge-to-way index with {len(self)} entries to {target}")

    @classmethod
    def load(cls, filepath: str | Path) -> "EdgeWayIndex":
        """Read an index written by :meth:`save`.

        Raises:
            FileNotFoundError: If the file does not exist
            CorruptIndexError: If the file cannot be decoded
        """
        data = Path(filepath).read_bytes()
        index = cls.deserialize(data)
        logger.info(f"Loaded edge-to-way index with {len(index)} entries from {filepath}")
        return index
