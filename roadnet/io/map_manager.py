"""Persisted graph and edge-to-way index management."""

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path

from roadnet.graph.graph import Graph
from roadnet.graph.way_index import CorruptIndexError, EdgeWayIndex
from roadnet.io.importer import GraphImporter
from roadnet.io.osm import load_osm_json
from roadnet.vehicles.access import AccessPolicy

logger = logging.getLogger(__name__)

GRAPH_FILENAME = "graph.graphml"
INDEX_FILENAME = "edgeToWayMap.json"


@dataclass(frozen=True)
class LoadedMap:
    """A graph together with the index built by the same import pass."""

    graph: Graph
    index: EdgeWayIndex
    location: Path
    imported: bool


def sanitize_map_name(name: str) -> str:
    """Sanitize a location name to prevent path traversal and allow only safe characters.

    Args:
        name: Original name

    Returns:
        Sanitized name containing only alphanumeric characters, underscores, and hyphens
    """
    sanitized = re.sub(r"[^a-zA-Z0-9_-]", "_", name)
    sanitized = sanitized.strip(". ")
    if not sanitized:
        sanitized = "unnamed_map"
    return sanitized


def get_graph_location(base_dir: str | Path, prefix: str, vehicle: str, weighting: str) -> Path:
    """Directory for one vehicle + weighting profile.

    Each profile gets its own directory because edge flags depend on the vehicle.
    """
    name = sanitize_map_name(f"{prefix}_{vehicle}_{weighting}_map-gh")
    return Path(base_dir) / name


def _write_graph(graph: Graph, filepath: Path) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=filepath.parent, prefix=f".{filepath.name}.")
    os.close(fd)
    try:
        graph.to_graphml(tmp_name)
        os.replace(tmp_name, filepath)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def load_persisted(location: str | Path) -> LoadedMap | None:
    """Load graph and index from ``location``.

    Returns:
        The loaded map, or None if either file is missing or corrupt, or the
        index does not cover the graph's edges. Callers must re-import in
        that case.
    """
    location = Path(location)
    graph_path = location / GRAPH_FILENAME
    index_path = location / INDEX_FILENAME

    if not graph_path.exists():
        return None

    try:
        index = EdgeWayIndex.load(index_path)
    except FileNotFoundError:
        logger.warning(f"No edge-to-way index in {location}, re-import required")
        return None
    except CorruptIndexError as e:
        logger.error(f"Corrupt edge-to-way index in {location}: {e}")
        return None

    try:
        graph = Graph.from_graphml(str(graph_path))
    except ValueError as e:
        logger.error(f"Corrupt graph file in {location}: {e}")
        return None

    if len(index) != graph.get_edge_count():
        logger.warning(
            f"Edge-to-way index has {len(index)} entries but graph has "
            f"{graph.get_edge_count()} edges, re-import required"
        )
        return None

    return LoadedMap(graph=graph, index=index, location=location, imported=False)


def import_map(map_file: str | Path, location: str | Path, policy: AccessPolicy) -> LoadedMap:
    """Import ``map_file`` and persist the graph and index to ``location``.

    Raises:
        FileNotFoundError: If the map file doesn't exist
        ValueError: If the map file is malformed
    """
    location = Path(location)
    location.mkdir(parents=True, exist_ok=True)

    index = EdgeWayIndex()
    importer = GraphImporter(policy)
    importer.add_listener(index.record)
    graph = importer.import_extract(load_osm_json(map_file))

    _write_graph(graph, location / GRAPH_FILENAME)
    index.save(location / INDEX_FILENAME)
    logger.info(f"Imported {map_file} into {location}: {graph}")
    return LoadedMap(graph=graph, index=index, location=location, imported=True)


def import_or_load(map_file: str | Path, location: str | Path, policy: AccessPolicy) -> LoadedMap:
    """Load the persisted map if it is complete, otherwise import it afresh."""
    loaded = load_persisted(location)
    if loaded is not None:
        logger.info(f"Loaded map from {location}: {loaded.graph}")
        return loaded
    return import_map(map_file, location, policy)
