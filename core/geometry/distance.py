"""Great-circle and local plane distances in meters."""

import math

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two (lat, lon) points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, a)))


def point_segment_distance_m(
    lat: float, lon: float, lat1: float, lon1: float, lat2: float, lon2: float
) -> float:
    """Distance from a point to a segment using an equirectangular projection.

    Accurate for the short segments found in road graphs.
    """
    cos_lat = math.cos(math.radians(lat))
    # Project to meters around the query point
    ax = math.radians(lon1 - lon) * cos_lat * EARTH_RADIUS_M
    ay = math.radians(lat1 - lat) * EARTH_RADIUS_M
    bx = math.radians(lon2 - lon) * cos_lat * EARTH_RADIUS_M
    by = math.radians(lat2 - lat) * EARTH_RADIUS_M

    dx = bx - ax
    dy = by - ay
    seg_len_sq = dx * dx + dy * dy
    if seg_len_sq == 0.0:
        return math.hypot(ax, ay)
    t = max(0.0, min(1.0, -(ax * dx + ay * dy) / seg_len_sq))
    return math.hypot(ax + t * dx, ay + t * dy)
