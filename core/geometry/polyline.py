"""Fixed-precision polyline codec for coordinate sequences.

Coordinates are floor-quantised, delta-encoded against the previous sample
and written as 5-bit groups offset into the printable ASCII range. The codec
is lossy: decoding yields the quantised values, not the original input.
"""

import math
from collections.abc import Sequence

DEFAULT_PRECISION = 1e5
ELEVATION_PRECISION = 100

_BIAS = 63
_CONTINUATION = 0x20
_GROUP_MASK = 0x1F


class PolylineDecodeError(ValueError):
    """Raised when an encoded polyline is truncated or contains invalid characters."""


def _encode_number(out: list[str], num: int) -> None:
    num = num << 1
    if num < 0:
        num = ~num
    while num >= _CONTINUATION:
        out.append(chr((_CONTINUATION | (num & _GROUP_MASK)) + _BIAS))
        num >>= 5
    out.append(chr(num + _BIAS))


def _decode_number(encoded: str, index: int) -> tuple[int, int]:
    """Read one signed delta starting at ``index``.

    Returns:
        Tuple of (delta, next_index)

    Raises:
        PolylineDecodeError: If the variable-length group runs past the end
    """
    shift = 0
    result = 0
    while True:
        if index >= len(encoded):
            raise PolylineDecodeError(f"Truncated polyline at position {index}")
        b = ord(encoded[index]) - _BIAS
        index += 1
        if b < 0 or b > 0x3F:
            raise PolylineDecodeError(
                f"Invalid polyline character {encoded[index - 1]!r} at position {index - 1}"
            )
        result |= (b & _GROUP_MASK) << shift
        shift += 5
        if b < _CONTINUATION:
            break
    delta = ~(result >> 1) if result & 1 else result >> 1
    return delta, index


def encode_polyline(
    points: Sequence[Sequence[float]],
    include_elevation: bool = False,
    precision: float = DEFAULT_PRECISION,
) -> str:
    """Encode (lat, lon[, ele]) samples into a polyline string.

    Args:
        points: Ordered samples; elevation is read from index 2 when requested
        include_elevation: Whether to append elevation (centimetre resolution)
        precision: Multiplier applied to lat/lon before flooring

    Returns:
        The encoded string (empty for an empty sequence)
    """
    out: list[str] = []
    prev_lat = prev_lon = prev_ele = 0
    for point in points:
        num = math.floor(point[0] * precision)
        _encode_number(out, num - prev_lat)
        prev_lat = num

        num = math.floor(point[1] * precision)
        _encode_number(out, num - prev_lon)
        prev_lon = num

        if include_elevation:
            if len(point) < 3:
                raise ValueError("Elevation requested but sample has no elevation")
            num = math.floor(point[2] * ELEVATION_PRECISION)
            _encode_number(out, num - prev_ele)
            prev_ele = num
    return "".join(out)


def decode_polyline(
    encoded: str, is_3d: bool = False, precision: float = DEFAULT_PRECISION
) -> list[tuple[float, ...]]:
    """Decode a polyline string produced by :func:`encode_polyline`.

    Raises:
        PolylineDecodeError: On truncated or malformed input. No partial
            result is returned.
    """
    points: list[tuple[float, ...]] = []
    index = 0
    lat = lon = ele = 0
    while index < len(encoded):
        delta, index = _decode_number(encoded, index)
        lat += delta
        delta, index = _decode_number(encoded, index)
        lon += delta
        if is_3d:
            delta, index = _decode_number(encoded, index)
            ele += delta
            points.append((lat / precision, lon / precision, ele / ELEVATION_PRECISION))
        else:
            points.append((lat / precision, lon / precision))
    return points


def quantize(
    points: Sequence[Sequence[float]],
    include_elevation: bool = False,
    precision: float = DEFAULT_PRECISION,
) -> list[tuple[float, ...]]:
    """Round every coordinate down to the codec's resolution."""
    result: list[tuple[float, ...]] = []
    for point in points:
        lat = math.floor(point[0] * precision) / precision
        lon = math.floor(point[1] * precision) / precision
        if include_elevation:
            ele = math.floor(point[2] * ELEVATION_PRECISION) / ELEVATION_PRECISION
            result.append((lat, lon, ele))
        else:
            result.append((lat, lon))
    return result
