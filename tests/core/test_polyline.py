"""Tests for the polyline codec."""

import pytest

from core.geometry.polyline import (
    PolylineDecodeError,
    decode_polyline,
    encode_polyline,
    quantize,
)


def test_encode_known_sequence() -> None:
    """Test encoding of exactly representable coordinates."""
    points = [(0.5, 1.25), (0.75, -0.25)]
    assert encode_polyline(points) == "_t`BocsFoyo@~}cH"


def test_decode_known_sequence() -> None:
    """Test decoding restores the quantised coordinates."""
    assert decode_polyline("_t`BocsFoyo@~}cH") == [(0.5, 1.25), (0.75, -0.25)]


def test_encode_empty_sequence() -> None:
    """Test an empty sequence encodes to an empty string."""
    assert encode_polyline([]) == ""
    assert decode_polyline("") == []


def test_encode_with_elevation() -> None:
    """Test elevation is appended per sample at centimetre resolution."""
    encoded = encode_polyline([(0.5, 1.25, 10.5)], include_elevation=True)
    assert encoded == "_t`BocsFs`A"
    assert decode_polyline(encoded, is_3d=True) == [(0.5, 1.25, 10.5)]


def test_elevation_ignored_unless_requested() -> None:
    assert encode_polyline([(0.5, 1.25, 10.5)]) == "_t`BocsF"


def test_encode_elevation_missing_raises() -> None:
    with pytest.raises(ValueError):
        encode_polyline([(0.5, 1.25)], include_elevation=True)


@pytest.mark.parametrize("precision", [1e5, 1e6])
def test_round_trip_equals_quantized_input(precision: float) -> None:
    """Test decode(encode(S)) == quantize(S), not S itself."""
    points = [
        (43.777663, 11.268089),
        (43.76582535876258, 11.271286010742188),
        (-33.123456789, -70.654321987),
        (0.0, 0.0),
    ]
    encoded = encode_polyline(points, precision=precision)
    assert decode_polyline(encoded, precision=precision) == quantize(points, precision=precision)


def test_round_trip_with_elevation() -> None:
    """Test elevation survives a round trip at centimetre resolution."""
    points = [(43.1, 11.2, 123.456), (43.2, 11.3, -5.678)]
    encoded = encode_polyline(points, include_elevation=True)
    decoded = decode_polyline(encoded, is_3d=True)
    assert decoded == quantize(points, include_elevation=True)
    assert decoded[0][2] == 123.45


def test_quantize_rounds_down() -> None:
    """Test quantisation floors, including for negative values."""
    assert quantize([(1.234567, -1.234567)]) == [(1.23456, -1.23457)]


def test_decode_truncated_group_raises() -> None:
    """Test a variable-length group cut off mid-way is rejected."""
    with pytest.raises(PolylineDecodeError):
        decode_polyline("_t`")


def test_decode_missing_longitude_raises() -> None:
    """Test a latitude without its longitude is rejected."""
    with pytest.raises(PolylineDecodeError):
        decode_polyline("_t`B")


def test_decode_missing_elevation_raises() -> None:
    with pytest.raises(PolylineDecodeError):
        decode_polyline("_t`BocsF", is_3d=True)


def test_decode_invalid_character_raises() -> None:
    """Test characters outside the encoding alphabet are rejected."""
    with pytest.raises(PolylineDecodeError):
        decode_polyline("_t`B ocsF")
