"""
Binary route codec.

Layout (big-endian):
    int32   point count N
    N x (float64 latitude, float64 longitude)

An empty route encodes to the 4-byte payload b"\\x00\\x00\\x00\\x00". A session
that never tracked location has no payload at all (None), not an empty one.
"""

import struct
from typing import Iterable, List

from .errors import RouteDecodeError
from .models import GeoPoint

_COUNT = struct.Struct(">i")
_POINT = struct.Struct(">dd")


def encode(points: Iterable[GeoPoint]) -> bytes:
    points = list(points)
    buf = bytearray(_COUNT.size + _POINT.size * len(points))
    _COUNT.pack_into(buf, 0, len(points))
    offset = _COUNT.size
    for point in points:
        _POINT.pack_into(buf, offset, point.latitude, point.longitude)
        offset += _POINT.size
    return bytes(buf)


def decode(data: bytes) -> List[GeoPoint]:
    if not data:
        return []
    if len(data) < _COUNT.size:
        raise RouteDecodeError(f"Route payload too short for header: {len(data)} bytes")

    (count,) = _COUNT.unpack_from(data, 0)
    if count < 0:
        raise RouteDecodeError(f"Negative point count: {count}")

    expected = _COUNT.size + count * _POINT.size
    if len(data) != expected:
        raise RouteDecodeError(
            f"Route payload holds {len(data)} bytes, header says {count} points ({expected} bytes)"
        )

    return [GeoPoint(lat, lon) for lat, lon in _POINT.iter_unpack(data[_COUNT.size:])]
