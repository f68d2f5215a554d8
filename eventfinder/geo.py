"""Great-circle distance helpers."""

import math

from .models import Coordinates

EARTH_RADIUS_MILES = 3959.0
EARTH_RADIUS_KM = 6371.0
KM_PER_MILE = 1.609344


def haversine(a: Coordinates, b: Coordinates, radius: float = EARTH_RADIUS_MILES) -> float:
    """Distance between two points, in the unit of ``radius`` (miles by default)."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    return radius * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def miles_to_km(miles: float) -> float:
    return miles * KM_PER_MILE


_GEOHASH_ALPHABET = "0123456789bcdefghjkmnpqrstuvwxyz"


def geohash(point: Coordinates, precision: int = 9) -> str:
    """Encode a point as a geohash (Ticketmaster's ``geoPoint``)."""
    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    chars = []
    bit, ch, even = 0, 0, True
    while len(chars) < precision:
        rng, value = (lng_range, point.lng) if even else (lat_range, point.lat)
        mid = (rng[0] + rng[1]) / 2
        if value >= mid:
            ch = (ch << 1) | 1
            rng[0] = mid
        else:
            ch = ch << 1
            rng[1] = mid
        even = not even
        bit += 1
        if bit == 5:
            chars.append(_GEOHASH_ALPHABET[ch])
            bit, ch = 0, 0
    return "".join(chars)
