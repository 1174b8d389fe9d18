"""Proximity ordering between a request location and a donor location."""

from __future__ import annotations

from enum import IntEnum
from math import asin, cos, radians, sin, sqrt
from typing import NamedTuple, Optional

from .records import Location

EARTH_RADIUS_KM = 6371.0


class ProximityTier(IntEnum):
    SAME_AREA = 0
    SAME_CITY = 1
    BY_DISTANCE = 2
    UNKNOWN = 3


class ProximityKey(NamedTuple):
    tier: ProximityTier
    distance_km: Optional[float]

    def sort_value(self):
        # Unknown distance sorts after every known one in the same tier.
        if self.distance_km is None:
            return (int(self.tier), 1, 0.0)
        return (int(self.tier), 0, self.distance_km)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle ("as the crow flies") distance in kilometres."""

    lat1, lon1, lat2, lon2 = map(radians, (float(lat1), float(lon1), float(lat2), float(lon2)))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(min(1.0, sqrt(a)))


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


def same_city(request: Location, donor: Location) -> bool:
    city = _normalize(request.city)
    return bool(city) and city == _normalize(donor.city)


def same_area(request: Location, donor: Location) -> bool:
    return same_city(request, donor) and _normalize(request.area) == _normalize(donor.area)


def distance_between(request: Location, donor: Location) -> Optional[float]:
    if not (request.has_coordinates and donor.has_coordinates):
        return None
    return haversine_km(request.latitude, request.longitude, donor.latitude, donor.longitude)


def proximity_key(request: Location, donor: Location) -> ProximityKey:
    distance = distance_between(request, donor)
    if same_area(request, donor):
        return ProximityKey(ProximityTier.SAME_AREA, distance)
    if same_city(request, donor):
        return ProximityKey(ProximityTier.SAME_CITY, distance)
    if distance is not None:
        return ProximityKey(ProximityTier.BY_DISTANCE, distance)
    return ProximityKey(ProximityTier.UNKNOWN, None)
