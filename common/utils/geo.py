"""
Geographic utility functions.

This module provides core geospatial calculations used throughout the application.
"""

from math import radians, cos, sin, asin, sqrt
from typing import NamedTuple, Optional

EARTH_RADIUS_KM = 6371.0


class GeoPoint(NamedTuple):
    """A latitude/longitude pair in decimal degrees."""
    latitude: float
    longitude: float

    @classmethod
    def from_fields(cls, latitude, longitude) -> Optional["GeoPoint"]:
        """Build a point from nullable model fields; None if either part is missing."""
        if latitude is None or longitude is None:
            return None
        return cls(float(latitude), float(longitude))


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great-circle distance between two points in kilometers using Haversine formula.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in kilometers
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(sqrt(min(1.0, a)))
    return c * EARTH_RADIUS_KM


def distance_between(a: GeoPoint, b: GeoPoint) -> float:
    """Distance in kilometers between two points."""
    return calculate_distance(a[0], a[1], b[0], b[1])
