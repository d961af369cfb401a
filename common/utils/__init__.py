"""Common utility functions."""

from .geo import EARTH_RADIUS_KM, GeoPoint, calculate_distance, distance_between

__all__ = [
    "EARTH_RADIUS_KM",
    "GeoPoint",
    "calculate_distance",
    "distance_between",
]
