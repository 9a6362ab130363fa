"""Geospatial utilities shared by the matching and recommendation engines."""

from __future__ import annotations

from math import atan2, cos, radians, sin, sqrt

from social_rhythm.models.place import Coordinates

EARTH_RADIUS_METERS = 6_371_000


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Calculate distance between two lat/lng points in meters.

    Args:
        lat1: Latitude of the first point.
        lng1: Longitude of the first point.
        lat2: Latitude of the second point.
        lng2: Longitude of the second point.

    Returns:
        Distance in meters. Identical points return exactly 0.0.
    """

    lat1_rad = radians(lat1)
    lat2_rad = radians(lat2)

    delta_lat = radians(lat2 - lat1)
    delta_lng = radians(lng2 - lng1)

    a = sin(delta_lat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(
        delta_lng / 2
    ) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Calculate distance between two lat/lng points in kilometers."""

    return haversine_meters(lat1, lng1, lat2, lng2) / 1000.0


def distance_meters(p1: Coordinates, p2: Coordinates) -> float:
    """Distance in meters between two coordinate records."""

    return haversine_meters(p1.lat, p1.lng, p2.lat, p2.lng)


def distance_km(p1: Coordinates, p2: Coordinates) -> float:
    return distance_meters(p1, p2) / 1000.0
