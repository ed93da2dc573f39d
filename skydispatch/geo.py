"""
Great-circle math on a spherical Earth.

Positions are ``(lat, lon)`` tuples in decimal degrees. Everything here
is a pure function; conversions to radians happen internally.
"""

import math
from typing import Optional, Tuple

EARTH_RADIUS_KM = 6371.0

Position = Tuple[float, float]


def haversine_distance(a: Position, b: Position) -> float:
    """
    Central angle between two points, in radians.

    Multiply by the Earth radius to get a distance.
    """
    lat1 = math.radians(a[0])
    lon1 = math.radians(a[1])
    lat2 = math.radians(b[0])
    lon2 = math.radians(b[1])

    sin_dlat = math.sin((lat2 - lat1) / 2)
    sin_dlon = math.sin((lon2 - lon1) / 2)
    h = sin_dlat * sin_dlat + math.cos(lat1) * math.cos(lat2) * sin_dlon * sin_dlon

    # Rounding can push h a hair above 1 for antipodal points
    return 2 * math.asin(min(1.0, math.sqrt(h)))


def distance_km(a: Position, b: Position) -> float:
    """Great-circle distance between two points in kilometers."""
    return haversine_distance(a, b) * EARTH_RADIUS_KM


def interpolate_great_circle(origin: Position, destination: Position, progress: float) -> Position:
    """
    Point at ``progress`` along the great-circle arc from origin to destination.

    Spherical linear interpolation weighted by sin(delta). Progress is
    clamped to [0, 1]. Coincident endpoints return the origin unchanged.
    """
    delta = haversine_distance(origin, destination)
    if not delta or math.isnan(delta):
        return (origin[0], origin[1])

    lat1 = math.radians(origin[0])
    lon1 = math.radians(origin[1])
    lat2 = math.radians(destination[0])
    lon2 = math.radians(destination[1])

    t = min(1.0, max(0.0, progress))
    sin_delta = math.sin(delta)
    wa = math.sin((1 - t) * delta) / sin_delta
    wb = math.sin(t * delta) / sin_delta

    x = wa * math.cos(lat1) * math.cos(lon1) + wb * math.cos(lat2) * math.cos(lon2)
    y = wa * math.cos(lat1) * math.sin(lon1) + wb * math.cos(lat2) * math.sin(lon2)
    z = wa * math.sin(lat1) + wb * math.sin(lat2)

    lat = math.atan2(z, math.sqrt(x * x + y * y))
    lon = math.atan2(y, x)
    return (math.degrees(lat), math.degrees(lon))


def is_position_in_zone(position: Optional[Position], zone) -> bool:
    """True if the position lies within the zone's circle (boundary inclusive)."""
    if position is None or zone is None:
        return False
    return distance_km(position, (zone.lat, zone.lon)) <= zone.radius_km
