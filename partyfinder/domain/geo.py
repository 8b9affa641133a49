"""Great-circle distance and distance formatting."""
import math
from enum import Enum
from typing import NamedTuple

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371


class DistanceUnit(str, Enum):
    km = "km"
    miles = "miles"


class Coordinates(NamedTuple):
    latitude: float
    longitude: float


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in kilometres between two WGS84 points."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_between(origin: Coordinates, target: Coordinates) -> float:
    return haversine_km(origin.latitude, origin.longitude, target.latitude, target.longitude)


def format_distance(distance_km: float, unit: DistanceUnit = DistanceUnit.km) -> str:
    """
    Render a distance for display, one decimal place.

    Anything under a tenth of the unit is shown as ``<0.1``.
    """
    if DistanceUnit(unit) is DistanceUnit.miles:
        miles = distance_km * KM_TO_MILES
        return "<0.1 mi" if miles < 0.1 else f"{miles:.1f} mi"
    return "<0.1 km" if distance_km < 0.1 else f"{distance_km:.1f} km"
