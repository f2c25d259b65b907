"""Geodesy primitives: great-circle distance, bearing and polygon area.

Distances are computed on a sphere of radius 6,371,000 m. Areas use the
Shoelace formula on an equirectangular projection centred on the polygon,
which is accurate at residential-lot scale.
"""

import logging
import math
from typing import Sequence

from shapely.geometry import Polygon

from perimeter.geometry.types import METERS_TO_FEET, Coordinate

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180
SQ_METERS_TO_SQ_FEET = 10.7639
SQ_FEET_PER_ACRE = 43_560.0
FEET_PER_MILE = 5280.0


def finite_or_zero(value: float, label: str = "value") -> float:
    """Coerce NaN/Infinity to 0 so malformed input cannot poison a total."""
    if math.isfinite(value):
        return value
    logger.warning(f"Non-finite {label} ({value}) coerced to 0")
    return 0.0


def distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in meters (haversine form)."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    )
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return finite_or_zero(EARTH_RADIUS_M * c, "distance")


def distance_feet(a: Coordinate, b: Coordinate) -> float:
    return distance(a, b) * METERS_TO_FEET


def bearing(a: Coordinate, b: Coordinate) -> float:
    """Initial bearing from a to b in degrees, normalised to [0, 360)."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    d_lng = math.radians(b.lng - a.lng)

    x = math.sin(d_lng) * math.cos(lat2)
    y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lng)

    result = (math.degrees(math.atan2(x, y)) + 360) % 360
    return finite_or_zero(result, "bearing")


class LocalProjection:
    """Equirectangular projection to a planar frame in feet.

    Used to hand coordinates to shapely for distance and nearest-point work.
    Only valid for small extents away from the poles.
    """

    def __init__(self, points: Sequence[Coordinate]):
        if points:
            self.origin_lat = sum(p.lat for p in points) / len(points)
            self.origin_lng = sum(p.lng for p in points) / len(points)
        else:
            self.origin_lat = 0.0
            self.origin_lng = 0.0
        self._ft_per_deg_lat = METERS_PER_DEGREE * METERS_TO_FEET
        self._ft_per_deg_lng = self._ft_per_deg_lat * math.cos(math.radians(self.origin_lat))

    def to_xy(self, point: Coordinate) -> tuple[float, float]:
        return (
            (point.lng - self.origin_lng) * self._ft_per_deg_lng,
            (point.lat - self.origin_lat) * self._ft_per_deg_lat,
        )

    def to_coordinate(self, x: float, y: float) -> Coordinate:
        return Coordinate(
            lat=self.origin_lat + y / self._ft_per_deg_lat,
            lng=self.origin_lng + x / self._ft_per_deg_lng,
        )


def polygon_area(points: Sequence[Coordinate]) -> float:
    """Area in square meters. Winding direction does not affect the result.

    Args:
        points: Polygon vertices; the closing vertex may be omitted

    Returns:
        Square meters, or 0 for fewer than 3 vertices or non-finite input
    """
    if len(points) < 3:
        return 0.0

    centroid_lat = math.radians(sum(p.lat for p in points) / len(points))
    x_scale = METERS_PER_DEGREE * math.cos(centroid_lat)

    projected = [(p.lng * x_scale, p.lat * METERS_PER_DEGREE) for p in points]
    if not all(math.isfinite(x) and math.isfinite(y) for x, y in projected):
        logger.warning("Polygon contains non-finite coordinates; area coerced to 0")
        return 0.0

    # Shapely's area is the absolute Shoelace sum of the exterior ring
    return finite_or_zero(Polygon(projected).area, "polygon area")


def area_summary(points: Sequence[Coordinate]) -> dict[str, float]:
    square_meters = polygon_area(points)
    square_feet = square_meters * SQ_METERS_TO_SQ_FEET
    return {
        "square_meters": square_meters,
        "square_feet": square_feet,
        "acres": square_feet / SQ_FEET_PER_ACRE,
    }


def format_distance(meters: float) -> str:
    """Human-readable distance, switching units with magnitude."""
    feet = meters * METERS_TO_FEET
    miles = feet / FEET_PER_MILE

    if miles >= 0.5:
        return f"{miles:.2f} mi"
    if feet >= 1000:
        return f"{feet:,.0f} ft"
    if meters >= 100:
        return f"{meters:,.0f} m"
    return f"{meters:.2f} m"


def format_area(square_meters: float) -> str:
    square_feet = square_meters * SQ_METERS_TO_SQ_FEET
    acres = square_feet / SQ_FEET_PER_ACRE

    if acres >= 0.5:
        return f"{acres:.2f} acres"
    if square_feet >= 5000:
        return f"{square_feet:,.0f} sq ft"
    if square_meters >= 100:
        return f"{square_meters:,.0f} sq m"
    return f"{square_meters:.2f} sq m"
