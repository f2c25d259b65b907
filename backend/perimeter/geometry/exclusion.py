"""Exclusion zone buffering and segment intersection tests.

Buffers are computed in degree space with a single feet-to-degrees factor.
That is close enough for residential lots at mid latitudes; it does not
correct longitude for latitude, so it should not be used near the poles or
for large distances.
"""

import logging
from dataclasses import replace
from typing import Sequence

from shapely.geometry import LineString, MultiPolygon, Point, Polygon

from perimeter.geometry.types import Coordinate, ExclusionZone

logger = logging.getLogger(__name__)

FEET_PER_DEGREE = 364_320.0


def feet_to_degrees(feet: float) -> float:
    return feet / FEET_PER_DEGREE


def _xy(points: Sequence[Coordinate]) -> list[tuple[float, float]]:
    return [(c.lng, c.lat) for c in points]


def to_polygon(points: Sequence[Coordinate]) -> Polygon:
    """Build a valid shapely polygon from lat/lng vertices (x=lng, y=lat)."""
    polygon = Polygon(_xy(points))
    if not polygon.is_valid:
        polygon = polygon.buffer(0)
    return polygon


def buffer_polygon(polygon: Sequence[Coordinate], distance_ft: float) -> tuple[Coordinate, ...]:
    """Offset a feature outline outward by approximately distance_ft.

    Args:
        polygon: Feature outline; a single point or a line is buffered too
        distance_ft: Clearance in feet

    Returns:
        Vertices of the buffered outline (without the repeated closing vertex).
        The result always covers the input outline.
    """
    if not polygon:
        return ()
    if distance_ft <= 0:
        return tuple(polygon)

    offset = feet_to_degrees(distance_ft)

    if len(polygon) == 1:
        shape = Point(_xy(polygon)[0])
    elif len(polygon) == 2:
        shape = LineString(_xy(polygon))
    else:
        shape = to_polygon(polygon)

    buffered = shape.buffer(offset, join_style="mitre")
    if isinstance(buffered, MultiPolygon):
        buffered = buffered.convex_hull
    if buffered.is_empty:
        logger.warning("Buffering produced an empty outline; keeping the original")
        return tuple(polygon)

    ring = list(buffered.exterior.coords)[:-1]
    return tuple(Coordinate(lat=y, lng=x) for x, y in ring)


def segment_intersects_polygon(
    start: Coordinate,
    end: Coordinate,
    polygon: Sequence[Coordinate],
) -> bool:
    """True when the segment touches, crosses, or lies inside the polygon."""
    if len(polygon) < 3:
        return False

    if start == end:
        segment = Point(start.lng, start.lat)
    else:
        segment = LineString([(start.lng, start.lat), (end.lng, end.lat)])

    return segment.intersects(to_polygon(polygon))


def with_buffered_geometry(zone: ExclusionZone) -> ExclusionZone:
    """Return a copy of the zone with buffered_geometry derived from its buffer distance."""
    return replace(
        zone,
        buffered_geometry=buffer_polygon(zone.geometry, zone.buffer_distance.feet),
    )
