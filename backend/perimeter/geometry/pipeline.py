"""Path conditioning steps applied before a path is measured.

Every step takes and returns a tuple of coordinates, so steps compose with
``run_pipeline`` and can be tested on their own.
"""

import logging
from functools import partial
from typing import Callable, Optional, Sequence

from shapely.geometry import LinearRing, LineString, MultiLineString, Point, Polygon
from shapely.ops import nearest_points

from perimeter.geometry.geodesy import LocalProjection, distance_feet
from perimeter.geometry.types import (
    Coordinate,
    ParcelData,
    SmoothingLevel,
    YardSection,
)

logger = logging.getLogger(__name__)

Path = tuple[Coordinate, ...]
PathStep = Callable[[Path], Path]

PARCEL_SNAP_TOLERANCE_FT = 10.0
NEIGHBOR_BOUNDARY_TOLERANCE_FT = 3.0
EDGE_SNAP_TOLERANCE_FT = 6.0
RECTANGLE_FILL_RATIO = 0.85


def _boundary_shape(xy: list[tuple[float, float]], closed: bool):
    if len(xy) == 1:
        return Point(xy[0])
    if closed and len(xy) >= 3:
        return LinearRing(xy)
    return LineString(xy)


def snap_to_parcel(
    points: Sequence[Coordinate],
    boundary: Sequence[Coordinate],
    tolerance_ft: float = PARCEL_SNAP_TOLERANCE_FT,
) -> Path:
    """Move each vertex onto the nearest point of the parcel boundary when close enough.

    Args:
        points: Vertices as drawn
        boundary: Parcel boundary ring
        tolerance_ft: Vertices strictly closer than this are moved

    Returns:
        Vertices with the close ones snapped; others as drawn
    """
    if not points or not boundary:
        return tuple(points)

    projection = LocalProjection(list(boundary) + list(points))
    ring = _boundary_shape([projection.to_xy(c) for c in boundary], closed=True)

    snapped = []
    moved = 0
    for coord in points:
        vertex = Point(projection.to_xy(coord))
        _, nearest = nearest_points(vertex, ring)
        if vertex.distance(nearest) < tolerance_ft:
            snapped.append(projection.to_coordinate(nearest.x, nearest.y))
            moved += 1
        else:
            snapped.append(coord)

    logger.debug(f"Parcel snapping moved {moved}/{len(points)} vertices")
    return tuple(snapped)


def filter_by_yard_section(
    points: Sequence[Coordinate],
    parcel: ParcelData,
    section: YardSection,
) -> Path:
    """Keep the vertices north (backyard) or south (front yard) of the parcel centroid.

    Street frontage is not modelled, so "back" is taken to be the half with
    greater latitude.
    """
    if section == YardSection.FULL or not parcel.boundaries:
        return tuple(points)

    center_lat = sum(c.lat for c in parcel.boundaries) / len(parcel.boundaries)

    if section == YardSection.BACKYARD:
        return tuple(c for c in points if c.lat > center_lat)
    return tuple(c for c in points if c.lat <= center_lat)


def exclude_neighbor_boundaries(
    points: Sequence[Coordinate],
    parcel: ParcelData,
    tolerance_ft: float = NEIGHBOR_BOUNDARY_TOLERANCE_FT,
) -> Path:
    """Drop vertices lying on a side property line shared with a neighbor.

    The input is returned unchanged when no side lines are known or when
    removal would leave fewer than two vertices.
    """
    sides = [side for side in parcel.side_properties if side]
    if not points or not sides:
        return tuple(points)

    projection = LocalProjection(list(points))
    lines = [
        _boundary_shape([projection.to_xy(c) for c in side], closed=False)
        for side in sides
    ]

    kept = tuple(
        c
        for c in points
        if min(Point(projection.to_xy(c)).distance(line) for line in lines) > tolerance_ft
    )

    if len(kept) < 2:
        logger.warning(
            f"Neighbor exclusion would leave {len(kept)} vertices; keeping path as drawn"
        )
        return tuple(points)

    logger.debug(f"Neighbor exclusion removed {len(points) - len(kept)} vertices")
    return kept


def smooth_path(points: Sequence[Coordinate], level: SmoothingLevel) -> Path:
    """Weighted 3-point moving average, (prev + 2*curr + next) / 4, endpoints fixed."""
    smoothed = list(points)

    for _ in range(level.passes):
        if len(smoothed) < 3:
            break
        next_pass = [smoothed[0]]
        for i in range(1, len(smoothed) - 1):
            prev, curr, nxt = smoothed[i - 1], smoothed[i], smoothed[i + 1]
            next_pass.append(
                Coordinate(
                    lat=(prev.lat + curr.lat * 2 + nxt.lat) / 4,
                    lng=(prev.lng + curr.lng * 2 + nxt.lng) / 4,
                )
            )
        next_pass.append(smoothed[-1])
        smoothed = next_pass

    return tuple(smoothed)


def enforce_minimum_segment_length(
    points: Sequence[Coordinate],
    min_length_ft: float,
) -> Path:
    """Drop intermediate vertices closer than min_length_ft to the last kept vertex."""
    if len(points) < 3 or min_length_ft <= 0:
        return tuple(points)

    filtered = [points[0]]
    for i in range(1, len(points)):
        is_last = i == len(points) - 1
        if is_last or distance_feet(filtered[-1], points[i]) >= min_length_ft:
            filtered.append(points[i])

    return tuple(filtered)


def snap_to_edges(
    points: Sequence[Coordinate],
    edges: Optional[Sequence[Sequence[Coordinate]]] = None,
    tolerance_ft: float = EDGE_SNAP_TOLERANCE_FT,
) -> Path:
    """Pull vertices onto detected physical edges (fence or hedge lines).

    Args:
        points: Path as drawn
        edges: Polylines from an edge detector; None leaves the path unchanged
        tolerance_ft: Maximum distance a vertex may move

    Returns:
        The adjusted path
    """
    usable = [edge for edge in (edges or []) if len(edge) >= 2]
    if not points or not usable:
        return tuple(points)

    projection = LocalProjection(list(points))
    network = MultiLineString([[projection.to_xy(c) for c in edge] for edge in usable])

    snapped = []
    for coord in points:
        vertex = Point(projection.to_xy(coord))
        _, nearest = nearest_points(vertex, network)
        if vertex.distance(nearest) <= tolerance_ft:
            snapped.append(projection.to_coordinate(nearest.x, nearest.y))
        else:
            snapped.append(coord)

    return tuple(snapped)


def regularize_outline(
    points: Sequence[Coordinate],
    min_fill_ratio: float = RECTANGLE_FILL_RATIO,
) -> Path:
    """Square up a detected building outline.

    The outline is replaced by its minimum rotated rectangle when it fills
    at least min_fill_ratio of that rectangle; L-shapes and other irregular
    footprints are returned unchanged.
    """
    if len(points) < 3:
        return tuple(points)

    projection = LocalProjection(list(points))
    footprint = Polygon([projection.to_xy(c) for c in points])
    if not footprint.is_valid:
        footprint = footprint.buffer(0)

    rectangle = footprint.minimum_rotated_rectangle
    if rectangle.geom_type != "Polygon" or rectangle.area <= 0:
        return tuple(points)

    fill_ratio = footprint.area / rectangle.area
    if fill_ratio < min_fill_ratio:
        return tuple(points)

    corners = list(rectangle.exterior.coords)[:-1]
    return tuple(projection.to_coordinate(x, y) for x, y in corners)


def run_pipeline(points: Sequence[Coordinate], steps: Sequence[PathStep]) -> Path:
    """Apply steps in order."""
    path = tuple(points)
    for step in steps:
        before = len(path)
        path = step(path)
        name = getattr(step, "func", step).__name__
        logger.debug(f"Pipeline step {name}: {before} -> {len(path)} vertices")
    return path


def build_lot_steps(
    parcel: Optional[ParcelData],
    snap_to_parcel_boundary: bool = False,
    yard_section: YardSection = YardSection.FULL,
    exclude_neighbors: bool = False,
    smoothing: SmoothingLevel = SmoothingLevel.NONE,
    min_segment_length: Optional[float] = None,
    snap_tolerance_ft: float = PARCEL_SNAP_TOLERANCE_FT,
    neighbor_tolerance_ft: float = NEIGHBOR_BOUNDARY_TOLERANCE_FT,
) -> list[PathStep]:
    """Steps for a lot perimeter. Parcel-dependent steps are skipped without a parcel."""
    steps: list[PathStep] = []

    if parcel is not None:
        if snap_to_parcel_boundary:
            steps.append(
                partial(snap_to_parcel, boundary=parcel.boundaries, tolerance_ft=snap_tolerance_ft)
            )
        if yard_section != YardSection.FULL:
            steps.append(partial(filter_by_yard_section, parcel=parcel, section=yard_section))
        if exclude_neighbors:
            steps.append(
                partial(
                    exclude_neighbor_boundaries,
                    parcel=parcel,
                    tolerance_ft=neighbor_tolerance_ft,
                )
            )

    if smoothing != SmoothingLevel.NONE:
        steps.append(partial(smooth_path, level=smoothing))

    if min_segment_length:
        steps.append(partial(enforce_minimum_segment_length, min_length_ft=min_segment_length))

    return steps


def build_custom_path_steps(
    smoothing: SmoothingLevel = SmoothingLevel.NONE,
    min_segment_length: Optional[float] = None,
    snap_edges: bool = False,
    edges: Optional[Sequence[Sequence[Coordinate]]] = None,
    edge_tolerance_ft: float = EDGE_SNAP_TOLERANCE_FT,
) -> list[PathStep]:
    steps: list[PathStep] = []

    if smoothing != SmoothingLevel.NONE:
        steps.append(partial(smooth_path, level=smoothing))

    if min_segment_length:
        steps.append(partial(enforce_minimum_segment_length, min_length_ft=min_segment_length))

    if snap_edges:
        steps.append(partial(snap_to_edges, edges=edges, tolerance_ft=edge_tolerance_ft))

    return steps
