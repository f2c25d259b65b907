"""Segment and path model: coordinate lists to LinearMeasurement results."""

import logging
import math
from typing import Optional, Sequence

from perimeter.geometry.geodesy import (
    SQ_METERS_TO_SQ_FEET,
    bearing,
    distance_feet,
    finite_or_zero,
    polygon_area,
)
from perimeter.geometry.types import (
    FEET_TO_METERS,
    Coordinate,
    ElevationSample,
    LinearMeasurement,
    LineSegment,
    MeasurementMode,
    PathType,
)

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.8
PARCEL_CONFIDENCE_BONUS = 0.1
DETAIL_CONFIDENCE_BONUS = 0.05
DETAIL_VERTEX_THRESHOLD = 10
FLAT_SLOPE_MARKUP = 1.02


def create_segment(start: Coordinate, end: Coordinate) -> LineSegment:
    return LineSegment(
        start=start,
        end=end,
        length=distance_feet(start, end),
        bearing=bearing(start, end),
    )


def segmentize(points: Sequence[Coordinate], closed: bool) -> tuple[LineSegment, ...]:
    """One segment per consecutive pair, plus a closing one for closed rings of 3+ points."""
    segments = [create_segment(points[i], points[i + 1]) for i in range(len(points) - 1)]

    if closed and len(points) > 2:
        segments.append(create_segment(points[-1], points[0]))

    return tuple(segments)


def calculate_confidence(
    points: Sequence[Coordinate],
    has_parcel_data: bool,
) -> float:
    confidence = BASE_CONFIDENCE

    if has_parcel_data:
        confidence += PARCEL_CONFIDENCE_BONUS

    if len(points) > DETAIL_VERTEX_THRESHOLD:
        confidence += DETAIL_CONFIDENCE_BONUS

    return min(1.0, confidence)


def slope_correction_factor(
    elevations: Sequence[ElevationSample],
    horizontal_distance_m: float,
) -> float:
    """Return 1 / cos(atan(rise / run)) for the elevation range along a path.

    Args:
        elevations: Elevation samples along the path, meters
        horizontal_distance_m: Planimetric length of the path, meters

    Returns:
        Multiplicative correction, 1.0 when the path has no run or no rise
    """
    if not elevations or horizontal_distance_m <= 0:
        return 1.0

    heights = [e.elevation for e in elevations if math.isfinite(e.elevation)]
    if not heights:
        return 1.0

    elevation_range = max(heights) - min(heights)
    slope_angle = math.atan(elevation_range / horizontal_distance_m)
    factor = 1 / math.cos(slope_angle)
    return factor if math.isfinite(factor) else 1.0


def slope_adjusted_length(
    linear_feet: float,
    elevations: Optional[Sequence[ElevationSample]],
) -> tuple[float, bool]:
    """Return (adjusted length, approximated).

    Without elevation samples a flat 2% markup stands in and the result is
    flagged as approximated.
    """
    if not elevations:
        return linear_feet * FLAT_SLOPE_MARKUP, True

    factor = slope_correction_factor(elevations, linear_feet * FEET_TO_METERS)
    return linear_feet * factor, False


def classify_path_type(points: Sequence[Coordinate]) -> PathType:
    # Needs imagery-derived features to do better than this
    return PathType.MIXED


def build_measurement(
    points: Sequence[Coordinate],
    closed: bool,
    confidence: float,
    mode: MeasurementMode,
    path_type: Optional[PathType] = None,
    elevations: Optional[Sequence[ElevationSample]] = None,
    adjust_for_slope: bool = False,
    measurement_id: Optional[str] = None,
) -> LinearMeasurement:
    """Measure a coordinate sequence.

    Args:
        points: Ordered vertices
        closed: Whether to add the closing segment back to the first vertex
        confidence: Confidence score to attach, 0-1
        mode: Which kind of geometry this is
        path_type: Feature type the path follows
        elevations: Optional elevation samples for slope correction
        adjust_for_slope: Whether to compute slope_adjusted_length at all
        measurement_id: Keep an existing id when re-measuring

    Returns:
        A new LinearMeasurement whose linear_feet equals the segment sum
    """
    points = tuple(points)
    segments = segmentize(points, closed)
    linear_feet = finite_or_zero(sum(s.length for s in segments), "linear feet")

    slope_length: Optional[float] = None
    approximated = False
    if adjust_for_slope:
        slope_length, approximated = slope_adjusted_length(linear_feet, elevations)

    area_sq_ft = polygon_area(points) * SQ_METERS_TO_SQ_FEET if closed else 0.0

    extra = {"id": measurement_id} if measurement_id else {}
    measurement = LinearMeasurement(
        coordinates=points,
        linear_feet=linear_feet,
        linear_meters=linear_feet * FEET_TO_METERS,
        segments=segments,
        confidence=confidence,
        closed=closed,
        mode=mode,
        path_type=path_type,
        slope_adjusted_length=slope_length,
        slope_approximated=approximated,
        area_sq_ft=area_sq_ft,
        **extra,
    )

    logger.debug(
        f"Measured {mode.value}: {len(points)} points, "
        f"{len(segments)} segments, {linear_feet:.1f} ft"
    )
    return measurement
