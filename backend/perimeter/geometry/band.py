"""Treatment band area and chemical volume calculations."""

import logging
from dataclasses import replace
from decimal import ROUND_CEILING, Decimal, localcontext
from typing import Sequence

from perimeter.geometry.exclusion import segment_intersects_polygon, with_buffered_geometry
from perimeter.geometry.geodesy import finite_or_zero
from perimeter.geometry.types import (
    BandMeasurement,
    BandSegment,
    ChemicalCalculation,
    ExclusionZone,
    LinearMeasurement,
)

logger = logging.getLogger(__name__)

CONCENTRATE_OZ_PER_1000_SQ_FT = 1.0
SQ_FT_PER_GALLON = 1000.0
MIX_RATIO = "1:64 (concentrate:water)"


def round_up_tenth(value: float) -> float:
    """Round up to the nearest 0.1; dosing is never rounded down."""
    amount = Decimal(str(value))
    with localcontext() as ctx:
        # quantize needs every integer digit plus the tenths digit
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        rounded = amount.quantize(Decimal("0.1"), rounding=ROUND_CEILING)
    return float(rounded)


def calculate_chemical_volume(
    area_sq_ft: float,
    concentrate_rate: float = CONCENTRATE_OZ_PER_1000_SQ_FT,
    coverage_sq_ft_per_gallon: float = SQ_FT_PER_GALLON,
) -> ChemicalCalculation:
    """Concentrate (oz) and diluted mix (gallons) needed to treat an area.

    Args:
        area_sq_ft: Net treatable area
        concentrate_rate: Ounces of concentrate per 1000 sq ft
        coverage_sq_ft_per_gallon: Square feet one gallon of mix covers

    Returns:
        ChemicalCalculation with both quantities rounded up to 0.1
    """
    area_sq_ft = max(0.0, finite_or_zero(area_sq_ft, "treatment area"))

    concentrate = (area_sq_ft / 1000) * concentrate_rate
    diluted = area_sq_ft / coverage_sq_ft_per_gallon

    return ChemicalCalculation(
        concentrate=round_up_tenth(concentrate),
        diluted=round_up_tenth(diluted),
        application_rate=f"{concentrate_rate} oz per 1000 sq ft",
        mix_ratio=MIX_RATIO,
        coverage=f"{area_sq_ft:,.0f} sq ft",
    )


def _band_segments(
    measurements: Sequence[LinearMeasurement],
    band_width: float,
) -> list[BandSegment]:
    return [
        BandSegment(
            geometry_id=measurement.id,
            segment_index=index,
            start=segment.start,
            end=segment.end,
            linear_feet=segment.length,
            area=segment.length * band_width,
        )
        for measurement in measurements
        for index, segment in enumerate(measurement.segments)
    ]


def calculate_treatment_band(
    measurements: Sequence[LinearMeasurement],
    band_width: float,
    exclusion_zones: Sequence[ExclusionZone] = (),
) -> BandMeasurement:
    """Combine measured geometries into a treatment band net of exclusion zones.

    A segment touching any buffered zone is excluded once, however many zones
    claim it, so overlapping zones never subtract the same area twice. Every
    claiming zone is listed on the segment and counts the segment towards its
    affected_linear_feet.

    Args:
        measurements: Perimeters and paths to treat
        band_width: Width of the treated strip in feet
        exclusion_zones: Protected features and their buffers

    Returns:
        BandMeasurement with total_area == net_area + excluded_area
    """
    segments = _band_segments(measurements, band_width)
    total_area = sum(s.area for s in segments)
    total_linear_feet = sum(s.linear_feet for s in segments)

    claims: list[list[str]] = [[] for _ in segments]
    excluded_area = 0.0
    updated_zones: list[ExclusionZone] = []

    for zone in exclusion_zones:
        zone = with_buffered_geometry(zone)
        affected = 0.0

        for index, segment in enumerate(segments):
            if not segment_intersects_polygon(
                segment.start, segment.end, zone.buffered_geometry or ()
            ):
                continue
            if not claims[index]:
                excluded_area += segment.area
            claims[index].append(zone.id)
            affected += segment.linear_feet

        updated_zones.append(replace(zone, affected_linear_feet=affected))

    final_segments = tuple(
        replace(s, excluded=bool(claims[i]), exclusion_zones=tuple(claims[i]))
        for i, s in enumerate(segments)
    )

    net_area = total_area - excluded_area
    band = BandMeasurement(
        band_width=band_width,
        total_linear_feet=total_linear_feet,
        total_area=total_area,
        net_area=net_area,
        excluded_area=excluded_area,
        segments=final_segments,
        chemical_volume=calculate_chemical_volume(net_area),
        exclusion_zones=tuple(updated_zones),
    )

    logger.info(
        f"Treatment band: {len(final_segments)} segments, "
        f"{total_area:.0f} sq ft total, {excluded_area:.0f} sq ft excluded"
    )
    return band


def annotate_exclusions(
    measurements: Sequence[LinearMeasurement],
    band: BandMeasurement,
) -> tuple[LinearMeasurement, ...]:
    """Copy measurements with each line segment's excluded flag set from a band result."""
    zone_names = {z.id: z.name for z in band.exclusion_zones}
    by_key = {(s.geometry_id, s.segment_index): s for s in band.segments}

    annotated = []
    for measurement in measurements:
        new_segments = []
        for index, segment in enumerate(measurement.segments):
            band_segment = by_key.get((measurement.id, index))
            if band_segment is None or not band_segment.excluded:
                new_segments.append(segment)
                continue
            names = ", ".join(zone_names.get(z, z) for z in band_segment.exclusion_zones)
            new_segments.append(
                replace(segment, excluded=True, exclusion_reason=f"Within buffer of {names}")
            )
        annotated.append(replace(measurement, segments=tuple(new_segments)))

    return tuple(annotated)
