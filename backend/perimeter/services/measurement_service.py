"""Perimeter measurement service.

Sequences collaborator lookups (parcel, imagery, elevation) with the pure
geometry engine for one measurement request at a time.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from perimeter.config import Settings, get_settings
from perimeter.core.exceptions import (
    CollaboratorUnavailableError,
    InvalidDetectionGeometryError,
    StructureDetectionError,
)
from perimeter.geometry.band import annotate_exclusions, calculate_treatment_band
from perimeter.geometry.pipeline import (
    build_custom_path_steps,
    build_lot_steps,
    regularize_outline,
    run_pipeline,
)
from perimeter.geometry.rules import (
    AdjustmentOutcome,
    ComplianceValidator,
    apply_auto_adjustments,
)
from perimeter.geometry.segments import (
    build_measurement,
    calculate_confidence,
    classify_path_type,
)
from perimeter.geometry.types import (
    ApplicationConditions,
    AutoAdjustment,
    BandMeasurement,
    ComplianceResult,
    Coordinate,
    ElevationSample,
    ExclusionZone,
    LinearMeasurement,
    MeasurementMode,
    ParcelData,
    PathType,
    RegulationSet,
    SmoothingLevel,
    YardSection,
)
from perimeter.services.providers import (
    Bounds,
    ElevationProvider,
    ImageryProvider,
    ParcelRegistry,
)

logger = logging.getLogger(__name__)


@dataclass
class LotPerimeterOptions:
    yard_section: YardSection = YardSection.FULL
    exclude_neighbors: bool = False
    snap_to_parcel: bool = False
    smoothing: SmoothingLevel = SmoothingLevel.NONE
    min_segment_length: Optional[float] = None


@dataclass
class CustomPathOptions:
    snap_to_edges: bool = False
    edges: list[tuple[Coordinate, ...]] = field(default_factory=list)
    smoothing: SmoothingLevel = SmoothingLevel.NONE
    min_segment_length: Optional[float] = None
    path_type: Optional[PathType] = None


class PerimeterMeasurementService:
    """Entry point for measurement, treatment band and compliance operations."""

    def __init__(
        self,
        imagery: Optional[ImageryProvider] = None,
        elevation: Optional[ElevationProvider] = None,
        parcels: Optional[ParcelRegistry] = None,
        settings: Optional[Settings] = None,
        validator: Optional[ComplianceValidator] = None,
    ):
        self.imagery = imagery
        self.elevation = elevation
        self.parcels = parcels
        self.settings = settings or get_settings()
        self.validator = validator or ComplianceValidator()

    async def _get_parcel(self, address: str) -> Optional[ParcelData]:
        if self.parcels is None or not address:
            return None
        try:
            return await self.parcels.get_boundaries(address)
        except Exception as e:
            logger.warning(f"Parcel lookup failed for {address!r}: {e}")
            return None

    async def _get_elevations(
        self,
        points: Sequence[Coordinate],
    ) -> Optional[list[ElevationSample]]:
        if self.elevation is None or len(points) < 2:
            return None
        try:
            return await self.elevation.get_elevations(points)
        except Exception as e:
            logger.warning(f"Elevation lookup failed, using flat markup: {e}")
            return None

    async def measure_lot_perimeter(
        self,
        address: str,
        coordinates: Sequence[Coordinate],
        options: Optional[LotPerimeterOptions] = None,
    ) -> LinearMeasurement:
        """Measure a lot boundary as a closed perimeter.

        Args:
            address: Property address used for the parcel lookup
            coordinates: Vertices as drawn
            options: Parcel snapping, yard-section, neighbor and smoothing options

        Returns:
            LinearMeasurement with slope adjustment and confidence
        """
        options = options or LotPerimeterOptions()
        parcel = await self._get_parcel(address)

        steps = build_lot_steps(
            parcel,
            snap_to_parcel_boundary=options.snap_to_parcel,
            yard_section=options.yard_section,
            exclude_neighbors=options.exclude_neighbors,
            smoothing=options.smoothing,
            min_segment_length=options.min_segment_length,
            snap_tolerance_ft=self.settings.parcel_snap_tolerance_ft,
            neighbor_tolerance_ft=self.settings.neighbor_boundary_tolerance_ft,
        )
        processed = run_pipeline(coordinates, steps)
        elevations = await self._get_elevations(processed)

        measurement = build_measurement(
            processed,
            closed=True,
            confidence=calculate_confidence(processed, parcel is not None),
            mode=MeasurementMode.LOT_PERIMETER,
            path_type=PathType.FENCE,
            elevations=elevations,
            adjust_for_slope=True,
        )
        logger.info(
            f"Lot perimeter for {address!r}: {measurement.linear_feet:.1f} ft, "
            f"confidence {measurement.confidence:.2f}"
        )
        return measurement

    async def measure_structure_perimeter(
        self,
        center: Coordinate,
        map_context: Optional[Bounds] = None,
    ) -> LinearMeasurement:
        """Detect and measure the building footprint around a point.

        Raises:
            CollaboratorUnavailableError: No imagery provider is configured
            StructureDetectionError: Nothing detected, or confidence below threshold
            InvalidDetectionGeometryError: Detected outline has fewer than 3 vertices
        """
        if self.imagery is None:
            raise CollaboratorUnavailableError("Imagery provider")

        bounds = map_context or Bounds.around(
            center, self.settings.structure_search_radius_deg
        )
        await self.imagery.get_high_res_imagery(bounds)
        detection = await self.imagery.detect_boundaries(center)

        threshold = self.settings.structure_detection_min_confidence
        if detection is None or detection.confidence < threshold:
            confidence = detection.confidence if detection else None
            logger.info(f"Structure detection rejected (confidence={confidence})")
            raise StructureDetectionError(confidence)

        if len(detection.vertices) < 3:
            raise InvalidDetectionGeometryError(len(detection.vertices))

        outline = regularize_outline(detection.vertices)
        return build_measurement(
            outline,
            closed=True,
            confidence=detection.confidence,
            mode=MeasurementMode.STRUCTURE_PERIMETER,
            path_type=PathType.MIXED,
        )

    async def measure_custom_path(
        self,
        points: Sequence[Coordinate],
        options: Optional[CustomPathOptions] = None,
    ) -> LinearMeasurement:
        """Measure an open vegetation or fence line."""
        options = options or CustomPathOptions()

        steps = build_custom_path_steps(
            smoothing=options.smoothing,
            min_segment_length=options.min_segment_length,
            snap_edges=options.snap_to_edges,
            edges=options.edges,
            edge_tolerance_ft=self.settings.edge_snap_tolerance_ft,
        )
        processed = run_pipeline(points, steps)
        elevations = await self._get_elevations(processed)

        return build_measurement(
            processed,
            closed=False,
            confidence=self.settings.manual_path_confidence,
            mode=MeasurementMode.CUSTOM_PATH,
            path_type=options.path_type or classify_path_type(processed),
            elevations=elevations,
            adjust_for_slope=True,
        )

    def calculate_treatment_band(
        self,
        perimeters: Sequence[LinearMeasurement],
        band_width: Optional[float] = None,
        exclusion_zones: Sequence[ExclusionZone] = (),
    ) -> BandMeasurement:
        if band_width is None:
            band_width = self.settings.default_band_width_ft
        return calculate_treatment_band(perimeters, band_width, exclusion_zones)

    def annotate_exclusions(
        self,
        perimeters: Sequence[LinearMeasurement],
        band: BandMeasurement,
    ) -> tuple[LinearMeasurement, ...]:
        """Copies of the perimeters with excluded line segments flagged from a band result."""
        return annotate_exclusions(perimeters, band)

    def validate_compliance(
        self,
        geometries: Sequence[LinearMeasurement],
        exclusion_zones: Sequence[ExclusionZone],
        regulations: Optional[RegulationSet] = None,
        parcel: Optional[ParcelData] = None,
        conditions: Optional[ApplicationConditions] = None,
    ) -> ComplianceResult:
        return self.validator.validate(
            geometries,
            exclusion_zones,
            regulations or self.settings.default_regulations(),
            parcel=parcel,
            conditions=conditions,
        )

    def apply_auto_adjustments(
        self,
        geometries: Sequence[LinearMeasurement],
        exclusion_zones: Sequence[ExclusionZone],
        adjustments: Sequence[AutoAdjustment],
    ) -> AdjustmentOutcome:
        return apply_auto_adjustments(geometries, exclusion_zones, adjustments)
