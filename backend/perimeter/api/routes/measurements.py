"""Measurement, treatment band and compliance endpoints."""

from fastapi import APIRouter, Depends

from perimeter.api.deps import get_measurement_service
from perimeter.models.schemas.measurement import (
    AdjustmentsRequest,
    AdjustmentsResponse,
    ComplianceRequest,
    ComplianceResponse,
    CustomPathRequest,
    LotPerimeterRequest,
    MeasurementResponse,
    StructurePerimeterRequest,
    TreatmentBandRequest,
    TreatmentBandResponse,
)
from perimeter.services.measurement_service import (
    CustomPathOptions,
    LotPerimeterOptions,
    PerimeterMeasurementService,
)
from perimeter.services.providers import Bounds

router = APIRouter()


@router.post("/lot-perimeter", response_model=MeasurementResponse)
async def measure_lot_perimeter(
    request: LotPerimeterRequest,
    service: PerimeterMeasurementService = Depends(get_measurement_service),
) -> MeasurementResponse:
    """Measure a drawn lot boundary."""
    options = LotPerimeterOptions(
        yard_section=request.yard_section,
        exclude_neighbors=request.exclude_neighbors,
        snap_to_parcel=request.snap_to_parcel,
        smoothing=request.smoothing,
        min_segment_length=request.min_segment_length,
    )
    measurement = await service.measure_lot_perimeter(
        request.address,
        [c.to_domain() for c in request.coordinates],
        options,
    )
    return MeasurementResponse.from_measurement(measurement)


@router.post("/structure-perimeter", response_model=MeasurementResponse)
async def measure_structure_perimeter(
    request: StructurePerimeterRequest,
    service: PerimeterMeasurementService = Depends(get_measurement_service),
) -> MeasurementResponse:
    """Detect and measure the structure at a point."""
    bounds = None
    if request.bounds:
        bounds = Bounds(
            south_west=request.bounds.south_west.to_domain(),
            north_east=request.bounds.north_east.to_domain(),
        )
    measurement = await service.measure_structure_perimeter(
        request.center.to_domain(),
        bounds,
    )
    return MeasurementResponse.from_measurement(measurement)


@router.post("/custom-path", response_model=MeasurementResponse)
async def measure_custom_path(
    request: CustomPathRequest,
    service: PerimeterMeasurementService = Depends(get_measurement_service),
) -> MeasurementResponse:
    """Measure an open fence, hedge or tree line."""
    options = CustomPathOptions(
        snap_to_edges=request.snap_to_edges,
        edges=[tuple(c.to_domain() for c in edge) for edge in request.edges],
        smoothing=request.smoothing,
        min_segment_length=request.min_segment_length,
        path_type=request.path_type,
    )
    measurement = await service.measure_custom_path(
        [c.to_domain() for c in request.points],
        options,
    )
    return MeasurementResponse.from_measurement(measurement)


@router.post("/calculate-band", response_model=TreatmentBandResponse)
async def calculate_band(
    request: TreatmentBandRequest,
    service: PerimeterMeasurementService = Depends(get_measurement_service),
) -> TreatmentBandResponse:
    """Treatment band area and chemical volume net of exclusion zones."""
    geometries = [g.to_domain() for g in request.geometries]
    band = service.calculate_treatment_band(
        geometries,
        request.band_width,
        [z.to_domain() for z in request.exclusion_zones],
    )
    annotated = service.annotate_exclusions(geometries, band)
    return TreatmentBandResponse(
        band=band.to_dict(),
        geometries=[g.to_dict() for g in annotated],
    )


@router.post("/check-compliance", response_model=ComplianceResponse)
async def check_compliance(
    request: ComplianceRequest,
    service: PerimeterMeasurementService = Depends(get_measurement_service),
) -> ComplianceResponse:
    """Validate buffers, setbacks and conditions against a regulation set."""
    result = service.validate_compliance(
        [g.to_domain() for g in request.geometries],
        [z.to_domain() for z in request.exclusion_zones],
        request.regulations.to_domain() if request.regulations else None,
        parcel=request.parcel.to_domain() if request.parcel else None,
        conditions=request.conditions.to_domain() if request.conditions else None,
    )
    return ComplianceResponse(compliance=result.to_dict())


@router.post("/apply-adjustments", response_model=AdjustmentsResponse)
async def apply_adjustments(
    request: AdjustmentsRequest,
    service: PerimeterMeasurementService = Depends(get_measurement_service),
) -> AdjustmentsResponse:
    """Apply compliance auto-adjustments and return the updated collections."""
    outcome = service.apply_auto_adjustments(
        [g.to_domain() for g in request.geometries],
        [z.to_domain() for z in request.exclusion_zones],
        [a.to_domain() for a in request.adjustments],
    )
    payload = outcome.to_dict()
    return AdjustmentsResponse(
        geometries=payload["geometries"],
        exclusion_zones=payload["exclusion_zones"],
    )
