"""Request and response schemas for the measurement API."""

import math
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from perimeter.geometry.geodesy import area_summary, format_area, format_distance
from perimeter.geometry.segments import build_measurement
from perimeter.geometry.types import (
    AdjustmentType,
    ApplicationConditions,
    AutoAdjustment,
    BufferDistance,
    Coordinate,
    DistanceUnit,
    ExclusionType,
    ExclusionZone,
    LinearMeasurement,
    MeasurementMode,
    ParcelData,
    PathType,
    RegulationSet,
    SmoothingLevel,
    TargetType,
    WaterFeatureBuffers,
    YardSection,
)

MAX_BAND_WIDTH_FT = 1000.0


class CoordinateIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def must_be_finite(cls, v: Any) -> float:
        try:
            value = float(v)
        except (TypeError, ValueError) as e:
            raise ValueError(f"coordinate must be a number: {e}")
        if not math.isfinite(value):
            raise ValueError("coordinate must be finite (not NaN or Infinity)")
        return value

    def to_domain(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)


def _coords(points: list[CoordinateIn]) -> tuple[Coordinate, ...]:
    return tuple(p.to_domain() for p in points)


class BoundsIn(BaseModel):
    south_west: CoordinateIn
    north_east: CoordinateIn


class GeometryIn(BaseModel):
    """A previously measured geometry; it is re-measured from its coordinates."""

    id: Optional[str] = None
    coordinates: list[CoordinateIn]
    closed: bool = True
    mode: MeasurementMode = MeasurementMode.LOT_PERIMETER
    path_type: Optional[PathType] = None
    confidence: float = Field(1.0, ge=0, le=1)

    def to_domain(self) -> LinearMeasurement:
        return build_measurement(
            _coords(self.coordinates),
            closed=self.closed,
            confidence=self.confidence,
            mode=self.mode,
            path_type=self.path_type,
            measurement_id=self.id,
        )


class BufferDistanceIn(BaseModel):
    value: float = Field(..., ge=0)
    unit: DistanceUnit = DistanceUnit.FEET
    regulatory: bool = False
    regulation: Optional[str] = None


class ExclusionZoneIn(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: ExclusionType
    geometry: list[CoordinateIn]
    buffer_distance: BufferDistanceIn

    def to_domain(self) -> ExclusionZone:
        return ExclusionZone(
            id=self.id,
            name=self.name,
            type=self.type,
            geometry=_coords(self.geometry),
            buffer_distance=BufferDistance(**self.buffer_distance.model_dump()),
        )


class WaterFeatureBuffersIn(BaseModel):
    pond: float = Field(..., ge=0)
    stream: float = Field(..., ge=0)
    lake: float = Field(..., ge=0)
    wetland: float = Field(..., ge=0)


class RegulationSetIn(BaseModel):
    water_feature_buffer: WaterFeatureBuffersIn
    property_line_setback: float = Field(..., ge=0)
    pollinator_protection: float = Field(..., ge=0)
    organic_garden_buffer: float = Field(..., ge=0)
    play_area_buffer: float = Field(..., ge=0)
    max_wind_speed: float
    min_temperature: float
    max_temperature: float
    water_feature_regulation: str
    property_line_regulation: str

    def to_domain(self) -> RegulationSet:
        data = self.model_dump(exclude={"water_feature_buffer"})
        return RegulationSet(
            water_feature_buffer=WaterFeatureBuffers(**self.water_feature_buffer.model_dump()),
            **data,
        )


class ParcelIn(BaseModel):
    boundaries: list[CoordinateIn]
    front_street: list[CoordinateIn] = Field(default_factory=list)
    back_property: list[CoordinateIn] = Field(default_factory=list)
    side_properties: list[list[CoordinateIn]] = Field(default_factory=list)
    area: float = 0.0
    zoning: str = ""

    def to_domain(self) -> ParcelData:
        return ParcelData(
            boundaries=_coords(self.boundaries),
            front_street=_coords(self.front_street),
            back_property=_coords(self.back_property),
            side_properties=tuple(_coords(side) for side in self.side_properties),
            area=self.area,
            zoning=self.zoning,
        )


class ConditionsIn(BaseModel):
    wind_speed_mph: Optional[float] = Field(None, ge=0)
    temperature_f: Optional[float] = None

    def to_domain(self) -> ApplicationConditions:
        return ApplicationConditions(
            wind_speed_mph=self.wind_speed_mph,
            temperature_f=self.temperature_f,
        )


class AutoAdjustmentIn(BaseModel):
    type: AdjustmentType
    target_id: str
    target_type: TargetType
    new_value: Optional[float] = Field(None, ge=0)
    new_coordinates: Optional[list[CoordinateIn]] = None
    reason: str = ""

    def to_domain(self) -> AutoAdjustment:
        return AutoAdjustment(
            type=self.type,
            target_id=self.target_id,
            target_type=self.target_type,
            new_value=self.new_value,
            new_coordinates=(
                _coords(self.new_coordinates) if self.new_coordinates is not None else None
            ),
            reason=self.reason,
        )


class LotPerimeterRequest(BaseModel):
    address: str = ""
    coordinates: list[CoordinateIn]
    yard_section: YardSection = YardSection.FULL
    exclude_neighbors: bool = False
    snap_to_parcel: bool = False
    smoothing: SmoothingLevel = SmoothingLevel.NONE
    min_segment_length: Optional[float] = Field(None, gt=0)


class StructurePerimeterRequest(BaseModel):
    center: CoordinateIn
    bounds: Optional[BoundsIn] = None


class CustomPathRequest(BaseModel):
    points: list[CoordinateIn]
    snap_to_edges: bool = False
    edges: list[list[CoordinateIn]] = Field(default_factory=list)
    smoothing: SmoothingLevel = SmoothingLevel.NONE
    min_segment_length: Optional[float] = Field(None, gt=0)
    path_type: Optional[PathType] = None


class TreatmentBandRequest(BaseModel):
    geometries: list[GeometryIn]
    band_width: Optional[float] = Field(None, gt=0, le=MAX_BAND_WIDTH_FT)
    exclusion_zones: list[ExclusionZoneIn] = Field(default_factory=list)


class ComplianceRequest(BaseModel):
    geometries: list[GeometryIn] = Field(default_factory=list)
    exclusion_zones: list[ExclusionZoneIn] = Field(default_factory=list)
    regulations: Optional[RegulationSetIn] = None
    parcel: Optional[ParcelIn] = None
    conditions: Optional[ConditionsIn] = None


class AdjustmentsRequest(BaseModel):
    geometries: list[GeometryIn] = Field(default_factory=list)
    exclusion_zones: list[ExclusionZoneIn] = Field(default_factory=list)
    adjustments: list[AutoAdjustmentIn]


class MeasurementResponse(BaseModel):
    measurement: dict[str, Any]
    display: dict[str, Any]

    @classmethod
    def from_measurement(cls, measurement: LinearMeasurement) -> "MeasurementResponse":
        display: dict[str, Any] = {"length": format_distance(measurement.linear_meters)}
        if measurement.closed:
            summary = area_summary(measurement.coordinates)
            display["area"] = format_area(summary["square_meters"])
            display["area_summary"] = summary
        return cls(measurement=measurement.to_dict(), display=display)


class TreatmentBandResponse(BaseModel):
    band: dict[str, Any]
    geometries: list[dict[str, Any]]


class ComplianceResponse(BaseModel):
    compliance: dict[str, Any]


class AdjustmentsResponse(BaseModel):
    geometries: list[dict[str, Any]]
    exclusion_zones: list[dict[str, Any]]
