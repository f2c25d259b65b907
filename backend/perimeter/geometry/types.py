"""Type definitions for the perimeter measurement engine.

Contains enums and data classes used throughout the geometry module. Result
types are frozen; derived values are produced as new instances with
``dataclasses.replace`` rather than mutated in place.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

METERS_TO_FEET = 3.28084
FEET_TO_METERS = 0.3048


def _new_id() -> str:
    return uuid.uuid4().hex[:9]


class MeasurementMode(str, Enum):
    """Kinds of geometry the engine measures."""

    LOT_PERIMETER = "lot_perimeter"
    STRUCTURE_PERIMETER = "structure_perimeter"
    CUSTOM_PATH = "custom_path"


class PathType(str, Enum):
    """Physical feature a treatment path follows."""

    FENCE = "fence"
    HEDGE = "hedge"
    TREE_LINE = "tree_line"
    MIXED = "mixed"


class YardSection(str, Enum):
    FULL = "full"
    BACKYARD = "backyard"
    FRONTYARD = "frontyard"


class SmoothingLevel(str, Enum):
    """Smoothing strength; the value maps to the number of averaging passes."""

    NONE = "none"
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"

    @property
    def passes(self) -> int:
        return {"none": 0, "light": 1, "moderate": 2, "heavy": 3}[self.value]


class ExclusionType(str, Enum):
    """Protected features that get a no-treatment buffer."""

    POOL = "pool"
    POND = "pond"
    GARDEN = "garden"
    BEEHIVE = "beehive"
    PLAYSET = "playset"
    WATER_FEATURE = "water_feature"
    NEIGHBOR_BUFFER = "neighbor_buffer"

    @property
    def is_water(self) -> bool:
        return self in (ExclusionType.POND, ExclusionType.WATER_FEATURE)


class DistanceUnit(str, Enum):
    FEET = "feet"
    METERS = "meters"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class ViolationType(str, Enum):
    INSUFFICIENT_BUFFER = "insufficient_buffer"
    PROPERTY_LINE_VIOLATION = "property_line_violation"
    WIND_SPEED_EXCEEDED = "wind_speed_exceeded"
    TEMPERATURE_EXCEEDED = "temperature_exceeded"


class AdjustmentType(str, Enum):
    INCREASE_BUFFER = "increase_buffer"
    OFFSET_FROM_PROPERTY_LINE = "offset_from_property_line"
    EXCLUDE_AREA = "exclude_area"


class TargetType(str, Enum):
    ZONE = "zone"
    GEOMETRY = "geometry"


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 point in decimal degrees."""

    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class ElevationSample:
    """Elevation in meters at a point, as returned by an elevation provider."""

    lat: float
    lng: float
    elevation: float


@dataclass(frozen=True)
class DetectionResult:
    """Outline found by an imagery-based boundary detector."""

    vertices: tuple[Coordinate, ...]
    confidence: float


@dataclass(frozen=True)
class LineSegment:
    """One edge of a measured geometry. Length is in feet, bearing in degrees."""

    start: Coordinate
    end: Coordinate
    length: float
    bearing: float
    excluded: bool = False
    exclusion_reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "length": round(self.length, 2),
            "bearing": round(self.bearing, 2),
            "excluded": self.excluded,
            "exclusion_reason": self.exclusion_reason,
        }


@dataclass(frozen=True)
class LinearMeasurement:
    """Result of measuring a lot perimeter, structure perimeter or custom path.

    ``linear_feet`` is the sum of ``segments`` lengths; closed geometries carry
    a closing segment back to the first coordinate.
    """

    coordinates: tuple[Coordinate, ...]
    linear_feet: float
    linear_meters: float
    segments: tuple[LineSegment, ...]
    confidence: float
    closed: bool
    mode: MeasurementMode = MeasurementMode.CUSTOM_PATH
    path_type: Optional[PathType] = None
    slope_adjusted_length: Optional[float] = None
    slope_approximated: bool = False
    area_sq_ft: float = 0.0
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "mode": self.mode.value,
            "coordinates": [c.to_dict() for c in self.coordinates],
            "linear_feet": round(self.linear_feet, 2),
            "linear_meters": round(self.linear_meters, 2),
            "slope_adjusted_length": (
                round(self.slope_adjusted_length, 2)
                if self.slope_adjusted_length is not None
                else None
            ),
            "slope_approximated": self.slope_approximated,
            "segments": [s.to_dict() for s in self.segments],
            "confidence": round(self.confidence, 3),
            "path_type": self.path_type.value if self.path_type else None,
            "closed": self.closed,
            "area_sq_ft": round(self.area_sq_ft, 2),
        }


@dataclass(frozen=True)
class BufferDistance:
    value: float
    unit: DistanceUnit = DistanceUnit.FEET
    regulatory: bool = False
    regulation: Optional[str] = None

    @property
    def feet(self) -> float:
        if self.unit == DistanceUnit.METERS:
            return self.value * METERS_TO_FEET
        return self.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "unit": self.unit.value,
            "regulatory": self.regulatory,
            "regulation": self.regulation,
        }


@dataclass(frozen=True)
class ExclusionZone:
    """A protected feature polygon plus its required clearance.

    ``buffered_geometry`` and ``affected_linear_feet`` are derived; the band
    calculator and the auto-adjuster return copies with them filled in.
    """

    id: str
    name: str
    type: ExclusionType
    geometry: tuple[Coordinate, ...]
    buffer_distance: BufferDistance
    buffered_geometry: Optional[tuple[Coordinate, ...]] = None
    affected_linear_feet: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "geometry": [c.to_dict() for c in self.geometry],
            "buffer_distance": self.buffer_distance.to_dict(),
            "buffered_geometry": (
                [c.to_dict() for c in self.buffered_geometry]
                if self.buffered_geometry is not None
                else None
            ),
            "affected_linear_feet": (
                round(self.affected_linear_feet, 2)
                if self.affected_linear_feet is not None
                else None
            ),
        }


@dataclass(frozen=True)
class BandSegment:
    """One treatment-band strip, traced back to its source measurement."""

    geometry_id: str
    segment_index: int
    start: Coordinate
    end: Coordinate
    linear_feet: float
    area: float
    excluded: bool = False
    exclusion_zones: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "geometry_id": self.geometry_id,
            "segment_index": self.segment_index,
            "linear_feet": round(self.linear_feet, 2),
            "area": round(self.area, 2),
            "excluded": self.excluded,
            "exclusion_zones": list(self.exclusion_zones),
        }


@dataclass(frozen=True)
class ChemicalCalculation:
    concentrate: float
    diluted: float
    application_rate: str
    mix_ratio: str
    coverage: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "concentrate": self.concentrate,
            "diluted": self.diluted,
            "application_rate": self.application_rate,
            "mix_ratio": self.mix_ratio,
            "coverage": self.coverage,
        }


@dataclass(frozen=True)
class BandMeasurement:
    band_width: float
    total_linear_feet: float
    total_area: float
    net_area: float
    excluded_area: float
    segments: tuple[BandSegment, ...]
    chemical_volume: ChemicalCalculation
    exclusion_zones: tuple[ExclusionZone, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "band_width": self.band_width,
            "total_linear_feet": round(self.total_linear_feet, 2),
            "total_area": round(self.total_area, 2),
            "net_area": round(self.net_area, 2),
            "excluded_area": round(self.excluded_area, 2),
            "segments": [s.to_dict() for s in self.segments],
            "chemical_volume": self.chemical_volume.to_dict(),
            "exclusion_zones": [z.to_dict() for z in self.exclusion_zones],
        }


@dataclass(frozen=True)
class ComplianceViolation:
    type: ViolationType
    severity: Severity
    required: float
    actual: float
    regulation: str
    zone: Optional[str] = None
    geometry: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "zone": self.zone,
            "geometry": self.geometry,
            "required": self.required,
            "actual": round(self.actual, 2),
            "regulation": self.regulation,
        }


@dataclass(frozen=True)
class AutoAdjustment:
    type: AdjustmentType
    target_id: str
    target_type: TargetType
    reason: str
    new_value: Optional[float] = None
    new_coordinates: Optional[tuple[Coordinate, ...]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "target_id": self.target_id,
            "target_type": self.target_type.value,
            "new_value": self.new_value,
            "new_coordinates": (
                [c.to_dict() for c in self.new_coordinates]
                if self.new_coordinates is not None
                else None
            ),
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ComplianceResult:
    """Outcome of a compliance check. ``passed`` is false iff any error exists."""

    passed: bool
    violations: tuple[ComplianceViolation, ...]
    auto_adjustments: tuple[AutoAdjustment, ...]
    compliance_score: float
    recommendations: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "violations": [v.to_dict() for v in self.violations],
            "auto_adjustments": [a.to_dict() for a in self.auto_adjustments],
            "compliance_score": round(self.compliance_score, 3),
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class ParcelData:
    """Registry parcel outline and its classified property lines."""

    boundaries: tuple[Coordinate, ...]
    front_street: tuple[Coordinate, ...] = ()
    back_property: tuple[Coordinate, ...] = ()
    side_properties: tuple[tuple[Coordinate, ...], ...] = ()
    area: float = 0.0
    zoning: str = ""


@dataclass(frozen=True)
class WaterFeatureBuffers:
    """Required clearances in feet for each kind of water body."""

    pond: float
    stream: float
    lake: float
    wetland: float


@dataclass(frozen=True)
class RegulationSet:
    """Regulatory thresholds. Distances in feet, wind in mph, temperature in F."""

    water_feature_buffer: WaterFeatureBuffers
    property_line_setback: float
    pollinator_protection: float
    organic_garden_buffer: float
    play_area_buffer: float
    max_wind_speed: float
    min_temperature: float
    max_temperature: float
    water_feature_regulation: str
    property_line_regulation: str
    pollinator_regulation: str = "Pollinator Protection Act"


@dataclass(frozen=True)
class ApplicationConditions:
    """Weather at the time of treatment."""

    wind_speed_mph: Optional[float] = None
    temperature_f: Optional[float] = None
