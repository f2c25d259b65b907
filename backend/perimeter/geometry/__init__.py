"""Geometry engine package for perimeter treatment measurements.

Provides geodesic measurement, path conditioning, exclusion buffering,
treatment band calculation and compliance rule evaluation.
"""

from perimeter.geometry.types import (
    Coordinate,
    ExclusionType,
    ExclusionZone,
    LinearMeasurement,
    RegulationSet,
)
from perimeter.geometry.band import calculate_treatment_band
from perimeter.geometry.rules import (
    ComplianceRuleRegistry,
    ComplianceValidator,
    apply_auto_adjustments,
    validate_compliance,
)

__all__ = [
    "Coordinate",
    "ExclusionType",
    "ExclusionZone",
    "LinearMeasurement",
    "RegulationSet",
    "calculate_treatment_band",
    "ComplianceRuleRegistry",
    "ComplianceValidator",
    "apply_auto_adjustments",
    "validate_compliance",
]
