"""Rule registry for treatment compliance checking and auto-adjustment."""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Sequence

from shapely.geometry import LinearRing, LineString, Point

from perimeter.geometry.exclusion import buffer_polygon
from perimeter.geometry.geodesy import LocalProjection
from perimeter.geometry.segments import build_measurement
from perimeter.geometry.types import (
    AdjustmentType,
    ApplicationConditions,
    AutoAdjustment,
    ComplianceResult,
    ComplianceViolation,
    Coordinate,
    DistanceUnit,
    ExclusionType,
    ExclusionZone,
    LinearMeasurement,
    ParcelData,
    RegulationSet,
    Severity,
    TargetType,
    ViolationType,
)

logger = logging.getLogger(__name__)

ERROR_PENALTY = 0.2
WARNING_PENALTY = 0.1


@dataclass
class RuleContext:
    """What a single rule evaluation sees."""

    regulations: RegulationSet
    zone: Optional[ExclusionZone] = None
    geometry: Optional[LinearMeasurement] = None
    parcel: Optional[ParcelData] = None
    conditions: Optional[ApplicationConditions] = None


@dataclass
class RuleFinding:
    violation: ComplianceViolation
    adjustment: Optional[AutoAdjustment] = None
    recommendation: Optional[str] = None


@dataclass
class ComplianceRule:
    """A single compliance rule that can be evaluated."""

    rule_id: str
    scope: str
    description: str
    applies_when: Callable[[RuleContext], bool]
    check: Callable[[RuleContext], list[RuleFinding]]
    zone_types: tuple[ExclusionType, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AdjustmentOutcome:
    geometries: tuple[LinearMeasurement, ...]
    exclusion_zones: tuple[ExclusionZone, ...]

    def to_dict(self) -> dict:
        return {
            "geometries": [g.to_dict() for g in self.geometries],
            "exclusion_zones": [z.to_dict() for z in self.exclusion_zones],
        }


def _buffer_finding(
    zone: ExclusionZone,
    required: float,
    regulation: str,
    reason: str,
) -> list[RuleFinding]:
    actual = zone.buffer_distance.feet
    if actual >= required:
        return []

    return [
        RuleFinding(
            violation=ComplianceViolation(
                type=ViolationType.INSUFFICIENT_BUFFER,
                severity=Severity.ERROR,
                zone=zone.name,
                required=required,
                actual=actual,
                regulation=regulation,
            ),
            adjustment=AutoAdjustment(
                type=AdjustmentType.INCREASE_BUFFER,
                target_id=zone.id,
                target_type=TargetType.ZONE,
                new_value=required,
                reason=reason,
            ),
        )
    ]


def distance_to_property_line(
    points: Sequence[Coordinate],
    closed: bool,
    boundary: Sequence[Coordinate],
) -> Optional[float]:
    """Minimum distance in feet between a path and a parcel boundary ring."""
    if not points or len(boundary) < 2:
        return None

    projection = LocalProjection(list(boundary))
    ring_xy = [projection.to_xy(c) for c in boundary]
    ring = LinearRing(ring_xy) if len(ring_xy) >= 3 else LineString(ring_xy)

    xy = [projection.to_xy(c) for c in points]
    if len(xy) == 1:
        path = Point(xy[0])
    elif closed and len(xy) >= 3:
        path = LinearRing(xy)
    else:
        path = LineString(xy)

    return path.distance(ring)


class ComplianceRuleRegistry:
    """Central registry of buffer, setback and application-condition rules."""

    def __init__(self):
        self.rules: dict[str, ComplianceRule] = {}
        self._register_all_rules()

    def _register_all_rules(self):
        self._register_zone_rules()
        self._register_geometry_rules()
        self._register_condition_rules()

    def _register_zone_rules(self):
        self.rules["water_feature_buffer"] = ComplianceRule(
            rule_id="water_feature_buffer",
            scope="zone",
            description="Ponds and water features need the regulatory water buffer",
            applies_when=lambda ctx: ctx.zone is not None and ctx.zone.type.is_water,
            check=self._check_water_buffer,
            zone_types=(ExclusionType.POND, ExclusionType.WATER_FEATURE),
        )

        self.rules["pollinator_protection"] = ComplianceRule(
            rule_id="pollinator_protection",
            scope="zone",
            description="Beehives need the pollinator protection buffer",
            applies_when=lambda ctx: (
                ctx.zone is not None and ctx.zone.type == ExclusionType.BEEHIVE
            ),
            check=self._check_pollinator_buffer,
            zone_types=(ExclusionType.BEEHIVE,),
        )

    def _register_geometry_rules(self):
        self.rules["property_line_setback"] = ComplianceRule(
            rule_id="property_line_setback",
            scope="geometry",
            description="Treatment paths should keep the setback from property lines",
            applies_when=lambda ctx: (
                ctx.geometry is not None
                and ctx.parcel is not None
                and len(ctx.parcel.boundaries) >= 2
            ),
            check=self._check_property_line_setback,
        )

    def _register_condition_rules(self):
        self.rules["wind_speed"] = ComplianceRule(
            rule_id="wind_speed",
            scope="conditions",
            description="No spraying above the maximum wind speed",
            applies_when=lambda ctx: (
                ctx.conditions is not None and ctx.conditions.wind_speed_mph is not None
            ),
            check=self._check_wind_speed,
        )

        self.rules["temperature"] = ComplianceRule(
            rule_id="temperature",
            scope="conditions",
            description="No spraying outside the permitted temperature range",
            applies_when=lambda ctx: (
                ctx.conditions is not None and ctx.conditions.temperature_f is not None
            ),
            check=self._check_temperature,
        )

    def _check_water_buffer(self, ctx: RuleContext) -> list[RuleFinding]:
        regs = ctx.regulations
        return _buffer_finding(
            ctx.zone,
            required=regs.water_feature_buffer.pond,
            regulation=regs.water_feature_regulation,
            reason=f"Comply with {regs.water_feature_regulation}",
        )

    def _check_pollinator_buffer(self, ctx: RuleContext) -> list[RuleFinding]:
        regs = ctx.regulations
        return _buffer_finding(
            ctx.zone,
            required=regs.pollinator_protection,
            regulation=regs.pollinator_regulation,
            reason="Protect pollinators",
        )

    def _check_property_line_setback(self, ctx: RuleContext) -> list[RuleFinding]:
        setback = ctx.regulations.property_line_setback
        measured = distance_to_property_line(
            ctx.geometry.coordinates,
            ctx.geometry.closed,
            ctx.parcel.boundaries,
        )
        if measured is None or measured >= setback:
            return []

        # Offsetting a whole path depends on the site, so this only warns
        return [
            RuleFinding(
                violation=ComplianceViolation(
                    type=ViolationType.PROPERTY_LINE_VIOLATION,
                    severity=Severity.WARNING,
                    geometry=ctx.geometry.id,
                    required=setback,
                    actual=measured,
                    regulation=ctx.regulations.property_line_regulation,
                ),
                recommendation=(
                    f"Consider maintaining {setback:g}ft buffer from property lines"
                ),
            )
        ]

    def _check_wind_speed(self, ctx: RuleContext) -> list[RuleFinding]:
        wind = ctx.conditions.wind_speed_mph
        limit = ctx.regulations.max_wind_speed
        if wind <= limit:
            return []

        return [
            RuleFinding(
                violation=ComplianceViolation(
                    type=ViolationType.WIND_SPEED_EXCEEDED,
                    severity=Severity.ERROR,
                    required=limit,
                    actual=wind,
                    regulation="Label drift restrictions",
                ),
                recommendation=f"Reschedule: wind {wind:g} mph exceeds {limit:g} mph",
            )
        ]

    def _check_temperature(self, ctx: RuleContext) -> list[RuleFinding]:
        temperature = ctx.conditions.temperature_f
        low = ctx.regulations.min_temperature
        high = ctx.regulations.max_temperature
        if low <= temperature <= high:
            return []

        bound = low if temperature < low else high
        return [
            RuleFinding(
                violation=ComplianceViolation(
                    type=ViolationType.TEMPERATURE_EXCEEDED,
                    severity=Severity.ERROR,
                    required=bound,
                    actual=temperature,
                    regulation="Label temperature restrictions",
                ),
                recommendation=(
                    f"Reschedule: {temperature:g}F is outside {low:g}-{high:g}F"
                ),
            )
        ]

    def get_applicable_rules(self, ctx: RuleContext, scope: str) -> list[ComplianceRule]:
        return [
            rule
            for rule in self.rules.values()
            if rule.scope == scope and rule.applies_when(ctx)
        ]

    def evaluate(self, ctx: RuleContext, scope: str) -> list[RuleFinding]:
        findings: list[RuleFinding] = []
        for rule in self.get_applicable_rules(ctx, scope):
            findings.extend(rule.check(ctx))
        return findings


def compliance_score(violations: Sequence[ComplianceViolation]) -> float:
    errors = sum(1 for v in violations if v.severity == Severity.ERROR)
    warnings = sum(1 for v in violations if v.severity == Severity.WARNING)
    return max(0.0, 1 - (errors * ERROR_PENALTY + warnings * WARNING_PENALTY))


class ComplianceValidator:
    """Checks zones, geometries and conditions against a regulation set."""

    def __init__(self, registry: Optional[ComplianceRuleRegistry] = None):
        self.registry = registry or ComplianceRuleRegistry()

    def validate(
        self,
        geometries: Sequence[LinearMeasurement],
        exclusion_zones: Sequence[ExclusionZone],
        regulations: RegulationSet,
        parcel: Optional[ParcelData] = None,
        conditions: Optional[ApplicationConditions] = None,
    ) -> ComplianceResult:
        """Validate treatment plans.

        Args:
            geometries: Measured treatment geometries
            exclusion_zones: Protected features with their configured buffers
            regulations: Thresholds to check against
            parcel: Parcel outline for the property-line check; skipped if None
            conditions: Weather at application time; skipped if None

        Returns:
            A fresh ComplianceResult; passed is false iff any error was found
        """
        findings: list[RuleFinding] = []

        for zone in exclusion_zones:
            ctx = RuleContext(regulations=regulations, zone=zone)
            findings.extend(self.registry.evaluate(ctx, "zone"))

        for geometry in geometries:
            ctx = RuleContext(regulations=regulations, geometry=geometry, parcel=parcel)
            findings.extend(self.registry.evaluate(ctx, "geometry"))

        if conditions is not None:
            ctx = RuleContext(regulations=regulations, conditions=conditions)
            findings.extend(self.registry.evaluate(ctx, "conditions"))

        violations = tuple(f.violation for f in findings)
        errors = sum(1 for v in violations if v.severity == Severity.ERROR)

        result = ComplianceResult(
            passed=errors == 0,
            violations=violations,
            auto_adjustments=tuple(f.adjustment for f in findings if f.adjustment),
            compliance_score=compliance_score(violations),
            recommendations=tuple(f.recommendation for f in findings if f.recommendation),
        )

        logger.info(
            f"Compliance check: {len(violations)} violations ({errors} errors), "
            f"score {result.compliance_score:.2f}"
        )
        return result


def validate_compliance(
    geometries: Sequence[LinearMeasurement],
    exclusion_zones: Sequence[ExclusionZone],
    regulations: RegulationSet,
    parcel: Optional[ParcelData] = None,
    conditions: Optional[ApplicationConditions] = None,
) -> ComplianceResult:
    return ComplianceValidator().validate(
        geometries, exclusion_zones, regulations, parcel=parcel, conditions=conditions
    )


def _adjust_zone(zone: ExclusionZone, adjustment: AutoAdjustment) -> ExclusionZone:
    buffer_distance = replace(
        zone.buffer_distance,
        value=adjustment.new_value,
        unit=DistanceUnit.FEET,
    )
    # affected_linear_feet is stale until the band is recalculated
    return replace(
        zone,
        buffer_distance=buffer_distance,
        buffered_geometry=buffer_polygon(zone.geometry, buffer_distance.feet),
        affected_linear_feet=None,
    )


def _adjust_geometry(
    geometry: LinearMeasurement,
    adjustment: AutoAdjustment,
) -> LinearMeasurement:
    rebuilt = build_measurement(
        adjustment.new_coordinates,
        closed=geometry.closed,
        confidence=geometry.confidence,
        mode=geometry.mode,
        path_type=geometry.path_type,
        measurement_id=geometry.id,
    )

    if geometry.slope_adjusted_length is not None and geometry.linear_feet > 0:
        factor = geometry.slope_adjusted_length / geometry.linear_feet
        rebuilt = replace(
            rebuilt,
            slope_adjusted_length=rebuilt.linear_feet * factor,
            slope_approximated=geometry.slope_approximated,
        )
    return rebuilt


def apply_auto_adjustments(
    geometries: Sequence[LinearMeasurement],
    exclusion_zones: Sequence[ExclusionZone],
    adjustments: Sequence[AutoAdjustment],
) -> AdjustmentOutcome:
    """Apply suggested fixes, returning new collections.

    Zone targets get the new buffer value (in feet) and a recomputed
    buffered_geometry; geometry targets get new coordinates and are
    re-measured. Re-running the band calculation and validation is left to
    the caller.

    Outputs keep the input order and length. Adjustments are matched to
    every input carrying the target id, so items sharing an id are all
    adjusted and none is dropped.
    """
    zone_ids = {z.id for z in exclusion_zones}
    geometry_ids = {g.id for g in geometries}

    zone_adjustments: list[AutoAdjustment] = []
    geometry_adjustments: list[AutoAdjustment] = []
    for adjustment in adjustments:
        if adjustment.target_type == TargetType.ZONE:
            if adjustment.target_id not in zone_ids or adjustment.new_value is None:
                logger.warning(f"Skipping zone adjustment for {adjustment.target_id}")
                continue
            zone_adjustments.append(adjustment)

        elif adjustment.target_type == TargetType.GEOMETRY:
            if adjustment.target_id not in geometry_ids or not adjustment.new_coordinates:
                logger.warning(f"Skipping geometry adjustment for {adjustment.target_id}")
                continue
            geometry_adjustments.append(adjustment)

    zones = []
    for zone in exclusion_zones:
        for adjustment in zone_adjustments:
            if adjustment.target_id == zone.id:
                zone = _adjust_zone(zone, adjustment)
        zones.append(zone)

    measured = []
    for geometry in geometries:
        for adjustment in geometry_adjustments:
            if adjustment.target_id == geometry.id:
                geometry = _adjust_geometry(geometry, adjustment)
        measured.append(geometry)

    return AdjustmentOutcome(geometries=tuple(measured), exclusion_zones=tuple(zones))
