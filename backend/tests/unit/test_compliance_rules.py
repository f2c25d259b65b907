"""Unit tests for the compliance rule registry, validator and auto-adjuster."""

from dataclasses import replace

import pytest

from perimeter.geometry.rules import (
    ComplianceRuleRegistry,
    ComplianceValidator,
    RuleContext,
    apply_auto_adjustments,
    compliance_score,
    distance_to_property_line,
    validate_compliance,
)
from perimeter.geometry.segments import build_measurement
from perimeter.geometry.types import (
    AdjustmentType,
    ApplicationConditions,
    AutoAdjustment,
    BufferDistance,
    ComplianceViolation,
    DistanceUnit,
    ExclusionType,
    MeasurementMode,
    ParcelData,
    Severity,
    TargetType,
    ViolationType,
)


@pytest.fixture
def registry():
    return ComplianceRuleRegistry()


@pytest.fixture
def parcel(square_lot):
    return ParcelData(boundaries=tuple(square_lot))


@pytest.fixture
def inset_path(point):
    """Closed path drawn 2ft inside the square parcel."""
    return build_measurement(
        [point(2, 2), point(2, 98), point(98, 98), point(98, 2)],
        closed=True,
        confidence=0.8,
        mode=MeasurementMode.LOT_PERIMETER,
        measurement_id="inset",
    )


class TestRuleRegistration:
    def test_all_rules_registered(self, registry):
        for rule_id in [
            "water_feature_buffer",
            "pollinator_protection",
            "property_line_setback",
            "wind_speed",
            "temperature",
        ]:
            assert rule_id in registry.rules

    def test_water_rule_applies_to_ponds_only(self, registry, regulations, east_side_pond):
        pond_ctx = RuleContext(regulations=regulations, zone=east_side_pond)
        pool_ctx = RuleContext(
            regulations=regulations, zone=replace(east_side_pond, type=ExclusionType.POOL)
        )
        assert [r.rule_id for r in registry.get_applicable_rules(pond_ctx, "zone")] == [
            "water_feature_buffer"
        ]
        assert registry.get_applicable_rules(pool_ctx, "zone") == []


class TestWaterFeatureBuffer:
    def test_insufficient_pond_buffer(self, regulations, east_side_pond):
        result = validate_compliance([], [east_side_pond], regulations)

        assert result.passed is False
        (violation,) = result.violations
        assert violation.type == ViolationType.INSUFFICIENT_BUFFER
        assert violation.severity == Severity.ERROR
        assert violation.zone == "Koi pond"
        assert violation.required == 25
        assert violation.actual == 10
        assert violation.regulation == "EPA Water Feature Buffer"
        assert result.compliance_score == pytest.approx(0.8)

    def test_suggests_buffer_increase(self, regulations, east_side_pond):
        result = validate_compliance([], [east_side_pond], regulations)

        (adjustment,) = result.auto_adjustments
        assert adjustment.type == AdjustmentType.INCREASE_BUFFER
        assert adjustment.target_id == "pond-1"
        assert adjustment.target_type == TargetType.ZONE
        assert adjustment.new_value == 25
        assert adjustment.reason == "Comply with EPA Water Feature Buffer"

    def test_sufficient_buffer_passes(self, regulations, east_side_pond):
        zone = replace(east_side_pond, buffer_distance=BufferDistance(value=30))
        result = validate_compliance([], [zone], regulations)
        assert result.passed is True
        assert result.violations == ()
        assert result.compliance_score == 1.0

    def test_exactly_required_buffer_passes(self, regulations, east_side_pond):
        zone = replace(east_side_pond, buffer_distance=BufferDistance(value=25))
        assert validate_compliance([], [zone], regulations).passed is True

    def test_metric_buffer_is_compared_in_feet(self, regulations, east_side_pond):
        zone = replace(
            east_side_pond,
            buffer_distance=BufferDistance(value=8, unit=DistanceUnit.METERS),
        )
        assert validate_compliance([], [zone], regulations).passed is True

    def test_water_feature_type_is_checked(self, regulations, east_side_pond):
        zone = replace(east_side_pond, type=ExclusionType.WATER_FEATURE)
        assert validate_compliance([], [zone], regulations).passed is False

    def test_increasing_buffer_never_adds_violations(self, regulations, east_side_pond):
        counts = []
        for feet in (0, 5, 10, 20, 25, 40):
            zone = replace(east_side_pond, buffer_distance=BufferDistance(value=feet))
            counts.append(len(validate_compliance([], [zone], regulations).violations))
        assert counts == sorted(counts, reverse=True)


class TestPollinatorProtection:
    def test_beehive_needs_pollinator_buffer(self, regulations, east_side_pond):
        hive = replace(east_side_pond, id="hive-1", name="Beehive", type=ExclusionType.BEEHIVE)
        result = validate_compliance([], [hive], regulations)

        (violation,) = result.violations
        assert violation.required == 30
        assert violation.regulation == "Pollinator Protection Act"
        assert result.auto_adjustments[0].reason == "Protect pollinators"

    @pytest.mark.parametrize(
        "zone_type",
        [ExclusionType.POOL, ExclusionType.GARDEN, ExclusionType.PLAYSET, ExclusionType.NEIGHBOR_BUFFER],
    )
    def test_other_zone_types_are_not_checked(self, regulations, east_side_pond, zone_type):
        zone = replace(east_side_pond, type=zone_type, buffer_distance=BufferDistance(value=0))
        assert validate_compliance([], [zone], regulations).passed is True


class TestPropertyLineSetback:
    def test_distance_to_property_line(self, inset_path, parcel):
        measured = distance_to_property_line(
            inset_path.coordinates, inset_path.closed, parcel.boundaries
        )
        assert measured == pytest.approx(2, abs=0.05)

    def test_path_too_close_warns(self, regulations, inset_path, parcel):
        result = validate_compliance([inset_path], [], regulations, parcel=parcel)

        (violation,) = result.violations
        assert violation.type == ViolationType.PROPERTY_LINE_VIOLATION
        assert violation.severity == Severity.WARNING
        assert violation.geometry == "inset"
        assert violation.required == 5
        assert result.passed is True
        assert result.compliance_score == pytest.approx(0.9)
        assert result.auto_adjustments == ()
        assert result.recommendations == ("Consider maintaining 5ft buffer from property lines",)

    def test_path_far_enough_inside(self, regulations, point, parcel):
        path = build_measurement(
            [point(20, 20), point(20, 80), point(80, 80)],
            closed=False,
            confidence=0.95,
            mode=MeasurementMode.CUSTOM_PATH,
        )
        assert validate_compliance([path], [], regulations, parcel=parcel).violations == ()

    def test_skipped_without_parcel(self, regulations, inset_path):
        assert validate_compliance([inset_path], [], regulations).violations == ()


class TestApplicationConditions:
    def test_high_wind(self, regulations):
        result = validate_compliance(
            [], [], regulations, conditions=ApplicationConditions(wind_speed_mph=15)
        )
        (violation,) = result.violations
        assert violation.type == ViolationType.WIND_SPEED_EXCEEDED
        assert violation.required == 10
        assert result.passed is False

    def test_calm_wind(self, regulations):
        conditions = ApplicationConditions(wind_speed_mph=10)
        assert validate_compliance([], [], regulations, conditions=conditions).passed is True

    @pytest.mark.parametrize("temperature,bound", [(95, 90), (40, 50)])
    def test_temperature_out_of_range(self, regulations, temperature, bound):
        conditions = ApplicationConditions(temperature_f=temperature)
        result = validate_compliance([], [], regulations, conditions=conditions)
        (violation,) = result.violations
        assert violation.type == ViolationType.TEMPERATURE_EXCEEDED
        assert violation.required == bound

    def test_unknown_conditions_are_not_checked(self, regulations):
        result = validate_compliance([], [], regulations, conditions=ApplicationConditions())
        assert result.passed is True


class TestComplianceScore:
    def _violation(self, severity):
        return ComplianceViolation(
            type=ViolationType.INSUFFICIENT_BUFFER,
            severity=severity,
            required=25,
            actual=10,
            regulation="test",
        )

    def test_mixed_penalties(self):
        violations = [self._violation(Severity.ERROR), self._violation(Severity.WARNING)]
        assert compliance_score(violations) == pytest.approx(0.7)

    def test_floor_at_zero(self):
        assert compliance_score([self._violation(Severity.ERROR)] * 6) == 0.0

    def test_empty_input_is_perfect(self, regulations):
        result = ComplianceValidator().validate([], [], regulations)
        assert result.passed is True
        assert result.compliance_score == 1.0


class TestAutoAdjustments:
    def test_applied_adjustments_resolve_violations(self, regulations, east_side_pond):
        first = validate_compliance([], [east_side_pond], regulations)
        outcome = apply_auto_adjustments([], [east_side_pond], first.auto_adjustments)
        second = validate_compliance([], outcome.exclusion_zones, regulations)

        assert second.passed is True
        assert second.compliance_score >= first.compliance_score

    def test_zone_gets_new_buffer(self, regulations, east_side_pond):
        first = validate_compliance([], [east_side_pond], regulations)
        (zone,) = apply_auto_adjustments([], [east_side_pond], first.auto_adjustments).exclusion_zones

        assert zone.buffer_distance.value == 25
        assert zone.buffer_distance.unit == DistanceUnit.FEET
        assert zone.buffered_geometry
        assert zone.affected_linear_feet is None
        assert east_side_pond.buffer_distance.value == 10

    def test_geometry_is_remeasured(self, square_measurement, point):
        adjustment = AutoAdjustment(
            type=AdjustmentType.OFFSET_FROM_PROPERTY_LINE,
            target_id="lot-1",
            target_type=TargetType.GEOMETRY,
            new_coordinates=(point(5, 5), point(5, 95), point(95, 95), point(95, 5)),
            reason="Offset from property line",
        )
        (geometry,) = apply_auto_adjustments([square_measurement], [], [adjustment]).geometries

        assert geometry.id == "lot-1"
        assert geometry.linear_feet == pytest.approx(360, rel=1e-3)
        assert geometry.closed is True

    def test_slope_factor_is_kept_on_remeasure(self, square_lot, point):
        original = build_measurement(
            square_lot,
            closed=True,
            confidence=0.8,
            mode=MeasurementMode.LOT_PERIMETER,
            adjust_for_slope=True,
        )
        adjustment = AutoAdjustment(
            type=AdjustmentType.OFFSET_FROM_PROPERTY_LINE,
            target_id=original.id,
            target_type=TargetType.GEOMETRY,
            new_coordinates=(point(5, 5), point(5, 95), point(95, 95), point(95, 5)),
            reason="Offset from property line",
        )
        (geometry,) = apply_auto_adjustments([original], [], [adjustment]).geometries
        assert geometry.slope_adjusted_length == pytest.approx(geometry.linear_feet * 1.02)
        assert geometry.slope_approximated is True

    def test_unknown_target_is_skipped(self, east_side_pond, caplog):
        adjustment = AutoAdjustment(
            type=AdjustmentType.INCREASE_BUFFER,
            target_id="missing",
            target_type=TargetType.ZONE,
            new_value=50,
            reason="test",
        )
        outcome = apply_auto_adjustments([], [east_side_pond], [adjustment])
        assert outcome.exclusion_zones == (east_side_pond,)
        assert "missing" in caplog.text

    def test_no_adjustments(self, square_measurement, east_side_pond):
        outcome = apply_auto_adjustments([square_measurement], [east_side_pond], [])
        assert outcome.geometries == (square_measurement,)
        assert outcome.exclusion_zones == (east_side_pond,)

    def test_zones_sharing_an_id_are_all_kept(self, east_side_pond):
        hive = replace(east_side_pond, name="Beehive", type=ExclusionType.BEEHIVE)

        outcome = apply_auto_adjustments([], [east_side_pond, hive], [])

        assert [z.name for z in outcome.exclusion_zones] == ["Koi pond", "Beehive"]

    def test_adjustment_applies_to_every_zone_with_the_target_id(self, east_side_pond):
        hive = replace(east_side_pond, name="Beehive", type=ExclusionType.BEEHIVE)
        adjustment = AutoAdjustment(
            type=AdjustmentType.INCREASE_BUFFER,
            target_id="pond-1",
            target_type=TargetType.ZONE,
            new_value=30,
            reason="test",
        )

        outcome = apply_auto_adjustments([], [east_side_pond, hive], [adjustment])

        assert [z.name for z in outcome.exclusion_zones] == ["Koi pond", "Beehive"]
        assert [z.buffer_distance.value for z in outcome.exclusion_zones] == [30, 30]

    def test_geometries_sharing_an_id_keep_their_order(self, square_measurement, point):
        hedge = build_measurement(
            [point(0, 150), point(100, 150)],
            closed=False,
            confidence=0.95,
            mode=MeasurementMode.CUSTOM_PATH,
            measurement_id=square_measurement.id,
        )

        outcome = apply_auto_adjustments([square_measurement, hedge], [], [])

        assert outcome.geometries == (square_measurement, hedge)
