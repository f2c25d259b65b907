"""Unit tests for segmentation, confidence and slope correction."""

import math

import pytest

from perimeter.geometry.segments import (
    build_measurement,
    calculate_confidence,
    segmentize,
    slope_adjusted_length,
    slope_correction_factor,
)
from perimeter.geometry.types import (
    ElevationSample,
    MeasurementMode,
    PathType,
)


def _samples(*heights):
    return [ElevationSample(lat=40.0, lng=-75.0, elevation=h) for h in heights]


class TestSegmentize:
    def test_closed_ring_adds_closing_segment(self, square_lot):
        segments = segmentize(square_lot, closed=True)
        assert len(segments) == 4
        assert segments[-1].start == square_lot[-1]
        assert segments[-1].end == square_lot[0]

    def test_open_path(self, square_lot):
        assert len(segmentize(square_lot, closed=False)) == 3

    def test_closed_two_point_path_has_no_closing_segment(self, point):
        assert len(segmentize([point(0, 0), point(0, 50)], closed=True)) == 1

    def test_single_point_has_no_segments(self, point):
        assert segmentize([point(0, 0)], closed=True) == ()

    def test_segment_lengths_and_bearings(self, square_lot):
        segments = segmentize(square_lot, closed=True)
        for segment in segments:
            assert segment.length == pytest.approx(100, rel=1e-3)
        assert segments[0].bearing == pytest.approx(90, abs=0.01)
        assert segments[1].bearing == pytest.approx(0, abs=0.01)


class TestBuildMeasurement:
    def test_square_lot(self, square_measurement):
        assert square_measurement.linear_feet == pytest.approx(400, rel=1e-3)
        assert square_measurement.area_sq_ft == pytest.approx(10_000, rel=1e-3)
        assert len(square_measurement.segments) == 4
        assert square_measurement.closed is True

    def test_linear_feet_is_segment_sum(self, square_measurement):
        total = sum(s.length for s in square_measurement.segments)
        assert square_measurement.linear_feet == pytest.approx(total, abs=1e-9)

    def test_linear_meters(self, square_measurement):
        assert square_measurement.linear_meters == pytest.approx(
            square_measurement.linear_feet * 0.3048
        )

    def test_open_path_has_no_area(self, square_lot):
        measurement = build_measurement(
            square_lot, closed=False, confidence=0.95, mode=MeasurementMode.CUSTOM_PATH
        )
        assert measurement.area_sq_ft == 0.0
        assert measurement.linear_feet == pytest.approx(300, rel=1e-3)

    def test_keeps_given_id(self, square_lot):
        measurement = build_measurement(
            square_lot,
            closed=True,
            confidence=0.8,
            mode=MeasurementMode.LOT_PERIMETER,
            measurement_id="keep-me",
        )
        assert measurement.id == "keep-me"

    def test_generates_distinct_ids(self, square_lot):
        kwargs = dict(closed=True, confidence=0.8, mode=MeasurementMode.LOT_PERIMETER)
        first = build_measurement(square_lot, **kwargs)
        second = build_measurement(square_lot, **kwargs)
        assert first.id != second.id

    def test_no_slope_adjustment_unless_requested(self, square_measurement):
        assert square_measurement.slope_adjusted_length is None
        assert square_measurement.slope_approximated is False

    def test_empty_path(self):
        measurement = build_measurement(
            [], closed=False, confidence=0.95, mode=MeasurementMode.CUSTOM_PATH
        )
        assert measurement.linear_feet == 0.0
        assert measurement.segments == ()

    def test_to_dict(self, square_lot):
        measurement = build_measurement(
            square_lot,
            closed=True,
            confidence=0.8,
            mode=MeasurementMode.LOT_PERIMETER,
            path_type=PathType.FENCE,
            adjust_for_slope=True,
        )
        data = measurement.to_dict()
        assert data["mode"] == "lot_perimeter"
        assert data["path_type"] == "fence"
        assert data["slope_approximated"] is True
        assert len(data["segments"]) == 4
        assert data["coordinates"][0] == {"lat": square_lot[0].lat, "lng": square_lot[0].lng}


class TestConfidence:
    def test_base(self, square_lot):
        assert calculate_confidence(square_lot, has_parcel_data=False) == pytest.approx(0.8)

    def test_parcel_bonus(self, square_lot):
        assert calculate_confidence(square_lot, has_parcel_data=True) == pytest.approx(0.9)

    def test_detail_bonus_above_ten_vertices(self, point):
        points = [point(i * 10, 0) for i in range(11)]
        assert calculate_confidence(points, has_parcel_data=True) == pytest.approx(0.95)

    def test_ten_vertices_gets_no_detail_bonus(self, point):
        points = [point(i * 10, 0) for i in range(10)]
        assert calculate_confidence(points, has_parcel_data=False) == pytest.approx(0.8)


class TestSlopeCorrection:
    def test_flat_markup_without_elevations(self):
        length, approximated = slope_adjusted_length(400, None)
        assert length == pytest.approx(408)
        assert approximated is True

    def test_flat_terrain(self):
        length, approximated = slope_adjusted_length(400, _samples(10, 10, 10))
        assert length == pytest.approx(400)
        assert approximated is False

    def test_sloped_terrain(self):
        run_m = 400 * 0.3048
        length, _ = slope_adjusted_length(400, _samples(10, 13, 11))
        expected = 400 * math.hypot(1, 3 / run_m)
        assert length == pytest.approx(expected)
        assert length > 400

    def test_uses_elevation_range_not_order(self):
        assert slope_correction_factor(_samples(5, 1, 3), 100) == pytest.approx(
            slope_correction_factor(_samples(1, 3, 5), 100)
        )

    def test_zero_run_gives_unit_factor(self):
        assert slope_correction_factor(_samples(0, 50), 0) == 1.0

    def test_non_finite_elevations_are_ignored(self):
        factor = slope_correction_factor(_samples(float("nan"), 2, 2), 100)
        assert factor == 1.0

    def test_lot_measurement_with_elevations(self, square_lot):
        measurement = build_measurement(
            square_lot,
            closed=True,
            confidence=0.8,
            mode=MeasurementMode.LOT_PERIMETER,
            elevations=_samples(100, 104),
            adjust_for_slope=True,
        )
        assert measurement.slope_adjusted_length > measurement.linear_feet
        assert measurement.slope_approximated is False
