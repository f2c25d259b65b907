"""Pytest fixtures for perimeter engine testing."""

import math
from unittest.mock import AsyncMock

import pytest

from perimeter.geometry.geodesy import METERS_PER_DEGREE
from perimeter.geometry.segments import build_measurement
from perimeter.geometry.types import (
    FEET_TO_METERS,
    BufferDistance,
    Coordinate,
    DetectionResult,
    ExclusionType,
    ExclusionZone,
    MeasurementMode,
    RegulationSet,
    WaterFeatureBuffers,
)

ORIGIN = Coordinate(lat=40.0, lng=-75.0)


def offset(north_ft: float, east_ft: float, origin: Coordinate = ORIGIN) -> Coordinate:
    """Point displaced from origin by the given feet north and east."""
    d_lat = north_ft * FEET_TO_METERS / METERS_PER_DEGREE
    d_lng = east_ft * FEET_TO_METERS / (METERS_PER_DEGREE * math.cos(math.radians(origin.lat)))
    return Coordinate(lat=origin.lat + d_lat, lng=origin.lng + d_lng)


@pytest.fixture
def point():
    """Factory for points given as (north_ft, east_ft) from a fixed origin."""
    return offset


@pytest.fixture
def square_lot():
    """100ft x 100ft square, corners listed counter-clockwise from the origin."""
    return [offset(0, 0), offset(0, 100), offset(100, 100), offset(100, 0)]


@pytest.fixture
def square_measurement(square_lot):
    return build_measurement(
        square_lot,
        closed=True,
        confidence=0.8,
        mode=MeasurementMode.LOT_PERIMETER,
        measurement_id="lot-1",
    )


def rectangle(north_min: float, north_max: float, east_min: float, east_max: float):
    return (
        offset(north_min, east_min),
        offset(north_min, east_max),
        offset(north_max, east_max),
        offset(north_max, east_min),
    )


@pytest.fixture
def make_rectangle():
    """Factory for axis-aligned outlines given as feet from the origin."""
    return rectangle


@pytest.fixture
def east_side_pond():
    """Pond straddling the east side of the square lot, 10ft configured buffer."""
    return ExclusionZone(
        id="pond-1",
        name="Koi pond",
        type=ExclusionType.POND,
        geometry=rectangle(40, 60, 95, 105),
        buffer_distance=BufferDistance(value=10),
    )


@pytest.fixture
def regulations() -> RegulationSet:
    return RegulationSet(
        water_feature_buffer=WaterFeatureBuffers(pond=25, stream=35, lake=50, wetland=50),
        property_line_setback=5,
        pollinator_protection=30,
        organic_garden_buffer=10,
        play_area_buffer=10,
        max_wind_speed=10,
        min_temperature=50,
        max_temperature=90,
        water_feature_regulation="EPA Water Feature Buffer",
        property_line_regulation="County Setback Ordinance",
    )


@pytest.fixture
def mock_imagery():
    """Imagery provider detecting a 40ft x 30ft building."""
    provider = AsyncMock()
    provider.get_high_res_imagery.return_value = {"tiles": []}
    provider.detect_boundaries.return_value = DetectionResult(
        vertices=rectangle(10, 40, 10, 50),
        confidence=0.9,
    )
    return provider
