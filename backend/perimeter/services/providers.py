"""Collaborator interfaces the measurement service depends on.

Implementations live outside the engine (imagery APIs, elevation services,
parcel registries) and own their own retries.
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from perimeter.geometry.types import (
    Coordinate,
    DetectionResult,
    ElevationSample,
    ParcelData,
)


@dataclass(frozen=True)
class Bounds:
    """Lat/lng box, south-west and north-east corners."""

    south_west: Coordinate
    north_east: Coordinate

    @classmethod
    def around(cls, center: Coordinate, radius_deg: float) -> "Bounds":
        return cls(
            south_west=Coordinate(lat=center.lat - radius_deg, lng=center.lng - radius_deg),
            north_east=Coordinate(lat=center.lat + radius_deg, lng=center.lng + radius_deg),
        )


class ImageryProvider(Protocol):
    async def get_high_res_imagery(self, bounds: Bounds) -> Any: ...

    async def detect_boundaries(self, center: Coordinate) -> Optional[DetectionResult]: ...


class ElevationProvider(Protocol):
    async def get_elevations(self, points: Sequence[Coordinate]) -> list[ElevationSample]: ...


class ParcelRegistry(Protocol):
    async def get_boundaries(self, address: str) -> Optional[ParcelData]: ...
