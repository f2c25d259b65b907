"""Measurement services coordinating collaborators and the geometry engine."""

from perimeter.services.measurement_service import (
    CustomPathOptions,
    LotPerimeterOptions,
    PerimeterMeasurementService,
)
from perimeter.services.providers import (
    Bounds,
    ElevationProvider,
    ImageryProvider,
    ParcelRegistry,
)

__all__ = [
    "Bounds",
    "CustomPathOptions",
    "ElevationProvider",
    "ImageryProvider",
    "LotPerimeterOptions",
    "ParcelRegistry",
    "PerimeterMeasurementService",
]
