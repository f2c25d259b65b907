"""Dependency injection for routes."""

from fastapi import Depends

from perimeter.config import Settings, get_settings
from perimeter.services.measurement_service import PerimeterMeasurementService


def get_measurement_service(
    settings: Settings = Depends(get_settings),
) -> PerimeterMeasurementService:
    # Deployments wire real collaborators by overriding this dependency
    return PerimeterMeasurementService(settings=settings)
