"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from perimeter.geometry.types import RegulationSet, WaterFeatureBuffers


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = "Perimeter Engine"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    cors_origins: list[str] = ["http://localhost:3000"]

    # Measurement settings
    parcel_snap_tolerance_ft: float = 10.0
    structure_detection_min_confidence: float = 0.5
    structure_search_radius_deg: float = 0.0005
    manual_path_confidence: float = 0.95
    neighbor_boundary_tolerance_ft: float = 3.0
    edge_snap_tolerance_ft: float = 6.0
    default_band_width_ft: float = 5.0

    # Default regulation set, feet / mph / Fahrenheit
    regulation_pond_buffer_ft: float = 25.0
    regulation_stream_buffer_ft: float = 25.0
    regulation_lake_buffer_ft: float = 25.0
    regulation_wetland_buffer_ft: float = 25.0
    regulation_property_line_setback_ft: float = 5.0
    regulation_pollinator_buffer_ft: float = 25.0
    regulation_organic_garden_buffer_ft: float = 10.0
    regulation_play_area_buffer_ft: float = 10.0
    regulation_max_wind_speed_mph: float = 10.0
    regulation_min_temperature_f: float = 50.0
    regulation_max_temperature_f: float = 90.0
    regulation_water_feature_name: str = "EPA Water Feature Buffer"
    regulation_property_line_name: str = "Property Line Setback"

    def default_regulations(self) -> RegulationSet:
        return RegulationSet(
            water_feature_buffer=WaterFeatureBuffers(
                pond=self.regulation_pond_buffer_ft,
                stream=self.regulation_stream_buffer_ft,
                lake=self.regulation_lake_buffer_ft,
                wetland=self.regulation_wetland_buffer_ft,
            ),
            property_line_setback=self.regulation_property_line_setback_ft,
            pollinator_protection=self.regulation_pollinator_buffer_ft,
            organic_garden_buffer=self.regulation_organic_garden_buffer_ft,
            play_area_buffer=self.regulation_play_area_buffer_ft,
            max_wind_speed=self.regulation_max_wind_speed_mph,
            min_temperature=self.regulation_min_temperature_f,
            max_temperature=self.regulation_max_temperature_f,
            water_feature_regulation=self.regulation_water_feature_name,
            property_line_regulation=self.regulation_property_line_name,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
