"""Environment-driven configuration for the router."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.types import TrafficMatchMode


class RouterSettings(BaseSettings):
    """Validated router settings.

    Environment variables keep the names used by existing deployments
    (``GH_MAP_FILE``, ``GH_LOCATION_PFX``, ``GH_TYPICAL_TTT_PATH``).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    map_file: str = Field(default="toscana.osm.json", alias="GH_MAP_FILE")
    location_prefix: str = Field(default="toscana", alias="GH_LOCATION_PFX")
    typical_ttt_path: str = Field(default="typical_ttt", alias="GH_TYPICAL_TTT_PATH")
    log_level: str = Field(default="INFO", alias="ROUTER_LOG_LEVEL")
    traffic_match: TrafficMatchMode = Field(
        default=TrafficMatchMode.SUBSTRING, alias="ROUTER_TRAFFIC_MATCH"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log_level names a standard logging level."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level
