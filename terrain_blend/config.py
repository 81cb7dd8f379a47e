"""Configuration management."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings pulled from TERRAIN_BLEND_* environment variables."""

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    # Blending
    change_speed: float = Field(
        default=1.5, description="Maximum height change per second, normalized units"
    )
    initial_blend_factor: float = Field(
        default=0.0, description="Blend factor used when no slider is bound"
    )

    model_config = SettingsConfigDict(
        env_prefix="TERRAIN_BLEND_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError(f"log_format must be 'json' or 'console', got {value!r}")
        return value

    @field_validator("initial_blend_factor")
    @classmethod
    def _clamp_blend_factor(cls, value: float) -> float:
        return min(1.0, max(0.0, value))


settings = Settings()
