from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ------------------------------------------------------------
    # Server
    # ------------------------------------------------------------
    backend_host: str = "0.0.0.0"
    backend_port: int = 5000
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"

    # ------------------------------------------------------------
    # Database
    # ------------------------------------------------------------
    database_url: str = "sqlite:///./data/trackers.db"

    # ------------------------------------------------------------
    # Optimus fleet-telemetry API
    # ------------------------------------------------------------
    # In production, MUST be set via env vars OPTIMUS_API_URL / OPTIMUS_BEARER_TOKEN
    optimus_api_url: Optional[str] = None
    optimus_bearer_token: Optional[str] = None
    telemetry_timeout_s: float = 30.0

    # ------------------------------------------------------------
    # Reverse geocoding (Nominatim)
    # ------------------------------------------------------------
    geocoder_base_url: str = "https://nominatim.openstreetmap.org"
    # Nominatim's usage policy requires an identifying User-Agent
    geocoder_user_agent: str = "LiveTruckTracker/1.0"
    geocoder_timeout_s: float = 10.0

    # ------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------
    scheduler_enabled: bool = True
    # Cron minute step on the wall clock: minute="*/N"
    refresh_interval_minutes: int = Field(default=10, ge=1, le=60)
    refresh_on_startup: bool = True

    @field_validator("refresh_interval_minutes")
    @classmethod
    def _divides_the_hour(cls, value: int) -> int:
        # */7 would fire at :56 and again at :00
        if 60 % value:
            raise ValueError("refresh_interval_minutes must divide 60 (1, 2, 3, 4, 5, 6, 10, 12, 15, 20, 30, 60)")
        return value

    # ------------------------------------------------------------
    # CORS
    # ------------------------------------------------------------
    # Comma-separated origins, e.g.:
    # "http://localhost:3000,https://trucks.example.com"
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> List[str]:
        return [x.strip() for x in self.cors_origins.split(",") if x.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def telemetry_configured(self) -> bool:
        return bool(self.optimus_api_url and self.optimus_bearer_token)

    def validate_runtime(self) -> None:
        """Fail fast on missing critical config in production."""
        if self.is_production:
            missing = []
            if not self.optimus_api_url:
                missing.append("OPTIMUS_API_URL")
            if not self.optimus_bearer_token:
                missing.append("OPTIMUS_BEARER_TOKEN")
            if missing:
                raise RuntimeError(
                    f"Missing required environment variables in production: {', '.join(missing)}"
                )


settings = Settings()
settings.validate_runtime()
