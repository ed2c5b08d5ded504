"""Application configuration using Pydantic Settings."""
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from geoattend.services.codes import ttl_from_parts


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "GeoAttend"
    debug: bool = False

    # Storage: "mongo" for MongoDB, "memory" for a single-process store (dev / tests)
    storage_backend: Literal["mongo", "memory"] = "mongo"

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "geoattend"

    # JWT (tokens are issued by the auth provider; we only verify them)
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    # Attendance codes
    code_ttl_minutes: int = 15
    code_ttl_seconds: int = 0
    code_issue_max_attempts: int = 3
    code_retention_hours: int = 24  # expired codes are purged by a TTL index after this

    # Redemption
    proximity_radius_meters: float = 50.0
    require_issuer_location: bool = False  # reject codes issued without coordinates
    attendance_timezone: str = "UTC"  # calendar day used for once-per-day attendance

    # Reverse geocoding (best-effort address for attendance records)
    reverse_geocoding_enabled: bool = False
    geocoder_user_agent: str = "geoattend"
    geocoder_timeout_seconds: float = 5.0

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:8081"

    @model_validator(mode="after")
    def _validate_production_secrets(self):
        if not self.debug:
            if self.jwt_secret_key in ("change-me-in-production", ""):
                raise ValueError(
                    "JWT_SECRET_KEY must be set to a strong secret when DEBUG is not enabled. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
        return self

    @model_validator(mode="after")
    def _validate_code_ttl(self):
        try:
            ttl_from_parts(self.code_ttl_minutes, self.code_ttl_seconds)
        except ValueError as e:
            raise ValueError(f"Invalid CODE_TTL_MINUTES / CODE_TTL_SECONDS: {e}")
        return self

    @model_validator(mode="after")
    def _validate_attendance_timezone(self):
        try:
            ZoneInfo(self.attendance_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"ATTENDANCE_TIMEZONE {self.attendance_timezone!r} is not a known IANA timezone")
        return self


settings = Settings()
