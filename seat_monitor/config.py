"""
Configuration management using Pydantic Settings.
Handles environment variables and YAML seed configuration loading.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Monitored resource
    check_url: str = Field(
        default="https://rds3.northsouth.edu/", alias="CHECK_URL"
    )
    default_interval_seconds: int = Field(
        default=30, ge=1, alias="DEFAULT_INTERVAL_SECONDS"
    )
    monitor_auto_start: bool = Field(default=False, alias="MONITOR_AUTO_START")

    # State persistence
    state_path: str = Field(default="data/state.json", alias="STATE_PATH")

    # Rendering / extraction
    page_load_timeout: int = Field(default=30, alias="PAGE_LOAD_TIMEOUT")
    extraction_timeout: float = Field(default=15.0, gt=0, alias="EXTRACTION_TIMEOUT")
    headless: bool = Field(default=True, alias="HEADLESS")

    # Alerts (Twilio WhatsApp). Alerts go to the process log when unset.
    alert_title: str = Field(default="Course Seat Monitor", alias="ALERT_TITLE")
    twilio_account_sid: Optional[str] = Field(default=None, alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: Optional[str] = Field(default=None, alias="TWILIO_AUTH_TOKEN")
    twilio_from_number: Optional[str] = Field(default=None, alias="TWILIO_FROM_NUMBER")
    alert_recipients: str = Field(
        default="",
        alias="ALERT_RECIPIENTS",
        description="Comma-separated WhatsApp numbers to alert",
    )

    # Application Settings
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Logfire Configuration
    logfire_token: Optional[str] = Field(default=None, alias="LOGFIRE_TOKEN")

    # Configuration File Paths
    courses_config_path: str = Field(
        default="config/courses.yaml", alias="COURSES_CONFIG_PATH"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v

    @field_validator("check_url")
    @classmethod
    def validate_check_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("CHECK_URL must be an http(s) URL")
        return v

    @property
    def recipients(self) -> list[str]:
        """Alert recipients parsed from the comma-separated setting."""
        return [r.strip() for r in self.alert_recipients.split(",") if r.strip()]

    @property
    def twilio_enabled(self) -> bool:
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_from_number
            and self.recipients
        )

    def load_courses_config(self) -> dict[str, Any]:
        """Load the tracked-course seed file from YAML."""
        path = Path(self.courses_config_path)
        if not path.exists():
            raise FileNotFoundError(
                f"Courses configuration file not found: {path.absolute()}"
            )

        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        if not config or "courses" not in config:
            raise ValueError(
                f"Invalid courses configuration: missing 'courses' key in {path}"
            )

        if not isinstance(config["courses"] or [], list):
            raise ValueError(
                f"Invalid courses configuration: 'courses' must be a list in {path}"
            )

        return config


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings singleton.
    Uses lru_cache to ensure single instance across application.
    """
    return Settings()
