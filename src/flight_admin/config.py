"""
Configuration management for flight admin core
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseSettings):
    """Server configuration"""
    model_config = SettingsConfigDict(env_prefix="SERVER_")

    port: int = Field(default=8000)
    host: str = Field(default="0.0.0.0")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)


class BookingAPIConfig(BaseSettings):
    """Booking backend configuration"""
    model_config = SettingsConfigDict(env_prefix="BOOKING_API_")

    base_url: str = Field(default="https://prod-api.flyo.ai")
    tickets_path: str = Field(default="/core/v1/businessFlyo/tickets/getTickets")
    flights_path: str = Field(default="/admin/getUserSpecificInfo")
    timeout: int = Field(default=30000)  # milliseconds
    api_key: Optional[str] = Field(default=None)
    use_mock: bool = Field(default=False)


class RequestLifecycleConfig(BaseSettings):
    """Retry, duplicate suppression and statistics knobs"""
    model_config = SettingsConfigDict(env_prefix="RLM_")

    max_retries: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)
    duplicate_threshold_ms: int = Field(default=1000, ge=0)
    stats_window_seconds: float = Field(default=10.0, gt=0)  # duplicate telemetry window
    history_retention_seconds: float = Field(default=60.0, gt=0)


class CalendarConfig(BaseSettings):
    """Calendar carousel configuration"""
    model_config = SettingsConfigDict(env_prefix="CALENDAR_")

    initial_days: int = Field(default=30, ge=1)
    load_more_increment: int = Field(default=30, ge=1)
    max_window_days: int = Field(default=365, ge=1)  # soft ceiling, logged only
    max_request_days: int = Field(default=3650, ge=1)  # hard upper bound on ?days=


class LoggingConfig(BaseSettings):
    """Logging configuration"""
    model_config = SettingsConfigDict(env_prefix="LOGGING_")

    level: str = Field(default="INFO")
    log_format: str = Field(default="json")  # json or text


class Config:
    """Main configuration class"""

    def __init__(self):
        self.server = ServerConfig()
        self.booking_api = BookingAPIConfig()
        self.request_lifecycle = RequestLifecycleConfig()
        self.calendar = CalendarConfig()
        self.logging = LoggingConfig()

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.server.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.server.environment.lower() == "production"


# Global configuration instance
config = Config()
