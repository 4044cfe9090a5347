"""
Configuration loader for the ESPHome local bridge
Loads YAML configuration and validates it into a typed BridgeConfig
"""

import yaml
import logging
from typing import Dict, Any, List, Optional
from pathlib import Path
from datetime import datetime
import pytz
from pydantic import BaseModel, Field, ValidationError, field_validator

from errors import ConfigError

logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL_MS = 500
DEFAULT_POLL_INTERVAL_MS = 1000

HTTP_SERVICE_TYPE = "_http._tcp.local."
API_SERVICE_TYPE = "_esphomelib._tcp.local."


class Credentials(BaseModel):
    """Basic credentials shared by every device request"""
    user: Optional[str] = None
    password: Optional[str] = None

    @property
    def enabled(self) -> bool:
        # Both values are required, otherwise authentication is disabled entirely
        return bool(self.user) and bool(self.password)


class DeviceSettings(BaseModel):
    user: Optional[str] = None
    password: Optional[str] = None
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    fallback_port: int = Field(default=80, ge=1, le=65535)
    request_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    firmware_marker: str = "ESPHome"

    @field_validator('poll_interval_ms', mode='before')
    @classmethod
    def _floor_poll_interval(cls, value):
        if value is None:
            return DEFAULT_POLL_INTERVAL_MS
        return max(int(value), MIN_POLL_INTERVAL_MS)

    @field_validator('firmware_marker')
    @classmethod
    def _marker_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("firmware_marker must not be empty")
        return value

    @property
    def credentials(self) -> Credentials:
        return Credentials(user=self.user, password=self.password)

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000


class DiscoverySettings(BaseModel):
    http_service_type: str = HTTP_SERVICE_TYPE
    api_service_type: str = API_SERVICE_TYPE
    start_on_boot: bool = True


class ApiSettings(BaseModel):
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    file: Optional[str] = "logs/bridge.log"
    console_output: bool = True
    timezone: str = "America/New_York"

    @field_validator('level')
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f"unknown log level: {value}")
        return level

    @field_validator('timezone')
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"unknown timezone: {value}")
        return value


class BridgeConfig(BaseModel):
    """Validated bridge configuration, built once at startup"""
    device: DeviceSettings = Field(default_factory=DeviceSettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_config(config_path: str = "config/config.yaml") -> BridgeConfig:
    """
    Load configuration from YAML file with validation
    A missing file yields the default configuration
    """
    config_file = Path(config_path)
    if not config_file.exists():
        logger.warning(f"Configuration file not found: {config_path} - using defaults")
        return BridgeConfig()

    try:
        with open(config_file, 'r') as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse configuration {config_path}: {e}")
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    config = parse_config(raw or {})
    logger.info(f"Configuration loaded from {config_path}")
    return config


def parse_config(raw: Dict[str, Any]) -> BridgeConfig:
    """Validate a raw configuration mapping into a BridgeConfig"""
    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping")

    try:
        return BridgeConfig.model_validate(raw)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise ConfigError(str(e)) from e


class TimezoneFormatter(logging.Formatter):
    """Formatter rendering timestamps in the configured local timezone"""

    def __init__(self, fmt=None, timezone: str = "America/New_York"):
        super().__init__(fmt)
        self.tz = pytz.timezone(timezone)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        # Default format: YYYY-MM-DD HH:MM:SS TZ
        return dt.strftime('%Y-%m-%d %H:%M:%S %Z')


def setup_logging(config: BridgeConfig) -> None:
    """Setup logging handlers based on configuration"""
    log_config = config.logging
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, log_config.timezone)

    handlers: List[logging.Handler] = []

    if log_config.console_output:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if log_config.file:
        log_path = Path(log_config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, log_config.level),
        format=log_format,
        handlers=handlers,
        force=True
    )

    logger.info(f"Logging configured: level={log_config.level}, console={log_config.console_output}, "
                f"file={log_config.file}, timezone={log_config.timezone}")

