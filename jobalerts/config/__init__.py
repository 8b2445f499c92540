"""Configuration management for the job alert service."""

from .duration import DurationParseError, parse_duration
from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_app_config, validate_config_file
from .models import (
    AppConfig,
    EmailConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    NotificationsConfig,
    ScheduleConfig,
    TierSchedule,
)

__all__ = [
    # Main loader functions
    "load_config",
    "parse_app_config",
    "validate_config_file",
    "load_environment_config",
    "parse_duration",
    # Configuration models
    "AppConfig",
    "ScheduleConfig",
    "TierSchedule",
    "NotificationsConfig",
    "EmailConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
    "DurationParseError",
]
