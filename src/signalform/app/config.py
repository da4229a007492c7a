"""
Configuration Management for SignalForm

🔧 Unified Configuration System:
Dataclass-based settings for validation thresholds, the availability
service, user-facing messages and logging, with per-environment defaults
and environment-variable overrides.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.rules import MIN_PASSWORD_LENGTH, SPECIAL_CHARACTERS


class Environment(Enum):
    """Application environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


@dataclass
class ValidationConfig:
    """Validation thresholds"""
    min_username_length: int = 3
    min_password_length: int = MIN_PASSWORD_LENGTH
    special_characters: str = SPECIAL_CHARACTERS
    debounce_seconds: float = 0.4


@dataclass
class AvailabilityConfig:
    """Username availability service"""
    base_url: str = "http://127.0.0.1:8080"
    path: str = "/isUserNameAvailable"
    timeout_seconds: float = 5.0

    @property
    def url(self) -> str:
        return self.base_url.rstrip("/") + self.path


@dataclass
class FormMessages:
    """User-facing messages"""
    username_too_short: str = "Username must be at least three characters!"
    username_not_available: str = "Username not available, try different one"
    username_available: str = ""
    password_empty: str = "Password must not be empty"
    password_mismatch: str = "Passwords do not match"


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class FormConfig:
    """Complete form configuration"""
    environment: Environment = Environment.DEVELOPMENT
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    availability: AvailabilityConfig = field(default_factory=AvailabilityConfig)
    messages: FormMessages = field(default_factory=FormMessages)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def for_environment(cls, environment: Environment) -> 'FormConfig':
        """Create configuration for specific environment"""
        config = cls(environment=environment)

        if environment == Environment.DEVELOPMENT:
            config.logging.level = "DEBUG"

        elif environment == Environment.TESTING:
            config.availability.timeout_seconds = 1.0
            config.logging.level = "WARNING"

        elif environment == Environment.PRODUCTION:
            config.logging.level = "INFO"

        return config

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'FormConfig':
        """Create configuration from dictionary; unknown keys are ignored"""
        environment = Environment(config_dict.get("environment", Environment.DEVELOPMENT.value))
        config = cls.for_environment(environment)

        for section in ("validation", "availability", "messages", "logging"):
            target = getattr(config, section)
            for key, value in config_dict.get(section, {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)

        return config

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'FormConfig':
        """Load configuration from a JSON file"""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if config_path.suffix != ".json":
            raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

        with open(config_path) as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def from_environment(cls) -> 'FormConfig':
        """Create configuration from environment variables"""
        environment = Environment(os.getenv("SIGNALFORM_ENV", "development"))
        config = cls.for_environment(environment)

        if os.getenv("SIGNALFORM_DEBOUNCE_SECONDS"):
            config.validation.debounce_seconds = float(os.getenv("SIGNALFORM_DEBOUNCE_SECONDS"))

        if os.getenv("SIGNALFORM_AVAILABILITY_URL"):
            config.availability.base_url = os.getenv("SIGNALFORM_AVAILABILITY_URL")

        if os.getenv("SIGNALFORM_TIMEOUT_SECONDS"):
            config.availability.timeout_seconds = float(os.getenv("SIGNALFORM_TIMEOUT_SECONDS"))

        if os.getenv("SIGNALFORM_LOG_LEVEL"):
            config.logging.level = os.getenv("SIGNALFORM_LOG_LEVEL").upper()

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        data = asdict(self)
        data["environment"] = self.environment.value
        return data


def configure_logging(config: Optional[LoggingConfig] = None) -> None:
    """Apply logging settings to the root logger."""
    config = config or LoggingConfig()

    handlers = [logging.StreamHandler()]
    if config.file_path:
        handlers.append(RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
        ))

    logging.basicConfig(level=config.level, format=config.format, handlers=handlers, force=True)


# Global configuration instance
_current_config: Optional[FormConfig] = None


def get_config() -> FormConfig:
    """Get current configuration, loading it from the environment on first use"""
    global _current_config
    if _current_config is None:
        _current_config = FormConfig.from_environment()
    return _current_config


def set_config(config: FormConfig) -> None:
    """Set current configuration"""
    global _current_config
    _current_config = config
