"""Configuration management for Broker CLI."""

import os
from typing import Optional
from dataclasses import dataclass, field


DEFAULT_BROKER_HOST = "https://servicebroker.googleapis.com"
DEFAULT_API_VERSION = "2.13"


@dataclass
class BrokerConfig:
    """Broker endpoint configuration."""
    host: str = DEFAULT_BROKER_HOST
    api_version: str = DEFAULT_API_VERSION
    credentials_file: Optional[str] = None
    request_timeout: float = 60.0


@dataclass
class PollingConfig:
    """Last-operation polling configuration."""
    base_delay: float = 0.1
    max_delay: float = 6.0
    timeout: Optional[float] = None  # None polls until a terminal state


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return float(value)


@dataclass
class Config:
    """Main configuration class."""
    broker: BrokerConfig = field(default_factory=BrokerConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        config = cls()

        # Broker config
        config.broker.host = os.getenv('BROKER_HOST', config.broker.host)
        config.broker.api_version = os.getenv('BROKER_API_VERSION', config.broker.api_version)
        config.broker.credentials_file = os.getenv('GOOGLE_APPLICATION_CREDENTIALS')
        config.broker.request_timeout = float(
            os.getenv('BROKER_REQUEST_TIMEOUT', str(config.broker.request_timeout))
        )

        # Polling config
        config.polling.base_delay = float(os.getenv('POLL_BASE_DELAY', str(config.polling.base_delay)))
        config.polling.max_delay = float(os.getenv('POLL_MAX_DELAY', str(config.polling.max_delay)))
        config.polling.timeout = _optional_float('POLL_TIMEOUT')

        # Logging config
        config.logging.level = os.getenv('LOG_LEVEL', config.logging.level)
        config.logging.file_path = os.getenv('LOG_FILE_PATH')

        return config


# Global configuration instance
config = Config.from_env()
