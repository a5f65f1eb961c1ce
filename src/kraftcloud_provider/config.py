"""
Configuration module for the KraftCloud provider.

Loads configuration from environment variables. Poll cadence, concurrency
and the observe error policy belong to the controller; API endpoint and
transport timeout belong to the KraftCloud client.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

DEFAULT_API_URL = "https://api.{metro}.kraft.cloud/v1"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ObserveErrorPolicy(Enum):
    """How Observe treats a failed fetch of the remote instance."""

    # Every fetch error means the instance does not exist.
    ASSUME_ABSENT = "assume-absent"
    # Only a not-found error means absence; anything else fails the cycle.
    PROPAGATE_TRANSIENT = "propagate-transient"


@dataclass
class KraftCloudConfig:
    """KraftCloud API client configuration."""

    api_url: str = DEFAULT_API_URL  # may contain a {metro} placeholder
    request_timeout: Optional[float] = None  # seconds, None = no timeout

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        timeout = os.getenv("KRAFTCLOUD_REQUEST_TIMEOUT")
        return cls(
            api_url=os.getenv("KRAFTCLOUD_API_URL", DEFAULT_API_URL),
            request_timeout=float(timeout) if timeout else None,
        )


@dataclass
class ControllerConfig:
    """Instance reconciler configuration."""

    poll_interval: int = 60  # seconds
    max_concurrent_reconciles: int = 5
    observe_error_policy: ObserveErrorPolicy = ObserveErrorPolicy.ASSUME_ABSENT

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            poll_interval=int(os.getenv("POLL_INTERVAL", "60")),
            max_concurrent_reconciles=int(os.getenv("MAX_CONCURRENT_RECONCILES", "5")),
            observe_error_policy=ObserveErrorPolicy(
                os.getenv("OBSERVE_ERROR_POLICY", ObserveErrorPolicy.ASSUME_ABSENT.value)
            ),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "INFO"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(log_level=os.getenv("LOG_LEVEL", "INFO").upper())


@dataclass
class Config:
    """Main configuration object."""

    kraftcloud: KraftCloudConfig
    controller: ControllerConfig
    logging: LoggingConfig

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            kraftcloud=KraftCloudConfig.from_env(),
            controller=ControllerConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            kraftcloud=KraftCloudConfig(),
            controller=ControllerConfig(),
            logging=LoggingConfig(),
        )


def configure_logging(logging_config: LoggingConfig) -> None:
    """Configure the root logger once at process start."""
    logging.basicConfig(level=logging_config.log_level, format=LOG_FORMAT)


# Global config instance
config: Optional[Config] = None


def load_config() -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env()
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
