"""Configuration management for igstream"""

import os
from dataclasses import dataclass, field

from loguru import logger

REQUIRED_ENV_VARS = ("IG_API_KEY", "IG_IDENTIFIER", "IG_PASSWORD")


def _mask(value: str | None) -> str:
    """Mask a secret for logging, keeping the last four characters"""
    if not value:
        return "Not configured"
    if len(value) <= 4:
        return "***"
    return f"***{value[-4:]}"


@dataclass
class IGConfig:
    """Configuration for the IG client loaded from environment variables"""

    # Fields without defaults (required parameters)
    api_key: str
    identifier: str
    password: str = field(repr=False)

    # Fields with defaults (optional parameters with sensible defaults)
    demo: bool = True
    request_timeout: int = 20

    @classmethod
    def from_env(cls) -> "IGConfig":
        """Load configuration from environment variables

        Returns:
            IGConfig instance with values from environment

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        values = {name: os.getenv(name) for name in REQUIRED_ENV_VARS}
        missing = [k for k, v in values.items() if not v]
        if missing:
            raise ValueError(f"Missing IG configuration: {missing}")

        demo = os.getenv("IG_DEMO", "true").lower() == "true"

        timeout_env = os.getenv("IG_REQUEST_TIMEOUT", str(cls.request_timeout))
        try:
            request_timeout = int(timeout_env)
        except ValueError as e:
            raise ValueError(
                f"IG_REQUEST_TIMEOUT must be an integer, got {timeout_env!r}"
            ) from e

        config = cls(
            api_key=str(values["IG_API_KEY"]),
            identifier=str(values["IG_IDENTIFIER"]),
            password=str(values["IG_PASSWORD"]),
            demo=demo,
            request_timeout=request_timeout,
        )

        logger.info("Configuration loaded:")
        logger.info(f"  API Key: {_mask(config.api_key)}")
        logger.info(f"  Identifier: {config.identifier}")
        logger.info(f"  Environment: {'DEMO' if config.demo else 'LIVE'}")
        logger.info(f"  Request Timeout: {config.request_timeout}s")

        return config
