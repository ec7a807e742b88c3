"""igstream - IG session and Lightstreamer streaming client"""

from igstream.core.config import IGConfig
from igstream.infrastructure.brokers.ig import (
    IGAuthenticationError,
    IGClient,
    IGClientError,
    IGClientFacade,
    IGStreamingError,
)

__all__ = [
    "IGConfig",
    "IGClient",
    "IGClientFacade",
    "IGClientError",
    "IGAuthenticationError",
    "IGStreamingError",
]
