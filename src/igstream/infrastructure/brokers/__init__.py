"""Infrastructure brokers module."""

from .ig.exceptions import (
    IGAuthenticationError,
    IGClientError,
    IGStreamingError,
)
from .ig.facade import IGClient, IGClientFacade
from .protocols import BrokerSessionManager, StreamingProvider

__all__ = [
    "IGClient",
    "IGClientFacade",
    "IGAuthenticationError",
    "IGClientError",
    "IGStreamingError",
    "BrokerSessionManager",
    "StreamingProvider",
]
