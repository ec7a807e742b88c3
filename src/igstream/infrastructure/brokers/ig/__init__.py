"""IG infrastructure module

IGTokenStore - Token set and expiry queries
IGAuthManager - Login, refresh and expiry arbitration
IGRequestClient - REST request building and signing
IGStreamingManager - Authenticated Lightstreamer connections
IGSubscriptionManager - Per-topic subscriptions with decoded updates
IGClientFacade - Facade wiring the above together
"""

from .auth import (
    REFRESH_GRACE_MS,
    AuthAction,
    IGAuthManager,
    SessionState,
    decide_auth_action,
)
from .exceptions import (
    IGAuthenticationError,
    IGClientError,
    IGStreamingError,
)
from .facade import IGClient, IGClientFacade
from .requests import HOST, HOST_DEMO, IGRequestClient
from .streaming import ConnectionCallbacks, IGStreamingManager
from .subscriptions import (
    IGSubscriptionManager,
    SubscriptionCallbacks,
    decode_item_update,
)
from .tokens import IGCredentials, IGTokenStore, SessionContext, TokenSet

__all__ = [
    "HOST",
    "HOST_DEMO",
    "REFRESH_GRACE_MS",
    "AuthAction",
    "ConnectionCallbacks",
    "IGAuthManager",
    "IGAuthenticationError",
    "IGClient",
    "IGClientError",
    "IGClientFacade",
    "IGCredentials",
    "IGRequestClient",
    "IGStreamingError",
    "IGStreamingManager",
    "IGSubscriptionManager",
    "IGTokenStore",
    "SessionContext",
    "SessionState",
    "SubscriptionCallbacks",
    "TokenSet",
    "decide_auth_action",
    "decode_item_update",
]
