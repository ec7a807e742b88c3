"""IGClientFacade - Single entry point for IG REST and streaming"""

from collections.abc import Callable, Sequence
from typing import Any

import httpx
from lightstreamer.client import LightstreamerClient, Subscription

from igstream.core.config import IGConfig

from .auth import AuthAction, IGAuthManager, SessionState
from .requests import IGRequestClient
from .streaming import ConnectionCallbacks, IGStreamingManager
from .subscriptions import IGSubscriptionManager, SubscriptionCallbacks
from .tokens import IGCredentials, SessionContext, TokenSet


class IGClientFacade:
    """IG trading API client (facade pattern)

    A lightweight facade that wires IGAuthManager, IGRequestClient,
    IGStreamingManager and IGSubscriptionManager together.

    Not safe for concurrent use: a login in progress clears the token set,
    so callers must serialise authenticate() and authenticated requests.

    Satisfies the BrokerSessionManager and StreamingProvider protocols.
    """

    def __init__(
        self,
        api_key: str,
        identifier: str,
        password: str,
        demo: bool = True,
        timeout: int = 20,
        client_factory: Callable[..., LightstreamerClient] = LightstreamerClient,
        subscription_factory: Callable[..., Subscription] = Subscription,
    ) -> None:
        """Initialize IG client

        Args:
            api_key: IG API key
            identifier: Account username
            password: Account password
            demo: Use the demo environment
            timeout: HTTP timeout in seconds
            client_factory: Lightstreamer client constructor
            subscription_factory: Lightstreamer subscription constructor
        """
        credentials = IGCredentials(
            api_key=api_key, identifier=identifier, password=password
        )
        self._auth_manager = IGAuthManager(credentials)
        self._request_client = IGRequestClient(
            self._auth_manager, demo=demo, timeout=timeout
        )
        self._auth_manager.set_request_client(self._request_client)
        self._streaming_manager = IGStreamingManager(
            self._auth_manager, self._request_client, client_factory
        )
        self._subscription_manager = IGSubscriptionManager(subscription_factory)

    @classmethod
    def from_config(cls, config: IGConfig, **kwargs: Any) -> "IGClientFacade":
        """Build a client from an IGConfig"""
        return cls(
            config.api_key,
            config.identifier,
            config.password,
            demo=config.demo,
            timeout=config.request_timeout,
            **kwargs,
        )

    async def __aenter__(self) -> "IGClientFacade":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def auth_manager(self) -> IGAuthManager:
        """Access auth manager for testing"""
        return self._auth_manager

    @property
    def request_client(self) -> IGRequestClient:
        """Access request client for testing"""
        return self._request_client

    @property
    def streaming_manager(self) -> IGStreamingManager:
        return self._streaming_manager

    @property
    def subscription_manager(self) -> IGSubscriptionManager:
        return self._subscription_manager

    @property
    def demo(self) -> bool:
        return self._request_client.demo

    @property
    def host(self) -> str:
        return self._request_client.host

    @property
    def base_uri(self) -> str:
        return self._request_client.base_uri

    @property
    def headers(self) -> dict[str, str]:
        return self._request_client.headers

    @property
    def state(self) -> SessionState:
        return self._auth_manager.state

    @property
    def token_set(self) -> TokenSet | None:
        return self._auth_manager.token_set

    @property
    def session(self) -> SessionContext | None:
        return self._auth_manager.session

    @property
    def client_id(self) -> str | None:
        session = self._auth_manager.session
        return session.client_id if session else None

    @property
    def account_id(self) -> str | None:
        """Get logged in account ID"""
        session = self._auth_manager.session
        return session.account_id if session else None

    @property
    def timezone_offset(self) -> int | None:
        session = self._auth_manager.session
        return session.timezone_offset if session else None

    @property
    def lightstreamer_endpoint(self) -> str | None:
        session = self._auth_manager.session
        return session.lightstreamer_endpoint if session else None

    def auth_remaining(self) -> int | None:
        """Milliseconds of token validity left, None when logged out"""
        return self._auth_manager.token_store.remaining_ms()

    async def authenticate(self) -> AuthAction:
        """Log in or refresh if the session requires it"""
        return await self._auth_manager.ensure_authenticated()

    async def valid_auth_headers(self, authenticate: bool = True) -> dict:
        return await self._auth_manager.auth_headers(authenticate)

    async def login(self) -> SessionContext:
        """Create a new session, discarding the current one"""
        return await self._auth_manager.login()

    async def refresh(self, login_on_error: bool = True) -> TokenSet:
        """Refresh the access token, logging in again if IG rejects it"""
        return await self._auth_manager.refresh(login_on_error)

    async def request(
        self,
        version: int | str,
        method: str,
        path: str,
        payload: Any = None,
        headers: dict[str, str] | None = None,
        auth: bool = True,
    ) -> httpx.Response:
        """Send a request to the IG gateway

        See IGRequestClient.request() for encoding and header rules.
        """
        return await self._request_client.request(
            version, method, path, payload, headers, auth
        )

    async def get(
        self, path: str, payload: dict | None = None, version: int = 1
    ) -> httpx.Response:
        """Make authenticated GET request

        Args:
            path: API path
            payload: Query parameters
            version: IG API version

        Returns:
            httpx response
        """
        return await self.request(version, "GET", path, payload)

    async def post(
        self, path: str, payload: Any = None, version: int = 1
    ) -> httpx.Response:
        """Make authenticated POST request"""
        return await self.request(version, "POST", path, payload)

    async def put(
        self, path: str, payload: Any = None, version: int = 1
    ) -> httpx.Response:
        """Make authenticated PUT request"""
        return await self.request(version, "PUT", path, payload)

    async def delete(
        self, path: str, payload: Any = None, version: int = 1
    ) -> httpx.Response:
        """Make authenticated DELETE request (sent as POST)"""
        return await self.request(version, "DELETE", path, payload)

    async def streamer(
        self, callbacks: ConnectionCallbacks | None = None
    ) -> LightstreamerClient:
        """Open an authenticated Lightstreamer connection"""
        return await self._streaming_manager.open_stream(callbacks)

    open_stream = streamer

    def stream(
        self,
        streamer: LightstreamerClient,
        mode: str,
        items: Sequence[str] = (),
        fields: Sequence[str] = (),
        callbacks: SubscriptionCallbacks | None = None,
    ) -> Subscription:
        """Subscribe to items on a connection from streamer()"""
        return self._subscription_manager.subscribe(
            streamer, mode, items, fields, callbacks
        )

    subscribe = stream

    def unsubscribe(
        self, streamer: LightstreamerClient, subscription: Subscription
    ) -> None:
        self._subscription_manager.unsubscribe(streamer, subscription)

    async def close(self) -> None:
        """Close HTTP resources"""
        await self._request_client.aclose()


IGClient = IGClientFacade
