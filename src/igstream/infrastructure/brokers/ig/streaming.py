"""IGStreamingManager - Opens authenticated Lightstreamer connections"""

from collections.abc import Callable
from dataclasses import dataclass, fields
from typing import Any

from lightstreamer.client import ClientListener, LightstreamerClient
from loguru import logger

from .auth import IGAuthManager
from .exceptions import IGStreamingError
from .requests import IGRequestClient


@dataclass
class ConnectionCallbacks:
    """Optional connection-level event handlers

    A listener is attached only for handlers that are set. Handlers run on
    the Lightstreamer library's threads.
    """

    server_error: Callable[[int, str], Any] | None = None
    listen_start: Callable[[], Any] | None = None
    status_change: Callable[[str], Any] | None = None


class _ServerErrorListener(ClientListener):
    def __init__(self, handler: Callable[[int, str], Any]) -> None:
        self._handler = handler

    def onServerError(self, errorCode: int, errorMessage: str) -> None:
        self._handler(errorCode, errorMessage)


class _ListenStartListener(ClientListener):
    def __init__(self, handler: Callable[[], Any]) -> None:
        self._handler = handler

    def onListenStart(self) -> None:
        self._handler()


class _StatusChangeListener(ClientListener):
    def __init__(self, handler: Callable[[str], Any]) -> None:
        self._handler = handler

    def onStatusChange(self, status: str) -> None:
        self._handler(status)


# Callback attribute name -> listener wrapping it
CLIENT_LISTENERS: dict[str, type[ClientListener]] = {
    "server_error": _ServerErrorListener,
    "listen_start": _ListenStartListener,
    "status_change": _StatusChangeListener,
}


def attach_client_listeners(
    client: LightstreamerClient, callbacks: ConnectionCallbacks
) -> list[ClientListener]:
    """Attach one listener per handler set on callbacks

    Returns:
        The listeners that were added
    """
    attached = []
    for callback in fields(callbacks):
        handler = getattr(callbacks, callback.name)
        if handler is None:
            continue
        listener = CLIENT_LISTENERS[callback.name](handler)
        client.addListener(listener)
        attached.append(listener)
    return attached


class IGStreamingManager:
    """Creates Lightstreamer connections for an authenticated IG session

    Responsibilities:
    - Fetching CST and X-SECURITY-TOKEN streaming tokens
    - Configuring Lightstreamer user and password
    - Wiring optional connection listeners
    """

    SESSION_PATH = "/session"

    def __init__(
        self,
        auth_manager: IGAuthManager,
        request_client: IGRequestClient,
        client_factory: Callable[..., LightstreamerClient] = LightstreamerClient,
        adapter_set: str | None = None,
    ) -> None:
        """Initialize streaming manager

        Args:
            auth_manager: Auth manager holding the session
            request_client: Request client used to fetch streaming tokens
            client_factory: Builds the Lightstreamer client from
                (server address, adapter set)
            adapter_set: Lightstreamer adapter set, server default if None
        """
        self._auth_manager = auth_manager
        self._request_client = request_client
        self._client_factory = client_factory
        self._adapter_set = adapter_set

    async def fetch_security_tokens(self) -> tuple[str, str]:
        """Fetch the CST and X-SECURITY-TOKEN for the current session

        Returns:
            (cst, x_security_token)

        Raises:
            IGStreamingError: If the request fails or a token is missing
        """
        response = await self._request_client.request(
            1, "GET", self.SESSION_PATH, {"fetchSessionTokens": "true"}
        )
        if not response.is_success:
            raise IGStreamingError(
                f"Streaming token request failed: {response.status_code}"
            )

        cst = response.headers.get("cst")
        security_token = response.headers.get("x-security-token")
        if not cst or not security_token:
            raise IGStreamingError(
                "Session response did not include CST and X-SECURITY-TOKEN"
            )
        return cst, security_token

    async def open_stream(
        self, callbacks: ConnectionCallbacks | None = None
    ) -> LightstreamerClient:
        """Authenticate and start a Lightstreamer connection

        Returns once connect() has been called. Use the status_change
        callback to learn when the connection is actually live.

        Args:
            callbacks: Optional connection event handlers

        Returns:
            The connecting Lightstreamer client

        Raises:
            IGAuthenticationError: If authentication fails
            IGStreamingError: If streaming tokens cannot be obtained
        """
        await self._auth_manager.ensure_authenticated()

        session = self._auth_manager.session
        if session is None:
            raise IGStreamingError("No session context - login required")

        logger.info(
            f"Opening Lightstreamer connection to {session.lightstreamer_endpoint}"
        )
        client = self._client_factory(
            session.lightstreamer_endpoint, self._adapter_set
        )

        cst, security_token = await self.fetch_security_tokens()

        client.connectionDetails.setUser(session.account_id)
        client.connectionDetails.setPassword(f"CST-{cst}|XST-{security_token}")

        attached = attach_client_listeners(
            client, callbacks or ConnectionCallbacks()
        )
        logger.debug(f"Attached {len(attached)} connection listener(s)")

        client.connect()
        logger.info("Lightstreamer connect requested")

        return client
