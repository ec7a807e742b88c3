"""IGRequestClient - Builds and sends IG REST requests"""

import json
import logging
from typing import Any

import httpx
from loguru import logger

from .auth import IGAuthManager

HOST = "https://api.ig.com"
HOST_DEMO = "https://demo-api.ig.com"

_MASKED_HEADERS = frozenset(
    {"authorization", "x-ig-api-key", "cst", "x-security-token"}
)


class _LoguruHandler(logging.Handler):
    """Bridge stdlib logging into loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _mask_headers(headers: httpx.Headers) -> dict[str, str]:
    return {
        k: ("***" if k.lower() in _MASKED_HEADERS else v)
        for k, v in headers.items()
    }


class IGRequestClient:
    """Low-level HTTP request client for the IG gateway

    Responsibilities:
    - URL and payload encoding
    - Header merging and auth header injection
    - DELETE to POST rewriting
    - Request/response logging
    """

    _logging_bridge_installed = False

    def __init__(
        self,
        auth_manager: IGAuthManager,
        demo: bool = True,
        timeout: int = 20,
    ) -> None:
        """Initialize request client

        Args:
            auth_manager: Auth manager providing session headers
            demo: Use the demo gateway instead of live
            timeout: HTTP timeout in seconds
        """
        self._auth_manager = auth_manager
        self._demo = demo
        self._timeout = timeout
        self._http_client: httpx.AsyncClient | None = None
        self.install_logging_bridge()

    @classmethod
    def install_logging_bridge(cls) -> None:
        """Bridge stdlib logging used by httpx into loguru once."""
        if cls._logging_bridge_installed:
            return

        handler = _LoguruHandler()
        std_logger = logging.getLogger("httpx")
        std_logger.setLevel(logging.DEBUG)
        std_logger.addHandler(handler)
        std_logger.propagate = False

        cls._logging_bridge_installed = True

    @property
    def demo(self) -> bool:
        return self._demo

    @property
    def host(self) -> str:
        """Gateway host for the selected environment"""
        return HOST_DEMO if self._demo else HOST

    @property
    def base_uri(self) -> str:
        return f"{self.host}/gateway/deal"

    @property
    def headers(self) -> dict[str, str]:
        """Headers sent with every request"""
        return {
            "Content-Type": "application/json; charset=UTF-8",
            "Accept": "application/json; charset=UTF-8",
            "X-IG-API-KEY": self._auth_manager.credentials.api_key,
        }

    def _build_http_client(
        self,
        timeout: int,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> httpx.AsyncClient:
        """Create an AsyncClient with httpx request/response logging hooks."""
        self.install_logging_bridge()
        return httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            event_hooks={
                "request": [self._log_httpx_request],
                "response": [self._log_httpx_response],
            },
        )

    async def _log_httpx_request(self, request: httpx.Request) -> None:
        """Log outbound httpx requests with headers (credentials masked)."""
        headers = _mask_headers(request.headers)
        logger.debug(f"HTTPX request: {request.method} {request.url} {headers}")

    async def _log_httpx_response(self, response: httpx.Response) -> None:
        """Log httpx response status. Bodies carry tokens and are not logged."""
        logger.debug(
            f"HTTPX response: status={response.status_code} url={response.url}"
        )

    def set_http_client(self, client: httpx.AsyncClient) -> None:
        """Set the HTTP client (for testing or external management)"""
        self._http_client = client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it on first use"""
        if self._http_client is None:
            self._http_client = self._build_http_client(timeout=self._timeout)
        return self._http_client

    async def aclose(self) -> None:
        """Close the underlying HTTP client"""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

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

        GET payloads become query parameters in insertion order, skipping
        None values. For other verbs a dict or list payload is JSON
        encoded, anything else is sent as is. Auth headers are applied last
        so they override caller headers. IG rejects DELETE, so it is sent as
        POST with a
        ``_method: DELETE`` header.

        Args:
            version: Value of the IG Version header
            method: HTTP method
            path: Path below base_uri (e.g., "/positions/otc")
            payload: Query parameters or request body
            headers: Extra headers
            auth: Ensure the session is valid and add auth headers

        Returns:
            The httpx response, unmodified

        Raises:
            IGAuthenticationError: If authentication is needed and fails
            httpx.RequestError: On transport failure
        """
        url = f"{self.base_uri}{path}"
        http_method = method.upper()

        merged = httpx.Headers(self.headers)
        merged.update(headers or {})
        merged["Version"] = str(version)

        if auth:
            merged.update(await self._auth_manager.auth_headers())

        params: list[tuple[str, str]] | None = None
        content: Any = None
        if http_method == "GET":
            params = [
                (k, _query_value(v))
                for k, v in (payload or {}).items()
                if v is not None
            ]
        elif isinstance(payload, (dict, list)):
            content = json.dumps(payload)
        else:
            content = payload

        if http_method == "DELETE":
            http_method = "POST"
            merged["_method"] = "DELETE"

        logger.debug(f"{http_method} {url} (version {version})")

        return await self.http_client.request(
            http_method,
            url,
            params=params,
            content=content,
            headers=merged,
        )
