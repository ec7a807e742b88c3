"""Broker protocols defining interfaces for broker integrations.

These protocols let callers depend on session and streaming behaviour
without binding to the concrete IG client.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

import httpx


@runtime_checkable
class BrokerSessionManager(Protocol):
    """Protocol for authenticated REST session management."""

    async def authenticate(self) -> Any:
        """Log in or refresh if the session requires it."""
        ...

    async def request(
        self,
        version: int | str,
        method: str,
        path: str,
        payload: Any = None,
        headers: dict[str, str] | None = None,
        auth: bool = True,
    ) -> httpx.Response:
        """Send a request to the broker gateway."""
        ...

    async def close(self) -> None:
        """Release HTTP resources."""
        ...


@runtime_checkable
class StreamingProvider(Protocol):
    """Protocol for push-streaming connections and subscriptions."""

    async def streamer(self, callbacks: Any = None) -> Any:
        """Open an authenticated streaming connection."""
        ...

    def stream(
        self,
        streamer: Any,
        mode: str,
        items: Sequence[str],
        fields: Sequence[str],
        callbacks: Any = None,
    ) -> Any:
        """Subscribe to items on a streaming connection."""
        ...
