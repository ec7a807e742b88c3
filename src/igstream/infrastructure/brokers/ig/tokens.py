"""IG credential, token and session state"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IGCredentials:
    """Login credentials held for the lifetime of a client"""

    api_key: str
    identifier: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class TokenSet:
    """OAuth token set returned by IG login and refresh

    Built as a whole from the server payload, never partially updated.
    """

    access_token: str
    refresh_token: str
    token_type: str
    expires: datetime

    @classmethod
    def from_oauth_token(cls, oauth_token: dict[str, Any]) -> "TokenSet":
        """Parse an OAuth token payload

        Args:
            oauth_token: Mapping with access_token, refresh_token, token_type
                and expires_in (seconds)

        Returns:
            TokenSet expiring expires_in seconds from now

        Raises:
            KeyError: If a token field is missing
            ValueError: If expires_in is not an integer
        """
        return cls(
            access_token=oauth_token["access_token"],
            refresh_token=oauth_token["refresh_token"],
            token_type=oauth_token["token_type"],
            expires=utc_now()
            + timedelta(seconds=int(oauth_token["expires_in"])),
        )

    @property
    def authorization(self) -> str:
        """Value of the Authorization header"""
        return f"{self.token_type} {self.access_token}"


@dataclass(frozen=True)
class SessionContext:
    """Account details returned by login"""

    client_id: str
    account_id: str
    timezone_offset: int
    lightstreamer_endpoint: str

    @classmethod
    def from_session_response(cls, body: dict[str, Any]) -> "SessionContext":
        """Parse the session fields of a v3 login response"""
        return cls(
            client_id=body["clientId"],
            account_id=body["accountId"],
            timezone_offset=body["timezoneOffset"],
            lightstreamer_endpoint=body["lightstreamerEndpoint"],
        )


class IGTokenStore:
    """Holds the current token set and answers expiry queries

    The token set is either absent or complete. Replacement is a single
    reference swap.
    """

    def __init__(self) -> None:
        self._token_set: TokenSet | None = None

    @property
    def token_set(self) -> TokenSet | None:
        """Get current token set"""
        return self._token_set

    @property
    def is_authenticated(self) -> bool:
        return self._token_set is not None

    def replace(self, token_set: TokenSet) -> None:
        """Swap in a new token set"""
        self._token_set = token_set

    def clear(self) -> None:
        """Discard the current token set"""
        self._token_set = None

    def remaining_ms(self) -> int | None:
        """Milliseconds until the token set expires

        Returns:
            Remaining validity (negative once expired), or None when no
            token set is held
        """
        token_set = self._token_set
        if token_set is None:
            return None
        remaining = token_set.expires - utc_now()
        return int(remaining.total_seconds() * 1000)
