"""IGAuthManager - Session login, token refresh and expiry arbitration"""

from enum import Enum
from typing import TYPE_CHECKING

import httpx
from loguru import logger

from .exceptions import IGAuthenticationError, IGClientError
from .tokens import IGCredentials, IGTokenStore, SessionContext, TokenSet

if TYPE_CHECKING:
    from .requests import IGRequestClient

# IG accepts a refresh for up to 5 minutes after the access token expires
REFRESH_GRACE_MS = 5 * 60 * 1000


class AuthAction(str, Enum):
    """What ensure_authenticated() has to do to obtain a usable token"""

    NONE = "none"
    REFRESH = "refresh"
    LOGIN = "login"


class SessionState(str, Enum):
    """Lifecycle state of the authenticated session"""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"
    LOGGING_IN = "logging_in"


def decide_auth_action(
    remaining_ms: int | None, grace_ms: int = REFRESH_GRACE_MS
) -> AuthAction:
    """Choose between no-op, refresh and full login

    Args:
        remaining_ms: Remaining token validity, None when unauthenticated
        grace_ms: Window after expiry during which a refresh is accepted

    Returns:
        LOGIN when unauthenticated or expired beyond the grace window,
        REFRESH when expired within it, NONE while the token is valid
    """
    if remaining_ms is None or remaining_ms <= -grace_ms:
        return AuthAction.LOGIN
    if remaining_ms <= 0:
        return AuthAction.REFRESH
    return AuthAction.NONE


class IGAuthManager:
    """Manages the IG REST session

    Responsibilities:
    - Full login via POST /session (v3)
    - Token refresh via POST /session/refresh-token with login fallback
    - Deciding which of the two a request needs
    - Building Authorization and account headers
    """

    SESSION_PATH = "/session"
    REFRESH_PATH = "/session/refresh-token"

    def __init__(
        self,
        credentials: IGCredentials,
        token_store: IGTokenStore | None = None,
        grace_ms: int = REFRESH_GRACE_MS,
    ) -> None:
        """Initialize auth manager

        Args:
            credentials: API key, identifier and password
            token_store: Token store to own, a new one by default
            grace_ms: Refresh window after token expiry in milliseconds
        """
        self._credentials = credentials
        self._token_store = token_store or IGTokenStore()
        self._grace_ms = grace_ms
        self._session: SessionContext | None = None
        self._state = SessionState.UNAUTHENTICATED
        self._request_client: "IGRequestClient | None" = None

    def set_request_client(self, client: "IGRequestClient") -> None:
        """Set the request client used for login and refresh calls"""
        self._request_client = client

    @property
    def credentials(self) -> IGCredentials:
        return self._credentials

    @property
    def token_store(self) -> IGTokenStore:
        return self._token_store

    @property
    def token_set(self) -> TokenSet | None:
        """Get current token set"""
        return self._token_store.token_set

    @property
    def session(self) -> SessionContext | None:
        """Get session context from the last successful login"""
        return self._session

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def grace_ms(self) -> int:
        return self._grace_ms

    def _client(self) -> "IGRequestClient":
        if self._request_client is None:
            raise IGClientError("Request client not initialized")
        return self._request_client

    def next_action(self) -> AuthAction:
        """Action ensure_authenticated() would take right now"""
        return decide_auth_action(
            self._token_store.remaining_ms(), self._grace_ms
        )

    async def ensure_authenticated(self) -> AuthAction:
        """Login or refresh if the current token requires it

        Returns:
            The action that was chosen

        Raises:
            IGAuthenticationError: If login fails
            httpx.RequestError: On transport failure
        """
        action = self.next_action()
        if action is AuthAction.LOGIN:
            await self.login()
        elif action is AuthAction.REFRESH:
            await self.refresh()
        return action

    async def auth_headers(self, authenticate: bool = True) -> dict[str, str]:
        """Build Authorization and account headers

        Args:
            authenticate: Run ensure_authenticated() first. Refresh passes
                False to sign with the token it is about to replace.

        Returns:
            Header mapping

        Raises:
            IGAuthenticationError: If no session is held
        """
        if authenticate:
            await self.ensure_authenticated()

        token_set = self._token_store.token_set
        if token_set is None or self._session is None:
            raise IGAuthenticationError("Not authenticated - call login() first")

        return {
            "Authorization": token_set.authorization,
            "IG-ACCOUNT-ID": self._session.account_id,
        }

    async def login(self) -> SessionContext:
        """Create a new session with identifier and password

        The current token set and session context are discarded before the
        request is sent.

        Returns:
            Session context of the new session

        Raises:
            IGAuthenticationError: If IG rejects the login or the response
                cannot be parsed
            httpx.RequestError: On transport failure
        """
        logger.info("Logging in to IG...")
        self._token_store.clear()
        self._session = None
        self._state = SessionState.LOGGING_IN

        try:
            response = await self._client().request(
                3,
                "POST",
                self.SESSION_PATH,
                {
                    "identifier": self._credentials.identifier,
                    "password": self._credentials.password,
                },
                {},
                auth=False,
            )

            if not response.is_success:
                raise IGAuthenticationError(
                    f"Login failed: {_format_error(response)}"
                )

            try:
                body = response.json()
                session = SessionContext.from_session_response(body)
                token_set = TokenSet.from_oauth_token(body["oauthToken"])
            except (KeyError, TypeError, ValueError) as e:
                raise IGAuthenticationError(
                    f"Malformed login response: {e}"
                ) from e
        except Exception:
            self._state = SessionState.UNAUTHENTICATED
            raise

        self._session = session
        self._token_store.replace(token_set)
        self._state = SessionState.AUTHENTICATED

        logger.info(
            f"Logged in to IG account {session.account_id}, "
            f"token expires at {token_set.expires.isoformat()}"
        )
        return session

    async def refresh(self, login_on_error: bool = True) -> TokenSet:
        """Exchange the refresh token for a new token set

        Args:
            login_on_error: Fall back to a full login when IG rejects the
                refresh token

        Returns:
            The token set now held

        Raises:
            IGAuthenticationError: If refresh fails and login_on_error is
                False, or the fallback login fails
            httpx.RequestError: On transport failure
        """
        token_set = self._token_store.token_set
        if token_set is None:
            raise IGAuthenticationError("No token set to refresh")

        logger.info("Refreshing IG access token...")
        previous_state = self._state
        self._state = SessionState.REFRESHING

        try:
            headers = await self.auth_headers(authenticate=False)
            response = await self._client().request(
                1,
                "POST",
                self.REFRESH_PATH,
                {"refresh_token": token_set.refresh_token},
                headers,
                auth=False,
            )
        except Exception:
            self._state = previous_state
            raise

        if not response.is_success:
            if login_on_error:
                logger.warning(
                    f"Token refresh rejected ({response.status_code}) - "
                    "falling back to login"
                )
                await self.login()
                return self._token_store.token_set  # type: ignore[return-value]

            self._state = previous_state
            raise IGAuthenticationError(
                f"Token refresh failed: {_format_error(response)}"
            )

        try:
            new_token_set = TokenSet.from_oauth_token(response.json())
        except (KeyError, TypeError, ValueError) as e:
            self._state = previous_state
            raise IGAuthenticationError(
                f"Malformed refresh response: {e}"
            ) from e

        self._token_store.replace(new_token_set)
        self._state = SessionState.AUTHENTICATED

        logger.info(
            f"Token refreshed, expires at {new_token_set.expires.isoformat()}"
        )
        return new_token_set


def _format_error(response: httpx.Response) -> str:
    """Return a safe string describing an HTTP error without assuming keys."""
    try:
        parsed = response.json()
    except ValueError:
        return f"{response.status_code} - {response.text}"
    if isinstance(parsed, dict) and "errorCode" in parsed:
        return f"{response.status_code} - {parsed['errorCode']}"
    return f"{response.status_code} - {parsed}"
