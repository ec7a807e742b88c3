"""Tests for IGAuthManager in isolation"""

from unittest.mock import AsyncMock

import httpx
import pytest

from igstream.infrastructure.brokers.ig.auth import (
    REFRESH_GRACE_MS,
    AuthAction,
    IGAuthManager,
    SessionState,
    decide_auth_action,
)
from igstream.infrastructure.brokers.ig.exceptions import (
    IGAuthenticationError,
    IGClientError,
)


def _auth_manager(credentials, *responses) -> tuple[IGAuthManager, AsyncMock]:
    auth_manager = IGAuthManager(credentials)
    request_client = AsyncMock()
    request_client.request.side_effect = list(responses)
    auth_manager.set_request_client(request_client)
    return auth_manager, request_client


@pytest.mark.unit
@pytest.mark.parametrize(
    ("remaining_ms", "expected"),
    [
        (None, AuthAction.LOGIN),
        (3_600_000, AuthAction.NONE),
        (1, AuthAction.NONE),
        (0, AuthAction.REFRESH),
        (-1, AuthAction.REFRESH),
        (-56_000, AuthAction.REFRESH),
        (-REFRESH_GRACE_MS + 1, AuthAction.REFRESH),
        (-REFRESH_GRACE_MS, AuthAction.LOGIN),
        (-301_000, AuthAction.LOGIN),
        (-86_400_000, AuthAction.LOGIN),
    ],
)
def test_decide_auth_action(remaining_ms, expected):
    """Test the no-op / refresh / login decision boundaries"""
    assert decide_auth_action(remaining_ms) is expected


@pytest.mark.unit
def test_decide_auth_action_custom_grace():
    """Test the grace window is configurable"""
    assert decide_auth_action(-1_500, grace_ms=1_000) is AuthAction.LOGIN
    assert decide_auth_action(-500, grace_ms=1_000) is AuthAction.REFRESH


@pytest.mark.unit
def test_auth_manager_initialization(credentials):
    """Test initial state of a new auth manager"""
    auth_manager = IGAuthManager(credentials)

    assert auth_manager.credentials is credentials
    assert auth_manager.token_set is None
    assert auth_manager.session is None
    assert auth_manager.state is SessionState.UNAUTHENTICATED
    assert auth_manager.grace_ms == REFRESH_GRACE_MS
    assert auth_manager.next_action() is AuthAction.LOGIN


@pytest.mark.unit
@pytest.mark.asyncio
async def test_login_without_request_client_raises(credentials):
    """Test that login fails clearly when not wired to a request client"""
    auth_manager = IGAuthManager(credentials)

    with pytest.raises(IGClientError, match="Request client not initialized"):
        await auth_manager.login()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_login_success(credentials, login_payload):
    """Test login posts credentials unauthenticated and stores the session"""
    auth_manager, request_client = _auth_manager(
        credentials, httpx.Response(200, json=login_payload)
    )

    session = await auth_manager.login()

    request_client.request.assert_awaited_once_with(
        3,
        "POST",
        "/session",
        {"identifier": "test-user", "password": "test-pass"},
        {},
        auth=False,
    )
    assert session.account_id == "Z3ABCD"
    assert auth_manager.session is session
    assert auth_manager.token_set.access_token == "login-access-token"
    assert auth_manager.state is SessionState.AUTHENTICATED
    assert auth_manager.next_action() is AuthAction.NONE


@pytest.mark.unit
@pytest.mark.asyncio
async def test_login_clears_token_set_before_request(
    credentials, login_payload
):
    """Test that the old token set is gone while login is in flight"""
    auth_manager, request_client = _auth_manager(
        credentials,
        httpx.Response(200, json=login_payload),
    )
    await auth_manager.login()

    observed = []

    async def observe(*args, **kwargs):
        observed.append((auth_manager.token_set, auth_manager.state))
        return httpx.Response(200, json=login_payload)

    request_client.request.side_effect = observe
    await auth_manager.login()

    assert observed == [(None, SessionState.LOGGING_IN)]
    assert auth_manager.token_set is not None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_login_rejected_raises_authentication_error(credentials):
    """Test that a non-2xx login is fatal and leaves no token set"""
    auth_manager, _ = _auth_manager(
        credentials,
        httpx.Response(
            401, json={"errorCode": "error.security.invalid-details"}
        ),
    )

    with pytest.raises(IGAuthenticationError) as exc_info:
        await auth_manager.login()

    assert "401" in str(exc_info.value)
    assert "invalid-details" in str(exc_info.value)
    assert auth_manager.token_set is None
    assert auth_manager.state is SessionState.UNAUTHENTICATED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_login_malformed_response_raises(credentials):
    """Test that a 200 without token payload is reported, not stored"""
    auth_manager, _ = _auth_manager(
        credentials, httpx.Response(200, json={"accountId": "Z3ABCD"})
    )

    with pytest.raises(IGAuthenticationError, match="Malformed login"):
        await auth_manager.login()

    assert auth_manager.token_set is None
    assert auth_manager.session is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_login_transport_error_propagates(credentials):
    """Test network failures surface unmodified"""
    auth_manager, _ = _auth_manager(
        credentials, httpx.ConnectError("connection refused")
    )

    with pytest.raises(httpx.ConnectError):
        await auth_manager.login()

    assert auth_manager.state is SessionState.UNAUTHENTICATED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_success(credentials, login_payload, refresh_payload):
    """Test refresh signs with the current token and swaps the token set"""
    auth_manager, request_client = _auth_manager(
        credentials,
        httpx.Response(200, json=login_payload),
        httpx.Response(200, json=refresh_payload),
    )
    await auth_manager.login()

    token_set = await auth_manager.refresh()

    request_client.request.assert_awaited_with(
        1,
        "POST",
        "/session/refresh-token",
        {"refresh_token": "login-refresh-token"},
        {
            "Authorization": "Bearer login-access-token",
            "IG-ACCOUNT-ID": "Z3ABCD",
        },
        auth=False,
    )
    assert token_set.access_token == "refreshed-access-token"
    assert auth_manager.token_set is token_set
    assert auth_manager.state is SessionState.AUTHENTICATED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_failure_falls_back_to_single_login(
    credentials, login_payload, invalid_refresh_payload
):
    """Test a rejected refresh triggers exactly one login, no second refresh"""
    auth_manager, request_client = _auth_manager(
        credentials,
        httpx.Response(200, json=login_payload),
        httpx.Response(401, json=invalid_refresh_payload),
        httpx.Response(200, json=login_payload),
    )
    await auth_manager.login()

    token_set = await auth_manager.refresh()

    paths = [call.args[2] for call in request_client.request.await_args_list]
    assert paths == ["/session", "/session/refresh-token", "/session"]
    assert token_set.access_token == "login-access-token"
    assert auth_manager.state is SessionState.AUTHENTICATED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_failure_without_login_fallback_raises(
    credentials, login_payload, invalid_refresh_payload
):
    """Test login_on_error=False reports the rejected refresh"""
    auth_manager, request_client = _auth_manager(
        credentials,
        httpx.Response(200, json=login_payload),
        httpx.Response(401, json=invalid_refresh_payload),
    )
    await auth_manager.login()
    original = auth_manager.token_set

    with pytest.raises(IGAuthenticationError, match="oauth-token-invalid"):
        await auth_manager.refresh(login_on_error=False)

    assert request_client.request.await_count == 2
    assert auth_manager.token_set is original


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_without_token_set_raises(credentials):
    """Test refresh requires an existing token set"""
    auth_manager, request_client = _auth_manager(credentials)

    with pytest.raises(IGAuthenticationError, match="No token set"):
        await auth_manager.refresh()

    request_client.request.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_auth_headers_when_logged_out_raises(credentials):
    """Test headers are not built without a session"""
    auth_manager = IGAuthManager(credentials)

    with pytest.raises(IGAuthenticationError, match="Not authenticated"):
        await auth_manager.auth_headers(authenticate=False)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ensure_authenticated_logs_in_when_unauthenticated(
    credentials, login_payload
):
    """Test ensure_authenticated performs a login from scratch"""
    auth_manager, request_client = _auth_manager(
        credentials, httpx.Response(200, json=login_payload)
    )

    action = await auth_manager.ensure_authenticated()

    assert action is AuthAction.LOGIN
    assert request_client.request.await_count == 1
    assert auth_manager.token_set is not None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ensure_authenticated_noop_with_valid_token(
    credentials, login_payload
):
    """Test no request is made while the token is valid"""
    auth_manager, request_client = _auth_manager(
        credentials, httpx.Response(200, json=login_payload)
    )
    await auth_manager.login()

    action = await auth_manager.ensure_authenticated()

    assert action is AuthAction.NONE
    assert request_client.request.await_count == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ensure_authenticated_dispatches_on_decision(
    credentials, mocker
):
    """Test ensure_authenticated calls refresh or login per decision"""
    auth_manager = IGAuthManager(credentials)
    login = mocker.patch.object(auth_manager, "login", new=AsyncMock())
    refresh = mocker.patch.object(auth_manager, "refresh", new=AsyncMock())

    mocker.patch.object(
        auth_manager.token_store, "remaining_ms", return_value=-1_000
    )
    assert await auth_manager.ensure_authenticated() is AuthAction.REFRESH
    refresh.assert_awaited_once()
    login.assert_not_awaited()

    mocker.patch.object(
        auth_manager.token_store, "remaining_ms", return_value=-400_000
    )
    assert await auth_manager.ensure_authenticated() is AuthAction.LOGIN
    login.assert_awaited_once()
    refresh.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failure",
    [
        httpx.Response(401, json={"errorCode": "error.security.invalid"}),
        httpx.ConnectError("connection reset"),
    ],
)
async def test_refresh_failure_restores_previous_state(
    credentials, login_payload, failure
):
    """Test a failed refresh returns to the state held before refreshing"""
    auth_manager, _ = _auth_manager(
        credentials, httpx.Response(200, json=login_payload), failure
    )
    await auth_manager.login()
    auth_manager._state = SessionState.UNAUTHENTICATED

    with pytest.raises((IGAuthenticationError, httpx.ConnectError)):
        await auth_manager.refresh(login_on_error=False)

    assert auth_manager.state is SessionState.UNAUTHENTICATED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_login_clears_previous_session(credentials, login_payload):
    """Test a rejected login leaves no stale account details behind"""
    auth_manager, _ = _auth_manager(
        credentials,
        httpx.Response(200, json=login_payload),
        httpx.Response(401, json={"errorCode": "error.security.invalid"}),
    )
    await auth_manager.login()
    assert auth_manager.session is not None

    with pytest.raises(IGAuthenticationError):
        await auth_manager.login()

    assert auth_manager.session is None
    assert auth_manager.token_set is None
