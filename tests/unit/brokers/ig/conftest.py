"""Pytest fixtures for IG broker unit tests"""

from unittest.mock import MagicMock

import httpx
import pytest

from igstream.infrastructure.brokers.ig import IGClientFacade, IGCredentials

BASE_PATH = "/gateway/deal"


class FakeGateway:
    """httpx.MockTransport handler emulating the IG session endpoints

    Records every request. Login and refresh statuses can be changed per
    test, and on_login runs inside the login request so tests can observe
    client state while the call is in flight.
    """

    def __init__(self, login_payload: dict, refresh_payload: dict) -> None:
        self.login_payload = login_payload
        self.refresh_payload = refresh_payload
        self.login_status = 200
        self.refresh_status = 200
        self.on_login = None
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix(BASE_PATH)

        if request.method == "POST" and path == "/session/refresh-token":
            if self.refresh_status != 200:
                return httpx.Response(
                    self.refresh_status,
                    json={"errorCode": "error.security.oauth-token-invalid"},
                )
            return httpx.Response(200, json=self.refresh_payload)

        if request.method == "POST" and path == "/session":
            if self.on_login is not None:
                self.on_login(request)
            if self.login_status != 200:
                return httpx.Response(
                    self.login_status,
                    json={"errorCode": "error.security.invalid-details"},
                )
            return httpx.Response(200, json=self.login_payload)

        if request.method == "GET" and path == "/session":
            return httpx.Response(
                200,
                json={"accountId": "Z3ABCD"},
                headers={"CST": "cst-token", "X-SECURITY-TOKEN": "xst-token"},
            )

        return httpx.Response(200, json={"path": path})

    @property
    def calls(self) -> list[tuple[str, str]]:
        """(method, path) of every recorded request"""
        return [
            (r.method, r.url.path.removeprefix(BASE_PATH)) for r in self.requests
        ]


@pytest.fixture
def credentials():
    return IGCredentials(
        api_key="test-api-key", identifier="test-user", password="test-pass"
    )


@pytest.fixture
def gateway(login_payload, refresh_payload):
    return FakeGateway(login_payload, refresh_payload)


@pytest.fixture
def lightstreamer_factory():
    """Mock LightstreamerClient constructor"""
    return MagicMock(name="LightstreamerClient")


@pytest.fixture
def subscription_factory():
    """Mock Subscription constructor"""
    return MagicMock(name="Subscription")


@pytest.fixture
def ig_client(gateway, lightstreamer_factory, subscription_factory):
    """Real IGClientFacade talking to the fake gateway"""
    client = IGClientFacade(
        "test-api-key",
        "test-user",
        "test-pass",
        demo=True,
        client_factory=lightstreamer_factory,
        subscription_factory=subscription_factory,
    )
    request_client = client.request_client
    request_client.set_http_client(
        request_client._build_http_client(
            timeout=5, transport=httpx.MockTransport(gateway)
        )
    )
    return client
