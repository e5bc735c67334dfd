"""Pytest configuration and fixtures."""

import json
from typing import Any

import httpx
import pytest

ACCOUNT_ID = "acc-123"
API_TOKEN = "test-token"
NAMESPACE_ID = "ns-456"


class FakeAPI:
    """Scripted stand-in for the KV API.

    Responses are served in the order they were queued and every request is
    recorded for later assertions.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._responses: list[Any] = []

    def queue(self, *responses: Any) -> None:
        """Queue responses for upcoming requests."""
        self._responses.extend(responses)

    def queue_json(self, body: Any, status_code: int = 200) -> None:
        """Queue a JSON response."""
        self.queue(httpx.Response(status_code, json=body))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        response = self._responses.pop(0)
        if callable(response):
            return response(request)
        return response

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def body(self, index: int = -1) -> Any:
        """Decoded JSON body of a recorded request."""
        return json.loads(self.requests[index].content)


@pytest.fixture
def api() -> FakeAPI:
    """Create an empty fake API."""
    return FakeAPI()


@pytest.fixture
def http_client(api: FakeAPI) -> httpx.AsyncClient:
    """HTTP client routed to the fake API."""
    return httpx.AsyncClient(transport=httpx.MockTransport(api.handler))


@pytest.fixture
def sample_config_dict() -> dict[str, Any]:
    """Sample configuration dictionary for testing."""
    return {
        "account_id": ACCOUNT_ID,
        "api_token": API_TOKEN,
        "namespace_id": NAMESPACE_ID,
    }
