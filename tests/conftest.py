"""Shared fixtures: an in-memory backend behind httpx.MockTransport."""

import json
import pytest
import httpx

from integrations_console.core.backend import BackendClient
from integrations_console.core.cache import QueryCache
from integrations_console.services import api_keys
from integrations_console.services.mutations import MutationTracker

KEY_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"
OTHER_KEY_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"
SECRET = "sw_live_abcdefghijklmnopqrstuvwxyz0123456789"


class BackendStub:
    """Routes requests by method and path to canned responses.

    A response is a JSON-able value, an ``httpx.Response``, or a callable
    taking the request and returning either.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def on(self, method, path, response):
        self.routes[(method, path)] = response

    def on_function(self, name, response):
        self.on("POST", f"/functions/v1/{name}", response)

    def on_rpc(self, name, response):
        self.on("POST", f"/rest/v1/rpc/{name}", response)

    def on_table(self, method, table, response):
        self.on(method, f"/rest/v1/{table}", response)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(404, json={"message": f"no route for {request.method} {request.url.path}"})
        if callable(response):
            response = response(request)
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    def calls(self, path):
        """JSON bodies sent to ``path``, in order."""
        return [
            json.loads(r.content) if r.content else None
            for r in self.requests
            if r.url.path == path
        ]

    def function_calls(self, name):
        return self.calls(f"/functions/v1/{name}")


def body(request: httpx.Request):
    return json.loads(request.content)


@pytest.fixture
def stub():
    """Backend stub with no routes."""
    return BackendStub()


@pytest.fixture
def backend(stub):
    """Backend client wired to the stub."""
    client = httpx.AsyncClient(base_url="http://backend.test", transport=httpx.MockTransport(stub.handler))
    return BackendClient(client=client, access_token="user-token")


@pytest.fixture
def cache():
    """Cache without Redis: every read goes to the backend."""
    return QueryCache(client=None)


@pytest.fixture
def tracker():
    """Fresh mutation tracker."""
    return MutationTracker()


@pytest.fixture(autouse=True)
def clear_pending_reveals():
    api_keys._pending_reveals.clear()
    yield
    api_keys._pending_reveals.clear()


@pytest.fixture
def api_key_row():
    """An active key allowed to subscribe webhooks."""
    return {
        "id": KEY_ID,
        "user_id": "user-1",
        "key_name": "Production Zap",
        "scopes": ["read:analysis", "webhook:subscribe"],
        "is_active": True,
        "usage_count": 3,
        "created_at": "2026-01-05T10:00:00Z",
    }
