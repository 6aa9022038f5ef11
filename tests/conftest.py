"""Root conftest: shared test configuration.

Invariants:
    - Settings are re-read from the environment for every test
    - No test reaches the network: HTTP goes through httpx.MockTransport
"""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from commerce_adaptor.core.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Keep a developer's .env or environment out of the tests."""
    for name in (
        "LOG_LEVEL",
        "ENABLE_STRUCTURED_LOGGING",
        "OAUTH_REFRESH_RATIO",
        "RATE_LIMIT_BACKOFF_SECONDS",
        "RATE_LIMIT_MAX_RETRIES",
        "ADAPTOR_CACHE_MAX_ENTRIES",
        "DEFAULT_PAGE_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class RecordingRouter:
    """MockTransport handler that records requests and serves canned responses by path.

    A route value may be a response, a list of responses (served in order,
    the last one repeating) or a callable taking the request.
    """

    def __init__(self, routes: Dict[str, Any]):
        self.routes = routes
        self.requests: List[httpx.Request] = []
        self._served: Dict[str, int] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        if isinstance(route, list):
            index = self._served.get(request.url.path, 0)
            self._served[request.url.path] = index + 1
            return route[min(index, len(route) - 1)]
        return route

    def calls_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def make_router() -> Callable[[Dict[str, Any]], RecordingRouter]:
    return RecordingRouter


def json_response(body: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(body).encode(), headers={"Content-Type": "application/json"})


@pytest.fixture(name="json_response")
def json_response_fixture() -> Callable[..., httpx.Response]:
    return json_response
