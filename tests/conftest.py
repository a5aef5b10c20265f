"""Global pytest configuration for all tests."""

import os

import httpx
import pytest

from coursestack_common.scraper.fetcher import CanvasApiClient

BASE_URL = "https://canvas.test"


def pytest_configure(config):
    """Set environment variables before any test collection or execution."""
    os.environ.setdefault("LOG_LEVEL", "DEBUG")


def _json_routes(routes, calls=None):
    """
    Build an ``httpx.MockTransport`` handler from ``{path: (status, body)}``.

    Unknown paths answer 404. A route value may also be a callable taking the
    request and returning an ``httpx.Response``. Requested URLs are appended to
    ``calls`` when given.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request.url)
        route = routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"errors": [{"message": "not found"}]})
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)

    return handler


@pytest.fixture
def make_api():
    """Factory for an unthrottled API client backed by a mock transport."""
    clients = []

    def factory(handler, **kwargs):
        http = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(http)
        kwargs.setdefault("request_delay_ms", 0)
        kwargs.setdefault("endpoint_delay_ms", 0)
        return CanvasApiClient(BASE_URL, client=http, **kwargs)

    yield factory

    for http in clients:
        http.close()


@pytest.fixture
def json_routes():
    """Handler builder for ``{path: (status, body)}`` route tables."""
    return _json_routes
