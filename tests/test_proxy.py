"""Fetch proxy tests."""

from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from sitemap_seo.config import Settings, get_settings
from sitemap_seo.proxy import app

_RealAsyncClient = httpx.AsyncClient

USER_AGENT = "TestAgent/1.0"


@pytest.fixture
def upstream():
    """Routes the proxy's outbound client to a mock handler; yields the seen requests."""
    seen: list[httpx.Request] = []
    state: dict = {"handler": lambda request: httpx.Response(200, text="<urlset/>")}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return state["handler"](request)

    def client_factory(**kwargs) -> httpx.AsyncClient:
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    app.dependency_overrides[get_settings] = lambda: Settings(proxy_user_agent=USER_AGENT)  # type: ignore[call-arg]
    with patch("sitemap_seo.proxy.httpx.AsyncClient", side_effect=client_factory):
        yield seen, state
    app.dependency_overrides.clear()


@pytest.fixture
def client(upstream) -> TestClient:
    return TestClient(app)


def test_relays_body_with_browser_user_agent(client, upstream):
    seen, _ = upstream

    resp = client.get("/api/fetch", params={"url": "https://example.com/sitemap.xml"})

    assert resp.status_code == 200
    assert resp.text == "<urlset/>"
    assert str(seen[0].url) == "https://example.com/sitemap.xml"
    assert seen[0].headers["user-agent"] == USER_AGENT


def test_missing_url_is_400(client):
    resp = client.get("/api/fetch")
    assert resp.status_code == 400
    assert resp.json() == {"error": "URL is required"}


def test_upstream_error_status_forwarded(client, upstream):
    _, state = upstream
    state["handler"] = lambda request: httpx.Response(404, text="nope")

    resp = client.get("/api/fetch", params={"url": "https://example.com/missing.xml"})

    assert resp.status_code == 404
    assert resp.json() == {
        "error": "Upstream responded with 404",
        "status": 404,
        "data": "nope",
    }


def test_transport_failure_is_502(client, upstream):
    _, state = upstream

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    state["handler"] = refuse

    resp = client.get("/api/fetch", params={"url": "https://down.example.com/"})

    assert resp.status_code == 502
    assert "connection refused" in resp.json()["error"]


def test_follows_redirects(client, upstream):
    seen, state = upstream

    def redirect(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/old.xml":
            return httpx.Response(301, headers={"Location": "https://example.com/new.xml"})
        return httpx.Response(200, text="moved")

    state["handler"] = redirect

    resp = client.get("/api/fetch", params={"url": "https://example.com/old.xml"})

    assert resp.status_code == 200
    assert resp.text == "moved"
    assert [r.url.path for r in seen] == ["/old.xml", "/new.xml"]
