"""Background analysis and callback delivery tests."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from sitemap_seo.analysis.models import AnalysisResult, AnalysisSummary
from sitemap_seo.errors import DiscoveryError
from sitemap_seo.tasks import RetryConfig, post_callback, run_background_analysis, validate_callback_url

CALLBACK = "https://hooks.example.com/done"


class StubPipeline:
    def __init__(self, result: AnalysisResult | None = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error

    async def run(self, target, on_event=None):
        if self.error is not None:
            raise self.error
        return self.result


class TestValidateCallbackUrl:
    def test_allowed_host(self) -> None:
        assert validate_callback_url(CALLBACK, "hooks.example.com")

    def test_host_match_ignores_case(self) -> None:
        assert validate_callback_url("https://HOOKS.example.com/x", " Hooks.Example.com , other.com")

    def test_host_not_listed(self) -> None:
        assert not validate_callback_url("https://evil.com/x", "hooks.example.com")

    def test_empty_allow_list_rejects(self) -> None:
        assert not validate_callback_url(CALLBACK, "")
        assert not validate_callback_url(CALLBACK, " , ")

    def test_rejects_other_schemes(self) -> None:
        assert not validate_callback_url("ftp://hooks.example.com/x", "hooks.example.com")

    def test_rejects_credentials(self) -> None:
        assert not validate_callback_url("https://user:pw@hooks.example.com/x", "hooks.example.com")


@pytest.mark.asyncio
async def test_background_success_saves_and_calls_back(history_store):
    result = AnalysisResult(summary=AnalysisSummary(total_pages=0))
    callback = AsyncMock(return_value=True)

    with patch("sitemap_seo.tasks.post_callback", callback):
        await run_background_analysis(
            StubPipeline(result=result), history_store, "example.com", "id-1",
            actor="user-1", callback_url=CALLBACK,
        )

    stored = await history_store.get("id-1")
    assert stored.status == "completed"
    assert stored.actor == "user-1"
    assert stored.source_url == "example.com"
    callback.assert_awaited_once_with(
        CALLBACK, {"analysis_id": "id-1", "status": "completed", "result_url": "/analyses/id-1"}
    )


@pytest.mark.asyncio
async def test_background_domain_failure_is_stored(history_store):
    callback = AsyncMock(return_value=True)

    with patch("sitemap_seo.tasks.post_callback", callback):
        await run_background_analysis(
            StubPipeline(error=DiscoveryError("No sitemaps found for example.com")),
            history_store, "example.com", "id-2", callback_url=CALLBACK,
        )

    stored = await history_store.get("id-2")
    assert stored.status == "failed"
    assert stored.error == "No sitemaps found for example.com"
    assert callback.await_args.args[1]["status"] == "failed"


@pytest.mark.asyncio
async def test_background_unexpected_failure_hides_details(history_store):
    await run_background_analysis(
        StubPipeline(error=RuntimeError("secret internals")), history_store, "example.com", "id-3",
    )

    stored = await history_store.get("id-3")
    assert stored.status == "failed"
    assert stored.error == "Analysis failed"


@pytest.mark.asyncio
async def test_no_callback_without_url(history_store):
    callback = AsyncMock()
    with patch("sitemap_seo.tasks.post_callback", callback):
        await run_background_analysis(
            StubPipeline(result=AnalysisResult()), history_store, "example.com", "id-4",
        )
    callback.assert_not_awaited()


# --- callback delivery ---


@pytest.mark.asyncio
async def test_post_callback_delivers_json():
    received: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(204)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await post_callback(CALLBACK, {"status": "completed"}, client=client)

    assert len(received) == 1
    assert received[0].method == "POST"
    assert json.loads(received[0].content) == {"status": "completed"}


@pytest.mark.asyncio
async def test_post_callback_retries_connection_errors():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200)

    sleep = AsyncMock()
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with patch("sitemap_seo.tasks.asyncio.sleep", sleep):
            delivered = await post_callback(CALLBACK, {}, RetryConfig(base_delay=1.0), client=client)

    assert delivered
    assert calls == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_post_callback_gives_up_after_max_retries():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.ConnectTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with patch("sitemap_seo.tasks.asyncio.sleep", AsyncMock()):
            delivered = await post_callback(CALLBACK, {}, RetryConfig(max_retries=2), client=client)

    assert not delivered
    assert calls == 3


@pytest.mark.asyncio
async def test_post_callback_does_not_retry_server_errors():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(500)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert not await post_callback(CALLBACK, {}, client=client)

    assert calls == 1


def test_backoff_is_capped():
    config = RetryConfig(base_delay=1.0, max_delay=5.0)
    assert [config.delay_for(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]
