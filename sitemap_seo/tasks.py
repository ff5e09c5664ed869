"""Background analysis runner and completion callbacks."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import httpx

from sitemap_seo.errors import SitemapSeoError
from sitemap_seo.history.redis import RedisHistoryStore
from sitemap_seo.pipeline import AnalysisPipeline

logger = logging.getLogger(__name__)

_CALLBACK_SCHEMES = ("http", "https")

# Network-level failures only; an HTTP error status from the receiver is final.
_RETRYABLE_ERRORS = (httpx.ConnectError, httpx.TimeoutException)


@dataclass(frozen=True)
class RetryConfig:
    """Exponential backoff for callback delivery."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2**attempt), self.max_delay)


_DEFAULT_RETRY = RetryConfig()


def _parse_hosts(allowed_hosts: str) -> set[str]:
    return {host.strip().lower() for host in allowed_hosts.split(",") if host.strip()}


def validate_callback_url(url: str, allowed_hosts: str) -> bool:
    """True when *url* is a credential-free http(s) URL whose host is allow-listed.

    *allowed_hosts* is a comma-separated list; host comparison ignores case.
    An empty allow-list rejects every callback.
    """
    hosts = _parse_hosts(allowed_hosts)
    if not hosts:
        return False

    parts = urlsplit(url)
    if parts.scheme not in _CALLBACK_SCHEMES:
        return False
    if parts.username or parts.password:
        return False
    return bool(parts.hostname) and parts.hostname in hosts


def completion_payload(analysis_id: str, status: str) -> dict[str, str]:
    return {
        "analysis_id": analysis_id,
        "status": status,
        "result_url": f"/analyses/{analysis_id}",
    }


async def post_callback(
    url: str,
    payload: dict[str, Any],
    retry_config: RetryConfig = _DEFAULT_RETRY,
    *,
    client: httpx.AsyncClient | None = None,
) -> bool:
    """POST *payload* as JSON to *url*; returns whether the receiver accepted it.

    Connection errors and timeouts are retried with backoff. Any other
    failure, including a non-2xx answer, gives up immediately.
    """
    attempts = retry_config.max_retries + 1
    for attempt in range(attempts):
        try:
            if client is not None:
                response = await client.post(url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=10) as owned:
                    response = await owned.post(url, json=payload)
            response.raise_for_status()
            logger.info("callback delivered", extra={"callback_url": url, "attempt": attempt + 1})
            return True
        except _RETRYABLE_ERRORS as exc:
            if attempt + 1 >= attempts:
                logger.warning(
                    "callback delivery gave up",
                    extra={"callback_url": url, "attempts": attempts, "error": str(exc)},
                )
                return False
            delay = retry_config.delay_for(attempt)
            logger.warning(
                "callback delivery failed, retrying",
                extra={"callback_url": url, "attempt": attempt + 1, "delay": delay, "error": str(exc)},
            )
            await asyncio.sleep(delay)
        except Exception:
            logger.warning("callback delivery failed", extra={"callback_url": url}, exc_info=True)
            return False
    return False


async def run_background_analysis(
    pipeline: AnalysisPipeline,
    history: RedisHistoryStore,
    target: str,
    analysis_id: str,
    actor: str | None = None,
    callback_url: str | None = None,
) -> None:
    """Run an analysis in the background, store the outcome, and optionally POST callback."""
    status = "completed"
    try:
        result = await pipeline.run(target)
        await history.save(result, actor, target, analysis_id=analysis_id)
    except SitemapSeoError as exc:
        status = "failed"
        logger.warning(
            "background analysis failed",
            extra={"analysis_id": analysis_id, "target": target, "error": str(exc)},
        )
        await history.save_failure(analysis_id, actor, target, str(exc))
    except Exception:
        status = "failed"
        logger.exception("background analysis crashed", extra={"analysis_id": analysis_id, "target": target})
        await history.save_failure(analysis_id, actor, target, "Analysis failed")

    if callback_url:
        await post_callback(callback_url, completion_payload(analysis_id, status))
