"""Service layer — orchestrates analysis operations for the API routes."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncGenerator

from sitemap_seo.api.schemas import AnalysisRequest, SitemapLocationOut, StoredAnalysis
from sitemap_seo.errors import SitemapSeoError
from sitemap_seo.history.redis import RedisHistoryStore, new_analysis_id
from sitemap_seo.pipeline import AnalysisPipeline
from sitemap_seo.tasks import completion_payload, post_callback, run_background_analysis

logger = logging.getLogger(__name__)

# Keep references so fire-and-forget tasks are not garbage collected mid-run.
_background_tasks: set[asyncio.Task[None]] = set()


async def discover_sitemaps(
    pipeline: AnalysisPipeline,
    target: str,
) -> list[SitemapLocationOut]:
    """Run discovery only and return the sitemap locations found."""
    locations = await pipeline.discover(target)
    return [SitemapLocationOut.from_location(location) for location in locations]


def start_background_analysis(
    pipeline: AnalysisPipeline,
    history: RedisHistoryStore,
    body: AnalysisRequest,
) -> dict[str, str]:
    """Launch a background analysis and return the acceptance payload with analysis_id."""
    analysis_id = new_analysis_id()
    logger.info(
        "background analysis started",
        extra={"analysis_id": analysis_id, "target": body.url, "actor": body.actor},
    )

    task = asyncio.create_task(
        run_background_analysis(
            pipeline=pipeline,
            history=history,
            target=body.url,
            analysis_id=analysis_id,
            actor=body.actor,
            callback_url=body.callback_url,
        )
    )
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return {
        "status": "accepted",
        "analysis_id": analysis_id,
        "message": "Analysis started. Poll the result URL for the outcome.",
    }


async def stream_analysis(
    pipeline: AnalysisPipeline,
    history: RedisHistoryStore,
    body: AnalysisRequest,
) -> AsyncGenerator[dict[str, str], None]:
    """Yield SSE-formatted events from the analysis pipeline.

    If the client disconnects, the analysis keeps running in the background
    so the result still gets stored.
    """
    logger.info("streaming analysis started", extra={"target": body.url, "actor": body.actor})

    queue: asyncio.Queue[tuple[str, dict[str, Any]] | None] = asyncio.Queue()

    async def on_event(event: str, data: dict[str, Any]) -> None:
        await queue.put((event, data))

    async def run_and_signal_done() -> None:
        analysis_id = new_analysis_id()
        status = "completed"
        try:
            result = await pipeline.run(body.url, on_event=on_event)
            await history.save(result, body.actor, body.url, analysis_id=analysis_id)
            await queue.put(("stored", {"analysis_id": analysis_id}))
            logger.info("streaming analysis completed", extra={"analysis_id": analysis_id})
        except SitemapSeoError as exc:
            status = "failed"
            logger.warning("streaming analysis failed", extra={"target": body.url, "error": str(exc)})
            await history.save_failure(analysis_id, body.actor, body.url, str(exc))
            await queue.put(("error", {"message": str(exc), "analysis_id": analysis_id}))
        except Exception:
            status = "failed"
            logger.exception("streaming analysis crashed", extra={"target": body.url})
            await history.save_failure(analysis_id, body.actor, body.url, "Analysis failed")
            await queue.put(("error", {"message": "Analysis failed", "analysis_id": analysis_id}))
        finally:
            if body.callback_url:
                await post_callback(body.callback_url, completion_payload(analysis_id, status))
            await queue.put(None)  # sentinel

    task = asyncio.create_task(run_and_signal_done())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    while True:
        item = await queue.get()
        if item is None:
            break
        event, data = item
        yield {"event": event, "data": json.dumps(data)}


async def get_analysis(
    history: RedisHistoryStore,
    analysis_id: str,
) -> StoredAnalysis | None:
    """Retrieve a stored analysis by analysis_id."""
    return await history.get(analysis_id)
