"""Batch runner — drives the page analyzer over a URL list in throttled batches."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import TYPE_CHECKING, Any, Callable, Coroutine, Sequence

from .models import PageAnalysis

if TYPE_CHECKING:
    from .page import PageAnalyzer

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], Coroutine[Any, Any, None]]

DEFAULT_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY = 1.0


class BatchRunner:
    """Analyzes URLs ``batch_size`` at a time, pausing ``batch_delay`` seconds between batches.

    Every analysis in a batch still queues behind the shared fetch gateway, so
    the batch size bounds how many analyses are pending, not network parallelism.
    """

    def __init__(
        self,
        analyzer: PageAnalyzer,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._analyzer = analyzer
        self._batch_size = batch_size
        self._batch_delay = batch_delay

    async def analyze_all(
        self,
        urls: Sequence[str],
        on_progress: ProgressCallback | None = None,
    ) -> list[PageAnalysis]:
        """Analyze every URL; results come back in completion order."""
        total = len(urls)
        batch_count = math.ceil(total / self._batch_size)
        pages: list[PageAnalysis] = []
        completed = 0

        for batch_number, start in enumerate(range(0, total, self._batch_size), start=1):
            batch = urls[start : start + self._batch_size]
            logger.info(
                "processing batch",
                extra={"batch": batch_number, "batches": batch_count, "size": len(batch)},
            )

            settled = await self._run_batch(batch)

            for page in settled:
                if page is not None:
                    pages.append(page)
                completed += 1
                if on_progress is not None:
                    await on_progress(completed / total * 100)

            if start + self._batch_size < total:
                await asyncio.sleep(self._batch_delay)

        logger.info(
            "batch analysis complete",
            extra={"urls": total, "pages_returned": len(pages)},
        )
        return pages

    async def _run_batch(self, batch: Sequence[str]) -> list[PageAnalysis | None]:
        """Run one batch to completion; ``None`` marks an analysis that raised."""
        tasks = [asyncio.create_task(self._analyzer.analyze(url)) for url in batch]
        settled: list[PageAnalysis | None] = []
        for next_done in asyncio.as_completed(tasks):
            try:
                settled.append(await next_done)
            except Exception:
                logger.warning("page analysis raised, dropping result", exc_info=True)
                settled.append(None)
        return settled
