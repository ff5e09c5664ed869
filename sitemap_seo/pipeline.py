"""Analysis pipeline — discover sitemaps, collect page URLs, analyze every page."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sitemap_seo.analysis.batch import BatchRunner
from sitemap_seo.analysis.models import AnalysisResult
from sitemap_seo.analysis.page import PageAnalyzer
from sitemap_seo.analysis.scoring import ScoringThresholds, summarize
from sitemap_seo.errors import DiscoveryError, FetchError
from sitemap_seo.events import EventCallback, emit_event
from sitemap_seo.sitemap import (
    DiscoveryProgress,
    SitemapDiscoverer,
    SitemapKind,
    SitemapLocation,
    parse_sitemap,
)

if TYPE_CHECKING:
    from sitemap_seo.config import Settings
    from sitemap_seo.gateway import Fetcher

logger = logging.getLogger(__name__)


def thresholds_from_settings(settings: Settings) -> ScoringThresholds:
    return ScoringThresholds(
        title_min=settings.title_min_length,
        title_max=settings.title_max_length,
        description_min=settings.description_min_length,
        description_max=settings.description_max_length,
        slow_load_ms=settings.slow_load_ms,
        very_slow_load_ms=settings.very_slow_load_ms,
    )


class AnalysisPipeline:
    """Orchestrates the discover -> collect -> analyze -> summarize pipeline."""

    def __init__(self, settings: Settings, fetcher: Fetcher) -> None:
        self._settings = settings
        self._fetcher = fetcher
        self._discoverer = SitemapDiscoverer(
            fetcher,
            max_index_depth=settings.max_index_depth,
        )
        self._runner = BatchRunner(
            PageAnalyzer(fetcher, thresholds=thresholds_from_settings(settings)),
            batch_size=settings.batch_size,
            batch_delay=settings.batch_delay_seconds,
        )

    async def discover(
        self,
        target: str,
        on_event: EventCallback | None = None,
    ) -> list[SitemapLocation]:
        """Run sitemap discovery, forwarding progress as ``status`` events."""

        async def on_progress(progress: DiscoveryProgress) -> None:
            await emit_event(
                on_event,
                "status",
                {
                    "step": "discovering",
                    "stage": progress.stage.value,
                    "current_attempt": progress.current_attempt,
                    "attempts_made": progress.attempts_made,
                    "sitemaps_found": progress.sitemaps_found,
                },
            )

        return await self._discoverer.discover(target, on_progress=on_progress)

    async def collect_urls(self, locations: list[SitemapLocation]) -> list[str]:
        """Fetch each single sitemap and return its distinct page URLs in first-seen order.

        Index children that discovery did not expand (a direct index hit, or an
        index below the depth limit) are fetched here, one level down.
        """
        known = {location.url for location in locations}
        pending: list[str] = []
        for location in locations:
            if location.kind is SitemapKind.SINGLE:
                pending.append(location.url)
            else:
                pending.extend(child for child in location.children if child not in known)

        seen: set[str] = set()
        urls: list[str] = []
        for sitemap_url in dict.fromkeys(pending):
            try:
                content = await self._fetcher.fetch(sitemap_url)
            except FetchError as exc:
                logger.warning(
                    "sitemap fetch failed, skipping",
                    extra={"url": sitemap_url, "error": exc.message},
                )
                continue
            parsed = parse_sitemap(content)
            if parsed.kind is not SitemapKind.SINGLE:
                continue
            for url in parsed.urls:
                if url not in seen:
                    seen.add(url)
                    urls.append(url)
            logger.debug(
                "sitemap urls collected",
                extra={"url": sitemap_url, "url_count": len(parsed.urls)},
            )
        return urls

    async def run(
        self,
        target: str,
        on_event: EventCallback | None = None,
    ) -> AnalysisResult:
        """Execute the full pipeline for *target* and return the analysis result."""
        logger.info("analysis pipeline started", extra={"target": target})
        await emit_event(on_event, "started", {"target": target})

        await emit_event(on_event, "status", {"step": "discovering", "message": "Looking for sitemaps..."})
        locations = await self.discover(target, on_event)
        if not locations:
            raise DiscoveryError(f"No sitemaps found for {target}")
        await emit_event(
            on_event,
            "discovered",
            {
                "sitemaps": [
                    {"url": loc.url, "kind": loc.kind.value, "source": loc.source.value}
                    for loc in locations
                ]
            },
        )

        await emit_event(on_event, "status", {"step": "collecting", "message": "Reading sitemap URLs..."})
        urls = await self.collect_urls(locations)
        if not urls:
            raise DiscoveryError(f"No URLs found in sitemaps for {target}")
        logger.info(
            "page urls collected",
            extra={"target": target, "sitemaps": len(locations), "url_count": len(urls)},
        )

        await emit_event(
            on_event, "status", {"step": "analyzing", "message": f"Analyzing {len(urls)} pages..."}
        )

        async def on_progress(percent: float) -> None:
            await emit_event(on_event, "progress", {"percent": percent})

        pages = await self._runner.analyze_all(urls, on_progress=on_progress)
        result = AnalysisResult(pages=pages, summary=summarize(pages))

        logger.info(
            "analysis pipeline completed",
            extra={
                "target": target,
                "pages": result.summary.total_pages,
                "critical_issues": result.summary.critical_issues,
                "warnings": result.summary.warnings,
                "average_score": round(result.summary.average_score, 1),
            },
        )
        await emit_event(on_event, "result", {"summary": result.summary.model_dump()})
        await emit_event(on_event, "done", {})
        return result
