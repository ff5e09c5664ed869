"""Fetches one page, extracts its on-page signals and scores them."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup
from bs4.element import Tag

from sitemap_seo.errors import AnalysisError, FetchError

from .models import (
    FieldAnalysis,
    ImageAnalysis,
    PageAnalysis,
    PerformanceAnalysis,
    SeoIssue,
    Severity,
)
from .scoring import (
    DEFAULT_THRESHOLDS,
    ScoringThresholds,
    analyze_description,
    analyze_images,
    analyze_load_time,
    analyze_title,
    calculate_seo_score,
)

if TYPE_CHECKING:
    from sitemap_seo.gateway import Fetcher

logger = logging.getLogger(__name__)

_DESCRIPTION_NAME_RE = re.compile(r"^\s*description\s*$", re.IGNORECASE)


@dataclass
class ExtractedPage:
    """Raw on-page signals pulled out of an HTML document."""

    title: str = ""
    description: str = ""
    images: list[ImageAnalysis] = field(default_factory=list)


def looks_like_html(content: str) -> bool:
    lowered = content.lower()
    return "<!doctype html" in lowered or "<html" in lowered


def _parse_dimension(value: object) -> int | None:
    """Integer width/height attribute, or ``None`` when absent or non-numeric."""
    if not isinstance(value, str):
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def extract_page(html: str) -> ExtractedPage:
    """Extract title, meta description and images from *html*."""
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as exc:
        raise AnalysisError(f"Could not parse HTML: {exc}") from exc

    title_tag = soup.find("title")
    title = title_tag.get_text().strip() if isinstance(title_tag, Tag) else ""

    description = ""
    meta = soup.find("meta", attrs={"name": _DESCRIPTION_NAME_RE})
    if isinstance(meta, Tag):
        content = meta.get("content")
        if isinstance(content, str):
            description = content.strip()

    images: list[ImageAnalysis] = []
    for img in soup.find_all("img"):
        if not isinstance(img, Tag):
            continue
        src = img.get("src")
        alt = img.get("alt")
        images.append(
            ImageAnalysis(
                src=src if isinstance(src, str) else "",
                has_alt=img.has_attr("alt"),
                alt_text=alt if isinstance(alt, str) else None,
                width=_parse_dimension(img.get("width")),
                height=_parse_dimension(img.get("height")),
            )
        )

    return ExtractedPage(title=title, description=description, images=images)


def failed_page_analysis(url: str, error: BaseException) -> PageAnalysis:
    """Degraded result for a page that could not be fetched or parsed."""
    return PageAnalysis(
        url=url,
        title=FieldAnalysis(),
        description=FieldAnalysis(),
        performance=PerformanceAnalysis(),
        images=[],
        score=0,
        issues=[
            SeoIssue(
                severity=Severity.ERROR,
                message="Failed to analyze page",
                details=str(error) or "Unknown error",
            )
        ],
    )


class PageAnalyzer:
    """Scores one page on title, description, load time and image alt text."""

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self._fetcher = fetcher
        self._thresholds = thresholds

    async def analyze(self, url: str) -> PageAnalysis:
        """Analyze *url*. Never raises; failures come back as a zero-score result."""
        try:
            return await self._analyze(url)
        except Exception as exc:
            logger.warning(
                "page analysis failed",
                extra={"url": url, "error": str(exc)},
                exc_info=not isinstance(exc, (AnalysisError, FetchError)),
            )
            return failed_page_analysis(url, exc)

    async def _analyze(self, url: str) -> PageAnalysis:
        started = time.perf_counter()
        content = await self._fetcher.fetch(url)
        load_time_ms = (time.perf_counter() - started) * 1000

        extracted = extract_page(content) if looks_like_html(content) else ExtractedPage()

        title = analyze_title(extracted.title, self._thresholds)
        description = analyze_description(extracted.description, self._thresholds)
        performance = analyze_load_time(load_time_ms, self._thresholds)
        image_issues = analyze_images(extracted.images)

        issues = [*title.issues, *description.issues, *performance.issues, *image_issues]
        analysis = PageAnalysis(
            url=url,
            title=title,
            description=description,
            performance=performance,
            images=extracted.images,
            score=calculate_seo_score(issues),
            issues=issues,
        )
        logger.debug(
            "page analyzed",
            extra={
                "url": url,
                "score": analysis.score,
                "issue_count": len(issues),
                "load_time_ms": round(load_time_ms),
                "image_count": len(extracted.images),
            },
        )
        return analysis
