"""Sitemap discovery — direct URL, robots.txt, well-known paths, then index expansion."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Callable, Coroutine
from urllib.parse import urljoin, urlsplit, urlunsplit

from sitemap_seo.errors import DiscoveryError, FetchError

from .models import (
    DiscoveryProgress,
    DiscoveryStage,
    SitemapKind,
    SitemapLocation,
    SitemapSource,
)
from .parser import parse_sitemap

if TYPE_CHECKING:
    from sitemap_seo.gateway import Fetcher

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[DiscoveryProgress], Coroutine[Any, Any, None]]

COMMON_SITEMAP_PATHS: tuple[str, ...] = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemaps/sitemap.xml",
    "/wp-sitemap.xml",
    "/sitemap.php",
    "/sitemap.txt",
)

# Indexes found at this many levels below a root sitemap are kept but not expanded.
MAX_INDEX_DEPTH = 1

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")
_VALID_SCHEMES = ("http", "https")
_FALLBACK_SCHEMES = ("https", "http")


def _validated(candidate: str) -> str | None:
    """Return *candidate* in canonical form, or ``None`` if it is not a usable http(s) URL."""
    if any(ch.isspace() for ch in candidate):
        return None
    try:
        parts = urlsplit(candidate)
        parts.port  # raises ValueError on a malformed port
    except ValueError:
        return None
    if parts.scheme.lower() not in _VALID_SCHEMES or not parts.hostname:
        return None
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc, parts.path or "/", parts.query, parts.fragment)
    )


def normalize_url(raw: str) -> str:
    """Trim *raw* and turn it into an absolute http(s) URL.

    Inputs without a scheme are tried as ``https://`` first, then ``http://``.
    Raises :class:`DiscoveryError` when no form is a valid URL.
    """
    candidate = raw.strip()
    if not candidate:
        raise DiscoveryError("Invalid URL format: empty input")

    if _SCHEME_RE.match(candidate):
        normalized = _validated(candidate)
        if normalized is None:
            raise DiscoveryError(f"Invalid URL format: {raw!r}")
        return normalized

    for scheme in _FALLBACK_SCHEMES:
        normalized = _validated(f"{scheme}://{candidate}")
        if normalized is not None:
            return normalized
    raise DiscoveryError(f"Invalid URL format: {raw!r}")


def site_origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def extract_robots_sitemaps(robots_txt: str, robots_url: str) -> list[str]:
    """Return the normalized URLs of every ``Sitemap:`` directive in *robots_txt*."""
    found: list[str] = []
    for line in robots_txt.splitlines():
        stripped = line.strip()
        if not stripped.lower().startswith("sitemap:"):
            continue
        value = stripped.split(":", 1)[1].strip()
        if not value:
            continue
        if not _SCHEME_RE.match(value):
            value = urljoin(robots_url, value)
        try:
            found.append(normalize_url(value))
        except DiscoveryError:
            logger.warning(
                "ignoring invalid sitemap directive",
                extra={"robots_url": robots_url, "value": value},
            )
    return found


class _DiscoveryRun:
    """Mutable bookkeeping for a single :meth:`SitemapDiscoverer.discover` call."""

    def __init__(self, on_progress: ProgressCallback | None) -> None:
        self.on_progress = on_progress
        self.sitemaps: list[SitemapLocation] = []
        self.attempts = 0
        self.seen: set[str] = set()

    async def report(self, stage: DiscoveryStage, url: str) -> None:
        if self.on_progress is None:
            return
        await self.on_progress(
            DiscoveryProgress(
                stage=stage,
                current_attempt=url,
                attempts_made=self.attempts,
                sitemaps_found=len(self.sitemaps),
            )
        )


class SitemapDiscoverer:
    """Locates a site's sitemaps and expands sitemap indexes."""

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        common_paths: tuple[str, ...] = COMMON_SITEMAP_PATHS,
        max_index_depth: int = MAX_INDEX_DEPTH,
    ) -> None:
        self._fetcher = fetcher
        self._common_paths = common_paths
        self._max_index_depth = max_index_depth

    async def validate_sitemap(
        self,
        url: str,
        source: SitemapSource = SitemapSource.DISCOVERED,
    ) -> SitemapLocation | None:
        """Fetch and classify *url*. Returns ``None`` if nothing sitemap-like lives there."""
        try:
            content = await self._fetcher.fetch(url)
        except FetchError as exc:
            logger.info(
                "sitemap candidate unavailable",
                extra={"url": url, "status_code": exc.status_code, "error": exc.message},
            )
            return None

        parsed = parse_sitemap(content)
        if parsed.kind is None or parsed.is_empty:
            logger.debug("sitemap candidate empty", extra={"url": url})
            return None

        if parsed.kind is SitemapKind.INDEX:
            children: list[str] = []
            for child in parsed.child_urls:
                try:
                    children.append(normalize_url(child))
                except DiscoveryError:
                    logger.warning(
                        "ignoring invalid child sitemap",
                        extra={"index_url": url, "child": child},
                    )
            return SitemapLocation(
                url=url, kind=SitemapKind.INDEX, source=source, children=tuple(children)
            )
        return SitemapLocation(url=url, kind=SitemapKind.SINGLE, source=source)

    async def discover(
        self,
        target: str,
        on_progress: ProgressCallback | None = None,
    ) -> list[SitemapLocation]:
        """Find every sitemap reachable from *target* (a domain or a sitemap URL)."""
        normalized = normalize_url(target)
        run = _DiscoveryRun(on_progress)
        logger.info("sitemap discovery started", extra={"target": normalized})

        # --- Direct: the input already looks like a sitemap ---
        if "sitemap" in normalized.lower():
            location = await self._attempt(run, DiscoveryStage.DIRECT, normalized, SitemapSource.DIRECT)
            if location is not None:
                run.sitemaps.append(location)
                logger.info(
                    "sitemap discovery completed",
                    extra={"target": normalized, "stage": "direct", "sitemaps_found": 1},
                )
                return run.sitemaps

        origin = site_origin(normalized)

        # --- robots.txt ---
        for url in await self._robots_sitemaps(run, origin):
            location = await self._attempt(run, DiscoveryStage.ROBOTS, url, SitemapSource.ROBOTS)
            if location is not None:
                run.sitemaps.append(location)

        # --- Well-known paths, only if robots.txt advertised nothing usable ---
        if not run.sitemaps:
            for path in self._common_paths:
                location = await self._attempt(run, DiscoveryStage.COMMON, f"{origin}{path}")
                if location is None:
                    continue
                run.sitemaps.append(location)
                if location.kind is SitemapKind.SINGLE:
                    break

        await self._expand_indexes(run)

        logger.info(
            "sitemap discovery completed",
            extra={
                "target": normalized,
                "attempts": run.attempts,
                "sitemaps_found": len(run.sitemaps),
            },
        )
        return run.sitemaps

    async def _robots_sitemaps(self, run: _DiscoveryRun, origin: str) -> list[str]:
        robots_url = f"{origin}/robots.txt"
        run.attempts += 1
        try:
            robots_txt = await self._fetcher.fetch(robots_url)
        except FetchError as exc:
            logger.info(
                "robots.txt unavailable",
                extra={"url": robots_url, "status_code": exc.status_code, "error": exc.message},
            )
            robots_txt = ""
        await run.report(DiscoveryStage.ROBOTS, robots_url)

        found = extract_robots_sitemaps(robots_txt, robots_url)
        logger.debug("robots.txt sitemaps", extra={"url": robots_url, "sitemaps": found})
        return found

    async def _attempt(
        self,
        run: _DiscoveryRun,
        stage: DiscoveryStage,
        url: str,
        source: SitemapSource = SitemapSource.DISCOVERED,
    ) -> SitemapLocation | None:
        """Validate *url* once per run and report progress afterwards."""
        if url in run.seen:
            return None
        run.seen.add(url)
        run.attempts += 1
        location = await self.validate_sitemap(url, source)
        await run.report(stage, url)
        return location

    async def _expand_indexes(self, run: _DiscoveryRun) -> None:
        """Expand index sitemaps breadth-first, at most ``max_index_depth`` levels deep."""
        work: list[tuple[SitemapLocation, int]] = [
            (location, 0) for location in run.sitemaps if location.kind is SitemapKind.INDEX
        ]
        while work:
            index, depth = work.pop(0)
            if depth >= self._max_index_depth:
                logger.debug(
                    "index depth limit reached, not expanding",
                    extra={"url": index.url, "depth": depth},
                )
                continue
            for child_url in index.children:
                child = await self._attempt(run, DiscoveryStage.INDEX, child_url)
                if child is None:
                    continue
                run.sitemaps.append(child)
                if child.kind is SitemapKind.INDEX:
                    work.append((child, depth + 1))
