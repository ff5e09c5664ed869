"""Exception types shared across the discovery and analysis pipeline."""

from __future__ import annotations


class SitemapSeoError(Exception):
    """Base class for pipeline errors."""


class FetchError(SitemapSeoError):
    """A proxied fetch failed after its retry budget was exhausted."""

    def __init__(self, url: str, status_code: int | None, message: str) -> None:
        super().__init__(f"Failed to fetch {url}: {message}")
        self.url = url
        self.status_code = status_code
        self.message = message


class DiscoveryError(SitemapSeoError):
    """Input could not be normalized, or discovery produced nothing usable."""


class ParseError(SitemapSeoError):
    """Sitemap content matched no known shape."""


class AnalysisError(SitemapSeoError):
    """A single page could not be analyzed."""
