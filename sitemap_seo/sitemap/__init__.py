"""Sitemap parsing and discovery."""

from .discovery import (
    COMMON_SITEMAP_PATHS,
    MAX_INDEX_DEPTH,
    SitemapDiscoverer,
    extract_robots_sitemaps,
    normalize_url,
)
from .models import (
    DiscoveryProgress,
    DiscoveryStage,
    ParsedSitemap,
    SitemapKind,
    SitemapLocation,
    SitemapSource,
)
from .parser import parse_sitemap

__all__ = [
    "COMMON_SITEMAP_PATHS",
    "MAX_INDEX_DEPTH",
    "DiscoveryProgress",
    "DiscoveryStage",
    "ParsedSitemap",
    "SitemapDiscoverer",
    "SitemapKind",
    "SitemapLocation",
    "SitemapSource",
    "extract_robots_sitemaps",
    "normalize_url",
    "parse_sitemap",
]
