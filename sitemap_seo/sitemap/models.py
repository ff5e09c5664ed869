"""Data models for the sitemap submodule."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SitemapKind(str, Enum):
    SINGLE = "single"
    INDEX = "index"


class SitemapSource(str, Enum):
    ROBOTS = "robots"
    DIRECT = "direct"
    DISCOVERED = "discovered"


class DiscoveryStage(str, Enum):
    DIRECT = "direct"
    ROBOTS = "robots"
    COMMON = "common"
    INDEX = "index"


@dataclass(frozen=True)
class ParsedSitemap:
    """Result of parsing one sitemap document.

    ``kind`` is ``None`` when the content matched no known shape.
    """

    kind: SitemapKind | None = None
    urls: tuple[str, ...] = ()
    child_urls: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.urls and not self.child_urls


@dataclass(frozen=True)
class SitemapLocation:
    """A sitemap found during discovery. ``children`` is only populated for indexes."""

    url: str
    kind: SitemapKind
    source: SitemapSource
    children: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DiscoveryProgress:
    stage: DiscoveryStage
    current_attempt: str
    attempts_made: int
    sitemaps_found: int
