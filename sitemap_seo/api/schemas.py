"""Request/response Pydantic models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from sitemap_seo.analysis.models import AnalysisResult
from sitemap_seo.sitemap.models import SitemapKind, SitemapLocation, SitemapSource


class DiscoverRequest(BaseModel):
    url: str


class AnalysisRequest(BaseModel):
    url: str
    mode: Literal["stream", "background"] = "background"
    actor: str | None = None
    callback_url: str | None = None


class SitemapLocationOut(BaseModel):
    url: str
    kind: SitemapKind
    source: SitemapSource
    children: list[str] = []

    @classmethod
    def from_location(cls, location: SitemapLocation) -> "SitemapLocationOut":
        return cls(
            url=location.url,
            kind=location.kind,
            source=location.source,
            children=list(location.children),
        )


class StoredAnalysis(BaseModel):
    analysis_id: str
    actor: str | None = None
    source_url: str
    status: Literal["completed", "failed"] = "completed"
    results: AnalysisResult | None = None
    error: str | None = None
    created_at: datetime
