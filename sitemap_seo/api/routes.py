"""POST /discover, POST /analyses, GET /analyses/{id} endpoint handlers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from sitemap_seo.api import service
from sitemap_seo.api.schemas import AnalysisRequest, DiscoverRequest, SitemapLocationOut, StoredAnalysis
from sitemap_seo.config import Settings
from sitemap_seo.errors import DiscoveryError
from sitemap_seo.history.redis import RedisHistoryStore
from sitemap_seo.pipeline import AnalysisPipeline
from sitemap_seo.tasks import validate_callback_url

router = APIRouter()


def _get_pipeline(request: Request) -> AnalysisPipeline:
    return request.app.state.pipeline


def _get_history(request: Request) -> RedisHistoryStore:
    return request.app.state.history


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.post("/discover", response_model=list[SitemapLocationOut])
async def discover(
    body: DiscoverRequest,
    pipeline: AnalysisPipeline = Depends(_get_pipeline),
):
    try:
        return await service.discover_sitemaps(pipeline, body.url)
    except DiscoveryError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/analyses")
async def create_analysis(
    body: AnalysisRequest,
    pipeline: AnalysisPipeline = Depends(_get_pipeline),
    history: RedisHistoryStore = Depends(_get_history),
    settings: Settings = Depends(_get_settings),
):
    if body.callback_url:
        if not validate_callback_url(body.callback_url, settings.allowed_callback_hosts):
            raise HTTPException(
                status_code=422,
                detail="callback_url host not in ALLOWED_CALLBACK_HOSTS",
            )

    if body.mode == "background":
        return service.start_background_analysis(pipeline, history, body)

    return EventSourceResponse(service.stream_analysis(pipeline, history, body))


@router.get("/analyses/{analysis_id}", response_model=StoredAnalysis)
async def get_analysis(
    analysis_id: str,
    history: RedisHistoryStore = Depends(_get_history),
):
    record = await service.get_analysis(history, analysis_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Analysis not found or expired")
    return record
