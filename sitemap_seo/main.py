"""FastAPI app entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sitemap_seo.api.routes import router
from sitemap_seo.config import get_settings
from sitemap_seo.gateway import FetchGateway
from sitemap_seo.history.redis import RedisHistoryStore, create_redis_client
from sitemap_seo.logging_config import setup_logging
from sitemap_seo.pipeline import AnalysisPipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # Initialize logging FIRST so all subsequent operations produce JSON logs
    setup_logging(settings.log_level)
    logger.info("starting sitemap seo service")

    redis_client = await create_redis_client(settings.redis_url)
    history = RedisHistoryStore(redis_client, default_ttl=settings.result_ttl_seconds)

    # One gateway per process: every fetch shares its queue and rate limit
    gateway = FetchGateway(
        settings.proxy_base_url,
        requests_per_second=settings.rate_limit_rps,
        retries=settings.fetch_retries,
        retry_delay=settings.fetch_retry_delay_seconds,
        timeout=settings.fetch_timeout_seconds,
    )
    pipeline = AnalysisPipeline(settings, gateway)

    app.state.settings = settings
    app.state.history = history
    app.state.gateway = gateway
    app.state.pipeline = pipeline

    logger.info(
        "sitemap seo service ready",
        extra={
            "proxy_base_url": settings.proxy_base_url,
            "rate_limit_rps": settings.rate_limit_rps,
            "batch_size": settings.batch_size,
        },
    )

    yield

    logger.info("shutting down sitemap seo service")
    await gateway.close()
    await redis_client.aclose()


app = FastAPI(title="Sitemap SEO Service", lifespan=lifespan)
app.include_router(router)


@app.get("/health")
async def health():
    return {"status": "ok"}
