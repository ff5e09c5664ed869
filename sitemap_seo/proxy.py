"""Fetch proxy: relays GET requests with a browser User-Agent and returns the body as text."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from sitemap_seo.config import Settings, get_settings
from sitemap_seo.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("fetch proxy ready", extra={"timeout": settings.proxy_timeout_seconds})
    yield


app = FastAPI(title="Sitemap SEO Fetch Proxy", lifespan=lifespan)


@app.get("/api/fetch")
async def fetch(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Response:
    url = request.query_params.get("url")
    if not url:
        return JSONResponse(status_code=400, content={"error": "URL is required"})

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            headers={"User-Agent": settings.proxy_user_agent},
            timeout=settings.proxy_timeout_seconds,
        ) as client:
            resp = await client.get(url)
    except httpx.InvalidURL as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except Exception as exc:
        logger.warning("proxy fetch failed", extra={"url": url}, exc_info=True)
        return JSONResponse(status_code=502, content={"error": str(exc) or type(exc).__name__})

    if not resp.is_success:
        logger.info("upstream error status", extra={"url": url, "status": resp.status_code})
        return JSONResponse(
            status_code=resp.status_code,
            content={
                "error": f"Upstream responded with {resp.status_code}",
                "status": resp.status_code,
                "data": resp.text,
            },
        )

    logger.debug("proxied", extra={"url": url, "length": len(resp.text)})
    return PlainTextResponse(resp.text, status_code=resp.status_code)
