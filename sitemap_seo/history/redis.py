"""Redis-backed analysis history — the sink for finished analysis results."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Protocol
from urllib.parse import urlsplit

import redis.asyncio as redis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry

from sitemap_seo.analysis.models import AnalysisResult
from sitemap_seo.api.schemas import StoredAnalysis

logger = logging.getLogger(__name__)

KEY_PREFIX = "analysis:"


def new_analysis_id() -> str:
    return uuid.uuid4().hex[:12]


class HistoryStore(Protocol):
    """Protocol for analysis history sinks."""

    async def save(
        self,
        result: AnalysisResult,
        actor: str | None,
        source_url: str,
        *,
        analysis_id: str | None = None,
    ) -> StoredAnalysis: ...


class RedisHistoryStore:
    """Thin async wrapper around Redis for persisting analysis records."""

    def __init__(self, client: redis.Redis, default_ttl: int = 86400) -> None:
        self._client = client
        self._default_ttl = default_ttl

    async def save(
        self,
        result: AnalysisResult,
        actor: str | None,
        source_url: str,
        *,
        analysis_id: str | None = None,
    ) -> StoredAnalysis:
        """Persist a completed analysis and return the stored record."""
        record = StoredAnalysis(
            analysis_id=analysis_id or new_analysis_id(),
            actor=actor,
            source_url=source_url,
            status="completed",
            results=result,
            created_at=datetime.now(timezone.utc),
        )
        await self._write(record)
        return record

    async def save_failure(
        self,
        analysis_id: str,
        actor: str | None,
        source_url: str,
        message: str,
    ) -> StoredAnalysis:
        """Persist a failed analysis so pollers see why it stopped."""
        record = StoredAnalysis(
            analysis_id=analysis_id,
            actor=actor,
            source_url=source_url,
            status="failed",
            error=message,
            created_at=datetime.now(timezone.utc),
        )
        await self._write(record)
        return record

    async def get(self, analysis_id: str) -> StoredAnalysis | None:
        """Return the stored record, or ``None`` on miss / error."""
        try:
            raw = await self._client.get(f"{KEY_PREFIX}{analysis_id}")
            if raw is None:
                logger.debug("history miss", extra={"analysis_id": analysis_id})
                return None
            return StoredAnalysis.model_validate_json(raw)
        except redis.RedisError:
            logger.warning("history get failed", extra={"analysis_id": analysis_id}, exc_info=True)
            return None

    async def _write(self, record: StoredAnalysis) -> bool:
        try:
            await self._client.set(
                f"{KEY_PREFIX}{record.analysis_id}",
                record.model_dump_json(),
                ex=self._default_ttl,
            )
            logger.info(
                "analysis saved",
                extra={
                    "analysis_id": record.analysis_id,
                    "status": record.status,
                    "source_url": record.source_url,
                    "ttl": self._default_ttl,
                },
            )
            return True
        except redis.RedisError:
            logger.warning(
                "history save failed", extra={"analysis_id": record.analysis_id}, exc_info=True
            )
            return False


async def create_redis_client(redis_url: str) -> redis.Redis:
    """Client with retry on transient connection and timeout errors."""
    parts = urlsplit(redis_url)
    logger.info(
        "connecting to redis",
        extra={"redis_host": parts.hostname, "redis_port": parts.port, "redis_db": parts.path.lstrip("/") or "0"},
    )
    retry = Retry(ExponentialBackoff(), retries=3)
    return redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
        retry=retry,
        retry_on_error=[redis.ConnectionError, redis.TimeoutError],
    )
