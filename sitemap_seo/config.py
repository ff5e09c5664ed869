"""Settings loaded from environment variables and .env."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "extra": "ignore"}

    proxy_base_url: str = "http://localhost:3003"
    rate_limit_rps: float = 100.0
    fetch_retries: int = 2
    fetch_retry_delay_seconds: float = 1.0
    fetch_timeout_seconds: float | None = None

    batch_size: int = 10
    batch_delay_seconds: float = 1.0
    max_index_depth: int = 1

    title_min_length: int = 30
    title_max_length: int = 60
    description_min_length: int = 120
    description_max_length: int = 155
    slow_load_ms: float = 3000.0
    very_slow_load_ms: float = 5000.0

    redis_url: str = "redis://localhost:6379"
    allowed_callback_hosts: str = ""
    result_ttl_seconds: int = 86400

    proxy_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )
    proxy_timeout_seconds: float = 30.0
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
