from enum import Enum

from pydantic_settings import BaseSettings


class FallbackPolicy(str, Enum):
    """What the fallback strategy returns for courses on an unsupported booking system."""

    EMPTY = "empty"
    SAMPLE = "sample"


class Settings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # "memory://" selects the in-process store
    cache_url: str = "sqlite+aiosqlite:///./teetimes_cache.db"
    cache_ttl_seconds: int = 900

    renderer_enabled: bool = True
    chrome_binary_path: str = ""
    chromedriver_path: str = ""
    renderer_contexts: int = 2
    page_load_timeout_seconds: float = 30.0
    render_settle_seconds: float = 2.0

    upstream_timeout_seconds: float = 10.0
    max_concurrent_fetches: int = 5

    scheduler_enabled: bool = True
    warm_interval_minutes: int = 15
    warm_on_startup: bool = False
    scheduler_api_key: str = ""
    scheduler_service_account: str = ""
    # Expected "aud" claim of scheduler OIDC tokens, usually the service URL
    oidc_audience: str = ""

    timezone: str = "America/Denver"
    fallback_policy: FallbackPolicy = FallbackPolicy.EMPTY
    courses_file: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
