from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Read from RESYNC_* environment variables and a local .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    # Admin API Configuration
    base_url: str = Field(default="http://localhost:3000/api/admin", alias="RESYNC_BASE_URL")
    access_token: str = Field(default="", alias="RESYNC_ACCESS_TOKEN")

    # Controller Configuration
    page_limit: int = Field(default=20, alias="RESYNC_PAGE_LIMIT")
    debounce_ms: int = Field(default=300, alias="RESYNC_DEBOUNCE_MS")

    # Retry Configuration
    max_retries: int = Field(default=3, alias="RESYNC_MAX_RETRIES")
    base_delay: float = Field(default=1.0, alias="RESYNC_BASE_DELAY")
    max_delay: float = Field(default=5.0, alias="RESYNC_MAX_DELAY")
    request_timeout: float = Field(default=10.0, alias="RESYNC_REQUEST_TIMEOUT")

    # Reference data cache
    cache_ttl_seconds: float = Field(default=300.0, alias="RESYNC_CACHE_TTL")

    debug: bool = Field(default=False, alias="RESYNC_DEBUG")


global_settings = Settings()
