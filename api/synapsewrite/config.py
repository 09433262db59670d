"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: str = "development"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Language-model provider
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    system_prompt: str = "You are a helpful assistant."
    default_max_tokens: int = 1200

    # Upstream timeouts (seconds). The read timeout bounds each chunk read.
    upstream_connect_timeout: float = 10.0
    upstream_read_timeout: float = 60.0

    # Fall back to a blocking completion when a stream ends without any text
    fallback_on_empty_stream: bool = True

    # Rate limiting
    rate_limit_storage_url: str | None = None  # e.g. async+redis://localhost:6379
    stream_rate_limit_max: int = 6
    stream_rate_limit_window: int = 60
    refresh_rate_limit_max: int = 10
    refresh_rate_limit_window: int = 60
    payment_rate_limit: str = "20/minute"
    export_rate_limit: str = "10/minute"
    generate_rate_limit: str = "10/minute"

    # Search-grounded generation
    generate_max_tokens: int = 2000
    generate_temperature: float = 0.0

    # Sources refresh
    serpapi_key: str | None = None
    cache_ttl: int = 600

    # Log forwarding
    logflare_source_id: str | None = None
    logflare_api_key: str | None = None

    # WordPress export
    wp_site: str | None = None
    wp_user: str | None = None
    wp_app_password: str | None = None

    # Razorpay
    razorpay_key_id: str | None = None
    razorpay_key_secret: str | None = None
    razorpay_webhook_secret: str | None = None
    razorpay_mock: bool = False

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins, filtering empty strings."""
        if not self.cors_origins:
            return ["http://localhost:3000"]
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins if origins else ["http://localhost:3000"]

    @property
    def logflare_enabled(self) -> bool:
        return bool(self.logflare_source_id and self.logflare_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
