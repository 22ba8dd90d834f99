import os
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # --- Upstream sources ---
    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3", alias="TMDB_BASE_URL")
    tmdb_language: str = Field(default="fr-FR", alias="TMDB_LANGUAGE")
    tmdb_image_base_url: str = Field(default="https://image.tmdb.org/t/p", alias="TMDB_IMAGE_BASE_URL")

    rapidapi_key: str | None = Field(default=None, alias="RAPIDAPI_KEY")
    rapidapi_host: str = Field(default="streaming-availability.p.rapidapi.com", alias="RAPIDAPI_HOST")
    streaming_api_base_url: str = Field(default="https://streaming-availability.p.rapidapi.com", alias="STREAMING_API_BASE_URL")

    adapter_timeout_seconds: float = Field(default=8.0, alias="ADAPTER_TIMEOUT_SECONDS")
    adapter_retries: int = Field(default=3, alias="ADAPTER_RETRIES")
    adapter_backoff_seconds: float = Field(default=0.5, alias="ADAPTER_BACKOFF_SECONDS")

    # --- Pipeline policy ---
    cache_days: int = Field(default=7, alias="CACHE_DAYS")
    # Addon offers remapped to their own platform are recorded as subscriptions
    promote_addons: bool = Field(default=True, alias="PROMOTE_ADDONS")
    # JSON {"provider_id": "Name"} merged over the built-in provider table
    platform_provider_map: str | None = Field(default=None, alias="PLATFORM_PROVIDER_MAP")

    # Environment and CORS
    environment: str = Field("dev", alias="ENVIRONMENT")  # dev|prod
    allow_origins: str = Field("*", alias="ALLOW_ORIGINS")
    admin_token: str | None = Field(default=None, alias="ADMIN_TOKEN")
    enable_debug_endpoints: bool = Field(default=False, alias="ENABLE_DEBUG_ENDPOINTS")

    use_sqlite: bool = Field(default=True, alias="USE_SQLITE")
    disable_redis: bool = Field(default=True, alias="DISABLE_REDIS")
    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # --- Stale refresh job ---
    stale_refresh_limit: int = Field(100, alias="STALE_REFRESH_LIMIT")
    stale_refresh_hour: int = Field(3, alias="STALE_REFRESH_HOUR")

    # --- Build info ---
    app_version: str = Field("0.1.0", alias="APP_VERSION")
    git_sha: str | None = Field(None, alias="GIT_SHA")

    def resolved_database_url(self) -> str:
        if self.use_sqlite:
            return (self.database_url or "sqlite:///./.local/availability.db")
        if self.database_url:
            return self.database_url
        user = os.getenv("POSTGRES_USER", "dev")
        password = os.getenv("POSTGRES_PASSWORD", "dev")
        host = os.getenv("POSTGRES_HOST", "localhost")
        port = os.getenv("POSTGRES_PORT", "5432")
        db = os.getenv("POSTGRES_DB", "availability")
        return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db}"

    def resolved_redis_url(self) -> str | None:
        if self.disable_redis:
            return None
        return self.redis_url or os.getenv("REDIS_URL")

    def origins(self) -> list[str]:
        return [o.strip() for o in self.allow_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
