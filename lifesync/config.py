"""Application configuration."""

import os

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Document store (empty URL runs against the in-memory store)
    store_url: str = os.getenv("STORE_URL", "")
    store_token: str = os.getenv("STORE_TOKEN", "")

    # Local cache
    cache_path: str = os.getenv("CACHE_PATH", "data/cache.db")

    # Asset host
    asset_upload_url: str = os.getenv(
        "ASSET_UPLOAD_URL", "https://api.cloudinary.com/v1_1/lifesync/image/upload"
    )
    asset_upload_preset: str = os.getenv("ASSET_UPLOAD_PRESET", "lifesync_unsigned_upload")
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

    # Habits
    lock_window_days: int = int(os.getenv("LOCK_WINDOW_DAYS", "3"))

    # Server
    server_host: str = os.getenv("SERVER_HOST", "0.0.0.0")
    server_port: int = int(os.getenv("SERVER_PORT", "8000"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False


settings = Settings()
