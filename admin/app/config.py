# admin/app/config.py
from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve repo root: repo/ (since this file is repo/admin/app/config.py)
REPO_ENV = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    """
    Central config for the curation admin. Uses Pydantic v2 + pydantic-settings.

    - Loads env from the repo root .env if present
    - Ignores unknown env vars
    - Case-insensitive env keys
    - Defaults reproduce the published site layout (docs/data, docs/assets/images)
    """

    model_config = SettingsConfigDict(
        env_file=str(REPO_ENV),
        extra="ignore",
        case_sensitive=False,
    )

    # --- Catalog layout -------------------------------------------------------
    DATA_DIR: str = "docs/data"
    ITEMS_SUBDIR: str = "items"
    INDEX_FILENAME: str = "collections.json"
    CATEGORIES_FILENAME: str = "categories.json"

    # --- Images ---------------------------------------------------------------
    IMAGES_DIR: str = "docs/assets/images"
    PUBLIC_IMAGES_PREFIX: str = "/assets/images"
    SITE_DIR: str = "docs"

    FULL_MAX_WIDTH: int = 1200
    FULL_MAX_HEIGHT: int = 800
    FULL_QUALITY: int = 85
    THUMB_WIDTH: int = 400
    THUMB_HEIGHT: int = 225
    THUMB_QUALITY: int = 80

    # --- Outbound HTTP --------------------------------------------------------
    HTTP_TIMEOUT_MS: int = 30000
    HTTP_USER_AGENT: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )

    # --- GitHub ---------------------------------------------------------------
    GITHUB_TOKEN: str = ""
    GITHUB_API_URL: str = "https://api.github.com"

    # --- Batch refresh ----------------------------------------------------------
    BATCH_DELAY_MS: int = 100  # external rate limit throttle, keep it

    # --- Admin server ---------------------------------------------------------
    ADMIN_AUTH_TOKEN: str = ""
    PORT_ADMIN: int = 3001
    CORS_ORIGINS: str = "http://localhost:3001,http://127.0.0.1:3001"

    # --- Telemetry ------------------------------------------------------------
    LOG_DIR: str = "data/logs"
    MAX_LOG_MB: int = 16

    @property
    def HTTP_TIMEOUT_S(self) -> float:
        return self.HTTP_TIMEOUT_MS / 1000.0


# Singleton-style instance used by the app/tests
settings = Settings()
