"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """DreamDeck image backend settings.

    Loaded from environment variables or .env file.
    """

    # --- Application ---
    APP_NAME: str = "DreamDeck"
    DEBUG: bool = False
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:8080,http://127.0.0.1:5173"

    # --- FLUX (Black Forest Labs) ---
    FLUX_API_BASE: str = "https://api.bfl.ai/v1"
    FLUX_API_KEY: str = ""
    FLUX_MODEL: str = "flux-kontext-pro"
    FLUX_HTTP_TIMEOUT: float = 30.0
    FLUX_POLL_MAX_ATTEMPTS: int = 30
    FLUX_POLL_INTERVAL: float = 5.0
    FLUX_DEFAULT_ASPECT_RATIO: str = "2:3"
    FLUX_SAFETY_TOLERANCE: int = 2

    # --- Image proxy ---
    IMAGE_PROXY_ALLOWED_HOSTS: str = "bfl.ai"  # comma-separated, subdomains included
    IMAGE_PROXY_URL: str = ""  # same-origin proxy endpoint; empty = fetch directly

    @property
    def image_proxy_allowed_hosts(self) -> tuple[str, ...]:
        return tuple(
            h.strip().lower() for h in self.IMAGE_PROXY_ALLOWED_HOSTS.split(",") if h.strip()
        )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
