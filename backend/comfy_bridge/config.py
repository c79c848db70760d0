"""Application configuration using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """ComfyBridge application settings.

    Loaded from environment variables or .env file.
    """

    # --- Application ---
    APP_NAME: str = "ComfyBridge"
    DEBUG: bool = False

    # --- ComfyUI server (credential source) ---
    COMFY_API_URL: str = "http://127.0.0.1:8188"
    COMFY_API_KEY: str = ""

    # --- HTTP transport ---
    COMFY_HTTP_TIMEOUT: float = 60.0  # per request, seconds

    # --- Polling ---
    COMFY_TIMEOUT_MINUTES: int = 5
    COMFY_POLL_INTERVAL: float = 1.0
    COMFY_POLL_GRACE_PERIOD: float = 5.0

    # --- Transcoding ---
    COMFY_JPEG_QUALITY: int = 80

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
