from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """App settings loaded from environment variables (.env)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "Crop Advisory"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ALLOW_ORIGINS: str = "*"  # "*" or "https://a.com,https://b.com"
    CORS_ALLOW_CREDENTIALS: bool = False

    # STORAGE / CACHE
    DATA_FILE: str = "db.json"
    REDIS_URL: str = ""  # empty = no stats cache
    STATS_CACHE_TTL_SECONDS: int = 15

    # Built client bundle (served at / when the directory exists)
    STATIC_DIR: str = "dist"

    # GENERATIVE MODEL
    GEMINI_API_KEY: str = ""
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    ANALYSIS_MODEL: str = "gemini-2.5-pro"
    EXTRACT_MODEL: str = "gemini-2.5-flash"
    FOLLOW_UP_MODEL: str = "gemini-2.5-flash"
    TTS_MODEL: str = "gemini-2.5-flash-preview-tts"
    TTS_VOICE: str = "Puck"
    GATEWAY_TIMEOUT_SECONDS: float = 90.0

    def cors_origins(self) -> list[str]:
        s = (self.CORS_ALLOW_ORIGINS or "").strip()
        if not s or s == "*":
            return ["*"]
        return [x.strip() for x in s.split(",") if x.strip()]


settings = Settings()
