"""
config.py — Configuración central leída del entorno (y de `.env` si existe).

Uso:
    from config import settings
    settings.GEMINI_MODEL
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Entorno ───────────────────────────────────────────────────────────────
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # ── Base de datos ─────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./companion.db"

    # ── Gemini ────────────────────────────────────────────────────────────────
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash-exp"
    GEMINI_TEMPERATURE: float = 0.9
    GEMINI_TOP_P: float = 0.95
    GEMINI_TOP_K: int = 40
    GEMINI_MAX_OUTPUT_TOKENS: int = 1024
    GENERATION_TIMEOUT_SECONDS: float = 30.0

    # ── Memoria y conversación ────────────────────────────────────────────────
    CONTEXT_WINDOW: int = 8  # mensajes recientes cargados para el prompt
    HISTORY_LIMIT: int = 50  # mensajes devueltos por GET /history
    MAX_MESSAGE_LENGTH: int = 5000
    MOOD_HISTORY_LIMIT: int = 20


settings = Settings()
