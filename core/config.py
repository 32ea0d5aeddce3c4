"""
Core Settings — loads secrets from .env file.
Provides parsed API keys, Gemini model settings and login credentials.
Separate from config.py (service tuning) for Separation of Concerns.
"""
import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"))


def parse_key_list(raw: str) -> list[str]:
    """Split a comma-separated key string, dropping blank entries."""
    return [k.strip() for k in raw.split(",") if k.strip()]


class Settings:
    """Centralized settings loaded from environment variables."""

    # ──────────────────────────────────────────────
    # API Keys (parsed from comma-separated .env values)
    # ──────────────────────────────────────────────
    GOOGLE_API_KEYS: list[str] = parse_key_list(os.getenv("GOOGLE_API_KEYS", ""))

    # ──────────────────────────────────────────────
    # Gemini (grounded search chat)
    # ──────────────────────────────────────────────
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    GEMINI_TEMPERATURE: float = float(os.getenv("GEMINI_TEMPERATURE", "0.9"))
    GEMINI_TOP_P: float = float(os.getenv("GEMINI_TOP_P", "1"))
    GEMINI_TOP_K: int = int(os.getenv("GEMINI_TOP_K", "1"))
    GEMINI_MAX_TOKENS: int = int(os.getenv("GEMINI_MAX_TOKENS", "2048"))

    # ──────────────────────────────────────────────
    # Web login (optional — API is open when unset)
    # ──────────────────────────────────────────────
    AUTH_USERNAME: str | None = os.getenv("AUTH_USERNAME") or None
    AUTH_PASSWORD: str | None = os.getenv("AUTH_PASSWORD") or None

    APP_ENV: str = os.getenv("APP_ENV", "development")

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"


# Singleton instance — import this everywhere
settings = Settings()
