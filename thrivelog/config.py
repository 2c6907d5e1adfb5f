"""Application configuration and constants for the Thrivelog backend."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Final, List

from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()

# Directories
BASE_DIR: Final[Path] = Path(__file__).resolve().parent.parent
DATA_DIR: Final[Path] = BASE_DIR / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Database configuration
DEFAULT_DATABASE_URL = f"sqlite:///{(DATA_DIR / 'thrivelog.db').as_posix()}"
DATABASE_URL: Final[str] = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)

# Provider credentials
GEMINI_API_KEY: Final[str] = os.getenv("GEMINI_API_KEY", "")
GROQ_API_KEY: Final[str] = os.getenv("GROQ_API_KEY", "")
ANTHROPIC_API_KEY: Final[str] = os.getenv("ANTHROPIC_API_KEY", "")
OPENAI_API_KEY: Final[str] = os.getenv("OPENAI_API_KEY", "")
FAL_API_KEY: Final[str] = os.getenv("FAL_API_KEY", "")
USDA_API_KEY: Final[str] = os.getenv("USDA_API_KEY", "")

# Supabase object storage for reflection media
SUPABASE_URL: Final[str] = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_KEY: Final[str] = os.getenv("SUPABASE_KEY", "")
STORAGE_BUCKET: Final[str] = os.getenv("STORAGE_BUCKET", "reflections")

# Model names
GEMINI_VISION_MODEL: Final[str] = os.getenv(
    "GEMINI_VISION_MODEL", "gemini-2.5-flash-image"
)
GEMINI_PERSONA_MODELS: Final[List[str]] = [
    name.strip()
    for name in os.getenv(
        "GEMINI_PERSONA_MODELS",
        "gemini-flash-latest,gemini-1.5-flash,gemini-1.5-pro,gemini-2.5-flash",
    ).split(",")
    if name.strip()
]
GROQ_TEXT_MODEL: Final[str] = os.getenv("GROQ_TEXT_MODEL", "llama-3.1-8b-instant")
GROQ_VISION_MODEL: Final[str] = os.getenv(
    "GROQ_VISION_MODEL", "meta-llama/llama-4-scout-17b-16e-instruct"
)
ANTHROPIC_MODEL: Final[str] = os.getenv("ANTHROPIC_MODEL", "claude-3-5-haiku-20241022")
OPENAI_CHAT_MODEL: Final[str] = os.getenv("OPENAI_CHAT_MODEL", "gpt-4.1-mini")
WHISPER_MODEL: Final[str] = os.getenv("WHISPER_MODEL", "whisper-1")

# Outbound HTTP
HTTP_TIMEOUT_SECONDS: Final[float] = float(os.getenv("HTTP_TIMEOUT_SECONDS", 60))

# Mood text analysis debounce
MOOD_TEXT_DEBOUNCE_SECONDS: Final[float] = float(
    os.getenv("MOOD_TEXT_DEBOUNCE_SECONDS", 2.0)
)
MOOD_TEXT_MIN_LENGTH: Final[int] = int(os.getenv("MOOD_TEXT_MIN_LENGTH", 20))

# Adaptive prompts
ADAPTIVE_QUESTION_COUNT: Final[int] = int(os.getenv("ADAPTIVE_QUESTION_COUNT", 7))


def _env_prefix(provider: str) -> str:
    """Convert a provider name into an uppercase env prefix."""

    return provider.upper().replace("-", "_").replace(".", "_").replace("/", "_")


_DEFAULT_RATE_LIMITS: Final[Dict[str, Dict[str, float]]] = {
    "groq": {"window_seconds": 60, "max_requests": 3, "min_interval_seconds": 0},
    "gemini": {"window_seconds": 120, "max_requests": 3, "min_interval_seconds": 20},
    "openai": {"window_seconds": 60, "max_requests": 3, "min_interval_seconds": 20},
}


def _load_rate_limit(provider: str, defaults: Dict[str, float]) -> Dict[str, float]:
    prefix = _env_prefix(provider)
    return {
        "window_seconds": float(
            os.getenv(f"{prefix}_RATE_WINDOW", str(defaults["window_seconds"]))
        ),
        "max_requests": int(
            os.getenv(f"{prefix}_RATE_MAX", str(int(defaults["max_requests"])))
        ),
        "min_interval_seconds": float(
            os.getenv(f"{prefix}_MIN_INTERVAL", str(defaults["min_interval_seconds"]))
        ),
    }


# Per-provider client-side throttles (fixed trailing window + minimum spacing)
PROVIDER_RATE_LIMITS: Final[Dict[str, Dict[str, float]]] = {
    provider: _load_rate_limit(provider, limits)
    for provider, limits in _DEFAULT_RATE_LIMITS.items()
}
