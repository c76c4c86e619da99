import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"

load_dotenv(ENV_PATH)

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-2.5-flash"


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name, default) or default).strip()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (ValueError, TypeError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (ValueError, TypeError):
        return default


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    gateway_url: str = DEFAULT_GATEWAY_URL
    model: str = DEFAULT_MODEL
    temperature: float = 0.7
    timeout_s: float = 25.0
    rate_limit_max: int = 10
    rate_limit_window_s: int = 60
    rate_limit_storage_uri: str = ""
    rate_limit_evict_threshold: int = 10_000

    @property
    def provider_configured(self) -> bool:
        return bool(self.api_key)


def load_settings() -> Settings:
    """Read settings from the process environment.

    Called once when the app is built; the API key is not re-read per request.
    """
    api_key = _env_str("AI_GATEWAY_API_KEY") or _env_str("LOVABLE_API_KEY")
    return Settings(
        api_key=api_key,
        gateway_url=_env_str("AI_GATEWAY_URL", DEFAULT_GATEWAY_URL),
        model=_env_str("AI_MODEL", DEFAULT_MODEL),
        temperature=_env_float("AI_TEMPERATURE", 0.7),
        timeout_s=_env_float("AI_TIMEOUT_SECONDS", 25.0),
        rate_limit_max=max(1, _env_int("RATE_LIMIT_MAX", 10)),
        rate_limit_window_s=max(1, _env_int("RATE_LIMIT_WINDOW_SECONDS", 60)),
        rate_limit_storage_uri=_env_str("RATE_LIMIT_STORAGE_URI"),
        rate_limit_evict_threshold=max(1, _env_int("RATE_LIMIT_EVICT_THRESHOLD", 10_000)),
    )


__all__ = ["Settings", "load_settings"]
