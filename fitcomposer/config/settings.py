"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _load_env_file(path: str = ".env") -> None:
    """Populate os.environ from the provided .env file if it exists."""

    env_path = Path(path)
    if not env_path.exists():
        return

    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class Settings:
    """Centralised project settings based on OS environment variables."""

    environment: str = "dev"
    log_level: str = "INFO"

    oracle_api_key: str = ""
    oracle_base_url: str = "https://api.openai.com/v1"
    oracle_model: str = "gpt-4o-mini"
    request_timeout: float = 60.0
    generation_timeout: float = 60.0

    retry_max_attempts: int = 3
    retry_base_delay: float = 0.2
    retry_backoff_factor: float = 2.0
    retry_max_delay: float = 8.0
    retry_jitter: float = 0.3

    min_inventory_items: int = 3
    variants_enabled: bool = True
    variant_start_delay: float = 0.1
    occasions_path: str = ""
    response_tone: str = "balanced"


def _build_settings() -> Settings:
    _load_env_file()

    return Settings(
        environment=os.getenv("ENVIRONMENT", "dev"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        oracle_api_key=os.getenv("ORACLE_API_KEY", ""),
        oracle_base_url=os.getenv("ORACLE_BASE_URL", "https://api.openai.com/v1"),
        oracle_model=os.getenv("ORACLE_MODEL", "gpt-4o-mini"),
        request_timeout=float(os.getenv("ORACLE_REQUEST_TIMEOUT", "60")),
        generation_timeout=float(os.getenv("GENERATION_TIMEOUT", "60")),
        retry_max_attempts=int(os.getenv("RETRY_MAX_ATTEMPTS", "3")),
        retry_base_delay=float(os.getenv("RETRY_BASE_DELAY", "0.2")),
        retry_backoff_factor=float(os.getenv("RETRY_BACKOFF_FACTOR", "2.0")),
        retry_max_delay=float(os.getenv("RETRY_MAX_DELAY", "8")),
        retry_jitter=float(os.getenv("RETRY_JITTER", "0.3")),
        min_inventory_items=int(os.getenv("MIN_INVENTORY_ITEMS", "3")),
        variants_enabled=_as_bool(os.getenv("VARIANTS_ENABLED", "true")),
        variant_start_delay=float(os.getenv("VARIANT_START_DELAY", "0.1")),
        occasions_path=os.getenv("OCCASIONS_PATH", ""),
        response_tone=os.getenv("RESPONSE_TONE", "balanced"),
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance to avoid re-reading configuration."""

    return _build_settings()
