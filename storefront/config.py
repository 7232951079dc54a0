from __future__ import annotations

from dataclasses import dataclass, field
import os

from dotenv import find_dotenv, load_dotenv

_FALSE_FLAGS = {"0", "false", "no", "off"}


def _load_env() -> None:
    env_path = find_dotenv(usecwd=True)
    if env_path:
        load_dotenv(env_path, override=False)


_load_env()


def _get_env(key: str, default: str) -> str:
    value = os.getenv(key, "").strip()
    return value or default


def _get_seconds(key: str, default: float) -> float:
    """Durations and intervals; malformed or negative values fall back to ``default``."""
    try:
        value = float(_get_env(key, str(default)))
    except ValueError:
        return default
    return value if value >= 0 else default


def _get_rate(key: str, default: float) -> float:
    try:
        value = float(_get_env(key, str(default)))
    except ValueError:
        return default
    return min(max(value, 0.0), 1.0)


def _get_flag(key: str, default: bool) -> bool:
    value = os.getenv(key, "").strip().lower()
    if not value:
        return default
    return value not in _FALSE_FLAGS


@dataclass
class Settings:
    inventory_base_url: str = field(
        default_factory=lambda: _get_env("INVENTORY_BASE_URL", "http://127.0.0.1:8000/api")
    )
    inventory_timeout_seconds: float = field(
        default_factory=lambda: _get_seconds("INVENTORY_TIMEOUT_SECONDS", 10.0)
    )
    product_cache_max_age_seconds: float = field(
        default_factory=lambda: _get_seconds("PRODUCT_CACHE_MAX_AGE_SECONDS", 0.0)
    )

    cart_storage_path: str = field(
        default_factory=lambda: _get_env("CART_STORAGE_PATH", "./storefront-cart.json")
    )
    cart_storage_key: str = field(default_factory=lambda: _get_env("CART_STORAGE_KEY", "cart"))
    batch_window_seconds: float = field(default_factory=lambda: _get_seconds("BATCH_WINDOW_SECONDS", 0.0))

    mock_delay_min_seconds: float = field(default_factory=lambda: _get_seconds("MOCK_DELAY_MIN_SECONDS", 0.0))
    mock_delay_max_seconds: float = field(default_factory=lambda: _get_seconds("MOCK_DELAY_MAX_SECONDS", 0.0))
    mock_conflict_rate: float = field(default_factory=lambda: _get_rate("MOCK_CONFLICT_RATE", 0.0))
    mock_reshuffle_seconds: float = field(default_factory=lambda: _get_seconds("MOCK_RESHUFFLE_SECONDS", 60.0))
    mock_seed_catalog: bool = field(default_factory=lambda: _get_flag("MOCK_SEED_CATALOG", True))

    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO").upper())
    log_dir: str | None = field(default_factory=lambda: os.getenv("LOG_DIR") or None)


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def refresh_settings() -> Settings:
    """Rebuild settings from environment variables."""
    global _settings
    _settings = Settings()
    return _settings


__all__ = ["Settings", "get_settings", "refresh_settings"]
