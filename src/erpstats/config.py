"""Runtime settings loaded from ERPSTATS_* environment variables."""

import os
from dataclasses import dataclass, replace
from typing import Optional

from erpstats.domain.errors import ValidationError

DEFAULT_PAGE_SIZE = 1000
DEFAULT_MAX_RECORDS = 50000
DEFAULT_TIMEOUT = 60.0
DEFAULT_CACHE_TTL = 300.0


@dataclass(frozen=True)
class Settings:
    """Connection and processing settings."""

    api_url: Optional[str] = None
    api_key: Optional[str] = None
    page_size: int = DEFAULT_PAGE_SIZE
    max_records: int = DEFAULT_MAX_RECORDS
    timeout: float = DEFAULT_TIMEOUT
    cache_ttl: float = DEFAULT_CACHE_TTL


def _env_number(name: str, default, cast):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        raise ValidationError(f"Invalid value for {name}: {raw!r}")
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(**overrides) -> Settings:
    """Load settings from the environment.

    Keyword arguments override environment values; None overrides are
    ignored so CLI options that were not given fall through.

    Raises:
        ValidationError: If a numeric variable is invalid
    """
    settings = Settings(
        api_url=os.environ.get("ERPSTATS_API_URL") or None,
        api_key=os.environ.get("ERPSTATS_API_KEY") or None,
        page_size=_env_number("ERPSTATS_PAGE_SIZE", DEFAULT_PAGE_SIZE, int),
        max_records=_env_number("ERPSTATS_MAX_RECORDS", DEFAULT_MAX_RECORDS, int),
        timeout=_env_number("ERPSTATS_TIMEOUT", DEFAULT_TIMEOUT, float),
        cache_ttl=_env_number("ERPSTATS_CACHE_TTL", DEFAULT_CACHE_TTL, float),
    )
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return replace(settings, **overrides) if overrides else settings
