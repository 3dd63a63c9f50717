"""Runtime settings resolved from environment variables.

Numeric values fall back to their defaults when unset or not a number.
The rate-limit spacings may be 0, which turns pacing off; every other
numeric value must be positive.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


def _env_float(env: Mapping[str, str], key: str, default: float, allow_zero: bool = False) -> float:
    raw = env.get(key)
    if raw is None or not str(raw).strip():
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric {key}={raw!r}; using {default}")
        return default
    if not math.isfinite(value) or value < 0 or (value == 0 and not allow_zero):
        logger.warning(f"Ignoring out-of-range {key}={raw!r}; using {default}")
        return default
    return value


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    return int(_env_float(env, key, float(default)))


def _env_code(env: Mapping[str, str], key: str, default: str) -> str:
    raw = (env.get(key) or "").strip().upper()
    return raw or default


def _env_list(env: Mapping[str, str], key: str) -> Optional[Tuple[str, ...]]:
    raw = env.get(key) or ""
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or None


@dataclass(frozen=True)
class Settings:
    cache_ttl_seconds: float = 120.0
    currency: str = "EUR"
    country: str = "DE"
    provider_timeout_seconds: float = 9.0
    global_min_interval_ms: float = 200.0
    global_max_concurrent: int = 3
    provider_min_interval_ms: float = 300.0
    provider_max_concurrent: int = 1
    http_timeout_seconds: float = 7.0
    default_limit_per_market: int = 5
    enabled_providers: Optional[Tuple[str, ...]] = field(default=None)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            cache_ttl_seconds=_env_float(env, "CACHE_TTL_SECONDS", defaults.cache_ttl_seconds),
            currency=_env_code(env, "CURRENCY", defaults.currency),
            country=_env_code(env, "COUNTRY", defaults.country),
            provider_timeout_seconds=_env_float(
                env, "PROVIDER_TIMEOUT_SECONDS", defaults.provider_timeout_seconds
            ),
            global_min_interval_ms=_env_float(
                env, "GLOBAL_RATE_LIMIT_MIN_INTERVAL_MS", defaults.global_min_interval_ms, allow_zero=True
            ),
            global_max_concurrent=_env_int(
                env, "GLOBAL_RATE_LIMIT_MAX_CONCURRENT", defaults.global_max_concurrent
            ),
            provider_min_interval_ms=_env_float(
                env, "PROVIDER_RATE_LIMIT_MIN_INTERVAL_MS", defaults.provider_min_interval_ms, allow_zero=True
            ),
            provider_max_concurrent=_env_int(
                env, "PROVIDER_RATE_LIMIT_MAX_CONCURRENT", defaults.provider_max_concurrent
            ),
            http_timeout_seconds=_env_float(env, "HTTP_TIMEOUT_SECONDS", defaults.http_timeout_seconds),
            default_limit_per_market=_env_int(
                env, "DEFAULT_LIMIT_PER_MARKET", defaults.default_limit_per_market
            ),
            enabled_providers=_env_list(env, "ENABLED_PROVIDERS"),
        )
