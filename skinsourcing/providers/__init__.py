"""Marketplace provider registry."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Type

from skinsourcing.cache import TTLCache
from skinsourcing.config import Settings
from skinsourcing.providers.base import MarketProvider
from skinsourcing.providers.buff163 import Buff163Provider
from skinsourcing.providers.dmarket import DMarketProvider
from skinsourcing.providers.skinport import SkinportProvider
from skinsourcing.providers.steam import SteamProvider
from skinsourcing.providers.waxpeer import WaxpeerProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: Dict[str, Type[MarketProvider]] = {
    SkinportProvider.name: SkinportProvider,
    SteamProvider.name: SteamProvider,
    DMarketProvider.name: DMarketProvider,
    Buff163Provider.name: Buff163Provider,
    WaxpeerProvider.name: WaxpeerProvider,
}


def available_provider_names() -> List[str]:
    return list(PROVIDER_CLASSES.keys())


def build_default_providers(settings: Optional[Settings] = None) -> List[MarketProvider]:
    """Instantiate every registered adapter, each with its own TTL cache."""
    settings = settings or Settings()
    enabled = {name.casefold() for name in settings.enabled_providers or ()}

    providers: List[MarketProvider] = []
    for name, provider_cls in PROVIDER_CLASSES.items():
        if enabled and name.casefold() not in enabled:
            continue
        kwargs = {
            "http_timeout": settings.http_timeout_seconds,
            "default_currency": settings.currency,
            "default_limit": settings.default_limit_per_market,
        }
        if provider_cls is SteamProvider:
            kwargs["default_country"] = settings.country
        providers.append(provider_cls(TTLCache(settings.cache_ttl_seconds), **kwargs))

    if enabled and not providers:
        logger.warning(f"ENABLED_PROVIDERS={sorted(enabled)} matched nothing; using all providers")
        return build_default_providers(replace(settings, enabled_providers=None))

    logger.info(f"[providers] Initialized: {[p.name for p in providers]}")
    return providers


__all__ = [
    "MarketProvider",
    "SkinportProvider",
    "SteamProvider",
    "DMarketProvider",
    "Buff163Provider",
    "WaxpeerProvider",
    "PROVIDER_CLASSES",
    "available_provider_names",
    "build_default_providers",
]
