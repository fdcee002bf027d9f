"""
Supplier adapters and their registry.

Usage:
    for provider, params in build_providers(settings):
        products = provider.fetch(params, rate)
"""

from typing import Optional

from config.settings import Settings
from integrations.providers.base import CatalogProvider, ProviderParams
from integrations.providers.elit import ElitProvider
from integrations.providers.newbytes import NewBytesProvider
from integrations.providers.invid import InvidProvider
from models.product import Provider

PROVIDERS: dict[str, type[CatalogProvider]] = {
    Provider.ELIT: ElitProvider,
    Provider.NEWBYTES: NewBytesProvider,
    Provider.INVID: InvidProvider,
}


def get_provider(name: str) -> CatalogProvider:
    """Instantiate a provider by name."""
    try:
        return PROVIDERS[name]()
    except KeyError:
        raise ValueError(f"Unknown provider: {name}. Valid: {', '.join(PROVIDERS)}")


def provider_params(name: str, settings: Settings) -> ProviderParams:
    """Params for one provider from application settings."""
    timeout = settings.provider_timeout_seconds
    if name == Provider.ELIT:
        return ProviderParams(url=settings.elit_api_url, timeout=timeout)
    if name == Provider.NEWBYTES:
        return ProviderParams(url=settings.newbytes_api_url, timeout=timeout)
    if name == Provider.INVID:
        return ProviderParams(
            url=settings.invid_export_url,
            username=settings.invid_user,
            password=settings.invid_pass,
            login_url=settings.invid_login_url,
            timeout=timeout,
        )
    raise ValueError(f"Unknown provider: {name}")


def build_providers(
    settings: Settings,
    names: Optional[list[str]] = None,
) -> list[tuple[CatalogProvider, ProviderParams]]:
    """Providers in fixed merge order, optionally filtered by name."""
    selected = [n for n in Provider.ORDER if names is None or n in names]
    return [(get_provider(n), provider_params(n, settings)) for n in selected]


__all__ = [
    "CatalogProvider",
    "ProviderParams",
    "ElitProvider",
    "NewBytesProvider",
    "InvidProvider",
    "PROVIDERS",
    "get_provider",
    "provider_params",
    "build_providers",
]
