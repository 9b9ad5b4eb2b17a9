"""Process-wide registry of initialized provider clients.

Each provider client is constructed at most once, and only if its
credential is present.  Initialization runs behind an ``asyncio.Lock`` so
concurrent first requests cannot build duplicate clients.  After that the
registry is read-only until ``aclose()``.

Typical usage::

    async with ProviderRegistry(config) as registry:
        provider = registry.get(Vendor.GEMINI)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from model_relay.config import Config
from model_relay.providers.base import Provider
from model_relay.providers.gemini import GeminiProvider
from model_relay.providers.groq import GroqProvider
from model_relay.providers.ollama import OllamaProvider
from model_relay.providers.openai import OpenAIProvider
from model_relay.types import Vendor

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Config], Provider | None]


def _keyed(provider_cls: type[GeminiProvider] | type[OpenAIProvider]) -> ProviderFactory:
    """Build a factory that constructs *provider_cls* only when a key exists."""

    def factory(config: Config) -> Provider | None:
        key = config.get_provider_key(provider_cls.vendor.value)
        if not key:
            return None
        return provider_cls(api_key=key)

    return factory


def _ollama(config: Config) -> Provider | None:
    if not config.ollama_host:
        return None
    return OllamaProvider(host=config.ollama_host)


DEFAULT_FACTORIES: dict[Vendor, ProviderFactory] = {
    Vendor.GEMINI: _keyed(GeminiProvider),
    Vendor.GROQ: _keyed(GroqProvider),
    Vendor.OPENAI: _keyed(OpenAIProvider),
    Vendor.OLLAMA: _ollama,
}


class ProviderRegistry:
    """Lazily built, shared set of provider clients.

    Args:
        config: Configuration supplying credentials and the fallback order.
        factories: Vendor → factory overrides.  A factory returns None when
            its vendor has no credential.  Defaults to ``DEFAULT_FACTORIES``.
    """

    def __init__(
        self,
        config: Config,
        *,
        factories: Mapping[Vendor, ProviderFactory] | None = None,
    ) -> None:
        self._config = config
        self._factories = dict(DEFAULT_FACTORIES if factories is None else factories)
        self._providers: dict[Vendor, Provider] = {}
        self._lock = asyncio.Lock()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def ensure_initialized(self) -> None:
        """Construct and open every provider that has a credential.

        Only vendors that appear in the fallback order are considered.
        Safe to call from many tasks; the work happens once.
        """
        if self._initialized:
            return
        async with self._lock:
            if self._initialized:
                return
            vendors = dict.fromkeys(a.provider for a in self._config.fallback_order)
            for vendor in vendors:
                factory = self._factories.get(vendor)
                if factory is None:
                    continue
                try:
                    provider = factory(self._config)
                    if provider is None:
                        logger.debug("%s has no credential, not registered", vendor.value)
                        continue
                    await provider.__aenter__()
                except Exception as exc:
                    logger.warning("Failed to initialize %s: %s", vendor.value, exc)
                    continue
                self._providers[vendor] = provider
                logger.info("%s client initialized", vendor.value)

            if not self._providers:
                logger.warning("No AI providers configured. Check API keys.")
            self._initialized = True

    def get(self, vendor: Vendor) -> Provider | None:
        """Return the open provider for *vendor*, or None if unregistered."""
        return self._providers.get(vendor)

    def available(self) -> dict[str, bool]:
        """Map every vendor name to whether a client is registered."""
        return {v.value: v in self._providers for v in Vendor}

    async def aclose(self) -> None:
        """Close every open provider and reset the registry."""
        async with self._lock:
            for provider in self._providers.values():
                await provider.__aexit__(None, None, None)
            self._providers.clear()
            self._initialized = False

    async def __aenter__(self) -> ProviderRegistry:
        await self.ensure_initialized()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
