"""Factory for creating rate providers and conversion pipelines from configuration.

Implements Factory Pattern for provider selection with registry pattern for extensibility.

Based on:
- Factory Pattern: https://refactoring.guru/design-patterns/factory-method/python
- Registry Pattern: Python Cookbook 3rd Edition, Recipe 9.22
"""

import logging

from services.fx.base import RateProvider
from services.fx.cache import RateCache
from services.fx.frankfurter_provider import RETRY_WAIT_MAX, FrankfurterRateProvider
from services.fx.resolver import RateResolver
from services.fx.static_provider import StaticRateProvider
from services.invoices.pipeline import FXConversionPipeline
from services.shared.config import Settings

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry of available rate providers.

    Maintains a mapping of provider names to their implementation classes.
    Supports runtime registration of new providers.
    """

    _providers: dict[str, type[RateProvider]] = {
        "frankfurter": FrankfurterRateProvider,
        "static": StaticRateProvider,
    }

    @classmethod
    def register(cls, name: str, provider_class: type[RateProvider]) -> None:
        """Register a new provider.

        Args:
            name: Provider identifier (must match Settings.fx_provider)
            provider_class: Provider class implementing RateProvider interface
        """
        cls._providers[name] = provider_class
        logger.info(f"Registered rate provider: {name}")

    @classmethod
    def get_provider_class(cls, name: str) -> type[RateProvider]:
        """Get provider class by name.

        Raises:
            ValueError: If provider not found in registry
        """
        if name not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise ValueError(f"Unknown rate provider: '{name}'. Available providers: {available}")
        return cls._providers[name]

    @classmethod
    def list_providers(cls) -> list[str]:
        return list(cls._providers.keys())


def create_rate_provider(settings: Settings) -> RateProvider:
    """Create the rate provider named by ``settings.fx_provider``.

    Logs a warning if the provider is not fully configured.

    Raises:
        ValueError: If configured provider is unknown
    """
    provider_name = settings.fx_provider
    provider = ProviderRegistry.get_provider_class(provider_name)(settings)

    if not provider.is_available():
        logger.warning(
            f"Rate provider '{provider_name}' is not fully available. "
            f"Conversions will fall back to a rate of 1."
        )

    logger.info(f"Created rate provider: {provider_name}")
    return provider


def lookup_timeout(settings: Settings) -> float:
    """Overall deadline for one rate lookup, retries and backoff included.

    Each of the ``fx_retry_attempts`` requests may use the full request
    timeout, with at most RETRY_WAIT_MAX seconds of backoff between them.
    """
    attempts = settings.fx_retry_attempts
    return settings.fx_request_timeout * attempts + RETRY_WAIT_MAX * (attempts - 1)


def create_pipeline(settings: Settings, cache: RateCache | None = None) -> FXConversionPipeline:
    """Wire provider, resolver and pipeline from configuration.

    Args:
        settings: Application settings
        cache: Existing cache to share; a fresh one is created otherwise

    Returns:
        Ready-to-use conversion pipeline

    Example:
        >>> pipeline = create_pipeline(Settings(fx_provider="static"))
        >>> invoices = await pipeline.process(rows)
    """
    resolver = RateResolver(
        create_rate_provider(settings),
        cache=cache,
        reporting_currency=settings.reporting_currency,
        timeout=lookup_timeout(settings),
    )
    return FXConversionPipeline(resolver, max_concurrency=settings.fx_max_concurrency)
