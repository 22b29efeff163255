"""
Payment gateway factory.

Maps provider tags to adapter classes and builds a configured adapter from a
GatewayConfig. New adapters can be registered at runtime without touching
the façade.
"""

import logging
from typing import Optional, List, Type

from ..errors import ConfigurationError
from ..types import Environment, GatewayConfig
from ..validators import validate_credentials
from .base import BaseProvider
from .bharatpe_gateway import BharatPeGateway
from .cashfree_gateway import CashfreeGateway
from .googlepay_gateway import GooglePayGateway
from .paytm_gateway import PaytmGateway
from .payu_gateway import PayUGateway
from .phonepe_gateway import PhonePeGateway
from .razorpay_gateway import RazorpayGateway


# Provider registry - maps provider tags to their adapter classes
PROVIDER_REGISTRY = {
    'razorpay': RazorpayGateway,
    'cashfree': CashfreeGateway,
    'phonepe': PhonePeGateway,
    'paytm': PaytmGateway,
    'googlepay': GooglePayGateway,
    'bharatpe': BharatPeGateway,
    'payu': PayUGateway,
}

ENVIRONMENTS = tuple(env.value for env in Environment)


def get_provider_class(provider: str) -> Type[BaseProvider]:
    """
    Look up the adapter class for a provider tag.

    Raises:
        ConfigurationError: If the provider is not registered
    """
    name = (provider or '').lower().strip()
    if name not in PROVIDER_REGISTRY:
        supported = ', '.join(PROVIDER_REGISTRY.keys())
        raise ConfigurationError(
            f"Unsupported provider: {provider}. Supported providers: {supported}",
            details={'provider': provider, 'supported': list(PROVIDER_REGISTRY.keys())}
        )
    return PROVIDER_REGISTRY[name]


def resolve_logger(setting, provider_class: Type[BaseProvider]) -> Optional[logging.Logger]:
    """
    Turn the ``logger`` option into a logger.

    True selects the adapter module's logger, a logger instance is used as
    given, and False or None disables logging.
    """
    if setting is True:
        return logging.getLogger(provider_class.__module__)
    if setting is False or setting is None:
        return None
    if isinstance(setting, (logging.Logger, logging.LoggerAdapter)):
        return setting
    raise ConfigurationError("Option 'logger' must be a boolean or a logging.Logger", details={'field': 'logger'})


def get_provider(
    config: GatewayConfig,
    transport=None,
    toolkit=None,
    qr_renderer=None
) -> BaseProvider:
    """
    Build the adapter a configuration selects.

    Args:
        config: Gateway configuration
        transport: Optional HTTP transport override
        toolkit: Optional checksum toolkit override
        qr_renderer: Optional QR renderer override

    Returns:
        Configured provider adapter

    Raises:
        ConfigurationError: If the provider or environment is unknown
        ValidationError: If a required credential is missing

    Example:
        >>> config = GatewayConfig.from_dict({'provider': 'razorpay', 'credentials': {...}})
        >>> gateway = get_provider(config)
    """
    provider_class = get_provider_class(config.provider)

    if config.environment not in ENVIRONMENTS:
        raise ConfigurationError(
            f"Unsupported environment: {config.environment}. Expected one of: {', '.join(ENVIRONMENTS)}",
            details={'environment': config.environment}
        )

    validate_credentials(provider_class.name, config.credentials, provider_class.REQUIRED_CREDENTIALS)

    return provider_class(
        config.credentials,
        environment=config.environment,
        logger=resolve_logger(config.options.logger, provider_class),
        options=config.options,
        transport=transport,
        toolkit=toolkit,
        qr_renderer=qr_renderer
    )


def register_provider(name: str, provider_class: type):
    """
    Register a new provider adapter.

    Args:
        name: Provider tag (e.g., 'custom_gateway')
        provider_class: Adapter class that extends BaseProvider

    Example:
        >>> from myapp.gateways import CustomGateway
        >>> register_provider('custom', CustomGateway)
    """
    if not isinstance(provider_class, type) or not issubclass(provider_class, BaseProvider):
        raise ConfigurationError("Provider class must extend BaseProvider", details={'provider': name})

    PROVIDER_REGISTRY[name.lower().strip()] = provider_class


def list_available_providers() -> List[str]:
    """
    List all registered providers.

    Returns:
        List of provider tags
    """
    return list(PROVIDER_REGISTRY.keys())
