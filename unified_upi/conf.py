"""
Django settings integration.

Example settings::

    UNIFIED_UPI = {
        'PROVIDER': 'razorpay',
        'CREDENTIALS': {
            'KEY_ID': env('RAZORPAY_KEY_ID'),
            'KEY_SECRET': env('RAZORPAY_KEY_SECRET'),
        },
        'ENVIRONMENT': 'sandbox',
        'OPTIONS': {'timeout': 10, 'webhook_url': 'https://example.com/webhooks/upi/'},
    }
"""

from django.conf import settings

from .errors import ConfigurationError
from .types import GatewayConfig

DEFAULT_SETTING_NAME = 'UNIFIED_UPI'


def load_config(setting_name: str = DEFAULT_SETTING_NAME) -> GatewayConfig:
    """
    Read a GatewayConfig from Django settings.

    Raises:
        ConfigurationError: If the setting is absent or malformed
    """
    data = getattr(settings, setting_name, None)
    if data is None:
        raise ConfigurationError(
            f"Missing configuration: settings.{setting_name} is not defined",
            details={'setting': setting_name}
        )
    return GatewayConfig.from_dict(data)
