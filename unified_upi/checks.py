"""
Django system checks for the ``UNIFIED_UPI`` setting.
"""

from django.conf import settings
from django.core import checks

from .conf import DEFAULT_SETTING_NAME, load_config
from .errors import GatewayException
from .gateways.factory import ENVIRONMENTS, get_provider_class


@checks.register()
def check_unified_upi_settings(app_configs=None, **kwargs):
    """
    Report an invalid ``UNIFIED_UPI`` setting at startup.

    A project that never defines the setting is left alone; it may build
    its gateways from explicit configuration instead.
    """
    if getattr(settings, DEFAULT_SETTING_NAME, None) is None:
        return []

    try:
        config = load_config()
        provider_class = get_provider_class(config.provider)
    except GatewayException as e:
        return [checks.Error(e.message, hint=f"Fix settings.{DEFAULT_SETTING_NAME}.", id='unified_upi.E001')]

    errors = []
    if config.environment not in ENVIRONMENTS:
        errors.append(checks.Error(
            f"Unsupported environment: {config.environment}",
            hint=f"Use one of: {', '.join(ENVIRONMENTS)}.",
            id='unified_upi.E002',
        ))

    missing = config.credentials.missing(provider_class.REQUIRED_CREDENTIALS)
    if missing:
        errors.append(checks.Error(
            f"{provider_class.display_name} requires {', '.join(missing)}",
            hint=f"Add the missing fields to settings.{DEFAULT_SETTING_NAME}['CREDENTIALS'].",
            id='unified_upi.E003',
        ))
    return errors
