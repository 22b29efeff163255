"""
Payment gateway abstraction layer.

Provides a unified interface over the supported UPI payment providers.
"""

from .base import BaseProvider
from .bharatpe_gateway import BharatPeGateway
from .cashfree_gateway import CashfreeGateway
from .googlepay_gateway import GooglePayGateway
from .paytm_gateway import PaytmGateway
from .payu_gateway import PayUGateway
from .phonepe_gateway import PhonePeGateway
from .razorpay_gateway import RazorpayGateway
from .factory import (
    PROVIDER_REGISTRY,
    get_provider,
    get_provider_class,
    list_available_providers,
    register_provider,
)

__all__ = [
    'BaseProvider',
    'BharatPeGateway',
    'CashfreeGateway',
    'GooglePayGateway',
    'PaytmGateway',
    'PayUGateway',
    'PhonePeGateway',
    'RazorpayGateway',
    'PROVIDER_REGISTRY',
    'get_provider',
    'get_provider_class',
    'list_available_providers',
    'register_provider',
]
