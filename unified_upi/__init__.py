"""
Unified UPI payments.

One interface over Razorpay, Cashfree, PhonePe, Paytm, Google Pay, BharatPe
and PayU: order creation, payment and webhook verification, status queries,
refunds, and UPI deep links with QR codes.
"""

from .client import UnifiedUPIPayment
from .errors import (
    ConfigurationError,
    GatewayException,
    GatewayTimeoutError,
    NetworkError,
    ProviderError,
    ValidationError,
)
from .gateways import list_available_providers, register_provider
from .retry import with_retry
from .types import (
    CustomerInfo,
    Environment,
    GatewayConfig,
    GatewayOptions,
    OrderRequest,
    OrderResult,
    PaymentStatus,
    ProviderCredentials,
    QRCodeOptions,
    RefundReceipt,
    RefundRequest,
    TransactionStatus,
    UPILinkParams,
    VerificationEvidence,
    WebhookEvent,
)
from .upi import build_upi_link, is_valid_upi
from .utils import format_amount, generate_order_id, generate_transaction_id

__version__ = '1.0.0'

__all__ = [
    'UnifiedUPIPayment',
    'ConfigurationError',
    'GatewayException',
    'GatewayTimeoutError',
    'NetworkError',
    'ProviderError',
    'ValidationError',
    'list_available_providers',
    'register_provider',
    'with_retry',
    'CustomerInfo',
    'Environment',
    'GatewayConfig',
    'GatewayOptions',
    'OrderRequest',
    'OrderResult',
    'PaymentStatus',
    'ProviderCredentials',
    'QRCodeOptions',
    'RefundReceipt',
    'RefundRequest',
    'TransactionStatus',
    'UPILinkParams',
    'VerificationEvidence',
    'WebhookEvent',
    'build_upi_link',
    'is_valid_upi',
    'format_amount',
    'generate_order_id',
    'generate_transaction_id',
]
