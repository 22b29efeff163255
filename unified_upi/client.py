"""
Unified UPI payment façade.

One ``UnifiedUPIPayment`` wraps exactly one provider adapter, chosen from its
configuration at construction, and delegates every call to it unchanged.
"""

import logging
from typing import Optional, Any, Callable, FrozenSet, Mapping, TypeVar, Union

from .gateways.base import BaseProvider
from .gateways.factory import get_provider
from .retry import with_retry
from .types import (
    GatewayConfig,
    OrderRequest,
    OrderResult,
    QRCodeOptions,
    RefundReceipt,
    RefundRequest,
    TransactionStatus,
    UPILinkParams,
    VerificationEvidence,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


class UnifiedUPIPayment:
    """
    Single entry point for UPI payments.

    The façade holds no per-call state, so one instance can be shared across
    concurrent calls for different orders.

    Example:
        >>> payment = UnifiedUPIPayment({
        ...     'provider': 'razorpay',
        ...     'credentials': {'keyId': 'rzp_test_x', 'keySecret': 'secret'},
        ...     'environment': 'sandbox',
        ... })
        >>> order = payment.create_order(OrderRequest(amount=100))
    """

    def __init__(
        self,
        config: Union[GatewayConfig, Mapping[str, Any]],
        transport=None,
        toolkit=None,
        qr_renderer=None
    ):
        """
        Validate the configuration and build the provider adapter.

        Args:
            config: GatewayConfig, or a mapping accepted by ``GatewayConfig.from_dict``
            transport: Optional HTTP transport override
            toolkit: Optional checksum toolkit override
            qr_renderer: Optional QR renderer override

        Raises:
            ConfigurationError: Unknown provider, bad environment or malformed config
            ValidationError: A required credential is missing
        """
        if not isinstance(config, GatewayConfig):
            config = GatewayConfig.from_dict(config)
        self.config = config
        self.provider: BaseProvider = get_provider(
            config,
            transport=transport,
            toolkit=toolkit,
            qr_renderer=qr_renderer
        )
        logger.debug(
            "Payment gateway initialised",
            extra={'provider': config.provider, 'environment': config.environment}
        )

    @classmethod
    def from_settings(cls, setting_name: str = 'UNIFIED_UPI', **collaborators) -> 'UnifiedUPIPayment':
        """Build a façade from the Django ``UNIFIED_UPI`` setting."""
        return cls(GatewayConfig.from_settings(setting_name), **collaborators)

    @property
    def provider_name(self) -> str:
        return self.provider.name

    @property
    def verification_notice(self) -> Optional[str]:
        """Set when ``verify_payment`` cannot check evidence cryptographically."""
        return self.provider.verification_notice

    def create_order(self, request: OrderRequest) -> OrderResult:
        return self.provider.create_order(request)

    def verify_payment(self, evidence: VerificationEvidence) -> bool:
        return self.provider.verify_payment(evidence)

    def verify_webhook_signature(self, event: WebhookEvent) -> bool:
        return self.provider.verify_webhook_signature(event)

    def get_transaction_status(self, order_id: str) -> TransactionStatus:
        return self.provider.get_transaction_status(order_id)

    def refund_payment(self, request: RefundRequest) -> RefundReceipt:
        return self.provider.refund_payment(request)

    def generate_upi_link(self, params: UPILinkParams) -> str:
        return self.provider.generate_upi_link(params)

    def generate_qr_code(self, params: UPILinkParams, options: Optional[QRCodeOptions] = None):
        return self.provider.generate_qr_code(params, options)

    def get_provider_capabilities(self) -> FrozenSet[str]:
        return frozenset(self.provider.CAPABILITIES)

    def with_retry(
        self,
        operation: Callable[[], T],
        delay: float = 1.0,
        backoff: bool = True,
        on_retry: Optional[Callable[[BaseException, int], None]] = None
    ) -> T:
        """
        Run ``operation`` under the retry helper, using ``options.retry_count`` attempts.

        Example:
            >>> payment.with_retry(lambda: payment.get_transaction_status('order_1'))
        """
        return with_retry(
            operation,
            max_attempts=max(1, self.config.options.retry_count),
            delay=delay,
            backoff=backoff,
            on_retry=on_retry
        )
