"""
Google Pay (UPI deep link) implementation.

Google Pay has no merchant order API here: an "order" is a ``upi://pay``
link (plus QR image) pointing at the merchant's own VPA, and nothing
server-side can prove the payment happened.
"""

from dataclasses import asdict
from typing import Optional

from ..types import (
    OrderRequest,
    OrderResult,
    PaymentStatus,
    RefundReceipt,
    RefundRequest,
    TransactionStatus,
    UPILinkParams,
    VerificationEvidence,
    WebhookEvent,
)
from ..utils import amount_to_string, generate_order_id
from .base import BaseProvider

DEFAULT_MERCHANT_CODE = '5411'

NO_STATUS_API = (
    "Google Pay deep links have no status API; confirm the payment against the "
    "merchant account statement or the UPI reference before fulfilling the order"
)
PLACEHOLDER_VERIFICATION = (
    "Google Pay verification is a placeholder: no cryptographic evidence exists for "
    "deep-link payments. Configure a verification_callback backed by your bank feed."
)


class GooglePayGateway(BaseProvider):
    """
    Google Pay deep-link gateway.

    ``verify_payment`` delegates to ``options.verification_callback`` when the
    embedding application provides one; without it every payment is reported
    unverified rather than silently accepted.
    """

    name = 'googlepay'
    display_name = 'Google Pay'
    REQUIRED_CREDENTIALS = ('merchant_upi', 'merchant_name')
    CAPABILITIES = frozenset({'upi'})

    def _link_params(self, request: OrderRequest, order_id: str, amount) -> UPILinkParams:
        return UPILinkParams(
            pa=self.credentials.merchant_upi,
            pn=self.credentials.merchant_name,
            am=amount_to_string(amount),
            cu=self._currency(request),
            tn=request.description or request.notes.get('description') or 'Payment',
            tr=order_id,
            mc=self.credentials.merchant_code or DEFAULT_MERCHANT_CODE,
        )

    # Orders

    def create_order(self, request: OrderRequest) -> OrderResult:
        amount = self._validated_amount(request)
        order_id = request.receipt or generate_order_id('GPAY')
        params = self._link_params(request, order_id, amount)

        try:
            upi_uri = self.generate_upi_link(params)
            qr_image = self.generate_qr_code(params)
        except Exception as e:
            raise self._wrap_errors('create_order', e)

        self.log('info', "Google Pay deep link created", order_id=order_id)
        return OrderResult(
            order_id=order_id,
            amount=amount,
            currency=params.cu,
            provider=self.name,
            upi_uri=upi_uri,
            qr_image=qr_image,
            extras={'verification_notice': self.verification_notice} if self.verification_notice else {},
            raw={'upi_params': asdict(params)},
        )

    # Verification

    @property
    def verification_notice(self) -> Optional[str]:
        if self.options.verification_callback is None:
            return PLACEHOLDER_VERIFICATION
        return None

    def verify_payment(self, evidence: VerificationEvidence) -> bool:
        try:
            callback = self.options.verification_callback
            if callback is None:
                self.log('warning', PLACEHOLDER_VERIFICATION, order_id=getattr(evidence, 'order_id', None))
                return False
            return callback(evidence) is True
        except Exception as e:
            self.log('error', "Google Pay verification failed", error=str(e), exc_info=True)
            return False

    def verify_webhook_signature(self, event: WebhookEvent) -> bool:
        self.log(
            'warning',
            "Google Pay deep links do not send webhooks",
            event_name=getattr(event, 'event_name', None)
        )
        return False

    # Status

    def get_transaction_status(self, order_id: str) -> TransactionStatus:
        self._require(order_id, 'order_id')
        return TransactionStatus(
            status=PaymentStatus.PENDING,
            order_id=order_id,
            error_description=NO_STATUS_API,
        )

    # Refunds

    def refund_payment(self, request: RefundRequest) -> RefundReceipt:
        raise self._provider_error(
            "deep-link payments have no refund API; refund the payer directly",
            {'payment_id': request.payment_id, 'reason': 'unsupported'}
        )
