"""
BharatPe payment gateway implementation.

BharatPe returns no signed evidence to the merchant after checkout, so
payments are confirmed by asking BharatPe for the order's status.
"""

from typing import Dict, Any

from ..types import (
    OrderRequest,
    OrderResult,
    PaymentStatus,
    RefundReceipt,
    RefundRequest,
    TransactionStatus,
    VerificationEvidence,
    WebhookEvent,
)
from ..utils import generate_order_id, parse_amount, quantize_amount
from .base import BaseProvider


class BharatPeGateway(BaseProvider):
    """
    BharatPe gateway implementation.

    Webhooks are signed with hex HMAC SHA256 over the raw body, keyed with
    ``webhook_secret`` when configured and the API key otherwise.
    """

    name = 'bharatpe'
    display_name = 'BharatPe'
    REQUIRED_CREDENTIALS = ('api_key',)
    CAPABILITIES = frozenset({'upi', 'qr_code'})
    BASE_URLS = {
        'production': 'https://api.bharatpe.com',
        'sandbox': 'https://api.bharatpe.com',
    }
    STATUS_MAP = {
        'SUCCESS': PaymentStatus.SUCCESS,
        'PAID': PaymentStatus.SUCCESS,
        'FAILED': PaymentStatus.FAILED,
        'FAILURE': PaymentStatus.FAILED,
        'EXPIRED': PaymentStatus.FAILED,
        'PENDING': PaymentStatus.PENDING,
        'CREATED': PaymentStatus.PENDING,
        'PROCESSING': PaymentStatus.PROCESSING,
    }

    @property
    def headers(self) -> Dict[str, str]:
        return {
            'Authorization': f"Bearer {self.credentials.api_key}",
            'Content-Type': 'application/json',
        }

    def _checked(self, data: Dict[str, Any], fallback: str) -> Dict[str, Any]:
        if not data.get('success'):
            raise self._provider_error(data.get('message') or fallback, {'response': data})
        return data

    # Orders

    def create_order(self, request: OrderRequest) -> OrderResult:
        """
        Create a BharatPe UPI order.

        BharatPe returns its own UPI intent link and QR image, which are passed
        through as ``upi_uri`` and ``qr_image``.
        """
        amount = self._validated_amount(request)
        customer = request.customer_info
        order_data = {
            'amount': float(amount),
            'currency': self._currency(request),
            'orderId': request.receipt or generate_order_id('BP'),
            'customerPhone': customer.contact,
            'customerEmail': customer.email,
            'description': request.description or request.notes.get('description'),
            'callbackUrl': self.options.webhook_url,
        }
        order_data = {key: value for key, value in order_data.items() if value is not None}

        try:
            data = self._checked(
                self._request_json(
                    'POST', '/v1/merchant/upi/create-order', self.headers, self._json_dumps(order_data)
                ),
                'Order creation failed'
            )
        except Exception as e:
            raise self._wrap_errors('create_order', e)

        self.log('info', "BharatPe order created", order_id=data.get('orderId'))
        return OrderResult(
            order_id=data.get('orderId', order_data['orderId']),
            amount=quantize_amount(parse_amount(data.get('amount', amount))),
            currency=data.get('currency', order_data['currency']),
            provider=self.name,
            upi_uri=data.get('upiLink'),
            qr_image=data.get('qrCode'),
            raw=data,
        )

    # Verification

    def verify_payment(self, evidence: VerificationEvidence) -> bool:
        """
        Confirm a payment with BharatPe.

        True only when BharatPe reports the order as successful and, when the
        evidence names a payment id, that id matches the one BharatPe holds.
        """
        try:
            if not evidence.order_id:
                self.log('warning', "Incomplete BharatPe payment evidence")
                return False

            if evidence.status and not self.reported_status_is_success(evidence.status):
                return False

            result = self.get_transaction_status(evidence.order_id)
            if result.status != PaymentStatus.SUCCESS:
                self.log('info', "BharatPe order not paid", order_id=evidence.order_id, status=result.status.value)
                return False

            if evidence.payment_id and evidence.payment_id != result.payment_id:
                self.log('warning', "BharatPe payment id mismatch", order_id=evidence.order_id)
                return False

            return True

        except Exception as e:
            self.log('error', "Failed to verify BharatPe payment", error=str(e), exc_info=True)
            return False

    def verify_webhook_signature(self, event: WebhookEvent) -> bool:
        try:
            if not event.signature:
                return False
            secret = self.credentials.webhook_secret or self.credentials.api_key
            expected = self.toolkit.hmac_sha256(self._payload_bytes(event.raw_payload), secret)
            return self.toolkit.constant_time_equals(expected, event.signature)

        except Exception as e:
            self.log('error', "Failed to verify BharatPe webhook signature", error=str(e), exc_info=True)
            return False

    # Status

    def get_transaction_status(self, order_id: str) -> TransactionStatus:
        self._require(order_id, 'order_id')
        try:
            data = self._checked(
                self._request_json('GET', f"/v1/merchant/upi/order/{order_id}", self.headers),
                'Status query failed'
            )
            status = self.normalize_status(data.get('status'))
            amount = data.get('amount')
            payment_id = data.get('transactionId') or data.get('paymentId')
            return TransactionStatus(
                status=status,
                order_id=order_id,
                payment_id=str(payment_id) if payment_id is not None else None,
                amount=quantize_amount(parse_amount(amount)) if amount is not None else None,
                method='upi',
                error_code=data.get('errorCode') if status == PaymentStatus.FAILED else None,
                error_description=data.get('message') if status == PaymentStatus.FAILED else None,
                raw=data,
            )
        except Exception as e:
            raise self._wrap_errors('get_transaction_status', e)

    # Refunds

    def refund_payment(self, request: RefundRequest) -> RefundReceipt:
        payment_id = self._require(request.payment_id, 'payment_id')
        amount = self._refund_amount(request)
        refund_data = {
            'transactionId': payment_id,
            'refundId': request.receipt or generate_order_id('BPR'),
        }
        if request.order_id:
            refund_data['orderId'] = request.order_id
        if amount is not None:
            refund_data['amount'] = float(amount)

        try:
            data = self._checked(
                self._request_json('POST', '/v1/merchant/upi/refund', self.headers, self._json_dumps(refund_data)),
                'Refund failed'
            )
        except Exception as e:
            raise self._wrap_errors('refund_payment', e)

        refunded = data.get('amount', amount)
        self.log('info', "BharatPe refund created", refund_id=data.get('refundId', refund_data['refundId']))
        return RefundReceipt(
            refund_id=str(data.get('refundId', refund_data['refundId'])),
            payment_id=payment_id,
            amount=quantize_amount(parse_amount(refunded)) if refunded is not None else None,
            status=self.normalize_status(data.get('status')),
            provider=self.name,
            raw=data,
        )
