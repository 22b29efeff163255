"""
Cashfree payment gateway implementation.

Orders go through the Cashfree PG REST API; signatures are base64-encoded
HMAC SHA256 digests keyed with the client secret.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any

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

API_VERSION = '2023-08-01'


class CashfreeGateway(BaseProvider):
    """
    Cashfree gateway implementation.

    Payment evidence is signed as base64 ``HMAC_SHA256("order_id|payment_id")``;
    webhooks sign ``timestamp + raw body`` and send the timestamp in the
    ``x-webhook-timestamp`` header.
    """

    name = 'cashfree'
    display_name = 'Cashfree'
    REQUIRED_CREDENTIALS = ('app_id', 'secret_key')
    CAPABILITIES = frozenset({'upi', 'cards', 'netbanking', 'wallets', 'paylater'})
    BASE_URLS = {
        'production': 'https://api.cashfree.com',
        'sandbox': 'https://sandbox.cashfree.com',
    }
    STATUS_MAP = {
        'SUCCESS': PaymentStatus.SUCCESS,
        'PAID': PaymentStatus.SUCCESS,
        'FAILED': PaymentStatus.FAILED,
        'USER_DROPPED': PaymentStatus.FAILED,
        'CANCELLED': PaymentStatus.FAILED,
        'VOID': PaymentStatus.FAILED,
        'EXPIRED': PaymentStatus.FAILED,
        'TERMINATED': PaymentStatus.FAILED,
        'NOT_ATTEMPTED': PaymentStatus.PENDING,
        'PENDING': PaymentStatus.PENDING,
        'ACTIVE': PaymentStatus.PENDING,
        'TERMINATION_REQUESTED': PaymentStatus.PROCESSING,
        'ONHOLD': PaymentStatus.PROCESSING,
    }

    @property
    def headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'x-client-id': self.credentials.app_id,
            'x-client-secret': self.credentials.secret_key,
            'x-api-version': API_VERSION,
        }

    # Orders

    def create_order(self, request: OrderRequest) -> OrderResult:
        amount = self._validated_amount(request)
        customer = request.customer_info
        order_data = {
            'order_id': request.receipt or generate_order_id('order'),
            'order_amount': float(amount),
            'order_currency': self._currency(request),
            'customer_details': _drop_empty({
                'customer_id': customer.contact or 'guest',
                'customer_email': customer.email,
                'customer_phone': customer.contact,
                'customer_name': customer.name,
            }),
            'order_meta': _drop_empty({
                'return_url': request.return_url,
                'notify_url': self.options.webhook_url,
                'payment_methods': 'upi',
            }),
        }
        if request.description:
            order_data['order_note'] = request.description
        if request.notes:
            order_data['order_tags'] = {str(k): str(v) for k, v in request.notes.items()}

        try:
            data = self._request_json('POST', '/pg/orders', self.headers, self._json_dumps(order_data))
        except Exception as e:
            raise self._wrap_errors('create_order', e)

        self.log('info', "Cashfree order created", order_id=data.get('order_id'))
        return OrderResult(
            order_id=data.get('order_id', order_data['order_id']),
            amount=quantize_amount(data.get('order_amount', amount)),
            currency=data.get('order_currency', order_data['order_currency']),
            provider=self.name,
            created_at=_parse_datetime(data.get('created_at')),
            session_token=data.get('payment_session_id'),
            raw=data,
        )

    # Verification

    def verify_payment(self, evidence: VerificationEvidence) -> bool:
        try:
            if not evidence.order_id or not evidence.payment_id or not evidence.signature:
                self.log('warning', "Incomplete Cashfree payment evidence", order_id=evidence.order_id)
                return False

            expected = self.toolkit.hmac_sha256(
                f"{evidence.order_id}|{evidence.payment_id}",
                self.credentials.secret_key,
                encoding='base64'
            )
            if not self.toolkit.constant_time_equals(expected, evidence.signature):
                self.log('warning', "Cashfree payment signature mismatch", order_id=evidence.order_id)
                return False

            return self.reported_status_is_success(evidence.status)

        except Exception as e:
            self.log('error', "Failed to verify Cashfree payment signature", error=str(e), exc_info=True)
            return False

    def verify_webhook_signature(self, event: WebhookEvent) -> bool:
        try:
            if not event.signature:
                return False
            timestamp = (event.timestamp or '').encode('utf-8')
            expected = self.toolkit.hmac_sha256(
                timestamp + self._payload_bytes(event.raw_payload),
                self.credentials.secret_key,
                encoding='base64'
            )
            return self.toolkit.constant_time_equals(expected, event.signature)

        except Exception as e:
            self.log('error', "Failed to verify Cashfree webhook signature", error=str(e), exc_info=True)
            return False

    # Status

    def get_transaction_status(self, order_id: str) -> TransactionStatus:
        self._require(order_id, 'order_id')
        try:
            payments = self._request_json(
                'GET', f"/pg/orders/{order_id}/payments", self.headers, expect=(list, dict)
            )
            if isinstance(payments, list) and payments:
                successful = [p for p in payments if str(p.get('payment_status', '')).upper() == 'SUCCESS']
                payment = (successful or sorted(payments, key=lambda p: p.get('payment_time') or ''))[-1]
                error = payment.get('error_details') or {}
                return TransactionStatus(
                    status=self.normalize_status(payment.get('payment_status')),
                    order_id=order_id,
                    payment_id=_str_or_none(payment.get('cf_payment_id')),
                    amount=_amount_or_none(payment.get('payment_amount')),
                    method=payment.get('payment_group'),
                    error_code=error.get('error_code'),
                    error_description=error.get('error_description'),
                    raw=payment,
                )

            order = self._request_json('GET', f"/pg/orders/{order_id}", self.headers)
            return TransactionStatus(
                status=self.normalize_status(order.get('order_status')),
                order_id=order_id,
                amount=_amount_or_none(order.get('order_amount')),
                raw=order,
            )
        except Exception as e:
            raise self._wrap_errors('get_transaction_status', e)

    # Refunds

    def refund_payment(self, request: RefundRequest) -> RefundReceipt:
        """
        Refund against a Cashfree order.

        Cashfree refunds are keyed by order and always need an explicit amount.
        """
        order_id = self._require(request.order_id, 'order_id')
        amount = self._require(self._refund_amount(request), 'amount')
        refund_data = {
            'refund_amount': float(amount),
            'refund_id': request.receipt or generate_order_id('refund'),
        }
        if request.notes:
            refund_data['refund_note'] = str(request.notes.get('reason') or request.notes)

        try:
            refund = self._request_json(
                'POST', f"/pg/orders/{order_id}/refunds", self.headers, self._json_dumps(refund_data)
            )
        except Exception as e:
            raise self._wrap_errors('refund_payment', e)

        self.log('info', "Cashfree refund created", order_id=order_id, refund_id=refund.get('refund_id'))
        return RefundReceipt(
            refund_id=str(refund.get('refund_id') or refund_data['refund_id']),
            payment_id=_str_or_none(refund.get('cf_payment_id')) or request.payment_id,
            amount=_amount_or_none(refund.get('refund_amount', refund_data['refund_amount'])),
            status=self.normalize_status(refund.get('refund_status')),
            provider=self.name,
            created_at=_parse_datetime(refund.get('created_at')),
            raw=refund,
        )


def _drop_empty(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value not in (None, '')}


def _str_or_none(value) -> Optional[str]:
    return None if value is None else str(value)


def _amount_or_none(value):
    return None if value is None else quantize_amount(parse_amount(value))


def _parse_datetime(value) -> datetime:
    if value:
        try:
            return datetime.fromisoformat(str(value))
        except ValueError:
            pass
    return datetime.now(timezone.utc)
