"""
Razorpay payment gateway implementation.

Implements the BaseProvider contract for Razorpay orders, payment
signature checks, status lookups, refunds and webhooks.
"""

import base64
from datetime import datetime, timezone
from typing import Optional, Dict, Any

import razorpay
import requests

from ..errors import GatewayTimeoutError, NetworkError
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
from ..utils import from_paise, generate_order_id, to_paise
from .base import BaseProvider

RAZORPAY_API_BASE = 'https://api.razorpay.com'


class _SdkClient:
    """Order, payment and refund calls through the official SDK."""

    def __init__(self, key_id: str, key_secret: str, timeout: Optional[float] = None):
        self.client = razorpay.Client(auth=(key_id, key_secret))
        # extra keyword arguments are forwarded by the SDK to requests
        self.request_options = {'timeout': timeout} if timeout is not None else {}

    def create_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.order.create(data=data, **self.request_options)

    def fetch_order(self, order_id: str) -> Dict[str, Any]:
        return self.client.order.fetch(order_id, **self.request_options)

    def order_payments(self, order_id: str) -> Dict[str, Any]:
        return self.client.order.payments(order_id, **self.request_options)

    def refund(self, payment_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.payment.refund(payment_id, data, **self.request_options)


class _RestClient:
    """The same calls as raw REST requests through the adapter's transport."""

    def __init__(self, gateway: 'RazorpayGateway'):
        self.gateway = gateway
        token = base64.b64encode(
            f"{gateway.credentials.key_id}:{gateway.credentials.key_secret}".encode('utf-8')
        ).decode('ascii')
        self.headers = {
            'Authorization': f"Basic {token}",
            'Content-Type': 'application/json',
        }

    def create_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.gateway._request_json('POST', '/v1/orders', self.headers, self.gateway._json_dumps(data))

    def fetch_order(self, order_id: str) -> Dict[str, Any]:
        return self.gateway._request_json('GET', f"/v1/orders/{order_id}", self.headers)

    def order_payments(self, order_id: str) -> Dict[str, Any]:
        return self.gateway._request_json('GET', f"/v1/orders/{order_id}/payments", self.headers)

    def refund(self, payment_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.gateway._request_json(
            'POST', f"/v1/payments/{payment_id}/refund", self.headers, self.gateway._json_dumps(data)
        )


class RazorpayGateway(BaseProvider):
    """
    Razorpay gateway implementation.

    Payment signatures are ``HMAC_SHA256("order_id|payment_id", key_secret)``
    in hex; webhooks are signed with the dashboard webhook secret over the
    raw request body.
    """

    name = 'razorpay'
    display_name = 'Razorpay'
    REQUIRED_CREDENTIALS = ('key_id', 'key_secret')
    CAPABILITIES = frozenset({'upi', 'cards', 'netbanking', 'wallets', 'emi', 'international'})
    BASE_URLS = {
        'production': RAZORPAY_API_BASE,
        'sandbox': RAZORPAY_API_BASE,
    }
    STATUS_MAP = {
        # payments
        'CAPTURED': PaymentStatus.SUCCESS,
        'REFUNDED': PaymentStatus.SUCCESS,
        'AUTHORIZED': PaymentStatus.PROCESSING,
        'FAILED': PaymentStatus.FAILED,
        'CREATED': PaymentStatus.PENDING,
        # orders
        'PAID': PaymentStatus.SUCCESS,
        'ATTEMPTED': PaymentStatus.PROCESSING,
        # refunds
        'PROCESSED': PaymentStatus.SUCCESS,
        'PENDING': PaymentStatus.PENDING,
    }

    def __init__(self, credentials, environment='production', logger=None, options=None,
                 transport=None, toolkit=None, qr_renderer=None):
        """
        Initialize the Razorpay client.

        The SDK client (``options.use_sdk``) or the raw REST client is picked
        here once and never re-decided per call.
        """
        super().__init__(credentials, environment, logger, options, transport, toolkit, qr_renderer)
        if self.options.use_sdk:
            self.client = _SdkClient(credentials.key_id, credentials.key_secret, self.options.timeout)
        else:
            self.client = _RestClient(self)

    # Orders

    def create_order(self, request: OrderRequest) -> OrderResult:
        """
        Create a Razorpay order.

        Amounts are sent in paise; the result carries rupees.
        """
        amount = self._validated_amount(request)
        order_data = {
            'amount': to_paise(amount),
            'currency': self._currency(request),
            'receipt': request.receipt or generate_order_id('order'),
            'payment_capture': 1,
            'partial_payment': False,
        }
        if request.notes:
            order_data['notes'] = request.notes

        try:
            order = self._call(self.client.create_order, order_data)
        except Exception as e:
            raise self._wrap_errors('create_order', e)

        self.log('info', "Razorpay order created", order_id=order.get('id'))
        return OrderResult(
            order_id=order['id'],
            amount=from_paise(order.get('amount', to_paise(amount))),
            currency=order.get('currency', order_data['currency']),
            provider=self.name,
            created_at=_timestamp(order.get('created_at')),
            raw=order,
        )

    # Verification

    def verify_payment(self, evidence: VerificationEvidence) -> bool:
        """
        Verify the checkout signature Razorpay hands back to the merchant.
        """
        try:
            if not evidence.order_id or not evidence.payment_id or not evidence.signature:
                self.log('warning', "Incomplete Razorpay payment evidence", order_id=evidence.order_id)
                return False

            expected = self.toolkit.hmac_sha256(
                f"{evidence.order_id}|{evidence.payment_id}",
                self.credentials.key_secret
            )
            if not self.toolkit.constant_time_equals(expected, evidence.signature):
                self.log('warning', "Razorpay payment signature mismatch", order_id=evidence.order_id)
                return False

            return self.reported_status_is_success(evidence.status)

        except Exception as e:
            self.log('error', "Failed to verify Razorpay payment signature", error=str(e), exc_info=True)
            return False

    def verify_webhook_signature(self, event: WebhookEvent) -> bool:
        """
        Verify a Razorpay webhook.

        Razorpay uses HMAC SHA256 of the raw body with the webhook secret.
        """
        try:
            if not self.credentials.webhook_secret:
                self.log('error', "Razorpay webhook secret not configured")
                return False
            if not event.signature:
                return False

            expected = self.toolkit.hmac_sha256(
                self._payload_bytes(event.raw_payload),
                self.credentials.webhook_secret
            )
            return self.toolkit.constant_time_equals(expected, event.signature)

        except Exception as e:
            self.log('error', "Failed to verify Razorpay webhook signature", error=str(e), exc_info=True)
            return False

    # Status

    def get_transaction_status(self, order_id: str) -> TransactionStatus:
        """
        Status of an order, taken from its payments when any exist.

        A captured payment wins over later failed attempts.
        """
        self._require(order_id, 'order_id')
        try:
            payments = self._call(self.client.order_payments, order_id).get('items') or []
            if payments:
                captured = [p for p in payments if str(p.get('status', '')).lower() == 'captured']
                payment = (captured or sorted(payments, key=lambda p: p.get('created_at') or 0))[-1]
                return TransactionStatus(
                    status=self.normalize_status(payment.get('status')),
                    order_id=order_id,
                    payment_id=payment.get('id'),
                    amount=from_paise(payment['amount']) if payment.get('amount') is not None else None,
                    method=payment.get('method'),
                    error_code=payment.get('error_code'),
                    error_description=payment.get('error_description'),
                    raw=payment,
                )

            order = self._call(self.client.fetch_order, order_id)
            return TransactionStatus(
                status=self.normalize_status(order.get('status')),
                order_id=order_id,
                amount=from_paise(order['amount']) if order.get('amount') is not None else None,
                raw=order,
            )
        except Exception as e:
            raise self._wrap_errors('get_transaction_status', e)

    # Refunds

    def refund_payment(self, request: RefundRequest) -> RefundReceipt:
        self._require(request.payment_id, 'payment_id')
        amount = self._refund_amount(request)
        refund_data = {}
        if amount is not None:
            refund_data['amount'] = to_paise(amount)
        if request.notes:
            refund_data['notes'] = request.notes
        if request.receipt:
            refund_data['receipt'] = request.receipt

        try:
            refund = self._call(self.client.refund, request.payment_id, refund_data)
        except Exception as e:
            raise self._wrap_errors('refund_payment', e)

        self.log('info', "Razorpay refund created", payment_id=request.payment_id, refund_id=refund.get('id'))
        return RefundReceipt(
            refund_id=refund['id'],
            payment_id=refund.get('payment_id', request.payment_id),
            amount=from_paise(refund['amount']) if refund.get('amount') is not None else None,
            status=self.normalize_status(refund.get('status')),
            provider=self.name,
            created_at=_timestamp(refund.get('created_at')),
            raw=refund,
        )

    # Helpers

    def _call(self, method, *args):
        """
        Run a client call, translating SDK and ``requests`` failures.

        Raises:
            ProviderError: If Razorpay rejects the request
            GatewayTimeoutError: If the request timed out
            NetworkError: If Razorpay could not be reached
        """
        try:
            return method(*args)
        except (razorpay.errors.BadRequestError, razorpay.errors.GatewayError, razorpay.errors.ServerError) as e:
            self.log('warning', "Razorpay rejected the request", error=str(e))
            raise self._provider_error(str(e), {'gateway_response': e.args[0] if e.args else None}) from e
        except requests.Timeout as e:
            raise GatewayTimeoutError("Razorpay request timed out") from e
        except requests.RequestException as e:
            raise NetworkError(f"Razorpay request failed: {str(e)}") from e


def _timestamp(value) -> datetime:
    if value:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    return datetime.now(timezone.utc)
