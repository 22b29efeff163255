"""
PhonePe payment gateway implementation.

Every PhonePe request carries an ``X-VERIFY`` header of the form
``sha256(base64_payload + endpoint_path + salt_key) + "###" + salt_index``.
"""

import json
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
from ..utils import from_paise, generate_transaction_id, to_paise
from .base import BaseProvider

PAY_PATH = '/pg/v1/pay'
REFUND_PATH = '/pg/v1/refund'
STATUS_PATH = '/pg/v1/status/{merchant_id}/{transaction_id}'
CHECKSUM_SEPARATOR = '###'


class PhonePeGateway(BaseProvider):
    """
    PhonePe gateway implementation.

    A checksum is only accepted when both the digest and the salt index after
    ``###`` match the configured salt.
    """

    name = 'phonepe'
    display_name = 'PhonePe'
    REQUIRED_CREDENTIALS = ('merchant_id', 'salt_key')
    CAPABILITIES = frozenset({'upi', 'cards', 'wallets'})
    BASE_URLS = {
        'production': 'https://api.phonepe.com/apis/hermes',
        'sandbox': 'https://api-preprod.phonepe.com/apis/hermes',
    }
    STATUS_MAP = {
        'PAYMENT_SUCCESS': PaymentStatus.SUCCESS,
        'COMPLETED': PaymentStatus.SUCCESS,
        'PAYMENT_ERROR': PaymentStatus.FAILED,
        'PAYMENT_DECLINED': PaymentStatus.FAILED,
        'AUTHORIZATION_FAILED': PaymentStatus.FAILED,
        'TIMED_OUT': PaymentStatus.FAILED,
        'FAILED': PaymentStatus.FAILED,
        'PAYMENT_PENDING': PaymentStatus.PENDING,
        'PENDING': PaymentStatus.PENDING,
        'INTERNAL_SERVER_ERROR': PaymentStatus.PENDING,
        'PAYMENT_INITIATED': PaymentStatus.PROCESSING,
    }

    # Checksums

    def checksum(self, payload: str, path: str = '') -> str:
        """``sha256(payload + path + salt_key)###salt_index``."""
        digest = self.toolkit.sha256(f"{payload}{path}{self.credentials.salt_key}")
        return f"{digest}{CHECKSUM_SEPARATOR}{self.credentials.salt_index}"

    def checksum_matches(self, payload: str, supplied: Optional[str], path: str = '') -> bool:
        if not supplied or CHECKSUM_SEPARATOR not in supplied:
            return False
        digest, _, index = supplied.rpartition(CHECKSUM_SEPARATOR)
        if not index.strip().isdigit() or int(index) != int(self.credentials.salt_index):
            return False
        expected = self.toolkit.sha256(f"{payload}{path}{self.credentials.salt_key}")
        return self.toolkit.constant_time_equals(expected, digest)

    def _status_path(self, transaction_id: str) -> str:
        return STATUS_PATH.format(merchant_id=self.credentials.merchant_id, transaction_id=transaction_id)

    def _signed_post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        encoded = self.toolkit.encode_base64(self._json_dumps(payload))
        headers = {
            'Content-Type': 'application/json',
            'X-VERIFY': self.checksum(encoded, path),
        }
        return self._request_json('POST', path, headers, self._json_dumps({'request': encoded}))

    # Orders

    def create_order(self, request: OrderRequest) -> OrderResult:
        """
        Initiate a PhonePe payment.

        A collect request is sent straight to the customer's VPA when one is
        known; otherwise PhonePe's hosted pay page is used.
        """
        amount = self._validated_amount(request)
        customer = request.customer_info
        transaction_id = request.receipt or generate_transaction_id()

        if customer.upi_id:
            instrument = {'type': 'UPI_COLLECT', 'vpa': customer.upi_id}
        else:
            instrument = {'type': 'PAY_PAGE'}

        payload = {
            'merchantId': self.credentials.merchant_id,
            'merchantTransactionId': transaction_id,
            'merchantUserId': customer.contact or 'guest',
            'amount': to_paise(amount),
            'redirectUrl': request.return_url,
            'redirectMode': 'POST',
            'callbackUrl': self.options.webhook_url,
            'mobileNumber': customer.contact,
            'paymentInstrument': instrument,
        }
        payload = {key: value for key, value in payload.items() if value is not None}

        try:
            data = self._signed_post(PAY_PATH, payload)
            if not data.get('success'):
                raise self._provider_error(
                    data.get('message') or 'Order creation failed',
                    {'code': data.get('code'), 'response': data}
                )
        except Exception as e:
            raise self._wrap_errors('create_order', e)

        redirect = ((data.get('data') or {}).get('instrumentResponse') or {}).get('redirectInfo') or {}
        self.log('info', "PhonePe payment initiated", order_id=transaction_id)
        return OrderResult(
            order_id=transaction_id,
            amount=amount,
            currency='INR',
            provider=self.name,
            payment_url=redirect.get('url'),
            raw=data,
        )

    # Verification

    def verify_payment(self, evidence: VerificationEvidence) -> bool:
        """
        Verify the checksum PhonePe returns with a status response.

        ``evidence.payload`` is the base64 response body and
        ``evidence.signature`` its ``X-VERIFY`` value.
        """
        try:
            if not evidence.order_id or not evidence.signature:
                self.log('warning', "Incomplete PhonePe payment evidence", order_id=evidence.order_id)
                return False

            payload = evidence.payload or ''
            if not self.checksum_matches(payload, evidence.signature, self._status_path(evidence.order_id)):
                self.log('warning', "PhonePe checksum mismatch", order_id=evidence.order_id)
                return False

            return self.reported_status_is_success(evidence.status or self._reported_code(payload))

        except Exception as e:
            self.log('error', "Failed to verify PhonePe payment", error=str(e), exc_info=True)
            return False

    def verify_webhook_signature(self, event: WebhookEvent) -> bool:
        """
        Verify a PhonePe server-to-server callback.

        The callback body is ``{"response": "<base64>"}``; the checksum covers
        the base64 string exactly as sent.
        """
        try:
            raw = self._payload_bytes(event.raw_payload).decode('utf-8')
            try:
                body = json.loads(raw)
            except ValueError:
                body = None
            response = body.get('response') if isinstance(body, dict) else raw
            if not response:
                return False
            return self.checksum_matches(response, event.signature)

        except Exception as e:
            self.log('error', "Failed to verify PhonePe webhook signature", error=str(e), exc_info=True)
            return False

    def _reported_code(self, payload: str) -> Optional[str]:
        if not payload:
            return None
        try:
            decoded = json.loads(self.toolkit.decode_base64(payload))
        except ValueError:
            return None
        return decoded.get('code') if isinstance(decoded, dict) else None

    # Status

    def get_transaction_status(self, order_id: str) -> TransactionStatus:
        self._require(order_id, 'order_id')
        path = self._status_path(order_id)
        headers = {
            'Content-Type': 'application/json',
            'X-VERIFY': self.checksum('', path),
            'X-MERCHANT-ID': self.credentials.merchant_id,
        }
        try:
            data = self._request_json('GET', path, headers)
            details = data.get('data') or {}
            status = self.normalize_status(data.get('code') or details.get('state'))
            instrument = details.get('paymentInstrument') or {}
            return TransactionStatus(
                status=status,
                order_id=order_id,
                payment_id=details.get('transactionId'),
                amount=from_paise(details['amount']) if details.get('amount') is not None else None,
                method=instrument.get('type'),
                error_code=details.get('responseCode') if status == PaymentStatus.FAILED else None,
                error_description=data.get('message') if status == PaymentStatus.FAILED else None,
                raw=data,
            )
        except Exception as e:
            raise self._wrap_errors('get_transaction_status', e)

    # Refunds

    def refund_payment(self, request: RefundRequest) -> RefundReceipt:
        """
        Refund a PhonePe transaction.

        ``order_id`` (the original merchant transaction id) is used when
        given, otherwise ``payment_id``. PhonePe needs an explicit amount.
        """
        amount = self._require(self._refund_amount(request), 'amount')
        refund_id = request.receipt or generate_transaction_id('RFND')
        payload = {
            'merchantId': self.credentials.merchant_id,
            'merchantUserId': (request.notes or {}).get('merchant_user_id', 'guest'),
            'originalTransactionId': request.order_id or self._require(request.payment_id, 'payment_id'),
            'merchantTransactionId': refund_id,
            'amount': to_paise(amount),
        }
        if self.options.webhook_url:
            payload['callbackUrl'] = self.options.webhook_url

        try:
            data = self._signed_post(REFUND_PATH, payload)
            if not data.get('success'):
                raise self._provider_error(
                    data.get('message') or 'Refund failed',
                    {'code': data.get('code'), 'response': data}
                )
        except Exception as e:
            raise self._wrap_errors('refund_payment', e)

        details = data.get('data') or {}
        self.log('info', "PhonePe refund initiated", refund_id=refund_id)
        return RefundReceipt(
            refund_id=details.get('merchantTransactionId', refund_id),
            payment_id=request.payment_id,
            amount=from_paise(details['amount']) if details.get('amount') is not None else amount,
            status=self.normalize_status(data.get('code') or details.get('state')),
            provider=self.name,
            raw=data,
        )
