"""
Paytm payment gateway implementation.

Request bodies are signed as ``sha256(canonical_json + "|" + merchant_key)``.
The body is serialised once, in canonical form (sorted keys, compact
separators), and those exact bytes are both signed and sent, so a later
verification can rebuild the same string.
"""

import json
from typing import Optional, Dict, Any, Mapping, Tuple
from urllib.parse import quote

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
from ..utils import amount_to_string, generate_order_id, parse_amount, quantize_amount
from .base import BaseProvider

DEFAULT_WEBSITE = 'WEBSTAGING'
# callback parameters that carry the signature rather than being signed
SIGNATURE_FIELDS = ('CHECKSUMHASH', 'checksumhash', 'signature')


def canonical_json(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, separators=(',', ':'), ensure_ascii=False)


class PaytmGateway(BaseProvider):
    """
    Paytm gateway implementation.
    """

    name = 'paytm'
    display_name = 'Paytm'
    REQUIRED_CREDENTIALS = ('mid', 'merchant_key')
    CAPABILITIES = frozenset({'upi', 'cards', 'netbanking', 'wallets', 'paytm_wallet'})
    BASE_URLS = {
        'production': 'https://securegw.paytm.in',
        'sandbox': 'https://securegw-stage.paytm.in',
    }
    STATUS_MAP = {
        'TXN_SUCCESS': PaymentStatus.SUCCESS,
        'SUCCESS': PaymentStatus.SUCCESS,
        'TXN_FAILURE': PaymentStatus.FAILED,
        'FAILURE': PaymentStatus.FAILED,
        'PENDING': PaymentStatus.PENDING,
        'OPEN': PaymentStatus.PROCESSING,
    }

    # Checksums

    def generate_checksum(self, body: Mapping[str, Any]) -> Tuple[str, str]:
        """
        Serialise ``body`` canonically and sign it.

        Returns:
            (serialised body, signature)
        """
        serialized = canonical_json(body)
        return serialized, self.toolkit.sha256(f"{serialized}|{self.credentials.merchant_key}")

    def verify_checksum(self, serialized: str, signature: Optional[str]) -> bool:
        if not signature:
            return False
        expected = self.toolkit.sha256(f"{serialized}|{self.credentials.merchant_key}")
        return self.toolkit.constant_time_equals(expected, signature)

    def _signed_post(self, path: str, body: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Send a signed request; returns the response ``body`` and its ``resultInfo``."""
        serialized, signature = self.generate_checksum(body)
        # assembled by hand so the signed bytes are sent verbatim
        request_body = '{"body":' + serialized + ',"head":' + canonical_json({'signature': signature}) + '}'
        data = self._request_json('POST', path, {'Content-Type': 'application/json'}, request_body)
        result = (data.get('body') or {}).get('resultInfo') or {}
        return data.get('body') or {}, result

    # Orders

    def create_order(self, request: OrderRequest) -> OrderResult:
        """
        Initiate a Paytm transaction restricted to UPI.

        The returned ``session_token`` is Paytm's ``txnToken`` for the JS
        checkout; ``payment_url`` is the hosted payment page.
        """
        amount = self._validated_amount(request)
        customer = request.customer_info
        order_id = request.receipt or generate_order_id()
        mid = self.credentials.mid

        body = {
            'requestType': 'Payment',
            'mid': mid,
            'websiteName': self.credentials.website or DEFAULT_WEBSITE,
            'orderId': order_id,
            'txnAmount': {
                'value': amount_to_string(amount),
                'currency': self._currency(request),
            },
            'userInfo': {key: value for key, value in {
                'custId': customer.contact or 'CUST_001',
                'email': customer.email,
                'mobile': customer.contact,
            }.items() if value},
            'enablePaymentMode': [
                {'mode': 'UPI', 'channels': ['UPIPUSH', 'UPIPUSHEXPRESS']},
            ],
        }
        callback_url = self.options.webhook_url or request.return_url
        if callback_url:
            body['callbackUrl'] = callback_url

        query = f"?mid={quote(mid)}&orderId={quote(order_id)}"
        try:
            response, result = self._signed_post(f"/theia/api/v1/initiateTransaction{query}", body)
            if result.get('resultStatus') != 'S':
                raise self._provider_error(
                    result.get('resultMsg') or 'Order creation failed',
                    {'code': result.get('resultCode'), 'response': response}
                )
        except Exception as e:
            raise self._wrap_errors('create_order', e)

        self.log('info', "Paytm transaction initiated", order_id=order_id)
        return OrderResult(
            order_id=order_id,
            amount=amount,
            currency=self._currency(request),
            provider=self.name,
            payment_url=f"{self.base_url}/theia/api/v1/showPaymentPage{query}",
            session_token=response.get('txnToken'),
            raw=response,
        )

    # Verification

    def verify_payment(self, evidence: VerificationEvidence) -> bool:
        """
        Verify Paytm callback parameters.

        When ``evidence.payload`` holds the callback parameters they are
        signed as received (minus the checksum itself); otherwise the body is
        rebuilt from the order, transaction, status and amount echo fields.
        """
        try:
            if not evidence.order_id or not evidence.signature:
                self.log('warning', "Incomplete Paytm payment evidence", order_id=evidence.order_id)
                return False

            if isinstance(evidence.payload, Mapping):
                signed = {k: v for k, v in evidence.payload.items() if k not in SIGNATURE_FIELDS}
                status = evidence.status or signed.get('STATUS') or signed.get('status')
            else:
                signed = {'mid': self.credentials.mid, 'orderId': evidence.order_id}
                if evidence.payment_id:
                    signed['txnId'] = evidence.payment_id
                if evidence.status:
                    signed['status'] = evidence.status
                if evidence.amount is not None:
                    signed['txnAmount'] = amount_to_string(evidence.amount)
                status = evidence.status

            if not self.verify_checksum(canonical_json(signed), evidence.signature):
                self.log('warning', "Paytm checksum mismatch", order_id=evidence.order_id)
                return False

            return self.reported_status_is_success(status)

        except Exception as e:
            self.log('error', "Failed to verify Paytm payment", error=str(e), exc_info=True)
            return False

    def verify_webhook_signature(self, event: WebhookEvent) -> bool:
        """The webhook checksum covers the raw body followed by ``|merchant_key``."""
        try:
            if not event.signature:
                return False
            expected = self.toolkit.sha256(
                self._payload_bytes(event.raw_payload) + b'|' + self.credentials.merchant_key.encode('utf-8')
            )
            return self.toolkit.constant_time_equals(expected, event.signature)

        except Exception as e:
            self.log('error', "Failed to verify Paytm webhook signature", error=str(e), exc_info=True)
            return False

    # Status

    def get_transaction_status(self, order_id: str) -> TransactionStatus:
        self._require(order_id, 'order_id')
        try:
            response, result = self._signed_post('/v3/order/status', {
                'mid': self.credentials.mid,
                'orderId': order_id,
            })
            status = self.normalize_status(result.get('resultStatus'))
            amount = response.get('txnAmount')
            return TransactionStatus(
                status=status,
                order_id=order_id,
                payment_id=response.get('txnId'),
                amount=quantize_amount(parse_amount(amount)) if amount else None,
                method=response.get('paymentMode'),
                error_code=result.get('resultCode') if status != PaymentStatus.SUCCESS else None,
                error_description=result.get('resultMsg') if status != PaymentStatus.SUCCESS else None,
                raw=response,
            )
        except Exception as e:
            raise self._wrap_errors('get_transaction_status', e)

    # Refunds

    def refund_payment(self, request: RefundRequest) -> RefundReceipt:
        """
        Apply for a Paytm refund.

        Paytm refunds need the order id, the Paytm transaction id
        (``payment_id``) and an explicit amount.
        """
        order_id = self._require(request.order_id, 'order_id')
        payment_id = self._require(request.payment_id, 'payment_id')
        amount = self._require(self._refund_amount(request), 'amount')
        ref_id = request.receipt or generate_order_id('REFUND')

        try:
            response, result = self._signed_post('/refund/apply', {
                'mid': self.credentials.mid,
                'txnType': 'REFUND',
                'orderId': order_id,
                'txnId': payment_id,
                'refId': ref_id,
                'refundAmount': amount_to_string(amount),
            })
            if result.get('resultStatus') == 'TXN_FAILURE':
                raise self._provider_error(
                    result.get('resultMsg') or 'Refund failed',
                    {'code': result.get('resultCode'), 'response': response}
                )
        except Exception as e:
            raise self._wrap_errors('refund_payment', e)

        self.log('info', "Paytm refund applied", order_id=order_id, ref_id=ref_id)
        return RefundReceipt(
            refund_id=response.get('refundId') or ref_id,
            payment_id=payment_id,
            amount=quantize_amount(parse_amount(response.get('refundAmount') or amount)),
            status=self.normalize_status(result.get('resultStatus')),
            provider=self.name,
            raw=response,
        )
