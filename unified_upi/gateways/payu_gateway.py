"""
PayU payment gateway implementation.

PayU checkout is a browser form POST to the hosted ``_payment`` page, signed
with a SHA512 "forward" hash. PayU answers with a "reverse" hash over the same
fields in the opposite order, salt first. Status and refunds go through the
merchant post service, signed with ``sha512(key|command|var1|salt)``.
"""

from typing import Dict, Any, Mapping
from urllib.parse import parse_qs, urlencode

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
from ..utils import amount_to_string, generate_order_id, generate_transaction_id, parse_amount, quantize_amount
from .base import BaseProvider

UDF_FIELDS = ('udf1', 'udf2', 'udf3', 'udf4', 'udf5')
# reserved slots between udf5 and the salt (forward) or status (reverse)
RESERVED_SLOTS = 5

POSTSERVICE_URLS = {
    'production': 'https://info.payu.in/merchant/postservice?form=2',
    'sandbox': 'https://test.payu.in/merchant/postservice.php?form=2',
}


class PayUGateway(BaseProvider):
    """
    PayU gateway implementation.

    Forward hash::

        key|txnid|amount|productinfo|firstname|email|udf1|...|udf5||||||salt

    Reverse hash::

        [additional_charges|]salt|status||||||udf5|...|udf1|email|firstname|productinfo|amount|txnid|key
    """

    name = 'payu'
    display_name = 'PayU'
    REQUIRED_CREDENTIALS = ('merchant_key', 'merchant_salt')
    CAPABILITIES = frozenset({'upi', 'cards', 'netbanking', 'wallets', 'emi'})
    BASE_URLS = {
        'production': 'https://secure.payu.in',
        'sandbox': 'https://test.payu.in',
    }
    STATUS_MAP = {
        'SUCCESS': PaymentStatus.SUCCESS,
        'CAPTURED': PaymentStatus.SUCCESS,
        'FAILURE': PaymentStatus.FAILED,
        'FAILED': PaymentStatus.FAILED,
        'USERCANCELLED': PaymentStatus.FAILED,
        'BOUNCED': PaymentStatus.FAILED,
        'DROPPED': PaymentStatus.FAILED,
        'PENDING': PaymentStatus.PENDING,
        'IN PROGRESS': PaymentStatus.PROCESSING,
        'INITIATED': PaymentStatus.PROCESSING,
    }

    @property
    def postservice_url(self) -> str:
        return POSTSERVICE_URLS.get(self.environment, POSTSERVICE_URLS['production'])

    # Hashes

    def forward_hash(self, fields: Mapping[str, Any]) -> str:
        """Hash for the checkout form PayU receives from the merchant."""
        parts = [
            self.credentials.merchant_key,
            fields.get('txnid', ''),
            fields.get('amount', ''),
            fields.get('productinfo', ''),
            fields.get('firstname', ''),
            fields.get('email', ''),
        ]
        parts.extend(fields.get(udf) or '' for udf in UDF_FIELDS)
        parts.extend([''] * RESERVED_SLOTS)
        parts.append(self.credentials.merchant_salt)
        return self.toolkit.sha512('|'.join(str(part) for part in parts))

    def reverse_hash(self, fields: Mapping[str, Any]) -> str:
        """Hash PayU sends back with a payment response."""
        parts = [self.credentials.merchant_salt, fields.get('status', '')]
        parts.extend([''] * RESERVED_SLOTS)
        parts.extend(fields.get(udf) or '' for udf in reversed(UDF_FIELDS))
        parts.extend([
            fields.get('email', ''),
            fields.get('firstname', ''),
            fields.get('productinfo', ''),
            fields.get('amount', ''),
            fields.get('txnid', ''),
            self.credentials.merchant_key,
        ])
        additional_charges = fields.get('additional_charges') or fields.get('additionalCharges')
        if additional_charges:
            parts.insert(0, additional_charges)
        return self.toolkit.sha512('|'.join(str(part) for part in parts))

    def command_hash(self, command: str, var1: str) -> str:
        return self.toolkit.sha512(
            f"{self.credentials.merchant_key}|{command}|{var1}|{self.credentials.merchant_salt}"
        )

    def _postservice(self, command: str, var1: str, **variables) -> Dict[str, Any]:
        form = {
            'key': self.credentials.merchant_key,
            'command': command,
            'var1': var1,
            'hash': self.command_hash(command, var1),
        }
        form.update(variables)
        return self._request_json(
            'POST',
            self.postservice_url,
            {'Content-Type': 'application/x-www-form-urlencoded'},
            urlencode(form)
        )

    # Orders

    def create_order(self, request: OrderRequest) -> OrderResult:
        """
        Build a signed PayU checkout form.

        Nothing is sent to PayU: the caller posts ``extras['form_fields']`` to
        ``payment_url`` from the customer's browser.

        Raises:
            ValidationError: If neither ``return_url`` nor a webhook URL is set
        """
        amount = self._validated_amount(request)
        customer = request.customer_info
        notes = request.notes or {}
        return_url = self._require(request.return_url or self.options.webhook_url, 'return_url')

        fields = {
            'key': self.credentials.merchant_key,
            'txnid': request.receipt or generate_transaction_id('PAYU'),
            'amount': amount_to_string(amount),
            'productinfo': request.description or notes.get('productinfo') or notes.get('productInfo') or 'Product',
            'firstname': customer.name or 'Customer',
            'email': customer.email or '',
            'phone': customer.contact or '',
            'surl': return_url,
            'furl': return_url,
            'pg': 'UPI',
        }
        for udf in UDF_FIELDS:
            fields[udf] = str(notes.get(udf) or '')
        if customer.upi_id:
            fields['bankcode'] = 'UPI'
            fields['vpa'] = customer.upi_id
        fields['hash'] = self.forward_hash(fields)

        self.log('info', "PayU checkout form built", order_id=fields['txnid'])
        return OrderResult(
            order_id=fields['txnid'],
            amount=amount,
            currency=self._currency(request),
            provider=self.name,
            payment_url=f"{self.base_url}/_payment",
            extras={'form_fields': fields},
            raw={'txnid': fields['txnid'], 'hash': fields['hash']},
        )

    # Verification

    def _evidence_fields(self, evidence: VerificationEvidence) -> Dict[str, Any]:
        if isinstance(evidence.payload, Mapping):
            return dict(evidence.payload)
        fields = {
            'status': evidence.status,
            'email': evidence.email,
            'firstname': evidence.firstname,
            'productinfo': evidence.productinfo,
            'amount': evidence.amount,
            'txnid': evidence.txnid or evidence.order_id,
        }
        fields.update(evidence.extra or {})
        return {key: '' if value is None else value for key, value in fields.items()}

    def verify_payment(self, evidence: VerificationEvidence) -> bool:
        """
        Verify the reverse hash of a PayU payment response.

        The response fields come from ``evidence.payload`` when it holds the
        posted form, otherwise from the evidence echo fields (udf values and
        ``additional_charges`` go in ``evidence.extra``).
        """
        try:
            fields = self._evidence_fields(evidence)
            supplied = evidence.signature or fields.get('hash')
            if not supplied or not fields.get('txnid'):
                self.log('warning', "Incomplete PayU payment evidence", order_id=evidence.order_id)
                return False

            if not self.toolkit.constant_time_equals(self.reverse_hash(fields), supplied):
                self.log('warning', "PayU reverse hash mismatch", order_id=evidence.order_id)
                return False

            return self.normalize_status(evidence.status or fields.get('status')) == PaymentStatus.SUCCESS

        except Exception as e:
            self.log('error', "Failed to verify PayU payment", error=str(e), exc_info=True)
            return False

    def verify_webhook_signature(self, event: WebhookEvent) -> bool:
        """
        Verify a PayU webhook.

        The body is the URL-encoded response form; the hash is taken from the
        event signature or the form's own ``hash`` field.
        """
        try:
            raw = self._payload_bytes(event.raw_payload).decode('utf-8')
            fields = {key: values[0] for key, values in parse_qs(raw, keep_blank_values=True).items()}
            supplied = event.signature or fields.get('hash')
            if not supplied:
                return False
            return self.toolkit.constant_time_equals(self.reverse_hash(fields), supplied)

        except Exception as e:
            self.log('error', "Failed to verify PayU webhook signature", error=str(e), exc_info=True)
            return False

    # Status

    def get_transaction_status(self, order_id: str) -> TransactionStatus:
        self._require(order_id, 'order_id')
        try:
            data = self._postservice('verify_payment', order_id)
            details = (data.get('transaction_details') or {}).get(order_id)
            if not isinstance(details, Mapping):
                raise self._provider_error(data.get('msg') or 'Status query failed', {'response': data})
            status = self.normalize_status(details.get('status'))
            amount = details.get('amt') or details.get('amount')
            return TransactionStatus(
                status=status,
                order_id=order_id,
                payment_id=details.get('mihpayid'),
                amount=quantize_amount(parse_amount(amount)) if amount else None,
                method=details.get('mode'),
                error_code=details.get('error_code') if status == PaymentStatus.FAILED else None,
                error_description=details.get('error_Message') if status == PaymentStatus.FAILED else None,
                raw=data,
            )
        except Exception as e:
            raise self._wrap_errors('get_transaction_status', e)

    # Refunds

    def refund_payment(self, request: RefundRequest) -> RefundReceipt:
        """
        Queue a PayU refund.

        ``payment_id`` is PayU's ``mihpayid``; PayU needs an explicit amount.
        """
        payment_id = self._require(request.payment_id, 'payment_id')
        amount = self._require(self._refund_amount(request), 'amount')
        token = request.receipt or generate_order_id('PAYUREF')

        try:
            data = self._postservice(
                'cancel_refund_transaction', payment_id, var2=token, var3=amount_to_string(amount)
            )
            if str(data.get('status')) != '1':
                raise self._provider_error(data.get('msg') or 'Refund failed', {'response': data})
        except Exception as e:
            raise self._wrap_errors('refund_payment', e)

        self.log('info', "PayU refund queued", payment_id=payment_id, refund_id=token)
        return RefundReceipt(
            refund_id=str(data.get('request_id') or token),
            payment_id=payment_id,
            amount=amount,
            status=PaymentStatus.PROCESSING,
            provider=self.name,
            raw=data,
        )
