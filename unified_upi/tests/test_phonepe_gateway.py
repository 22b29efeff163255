"""
Tests for PhonePe payment gateway implementation.
"""

import base64
import hashlib
import json
from decimal import Decimal

import pytest

from unified_upi.errors import ProviderError, ValidationError
from unified_upi.gateways.phonepe_gateway import PhonePeGateway
from unified_upi.types import (
    CustomerInfo,
    OrderRequest,
    PaymentStatus,
    ProviderCredentials,
    RefundRequest,
    VerificationEvidence,
    WebhookEvent,
)

MERCHANT_ID = 'PGTESTPAYUAT'
SALT_KEY = 'salt-key-123'
SALT_INDEX = 1


def x_verify(payload, path='', index=SALT_INDEX):
    return hashlib.sha256(f"{payload}{path}{SALT_KEY}".encode()).hexdigest() + f"###{index}"


def encode(payload):
    return base64.b64encode(json.dumps(payload).encode()).decode()


@pytest.fixture
def gateway(transport):
    return PhonePeGateway(
        ProviderCredentials(merchant_id=MERCHANT_ID, salt_key=SALT_KEY, salt_index=SALT_INDEX),
        environment='sandbox',
        transport=transport
    )


class TestChecksum:

    def test_checksum_format(self, gateway):
        assert gateway.checksum('abc', '/pg/v1/pay') == x_verify('abc', '/pg/v1/pay')

    def test_wrong_salt_index_rejected(self, gateway):
        assert gateway.checksum_matches('abc', x_verify('abc', index=2)) is False

    def test_missing_separator_rejected(self, gateway):
        digest = hashlib.sha256(f"abc{SALT_KEY}".encode()).hexdigest()

        assert gateway.checksum_matches('abc', digest) is False

    def test_non_numeric_index_rejected(self, gateway):
        digest = hashlib.sha256(f"abc{SALT_KEY}".encode()).hexdigest()

        assert gateway.checksum_matches('abc', digest + '###x') is False


class TestCreateOrder:

    def test_pay_page(self, gateway, transport):
        transport.queue({
            'success': True,
            'code': 'PAYMENT_INITIATED',
            'data': {'instrumentResponse': {'redirectInfo': {'url': 'https://mercury.phonepe.com/pay/abc'}}},
        })

        result = gateway.create_order(OrderRequest(
            amount=100, receipt='MT7850590068188104', return_url='https://shop.example/return'
        ))

        request = transport.last_request
        encoded = transport.last_json()['request']
        payload = json.loads(base64.b64decode(encoded))
        assert request['url'] == 'https://api-preprod.phonepe.com/apis/hermes/pg/v1/pay'
        assert request['headers']['X-VERIFY'] == x_verify(encoded, '/pg/v1/pay')
        assert payload['amount'] == 10000
        assert payload['merchantTransactionId'] == 'MT7850590068188104'
        assert payload['paymentInstrument'] == {'type': 'PAY_PAGE'}
        assert result.order_id == 'MT7850590068188104'
        assert result.payment_url == 'https://mercury.phonepe.com/pay/abc'
        assert result.amount == Decimal('100.00')

    def test_upi_collect(self, gateway, transport):
        transport.queue({'success': True, 'code': 'PAYMENT_INITIATED', 'data': {}})

        gateway.create_order(OrderRequest(amount=1, customer_info=CustomerInfo(upi_id='buyer@ybl')))

        payload = json.loads(base64.b64decode(transport.last_json()['request']))
        assert payload['paymentInstrument'] == {'type': 'UPI_COLLECT', 'vpa': 'buyer@ybl'}

    def test_rejected(self, gateway, transport):
        transport.queue({'success': False, 'code': 'BAD_REQUEST', 'message': 'Please check the inputs'})

        with pytest.raises(ProviderError) as exc_info:
            gateway.create_order(OrderRequest(amount=1))

        assert exc_info.value.message == 'PhonePe: Please check the inputs'
        assert exc_info.value.details['code'] == 'BAD_REQUEST'


class TestVerification:

    def test_valid_status_response(self, gateway):
        response = encode({'success': True, 'code': 'PAYMENT_SUCCESS'})
        path = f"/pg/v1/status/{MERCHANT_ID}/MT1"
        evidence = VerificationEvidence(order_id='MT1', payload=response, signature=x_verify(response, path))

        assert gateway.verify_payment(evidence) is True

    def test_authentic_but_failed(self, gateway):
        response = encode({'success': False, 'code': 'PAYMENT_ERROR'})
        path = f"/pg/v1/status/{MERCHANT_ID}/MT1"
        evidence = VerificationEvidence(order_id='MT1', payload=response, signature=x_verify(response, path))

        assert gateway.verify_payment(evidence) is False

    def test_tampered_payload(self, gateway):
        response = encode({'success': True, 'code': 'PAYMENT_SUCCESS'})
        path = f"/pg/v1/status/{MERCHANT_ID}/MT1"
        evidence = VerificationEvidence(
            order_id='MT1', payload=encode({'success': True, 'code': 'PAYMENT_SUCCESS', 'x': 1}),
            signature=x_verify(response, path)
        )

        assert gateway.verify_payment(evidence) is False

    def test_missing_signature(self, gateway):
        assert gateway.verify_payment(VerificationEvidence(order_id='MT1', payload='abc')) is False

    def test_webhook(self, gateway):
        response = encode({'success': True, 'code': 'PAYMENT_SUCCESS'})
        body = json.dumps({'response': response}).encode()

        assert gateway.verify_webhook_signature(WebhookEvent(None, body, x_verify(response))) is True

    def test_webhook_bad_checksum(self, gateway):
        body = json.dumps({'response': encode({'code': 'PAYMENT_SUCCESS'})})

        assert gateway.verify_webhook_signature(WebhookEvent(None, body, 'deadbeef###1')) is False

    def test_webhook_garbage_body(self, gateway):
        assert gateway.verify_webhook_signature(WebhookEvent(None, b'\xff\xfe', 'x###1')) is False


class TestStatus:

    def test_status(self, gateway, transport):
        transport.queue({
            'success': True,
            'code': 'PAYMENT_SUCCESS',
            'data': {
                'merchantTransactionId': 'MT1',
                'transactionId': 'T2401011000',
                'amount': 10000,
                'state': 'COMPLETED',
                'paymentInstrument': {'type': 'UPI'},
            },
        })

        status = gateway.get_transaction_status('MT1')

        path = f"/pg/v1/status/{MERCHANT_ID}/MT1"
        request = transport.last_request
        assert request['method'] == 'GET'
        assert request['url'].endswith(path)
        assert request['headers']['X-VERIFY'] == x_verify('', path)
        assert request['headers']['X-MERCHANT-ID'] == MERCHANT_ID
        assert status.status == PaymentStatus.SUCCESS
        assert status.payment_id == 'T2401011000'
        assert status.amount == Decimal('100.00')
        assert status.method == 'UPI'

    def test_declined(self, gateway, transport):
        transport.queue({
            'success': False,
            'code': 'PAYMENT_DECLINED',
            'message': 'Payment declined by bank',
            'data': {'responseCode': 'ZM', 'amount': 10000},
        })

        status = gateway.get_transaction_status('MT1')

        assert status.status == PaymentStatus.FAILED
        assert status.error_code == 'ZM'
        assert status.error_description == 'Payment declined by bank'

    def test_pending(self, gateway, transport):
        transport.queue({'success': True, 'code': 'PAYMENT_PENDING', 'data': {}})

        assert gateway.get_transaction_status('MT1').status == PaymentStatus.PENDING


class TestRefunds:

    def test_refund(self, gateway, transport):
        transport.queue({
            'success': True,
            'code': 'PAYMENT_SUCCESS',
            'data': {'merchantTransactionId': 'RF1', 'amount': 5000, 'state': 'COMPLETED'},
        })

        receipt = gateway.refund_payment(RefundRequest(payment_id='T240101', order_id='MT1', amount=50,
                                                       receipt='RF1'))

        encoded = transport.last_json()['request']
        payload = json.loads(base64.b64decode(encoded))
        assert transport.last_request['url'].endswith('/pg/v1/refund')
        assert transport.last_request['headers']['X-VERIFY'] == x_verify(encoded, '/pg/v1/refund')
        assert payload['originalTransactionId'] == 'MT1'
        assert payload['amount'] == 5000
        assert receipt.refund_id == 'RF1'
        assert receipt.amount == Decimal('50.00')
        assert receipt.status == PaymentStatus.SUCCESS

    def test_refund_needs_amount(self, gateway):
        with pytest.raises(ValidationError):
            gateway.refund_payment(RefundRequest(payment_id='T240101'))
