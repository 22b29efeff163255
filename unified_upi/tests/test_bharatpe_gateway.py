"""
Tests for BharatPe payment gateway implementation.
"""

import hashlib
import hmac
from decimal import Decimal

import pytest

from unified_upi.errors import GatewayTimeoutError, ProviderError
from unified_upi.gateways.bharatpe_gateway import BharatPeGateway
from unified_upi.types import (
    CustomerInfo,
    OrderRequest,
    PaymentStatus,
    ProviderCredentials,
    RefundRequest,
    VerificationEvidence,
    WebhookEvent,
)

API_KEY = 'bp_api_key'


def hex_hmac(payload, secret):
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


@pytest.fixture
def gateway(transport):
    return BharatPeGateway(ProviderCredentials(api_key=API_KEY), transport=transport)


class TestCreateOrder:

    def test_create_order(self, gateway, transport):
        transport.queue({
            'success': True,
            'orderId': 'BP_1',
            'amount': 150,
            'currency': 'INR',
            'upiLink': 'upi://pay?pa=bharatpe.9000@icici&am=150.00',
            'qrCode': 'data:image/png;base64,AAAA',
        })

        result = gateway.create_order(OrderRequest(
            amount=150, receipt='BP_1', customer_info=CustomerInfo(contact='9876543210'), description='Groceries'
        ))

        request = transport.last_request
        body = transport.last_json()
        assert request['url'] == 'https://api.bharatpe.com/v1/merchant/upi/create-order'
        assert request['headers']['Authorization'] == f"Bearer {API_KEY}"
        assert body == {
            'amount': 150.0,
            'currency': 'INR',
            'orderId': 'BP_1',
            'customerPhone': '9876543210',
            'description': 'Groceries',
        }
        assert result.order_id == 'BP_1'
        assert result.amount == Decimal('150.00')
        assert result.upi_uri.startswith('upi://pay')
        assert result.qr_image == 'data:image/png;base64,AAAA'

    def test_unsuccessful_response(self, gateway, transport):
        transport.queue({'success': False, 'message': 'Merchant inactive'})

        with pytest.raises(ProviderError) as exc_info:
            gateway.create_order(OrderRequest(amount=1))

        assert exc_info.value.message == 'BharatPe: Merchant inactive'

    def test_timeout_propagates(self, gateway, transport):
        transport.fail_with(GatewayTimeoutError('timed out'))

        with pytest.raises(GatewayTimeoutError):
            gateway.create_order(OrderRequest(amount=1))


class TestVerification:

    def test_confirmed_by_status(self, gateway, transport):
        transport.queue({'success': True, 'status': 'SUCCESS', 'transactionId': 'BPTXN1', 'amount': 150})

        evidence = VerificationEvidence(order_id='BP_1', payment_id='BPTXN1')

        assert gateway.verify_payment(evidence) is True
        assert transport.last_request['url'].endswith('/v1/merchant/upi/order/BP_1')

    def test_payment_id_mismatch(self, gateway, transport):
        transport.queue({'success': True, 'status': 'SUCCESS', 'transactionId': 'BPTXN1'})

        assert gateway.verify_payment(VerificationEvidence(order_id='BP_1', payment_id='OTHER')) is False

    def test_unpaid_order(self, gateway, transport):
        transport.queue({'success': True, 'status': 'PENDING'})

        assert gateway.verify_payment(VerificationEvidence(order_id='BP_1')) is False

    def test_status_query_failure_returns_false(self, gateway, transport):
        transport.fail_with(GatewayTimeoutError('timed out'))

        assert gateway.verify_payment(VerificationEvidence(order_id='BP_1')) is False

    def test_reported_failure_skips_query(self, gateway, transport):
        assert gateway.verify_payment(VerificationEvidence(order_id='BP_1', status='FAILED')) is False
        assert transport.requests == []

    def test_webhook_with_api_key(self, gateway):
        body = b'{"orderId":"BP_1","status":"SUCCESS"}'

        assert gateway.verify_webhook_signature(WebhookEvent('payment', body, hex_hmac(body, API_KEY))) is True

    def test_webhook_prefers_webhook_secret(self, transport):
        gateway = BharatPeGateway(ProviderCredentials(api_key=API_KEY, webhook_secret='whsec'), transport=transport)
        body = b'{"orderId":"BP_1"}'

        assert gateway.verify_webhook_signature(WebhookEvent('payment', body, hex_hmac(body, 'whsec'))) is True
        assert gateway.verify_webhook_signature(WebhookEvent('payment', body, hex_hmac(body, API_KEY))) is False


class TestStatus:

    @pytest.mark.parametrize('token, expected', [
        ('SUCCESS', PaymentStatus.SUCCESS),
        ('FAILED', PaymentStatus.FAILED),
        ('EXPIRED', PaymentStatus.FAILED),
        ('PENDING', PaymentStatus.PENDING),
        ('SOMETHING_ELSE', PaymentStatus.PENDING),
    ])
    def test_status_mapping(self, gateway, transport, token, expected):
        transport.queue({'success': True, 'status': token})

        assert gateway.get_transaction_status('BP_1').status == expected

    def test_failed_details(self, gateway, transport):
        transport.queue({'success': True, 'status': 'FAILED', 'errorCode': 'U30', 'message': 'Debit failed'})

        status = gateway.get_transaction_status('BP_1')

        assert status.error_code == 'U30'
        assert status.error_description == 'Debit failed'


class TestRefunds:

    def test_refund(self, gateway, transport):
        transport.queue({'success': True, 'refundId': 'BPR_1', 'amount': 20, 'status': 'PENDING'})

        receipt = gateway.refund_payment(RefundRequest(payment_id='BPTXN1', amount=20, order_id='BP_1'))

        body = transport.last_json()
        assert transport.last_request['url'].endswith('/v1/merchant/upi/refund')
        assert body['transactionId'] == 'BPTXN1'
        assert body['orderId'] == 'BP_1'
        assert body['amount'] == 20.0
        assert receipt.refund_id == 'BPR_1'
        assert receipt.amount == Decimal('20.00')
        assert receipt.status == PaymentStatus.PENDING

    def test_full_refund(self, gateway, transport):
        transport.queue({'success': True, 'refundId': 'BPR_2', 'status': 'SUCCESS'})

        receipt = gateway.refund_payment(RefundRequest(payment_id='BPTXN1'))

        assert 'amount' not in transport.last_json()
        assert receipt.amount is None
        assert receipt.status == PaymentStatus.SUCCESS
