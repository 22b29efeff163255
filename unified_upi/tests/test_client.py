"""
Tests for the UnifiedUPIPayment façade.
"""

import hashlib
import hmac
from unittest.mock import MagicMock, Mock, patch

import pytest

from unified_upi import UnifiedUPIPayment
from unified_upi.errors import ConfigurationError, NetworkError, ValidationError
from unified_upi.gateways.cashfree_gateway import CashfreeGateway
from unified_upi.gateways.googlepay_gateway import GooglePayGateway
from unified_upi.types import (
    GatewayConfig,
    OrderRequest,
    PaymentStatus,
    RefundRequest,
    TransactionStatus,
    UPILinkParams,
    VerificationEvidence,
    WebhookEvent,
)

GOOGLEPAY_CONFIG = {
    'provider': 'googlepay',
    'credentials': {'merchantUpi': 'shop@okaxis', 'merchantName': 'Test Shop'},
}


@pytest.fixture
def mock_razorpay_client():
    with patch('unified_upi.gateways.razorpay_gateway.razorpay.Client') as mock_client:
        yield mock_client


@pytest.fixture
def googlepay(renderer):
    return UnifiedUPIPayment(GOOGLEPAY_CONFIG, qr_renderer=renderer)


class TestConstruction:

    def test_accepts_mapping_or_config(self, renderer):
        from_mapping = UnifiedUPIPayment(GOOGLEPAY_CONFIG, qr_renderer=renderer)
        from_config = UnifiedUPIPayment(GatewayConfig.from_dict(GOOGLEPAY_CONFIG), qr_renderer=renderer)

        assert isinstance(from_mapping.provider, GooglePayGateway)
        assert from_mapping.config == from_config.config
        assert from_mapping.provider_name == 'googlepay'

    def test_missing_credential_raises_before_network(self, mock_razorpay_client):
        """A missing key_secret is reported by name and no client is built"""
        with pytest.raises(ValidationError) as exc_info:
            UnifiedUPIPayment({'provider': 'razorpay', 'credentials': {'keyId': 'rzp_test'}})

        assert 'key_secret' in exc_info.value.message
        assert exc_info.value.details['missing_fields'] == ['key_secret']
        mock_razorpay_client.assert_not_called()

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            UnifiedUPIPayment({'provider': 'stripe', 'credentials': {}})

    def test_bad_environment(self):
        with pytest.raises(ConfigurationError):
            UnifiedUPIPayment({**GOOGLEPAY_CONFIG, 'environment': 'uat'})

    def test_logger_disabled(self, renderer):
        payment = UnifiedUPIPayment({**GOOGLEPAY_CONFIG, 'options': {'logger': False}}, qr_renderer=renderer)

        assert payment.provider.logger is None

    def test_from_settings(self, settings, transport):
        settings.UNIFIED_UPI = {
            'PROVIDER': 'cashfree',
            'CREDENTIALS': {'APP_ID': 'app', 'SECRET_KEY': 'sk'},
            'ENVIRONMENT': 'sandbox',
        }

        payment = UnifiedUPIPayment.from_settings(transport=transport)

        assert isinstance(payment.provider, CashfreeGateway)
        assert payment.provider.transport is transport


class TestDeepLinkScenario:
    """End-to-end behaviour of the deep-link-only provider"""

    def test_create_order_returns_upi_uri(self, googlepay):
        result = googlepay.create_order(OrderRequest(amount=100, currency='INR'))

        assert result.status == 'created'
        assert result.upi_uri.startswith('upi://pay?pa=')
        assert 'am=100' in result.upi_uri

    def test_capabilities(self, googlepay):
        assert googlepay.get_provider_capabilities() == frozenset({'upi'})

    def test_placeholder_verification_is_labelled(self, renderer):
        payment = UnifiedUPIPayment({**GOOGLEPAY_CONFIG, 'options': {'logger': False}}, qr_renderer=renderer)

        assert payment.verify_payment(VerificationEvidence(order_id='GPAY_1')) is False
        assert 'placeholder' in payment.verification_notice

    def test_generate_upi_link_and_qr(self, googlepay, renderer):
        params = UPILinkParams(pa='shop@okaxis', pn='Test Shop', am='10.00', tr='INV1')

        link = googlepay.generate_upi_link(params)
        image = googlepay.generate_qr_code(params)

        assert link == 'upi://pay?pa=shop@okaxis&pn=Test%20Shop&am=10.00&cu=INR&tr=INV1'
        assert image == f"data:image/png;base64,FAKE:{link}"


class TestHmacScenario:
    """Payment verification through the façade with the Razorpay adapter"""

    def test_signature_verification(self, mock_razorpay_client):
        payment = UnifiedUPIPayment({
            'provider': 'razorpay',
            'credentials': {'keyId': 'rzp_test', 'keySecret': 'secret'},
        })
        signature = hmac.new(b'secret', b'ORDER1|PAY1', hashlib.sha256).hexdigest()
        flipped = signature[:-1] + ('0' if signature[-1] != '0' else '1')

        valid = VerificationEvidence(order_id='ORDER1', payment_id='PAY1', signature=signature)
        invalid = VerificationEvidence(order_id='ORDER1', payment_id='PAY1', signature=flipped)

        assert payment.verify_payment(valid) is True
        assert payment.verify_payment(invalid) is False

    def test_capabilities(self, mock_razorpay_client):
        payment = UnifiedUPIPayment({'provider': 'razorpay', 'credentials': {'keyId': 'k', 'keySecret': 's'}})

        assert payment.get_provider_capabilities() == frozenset(
            {'upi', 'cards', 'netbanking', 'wallets', 'emi', 'international'}
        )


class TestDelegation:
    """Every call reaches the adapter unchanged"""

    @pytest.fixture
    def payment(self, googlepay):
        googlepay.provider = MagicMock()
        return googlepay

    def test_delegates(self, payment):
        order = OrderRequest(amount=1)
        evidence = VerificationEvidence(order_id='O1')
        event = WebhookEvent('e', b'{}')
        refund = RefundRequest(payment_id='P1')

        payment.create_order(order)
        payment.verify_payment(evidence)
        payment.verify_webhook_signature(event)
        payment.get_transaction_status('O1')
        payment.refund_payment(refund)

        payment.provider.create_order.assert_called_once_with(order)
        payment.provider.verify_payment.assert_called_once_with(evidence)
        payment.provider.verify_webhook_signature.assert_called_once_with(event)
        payment.provider.get_transaction_status.assert_called_once_with('O1')
        payment.provider.refund_payment.assert_called_once_with(refund)


class TestStatusNormalisation:

    @pytest.mark.parametrize('config', [
        GOOGLEPAY_CONFIG,
        {'provider': 'cashfree', 'credentials': {'appId': 'a', 'secretKey': 's'}},
        {'provider': 'phonepe', 'credentials': {'merchantId': 'm', 'saltKey': 's'}},
        {'provider': 'paytm', 'credentials': {'mid': 'm', 'merchantKey': 'k'}},
        {'provider': 'bharatpe', 'credentials': {'apiKey': 'k'}},
        {'provider': 'payu', 'credentials': {'merchantKey': 'k', 'merchantSalt': 's'}},
    ])
    def test_unknown_token_is_pending(self, config, renderer):
        payment = UnifiedUPIPayment(config, qr_renderer=renderer)

        assert payment.provider.normalize_status('TOTALLY_NEW_STATUS') == PaymentStatus.PENDING
        assert payment.provider.normalize_status(None) == PaymentStatus.PENDING


class TestWithRetry:

    def test_uses_configured_attempts(self, renderer):
        payment = UnifiedUPIPayment({**GOOGLEPAY_CONFIG, 'options': {'retryCount': 2}}, qr_renderer=renderer)
        operation = Mock(side_effect=[NetworkError('down'), NetworkError('down')])

        with pytest.raises(NetworkError):
            payment.with_retry(operation, delay=0)

        assert operation.call_count == 2

    def test_returns_result(self, googlepay):
        result = googlepay.with_retry(lambda: googlepay.get_transaction_status('GPAY_1'), delay=0)

        assert isinstance(result, TransactionStatus)
