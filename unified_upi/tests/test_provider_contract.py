"""
Behaviour every provider adapter shares.

Tests cover:
- Verification calls answer False for malformed input instead of raising
- Status queries report a malformed vendor body as ProviderError
"""

import pytest

from unified_upi import UnifiedUPIPayment
from unified_upi.errors import ProviderError

PROVIDER_CONFIGS = {
    'razorpay': {'keyId': 'rzp_test', 'keySecret': 'secret'},
    'cashfree': {'appId': 'app', 'secretKey': 'sk'},
    'phonepe': {'merchantId': 'MERCHANT', 'saltKey': 'salt', 'saltIndex': 1},
    'paytm': {'mid': 'MID', 'merchantKey': 'key'},
    'googlepay': {'merchantUpi': 'shop@okaxis', 'merchantName': 'Test Shop'},
    'bharatpe': {'apiKey': 'bp_key'},
    'payu': {'merchantKey': 'gtKFFx', 'merchantSalt': 'eCwWELxi'},
}

MALFORMED_EVIDENCE = [
    None,
    {'orderId': 'O1', 'signature': 'x'},
    'O1|P1|sig',
]


def build_payment(provider, transport, renderer):
    return UnifiedUPIPayment(
        {
            'provider': provider,
            'credentials': PROVIDER_CONFIGS[provider],
            'environment': 'sandbox',
            'options': {'useSdk': False},
        },
        transport=transport,
        qr_renderer=renderer,
    )


@pytest.fixture(params=sorted(PROVIDER_CONFIGS))
def payment(request, transport, renderer):
    return build_payment(request.param, transport, renderer)


class TestVerificationNeverRaises:

    @pytest.mark.parametrize('evidence', MALFORMED_EVIDENCE)
    def test_malformed_payment_evidence(self, payment, evidence):
        assert payment.verify_payment(evidence) is False

    @pytest.mark.parametrize('event', [None, {'payload': '{}', 'signature': 'x'}])
    def test_malformed_webhook_event(self, payment, event):
        assert payment.verify_webhook_signature(event) is False


class TestMalformedStatusBody:
    """A JSON body of the wrong shape surfaces as ProviderError, never AttributeError"""

    @pytest.mark.parametrize('provider', ['razorpay', 'cashfree', 'phonepe', 'paytm', 'bharatpe', 'payu'])
    @pytest.mark.parametrize('body', ['unexpected', 42])
    def test_scalar_body(self, provider, body, transport, renderer):
        payment = build_payment(provider, transport, renderer)
        transport.queue(body)

        with pytest.raises(ProviderError) as exc_info:
            payment.get_transaction_status('ORDER_1')

        assert exc_info.value.provider == provider

    @pytest.mark.parametrize('provider, body', [
        ('razorpay', {'items': ['pay_1']}),
        ('cashfree', [1, 2]),
        ('phonepe', {'success': True, 'code': 'PAYMENT_SUCCESS', 'data': 'oops'}),
        ('paytm', {'body': 'oops'}),
    ])
    def test_nested_values_of_wrong_type(self, provider, body, transport, renderer):
        payment = build_payment(provider, transport, renderer)
        transport.queue(body)

        with pytest.raises(ProviderError):
            payment.get_transaction_status('ORDER_1')
