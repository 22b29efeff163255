"""
Input validation for configuration, orders and UPI deep links.

Every failure raises ValidationError before any network call is attempted.
"""

import re
from typing import Iterable

from .errors import ValidationError
from .types import OrderRequest, ProviderCredentials, UPILinkParams
from .utils import parse_amount, sanitize_phone_number

VPA_PATTERN = re.compile(r'^[A-Za-z0-9._-]+@[A-Za-z0-9]+$')
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_PATTERN = re.compile(r'^[6-9]\d{9}$')

SUPPORTED_CURRENCIES = ('INR',)


def is_valid_upi(vpa: str) -> bool:
    """True for ``localpart@handle`` virtual payment addresses."""
    if not isinstance(vpa, str):
        return False
    return VPA_PATTERN.fullmatch(vpa) is not None


def is_valid_email(email: str) -> bool:
    return isinstance(email, str) and EMAIL_PATTERN.fullmatch(email) is not None


def is_valid_phone(phone: str) -> bool:
    return isinstance(phone, str) and PHONE_PATTERN.fullmatch(sanitize_phone_number(phone)) is not None


def is_positive_amount(value) -> bool:
    try:
        return parse_amount(value) > 0
    except ValidationError:
        return False


def validate_credentials(provider: str, credentials: ProviderCredentials, required: Iterable[str]) -> None:
    """
    Check that every credential field ``provider`` needs is present.

    Raises:
        ValidationError: Naming every missing field
    """
    missing = credentials.missing(required)
    if missing:
        raise ValidationError(
            f"{provider} requires {', '.join(missing)}",
            details={'provider': provider, 'missing_fields': missing}
        )


def validate_order_request(request: OrderRequest) -> None:
    if request.amount is None or not is_positive_amount(request.amount):
        raise ValidationError('Amount must be greater than 0', details={'field': 'amount'})

    if request.currency and request.currency.upper() not in SUPPORTED_CURRENCIES:
        raise ValidationError(
            'Currently only INR currency is supported',
            details={'field': 'currency', 'value': request.currency}
        )

    customer = request.customer_info
    if customer and customer.email and not is_valid_email(customer.email):
        raise ValidationError('Invalid email address', details={'field': 'customer_info.email'})

    if customer and customer.contact and not is_valid_phone(customer.contact):
        raise ValidationError('Invalid phone number', details={'field': 'customer_info.contact'})

    if customer and customer.upi_id and not is_valid_upi(customer.upi_id):
        raise ValidationError('Invalid UPI address format', details={'field': 'customer_info.upi_id'})


def validate_upi_params(params: UPILinkParams) -> None:
    if not params.pa:
        raise ValidationError('Payee address (pa) is required', details={'field': 'pa'})

    if not params.pn:
        raise ValidationError('Payee name (pn) is required', details={'field': 'pn'})

    if not params.am or not is_positive_amount(params.am):
        raise ValidationError('Amount must be greater than 0', details={'field': 'am'})

    if not is_valid_upi(params.pa):
        raise ValidationError('Invalid UPI address format', details={'field': 'pa', 'value': params.pa})
