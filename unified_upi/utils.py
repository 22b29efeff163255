"""
Small helpers shared by the adapters: identifiers, amounts and phone numbers.
"""

import re
import secrets
import string
import time
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from .errors import ValidationError

Amount = Union[Decimal, int, float, str]

_TWO_PLACES = Decimal('0.01')
_ID_ALPHABET = string.ascii_uppercase + string.digits


def _millis() -> int:
    return int(time.time() * 1000)


def generate_order_id(prefix: str = 'ORDER') -> str:
    """``ORDER_1700000000000_X7K2P9Q`` style merchant reference."""
    suffix = ''.join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"{prefix}_{_millis()}_{suffix}".upper()


def generate_transaction_id(prefix: str = 'TXN') -> str:
    return f"{prefix}_{_millis()}_{secrets.token_hex(4)}"


def parse_amount(value: Amount) -> Decimal:
    """
    Parse an amount into a Decimal.

    Strings may carry a rupee sign and thousands separators (``₹1,250.50``).

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value}")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = re.sub(r'[₹,\s]', '', value)
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            raise ValidationError(f"Invalid amount: {value}") from None
    else:
        raise ValidationError(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value}")
    return amount


def quantize_amount(value: Amount) -> Decimal:
    return parse_amount(value).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def amount_to_string(value: Amount) -> str:
    """Two-decimal string used on the wire (``100`` -> ``"100.00"``)."""
    return str(quantize_amount(value))


def to_paise(value: Amount) -> int:
    return int((parse_amount(value) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_paise(value: Union[int, str]) -> Decimal:
    return (Decimal(str(value)) / 100).quantize(_TWO_PLACES)


def format_amount(value: Amount, currency: str = 'INR') -> str:
    """
    Human readable amount with Indian digit grouping.

    >>> format_amount(100000)
    '₹1,00,000.00'
    """
    amount = quantize_amount(value)
    sign = '-' if amount < 0 else ''
    whole, fraction = str(abs(amount)).split('.')

    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ','.join(groups + [tail])

    symbol = '₹' if currency.upper() == 'INR' else f"{currency.upper()} "
    return f"{sign}{symbol}{whole}.{fraction}"


def sanitize_phone_number(phone: str) -> str:
    """Strip formatting and a leading ``91`` country code."""
    cleaned = re.sub(r'\D', '', phone or '')
    if len(cleaned) == 12 and cleaned.startswith('91'):
        return cleaned[2:]
    return cleaned
