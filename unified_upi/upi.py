"""
UPI deep-link builder.

Builds ``upi://pay`` URIs with a fixed parameter order so identical input
always yields a byte-identical link.
"""

from typing import Optional, Union
from urllib.parse import quote, urlencode

from .types import QRCodeOptions, UPILinkParams
from .utils import Amount, amount_to_string
from .validators import is_valid_upi, validate_upi_params

UPI_BASE_URI = 'upi://pay'

__all__ = ['build_upi_link', 'build_upi_link_from_params', 'render_upi_qr', 'is_valid_upi', 'UPI_BASE_URI']


def build_upi_link_from_params(params: UPILinkParams) -> str:
    """
    Render validated link parameters.

    Required fields come first (pa, pn, am, cu); optional ones follow in the
    order tn, tr, mc, url and are left out when empty.

    Raises:
        ValidationError: On an invalid VPA or non-positive amount
    """
    validate_upi_params(params)

    query = [
        ('pa', params.pa),
        ('pn', params.pn),
        ('am', params.am),
        ('cu', params.cu or 'INR'),
    ]
    for key in ('tn', 'tr', 'mc', 'url'):
        value = getattr(params, key)
        if value:
            query.append((key, value))

    return f"{UPI_BASE_URI}?{urlencode(query, quote_via=quote, safe='@')}"


def build_upi_link(
    payee_address: str,
    payee_name: str,
    amount: Amount,
    currency: str = 'INR',
    note: Optional[str] = None,
    reference: Optional[str] = None,
    merchant_category_code: Optional[str] = None,
    callback_url: Optional[str] = None
) -> str:
    """
    Build a ``upi://pay?pa=...&pn=...&am=...&cu=...`` deep link.

    Numeric amounts are always written with two decimals (``100`` becomes
    ``am=100.00``), the form UPI apps expect for ``am``. A string amount is
    passed through unchanged, so ``'100'`` yields ``am=100``.

    Args:
        payee_address: Payee VPA (``localpart@handle``)
        payee_name: Name shown to the payer
        amount: Positive amount in rupees; numbers are rendered with two decimals
        currency: Currency code, INR for every UPI app today
        note: Transaction note (``tn``)
        reference: Merchant transaction reference (``tr``)
        merchant_category_code: Merchant category code (``mc``)
        callback_url: Reference URL (``url``)

    Raises:
        ValidationError: On an invalid VPA or non-positive amount
    """
    am = amount if isinstance(amount, str) else amount_to_string(amount)
    return build_upi_link_from_params(UPILinkParams(
        pa=payee_address,
        pn=payee_name,
        am=am,
        cu=currency,
        tn=note,
        tr=reference,
        mc=merchant_category_code,
        url=callback_url,
    ))


def render_upi_qr(params: UPILinkParams, renderer, options: Optional[QRCodeOptions] = None) -> Union[str, bytes]:
    """Build the deep link and hand it to ``renderer``; the image payload is returned untouched."""
    options = options or QRCodeOptions()
    link = build_upi_link_from_params(params)
    return renderer.render(
        link,
        size=options.size,
        margin=options.margin,
        dark_color=options.dark_color,
        light_color=options.light_color,
    )
