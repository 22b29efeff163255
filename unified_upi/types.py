"""
Data model shared by the façade and every provider adapter.

Request objects are validated by ``unified_upi.validators``; result objects
carry the vendor's untouched response in ``raw`` so callers can reach
vendor-specific extras without this package modelling every shape.
"""

import re
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any, Callable, Mapping, Union

from .errors import ConfigurationError


class PaymentStatus(str, Enum):
    """Canonical transaction states every vendor vocabulary is mapped onto."""
    SUCCESS = 'success'
    FAILED = 'failed'
    PENDING = 'pending'
    PROCESSING = 'processing'


class Environment(str, Enum):
    PRODUCTION = 'production'
    SANDBOX = 'sandbox'


def _snake_case(name: str) -> str:
    if '_' in name or name.isupper():
        return name.lower()
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


@dataclass(frozen=True)
class ProviderCredentials:
    """
    Sparse bag of vendor credentials.

    Each adapter reads only its own subset; which fields are required is
    decided per provider (see ``REQUIRED_CREDENTIALS`` on each adapter).
    """
    # Razorpay
    key_id: Optional[str] = None
    key_secret: Optional[str] = None
    webhook_secret: Optional[str] = None
    # Cashfree
    app_id: Optional[str] = None
    secret_key: Optional[str] = None
    # PhonePe
    merchant_id: Optional[str] = None
    salt_key: Optional[str] = None
    salt_index: int = 1
    # Paytm
    mid: Optional[str] = None
    merchant_key: Optional[str] = None
    website: Optional[str] = None
    # Google Pay
    merchant_name: Optional[str] = None
    merchant_upi: Optional[str] = None
    merchant_code: Optional[str] = None
    # BharatPe
    api_key: Optional[str] = None
    # PayU (merchant_key is shared with Paytm)
    merchant_salt: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'ProviderCredentials':
        """
        Build credentials from a mapping with snake_case or camelCase keys.

        Raises:
            ConfigurationError: On non-mapping input, an unknown non-empty key
                or a non-integer salt index
        """
        if data is None:
            return cls()
        if isinstance(data, ProviderCredentials):
            return data
        if not isinstance(data, Mapping):
            raise ConfigurationError("Credentials must be a mapping")

        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _snake_case(key)
            if name == 'merchant_u_p_i':
                name = 'merchant_upi'
            if name not in known:
                if value in (None, ''):
                    continue
                raise ConfigurationError(
                    f"Unknown credential field: {key}",
                    details={'field': key}
                )
            values[name] = value

        if values.get('salt_index') is not None:
            try:
                values['salt_index'] = int(values['salt_index'])
            except (TypeError, ValueError):
                raise ConfigurationError(
                    "salt_index must be an integer",
                    details={'field': 'salt_index'}
                ) from None
        else:
            values.pop('salt_index', None)

        return cls(**values)

    def missing(self, required) -> list:
        """Names of ``required`` fields that are absent or empty."""
        return [name for name in required if getattr(self, name, None) in (None, '')]


@dataclass(frozen=True)
class QRCodeOptions:
    size: int = 256
    margin: int = 1
    dark_color: str = '#000000'
    light_color: str = '#FFFFFF'


@dataclass(frozen=True)
class GatewayOptions:
    """
    Behavioural options for the façade and its adapter.

    Attributes:
        timeout: Seconds passed to the transport; None imposes no timeout
        retry_count: Attempts used by ``UnifiedUPIPayment.with_retry``
        logger: True for the library logger, a logger instance, or False/None to disable
        webhook_url: Server-to-server callback URL sent to vendors that accept one
        use_sdk: Razorpay only; use the vendor SDK client instead of raw REST calls
        qr_options: Rendering options for QR images
        verification_callback: Deep-link vendors only; confirms a payment from the
            embedding application's own banking channel
    """
    timeout: Optional[float] = None
    retry_count: int = 3
    logger: Any = True
    webhook_url: Optional[str] = None
    use_sdk: bool = True
    qr_options: QRCodeOptions = field(default_factory=QRCodeOptions)
    verification_callback: Optional[Callable[['VerificationEvidence'], bool]] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'GatewayOptions':
        if data is None:
            return cls()
        if isinstance(data, GatewayOptions):
            return data
        if not isinstance(data, Mapping):
            raise ConfigurationError("Options must be a mapping")

        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _snake_case(key)
            if name not in known:
                raise ConfigurationError(f"Unknown option: {key}", details={'field': key})
            values[name] = value

        qr = values.get('qr_options')
        if isinstance(qr, Mapping):
            values['qr_options'] = QRCodeOptions(**{_snake_case(k): v for k, v in qr.items()})
        return cls(**values)


@dataclass(frozen=True)
class GatewayConfig:
    """
    Immutable gateway configuration.

    Selects exactly one provider adapter for the lifetime of the façade.
    """
    provider: str
    credentials: ProviderCredentials = field(default_factory=ProviderCredentials)
    environment: str = Environment.PRODUCTION.value
    options: GatewayOptions = field(default_factory=GatewayOptions)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'GatewayConfig':
        """Build a config from a plain mapping (keys are case-insensitive)."""
        if not isinstance(data, Mapping):
            raise ConfigurationError("Gateway configuration must be a mapping")
        normalized = {str(key).lower(): value for key, value in data.items()}
        if not normalized.get('provider'):
            raise ConfigurationError("Provider is required")
        return cls(
            provider=str(normalized['provider']).lower().strip(),
            credentials=ProviderCredentials.from_dict(normalized.get('credentials')),
            environment=str(normalized.get('environment') or Environment.PRODUCTION.value).lower(),
            options=GatewayOptions.from_dict(normalized.get('options')),
        )

    @classmethod
    def from_settings(cls, setting_name: str = 'UNIFIED_UPI') -> 'GatewayConfig':
        from .conf import load_config
        return load_config(setting_name)

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION.value


@dataclass(frozen=True)
class CustomerInfo:
    name: Optional[str] = None
    email: Optional[str] = None
    contact: Optional[str] = None
    upi_id: Optional[str] = None


@dataclass
class OrderRequest:
    """
    Order creation request.

    ``amount`` is in rupees; each adapter decides whether the vendor wants
    paise or rupees. ``receipt`` becomes the order reference when the vendor
    lets the merchant choose one; adapters generate one when it is absent.
    """
    amount: Union[Decimal, int, float, str]
    currency: str = 'INR'
    receipt: Optional[str] = None
    customer_info: CustomerInfo = field(default_factory=CustomerInfo)
    return_url: Optional[str] = None
    notes: Dict[str, Any] = field(default_factory=dict)
    description: Optional[str] = None


@dataclass
class OrderResult:
    """
    Result of a successful order creation.

    ``order_id`` is the correlation key for every later verify, status and
    refund call on this order.
    """
    order_id: str
    amount: Decimal
    currency: str
    provider: str
    status: str = 'created'
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    payment_url: Optional[str] = None
    upi_uri: Optional[str] = None
    qr_image: Any = None
    session_token: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)
    raw: Any = None


@dataclass(frozen=True)
class VerificationEvidence:
    """
    Evidence a caller collected after checkout.

    The echo fields (status, email, firstname, productinfo, amount, txnid)
    are only read by adapters that rebuild a hash from them; ``payload``
    carries a vendor's signed blob (PhonePe base64 response, Paytm callback
    parameters).
    """
    order_id: str
    payment_id: Optional[str] = None
    signature: Optional[str] = None
    payload: Any = None
    status: Optional[str] = None
    email: Optional[str] = None
    firstname: Optional[str] = None
    productinfo: Optional[str] = None
    amount: Optional[str] = None
    txnid: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TransactionStatus:
    status: PaymentStatus
    order_id: str
    amount: Optional[Decimal] = None
    payment_id: Optional[str] = None
    method: Optional[str] = None
    error_code: Optional[str] = None
    error_description: Optional[str] = None
    raw: Any = None


@dataclass(frozen=True)
class RefundRequest:
    """
    Refund request.

    ``amount`` of None means a full refund where the vendor allows it.
    Cashfree and Paytm refund against the order and need ``order_id``.
    """
    payment_id: str
    amount: Optional[Union[Decimal, int, float, str]] = None
    order_id: Optional[str] = None
    notes: Dict[str, Any] = field(default_factory=dict)
    receipt: Optional[str] = None


@dataclass
class RefundReceipt:
    refund_id: str
    payment_id: str
    amount: Optional[Decimal]
    status: PaymentStatus
    provider: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    raw: Any = None


@dataclass(frozen=True)
class WebhookEvent:
    """
    Webhook delivery as received from the transport.

    ``raw_payload`` must be the body exactly as received; it is hashed
    as-is and never re-serialised.
    """
    event_name: Optional[str]
    raw_payload: Union[bytes, str]
    signature: Optional[str] = None
    timestamp: Optional[str] = None


@dataclass(frozen=True)
class UPILinkParams:
    """Parameters of a ``upi://pay`` deep link."""
    pa: str
    pn: str
    am: str
    cu: str = 'INR'
    tn: Optional[str] = None
    tr: Optional[str] = None
    mc: Optional[str] = None
    url: Optional[str] = None
