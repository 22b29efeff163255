"""
Base classes for payment gateway abstraction.

This module defines the contract every provider adapter implements, so the
façade can drive Razorpay, Cashfree, PhonePe, Paytm, Google Pay, BharatPe
and PayU through one interface.
"""

import json
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, Dict, Any, Iterable, Mapping, Union

from ..crypto import ChecksumToolkit, default_toolkit
from ..errors import GatewayException, NetworkError, ProviderError, ValidationError
from ..qr import QRCodeRenderer
from ..transport import RequestsTransport, Transport, TransportResponse
from ..types import (
    Environment,
    GatewayOptions,
    OrderRequest,
    OrderResult,
    PaymentStatus,
    ProviderCredentials,
    QRCodeOptions,
    RefundReceipt,
    RefundRequest,
    TransactionStatus,
    UPILinkParams,
    VerificationEvidence,
    WebhookEvent,
)
from ..upi import build_upi_link_from_params, render_upi_qr
from ..utils import quantize_amount
from ..validators import is_positive_amount, validate_order_request

_LOG_LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warn': logging.WARNING,
    'warning': logging.WARNING,
    'error': logging.ERROR,
}


class BaseProvider(ABC):
    """
    Abstract base class for provider adapters.

    Adapters hold nothing but their credentials, configuration and an
    optional vendor client built at construction, so one instance can serve
    concurrent calls for different orders.

    Subclasses set:
        name: Provider tag used in configuration (``razorpay``)
        display_name: Vendor name used in error messages
        REQUIRED_CREDENTIALS: Credential fields validated before construction
        CAPABILITIES: Payment methods the vendor supports
        BASE_URLS: Base URL per environment
        STATUS_MAP: Vendor status token (upper-case) -> canonical status

    Methods:
        - Orders (create_order)
        - Verification (verify_payment, verify_webhook_signature)
        - Status (get_transaction_status, normalize_status)
        - Refunds (refund_payment)
        - Deep links (generate_upi_link, generate_qr_code)
    """

    name: str = ''
    display_name: str = ''
    REQUIRED_CREDENTIALS: tuple = ()
    CAPABILITIES: frozenset = frozenset()
    BASE_URLS: Dict[str, str] = {}
    STATUS_MAP: Dict[str, PaymentStatus] = {}

    def __init__(
        self,
        credentials: ProviderCredentials,
        environment: str = Environment.PRODUCTION.value,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
        options=None,
        transport: Optional[Transport] = None,
        toolkit: Optional[ChecksumToolkit] = None,
        qr_renderer=None
    ):
        """
        Initialize the adapter.

        Args:
            credentials: Provider credentials (already validated by the façade)
            environment: ``production`` or ``sandbox``
            logger: Logger to report through; None disables logging
            options: GatewayOptions
            transport: HTTP transport collaborator
            toolkit: Checksum toolkit collaborator
            qr_renderer: Image rendering collaborator
        """
        self.credentials = credentials
        self.environment = environment
        self.logger = logger
        self.options = options or GatewayOptions()
        self.transport = transport or RequestsTransport()
        self.toolkit = toolkit or default_toolkit
        self.qr_renderer = qr_renderer or QRCodeRenderer()

    @property
    def base_url(self) -> str:
        return self.BASE_URLS.get(self.environment) or self.BASE_URLS.get(Environment.PRODUCTION.value, '')

    # Orders

    @abstractmethod
    def create_order(self, request: OrderRequest) -> OrderResult:
        """
        Create an order with the vendor.

        Returns:
            OrderResult with status ``created``

        Raises:
            ValidationError: On bad input
            ProviderError: If the vendor rejects the order
            NetworkError: If the vendor could not be reached
        """

    # Verification

    @abstractmethod
    def verify_payment(self, evidence: VerificationEvidence) -> bool:
        """
        Check payment evidence returned to the merchant after checkout.

        Never raises; any internal failure is logged and reported as False.
        """

    @abstractmethod
    def verify_webhook_signature(self, event: WebhookEvent) -> bool:
        """
        Verify a webhook against its raw payload, exactly as received.

        Never raises; any internal failure is logged and reported as False.
        """

    @property
    def verification_notice(self) -> Optional[str]:
        """Caveat to show before trusting ``verify_payment``, or None when it is signature based."""
        return None

    # Status

    @abstractmethod
    def get_transaction_status(self, order_id: str) -> TransactionStatus:
        """
        Query the vendor for the current state of an order.

        Raises:
            ProviderError: If the status query fails
        """

    # Refunds

    @abstractmethod
    def refund_payment(self, request: RefundRequest) -> RefundReceipt:
        """
        Refund a captured payment.

        Raises:
            ProviderError: If the vendor rejects the refund
        """

    def normalize_status(self, token: Any) -> PaymentStatus:
        """
        Map a vendor status token onto the canonical states.

        Unknown tokens map to ``pending``: an unrecognised status must never
        read as a definite failure.
        """
        if token is None:
            return PaymentStatus.PENDING
        return self.STATUS_MAP.get(str(token).strip().upper(), PaymentStatus.PENDING)

    def reported_status_is_success(self, token: Optional[str]) -> bool:
        """True when no status was reported or it normalises to success."""
        if token in (None, ''):
            return True
        return self.normalize_status(token) == PaymentStatus.SUCCESS

    # Deep links

    def generate_upi_link(self, params: UPILinkParams) -> str:
        return build_upi_link_from_params(params)

    def generate_qr_code(self, params: UPILinkParams, options: Optional[QRCodeOptions] = None):
        return render_upi_qr(params, self.qr_renderer, options or self.options.qr_options)

    # Helpers

    def log(self, level: str, message: str, **data) -> None:
        if self.logger is None:
            return
        exc_info = data.pop('exc_info', False)
        self.logger.log(
            _LOG_LEVELS.get(level, logging.INFO),
            message,
            extra={'provider': self.name, **data},
            exc_info=exc_info
        )

    def _validated_amount(self, request: OrderRequest) -> Decimal:
        validate_order_request(request)
        return quantize_amount(request.amount)

    def _refund_amount(self, request: RefundRequest) -> Optional[Decimal]:
        """Refund amount in rupees, or None for a full refund."""
        if request.amount is None:
            return None
        if not is_positive_amount(request.amount):
            raise ValidationError('Refund amount must be greater than 0', details={'field': 'amount'})
        return quantize_amount(request.amount)

    @staticmethod
    def _currency(request: OrderRequest) -> str:
        return (request.currency or 'INR').upper()

    def _require(self, value, field_name: str):
        if value in (None, ''):
            raise ValidationError(
                f"{self.display_name} requires {field_name}",
                details={'provider': self.name, 'field': field_name}
            )
        return value

    def _provider_error(self, message: str, details: Optional[Dict[str, Any]] = None) -> ProviderError:
        return ProviderError(f"{self.display_name}: {message}", self.name, details)

    def _wrap_errors(self, operation: str, error: Exception) -> GatewayException:
        """
        Translate an unexpected failure into the error taxonomy.

        Validation and network errors pass through unchanged; anything else
        becomes a ProviderError naming the vendor.
        """
        if isinstance(error, (ValidationError, NetworkError, ProviderError)):
            return error
        self.log('error', f"Unexpected error during {operation}", error=str(error), exc_info=True)
        wrapped = self._provider_error(str(error), {'operation': operation})
        wrapped.__cause__ = error
        return wrapped

    def _send(
        self,
        method: str,
        path: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Union[bytes, str, None] = None
    ) -> TransportResponse:
        url = path if path.startswith('http') else f"{self.base_url}{path}"
        self.log('debug', f"{method} {url}")
        return self.transport.send(
            method,
            url,
            headers=dict(headers or {}),
            body=body,
            timeout=self.options.timeout
        )

    def _request_json(
        self,
        method: str,
        path: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Union[bytes, str, None] = None,
        expect: Union[type, tuple] = Mapping
    ) -> Any:
        """
        Send a request and decode a JSON response.

        Args:
            expect: Type (or tuple of types) the decoded body must be; a JSON
                object by default

        Raises:
            ProviderError: On a non-2xx status, a body that is not JSON or a
                body of the wrong JSON type
        """
        response = self._send(method, path, headers, body)
        try:
            data = response.json() if response.body else {}
        except ValueError:
            raise self._provider_error(
                f"Invalid response (HTTP {response.status_code})",
                {'status_code': response.status_code, 'body': response.text[:500]}
            ) from None

        if not response.ok:
            raise self._provider_error(
                self._error_message(data) or f"HTTP {response.status_code}",
                {'status_code': response.status_code, 'response': data}
            )
        if not isinstance(data, expect):
            raise self._provider_error(
                f"Unexpected response body ({type(data).__name__})",
                {'status_code': response.status_code, 'body': response.text[:500]}
            )
        return data

    @staticmethod
    def _error_message(data: Any) -> Optional[str]:
        if not isinstance(data, Mapping):
            return None
        error = data.get('error')
        if isinstance(error, Mapping):
            return error.get('description') or error.get('message')
        return data.get('message') or data.get('error_description') or (error if isinstance(error, str) else None)

    @staticmethod
    def _json_dumps(payload: Any) -> str:
        return json.dumps(payload, separators=(',', ':'))

    @staticmethod
    def _payload_bytes(raw: Union[bytes, str]) -> bytes:
        if isinstance(raw, bytes):
            return raw
        if isinstance(raw, str):
            return raw.encode('utf-8')
        raise TypeError("Webhook payload must be the raw body as bytes or str")

    @classmethod
    def missing_credentials(cls, credentials: ProviderCredentials) -> Iterable[str]:
        return credentials.missing(cls.REQUIRED_CREDENTIALS)
