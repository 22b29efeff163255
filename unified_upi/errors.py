"""
Error taxonomy for the unified UPI payment layer.

Every error carries a stable machine-readable code and an HTTP-style
status code so embedding applications can map failures consistently,
even though no HTTP server is part of this package.
"""

from typing import Optional, Dict, Any


class GatewayException(Exception):
    """
    Base exception for payment gateway errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        status_code: HTTP-style status code
        details: Extra context (provider name, missing fields, raw vendor response)
    """
    default_code = 'GATEWAY_ERROR'
    default_status = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.status_code = status_code or self.default_status
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error': self.__class__.__name__,
            'message': self.message,
            'code': self.error_code,
            'status_code': self.status_code,
            'details': self.details,
        }


class ValidationError(GatewayException):
    """Bad caller input. Never retried."""
    default_code = 'VALIDATION_ERROR'
    default_status = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class ConfigurationError(GatewayException):
    """Malformed or incomplete configuration, surfaced at construction time."""
    default_code = 'CONFIGURATION_ERROR'
    default_status = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class ProviderError(GatewayException):
    """
    The vendor rejected the request or the call failed inside the adapter.

    The caller decides whether to retry.
    """
    default_code = 'PROVIDER_ERROR'
    default_status = 502

    def __init__(self, message: str, provider: str, details: Optional[Dict[str, Any]] = None):
        self.provider = provider
        super().__init__(message, details={'provider': provider, **(details or {})})


class NetworkError(GatewayException):
    """The transport never got an answer from the vendor."""
    default_code = 'NETWORK_ERROR'
    default_status = 503

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class GatewayTimeoutError(NetworkError):
    """The transport gave up waiting for the vendor."""
    default_code = 'TIMEOUT_ERROR'
    default_status = 504
