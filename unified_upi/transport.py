"""
HTTP transport used by the REST adapters.

Adapters depend only on the ``Transport`` protocol; ``RequestsTransport``
is the default implementation.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Protocol, Union

import requests

from .errors import NetworkError, GatewayTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class TransportResponse:
    status_code: int
    body: Union[bytes, str] = b''
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        if isinstance(self.body, bytes):
            return self.body.decode('utf-8', errors='replace')
        return self.body

    def json(self) -> Any:
        """Parse the body as JSON; raises ``ValueError`` when it is not JSON."""
        return json.loads(self.text)


class Transport(Protocol):
    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Union[bytes, str, None] = None,
        timeout: Optional[float] = None
    ) -> TransportResponse:
        ...


class RequestsTransport:
    """
    ``requests``-backed transport.

    Non-2xx responses are returned, not raised. Timeouts become
    GatewayTimeoutError and every other transport failure NetworkError.
    """

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Union[bytes, str, None] = None,
        timeout: Optional[float] = None
    ) -> TransportResponse:
        if isinstance(body, str):
            body = body.encode('utf-8')

        try:
            response = requests.request(method, url, headers=headers, data=body, timeout=timeout)
        except requests.Timeout as e:
            logger.warning("Request timed out", extra={'method': method, 'url': url})
            raise GatewayTimeoutError(
                f"Request to {url} timed out",
                details={'method': method, 'url': url}
            ) from e
        except requests.RequestException as e:
            logger.warning("Request failed", extra={'method': method, 'url': url, 'error': str(e)})
            raise NetworkError(
                f"Request to {url} failed: {str(e)}",
                details={'method': method, 'url': url}
            ) from e

        return TransportResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )
