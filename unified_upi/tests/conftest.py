"""
Shared fixtures for gateway tests.

REST adapters are driven through a fake transport that records every
request and replays canned responses, so no test touches the network.
"""

import json

import pytest

from unified_upi.transport import TransportResponse


class FakeTransport:
    """Transport double: queue responses, then inspect ``requests``."""

    def __init__(self):
        self.responses = []
        self.requests = []

    def queue(self, payload=None, status_code=200, raw=None):
        body = raw if raw is not None else json.dumps(payload).encode('utf-8')
        self.responses.append(TransportResponse(status_code=status_code, body=body))

    def fail_with(self, error):
        self.responses.append(error)

    def send(self, method, url, headers=None, body=None, timeout=None):
        self.requests.append({
            'method': method,
            'url': url,
            'headers': headers or {},
            'body': body,
            'timeout': timeout,
        })
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def last_request(self):
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last_request['body'])


class FakeRenderer:
    """QR renderer double that echoes what it was asked to render."""

    def __init__(self):
        self.calls = []

    def render(self, data, **options):
        self.calls.append((data, options))
        return f"data:image/png;base64,FAKE:{data}"


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def renderer():
    return FakeRenderer()
