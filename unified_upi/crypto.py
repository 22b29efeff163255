"""
Checksum and signature toolkit.

Pure functions over byte strings: unkeyed digests, keyed HMACs, base64
helpers and a constant-time comparison. Adapters receive a
ChecksumToolkit instance at construction instead of calling these as
globals, so tests can swap in a fake.
"""

import base64
import hashlib
import hmac
from typing import Union

BytesLike = Union[str, bytes]

_ALGORITHMS = {
    'sha256': hashlib.sha256,
    'sha512': hashlib.sha512,
}


def _to_bytes(value: BytesLike) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode('utf-8')


def _digestmod(algorithm: str):
    try:
        return _ALGORITHMS[algorithm]
    except KeyError:
        raise ValueError(f"Unsupported digest algorithm: {algorithm}") from None


def _encode(digest: bytes, encoding: str) -> str:
    if encoding == 'hex':
        return digest.hex()
    if encoding == 'base64':
        return base64.b64encode(digest).decode('ascii')
    raise ValueError(f"Unsupported digest encoding: {encoding}")


def hash_digest(data: BytesLike, algorithm: str = 'sha256', encoding: str = 'hex') -> str:
    """Unkeyed digest of ``data``."""
    return _encode(_digestmod(algorithm)(_to_bytes(data)).digest(), encoding)


def hmac_digest(data: BytesLike, secret: BytesLike, algorithm: str = 'sha256', encoding: str = 'hex') -> str:
    """Keyed HMAC of ``data`` under ``secret``."""
    if secret is None or secret == '' or secret == b'':
        raise ValueError("HMAC secret must not be empty")
    mac = hmac.new(key=_to_bytes(secret), msg=_to_bytes(data), digestmod=_digestmod(algorithm))
    return _encode(mac.digest(), encoding)


def sha256(data: BytesLike) -> str:
    return hash_digest(data, 'sha256')


def sha512(data: BytesLike) -> str:
    return hash_digest(data, 'sha512')


def hmac_sha256(data: BytesLike, secret: BytesLike, encoding: str = 'hex') -> str:
    return hmac_digest(data, secret, 'sha256', encoding)


def hmac_sha512(data: BytesLike, secret: BytesLike, encoding: str = 'hex') -> str:
    return hmac_digest(data, secret, 'sha512', encoding)


def encode_base64(data: BytesLike) -> str:
    return base64.b64encode(_to_bytes(data)).decode('ascii')


def decode_base64(data: BytesLike) -> str:
    return base64.b64decode(_to_bytes(data), validate=True).decode('utf-8')


def constant_time_equals(expected: BytesLike, supplied: BytesLike) -> bool:
    """
    Compare two digests without leaking where they differ.

    ``None`` or empty input never matches.
    """
    if not expected or not supplied:
        return False
    return hmac.compare_digest(_to_bytes(expected), _to_bytes(supplied))


def sign(data: BytesLike, secret: BytesLike, algorithm: str = 'sha256', encoding: str = 'hex') -> str:
    return hmac_digest(data, secret, algorithm, encoding)


def verify_signature(
    data: BytesLike,
    signature: BytesLike,
    secret: BytesLike,
    algorithm: str = 'sha256',
    encoding: str = 'hex'
) -> bool:
    """Recompute the HMAC of ``data`` and compare it with ``signature``."""
    if not secret or not signature:
        return False
    return constant_time_equals(hmac_digest(data, secret, algorithm, encoding), signature)


class ChecksumToolkit:
    """
    Injectable bundle of the digest functions above.

    Stateless; one instance can be shared by every adapter.
    """

    hash = staticmethod(hash_digest)
    hmac = staticmethod(hmac_digest)
    sha256 = staticmethod(sha256)
    sha512 = staticmethod(sha512)
    hmac_sha256 = staticmethod(hmac_sha256)
    hmac_sha512 = staticmethod(hmac_sha512)
    encode_base64 = staticmethod(encode_base64)
    decode_base64 = staticmethod(decode_base64)
    constant_time_equals = staticmethod(constant_time_equals)
    sign = staticmethod(sign)
    verify_signature = staticmethod(verify_signature)


default_toolkit = ChecksumToolkit()
