"""
jwt.py — minimal JWT (compact serialization) helpers.

Why this exists:
- The server authenticates users with a token signed by the namespace's
  shared secret. This module builds and checks those tokens.
- Only signing and signature checks live here. No expiry/claims validation.

Notes:
- HS256/HS384/HS512 use HMAC with the matching SHA-2 digest.
- RS256/RS384/RS512 use RSA PKCS#1 v1.5 with the matching SHA-2 digest.
- Segments are URL-safe Base64 without '=' padding.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
from typing import Any, Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .errors import (
    MalformedToken,
    MissingAlgorithm,
    MissingCredential,
    SignatureMismatch,
    UnsupportedAlgorithm,
)

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "HS256"

HMAC_ALGORITHMS = {
    "HS256": hashlib.sha256,
    "HS384": hashlib.sha384,
    "HS512": hashlib.sha512,
}

RSA_ALGORITHMS = {
    "RS256": hashes.SHA256,
    "RS384": hashes.SHA384,
    "RS512": hashes.SHA512,
}

Key = Union[str, bytes, rsa.RSAPrivateKey, rsa.RSAPublicKey]


# -----------------------------
# Base64 URL helpers (no padding)
# -----------------------------

def b64url_encode(data: bytes) -> str:
    """URL-safe Base64 without '=' padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """Decode URL-safe, no-padding Base64 back to bytes."""
    pad_len = (-len(data)) % 4
    return base64.urlsafe_b64decode(data + "=" * pad_len)


def _json_segment(value: Any) -> str:
    raw = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return b64url_encode(raw.encode("utf-8"))


# -------------
# Key handling
# -------------

def _is_asymmetric(key: Key) -> bool:
    """RSA key objects and PEM text never double as HMAC secrets."""
    if isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        return True
    if isinstance(key, str):
        return "-----BEGIN" in key
    if isinstance(key, bytes):
        return b"-----BEGIN" in key
    return False


def _secret_bytes(key: Key) -> bytes:
    if _is_asymmetric(key):
        raise TypeError("HMAC key must be a shared secret, not an RSA/PEM key")
    if isinstance(key, str):
        return key.encode("utf-8")
    if isinstance(key, bytes):
        return key
    raise TypeError("HMAC key must be str or bytes")


def _private_key(key: Key) -> rsa.RSAPrivateKey:
    """Accept a key object or PEM text/bytes; return an RSA private key."""
    if isinstance(key, rsa.RSAPrivateKey):
        return key
    if isinstance(key, (str, bytes)):
        pem = key.encode("utf-8") if isinstance(key, str) else key
        loaded = serialization.load_pem_private_key(pem, password=None)
        if isinstance(loaded, rsa.RSAPrivateKey):
            return loaded
    raise TypeError("RSA signing needs an RSA private key")


def _public_key(key: Key) -> rsa.RSAPublicKey:
    """Like _private_key(), but reduces private keys to their public half."""
    if isinstance(key, rsa.RSAPublicKey):
        return key
    if isinstance(key, rsa.RSAPrivateKey):
        return key.public_key()
    if isinstance(key, (str, bytes)):
        pem = key.encode("utf-8") if isinstance(key, str) else key
        if b"PRIVATE KEY" in pem:
            return _private_key(pem).public_key()
        loaded = serialization.load_pem_public_key(pem)
        if isinstance(loaded, rsa.RSAPublicKey):
            return loaded
    raise TypeError("RSA verification needs an RSA public key")


# -------------------------
# Signing & Verification API
# -------------------------

def sign(msg: bytes, key: Key, algo: str = DEFAULT_ALGORITHM) -> bytes:
    """Return the raw signature of msg under key for the named algorithm."""
    if algo in HMAC_ALGORITHMS:
        return hmac.new(_secret_bytes(key), msg, HMAC_ALGORITHMS[algo]).digest()
    if algo in RSA_ALGORITHMS:
        return _private_key(key).sign(msg, padding.PKCS1v15(), RSA_ALGORITHMS[algo]())
    raise UnsupportedAlgorithm(f"Unsupported or invalid signing algorithm: {algo!r}")


def verify(signature: bytes, msg: bytes, key: Key, algo: str = DEFAULT_ALGORITHM) -> bool:
    """
    Check a raw signature over msg.
    Returns True on success and False on a bad signature. Unknown algorithms
    raise UnsupportedAlgorithm rather than quietly failing.
    """
    if algo in HMAC_ALGORITHMS:
        return hmac.compare_digest(sign(msg, key, algo), signature)
    if algo in RSA_ALGORITHMS:
        try:
            _public_key(key).verify(signature, msg, padding.PKCS1v15(), RSA_ALGORITHMS[algo]())
        except InvalidSignature:
            return False
        return True
    raise UnsupportedAlgorithm(f"Unsupported or invalid signing algorithm: {algo!r}")


# ------------------
# Token encode/decode
# ------------------

def encode(payload: Any, key: Key, algo: str = DEFAULT_ALGORITHM) -> str:
    """
    Build a signed three-segment token.

    payload may be any JSON value; a bare user id string is common.
    """
    header = {"typ": "JWT", "alg": algo}
    segments = [_json_segment(header), _json_segment(payload)]
    signing_input = ".".join(segments).encode("ascii")
    segments.append(b64url_encode(sign(signing_input, key, algo)))
    return ".".join(segments)


def _decode_segment(segment: str) -> Any:
    try:
        return json.loads(b64url_decode(segment).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise MalformedToken("Invalid segment encoding") from exc


def decode(token: str, key: Optional[Key] = None, algo: Optional[str] = None) -> Any:
    """
    Return the payload of a token, checking its signature when key is given.

    Raises:
        MalformedToken:    wrong segment count or undecodable header/payload.
        MissingAlgorithm:  key given but the header names no algorithm.
        SignatureMismatch: signature does not verify (or algo disagrees
                           with the header).
    """
    segments = token.split(".")
    if len(segments) != 3:
        raise MalformedToken("Wrong number of segments")
    head_b64, payload_b64, sig_b64 = segments

    header = _decode_segment(head_b64)
    payload = _decode_segment(payload_b64)
    if not isinstance(header, dict):
        raise MalformedToken("Token header must be a JSON object")

    if key is None:
        return payload

    header_alg = header.get("alg")
    if not header_alg:
        raise MissingAlgorithm("Empty algorithm")
    if not isinstance(header_alg, str):
        raise MalformedToken("Token header 'alg' must be a string")
    if algo is not None and algo != header_alg:
        raise SignatureMismatch(f"Token signed with {header_alg}, expected {algo}")
    algo = algo or header_alg
    # An RSA public key is not a secret; HS* tokens checked against one prove nothing.
    if algo in HMAC_ALGORITHMS and _is_asymmetric(key):
        raise SignatureMismatch(f"{algo} token cannot be verified with an RSA key")

    try:
        signature = b64url_decode(sig_b64)
    except ValueError as exc:
        # binascii.Error, and non-ASCII characters in the segment
        raise SignatureMismatch("Signature verification failed") from exc
    # Reject non-canonical encodings so every character of the segment counts.
    if b64url_encode(signature) != sig_b64:
        raise SignatureMismatch("Signature verification failed")

    if not verify(signature, f"{head_b64}.{payload_b64}".encode("ascii"), key, algo):
        logger.debug(f"Signature check failed for {algo} token")
        raise SignatureMismatch("Signature verification failed")
    return payload


def generate_auth_string(user_id: Any, s_key: Optional[Key]) -> str:
    """Token the server accepts as proof of user_id, signed with the namespace secret."""
    if user_id is None or s_key is None:
        raise MissingCredential("Need user id and secret key")
    return encode(user_id, s_key)
