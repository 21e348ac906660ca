from __future__ import annotations

import base64
from typing import Any, Iterable, Mapping, NamedTuple, Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

HASH_SHA1 = "sha1"
HASH_SHA256 = "sha256"

_HASHES = {
    HASH_SHA1: hashes.SHA1,
    HASH_SHA256: hashes.SHA256,
}

SIGNATURE_SEPARATOR = "|"


class SignatureEntry(NamedTuple):
    """A named value in the signature base; ``value`` may nest further entries."""

    name: str
    value: Any


def _format_scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flatten(value: Any) -> list[str]:
    if isinstance(value, SignatureEntry):
        return _flatten(value.value)
    if isinstance(value, Mapping):
        return [part for item in value.values() for part in _flatten(item)]
    if isinstance(value, (list, tuple)):
        return [part for item in value for part in _flatten(item)]
    return [_format_scalar(value)]


def create_signature_base(entries: Iterable[SignatureEntry]) -> str:
    """Flatten ordered entries into the pipe-separated string the gateway signs.

    Leaves are visited depth-first in order. Empty nested sequences contribute
    nothing, ``None`` contributes an empty segment.
    """
    return SIGNATURE_SEPARATOR.join(_flatten(list(entries)))


def _hash_for(hash_method: str) -> hashes.HashAlgorithm:
    try:
        return _HASHES[hash_method]()
    except KeyError:
        raise ValueError(f"Unsupported hash method: {hash_method}") from None


def load_private_key(
    key_file: str, password: Optional[str] = None
) -> rsa.RSAPrivateKey:
    """Load an RSA private key from a PEM file."""
    with open(key_file, "rb") as fh:
        pem = fh.read()
    return serialization.load_pem_private_key(
        pem, password=password.encode() if password else None
    )


def load_public_key(key_file: str) -> rsa.RSAPublicKey:
    """Load an RSA public key from a PEM file (SubjectPublicKeyInfo)."""
    with open(key_file, "rb") as fh:
        pem = fh.read()
    return serialization.load_pem_public_key(pem)


def sign_string(
    text: str,
    key_file: str,
    key_password: Optional[str],
    hash_method: str = HASH_SHA256,
) -> str:
    """Sign text with RSA PKCS#1 v1.5 and return the base64 signature."""
    private_key = load_private_key(key_file, key_password)
    signature = private_key.sign(
        text.encode("utf-8"), padding.PKCS1v15(), _hash_for(hash_method)
    )
    return base64.b64encode(signature).decode("utf-8")


def verify_signature(
    text: str,
    signature_b64: str,
    public_key_file: str,
    hash_method: str = HASH_SHA256,
) -> bool:
    """Verify a base64 signature over text. Raises InvalidSignature on failure."""
    public_key = load_public_key(public_key_file)
    signature = base64.b64decode(signature_b64, validate=True)
    public_key.verify(
        signature, text.encode("utf-8"), padding.PKCS1v15(), _hash_for(hash_method)
    )
    return True


def entries_from_mapping(
    data: Mapping[str, Any], names: Iterable[str]
) -> list[SignatureEntry]:
    """Pick ``names`` from a response mapping in that order, skipping missing keys."""
    return [SignatureEntry(name, data[name]) for name in names if name in data]
