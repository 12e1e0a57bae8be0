"""
Operator key custody.

The ``Signer`` is the only object that holds private key bytes. It exposes
signing and the public key, nothing else.
"""

from __future__ import annotations

import binascii

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from ..recovery.errors import ConfigurationError


# PKCS#8 / SubjectPublicKeyInfo prefixes used by Hedera for DER-encoded Ed25519 keys
ED25519_PRIVATE_DER_PREFIX = "302e020100300506032b657004220420"
ED25519_PUBLIC_DER_PREFIX = "302a300506032b6570032100"


def _strip_hex(value: str) -> str:
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    return text


class Signer:
    """Ed25519 signing capability for the operator account."""

    __slots__ = ("_signing_key",)

    def __init__(self, signing_key: SigningKey):
        self._signing_key = signing_key

    @classmethod
    def from_private_key(cls, private_key: str) -> "Signer":
        """Parse a raw 32-byte hex seed or a DER-encoded hex Ed25519 key."""
        if not private_key or not private_key.strip():
            raise ConfigurationError("Operator private key is required")

        text = _strip_hex(private_key)
        if text.startswith(ED25519_PRIVATE_DER_PREFIX):
            text = text[len(ED25519_PRIVATE_DER_PREFIX):]
        if len(text) != 64:
            raise ConfigurationError(
                "Operator private key must be a 32-byte Ed25519 key in hex (raw or DER encoded)"
            )

        try:
            seed = binascii.unhexlify(text)
        except (binascii.Error, ValueError):
            raise ConfigurationError("Operator private key is not valid hex") from None

        return cls(SigningKey(seed))

    @classmethod
    def generate(cls) -> "Signer":
        return cls(SigningKey.generate())

    @property
    def public_key_bytes(self) -> bytes:
        return bytes(self._signing_key.verify_key)

    @property
    def public_key_hex(self) -> str:
        return self.public_key_bytes.hex()

    @property
    def public_key_der(self) -> str:
        return ED25519_PUBLIC_DER_PREFIX + self.public_key_hex

    def sign(self, message: bytes) -> bytes:
        """Return the detached 64-byte signature of ``message``."""
        return self._signing_key.sign(message).signature

    def __repr__(self) -> str:
        return f"Signer(public_key={self.public_key_hex})"


def verify_signature(public_key_hex: str, message: bytes, signature: bytes) -> bool:
    """Check a detached Ed25519 signature against a raw or DER hex public key."""
    text = _strip_hex(public_key_hex)
    if text.startswith(ED25519_PUBLIC_DER_PREFIX):
        text = text[len(ED25519_PUBLIC_DER_PREFIX):]
    try:
        VerifyKey(binascii.unhexlify(text)).verify(message, signature)
        return True
    except (BadSignatureError, binascii.Error, TypeError, ValueError):
        return False
