"""AES-256-GCM codec for secrets stored at rest.

OAuth tokens and service account keys are encrypted with a process-wide
256-bit key. Each encryption draws a fresh 96-bit IV; the GCM tag is kept
separately so the three parts can be stored as one JSON document.
"""

from __future__ import annotations

import base64
import binascii
import json
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from shared_kernel.crypto.exceptions import (
    InvalidEncryptionKeyError,
    TamperedOrCorruptCiphertextError,
)
from shared_kernel.crypto.observability import (
    DefaultSecretCodecProbe,
    SecretCodecProbe,
)

KEY_LENGTH = 32
IV_LENGTH = 12
TAG_LENGTH = 16


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _b64decode(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"), validate=True)


@dataclass(frozen=True)
class EncryptedSecret:
    """Ciphertext, IV and authentication tag of one encrypted value."""

    ciphertext: bytes
    iv: bytes
    tag: bytes

    def to_dict(self) -> dict[str, str]:
        """Base64 encode the three components."""
        return {
            "ciphertext": _b64encode(self.ciphertext),
            "iv": _b64encode(self.iv),
            "tag": _b64encode(self.tag),
        }

    def to_json(self) -> str:
        """Serialize for storage in a text column."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> EncryptedSecret:
        """Rebuild from the output of to_dict().

        Raises:
            TamperedOrCorruptCiphertextError: If a component is missing or
                not valid base64
        """
        try:
            return cls(
                ciphertext=_b64decode(data["ciphertext"]),
                iv=_b64decode(data["iv"]),
                tag=_b64decode(data["tag"]),
            )
        except (KeyError, TypeError, AttributeError, binascii.Error, UnicodeEncodeError) as e:
            raise TamperedOrCorruptCiphertextError(
                "Stored secret is malformed"
            ) from e

    @classmethod
    def from_json(cls, raw: str) -> EncryptedSecret:
        """Rebuild from the output of to_json()."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise TamperedOrCorruptCiphertextError(
                "Stored secret is not valid JSON"
            ) from e
        if not isinstance(data, dict):
            raise TamperedOrCorruptCiphertextError("Stored secret is malformed")
        return cls.from_dict(data)


class SecretCodec:
    """Encrypts and decrypts secrets with AES-256-GCM.

    Instances are stateless apart from the key and may be shared between
    concurrent requests.
    """

    def __init__(self, key: bytes, probe: SecretCodecProbe | None = None) -> None:
        """Initialize the codec.

        Args:
            key: Raw 32-byte key
            probe: Optional domain probe for observability

        Raises:
            InvalidEncryptionKeyError: If the key is not exactly 32 bytes
        """
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH:
            raise InvalidEncryptionKeyError(
                f"Encryption key must be exactly {KEY_LENGTH} bytes"
            )
        self._aesgcm = AESGCM(bytes(key))
        self._probe = probe or DefaultSecretCodecProbe()

    def encrypt(self, plaintext: str) -> EncryptedSecret:
        """Encrypt a string under a fresh random IV."""
        iv = os.urandom(IV_LENGTH)
        sealed = self._aesgcm.encrypt(iv, plaintext.encode("utf-8"), None)
        return EncryptedSecret(
            ciphertext=sealed[:-TAG_LENGTH],
            iv=iv,
            tag=sealed[-TAG_LENGTH:],
        )

    def decrypt(self, secret: EncryptedSecret) -> str:
        """Verify the tag and return the plaintext.

        Raises:
            TamperedOrCorruptCiphertextError: If verification fails for any reason
        """
        if len(secret.iv) != IV_LENGTH or len(secret.tag) != TAG_LENGTH:
            self._probe.decryption_failed(reason="invalid_component_length")
            raise TamperedOrCorruptCiphertextError(
                "Stored secret has an invalid IV or tag length"
            )
        try:
            plaintext = self._aesgcm.decrypt(
                secret.iv, secret.ciphertext + secret.tag, None
            )
        except InvalidTag as e:
            self._probe.decryption_failed(reason="authentication_failed")
            raise TamperedOrCorruptCiphertextError(
                "Stored secret failed authentication"
            ) from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            self._probe.decryption_failed(reason="invalid_utf8")
            raise TamperedOrCorruptCiphertextError(
                "Stored secret did not decode to text"
            ) from e

    def encrypt_to_json(self, plaintext: str) -> str:
        """Encrypt and serialize in one step."""
        return self.encrypt(plaintext).to_json()

    def decrypt_from_json(self, raw: str) -> str:
        """Parse a stored JSON document and decrypt it."""
        return self.decrypt(EncryptedSecret.from_json(raw))
