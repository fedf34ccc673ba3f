"""Symmetric encryption of secrets at rest."""

from shared_kernel.crypto.exceptions import (
    InvalidEncryptionKeyError,
    TamperedOrCorruptCiphertextError,
)
from shared_kernel.crypto.secret_codec import EncryptedSecret, SecretCodec

__all__ = [
    "EncryptedSecret",
    "InvalidEncryptionKeyError",
    "SecretCodec",
    "TamperedOrCorruptCiphertextError",
]
