"""Exceptions raised by the secret codec."""


class InvalidEncryptionKeyError(Exception):
    """Raised when the configured encryption key is not a 256-bit key."""

    pass


class TamperedOrCorruptCiphertextError(Exception):
    """Raised when a stored secret fails authentication on decryption.

    The ciphertext, IV or tag was modified, truncated, or encrypted under a
    different key. No plaintext is ever returned in this case.
    """

    pass
