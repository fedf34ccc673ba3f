"""Vault bounded context.

Custody of third-party OAuth credentials: encrypted at rest, decrypted
only transiently, refreshed ahead of expiry.
"""
