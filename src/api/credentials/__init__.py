"""Credentials bounded context.

Issues, validates, rotates and revokes API keys. Plaintext keys exist only
in the caller's hands; storage holds a bcrypt hash and a display prefix.
"""
