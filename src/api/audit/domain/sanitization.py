"""Redaction of secret-shaped fields from audit metadata."""

from __future__ import annotations

from typing import Any

REDACTED = "[REDACTED]"

# Matched anywhere in the lower-cased field name
_SENSITIVE_FRAGMENTS = (
    "password",
    "passwd",
    "token",
    "secret",
    "key",
    "ssn",
    "credit_card",
    "authorization",
)

# Identifiers of keys, never key material
_ALLOWED_FIELDS = frozenset(
    {
        "api_key_id",
        "replaced_api_key_id",
        "key_id",
        "key_prefix",
    }
)


def is_sensitive_field(name: str) -> bool:
    """Return True if a metadata field name looks like it holds a secret."""
    lowered = name.lower()
    if lowered.replace("-", "_") in _ALLOWED_FIELDS:
        return False
    return any(fragment in lowered for fragment in _SENSITIVE_FRAGMENTS)


def sanitize_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``metadata`` with secret-shaped values redacted.

    Nested mappings and lists are walked recursively. The input is not
    modified.
    """
    return {key: _sanitize_value(key, value) for key, value in metadata.items()}


def _sanitize_value(key: str, value: Any) -> Any:
    if is_sensitive_field(str(key)):
        return REDACTED
    return _sanitize_nested(value)


def _sanitize_nested(value: Any) -> Any:
    if isinstance(value, dict):
        return sanitize_metadata(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_nested(item) for item in value]
    return value
