"""Unit tests for API key generation, hashing and verification."""

import re

import pytest

from credentials.application.security import (
    PREFIX_LENGTH,
    environment_of,
    extract_prefix,
    generate_api_key,
    hash_api_key,
    verify_api_key,
)
from credentials.domain.value_objects import Environment


class TestGenerateAPIKey:
    """Tests for plaintext key generation."""

    def test_live_key_format(self):
        key = generate_api_key(Environment.LIVE)
        assert re.fullmatch(r"wd_live_[0-9a-f]{32}", key)

    def test_test_key_format_with_custom_prefix(self):
        key = generate_api_key("test", key_prefix="acme")
        assert re.fullmatch(r"acme_test_[0-9a-f]{32}", key)

    def test_keys_are_unique(self):
        keys = {generate_api_key(Environment.LIVE) for _ in range(200)}
        assert len(keys) == 200

    def test_rejects_unknown_environment(self):
        with pytest.raises(ValueError):
            generate_api_key("staging")


class TestEnvironmentOf:
    """Tests for recovering the environment marker from a key."""

    def test_detects_live_and_test(self):
        assert environment_of(generate_api_key(Environment.LIVE)) is Environment.LIVE
        assert environment_of(generate_api_key(Environment.TEST)) is Environment.TEST

    def test_unknown_marker_returns_none(self):
        assert environment_of("sk_live_abc") is None
        assert environment_of("") is None

    def test_marker_depends_on_brand_prefix(self):
        key = generate_api_key(Environment.LIVE, key_prefix="acme")
        assert environment_of(key) is None
        assert environment_of(key, key_prefix="acme") is Environment.LIVE


class TestHashing:
    """Tests for bcrypt hashing and verification."""

    def test_extract_prefix_is_first_twelve_characters(self):
        key = generate_api_key(Environment.LIVE)
        assert extract_prefix(key) == key[:PREFIX_LENGTH]
        assert len(extract_prefix(key)) == 12

    def test_hash_verifies_original_key(self):
        key = generate_api_key(Environment.LIVE)
        key_hash = hash_api_key(key, rounds=4)
        assert key_hash != key
        assert verify_api_key(key, key_hash) is True

    def test_single_mutated_character_fails(self):
        key = generate_api_key(Environment.LIVE)
        key_hash = hash_api_key(key, rounds=4)
        last = key[-1]
        mutated = key[:-1] + ("0" if last != "0" else "1")
        assert verify_api_key(mutated, key_hash) is False

    def test_malformed_hash_returns_false(self):
        assert verify_api_key("wd_live_abc", "not-a-bcrypt-hash") is False
