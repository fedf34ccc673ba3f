"""Unit tests for building vault collaborators from configuration."""

import base64
import os

import pytest

from infrastructure.settings import get_crypto_settings
from shared_kernel.crypto import InvalidEncryptionKeyError
from vault.dependencies import get_secret_codec


@pytest.fixture(autouse=True)
def fresh_caches():
    get_crypto_settings.cache_clear()
    get_secret_codec.cache_clear()
    yield
    get_crypto_settings.cache_clear()
    get_secret_codec.cache_clear()


class TestGetSecretCodec:
    """Tests for the application-scoped codec."""

    def test_hex_key(self, monkeypatch) -> None:
        monkeypatch.setenv("WARDEN_CRYPTO_ENCRYPTION_KEY", os.urandom(32).hex())

        codec = get_secret_codec()

        assert codec.decrypt_from_json(codec.encrypt_to_json("v")) == "v"

    def test_base64_key(self, monkeypatch) -> None:
        monkeypatch.setenv(
            "WARDEN_CRYPTO_ENCRYPTION_KEY",
            base64.b64encode(os.urandom(32)).decode(),
        )

        codec = get_secret_codec()

        assert codec.decrypt_from_json(codec.encrypt_to_json("v")) == "v"

    def test_is_cached(self, monkeypatch) -> None:
        monkeypatch.setenv("WARDEN_CRYPTO_ENCRYPTION_KEY", os.urandom(32).hex())

        assert get_secret_codec() is get_secret_codec()

    def test_missing_key_raises(self, monkeypatch) -> None:
        monkeypatch.setenv("WARDEN_CRYPTO_ENCRYPTION_KEY", "")

        with pytest.raises(InvalidEncryptionKeyError):
            get_secret_codec()

    def test_short_base64_key_raises(self, monkeypatch) -> None:
        monkeypatch.setenv(
            "WARDEN_CRYPTO_ENCRYPTION_KEY", base64.b64encode(b"short").decode()
        )

        with pytest.raises(InvalidEncryptionKeyError):
            get_secret_codec()
