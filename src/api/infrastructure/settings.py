"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from __future__ import annotations

import base64
import binascii
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        WARDEN_DB_HOST: Database host (default: localhost)
        WARDEN_DB_PORT: Database port (default: 5432)
        WARDEN_DB_DATABASE: Database name (default: warden)
        WARDEN_DB_USERNAME: Database user (default: warden)
        WARDEN_DB_PASSWORD: Database password (required in production)
        WARDEN_DB_POOL_MIN_CONNECTIONS: Minimum connections in pool (default: 2)
        WARDEN_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
        WARDEN_DB_COMMAND_TIMEOUT_SECONDS: Per-statement timeout (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="WARDEN_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="warden", description="Database name")
    username: str = Field(default="warden", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_min_connections: int = Field(
        default=2,
        description="Minimum connections in pool",
        ge=1,
        le=100,
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )
    command_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound for a single database statement",
        gt=0,
    )

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "DatabaseSettings":
        """Validate pool max >= min."""
        if self.pool_max_connections < self.pool_min_connections:
            raise ValueError(
                f"pool_max_connections ({self.pool_max_connections}) must be >= "
                f"pool_min_connections ({self.pool_min_connections})"
            )
        return self

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class CryptoSettings(BaseSettings):
    """Symmetric encryption settings for secrets at rest.

    Environment variables:
        WARDEN_CRYPTO_ENCRYPTION_KEY: 32-byte key, hex (64 chars) or base64 encoded
    """

    model_config = SettingsConfigDict(
        env_prefix="WARDEN_CRYPTO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    encryption_key: SecretStr = Field(
        default=SecretStr(""),
        description="AES-256 key used for OAuth tokens and service account keys",
    )

    def key_bytes(self) -> bytes:
        """Decode the configured key into raw bytes.

        Accepts 64 hex characters or a base64 string. Length checking is
        left to the codec so the error message is uniform.

        Raises:
            ValueError: If the key is empty or not valid hex/base64
        """
        raw = self.encryption_key.get_secret_value().strip()
        if not raw:
            raise ValueError("WARDEN_CRYPTO_ENCRYPTION_KEY is not set")
        if len(raw) == 64:
            try:
                return bytes.fromhex(raw)
            except ValueError:
                pass
        try:
            return base64.b64decode(raw, validate=True)
        except binascii.Error as e:
            raise ValueError("Encryption key must be hex or base64 encoded") from e


class CredentialSettings(BaseSettings):
    """API key issuance settings.

    Environment variables:
        WARDEN_CREDENTIALS_KEY_PREFIX: Brand prefix of generated keys (default: wd)
        WARDEN_CREDENTIALS_BCRYPT_ROUNDS: bcrypt cost factor (default: 12)
        WARDEN_CREDENTIALS_DEFAULT_MAX_API_KEYS: Active keys per owner (default: 3)
    """

    model_config = SettingsConfigDict(
        env_prefix="WARDEN_CREDENTIALS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    key_prefix: str = Field(
        default="wd",
        description="Brand prefix of generated keys",
        min_length=1,
        max_length=8,
        pattern=r"^[a-z0-9]+$",
    )
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    default_max_api_keys: int = Field(default=3, ge=1)


class OAuthSettings(BaseSettings):
    """Identity provider client settings.

    Environment variables:
        WARDEN_OAUTH_CLIENT_ID: OAuth client ID
        WARDEN_OAUTH_CLIENT_SECRET: OAuth client secret
        WARDEN_OAUTH_REDIRECT_BASE_URL: Public base URL of this service
        WARDEN_OAUTH_TIMEOUT_SECONDS: HTTP timeout for provider calls (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="WARDEN_OAUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    client_id: str = Field(default="", description="OAuth client ID")
    client_secret: SecretStr = Field(
        default=SecretStr(""), description="OAuth client secret"
    )
    redirect_base_url: str = Field(
        default="http://localhost:8000",
        description="Public base URL used to build the redirect URI",
    )
    redirect_path: str = Field(default="/vault/oauth/callback")
    token_url: str = Field(default="https://oauth2.googleapis.com/token")
    revoke_url: str = Field(default="https://oauth2.googleapis.com/revoke")
    userinfo_url: str = Field(
        default="https://www.googleapis.com/oauth2/v2/userinfo"
    )
    scopes: list[str] = Field(
        default_factory=lambda: [
            "openid",
            "https://www.googleapis.com/auth/userinfo.email",
            "https://www.googleapis.com/auth/userinfo.profile",
        ]
    )
    timeout_seconds: float = Field(default=10.0, gt=0)

    @property
    def redirect_uri(self) -> str:
        """Full redirect URI registered with the provider."""
        return f"{self.redirect_base_url.rstrip('/')}{self.redirect_path}"


class VaultSettings(BaseSettings):
    """Token vault refresh behaviour.

    Environment variables:
        WARDEN_VAULT_REFRESH_BUFFER_SECONDS: Lead time before expiry (default: 300)
        WARDEN_VAULT_MAX_REFRESH_RETRIES: Provider refresh attempts (default: 3)
        WARDEN_VAULT_RETRY_BACKOFF_SECONDS: Linear backoff step (default: 1)
        WARDEN_VAULT_CLEANUP_SECRET: Bearer secret for the cleanup endpoint
    """

    model_config = SettingsConfigDict(
        env_prefix="WARDEN_VAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    refresh_buffer_seconds: int = Field(default=300, ge=0)
    max_refresh_retries: int = Field(default=3, ge=1, le=10)
    retry_backoff_seconds: float = Field(default=1.0, ge=0)
    expiring_soon_seconds: int = Field(default=600, ge=0)
    default_token_lifetime_seconds: int = Field(default=3600, ge=60)
    cleanup_secret: SecretStr = Field(default=SecretStr(""))


class RateLimitSettings(BaseSettings):
    """Per-tier request rate limits.

    Environment variables:
        WARDEN_RATE_LIMIT_TIER_LIMITS: JSON map of tier -> requests per window
        WARDEN_RATE_LIMIT_WINDOW_SECONDS: Sliding window length (default: 60)
        WARDEN_RATE_LIMIT_AUDIT_THRESHOLD: Violations per hour before auditing
    """

    model_config = SettingsConfigDict(
        env_prefix="WARDEN_RATE_LIMIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tier_limits: dict[str, int] = Field(
        default_factory=lambda: {
            "starter": 10,
            "growth": 30,
            "scale": 60,
            "enterprise": 120,
            "payg": 20,
        }
    )
    window_seconds: float = Field(default=60.0, gt=0)
    eviction_interval_seconds: float = Field(default=300.0, gt=0)
    eviction_grace_seconds: float = Field(default=3600.0, ge=0)
    audit_threshold: int = Field(default=10, ge=0)

    @field_validator("tier_limits")
    @classmethod
    def validate_tier_limits(cls, value: dict[str, int]) -> dict[str, int]:
        """Require at least one tier and positive limits."""
        if not value:
            raise ValueError("tier_limits must define at least one tier")
        for tier, limit in value.items():
            if limit < 1:
                raise ValueError(f"Rate limit for tier '{tier}' must be >= 1")
        return value


class AuditSettings(BaseSettings):
    """Audit logger batching settings.

    Environment variables:
        WARDEN_AUDIT_FLUSH_INTERVAL_SECONDS: Batch flush interval (default: 5)
        WARDEN_AUDIT_BATCH_SIZE: Maximum events per write (default: 500)
        WARDEN_AUDIT_MAX_QUEUE_SIZE: Queue bound before dropping (default: 10000)
        WARDEN_AUDIT_FAILURE_THRESHOLD: Consecutive failures before disabling (default: 3)
    """

    model_config = SettingsConfigDict(
        env_prefix="WARDEN_AUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    flush_interval_seconds: float = Field(default=5.0, gt=0)
    batch_size: int = Field(default=500, ge=1)
    max_queue_size: int = Field(default=10_000, ge=1)
    failure_threshold: int = Field(default=3, ge=1)


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_prefix="WARDEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Warden API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_crypto_settings() -> CryptoSettings:
    """Get cached encryption settings."""
    return CryptoSettings()


@lru_cache
def get_credential_settings() -> CredentialSettings:
    """Get cached API key settings."""
    return CredentialSettings()


@lru_cache
def get_oauth_settings() -> OAuthSettings:
    """Get cached identity provider settings."""
    return OAuthSettings()


@lru_cache
def get_vault_settings() -> VaultSettings:
    """Get cached token vault settings."""
    return VaultSettings()


@lru_cache
def get_rate_limit_settings() -> RateLimitSettings:
    """Get cached rate limit settings."""
    return RateLimitSettings()


@lru_cache
def get_audit_settings() -> AuditSettings:
    """Get cached audit logger settings."""
    return AuditSettings()
