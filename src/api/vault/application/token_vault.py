"""Token vault: custody and refresh of third-party OAuth credentials.

Tokens are encrypted with the shared SecretCodec before they reach the
store and decrypted only inside the operation that needs them. Refreshes
are single-flight per (owner, workspace) so concurrent callers never send
the same refresh token to the provider twice.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import RetryCallState

from audit.domain.value_objects import AuditEventType, AuditSeverity
from shared_kernel.crypto import SecretCodec, TamperedOrCorruptCiphertextError
from shared_kernel.retry import RetryPolicy
from shared_kernel.single_flight import SingleFlight
from vault.application.observability import DefaultTokenVaultProbe, TokenVaultProbe
from vault.application.refresh_scheduler import RefreshScheduler
from vault.domain.value_objects import (
    ExternalIdentity,
    OAuthTokenRecord,
    ServiceAccountKeyRecord,
    StoredToken,
    TokenHealth,
    TokenHealthStatus,
    TokenType,
)
from vault.ports.exceptions import (
    IdentityProviderError,
    NoCredentialError,
    RefreshFailedError,
    RefreshUnavailableError,
    ServiceAccountKeyValidationError,
)
from vault.ports.identity_provider import IdentityProvider
from vault.ports.repositories import IServiceAccountKeyRepository, ITokenRepository

if TYPE_CHECKING:
    from audit.application.audit_logger import AuditLogger

TokenRepositoryFactory = Callable[[AsyncSession], ITokenRepository]
KeyRepositoryFactory = Callable[[AsyncSession], IServiceAccountKeyRepository]

REQUIRED_SERVICE_ACCOUNT_FIELDS = ("client_email", "private_key")


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, IdentityProviderError) and error.retryable


def _flight_key(owner_id: str, workspace_id: str | None) -> str:
    return f"{owner_id}:{workspace_id or ''}"


class TokenVault:
    """Application-scoped service owning every OAuth token operation.

    The vault opens its own sessions because timers call it outside any
    request. Each storage step is one short transaction; no transaction is
    held open across a provider call.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        token_repository_factory: TokenRepositoryFactory,
        key_repository_factory: KeyRepositoryFactory,
        codec: SecretCodec,
        provider: IdentityProvider,
        audit: AuditLogger | None = None,
        scheduler: RefreshScheduler | None = None,
        retry_policy: RetryPolicy | None = None,
        probe: TokenVaultProbe | None = None,
        refresh_buffer_seconds: float = 300,
        expiring_soon_seconds: float = 600,
        default_token_lifetime_seconds: float = 3600,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the vault.

        Args:
            session_factory: Sessionmaker for the write database
            token_repository_factory: Builds a token repository on a session
            key_repository_factory: Builds a service account key repository
            codec: Codec for token and key encryption
            provider: Identity provider client
            audit: Optional audit logger
            scheduler: Optional proactive refresh scheduler
            retry_policy: Provider refresh retry policy (default 3 retries)
            probe: Optional domain probe for observability
            refresh_buffer_seconds: Refresh once expiry is this close
            expiring_soon_seconds: Health threshold for "expiring soon"
            default_token_lifetime_seconds: Lifetime assumed when the
                provider omits one
            clock: Source of the current UTC time
        """
        self._session_factory = session_factory
        self._token_repository_factory = token_repository_factory
        self._key_repository_factory = key_repository_factory
        self._codec = codec
        self._provider = provider
        self._audit = audit
        self._scheduler = scheduler
        self._retry_policy = retry_policy or RetryPolicy()
        self._probe = probe or DefaultTokenVaultProbe()
        self._refresh_buffer = timedelta(seconds=refresh_buffer_seconds)
        self._expiring_soon = timedelta(seconds=expiring_soon_seconds)
        self._default_lifetime = timedelta(seconds=default_token_lifetime_seconds)
        self._clock = clock
        self._flights: SingleFlight[str, str] = SingleFlight()

    async def store(
        self,
        owner_id: str,
        access_token: str,
        refresh_token: str | None = None,
        expires_at: datetime | None = None,
        scopes: tuple[str, ...] | list[str] = (),
        identity: ExternalIdentity | None = None,
        token_type: TokenType = TokenType.USER,
        workspace_id: str | None = None,
    ) -> OAuthTokenRecord:
        """Encrypt and upsert the tokens for (owner, workspace).

        Replaces any existing record, resetting its refresh history. Arms
        a refresh timer for user tokens.
        """
        record = OAuthTokenRecord(
            owner_id=owner_id,
            workspace_id=workspace_id or None,
            access_token=access_token,
            refresh_token=refresh_token or None,
            expires_at=expires_at or self._clock() + self._default_lifetime,
            scopes=tuple(scopes),
            identity=identity or ExternalIdentity(),
            token_type=TokenType(token_type),
        )
        await self._persist(record)
        self._arm(record.owner_id, record.workspace_id, record.expires_at, record.token_type)
        self._probe.token_stored(owner_id, record.workspace_id)
        return record

    async def get_valid_access_token(
        self,
        owner_id: str,
        workspace_id: str | None = None,
        force_refresh: bool = False,
    ) -> str:
        """Return a usable access token, refreshing it first when due.

        Raises:
            NoCredentialError: No record exists
            RefreshUnavailableError: A refresh is due but no refresh token is stored
            RefreshFailedError: Every refresh attempt failed
            TamperedOrCorruptCiphertextError: The stored tokens failed authentication
        """
        record = await self._load(owner_id, workspace_id)
        if not force_refresh and not record.needs_refresh(
            self._clock(), self._refresh_buffer.total_seconds()
        ):
            return record.access_token

        if record.refresh_token is None:
            raise RefreshUnavailableError(
                "Token needs refreshing but no refresh token is stored; "
                "re-authentication required"
            )
        return await self.refresh(owner_id, record, workspace_id, force=force_refresh)

    async def refresh(
        self,
        owner_id: str,
        record: OAuthTokenRecord,
        workspace_id: str | None = None,
        force: bool = True,
    ) -> str:
        """Refresh the token through the provider and re-store it.

        Concurrent calls for the same (owner, workspace) share one provider
        call. Unless forced, a record another caller already refreshed is
        returned as is.

        Raises:
            RefreshFailedError: Retries exhausted or a non-retryable provider error
        """
        key = _flight_key(owner_id, workspace_id)
        return await self._flights.run(
            key, lambda: self._refresh_once(owner_id, workspace_id or None, record, force)
        )

    async def revoke(self, owner_id: str, workspace_id: str | None = None) -> bool:
        """Revoke remotely (best effort) and delete the local record.

        Returns:
            True if a local record was deleted
        """
        workspace_id = workspace_id or None
        async with self._transaction() as session:
            stored = await self._token_repository_factory(session).get(
                owner_id, workspace_id
            )

        if stored is not None:
            await self._revoke_remote(stored)

        async with self._transaction() as session:
            deleted = await self._token_repository_factory(session).delete(
                owner_id, workspace_id
            )

        if self._scheduler is not None:
            self._scheduler.cancel(_flight_key(owner_id, workspace_id))
        self._probe.token_revoked(owner_id, workspace_id, deleted)
        if deleted:
            self._audit_log(
                AuditEventType.AUTH_GOOGLE_UNLINK,
                owner_id,
                workspace_id,
                metadata={"action": "token_revoked"},
            )
        return deleted

    async def connect(
        self,
        owner_id: str,
        code: str,
        workspace_id: str | None = None,
        redirect_uri: str | None = None,
    ) -> ExternalIdentity:
        """Exchange an authorization code and store the resulting tokens.

        Raises:
            IdentityProviderError: The exchange or profile lookup failed
        """
        try:
            tokens = await self._provider.exchange_code(code, redirect_uri)
            identity = await self._provider.get_user_info(tokens.access_token)
        except IdentityProviderError as e:
            self._audit_log(
                AuditEventType.AUTH_GOOGLE_LINK,
                owner_id,
                workspace_id,
                success=False,
                error_message=str(e),
            )
            raise

        await self.store(
            owner_id=owner_id,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=tokens.expires_at,
            scopes=tokens.scopes,
            identity=identity,
            token_type=TokenType.USER,
            workspace_id=workspace_id,
        )
        self._audit_log(
            AuditEventType.AUTH_GOOGLE_LINK,
            owner_id,
            workspace_id,
            metadata={
                "email": identity.email,
                "domain": identity.domain,
                "has_refresh_token": tokens.refresh_token is not None,
            },
        )
        return identity

    async def check_health(
        self, owner_id: str, workspace_id: str | None = None
    ) -> TokenHealth:
        """Report token state without decrypting anything."""
        async with self._transaction() as session:
            stored = await self._token_repository_factory(session).get(
                owner_id, workspace_id or None
            )

        if stored is None:
            return TokenHealth(
                status=TokenHealthStatus.MISSING,
                message="No token stored for this account",
            )

        remaining = stored.expires_at - self._clock()
        minutes = int(remaining.total_seconds() // 60)
        details = {
            "expires_at": stored.expires_at,
            "has_refresh_token": stored.has_refresh_token,
            "minutes_until_expiry": minutes,
            "refresh_count": stored.refresh_count,
            "last_refreshed_at": stored.last_refreshed_at,
        }

        if remaining.total_seconds() <= 0:
            message = (
                "Token expired and will be refreshed on next use"
                if stored.has_refresh_token
                else "Token expired and cannot be refreshed; reconnect the account"
            )
            return TokenHealth(status=TokenHealthStatus.EXPIRED, message=message, **details)
        if remaining < self._expiring_soon:
            return TokenHealth(
                status=TokenHealthStatus.EXPIRING_SOON,
                message=f"Token expires in {minutes} minutes",
                **details,
            )
        return TokenHealth(
            status=TokenHealthStatus.HEALTHY,
            message="Token is valid",
            **details,
        )

    async def cleanup_expired_tokens(self) -> int:
        """Delete expired records that can never be refreshed."""
        async with self._transaction() as session:
            count = await self._token_repository_factory(
                session
            ).delete_expired_without_refresh(self._clock())
        self._probe.expired_tokens_cleaned(count)
        return count

    async def resume_refresh_schedule(self) -> int:
        """Re-arm timers for every refreshable user token.

        Returns:
            Number of timers armed
        """
        async with self._transaction() as session:
            tokens = await self._token_repository_factory(session).list_refreshable()

        armed = sum(
            1
            for token in tokens
            if self._arm(token.owner_id, token.workspace_id, token.expires_at, token.token_type)
        )
        self._probe.refresh_schedule_resumed(armed)
        return armed

    async def store_service_account_key(
        self,
        domain: str,
        key: str | dict[str, Any],
        admin_owner_id: str,
        admin_email: str | None = None,
        scopes: tuple[str, ...] | list[str] = (),
    ) -> ServiceAccountKeyRecord:
        """Validate, encrypt and upsert a domain-wide delegation key.

        Raises:
            ServiceAccountKeyValidationError: The key is not a service account key document
        """
        document = self._parse_service_account_key(key)
        if not domain or not domain.strip():
            raise ServiceAccountKeyValidationError("Domain is required")

        record = ServiceAccountKeyRecord(
            domain=domain.strip().lower(),
            key_encrypted=self._codec.encrypt_to_json(json.dumps(document)),
            client_email=document["client_email"],
            admin_owner_id=admin_owner_id,
            admin_email=admin_email,
            scopes=tuple(scopes),
        )
        async with self._transaction() as session:
            await self._key_repository_factory(session).upsert(record)

        self._audit_log(
            AuditEventType.CREDENTIAL_SERVICE_ACCOUNT_STORED,
            admin_owner_id,
            None,
            metadata={
                "domain": record.domain,
                "client_email": record.client_email,
                "scopes": list(record.scopes),
            },
            resource_type="service_account_key",
            resource_id=record.domain,
        )
        return record

    async def get_service_account_key(self, domain: str) -> dict[str, Any] | None:
        """Decrypt the stored key document for a domain.

        Raises:
            TamperedOrCorruptCiphertextError: The stored key failed authentication
        """
        async with self._transaction() as session:
            record = await self._key_repository_factory(session).get(
                domain.strip().lower()
            )
        if record is None:
            return None

        plaintext = self._decrypt(
            record.key_encrypted, owner_id=record.admin_owner_id, resource="service_account_key"
        )
        return json.loads(plaintext)

    async def _refresh_once(
        self,
        owner_id: str,
        workspace_id: str | None,
        record: OAuthTokenRecord,
        force: bool,
    ) -> str:
        current = await self._load(owner_id, workspace_id)
        now = self._clock()
        if not force and not current.needs_refresh(
            now, self._refresh_buffer.total_seconds()
        ):
            self._probe.refresh_skipped(owner_id, workspace_id)
            return current.access_token

        refresh_token = current.refresh_token or record.refresh_token
        if refresh_token is None:
            raise RefreshUnavailableError(
                "No refresh token is stored; re-authentication required"
            )

        def log_retry(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome else None
            self._probe.refresh_retrying(
                owner_id, workspace_id, state.attempt_number, reason=repr(error)
            )

        try:
            async for attempt in self._retry_policy.retrying(
                retry_on=_is_retryable, before_sleep=log_retry
            ):
                with attempt:
                    tokens = await self._provider.refresh_token(refresh_token)
        except IdentityProviderError as e:
            self._probe.refresh_failed(owner_id, workspace_id, reason=str(e))
            self._audit_log(
                AuditEventType.AUTH_TOKEN_REFRESH,
                owner_id,
                workspace_id,
                success=False,
                severity=AuditSeverity.WARNING,
                error_message=str(e),
                metadata={"status_code": e.status_code},
            )
            raise RefreshFailedError(
                "Token refresh failed; re-authentication required"
            ) from e

        now = self._clock()
        updated = replace(
            current,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token or refresh_token,
            expires_at=tokens.expires_at or now + self._default_lifetime,
            scopes=tokens.scopes or current.scopes,
            refresh_count=current.refresh_count + 1,
            last_refreshed_at=now,
        )
        if not await self._persist_refreshed(updated):
            # Disconnected while the provider call was in flight
            self._probe.refresh_discarded(owner_id, workspace_id)
            raise NoCredentialError(
                f"OAuth token for owner {owner_id} was revoked during refresh"
            )
        self._arm(owner_id, workspace_id, updated.expires_at, updated.token_type)

        self._probe.token_refreshed(owner_id, workspace_id, updated.refresh_count)
        self._audit_log(
            AuditEventType.AUTH_TOKEN_REFRESH,
            owner_id,
            workspace_id,
            metadata={
                "refresh_count": updated.refresh_count,
                "refresh_token_rotated": tokens.refresh_token is not None,
            },
        )
        return updated.access_token

    async def _load(self, owner_id: str, workspace_id: str | None) -> OAuthTokenRecord:
        async with self._transaction() as session:
            stored = await self._token_repository_factory(session).get(
                owner_id, workspace_id or None
            )
        if stored is None:
            raise NoCredentialError(
                f"No OAuth token stored for owner {owner_id}"
                + (f" in workspace {workspace_id}" if workspace_id else "")
            )
        return self._decrypt_record(stored)

    async def _persist(self, record: OAuthTokenRecord) -> None:
        stored = self._encrypt_record(record)
        async with self._transaction() as session:
            await self._token_repository_factory(session).upsert(stored)

    async def _persist_refreshed(self, record: OAuthTokenRecord) -> bool:
        stored = self._encrypt_record(record)
        async with self._transaction() as session:
            return await self._token_repository_factory(session).update_refreshed(
                stored
            )

    def _encrypt_record(self, record: OAuthTokenRecord) -> StoredToken:
        return StoredToken(
            owner_id=record.owner_id,
            workspace_id=record.workspace_id,
            access_token_encrypted=self._codec.encrypt_to_json(record.access_token),
            refresh_token_encrypted=(
                self._codec.encrypt_to_json(record.refresh_token)
                if record.refresh_token is not None
                else None
            ),
            expires_at=record.expires_at,
            scopes=record.scopes,
            identity=record.identity,
            token_type=record.token_type,
            refresh_count=record.refresh_count,
            last_refreshed_at=record.last_refreshed_at,
        )

    async def _revoke_remote(self, stored: StoredToken) -> None:
        try:
            record = self._decrypt_record(stored)
        except TamperedOrCorruptCiphertextError:
            # Nothing trustworthy to send; the local record is still deleted
            return

        token = record.refresh_token or record.access_token
        try:
            await self._provider.revoke_token(token)
        except IdentityProviderError as e:
            self._probe.remote_revoke_failed(
                stored.owner_id, stored.workspace_id, reason=str(e)
            )

    def _decrypt_record(self, stored: StoredToken) -> OAuthTokenRecord:
        access_token = self._decrypt(
            stored.access_token_encrypted, owner_id=stored.owner_id, resource="oauth_token"
        )
        refresh_token = None
        if stored.refresh_token_encrypted is not None:
            refresh_token = self._decrypt(
                stored.refresh_token_encrypted,
                owner_id=stored.owner_id,
                resource="oauth_token",
            )
        return OAuthTokenRecord(
            owner_id=stored.owner_id,
            workspace_id=stored.workspace_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=stored.expires_at,
            scopes=stored.scopes,
            identity=stored.identity,
            token_type=stored.token_type,
            refresh_count=stored.refresh_count,
            last_refreshed_at=stored.last_refreshed_at,
        )

    def _decrypt(self, ciphertext: str, owner_id: str, resource: str) -> str:
        try:
            return self._codec.decrypt_from_json(ciphertext)
        except TamperedOrCorruptCiphertextError:
            self._probe.decryption_failed(owner_id, resource)
            if self._audit is not None:
                self._audit.log(
                    event_type=AuditEventType.SECURITY_DECRYPTION_FAILED,
                    severity=AuditSeverity.CRITICAL,
                    actor_id=owner_id,
                    resource_type=resource,
                    success=False,
                    error_message="Stored secret failed authentication",
                )
            raise

    def _arm(
        self,
        owner_id: str,
        workspace_id: str | None,
        expires_at: datetime,
        token_type: TokenType,
    ) -> bool:
        if self._scheduler is None or token_type is not TokenType.USER:
            return False
        delay = (expires_at - self._refresh_buffer - self._clock()).total_seconds()
        return self._scheduler.schedule(
            _flight_key(owner_id, workspace_id),
            delay,
            lambda: self.get_valid_access_token(owner_id, workspace_id),
        )

    @staticmethod
    def _parse_service_account_key(key: str | dict[str, Any]) -> dict[str, Any]:
        if isinstance(key, str):
            try:
                document = json.loads(key)
            except ValueError as e:
                raise ServiceAccountKeyValidationError(
                    "Service account key is not valid JSON"
                ) from e
        else:
            document = dict(key)

        if not isinstance(document, dict):
            raise ServiceAccountKeyValidationError(
                "Service account key must be a JSON object"
            )
        missing = [f for f in REQUIRED_SERVICE_ACCOUNT_FIELDS if not document.get(f)]
        if missing:
            raise ServiceAccountKeyValidationError(
                f"Service account key is missing: {', '.join(missing)}"
            )
        if document.get("type", "service_account") != "service_account":
            raise ServiceAccountKeyValidationError(
                "Key document is not a service account key"
            )
        return document

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    def _audit_log(
        self,
        event_type: AuditEventType,
        owner_id: str,
        workspace_id: str | None,
        metadata: dict[str, Any] | None = None,
        success: bool = True,
        severity: AuditSeverity = AuditSeverity.INFO,
        error_message: str | None = None,
        resource_type: str = "oauth_token",
        resource_id: str | None = None,
    ) -> None:
        if self._audit is None:
            return
        self._audit.log(
            event_type=event_type,
            severity=severity,
            actor_id=owner_id,
            metadata=metadata,
            success=success,
            resource_type=resource_type,
            resource_id=resource_id,
            workspace_id=workspace_id,
            error_message=error_message,
        )
