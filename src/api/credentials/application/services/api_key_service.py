"""API Key application service for the credentials bounded context.

Orchestrates the API key lifecycle: issuance, validation, rotation,
revocation and purge. bcrypt work runs in a worker thread so validation
never stalls the event loop.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from audit.domain.value_objects import AuditEventType, AuditSeverity
from credentials.application.observability import (
    APIKeyServiceProbe,
    DefaultAPIKeyServiceProbe,
)
from credentials.application.security import (
    DEFAULT_BCRYPT_ROUNDS,
    DEFAULT_KEY_PREFIX,
    MAX_KEY_LENGTH,
    environment_of,
    extract_prefix,
    generate_api_key,
    hash_api_key,
    verify_api_key,
)
from credentials.application.value_objects import CredentialInfo, KeyAllowance
from credentials.domain.aggregates import APIKey
from credentials.domain.value_objects import (
    AccessPolicy,
    APIKeyId,
    Environment,
    OwnerId,
)
from credentials.ports.exceptions import (
    APIKeyAlreadyRevokedError,
    APIKeyLimitReachedError,
    APIKeyNotFoundError,
    APIKeyValidationError,
    InvalidEnvironmentError,
)
from credentials.ports.repositories import IAccessPolicyRepository, IAPIKeyRepository

if TYPE_CHECKING:
    from audit.application.audit_logger import AuditLogger

ROTATION_REASON = "Rotated to new key"
MAX_NAME_LENGTH = 255


class APIKeyService:
    """Application service for API key management.

    Each public method runs its storage work inside its own transaction on
    the injected session.
    """

    def __init__(
        self,
        session: AsyncSession,
        api_key_repository: IAPIKeyRepository,
        access_policy_repository: IAccessPolicyRepository,
        probe: APIKeyServiceProbe | None = None,
        audit: AuditLogger | None = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
        default_max_api_keys: int = 3,
    ):
        """Initialize APIKeyService with dependencies.

        Args:
            session: Database session for transaction management
            api_key_repository: Repository for API key persistence
            access_policy_repository: Repository for per-owner API capabilities
            probe: Optional domain probe for observability
            audit: Optional audit logger for lifecycle events
            key_prefix: Brand prefix of generated keys
            bcrypt_rounds: bcrypt cost factor
            default_max_api_keys: Key allowance for owners without a policy
        """
        self._session = session
        self._api_key_repository = api_key_repository
        self._access_policy_repository = access_policy_repository
        self._probe = probe or DefaultAPIKeyServiceProbe()
        self._audit = audit
        self._key_prefix = key_prefix
        self._bcrypt_rounds = bcrypt_rounds
        self._default_max_api_keys = default_max_api_keys

    def generate(self, environment: Environment | str) -> str:
        """Generate a plaintext key for an environment without storing it.

        Raises:
            InvalidEnvironmentError: If environment is not live or test
        """
        return generate_api_key(self._parse_environment(environment), self._key_prefix)

    async def create(
        self,
        owner_id: OwnerId,
        name: str,
        environment: Environment | str = Environment.LIVE,
        expires_at: datetime | None = None,
    ) -> tuple[APIKey, str]:
        """Create a new API key for an owner.

        Checks the owner's allowance first, so a refused request never
        generates, hashes or stores anything. The allowance is re-checked
        under a lock on the owner's policy row before insert.

        Args:
            owner_id: The account the key authenticates as
            name: A descriptive name for the key
            environment: live or test
            expires_at: Optional expiry, must be in the future

        Returns:
            Tuple of (APIKey aggregate, plaintext key). The plaintext is
            never retrievable again.

        Raises:
            APIKeyValidationError: If the name, environment or expiry is invalid
            APIKeyLimitReachedError: If the owner has no key allowance left
            StorageUnavailableError: If the store cannot be reached
        """
        env = self._parse_environment(environment)
        clean_name = self._validate_name(name)
        if expires_at is not None:
            if expires_at.tzinfo is None:
                raise APIKeyValidationError("expires_at must be timezone-aware")
            if expires_at <= datetime.now(UTC):
                raise APIKeyValidationError("expires_at must be in the future")

        try:
            allowance = await self.can_create(owner_id)
            if not allowance.allowed:
                raise APIKeyLimitReachedError(allowance.current, allowance.max)

            plaintext = generate_api_key(env, self._key_prefix)
            key_hash = await asyncio.to_thread(
                hash_api_key, plaintext, self._bcrypt_rounds
            )
            api_key = APIKey.create(
                owner_id=owner_id,
                name=clean_name,
                key_hash=key_hash,
                prefix=extract_prefix(plaintext),
                environment=env,
                expires_at=expires_at,
            )

            async with self._session.begin():
                policy = await self._access_policy_repository.get(
                    owner_id, for_update=True
                )
                maximum = self._max_keys(policy)
                current = await self._api_key_repository.count_active(owner_id)
                if current >= maximum:
                    raise APIKeyLimitReachedError(current, maximum)
                await self._api_key_repository.save(api_key)

        except APIKeyLimitReachedError as e:
            self._probe.api_key_limit_reached(
                owner_id=owner_id.value, current=e.current, maximum=e.maximum
            )
            raise
        except Exception as e:
            self._probe.api_key_creation_failed(owner_id=owner_id.value, error=str(e))
            raise

        self._probe.api_key_created(
            api_key_id=api_key.id.value,
            owner_id=owner_id.value,
            name=clean_name,
            environment=env.value,
        )
        self._audit_event(
            AuditEventType.CREDENTIAL_API_KEY_CREATED,
            api_key,
            {"name": clean_name, "environment": env.value, "prefix": api_key.prefix},
        )
        return api_key, plaintext

    async def validate(self, plaintext: str) -> CredentialInfo | None:
        """Validate a presented key and record its use.

        Keys without a recognised environment marker are rejected without
        touching storage. Otherwise the key is compared against the valid
        keys of its environment; on a match the usage counter is bumped
        atomically in the store.

        Returns:
            CredentialInfo for a valid key, None otherwise. "Not found" is
            never raised.

        Raises:
            StorageUnavailableError: If the store cannot be reached
        """
        if not plaintext or len(plaintext.encode()) > MAX_KEY_LENGTH:
            self._probe.api_key_validation_failed(reason="malformed", environment=None)
            return None

        environment = environment_of(plaintext, self._key_prefix)
        if environment is None:
            self._probe.api_key_validation_failed(
                reason="unknown_environment", environment=None
            )
            return None

        now = datetime.now(UTC)
        async with self._session.begin():
            candidates = await self._api_key_repository.list_valid_for_environment(
                environment, now
            )

        match = await asyncio.to_thread(self._find_match, plaintext, candidates)
        if match is None:
            self._probe.api_key_validation_failed(
                reason="no_match", environment=environment.value
            )
            return None

        async with self._session.begin():
            total_requests = await self._api_key_repository.record_usage(match.id, now)
            if total_requests is None:
                # Revoked between lookup and use
                self._probe.api_key_validation_failed(
                    reason="revoked_concurrently", environment=environment.value
                )
                return None
            policy = await self._access_policy_repository.get(match.owner_id)

        policy = policy or AccessPolicy.default(match.owner_id, self._default_max_api_keys)
        self._probe.api_key_validated(
            api_key_id=match.id.value,
            owner_id=match.owner_id.value,
            environment=environment.value,
        )
        return CredentialInfo(
            owner_id=match.owner_id,
            api_key_id=match.id,
            name=match.name,
            environment=environment,
            total_requests=total_requests,
            api_enabled=policy.api_enabled,
            is_developer=policy.is_developer,
        )

    async def revoke(
        self,
        api_key_id: APIKeyId,
        owner_id: OwnerId,
        reason: str | None = None,
        revoked_by: str | None = None,
    ) -> bool:
        """Revoke an owned API key.

        Idempotent: revoking an already revoked key succeeds without change.

        Returns:
            True if the key was revoked now, False if it already was

        Raises:
            APIKeyNotFoundError: If the key does not exist or is not owned
        """
        try:
            async with self._session.begin():
                api_key = await self._api_key_repository.get_by_id(
                    api_key_id, owner_id, for_update=True
                )
                if api_key is None:
                    raise APIKeyNotFoundError(f"API key {api_key_id.value} not found")

                changed = api_key.revoke(
                    reason=reason, revoked_by=revoked_by or owner_id.value
                )
                if changed:
                    await self._api_key_repository.save(api_key)

        except Exception as e:
            self._probe.api_key_revocation_failed(
                api_key_id=api_key_id.value, error=str(e)
            )
            raise

        if not changed:
            self._probe.api_key_already_revoked(
                api_key_id=api_key_id.value, owner_id=owner_id.value
            )
            return False

        self._probe.api_key_revoked(
            api_key_id=api_key_id.value, owner_id=owner_id.value, reason=reason
        )
        self._audit_event(
            AuditEventType.CREDENTIAL_API_KEY_REVOKED,
            api_key,
            {"reason": reason, "prefix": api_key.prefix},
        )
        return True

    async def rotate(
        self,
        old_api_key_id: APIKeyId,
        owner_id: OwnerId,
        new_name: str,
    ) -> tuple[APIKey, str]:
        """Replace a key with a new one of the same environment.

        The insert of the new key and the revocation of the old one commit
        together; if either fails the old key stays active.

        Raises:
            APIKeyNotFoundError: If the old key does not exist or is not owned
            APIKeyAlreadyRevokedError: If the old key is already revoked
        """
        clean_name = self._validate_name(new_name)
        try:
            async with self._session.begin():
                old_key = await self._load_rotatable(old_api_key_id, owner_id)

            plaintext = generate_api_key(old_key.environment, self._key_prefix)
            key_hash = await asyncio.to_thread(
                hash_api_key, plaintext, self._bcrypt_rounds
            )
            new_key = APIKey.create(
                owner_id=owner_id,
                name=clean_name,
                key_hash=key_hash,
                prefix=extract_prefix(plaintext),
                environment=old_key.environment,
            )

            async with self._session.begin():
                old_key = await self._load_rotatable(
                    old_api_key_id, owner_id, for_update=True
                )
                await self._api_key_repository.save(new_key)
                old_key.revoke(reason=ROTATION_REASON, revoked_by=owner_id.value)
                await self._api_key_repository.save(old_key)

        except Exception as e:
            self._probe.api_key_rotation_failed(
                api_key_id=old_api_key_id.value, error=str(e)
            )
            raise

        self._probe.api_key_rotated(
            old_api_key_id=old_api_key_id.value,
            new_api_key_id=new_key.id.value,
            owner_id=owner_id.value,
        )
        self._audit_event(
            AuditEventType.CREDENTIAL_API_KEY_ROTATED,
            new_key,
            {"replaced_api_key_id": old_api_key_id.value, "prefix": new_key.prefix},
        )
        return new_key, plaintext

    async def can_create(self, owner_id: OwnerId) -> KeyAllowance:
        """Compare the owner's active key count to their plan maximum."""
        async with self._session.begin():
            policy = await self._access_policy_repository.get(owner_id)
            current = await self._api_key_repository.count_active(owner_id)

        maximum = self._max_keys(policy)
        return KeyAllowance(allowed=current < maximum, current=current, max=maximum)

    async def list_keys(self, owner_id: OwnerId) -> list[APIKey]:
        """List all of an owner's keys, including revoked and expired ones."""
        async with self._session.begin():
            keys = await self._api_key_repository.list_by_owner(owner_id)

        self._probe.api_key_list_retrieved(owner_id=owner_id.value, count=len(keys))
        return keys

    async def purge(self, api_key_id: APIKeyId, owner_id: OwnerId) -> None:
        """Permanently delete an owned key. Only for owner-initiated cleanup.

        Raises:
            APIKeyNotFoundError: If the key does not exist or is not owned
        """
        async with self._session.begin():
            deleted = await self._api_key_repository.delete(api_key_id, owner_id)
            if not deleted:
                raise APIKeyNotFoundError(f"API key {api_key_id.value} not found")

        self._probe.api_key_purged(api_key_id=api_key_id.value, owner_id=owner_id.value)
        if self._audit is not None:
            self._audit.log(
                event_type=AuditEventType.CREDENTIAL_API_KEY_PURGED,
                severity=AuditSeverity.WARNING,
                actor_id=owner_id.value,
                resource_type="api_key",
                resource_id=api_key_id.value,
            )

    async def _load_rotatable(
        self, api_key_id: APIKeyId, owner_id: OwnerId, for_update: bool = False
    ) -> APIKey:
        api_key = await self._api_key_repository.get_by_id(
            api_key_id, owner_id, for_update=for_update
        )
        if api_key is None:
            raise APIKeyNotFoundError(f"API key {api_key_id.value} not found")
        if api_key.is_revoked:
            raise APIKeyAlreadyRevokedError(
                f"API key {api_key_id.value} is already revoked"
            )
        return api_key

    @staticmethod
    def _find_match(plaintext: str, candidates: list[APIKey]) -> APIKey | None:
        """Return the candidate whose hash matches, comparing same-prefix keys only.

        The prefix is a slice of the plaintext, so keys with a different
        prefix cannot match and are skipped without hashing.
        """
        prefix = extract_prefix(plaintext)
        for candidate in candidates:
            if candidate.prefix != prefix:
                continue
            if verify_api_key(plaintext, candidate.key_hash):
                return candidate
        return None

    def _max_keys(self, policy: AccessPolicy | None) -> int:
        if policy is None:
            return self._default_max_api_keys
        return policy.max_api_keys

    @staticmethod
    def _parse_environment(environment: Environment | str) -> Environment:
        try:
            return Environment(environment)
        except ValueError as e:
            raise InvalidEnvironmentError(
                f"Unknown environment '{environment}'; expected one of "
                f"{', '.join(env.value for env in Environment)}"
            ) from e

    @staticmethod
    def _validate_name(name: str) -> str:
        if not isinstance(name, str) or not name.strip():
            raise APIKeyValidationError("API key name is required")
        clean = name.strip()
        if len(clean) > MAX_NAME_LENGTH:
            raise APIKeyValidationError(
                f"API key name cannot exceed {MAX_NAME_LENGTH} characters"
            )
        return clean

    def _audit_event(
        self, event_type: AuditEventType, api_key: APIKey, metadata: dict
    ) -> None:
        if self._audit is None:
            return
        self._audit.log(
            event_type=event_type,
            actor_id=api_key.owner_id.value,
            resource_type="api_key",
            resource_id=api_key.id.value,
            metadata=metadata,
        )
