"""PostgreSQL implementation of IAPIKeyRepository.

Stores API key metadata and the bcrypt hash. Usage counting is a single
UPDATE ... RETURNING so concurrent validations never lose increments.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from credentials.domain.aggregates import APIKey
from credentials.domain.value_objects import APIKeyId, Environment, OwnerId
from credentials.infrastructure.models import APIKeyModel
from credentials.infrastructure.observability import (
    APIKeyRepositoryProbe,
    DefaultAPIKeyRepositoryProbe,
)
from credentials.ports.repositories import IAPIKeyRepository
from infrastructure.database.exceptions import translate_storage_errors


class APIKeyRepository(IAPIKeyRepository):
    """Repository for APIKey aggregate persistence to PostgreSQL."""

    def __init__(
        self,
        session: AsyncSession,
        probe: APIKeyRepositoryProbe | None = None,
    ) -> None:
        """Initialize repository with database session.

        Args:
            session: AsyncSession from FastAPI dependency injection
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultAPIKeyRepositoryProbe()

    async def save(self, api_key: APIKey) -> None:
        """Insert or update API key metadata.

        The hash, prefix and environment are written once on insert and
        never changed afterwards.
        """
        with translate_storage_errors("api_keys.save"):
            model = await self._session.get(APIKeyModel, api_key.id.value)

            if model:
                model.name = api_key.name
                model.is_active = api_key.is_active
                model.expires_at = api_key.expires_at
                model.last_used_at = api_key.last_used_at
                model.revoked_at = api_key.revoked_at
                model.revoked_by = api_key.revoked_by
                model.revoke_reason = api_key.revoke_reason
            else:
                model = APIKeyModel(
                    id=api_key.id.value,
                    owner_id=api_key.owner_id.value,
                    name=api_key.name,
                    key_hash=api_key.key_hash,
                    prefix=api_key.prefix,
                    environment=api_key.environment.value,
                    is_active=api_key.is_active,
                    expires_at=api_key.expires_at,
                    last_used_at=api_key.last_used_at,
                    revoked_at=api_key.revoked_at,
                    revoked_by=api_key.revoked_by,
                    revoke_reason=api_key.revoke_reason,
                    total_requests=api_key.total_requests,
                    created_at=api_key.created_at,
                )
                self._session.add(model)

            await self._session.flush()

        self._probe.api_key_saved(api_key.id.value, api_key.owner_id.value)

    async def get_by_id(
        self,
        api_key_id: APIKeyId,
        owner_id: OwnerId,
        for_update: bool = False,
    ) -> APIKey | None:
        """Retrieve an API key by ID, scoped to its owner."""
        stmt = select(APIKeyModel).where(
            and_(
                APIKeyModel.id == api_key_id.value,
                APIKeyModel.owner_id == owner_id.value,
            )
        )
        if for_update:
            stmt = stmt.with_for_update()

        with translate_storage_errors("api_keys.get_by_id"):
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()

        if model is None:
            self._probe.api_key_not_found(api_key_id.value)
            return None
        return self._to_aggregate(model)

    async def list_by_owner(self, owner_id: OwnerId) -> list[APIKey]:
        """List all keys of an owner, newest first."""
        stmt = (
            select(APIKeyModel)
            .where(APIKeyModel.owner_id == owner_id.value)
            .order_by(APIKeyModel.created_at.desc())
        )
        with translate_storage_errors("api_keys.list_by_owner"):
            result = await self._session.execute(stmt)
            models = result.scalars().all()
        return [self._to_aggregate(model) for model in models]

    async def list_valid_for_environment(
        self, environment: Environment, now: datetime
    ) -> list[APIKey]:
        """List active, non-revoked, non-expired keys of one environment."""
        stmt = select(APIKeyModel).where(
            and_(
                APIKeyModel.environment == environment.value,
                APIKeyModel.is_active.is_(True),
                APIKeyModel.revoked_at.is_(None),
                or_(APIKeyModel.expires_at.is_(None), APIKeyModel.expires_at > now),
            )
        )
        with translate_storage_errors("api_keys.list_valid_for_environment"):
            result = await self._session.execute(stmt)
            models = result.scalars().all()

        self._probe.candidates_loaded(environment.value, len(models))
        return [self._to_aggregate(model) for model in models]

    async def count_active(self, owner_id: OwnerId) -> int:
        """Count active, non-revoked keys of an owner."""
        stmt = select(func.count()).select_from(APIKeyModel).where(
            and_(
                APIKeyModel.owner_id == owner_id.value,
                APIKeyModel.is_active.is_(True),
                APIKeyModel.revoked_at.is_(None),
            )
        )
        with translate_storage_errors("api_keys.count_active"):
            result = await self._session.execute(stmt)
            return int(result.scalar_one())

    async def record_usage(self, api_key_id: APIKeyId, used_at: datetime) -> int | None:
        """Atomically increment total_requests and set last_used_at."""
        stmt = (
            update(APIKeyModel)
            .where(
                and_(
                    APIKeyModel.id == api_key_id.value,
                    APIKeyModel.is_active.is_(True),
                    APIKeyModel.revoked_at.is_(None),
                )
            )
            .values(
                total_requests=APIKeyModel.total_requests + 1,
                last_used_at=used_at,
            )
            .returning(APIKeyModel.total_requests)
            .execution_options(synchronize_session=False)
        )
        with translate_storage_errors("api_keys.record_usage"):
            result = await self._session.execute(stmt)
            return result.scalar_one_or_none()

    async def delete(self, api_key_id: APIKeyId, owner_id: OwnerId) -> bool:
        """Hard delete an owned key."""
        stmt = (
            delete(APIKeyModel)
            .where(
                and_(
                    APIKeyModel.id == api_key_id.value,
                    APIKeyModel.owner_id == owner_id.value,
                )
            )
            .execution_options(synchronize_session=False)
        )
        with translate_storage_errors("api_keys.delete"):
            result = await self._session.execute(stmt)

        if result.rowcount == 0:
            self._probe.api_key_not_found(api_key_id.value)
            return False

        self._probe.api_key_deleted(api_key_id.value)
        return True

    def _to_aggregate(self, model: APIKeyModel) -> APIKey:
        """Convert SQLAlchemy model to domain aggregate."""
        return APIKey(
            id=APIKeyId(value=model.id),
            owner_id=OwnerId(value=model.owner_id),
            name=model.name,
            key_hash=model.key_hash,
            prefix=model.prefix,
            environment=Environment(model.environment),
            created_at=model.created_at,
            expires_at=model.expires_at,
            last_used_at=model.last_used_at,
            is_active=model.is_active,
            revoked_at=model.revoked_at,
            revoked_by=model.revoked_by,
            revoke_reason=model.revoke_reason,
            total_requests=model.total_requests,
        )
