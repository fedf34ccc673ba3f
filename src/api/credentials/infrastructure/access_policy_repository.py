"""PostgreSQL implementation of IAccessPolicyRepository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from credentials.domain.value_objects import AccessPolicy, OwnerId
from credentials.infrastructure.models import APIAccessModel
from credentials.ports.repositories import IAccessPolicyRepository
from infrastructure.database.exceptions import translate_storage_errors


class AccessPolicyRepository(IAccessPolicyRepository):
    """Reads and writes per-owner API capability rows."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, owner_id: OwnerId, for_update: bool = False) -> AccessPolicy | None:
        stmt = select(APIAccessModel).where(APIAccessModel.owner_id == owner_id.value)
        if for_update:
            stmt = stmt.with_for_update()

        with translate_storage_errors("api_access.get"):
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()

        if model is None:
            return None
        return AccessPolicy(
            owner_id=OwnerId(model.owner_id),
            api_enabled=model.api_enabled,
            is_developer=model.is_developer,
            max_api_keys=model.max_api_keys,
        )

    async def save(self, policy: AccessPolicy) -> None:
        with translate_storage_errors("api_access.save"):
            model = await self._session.get(APIAccessModel, policy.owner_id.value)
            if model is None:
                model = APIAccessModel(owner_id=policy.owner_id.value)
                self._session.add(model)
            model.api_enabled = policy.api_enabled
            model.is_developer = policy.is_developer
            model.max_api_keys = policy.max_api_keys
            await self._session.flush()
