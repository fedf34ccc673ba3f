"""PostgreSQL implementations of the vault repositories."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.exceptions import translate_storage_errors
from vault.domain.value_objects import (
    ExternalIdentity,
    ServiceAccountKeyRecord,
    StoredToken,
    TokenType,
)
from vault.infrastructure.models import OAuthTokenModel, ServiceAccountKeyModel
from vault.infrastructure.models.oauth_token import NO_WORKSPACE
from vault.ports.repositories import (
    IServiceAccountKeyRepository,
    ITokenRepository,
)


def _workspace_column(workspace_id: str | None) -> str:
    return workspace_id if workspace_id else NO_WORKSPACE


class TokenRepository(ITokenRepository):
    """Repository for encrypted OAuth token records."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, owner_id: str, workspace_id: str | None) -> StoredToken | None:
        stmt = select(OAuthTokenModel).where(
            and_(
                OAuthTokenModel.owner_id == owner_id,
                OAuthTokenModel.workspace_id == _workspace_column(workspace_id),
            )
        )
        with translate_storage_errors("oauth_tokens.get"):
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()

        if model is None:
            return None
        return self._to_domain(model)

    async def upsert(self, token: StoredToken) -> None:
        values = {
            "owner_id": token.owner_id,
            "workspace_id": _workspace_column(token.workspace_id),
            "access_token_encrypted": token.access_token_encrypted,
            "refresh_token_encrypted": token.refresh_token_encrypted,
            "expires_at": token.expires_at,
            "scopes": list(token.scopes),
            "token_type": token.token_type.value,
            "email": token.identity.email,
            "name": token.identity.name,
            "picture": token.identity.picture,
            "domain": token.identity.domain,
            "refresh_count": token.refresh_count,
            "last_refreshed_at": token.last_refreshed_at,
        }
        stmt = pg_insert(OAuthTokenModel).values(**values)
        stmt = stmt.on_conflict_do_update(
            constraint="uq_oauth_tokens_owner_ws",
            set_={
                key: getattr(stmt.excluded, key)
                for key in values
                if key not in ("owner_id", "workspace_id")
            }
            | {"updated_at": stmt.excluded.updated_at},
        )
        with translate_storage_errors("oauth_tokens.upsert"):
            await self._session.execute(stmt)

    async def update_refreshed(self, token: StoredToken) -> bool:
        stmt = (
            update(OAuthTokenModel)
            .where(
                and_(
                    OAuthTokenModel.owner_id == token.owner_id,
                    OAuthTokenModel.workspace_id
                    == _workspace_column(token.workspace_id),
                )
            )
            .values(
                access_token_encrypted=token.access_token_encrypted,
                refresh_token_encrypted=token.refresh_token_encrypted,
                expires_at=token.expires_at,
                scopes=list(token.scopes),
                refresh_count=token.refresh_count,
                last_refreshed_at=token.last_refreshed_at,
                updated_at=func.now(),
            )
        )
        with translate_storage_errors("oauth_tokens.update_refreshed"):
            result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def delete(self, owner_id: str, workspace_id: str | None) -> bool:
        stmt = delete(OAuthTokenModel).where(
            and_(
                OAuthTokenModel.owner_id == owner_id,
                OAuthTokenModel.workspace_id == _workspace_column(workspace_id),
            )
        )
        with translate_storage_errors("oauth_tokens.delete"):
            result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def delete_expired_without_refresh(self, now: datetime) -> int:
        stmt = delete(OAuthTokenModel).where(
            and_(
                OAuthTokenModel.expires_at < now,
                OAuthTokenModel.refresh_token_encrypted.is_(None),
            )
        )
        with translate_storage_errors("oauth_tokens.cleanup"):
            result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def list_refreshable(self) -> list[StoredToken]:
        stmt = select(OAuthTokenModel).where(
            and_(
                OAuthTokenModel.refresh_token_encrypted.is_not(None),
                OAuthTokenModel.token_type == TokenType.USER.value,
            )
        )
        with translate_storage_errors("oauth_tokens.list_refreshable"):
            result = await self._session.execute(stmt)
            models = result.scalars().all()
        return [self._to_domain(m) for m in models]

    @staticmethod
    def _to_domain(model: OAuthTokenModel) -> StoredToken:
        return StoredToken(
            owner_id=model.owner_id,
            workspace_id=model.workspace_id or None,
            access_token_encrypted=model.access_token_encrypted,
            refresh_token_encrypted=model.refresh_token_encrypted,
            expires_at=model.expires_at,
            scopes=tuple(model.scopes or ()),
            identity=ExternalIdentity(
                email=model.email,
                name=model.name,
                picture=model.picture,
                domain=model.domain,
            ),
            token_type=TokenType(model.token_type),
            refresh_count=model.refresh_count,
            last_refreshed_at=model.last_refreshed_at,
            updated_at=model.updated_at,
        )


class ServiceAccountKeyRepository(IServiceAccountKeyRepository):
    """Repository for encrypted domain-wide delegation keys."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, domain: str) -> ServiceAccountKeyRecord | None:
        with translate_storage_errors("service_account_keys.get"):
            model = await self._session.get(ServiceAccountKeyModel, domain)
        if model is None:
            return None
        return ServiceAccountKeyRecord(
            domain=model.domain,
            key_encrypted=model.encrypted_key,
            client_email=model.client_email,
            admin_owner_id=model.admin_owner_id,
            admin_email=model.admin_email,
            scopes=tuple(model.scopes or ()),
        )

    async def upsert(self, record: ServiceAccountKeyRecord) -> None:
        stmt = pg_insert(ServiceAccountKeyModel).values(
            domain=record.domain,
            encrypted_key=record.key_encrypted,
            client_email=record.client_email,
            admin_owner_id=record.admin_owner_id,
            admin_email=record.admin_email,
            scopes=list(record.scopes),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ServiceAccountKeyModel.domain],
            set_={
                "encrypted_key": stmt.excluded.encrypted_key,
                "client_email": stmt.excluded.client_email,
                "admin_owner_id": stmt.excluded.admin_owner_id,
                "admin_email": stmt.excluded.admin_email,
                "scopes": stmt.excluded.scopes,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        with translate_storage_errors("service_account_keys.upsert"):
            await self._session.execute(stmt)
