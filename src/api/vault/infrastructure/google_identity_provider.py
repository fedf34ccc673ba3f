"""Google OAuth2 implementation of the IdentityProvider port."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

from vault.domain.value_objects import ExternalIdentity, ProviderTokens
from vault.infrastructure.observability import (
    DefaultIdentityProviderProbe,
    IdentityProviderProbe,
)
from vault.ports.exceptions import (
    IdentityProviderError,
    IdentityProviderTimeoutError,
)


class GoogleIdentityProvider:
    """Talks to Google's token, revoke and userinfo endpoints.

    Owns a single AsyncClient for connection reuse; call aclose() at
    shutdown.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        token_url: str = "https://oauth2.googleapis.com/token",
        revoke_url: str = "https://oauth2.googleapis.com/revoke",
        userinfo_url: str = "https://www.googleapis.com/oauth2/v2/userinfo",
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
        probe: IdentityProviderProbe | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._token_url = token_url
        self._revoke_url = revoke_url
        self._userinfo_url = userinfo_url
        self._timeout_seconds = timeout_seconds
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds)
        )
        self._probe = probe or DefaultIdentityProviderProbe()

    @classmethod
    def from_settings(cls) -> GoogleIdentityProvider:
        """Build a provider from WARDEN_OAUTH_* settings."""
        from infrastructure.settings import get_oauth_settings

        settings = get_oauth_settings()
        return cls(
            client_id=settings.client_id,
            client_secret=settings.client_secret.get_secret_value(),
            redirect_uri=settings.redirect_uri,
            token_url=settings.token_url,
            revoke_url=settings.revoke_url,
            userinfo_url=settings.userinfo_url,
            timeout_seconds=settings.timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def exchange_code(
        self, code: str, redirect_uri: str | None = None
    ) -> ProviderTokens:
        payload = await self._post_token(
            "exchange_code",
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri or self._redirect_uri,
                "client_id": self._client_id,
                "client_secret": self._client_secret,
            },
        )
        return self._tokens_from(payload)

    async def refresh_token(self, refresh_token: str) -> ProviderTokens:
        payload = await self._post_token(
            "refresh_token",
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self._client_id,
                "client_secret": self._client_secret,
            },
        )
        return self._tokens_from(payload)

    async def revoke_token(self, token: str) -> None:
        await self._request("revoke_token", "POST", self._revoke_url, data={"token": token})

    async def get_user_info(self, access_token: str) -> ExternalIdentity:
        response = await self._request(
            "get_user_info",
            "GET",
            self._userinfo_url,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        data = self._json(response, "get_user_info")
        return ExternalIdentity(
            email=data.get("email"),
            name=data.get("name"),
            picture=data.get("picture"),
            domain=data.get("hd"),
        )

    async def _post_token(self, operation: str, form: dict[str, str]) -> dict[str, Any]:
        response = await self._request(operation, "POST", self._token_url, data=form)
        payload = self._json(response, operation)
        if not payload.get("access_token"):
            self._probe.provider_call_failed(operation, reason="missing_access_token")
            raise IdentityProviderError(
                f"Provider response to {operation} had no access token",
                retryable=False,
            )
        return payload

    async def _request(
        self, operation: str, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            self._probe.provider_call_timed_out(operation, self._timeout_seconds)
            raise IdentityProviderTimeoutError(
                f"Identity provider timed out during {operation}"
            ) from e
        except httpx.HTTPError as e:
            self._probe.provider_call_failed(operation, reason=repr(e))
            raise IdentityProviderError(
                f"Identity provider unreachable during {operation}"
            ) from e

        if response.status_code >= 400:
            self._probe.provider_call_failed(
                operation,
                reason=self._error_reason(response),
                status_code=response.status_code,
            )
            raise IdentityProviderError(
                f"Identity provider rejected {operation} "
                f"with HTTP {response.status_code}",
                status_code=response.status_code,
                retryable=response.status_code >= 500 or response.status_code == 429,
            )
        return response

    def _json(self, response: httpx.Response, operation: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            self._probe.provider_call_failed(operation, reason="invalid_json")
            raise IdentityProviderError(
                f"Identity provider returned invalid JSON for {operation}",
                status_code=response.status_code,
                retryable=False,
            ) from e
        if not isinstance(data, dict):
            raise IdentityProviderError(
                f"Identity provider returned an unexpected body for {operation}",
                status_code=response.status_code,
                retryable=False,
            )
        return data

    @staticmethod
    def _error_reason(response: httpx.Response) -> str:
        # Only the OAuth error code; the description may echo request data
        try:
            body = response.json()
        except ValueError:
            return "unparseable_error_body"
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            return body["error"]
        return "unknown_error"

    @staticmethod
    def _tokens_from(payload: dict[str, Any]) -> ProviderTokens:
        expires_in = payload.get("expires_in")
        expires_at = None
        if isinstance(expires_in, (int, float)) and expires_in > 0:
            expires_at = datetime.now(UTC) + timedelta(seconds=int(expires_in))
        scope = payload.get("scope") or ""
        return ProviderTokens(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or None,
            expires_at=expires_at,
            scopes=tuple(scope.split()) if isinstance(scope, str) else (),
        )
