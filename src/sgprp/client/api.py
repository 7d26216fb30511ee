"""Async HTTP client for the SGP-RP API.

The client attaches the stored bearer token to authenticated calls. When
the server answers an authenticated call with 401 or 403 the session is
over: the store is cleared and SessionEndedError is raised. Password
recovery failures come back as 400 and never end the session.

Example:
    store = MemoryCredentialStore()
    async with PortalClient("http://localhost:3000", store) as client:
        await client.login_policial("12345", "secret")
        me = await client.get_me()
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from sgprp.client.store import CredentialStore, StoredCredentials

logger = logging.getLogger(__name__)

SESSION_ENDING_STATUSES = frozenset({401, 403})


class PortalAPIError(Exception):
    """Error response from the API.

    Attributes:
        status_code: HTTP status.
        error: Machine-readable error code from the body, if any.
        message: Human-readable message.
        detail: Optional structured detail.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        error: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.error = error
        self.detail = detail
        super().__init__(f"{status_code}: {message}")


class SessionEndedError(PortalAPIError):
    """The server rejected the stored credentials; they have been cleared."""


class PortalClient:
    """Client for the portal API, bound to a credential store."""

    def __init__(
        self,
        base_url: str,
        store: CredentialStore,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._store = store
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> PortalClient:
        kwargs: dict[str, Any] = {"base_url": self._base_url, "transport": self._transport}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        self._client = httpx.AsyncClient(**kwargs)
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def store(self) -> CredentialStore:
        return self._store

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "PortalClient must be used as async context manager"
            raise RuntimeError(msg)
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        authenticated: bool = True,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        headers: dict[str, str] = {}
        if authenticated:
            credentials = self._store.get()
            if credentials is None:
                raise SessionEndedError(401, "Not signed in", error="unauthorized")
            headers["Authorization"] = f"Bearer {credentials.token}"

        response = await self._get_client().request(
            method, path, json=json, params=params, headers=headers
        )
        if response.is_success:
            return response.json()

        body = _error_body(response)
        message = str(body.get("message") or body.get("detail") or response.reason_phrase)
        error = body.get("error")
        detail = body.get("detail") if isinstance(body.get("detail"), dict) else None

        if authenticated and response.status_code in SESSION_ENDING_STATUSES:
            logger.info("Session ended by server (%d), clearing credentials", response.status_code)
            self._store.clear()
            raise SessionEndedError(response.status_code, message, error=error, detail=detail)
        raise PortalAPIError(response.status_code, message, error=error, detail=detail)

    def _remember(self, body: dict[str, Any], account_key: str, account_type: str) -> dict[str, Any]:
        expires_at = body.get("expires_at")
        self._store.set(
            StoredCredentials(
                token=body["token"],
                account_type=account_type,
                expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
                account=dict(body.get(account_key) or {}),
            )
        )
        return body

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def login_civil(self, id_passaporte: str, senha: str) -> dict[str, Any]:
        body = await self._request(
            "POST",
            "/api/auth/login",
            authenticated=False,
            json={"id_passaporte": id_passaporte, "senha": senha},
        )
        return self._remember(body, "usuario", "civil")

    async def login_policial(self, passaporte: str, senha: str) -> dict[str, Any]:
        body = await self._request(
            "POST",
            "/api/policia/login",
            authenticated=False,
            json={"passaporte": passaporte, "senha": senha},
        )
        return self._remember(body, "policial", "policial")

    def logout(self) -> None:
        self._store.clear()

    async def get_me(self) -> dict[str, Any]:
        return await self._request("GET", "/api/auth/me")

    # ------------------------------------------------------------------
    # Password recovery
    # ------------------------------------------------------------------

    async def forgot_password(self, email: str) -> dict[str, Any]:
        return await self._request(
            "POST", "/api/auth/forgot-password", authenticated=False, json={"email": email}
        )

    async def verify_code(self, email: str, code: str) -> str:
        """Verify a recovery code and return the reset token."""
        body = await self._request(
            "POST",
            "/api/auth/verify-code",
            authenticated=False,
            json={"email": email, "code": code},
        )
        return body["resetToken"]

    async def reset_password(self, reset_token: str, new_password: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/api/auth/reset-password",
            authenticated=False,
            json={"resetToken": reset_token, "newPassword": new_password},
        )

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    async def list_recruits(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/api/admin/recrutas")

    async def review_recruit(
        self,
        recruit_id: int,
        novo_status: str,
        *,
        divisao: str | None = None,
        patente: str | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "PUT",
            f"/api/admin/recrutas/{recruit_id}",
            json={"novoStatus": novo_status, "divisao": divisao, "patente": patente},
        )

    async def manage_career(self, policial_id: int, acao: str, nova_patente: str) -> dict[str, Any]:
        return await self._request(
            "PUT",
            "/api/admin/gerenciar-policial",
            json={"policialId": policial_id, "acao": acao, "novaPatente": nova_patente},
        )

    async def dismiss(self, policial_id: int) -> dict[str, Any]:
        return await self._request("PUT", f"/api/admin/demitir/{policial_id}")

    async def generate_token(
        self, max_uses: int = 1, duration_hours: int = 24, corporacao: str | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/api/admin/generate-token",
            json={"max_uses": max_uses, "duration_hours": duration_hours, "corporacao": corporacao},
        )

    async def get_logs(self, **filters: Any) -> dict[str, Any]:
        params = {key: value for key, value in filters.items() if value is not None}
        return await self._request("GET", "/api/admin/logs", params=params)


def _error_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
