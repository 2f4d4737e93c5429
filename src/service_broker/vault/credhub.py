"""Async CredHub client implementing the CredentialVault protocol.

Authenticates with an OAuth2 client-credentials token from UAA, cached
until shortly before it expires. Credentials are stored with the ``json``
type so applications read back exactly the object the provider built.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Refresh tokens this many seconds before UAA says they expire.
_TOKEN_EXPIRY_MARGIN = 30.0


# ── Exception hierarchy ─────────────────────────────────────────


class CredHubError(Exception):
    """Base exception for CredHub and UAA errors."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"CredHub error {status_code}: {message}")


class CredHubAuthError(CredHubError):
    """Token request rejected, or token not accepted (401/403)."""


class CredHubNotFoundError(CredHubError):
    """Credential or permission not found (404)."""

    def __init__(self, message: str = "not found") -> None:
        super().__init__(404, message)


# ── Client ───────────────────────────────────────────────────────


class CredHubVault:
    """CredHub-backed credential vault."""

    def __init__(
        self,
        *,
        credhub_url: str,
        uaa_url: str,
        client_id: str,
        client_secret: str,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        if not credhub_url:
            raise ValueError("credhub_url is required")
        if not uaa_url:
            raise ValueError("uaa_url is required")
        if not client_id or not client_secret:
            raise ValueError("client_id and client_secret are required")

        self._credhub_url = credhub_url.rstrip("/")
        self._uaa_url = uaa_url.rstrip("/")
        self._client_id = client_id
        self._client_secret = client_secret
        self._client = http_client or httpx.AsyncClient()
        self._timeout = float(timeout_seconds)
        self._token: str | None = None
        self._token_expires_at = 0.0

    async def _access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        try:
            resp = await self._client.post(
                f"{self._uaa_url}/oauth/token",
                data={"grant_type": "client_credentials", "response_type": "token"},
                auth=(self._client_id, self._client_secret),
                timeout=self._timeout,
            )
        except httpx.TransportError as exc:
            raise CredHubError(0, f"UAA unreachable: {type(exc).__name__}") from exc

        if resp.status_code >= 400:
            raise CredHubAuthError(resp.status_code, "UAA token request rejected")

        payload = resp.json()
        self._token = payload["access_token"]
        expires_in = float(payload.get("expires_in", 0))
        self._token_expires_at = time.monotonic() + max(expires_in - _TOKEN_EXPIRY_MARGIN, 0.0)
        return self._token

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        message = resp.text[:200] if resp.text else f"HTTP {resp.status_code}"
        try:
            payload = resp.json()
            if isinstance(payload, dict):
                message = payload.get("error_description", payload.get("error", message))
        except ValueError:
            pass

        if resp.status_code == 404:
            raise CredHubNotFoundError(message)
        if resp.status_code in (401, 403):
            # Force a fresh token on the next call.
            self._token = None
            raise CredHubAuthError(resp.status_code, message)
        raise CredHubError(resp.status_code, message)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        token = await self._access_token()
        try:
            resp = await self._client.request(
                method,
                f"{self._credhub_url}{path}",
                headers={"Authorization": f"Bearer {token}"},
                json=json,
                params=params,
                timeout=self._timeout,
            )
        except httpx.TransportError as exc:
            raise CredHubError(0, f"{method} {path} failed: {type(exc).__name__}") from exc
        self._raise_for_status(resp)
        return resp

    # ── CredentialVault protocol ─────────────────────────────────

    async def put(self, name: str, value: dict[str, Any]) -> str:
        """Store ``value`` under ``name`` and return the credential ID."""
        resp = await self._request(
            "PUT",
            "/api/v1/data",
            json={"name": name, "type": "json", "value": value},
        )
        logger.info("Credential stored: name=%s", name, extra={"credential_name": name})
        return resp.json().get("id", name)

    async def add_permission(self, name: str, actor: str, operations: list[str]) -> None:
        await self._request(
            "POST",
            "/api/v2/permissions",
            json={"path": name, "actor": actor, "operations": list(operations)},
        )

    async def delete_permission(self, name: str) -> None:
        """Remove every actor's grant on ``name``.

        A credential without permissions (or already gone) is not an error.
        """
        try:
            resp = await self._request(
                "GET", "/api/v1/permissions", params={"credential_name": name},
            )
        except CredHubNotFoundError:
            return

        for entry in resp.json().get("permissions", []):
            actor = entry.get("actor")
            if not actor:
                continue
            try:
                await self._request(
                    "DELETE",
                    "/api/v1/permissions",
                    params={"credential_name": name, "actor": actor},
                )
            except CredHubNotFoundError:
                continue

    async def delete(self, name: str) -> None:
        """Delete the credential at ``name``. An absent credential is not an error."""
        try:
            await self._request("DELETE", "/api/v1/data", params={"name": name})
        except CredHubNotFoundError:
            logger.info("Credential already absent: name=%s", name, extra={"credential_name": name})
            return
        logger.info("Credential deleted: name=%s", name, extra={"credential_name": name})
