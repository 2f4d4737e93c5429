"""Async PostgREST client wrapper for Supabase.

The single point of HTTP interaction for the broker's record repositories.
Filters are simple column equality maps; ``None`` values are sent as
``is.null``.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from .errors import (
    SupabaseAuthError,
    SupabaseConflictError,
    SupabaseError,
    SupabaseNotFoundError,
    SupabaseUnavailableError,
)

# Module-level shared client for connection pooling.
_shared_async_client: httpx.AsyncClient | None = None


def _get_shared_async_client() -> httpx.AsyncClient:
    global _shared_async_client
    if _shared_async_client is None:
        _shared_async_client = httpx.AsyncClient()
    return _shared_async_client


def _encode_filters(filters: Mapping[str, Any] | None) -> dict[str, str]:
    params: dict[str, str] = {}
    for column, value in (filters or {}).items():
        if value is None:
            params[column] = "is.null"
        elif isinstance(value, bool):
            params[column] = f"eq.{'true' if value else 'false'}"
        else:
            params[column] = f"eq.{value}"
    return params


class SupabaseClient:
    """Minimal async PostgREST client using the service-role key."""

    def __init__(
        self,
        *,
        supabase_url: str,
        service_role_key: str,
        schema: str = "public",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        if not supabase_url:
            raise ValueError("supabase_url is required")
        if not service_role_key:
            raise ValueError("service_role_key is required")

        self._base_url = f"{supabase_url.rstrip('/')}/rest/v1"
        self._service_role_key = service_role_key
        self._schema = schema or "public"
        self._timeout = float(timeout_seconds)
        self._client = http_client or _get_shared_async_client()

    def _headers(self, method: str, *, representation: bool = False) -> dict[str, str]:
        # Never log these headers.
        headers = {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
            "Accept-Profile": self._schema,
        }
        if method != "GET":
            headers["Content-Profile"] = self._schema
        if representation:
            headers["Prefer"] = "return=representation"
        return headers

    def _raise_for_error(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        message = resp.text or f"HTTP {resp.status_code}"
        code = details = hint = None
        try:
            payload = resp.json()
            if isinstance(payload, dict):
                message = payload.get("message") or message
                code = payload.get("code")
                details = payload.get("details")
                hint = payload.get("hint")
        except ValueError:
            pass

        err_cls: type[SupabaseError]
        if resp.status_code in (401, 403):
            err_cls = SupabaseAuthError
        elif resp.status_code == 404:
            err_cls = SupabaseNotFoundError
        elif resp.status_code == 409:
            err_cls = SupabaseConflictError
        else:
            err_cls = SupabaseError

        raise err_cls(
            status_code=resp.status_code,
            message=message,
            code=code,
            details=details,
            hint=hint,
        )

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any | None = None,
        representation: bool = False,
    ) -> Any:
        try:
            resp = await self._client.request(
                method,
                f"{self._base_url}/{table}",
                params=params,
                json=json,
                headers=self._headers(method, representation=representation),
                timeout=self._timeout,
            )
        except httpx.TransportError as exc:
            raise SupabaseUnavailableError(
                status_code=0,
                message=f"{method} {table} failed: {type(exc).__name__}",
            ) from exc

        self._raise_for_error(resp)
        if resp.status_code == 204 or not resp.content:
            return []
        payload = resp.json()
        if not isinstance(payload, list):
            raise SupabaseError(
                status_code=500,
                message=f"expected list response from {method} {table}",
            )
        return payload

    async def select(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
        *,
        columns: str = "*",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        params = _encode_filters(filters)
        params["select"] = columns
        if limit is not None:
            params["limit"] = str(int(limit))
        return await self._request("GET", table, params=params)

    async def insert(self, table: str, row: Mapping[str, Any]) -> list[dict[str, Any]]:
        return await self._request("POST", table, json=dict(row), representation=True)

    async def update(
        self,
        table: str,
        filters: Mapping[str, Any],
        data: Mapping[str, Any],
    ) -> list[dict[str, Any]]:
        return await self._request(
            "PATCH",
            table,
            params=_encode_filters(filters),
            json=dict(data),
            representation=True,
        )

    async def delete(self, table: str, filters: Mapping[str, Any]) -> list[dict[str, Any]]:
        return await self._request(
            "DELETE",
            table,
            params=_encode_filters(filters),
            representation=True,
        )
