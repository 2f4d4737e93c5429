"""Supabase-backed service binding repository.

Implements the BindingRepository protocol against the
service_binding_credentials table, unique on
(service_instance_id, binding_id).
"""

from __future__ import annotations

from ..models import ServiceBindingRecord
from .errors import DuplicateRecordError, SupabaseConflictError
from .supabase_client import SupabaseClient

TABLE = "service_binding_credentials"


def _key(instance_id: str, binding_id: str) -> dict[str, str]:
    return {"service_instance_id": instance_id, "binding_id": binding_id}


class SupabaseBindingRepository:
    """Satisfies ``BindingRepository`` from ``protocols.py``."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def exists(self, instance_id: str, binding_id: str) -> bool:
        rows = await self._client.select(
            TABLE, _key(instance_id, binding_id), columns="binding_id", limit=1,
        )
        return bool(rows)

    async def get(self, instance_id: str, binding_id: str) -> ServiceBindingRecord | None:
        rows = await self._client.select(TABLE, _key(instance_id, binding_id), limit=1)
        return ServiceBindingRecord.from_row(rows[0]) if rows else None

    async def create(self, record: ServiceBindingRecord) -> None:
        try:
            await self._client.insert(TABLE, record.to_row())
        except SupabaseConflictError as exc:
            raise DuplicateRecordError(
                TABLE, f"{record.service_instance_id}/{record.binding_id}",
            ) from exc

    async def delete(self, record: ServiceBindingRecord) -> None:
        await self._client.delete(
            TABLE, _key(record.service_instance_id, record.binding_id),
        )
