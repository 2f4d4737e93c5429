"""Supabase-backed service instance repository.

Implements the InstanceRepository protocol against the
service_instance_details table. ``id`` is the primary key, so a racing
second create surfaces as a 409 and is reported as DuplicateRecordError.
"""

from __future__ import annotations

from ..models import ServiceInstanceRecord
from .errors import DuplicateRecordError, RecordStoreError, SupabaseConflictError
from .supabase_client import SupabaseClient

TABLE = "service_instance_details"


class SupabaseInstanceRepository:
    """Satisfies ``InstanceRepository`` from ``protocols.py``."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def exists(self, instance_id: str) -> bool:
        rows = await self._client.select(
            TABLE, {"id": instance_id}, columns="id", limit=1,
        )
        return bool(rows)

    async def get(self, instance_id: str) -> ServiceInstanceRecord | None:
        rows = await self._client.select(TABLE, {"id": instance_id}, limit=1)
        return ServiceInstanceRecord.from_row(rows[0]) if rows else None

    async def create(self, record: ServiceInstanceRecord) -> None:
        try:
            await self._client.insert(TABLE, record.to_row())
        except SupabaseConflictError as exc:
            raise DuplicateRecordError(TABLE, record.id) from exc

    async def save(self, record: ServiceInstanceRecord) -> None:
        row = record.to_row()
        row.pop("id")
        rows = await self._client.update(TABLE, {"id": record.id}, row)
        if not rows:
            raise RecordStoreError(f"{TABLE}: no row with id {record.id!r} to update")

    async def delete(self, instance_id: str) -> None:
        await self._client.delete(TABLE, {"id": instance_id})
