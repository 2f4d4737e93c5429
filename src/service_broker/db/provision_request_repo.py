"""Supabase-backed provision request (audit) repository.

One row per instance in provision_request_details holding the raw
parameters of the latest provision or update call.
"""

from __future__ import annotations

from ..models import ProvisionRequestRecord
from .errors import DuplicateRecordError, SupabaseConflictError
from .supabase_client import SupabaseClient

TABLE = "provision_request_details"


class SupabaseProvisionRequestRepository:
    """Satisfies ``ProvisionRequestRepository`` from ``protocols.py``."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def get(self, instance_id: str) -> ProvisionRequestRecord | None:
        rows = await self._client.select(
            TABLE, {"service_instance_id": instance_id}, limit=1,
        )
        return ProvisionRequestRecord.from_row(rows[0]) if rows else None

    async def create(self, record: ProvisionRequestRecord) -> None:
        try:
            await self._client.insert(TABLE, record.to_row())
        except SupabaseConflictError as exc:
            raise DuplicateRecordError(TABLE, record.service_instance_id) from exc

    async def save(self, record: ProvisionRequestRecord) -> None:
        """Overwrite the row, inserting it when it was never created."""
        rows = await self._client.update(
            TABLE,
            {"service_instance_id": record.service_instance_id},
            {"request_details": record.request_details},
        )
        if not rows:
            await self._client.insert(TABLE, record.to_row())
