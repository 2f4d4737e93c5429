"""In-memory record store and vault implementations.

These are used when ENVIRONMENT=local and in tests. They satisfy the
protocol interfaces, mirror the database unique keys, and hand out copies so
callers only change stored state through ``save``.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from .db.errors import DuplicateRecordError, RecordStoreError
from .models import (
    ProvisionRequestRecord,
    ServiceBindingRecord,
    ServiceInstanceRecord,
)


class InMemoryInstanceRepository:
    def __init__(self) -> None:
        self._rows: dict[str, ServiceInstanceRecord] = {}

    async def exists(self, instance_id: str) -> bool:
        return instance_id in self._rows

    async def get(self, instance_id: str) -> ServiceInstanceRecord | None:
        row = self._rows.get(instance_id)
        return replace(row) if row is not None else None

    async def create(self, record: ServiceInstanceRecord) -> None:
        if record.id in self._rows:
            raise DuplicateRecordError("service_instance_details", record.id)
        self._rows[record.id] = replace(record)

    async def save(self, record: ServiceInstanceRecord) -> None:
        if record.id not in self._rows:
            raise RecordStoreError(
                f"service_instance_details: no row with id {record.id!r} to update"
            )
        self._rows[record.id] = replace(record)

    async def delete(self, instance_id: str) -> None:
        self._rows.pop(instance_id, None)


class InMemoryBindingRepository:
    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], ServiceBindingRecord] = {}

    async def exists(self, instance_id: str, binding_id: str) -> bool:
        return (instance_id, binding_id) in self._rows

    async def get(self, instance_id: str, binding_id: str) -> ServiceBindingRecord | None:
        row = self._rows.get((instance_id, binding_id))
        return replace(row) if row is not None else None

    async def create(self, record: ServiceBindingRecord) -> None:
        key = (record.service_instance_id, record.binding_id)
        if key in self._rows:
            raise DuplicateRecordError(
                "service_binding_credentials", "/".join(key),
            )
        self._rows[key] = replace(record)

    async def delete(self, record: ServiceBindingRecord) -> None:
        self._rows.pop((record.service_instance_id, record.binding_id), None)


class InMemoryProvisionRequestRepository:
    def __init__(self) -> None:
        self._rows: dict[str, ProvisionRequestRecord] = {}

    async def get(self, instance_id: str) -> ProvisionRequestRecord | None:
        row = self._rows.get(instance_id)
        return replace(row) if row is not None else None

    async def create(self, record: ProvisionRequestRecord) -> None:
        if record.service_instance_id in self._rows:
            raise DuplicateRecordError(
                "provision_request_details", record.service_instance_id,
            )
        self._rows[record.service_instance_id] = replace(record)

    async def save(self, record: ProvisionRequestRecord) -> None:
        self._rows[record.service_instance_id] = replace(record)


class InMemoryCredentialVault:
    """Test vault that tracks calls and can be told to fail per step."""

    def __init__(
        self,
        *,
        put_fails: bool = False,
        add_permission_fails: bool = False,
        delete_permission_fails: bool = False,
        delete_fails: bool = False,
    ) -> None:
        self.put_fails = put_fails
        self.add_permission_fails = add_permission_fails
        self.delete_permission_fails = delete_permission_fails
        self.delete_fails = delete_fails
        self.credentials: dict[str, dict[str, Any]] = {}
        self.permissions: dict[str, list[tuple[str, list[str]]]] = {}
        self.calls: list[tuple[str, str]] = []

    async def put(self, name: str, value: dict[str, Any]) -> str:
        self.calls.append(("put", name))
        if self.put_fails:
            raise RuntimeError("vault put failed")
        self.credentials[name] = dict(value)
        return name

    async def add_permission(self, name: str, actor: str, operations: list[str]) -> None:
        self.calls.append(("add_permission", name))
        if self.add_permission_fails:
            raise RuntimeError("vault add_permission failed")
        self.permissions.setdefault(name, []).append((actor, list(operations)))

    async def delete_permission(self, name: str) -> None:
        self.calls.append(("delete_permission", name))
        if self.delete_permission_fails:
            raise RuntimeError("vault delete_permission failed")
        self.permissions.pop(name, None)

    async def delete(self, name: str) -> None:
        self.calls.append(("delete", name))
        if self.delete_fails:
            raise RuntimeError("vault delete failed")
        self.credentials.pop(name, None)
