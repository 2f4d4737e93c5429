"""Record store and credential vault protocol interfaces.

These protocols define the contracts that concrete implementations (InMemory
for local dev and tests, Supabase for non-local) must satisfy. The broker
factory accepts any implementation that matches them.

Store contract:
  - ``get_*`` returns ``None`` when the row is absent.
  - ``create_*`` raises ``DuplicateRecordError`` on a uniqueness violation.
  - Transport or write failures raise ``RecordStoreError``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import (
    ProvisionRequestRecord,
    ServiceBindingRecord,
    ServiceInstanceRecord,
)


@runtime_checkable
class InstanceRepository(Protocol):
    """service_instance_details CRUD, keyed by instance ID."""

    async def exists(self, instance_id: str) -> bool: ...
    async def get(self, instance_id: str) -> ServiceInstanceRecord | None: ...
    async def create(self, record: ServiceInstanceRecord) -> None: ...
    async def save(self, record: ServiceInstanceRecord) -> None: ...
    async def delete(self, instance_id: str) -> None: ...


@runtime_checkable
class BindingRepository(Protocol):
    """service_binding_credentials CRUD, keyed by (instance ID, binding ID)."""

    async def exists(self, instance_id: str, binding_id: str) -> bool: ...
    async def get(self, instance_id: str, binding_id: str) -> ServiceBindingRecord | None: ...
    async def create(self, record: ServiceBindingRecord) -> None: ...
    async def delete(self, record: ServiceBindingRecord) -> None: ...


@runtime_checkable
class ProvisionRequestRepository(Protocol):
    """provision_request_details, keyed by instance ID."""

    async def get(self, instance_id: str) -> ProvisionRequestRecord | None: ...
    async def create(self, record: ProvisionRequestRecord) -> None: ...
    async def save(self, record: ProvisionRequestRecord) -> None: ...


@runtime_checkable
class CredentialVault(Protocol):
    """External credential store with per-credential read grants."""

    async def put(self, name: str, value: dict[str, Any]) -> str: ...
    async def add_permission(self, name: str, actor: str, operations: list[str]) -> None: ...
    async def delete_permission(self, name: str) -> None: ...
    async def delete(self, name: str) -> None: ...
