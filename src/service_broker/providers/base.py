"""Resource provider capability contracts.

A concrete provider implements all three capabilities and is attached to
the ``ServiceDefinition`` it serves. The orchestrators reach providers only
through the registry, never by inspecting their type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from ..models import ServiceBindingRecord, ServiceInstanceRecord


@dataclass
class ProvisionedInstance:
    """What a provider reports after provision or update.

    ``operation_id`` is set when the work continues asynchronously and must
    be polled to completion.
    """

    details: dict[str, Any] = field(default_factory=dict)
    operation_id: str | None = None
    plan_id: str | None = None


@runtime_checkable
class Provisioner(Protocol):
    """Instance create/update/delete."""

    def provisions_async(self) -> bool: ...
    def deprovisions_async(self) -> bool: ...

    async def provision(self, variables: dict[str, Any]) -> ProvisionedInstance: ...

    async def update(
        self, instance: ServiceInstanceRecord, variables: dict[str, Any],
    ) -> ProvisionedInstance: ...

    async def deprovision(
        self, instance: ServiceInstanceRecord, variables: dict[str, Any],
    ) -> str | None:
        """Return an operation ID when deletion continues asynchronously."""
        ...


@runtime_checkable
class Binder(Protocol):
    """Credential issue and revocation."""

    async def bind(self, variables: dict[str, Any]) -> dict[str, Any]: ...

    async def build_caller_credentials(
        self,
        binding: ServiceBindingRecord,
        instance: ServiceInstanceRecord,
    ) -> dict[str, Any]: ...

    async def unbind(
        self,
        instance: ServiceInstanceRecord,
        binding: ServiceBindingRecord,
    ) -> None: ...


@runtime_checkable
class StatusPoller(Protocol):
    """Status of the operation tracked on an instance."""

    async def poll_status(self, instance: ServiceInstanceRecord) -> bool:
        """Return True when the tracked operation has finished."""
        ...

    async def refresh_instance_detail(self, instance: ServiceInstanceRecord) -> None:
        """Update ``instance`` detail fields in place (addresses, links, ...)."""
        ...


@runtime_checkable
class ServiceProvider(Provisioner, Binder, StatusPoller, Protocol):
    """Full provider contract expected by the broker."""
