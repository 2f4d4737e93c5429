"""Service broker facade.

One object exposing every lifecycle verb, for the protocol layer to call.
It holds no per-request state; all state lives in the injected stores.

Usage::

    from service_broker import ServiceBroker, ServiceRegistry
    from service_broker.lifecycle import LifecycleStores

    broker = ServiceBroker(LifecycleStores(registry=..., instances=..., ...))
    result = await broker.provision("i-1", details, accepts_incomplete=True)
"""

from __future__ import annotations

from typing import Any

from .errors import AsyncRequired, UnsupportedOperation
from .lifecycle import (
    BindingLifecycle,
    InstanceLifecycle,
    LifecycleStores,
    OperationPoller,
)
from .models import (
    BindDetails,
    Binding,
    DeprovisionResult,
    LastOperation,
    ProvisionDetails,
    ProvisionResult,
    UpdateDetails,
    UpdateResult,
)


class ServiceBroker:
    def __init__(self, stores: LifecycleStores) -> None:
        self.stores = stores
        self._instances = InstanceLifecycle(stores)
        self._bindings = BindingLifecycle(stores)
        self._poller = OperationPoller(stores)

    def services(self) -> list[dict[str, Any]]:
        """Catalog entries of the enabled services."""
        return [d.catalog_entry() for d in self.stores.registry.enabled_services()]

    # ── Instances ──────────────────────────────────────────────────

    async def provision(
        self,
        instance_id: str,
        details: ProvisionDetails,
        accepts_incomplete: bool = False,
    ) -> ProvisionResult:
        return await self._instances.provision(instance_id, details, accepts_incomplete)

    async def deprovision(
        self,
        instance_id: str,
        accepts_incomplete: bool = False,
    ) -> DeprovisionResult:
        return await self._instances.deprovision(instance_id, accepts_incomplete)

    async def update(
        self,
        instance_id: str,
        details: UpdateDetails,
        accepts_incomplete: bool = False,
    ) -> UpdateResult:
        return await self._instances.update(instance_id, details, accepts_incomplete)

    async def last_operation(self, instance_id: str) -> LastOperation:
        return await self._poller.poll(instance_id)

    async def get_instance(self, instance_id: str) -> Any:
        raise UnsupportedOperation(
            "the service_instances GET endpoint is unsupported"
        )

    # ── Bindings ───────────────────────────────────────────────────

    async def bind(
        self,
        instance_id: str,
        binding_id: str,
        details: BindDetails,
    ) -> Binding:
        return await self._bindings.bind(instance_id, binding_id, details)

    async def unbind(
        self,
        instance_id: str,
        binding_id: str,
        service_id: str,
    ) -> None:
        await self._bindings.unbind(instance_id, binding_id, service_id)

    async def get_binding(self, instance_id: str, binding_id: str) -> Any:
        raise UnsupportedOperation(
            "the service_bindings GET endpoint is unsupported"
        )

    async def last_binding_operation(
        self, instance_id: str, binding_id: str,
    ) -> LastOperation:
        # Bindings always complete synchronously.
        raise AsyncRequired("last binding operation is not supported; bindings are synchronous")
