"""In-memory reference provider for local development and tests."""

from __future__ import annotations

import uuid
from typing import Any

from ..models import ServiceBindingRecord, ServiceInstanceRecord
from .base import ProvisionedInstance


class InMemoryServiceProvider:
    """Provider that keeps resources in dicts and records every call.

    ``provision_async`` / ``deprovision_async`` switch between returning a
    pending operation ID and completing inline. ``poll_results`` is consumed
    one entry per poll: ``True``/``False`` for done/not done, or an exception
    instance to raise. When it is empty, polls report done.
    """

    def __init__(
        self,
        *,
        provision_async: bool = False,
        deprovision_async: bool = False,
        provision_error: Exception | None = None,
        update_error: Exception | None = None,
        deprovision_error: Exception | None = None,
        bind_error: Exception | None = None,
        unbind_error: Exception | None = None,
        refresh_error: Exception | None = None,
        poll_results: list[bool | Exception] | None = None,
    ) -> None:
        self.provision_async = provision_async
        self.deprovision_async = deprovision_async
        self.provision_error = provision_error
        self.update_error = update_error
        self.deprovision_error = deprovision_error
        self.bind_error = bind_error
        self.unbind_error = unbind_error
        self.refresh_error = refresh_error
        self.poll_results: list[bool | Exception] = list(poll_results or [])
        self.calls: list[tuple[str, str]] = []
        self.resources: dict[str, dict[str, Any]] = {}
        self.bindings: dict[tuple[str, str], dict[str, Any]] = {}

    def provisions_async(self) -> bool:
        return self.provision_async

    def deprovisions_async(self) -> bool:
        return self.deprovision_async

    async def provision(self, variables: dict[str, Any]) -> ProvisionedInstance:
        instance_id = variables.get("instance_id", "")
        self.calls.append(("provision", instance_id))
        if self.provision_error is not None:
            raise self.provision_error

        details = {"name": f"res-{instance_id}", "parameters": dict(variables)}
        self.resources[instance_id] = details
        operation_id = f"op-{uuid.uuid4().hex[:8]}" if self.provision_async else None
        return ProvisionedInstance(details=details, operation_id=operation_id)

    async def update(
        self, instance: ServiceInstanceRecord, variables: dict[str, Any],
    ) -> ProvisionedInstance:
        self.calls.append(("update", instance.id))
        if self.update_error is not None:
            raise self.update_error

        details = {**instance.details(), "parameters": dict(variables)}
        self.resources[instance.id] = details
        operation_id = f"op-{uuid.uuid4().hex[:8]}" if self.provision_async else None
        return ProvisionedInstance(
            details=details,
            operation_id=operation_id,
            plan_id=variables.get("plan_id"),
        )

    async def deprovision(
        self, instance: ServiceInstanceRecord, variables: dict[str, Any],
    ) -> str | None:
        self.calls.append(("deprovision", instance.id))
        if self.deprovision_error is not None:
            raise self.deprovision_error

        if self.deprovision_async:
            return f"op-{uuid.uuid4().hex[:8]}"
        self.resources.pop(instance.id, None)
        return None

    async def bind(self, variables: dict[str, Any]) -> dict[str, Any]:
        instance_id = variables.get("instance_id", "")
        binding_id = variables.get("binding_id", "")
        self.calls.append(("bind", binding_id))
        if self.bind_error is not None:
            raise self.bind_error

        creds = {"username": f"u-{binding_id}", "password": uuid.uuid4().hex}
        self.bindings[(instance_id, binding_id)] = creds
        return creds

    async def build_caller_credentials(
        self,
        binding: ServiceBindingRecord,
        instance: ServiceInstanceRecord,
    ) -> dict[str, Any]:
        self.calls.append(("build_caller_credentials", binding.binding_id))
        return {**instance.details(), **binding.details()}

    async def unbind(
        self,
        instance: ServiceInstanceRecord,
        binding: ServiceBindingRecord,
    ) -> None:
        self.calls.append(("unbind", binding.binding_id))
        if self.unbind_error is not None:
            raise self.unbind_error
        self.bindings.pop((instance.id, binding.binding_id), None)

    async def poll_status(self, instance: ServiceInstanceRecord) -> bool:
        self.calls.append(("poll_status", instance.id))
        if not self.poll_results:
            return True
        result = self.poll_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def refresh_instance_detail(self, instance: ServiceInstanceRecord) -> None:
        self.calls.append(("refresh_instance_detail", instance.id))
        if self.refresh_error is not None:
            raise self.refresh_error
        instance.set_details({**instance.details(), "ready": True})

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]
