"""Shared plumbing for the lifecycle orchestrators.

``LifecycleStores`` bundles the injected collaborators. The helpers here
translate record store failures into broker errors and count every
operation outcome.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from ..catalog import ServiceRegistry
from ..db.errors import RecordStoreError
from ..errors import BrokerError, InstanceNotFound, PersistenceError
from ..models import ServiceInstanceRecord
from ..observability.metrics import record_operation
from ..protocols import (
    BindingRepository,
    CredentialVault,
    InstanceRepository,
    ProvisionRequestRepository,
)
from ..vault import DEFAULT_CLIENT_IDENTIFIER

T = TypeVar("T")


@dataclass(frozen=True)
class LifecycleStores:
    """Collaborators shared by the instance, binding and poll orchestrators."""

    registry: ServiceRegistry
    instances: InstanceRepository
    bindings: BindingRepository
    provision_requests: ProvisionRequestRepository
    vault: CredentialVault | None = None
    credential_client_identifier: str = DEFAULT_CLIENT_IDENTIFIER


async def store_call(what: str, call: Awaitable[T]) -> T:
    """Await a record store call, reporting failures as PersistenceError."""
    try:
        return await call
    except RecordStoreError as exc:
        raise PersistenceError(f"Database error {what}: {exc}") from exc


async def load_instance(
    instances: InstanceRepository, instance_id: str,
) -> ServiceInstanceRecord:
    instance = await store_call(
        "retrieving service instance details", instances.get(instance_id),
    )
    if instance is None:
        raise InstanceNotFound(instance_id)
    return instance


def counted(operation: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Count each call of a lifecycle verb by outcome."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                result = await func(*args, **kwargs)
            except BrokerError as exc:
                record_operation(operation, exc.code)
                raise
            except Exception:
                record_operation(operation, "external-error")
                raise
            record_operation(operation, "ok")
            return result

        return wrapper

    return decorator
