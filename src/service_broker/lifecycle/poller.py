"""Last-operation polling for asynchronous instance operations.

State reported per poll:
  provider error, transient  -> in progress
  provider error, terminal   -> failed
  not done                   -> in progress
  done                       -> completion action, then succeeded

The completion action depends on the tracked operation type. A failure
inside it does not turn a finished operation into a failed one: the poll
still reports success and flags the record for reconciliation.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Awaitable, Callable, Mapping

from ..errors import AsyncRequired, InstanceNotFound
from ..models import (
    LastOperation,
    LastOperationState,
    OperationOutcome,
    OperationType,
    ServiceInstanceRecord,
)
from ..observability.logging import get_logger
from ..observability.metrics import LAST_OPERATION_POLLS_TOTAL, PARTIAL_FAILURES_TOTAL
from ..providers import ServiceProvider
from .base import LifecycleStores, counted, load_instance
from .classify import classify_poll_error, is_transient

logger = get_logger(__name__)

CompletionAction = Callable[
    [LifecycleStores, ServiceProvider, ServiceInstanceRecord], Awaitable[None]
]


async def _finish_deprovision(
    stores: LifecycleStores,
    provider: ServiceProvider,
    instance: ServiceInstanceRecord,
) -> None:
    await stores.instances.delete(instance.id)


async def _refresh_instance(
    stores: LifecycleStores,
    provider: ServiceProvider,
    instance: ServiceInstanceRecord,
) -> None:
    # Re-read so fields written since the poll started are not clobbered.
    current = await stores.instances.get(instance.id)
    if current is None:
        raise InstanceNotFound(instance.id)
    await provider.refresh_instance_detail(current)
    current.clear_operation()
    await stores.instances.save(current)


COMPLETION_ACTIONS: Mapping[OperationType, CompletionAction] = MappingProxyType(
    {
        OperationType.NONE: _refresh_instance,
        OperationType.PROVISION: _refresh_instance,
        OperationType.UPDATE: _refresh_instance,
        OperationType.DEPROVISION: _finish_deprovision,
    }
)

_missing_actions = set(OperationType) - set(COMPLETION_ACTIONS)
if _missing_actions:
    raise RuntimeError(
        f"No completion action for operation types: {sorted(t.name for t in _missing_actions)}"
    )


class OperationPoller:
    """Reports and finalizes the outstanding operation of an instance."""

    def __init__(self, stores: LifecycleStores) -> None:
        self._stores = stores

    @counted("last_operation")
    async def poll(self, instance_id: str) -> LastOperation:
        result = await self._poll(instance_id)
        LAST_OPERATION_POLLS_TOTAL.labels(state=result.state.value).inc()
        return result

    async def _poll(self, instance_id: str) -> LastOperation:
        instance = await load_instance(self._stores.instances, instance_id)
        definition = self._stores.registry.resolve(instance.service_id)
        provider = definition.provider

        if not (provider.provisions_async() or provider.deprovisions_async()):
            raise AsyncRequired(
                "This service plan does not support asynchronous operations."
            )

        operation_type = instance.operation_type
        logger.info(
            "polling_last_operation",
            instance_id=instance_id,
            operation_type=operation_type.value,
            operation_id=instance.operation_id,
        )

        try:
            done = await provider.poll_status(instance)
        except Exception as exc:
            return self._poll_error(
                instance_id, classify_poll_error(exc, instance.operation_id),
            )

        if not done:
            return LastOperation(state=LastOperationState.IN_PROGRESS)

        action = COMPLETION_ACTIONS[operation_type]
        try:
            await action(self._stores, provider, instance)
        except Exception as exc:
            logger.error(
                "poll_completion_failed",
                instance_id=instance_id,
                operation_type=operation_type.value,
                transient=is_transient(exc),
                exc_info=True,
            )
            PARTIAL_FAILURES_TOTAL.labels(kind="completion-action-failed").inc()
            return LastOperation(
                state=LastOperationState.SUCCEEDED,
                description=(
                    f"Operation {operation_type.value or '(none)'} finished but "
                    f"the broker could not record it: {exc}. Instance "
                    f"{instance_id!r} needs reconciliation by an operator."
                ),
                needs_reconciliation=True,
            )

        return LastOperation(state=LastOperationState.SUCCEEDED)

    def _poll_error(self, instance_id: str, outcome: OperationOutcome) -> LastOperation:
        cause = outcome.cause
        if outcome.is_async:
            logger.warning(
                "poll_transient_error",
                instance_id=instance_id,
                error_type=type(cause).__name__,
                error=str(cause),
            )
            return LastOperation(
                state=LastOperationState.IN_PROGRESS,
                description=f"Provider temporarily unavailable: {cause}",
            )
        logger.warning(
            "poll_failed",
            instance_id=instance_id,
            error_type=type(cause).__name__,
            error=str(cause),
        )
        return LastOperation(state=LastOperationState.FAILED, description=str(cause))
