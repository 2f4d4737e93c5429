"""Instance lifecycle: provision, update and deprovision.

Ordering per call:
  1. Guard on existing records (Conflict / NotFound).
  2. Resolve service and plan from the registry.
  3. Refuse before any side effect when the provider is asynchronous and the
     caller cannot accept that (AsyncRequired).
  4. Validate and merge parameters.
  5. Call the provider.
  6. Persist. A write that fails after the provider succeeded is reported
     with what is left for an operator to clean up.

Nothing is retried here; a caller retry is a fresh, guarded call.
"""

from __future__ import annotations

from ..db.errors import DuplicateRecordError, RecordStoreError
from ..errors import (
    AsyncRequired,
    InstanceAlreadyExists,
    OrphanedExternalResource,
    PersistenceError,
    ProhibitedUpdate,
    ValidationError,
)
from ..models import (
    DeprovisionResult,
    OperationOutcome,
    OperationType,
    ProvisionDetails,
    ProvisionRequestRecord,
    ProvisionResult,
    ServiceInstanceRecord,
    UpdateDetails,
    UpdateResult,
)
from ..observability.logging import get_logger
from ..observability.metrics import PARTIAL_FAILURES_TOTAL
from ..params import INVALID_USER_INPUT_MSG, is_valid_or_empty_json, raw_text
from .base import LifecycleStores, counted, load_instance, store_call

logger = get_logger(__name__)


class InstanceLifecycle:
    """Provision/update/deprovision orchestration for service instances."""

    def __init__(self, stores: LifecycleStores) -> None:
        self._stores = stores

    @counted("provision")
    async def provision(
        self,
        instance_id: str,
        details: ProvisionDetails,
        accepts_incomplete: bool,
    ) -> ProvisionResult:
        logger.info(
            "provisioning",
            instance_id=instance_id,
            service_id=details.service_id,
            plan_id=details.plan_id,
            accepts_incomplete=accepts_incomplete,
        )

        # Existence is the idempotency guard; parameters are not compared.
        exists = await store_call(
            "checking for existing instance",
            self._stores.instances.exists(instance_id),
        )
        if exists:
            raise InstanceAlreadyExists(instance_id)

        definition = self._stores.registry.resolve(details.service_id)
        plan = definition.plan_by_id(details.plan_id)
        provider = definition.provider

        provisions_async = provider.provisions_async()
        if provisions_async and not accepts_incomplete:
            raise AsyncRequired()

        if not is_valid_or_empty_json(details.raw_parameters):
            raise ValidationError(INVALID_USER_INPUT_MSG)

        variables = definition.merge_provision_parameters(instance_id, details, plan)
        provisioned = await provider.provision(variables)
        outcome = OperationOutcome.from_operation_id(provisioned.operation_id)

        record = ServiceInstanceRecord(
            id=instance_id,
            service_id=details.service_id,
            plan_id=details.plan_id,
            space_guid=details.space_guid,
            organization_guid=details.organization_guid,
        )
        record.set_details(provisioned.details)
        if outcome.is_async:
            record.track_operation(OperationType.PROVISION, outcome.operation_id)

        try:
            await self._stores.instances.create(record)
        except DuplicateRecordError as exc:
            # A concurrent provision of the same ID won the insert.
            logger.error(
                "provision_lost_insert_race",
                instance_id=instance_id,
                detail="provider resource from the losing call may be orphaned",
            )
            PARTIAL_FAILURES_TOTAL.labels(kind="orphaned-resource").inc()
            raise InstanceAlreadyExists(instance_id) from exc
        except RecordStoreError as exc:
            logger.error(
                "provision_record_write_failed",
                instance_id=instance_id,
                exc_info=True,
            )
            PARTIAL_FAILURES_TOTAL.labels(kind="orphaned-resource").inc()
            raise OrphanedExternalResource(
                f"Error saving instance details to database: {exc}. "
                f"WARNING: instance {instance_id!r} was created by the provider "
                "but is not tracked and cannot be deprovisioned through the "
                "broker. Contact your operator for cleanup."
            ) from exc

        request = ProvisionRequestRecord(
            service_instance_id=instance_id,
            request_details=raw_text(details.raw_parameters),
        )
        try:
            # Upsert: the row of an earlier instance with this ID outlives its
            # deprovision.
            await self._stores.provision_requests.save(request)
        except RecordStoreError as exc:
            raise PersistenceError(
                f"Error saving provision request details to database: {exc}. "
                "The instance is tracked but its request parameters were not "
                "recorded for audit."
            ) from exc

        return ProvisionResult(
            is_async=outcome.is_async,
            operation_id=outcome.operation_id or "",
        )

    @counted("deprovision")
    async def deprovision(
        self,
        instance_id: str,
        accepts_incomplete: bool,
    ) -> DeprovisionResult:
        logger.info(
            "deprovisioning",
            instance_id=instance_id,
            accepts_incomplete=accepts_incomplete,
        )

        instance = await load_instance(self._stores.instances, instance_id)
        definition = self._stores.registry.resolve(instance.service_id)
        provider = definition.provider

        if provider.deprovisions_async() and not accepts_incomplete:
            raise AsyncRequired()

        variables = {
            "instance_id": instance.id,
            "service_id": instance.service_id,
            "plan_id": instance.plan_id,
        }
        operation_id = await provider.deprovision(instance, variables)
        outcome = OperationOutcome.from_operation_id(operation_id)

        if not outcome.is_async:
            try:
                await self._stores.instances.delete(instance_id)
            except RecordStoreError as exc:
                raise PersistenceError(
                    f"Error deleting instance details from database: {exc}. "
                    f"WARNING: instance {instance_id!r} was deprovisioned but "
                    "its record remains. Contact your operator for cleanup."
                ) from exc
            return DeprovisionResult(is_async=False)

        # Keep the record until the poller sees the deletion finish.
        instance.track_operation(OperationType.DEPROVISION, outcome.operation_id)
        try:
            await self._stores.instances.save(instance)
        except RecordStoreError as exc:
            raise PersistenceError(
                f"Error saving instance details to database: {exc}. "
                f"WARNING: deprovision of {instance_id!r} is running as "
                f"operation {outcome.operation_id!r} but is not tracked; the "
                "record will remain. Contact your operator for cleanup."
            ) from exc

        return DeprovisionResult(is_async=True, operation_id=outcome.operation_id)

    @counted("update")
    async def update(
        self,
        instance_id: str,
        details: UpdateDetails,
        accepts_incomplete: bool,
    ) -> UpdateResult:
        logger.info(
            "updating",
            instance_id=instance_id,
            plan_id=details.plan_id,
            accepts_incomplete=accepts_incomplete,
        )

        instance = await load_instance(self._stores.instances, instance_id)
        definition = self._stores.registry.resolve(instance.service_id)
        plan = definition.plan_by_id(details.plan_id or instance.plan_id)
        provider = definition.provider

        provisions_async = provider.provisions_async()
        if provisions_async and not accepts_incomplete:
            raise AsyncRequired()

        if not is_valid_or_empty_json(details.raw_parameters):
            raise ValidationError(INVALID_USER_INPUT_MSG)

        if not definition.is_update_allowed(details, instance.plan_id):
            raise ProhibitedUpdate()

        variables = definition.merge_update_parameters(instance, details, plan)
        updated = await provider.update(instance, variables)
        outcome = OperationOutcome.from_operation_id(updated.operation_id)

        instance.plan_id = updated.plan_id or plan.id
        if updated.details:
            instance.set_details(updated.details)
        if outcome.is_async:
            instance.track_operation(OperationType.UPDATE, outcome.operation_id)

        try:
            await self._stores.instances.save(instance)
        except RecordStoreError as exc:
            logger.error(
                "update_record_write_failed",
                instance_id=instance_id,
                plan_id=instance.plan_id,
                exc_info=True,
            )
            PARTIAL_FAILURES_TOTAL.labels(kind="orphaned-resource").inc()
            raise OrphanedExternalResource(
                f"Error saving instance details to database: {exc}. "
                f"WARNING: instance {instance_id!r} was updated to plan "
                f"{instance.plan_id!r} by the provider but the record still "
                "shows the old plan. Contact your operator for cleanup."
            ) from exc

        request = ProvisionRequestRecord(
            service_instance_id=instance_id,
            request_details=raw_text(details.raw_parameters),
        )
        await store_call(
            "saving provision request details",
            self._stores.provision_requests.save(request),
        )

        return UpdateResult(
            is_async=outcome.is_async,
            operation_id=outcome.operation_id or "",
        )
