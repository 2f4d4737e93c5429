"""In-memory record stores and the operation-tracking fields of records."""

from __future__ import annotations

import pytest

from service_broker.db.errors import DuplicateRecordError, RecordStoreError
from service_broker.inmemory import InMemoryProvisionRequestRepository
from service_broker.models import (
    OperationOutcome,
    OperationType,
    OutcomeKind,
    ProvisionRequestRecord,
    ServiceBindingRecord,
    ServiceInstanceRecord,
)
from service_broker.protocols import (
    BindingRepository,
    CredentialVault,
    InstanceRepository,
    ProvisionRequestRepository,
)


def _instance(instance_id="i-1") -> ServiceInstanceRecord:
    return ServiceInstanceRecord(id=instance_id, service_id="svc", plan_id="p")


class TestInstanceRecord:
    def test_operation_tracking(self):
        record = _instance()
        assert not record.has_pending_operation

        record.track_operation(OperationType.DEPROVISION, "op-9")
        assert record.has_pending_operation
        assert record.to_row()["operation_type"] == "deprovision"

        record.clear_operation()
        assert record.operation_type is OperationType.NONE
        assert record.operation_id is None

    def test_empty_row_values_normalize(self):
        record = ServiceInstanceRecord.from_row({
            "id": "i-1", "service_id": "s", "plan_id": "p",
            "other_details": None, "operation_id": "", "operation_type": None,
        })
        assert record.details() == {}
        assert record.operation_id is None
        assert record.operation_type is OperationType.NONE


class TestOperationOutcome:
    def test_token_means_pending(self):
        outcome = OperationOutcome.from_operation_id("op-1")
        assert outcome.kind is OutcomeKind.PENDING
        assert outcome.is_async

    @pytest.mark.parametrize("token", [None, ""])
    def test_no_token_means_synchronous(self, token):
        outcome = OperationOutcome.from_operation_id(token)
        assert outcome.kind is OutcomeKind.SYNCHRONOUS
        assert not outcome.is_async


class TestInstanceRepository:
    @pytest.mark.asyncio
    async def test_duplicate_create(self, instances):
        await instances.create(_instance())
        with pytest.raises(DuplicateRecordError):
            await instances.create(_instance())

    @pytest.mark.asyncio
    async def test_returns_copies(self, instances):
        await instances.create(_instance())
        record = await instances.get("i-1")
        record.plan_id = "changed"
        assert (await instances.get("i-1")).plan_id == "p"

    @pytest.mark.asyncio
    async def test_save_missing_row_raises(self, instances):
        with pytest.raises(RecordStoreError):
            await instances.save(_instance())

    def test_empty_store_is_truthy(self, instances):
        # Empty stores must survive `x or default` wiring.
        assert instances


class TestBindingRepository:
    @pytest.mark.asyncio
    async def test_composite_key_uniqueness(self, bindings):
        record = ServiceBindingRecord(service_instance_id="i-1", binding_id="b-1", service_id="s")
        await bindings.create(record)
        await bindings.create(
            ServiceBindingRecord(service_instance_id="i-2", binding_id="b-1", service_id="s"),
        )
        with pytest.raises(DuplicateRecordError):
            await bindings.create(record)


class TestProvisionRequestRepository:
    @pytest.mark.asyncio
    async def test_save_upserts(self):
        repo = InMemoryProvisionRequestRepository()
        await repo.save(ProvisionRequestRecord(service_instance_id="i-1", request_details='{"a": 1}'))
        await repo.save(ProvisionRequestRecord(service_instance_id="i-1", request_details='{"a": 2}'))
        assert (await repo.get("i-1")).request_details == '{"a": 2}'


class TestProtocolConformance:
    def test_inmemory_stores_satisfy_protocols(
        self, instances, bindings, provision_requests, vault,
    ):
        assert isinstance(instances, InstanceRepository)
        assert isinstance(bindings, BindingRepository)
        assert isinstance(provision_requests, ProvisionRequestRepository)
        assert isinstance(vault, CredentialVault)
