"""Shared fixtures for service broker tests."""

from __future__ import annotations

import logging

import pytest
import structlog
from prometheus_client import REGISTRY

from service_broker.catalog import ServicePlan, ServiceRegistry, make_definition
from service_broker.db.errors import RecordStoreError
from service_broker.inmemory import (
    InMemoryBindingRepository,
    InMemoryCredentialVault,
    InMemoryInstanceRepository,
    InMemoryProvisionRequestRepository,
)
from service_broker.lifecycle import LifecycleStores
from service_broker.models import BindDetails, ProvisionDetails, UpdateDetails
from service_broker.providers import InMemoryServiceProvider

SERVICE_ID = "svc-postgres"
SERVICE_NAME = "csb-postgres"
SMALL_PLAN = "plan-small"
LARGE_PLAN = "plan-large"
APP_GUID = "app-1234"


def make_registry(provider, **definition_kwargs) -> ServiceRegistry:
    definition_kwargs.setdefault("plan_updateable", True)
    definition_kwargs.setdefault("prohibit_update_fields", frozenset({"region"}))
    definition = make_definition(
        id=SERVICE_ID,
        name=SERVICE_NAME,
        provider=provider,
        description="Managed PostgreSQL",
        plans=[
            ServicePlan(id=SMALL_PLAN, name="small", properties={"storage_gb": 5}),
            ServicePlan(id=LARGE_PLAN, name="large", properties={"storage_gb": 50}),
        ],
        provision_defaults={"region": "us-east-1"},
        **definition_kwargs,
    )
    return ServiceRegistry([definition])


def provision_details(**overrides) -> ProvisionDetails:
    values = {
        "service_id": SERVICE_ID,
        "plan_id": SMALL_PLAN,
        "space_guid": "space-1",
        "organization_guid": "org-1",
        "raw_parameters": None,
    }
    values.update(overrides)
    return ProvisionDetails(**values)


def update_details(**overrides) -> UpdateDetails:
    values = {"service_id": SERVICE_ID, "plan_id": SMALL_PLAN, "raw_parameters": None}
    values.update(overrides)
    return UpdateDetails(**values)


def bind_details(**overrides) -> BindDetails:
    values = {
        "service_id": SERVICE_ID,
        "plan_id": SMALL_PLAN,
        "app_guid": APP_GUID,
        "raw_parameters": None,
    }
    values.update(overrides)
    return BindDetails(**values)


@pytest.fixture
def provider():
    return InMemoryServiceProvider()


@pytest.fixture
def registry(provider):
    return make_registry(provider)


@pytest.fixture
def instances():
    return InMemoryInstanceRepository()


@pytest.fixture
def bindings():
    return InMemoryBindingRepository()


@pytest.fixture
def provision_requests():
    return InMemoryProvisionRequestRepository()


@pytest.fixture
def vault():
    return InMemoryCredentialVault()


@pytest.fixture
def stores(registry, instances, bindings, provision_requests):
    return LifecycleStores(
        registry=registry,
        instances=instances,
        bindings=bindings,
        provision_requests=provision_requests,
    )


@pytest.fixture
def vault_stores(stores, vault):
    return LifecycleStores(
        registry=stores.registry,
        instances=stores.instances,
        bindings=stores.bindings,
        provision_requests=stores.provision_requests,
        vault=vault,
    )


class FlakyInstanceRepository(InMemoryInstanceRepository):
    """In-memory instance store that fails the named operations."""

    def __init__(self, *, fail_on=()) -> None:
        super().__init__()
        self.fail_on = set(fail_on)

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RecordStoreError(f"{operation} failed: connection reset")

    async def get(self, instance_id):
        self._check("get")
        return await super().get(instance_id)

    async def create(self, record):
        self._check("create")
        await super().create(record)

    async def save(self, record):
        self._check("save")
        await super().save(record)

    async def delete(self, instance_id):
        self._check("delete")
        await super().delete(instance_id)


class FlakyBindingRepository(InMemoryBindingRepository):
    def __init__(self, *, fail_on=()) -> None:
        super().__init__()
        self.fail_on = set(fail_on)

    async def create(self, record):
        if "create" in self.fail_on:
            raise RecordStoreError("create failed: connection reset")
        await super().create(record)

    async def delete(self, record):
        if "delete" in self.fail_on:
            raise RecordStoreError("delete failed: connection reset")
        await super().delete(record)


def sample_value(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.fixture
def restore_logging():
    """Undo configure_logging() so later tests see default structlog."""
    root = logging.getLogger()
    level = root.level
    httpx_level = logging.getLogger("httpx").level
    yield
    structlog.reset_defaults()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(httpx_level)
