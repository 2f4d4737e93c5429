"""Broker factory.

create_broker() is the single entry point for wiring a ServiceBroker from
settings. It picks the record store and vault implementations and accepts
overrides for any of them.

Usage:
    # Local development (in-memory stores, no vault)
    broker = create_broker(BrokerSettings(), [definition])

    # Non-local (Supabase stores, CredHub when configured)
    broker = create_broker(BrokerSettings.from_env(), [definition])

    # Process entry point that owns logging
    broker = create_broker(BrokerSettings.from_env(), [definition], configure_logs=True)

    # Testing (full DI control)
    broker = create_broker(settings, registry, instances=repo, vault=vault)
"""

from __future__ import annotations

from typing import Iterable

from .broker import ServiceBroker
from .catalog import ServiceDefinition, ServiceRegistry
from .db import (
    SupabaseBindingRepository,
    SupabaseClient,
    SupabaseInstanceRepository,
    SupabaseProvisionRequestRepository,
)
from .inmemory import (
    InMemoryBindingRepository,
    InMemoryInstanceRepository,
    InMemoryProvisionRequestRepository,
)
from .lifecycle import LifecycleStores
from .observability.logging import configure_logging, get_logger
from .protocols import (
    BindingRepository,
    CredentialVault,
    InstanceRepository,
    ProvisionRequestRepository,
)
from .settings import BrokerSettings
from .vault import CredHubVault

logger = get_logger(__name__)


def _build_inmemory_stores() -> tuple[
    InstanceRepository, BindingRepository, ProvisionRequestRepository
]:
    return (
        InMemoryInstanceRepository(),
        InMemoryBindingRepository(),
        InMemoryProvisionRequestRepository(),
    )


def _build_supabase_stores(settings: BrokerSettings) -> tuple[
    InstanceRepository, BindingRepository, ProvisionRequestRepository
]:
    client = SupabaseClient(
        supabase_url=settings.supabase_url,
        service_role_key=settings.supabase_service_role_key,
        schema=settings.supabase_schema,
    )
    return (
        SupabaseInstanceRepository(client),
        SupabaseBindingRepository(client),
        SupabaseProvisionRequestRepository(client),
    )


def _build_vault(settings: BrokerSettings) -> CredentialVault | None:
    if not settings.vault_enabled:
        return None
    return CredHubVault(
        credhub_url=settings.credhub_url,
        uaa_url=settings.uaa_url,
        client_id=settings.credhub_client_id,
        client_secret=settings.credhub_client_secret,
    )


def create_broker(
    settings: BrokerSettings | None = None,
    registry: ServiceRegistry | Iterable[ServiceDefinition] = (),
    *,
    instances: InstanceRepository | None = None,
    bindings: BindingRepository | None = None,
    provision_requests: ProvisionRequestRepository | None = None,
    vault: CredentialVault | None = None,
    configure_logs: bool = False,
) -> ServiceBroker:
    """Create a configured ServiceBroker.

    Args:
        settings: Broker settings. Defaults to local-dev settings.
        registry: A ready registry, or definitions to build one from using
            ``settings.enabled_services`` as the catalog filter.
        instances..vault: Store/vault overrides. When None, local mode uses
            in-memory stores and other environments use Supabase. The vault
            defaults to CredHub when ``credhub_url`` is set.
        configure_logs: Install the broker log handler from
            ``settings.log_level`` and ``settings.log_json``. Leave False
            when the host application owns logging configuration.

    Raises:
        ValueError: If settings validation fails.
    """
    if settings is None:
        settings = BrokerSettings()

    errors = settings.validate()
    if errors:
        raise ValueError(
            "Broker settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    if configure_logs:
        configure_logging(settings.log_level, json_output=settings.log_json)

    if not isinstance(registry, ServiceRegistry):
        registry = ServiceRegistry(registry, enabled=settings.enabled_services)

    if instances is None or bindings is None or provision_requests is None:
        if settings.is_local:
            defaults = _build_inmemory_stores()
        else:
            defaults = _build_supabase_stores(settings)
        instances = instances if instances is not None else defaults[0]
        bindings = bindings if bindings is not None else defaults[1]
        provision_requests = (
            provision_requests if provision_requests is not None else defaults[2]
        )

    if vault is None:
        vault = _build_vault(settings)

    logger.info(
        "broker_created",
        environment=settings.environment,
        services=len(registry),
        vault=type(vault).__name__ if vault is not None else None,
    )

    return ServiceBroker(
        LifecycleStores(
            registry=registry,
            instances=instances,
            bindings=bindings,
            provision_requests=provision_requests,
            vault=vault,
            credential_client_identifier=settings.credential_client_identifier,
        )
    )
