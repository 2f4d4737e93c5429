"""Broker settings and the create_broker() factory.

Tests:
  1. Local defaults validate and wire in-memory stores
  2. Non-local environments require Supabase settings
  3. CredHub settings are all-or-nothing
  4. from_env() parsing
  5. Overrides replace individual dependencies
  6. Logging is configured only when asked for
"""

from __future__ import annotations

import logging

import pytest
import structlog

from conftest import SERVICE_ID, make_registry
from service_broker import BrokerSettings, ServiceBroker, create_broker
from service_broker.db import (
    SupabaseBindingRepository,
    SupabaseInstanceRepository,
    SupabaseProvisionRequestRepository,
)
from service_broker.inmemory import (
    InMemoryBindingRepository,
    InMemoryCredentialVault,
    InMemoryInstanceRepository,
    InMemoryProvisionRequestRepository,
)
from service_broker.vault import CredHubVault


def _staging_settings(**overrides) -> BrokerSettings:
    defaults = {
        "environment": "staging",
        "supabase_url": "https://test.supabase.co",
        "supabase_service_role_key": "test-key-not-real",
    }
    defaults.update(overrides)
    return BrokerSettings(**defaults)


def _credhub_settings() -> dict[str, str]:
    return {
        "credhub_url": "https://credhub.test:8844",
        "uaa_url": "https://uaa.test:8443",
        "credhub_client_id": "broker",
        "credhub_client_secret": "s3cret",
    }


# ── Settings ────────────────────────────────────────────────────────


class TestBrokerSettings:
    def test_local_defaults_are_valid(self):
        settings = BrokerSettings()
        assert settings.is_local
        assert settings.validate() == []
        assert settings.credential_client_identifier == "csb"
        assert settings.vault_enabled is False

    def test_non_local_requires_supabase(self):
        errors = BrokerSettings(environment="production").validate()
        assert any("supabase_url" in e for e in errors)
        assert any("supabase_service_role_key" in e for e in errors)

    def test_staging_with_supabase_is_valid(self):
        assert _staging_settings().validate() == []

    def test_partial_credhub_config_rejected(self):
        errors = BrokerSettings(credhub_url="https://credhub.test").validate()
        assert any("uaa_url" in e for e in errors)
        assert any("credhub_client_secret" in e for e in errors)

    def test_full_credhub_config_valid(self):
        settings = BrokerSettings(**_credhub_settings())
        assert settings.validate() == []
        assert settings.vault_enabled

    def test_secrets_not_in_repr(self):
        settings = _staging_settings(**_credhub_settings())
        text = repr(settings)
        assert "test-key-not-real" not in text
        assert "s3cret" not in text

    def test_from_env(self):
        settings = BrokerSettings.from_env({
            "ENVIRONMENT": "dev",
            "SUPABASE_URL": "https://x.supabase.co",
            "SUPABASE_SERVICE_ROLE_KEY": "k",
            "CREDENTIAL_CLIENT_IDENTIFIER": "broker-a",
            "ENABLED_SERVICES": "svc-a, svc-b,,",
        })
        assert settings.environment == "dev"
        assert settings.supabase_url == "https://x.supabase.co"
        assert settings.credential_client_identifier == "broker-a"
        assert settings.enabled_services == ("svc-a", "svc-b")

    def test_from_env_logging(self):
        settings = BrokerSettings.from_env({"LOG_LEVEL": "debug", "LOG_FORMAT": "console"})
        assert settings.log_level == "debug"
        assert settings.log_json is False
        assert settings.validate() == []

    def test_unknown_log_level_rejected(self):
        errors = BrokerSettings(log_level="chatty").validate()
        assert any("log_level" in e for e in errors)

    def test_from_env_defaults(self):
        settings = BrokerSettings.from_env({})
        assert settings.is_local
        assert settings.enabled_services is None
        assert settings.log_level == "INFO"
        assert settings.log_json is True


# ── Factory ─────────────────────────────────────────────────────────


class TestCreateBroker:
    def test_local_uses_inmemory_stores(self, provider):
        broker = create_broker(BrokerSettings(), make_registry(provider))
        assert isinstance(broker, ServiceBroker)
        assert isinstance(broker.stores.instances, InMemoryInstanceRepository)
        assert isinstance(broker.stores.bindings, InMemoryBindingRepository)
        assert isinstance(broker.stores.provision_requests, InMemoryProvisionRequestRepository)
        assert broker.stores.vault is None

    def test_non_local_uses_supabase_stores(self, provider):
        broker = create_broker(_staging_settings(), make_registry(provider))
        assert isinstance(broker.stores.instances, SupabaseInstanceRepository)
        assert isinstance(broker.stores.bindings, SupabaseBindingRepository)
        assert isinstance(broker.stores.provision_requests, SupabaseProvisionRequestRepository)

    def test_invalid_settings_raise(self, provider):
        with pytest.raises(ValueError, match="validation failed"):
            create_broker(BrokerSettings(environment="production"), make_registry(provider))

    def test_credhub_vault_attached_when_configured(self, provider):
        broker = create_broker(BrokerSettings(**_credhub_settings()), make_registry(provider))
        assert isinstance(broker.stores.vault, CredHubVault)

    def test_overrides_are_used(self, provider):
        instances = InMemoryInstanceRepository()
        vault = InMemoryCredentialVault()
        broker = create_broker(
            _staging_settings(), make_registry(provider), instances=instances, vault=vault,
        )
        assert broker.stores.instances is instances
        assert broker.stores.vault is vault
        assert isinstance(broker.stores.bindings, SupabaseBindingRepository)

    def test_definitions_build_filtered_registry(self, provider):
        definitions = list(make_registry(provider))
        broker = create_broker(BrokerSettings(enabled_services=("other",)), definitions)
        assert SERVICE_ID in broker.stores.registry
        assert broker.services() == []

    def test_client_identifier_propagates(self, provider):
        broker = create_broker(
            BrokerSettings(credential_client_identifier="broker-a"), make_registry(provider),
        )
        assert broker.stores.credential_client_identifier == "broker-a"

    def test_logging_left_alone_by_default(self, provider, restore_logging):
        before = list(logging.getLogger().handlers)
        create_broker(BrokerSettings(log_level="DEBUG"), make_registry(provider))
        assert logging.getLogger().handlers == before

    def test_configure_logs_installs_handler(self, provider, restore_logging):
        create_broker(
            BrokerSettings(log_level="DEBUG"), make_registry(provider), configure_logs=True,
        )
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(
            isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)
            for h in root.handlers
        )
