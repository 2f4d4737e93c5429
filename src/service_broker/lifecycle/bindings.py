"""Binding lifecycle: bind and unbind, including vault hand-off.

Bind order:
  provider bind -> binding record -> caller credentials -> vault put/grant

The record is written before any credentials leave the broker, so a crash
can at worst leave an untracked provider binding, never credentials for a
binding the broker does not know about.

Unbind order:
  vault revoke (best effort) -> vault delete (fatal) -> provider unbind
  -> binding record delete
"""

from __future__ import annotations

import json

from ..db.errors import DuplicateRecordError, RecordStoreError
from ..errors import (
    BindingAlreadyExists,
    BindingNotFound,
    CredentialHandoffFailed,
    OrphanedExternalResource,
    PersistenceError,
    ValidationError,
)
from ..models import BindDetails, Binding, ServiceBindingRecord
from ..observability.logging import get_logger
from ..observability.metrics import PARTIAL_FAILURES_TOTAL
from ..params import INVALID_USER_INPUT_MSG, is_valid_or_empty_json
from ..vault import CREDENTIAL_REF_KEY, READ_OPERATIONS, app_actor, credential_name
from .base import LifecycleStores, counted, load_instance, store_call

logger = get_logger(__name__)


class BindingLifecycle:
    """Bind/unbind orchestration for service bindings."""

    def __init__(self, stores: LifecycleStores) -> None:
        self._stores = stores

    def _credential_name(self, service_name: str, binding_id: str) -> str:
        return credential_name(
            service_name,
            binding_id,
            client_identifier=self._stores.credential_client_identifier,
        )

    @counted("bind")
    async def bind(
        self,
        instance_id: str,
        binding_id: str,
        details: BindDetails,
    ) -> Binding:
        logger.info(
            "binding",
            instance_id=instance_id,
            binding_id=binding_id,
            service_id=details.service_id,
            plan_id=details.plan_id,
        )

        exists = await store_call(
            "checking for existing binding",
            self._stores.bindings.exists(instance_id, binding_id),
        )
        if exists:
            raise BindingAlreadyExists(instance_id, binding_id)

        instance = await load_instance(self._stores.instances, instance_id)
        definition = self._stores.registry.resolve(instance.service_id)
        plan = definition.plan_by_id(details.plan_id or instance.plan_id)
        provider = definition.provider

        if not is_valid_or_empty_json(details.raw_parameters):
            raise ValidationError(INVALID_USER_INPUT_MSG)

        variables = definition.merge_bind_parameters(instance, binding_id, details, plan)
        credential_details = await provider.bind(variables)

        orphan_warning = (
            f"WARNING: binding {binding_id!r} was created by the provider but "
            "cannot be unbound through the broker. Contact your operator for "
            "cleanup."
        )
        try:
            serialized = json.dumps(credential_details)
        except (TypeError, ValueError) as exc:
            PARTIAL_FAILURES_TOTAL.labels(kind="orphaned-resource").inc()
            raise OrphanedExternalResource(
                f"Error serializing credentials: {exc}. {orphan_warning}"
            ) from exc

        record = ServiceBindingRecord(
            service_instance_id=instance_id,
            binding_id=binding_id,
            service_id=details.service_id,
            other_details=serialized,
        )
        try:
            await self._stores.bindings.create(record)
        except DuplicateRecordError as exc:
            logger.error(
                "bind_lost_insert_race",
                instance_id=instance_id,
                binding_id=binding_id,
                detail="provider binding from the losing call may be orphaned",
            )
            PARTIAL_FAILURES_TOTAL.labels(kind="orphaned-resource").inc()
            raise BindingAlreadyExists(instance_id, binding_id) from exc
        except RecordStoreError as exc:
            logger.error(
                "bind_record_write_failed",
                instance_id=instance_id,
                binding_id=binding_id,
                exc_info=True,
            )
            PARTIAL_FAILURES_TOTAL.labels(kind="orphaned-resource").inc()
            raise OrphanedExternalResource(
                f"Error saving credentials to database: {exc}. {orphan_warning}"
            ) from exc

        credentials = await provider.build_caller_credentials(record, instance)

        vault = self._stores.vault
        if vault is None:
            return Binding(credentials=credentials)

        name = self._credential_name(definition.name, binding_id)
        try:
            await vault.put(name, credentials)
        except Exception as exc:
            logger.error(
                "vault_put_failed",
                binding_id=binding_id,
                credential_name=name,
                exc_info=True,
            )
            PARTIAL_FAILURES_TOTAL.labels(kind="credential-handoff-failed").inc()
            raise CredentialHandoffFailed(
                f"Bind failure: unable to put credentials in the vault: {exc}. "
                f"Binding {binding_id!r} is recorded; unbind it to clean up."
            ) from exc

        try:
            await vault.add_permission(
                name, app_actor(details.app_guid), list(READ_OPERATIONS),
            )
        except Exception as exc:
            logger.error(
                "vault_add_permission_failed",
                binding_id=binding_id,
                credential_name=name,
                app_guid=details.app_guid,
                exc_info=True,
            )
            PARTIAL_FAILURES_TOTAL.labels(kind="credential-handoff-failed").inc()
            raise CredentialHandoffFailed(
                f"Bind failure: unable to add vault permissions to app "
                f"{details.app_guid!r}: {exc}. Binding {binding_id!r} is "
                "recorded and its credentials are stored; unbind it to clean up."
            ) from exc

        return Binding(credentials={CREDENTIAL_REF_KEY: name})

    @counted("unbind")
    async def unbind(
        self,
        instance_id: str,
        binding_id: str,
        service_id: str,
    ) -> None:
        logger.info(
            "unbinding",
            instance_id=instance_id,
            binding_id=binding_id,
            service_id=service_id,
        )

        definition = self._stores.registry.resolve(service_id)
        provider = definition.provider

        binding = await store_call(
            "retrieving binding",
            self._stores.bindings.get(instance_id, binding_id),
        )
        if binding is None:
            raise BindingNotFound(instance_id, binding_id)

        instance = await load_instance(self._stores.instances, instance_id)

        vault = self._stores.vault
        if vault is not None:
            name = self._credential_name(definition.name, binding_id)
            try:
                await vault.delete_permission(name)
            except Exception:
                # The secret itself is deleted next, which revokes access.
                logger.error(
                    "vault_permission_delete_failed",
                    credential_name=name,
                    exc_info=True,
                )
            # An undeleted secret must abort the unbind.
            await vault.delete(name)

        await provider.unbind(instance, binding)

        try:
            await self._stores.bindings.delete(binding)
        except RecordStoreError as exc:
            raise PersistenceError(
                f"Error deleting credentials from database: {exc}. "
                f"WARNING: binding {binding_id!r} was removed by the provider "
                "but its record remains. Contact your operator for cleanup."
            ) from exc
