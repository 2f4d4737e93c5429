"""Service definitions, plans and parameter merging.

A definition owns its plans, the JSON schemas user parameters are checked
against, and the provider that implements it. Merged variables are built in
a fixed precedence order: definition defaults, then user parameters, then
plan properties (plans cannot be overridden by users), then the computed
identifiers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import jsonschema

from ..errors import PlanNotFound, ValidationError
from ..models import (
    BindDetails,
    ProvisionDetails,
    ServiceInstanceRecord,
    UpdateDetails,
)
from ..params import parse_parameters
from ..providers.base import ServiceProvider


def _frozen(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, slots=True)
class ServicePlan:
    id: str
    name: str
    description: str = ""
    properties: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    free: bool = True

    def catalog_entry(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "free": self.free,
        }


@dataclass(frozen=True, slots=True)
class ServiceDefinition:
    """Catalog entry plus behavior for one service offering."""

    id: str
    name: str
    provider: ServiceProvider
    description: str = ""
    plans: tuple[ServicePlan, ...] = ()
    bindable: bool = True
    plan_updateable: bool = False
    tags: tuple[str, ...] = ()
    provision_input_schema: Mapping[str, Any] | None = None
    update_input_schema: Mapping[str, Any] | None = None
    bind_input_schema: Mapping[str, Any] | None = None
    provision_defaults: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    bind_defaults: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    prohibit_update_fields: frozenset[str] = frozenset()

    def plan_by_id(self, plan_id: str) -> ServicePlan:
        for plan in self.plans:
            if plan.id == plan_id:
                return plan
        raise PlanNotFound(self.id, plan_id)

    def catalog_entry(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "bindable": self.bindable,
            "plan_updateable": self.plan_updateable,
            "tags": list(self.tags),
            "plans": [plan.catalog_entry() for plan in self.plans],
        }

    # ── Parameter merging ───────────────────────────────────────────

    def merge_provision_parameters(
        self,
        instance_id: str,
        details: ProvisionDetails,
        plan: ServicePlan,
    ) -> dict[str, Any]:
        user_params = parse_parameters(details.raw_parameters)
        _validate_against(self.provision_input_schema, user_params)
        return {
            **self.provision_defaults,
            **user_params,
            **plan.properties,
            "instance_id": instance_id,
            "service_id": self.id,
            "plan_id": plan.id,
            "space_guid": details.space_guid,
            "organization_guid": details.organization_guid,
        }

    def merge_update_parameters(
        self,
        instance: ServiceInstanceRecord,
        details: UpdateDetails,
        plan: ServicePlan,
    ) -> dict[str, Any]:
        user_params = parse_parameters(details.raw_parameters)
        schema = self.update_input_schema or self.provision_input_schema
        _validate_against(schema, user_params)
        return {
            **self.provision_defaults,
            **user_params,
            **plan.properties,
            "instance_id": instance.id,
            "service_id": self.id,
            "plan_id": plan.id,
        }

    def merge_bind_parameters(
        self,
        instance: ServiceInstanceRecord,
        binding_id: str,
        details: BindDetails,
        plan: ServicePlan,
    ) -> dict[str, Any]:
        user_params = parse_parameters(details.raw_parameters)
        _validate_against(self.bind_input_schema, user_params)
        return {
            **self.bind_defaults,
            **user_params,
            "instance_id": instance.id,
            "binding_id": binding_id,
            "service_id": self.id,
            "plan_id": plan.id,
            "app_guid": details.app_guid,
            "instance_details": instance.details(),
        }

    # ── Update policy ───────────────────────────────────────────────

    def is_update_allowed(self, details: UpdateDetails, current_plan_id: str) -> bool:
        """False when the update could force re-creation of the instance."""
        if details.plan_id and details.plan_id != current_plan_id:
            if not self.plan_updateable:
                return False
        if not self.prohibit_update_fields:
            return True
        user_params = parse_parameters(details.raw_parameters)
        return self.prohibit_update_fields.isdisjoint(user_params)


def _validate_against(schema: Mapping[str, Any] | None, params: dict[str, Any]) -> None:
    if not schema:
        return
    try:
        jsonschema.validate(instance=params, schema=dict(schema))
    except jsonschema.ValidationError as exc:
        raise ValidationError(f"parameter validation failed: {exc.message}") from exc


def make_definition(
    *,
    id: str,
    name: str,
    provider: ServiceProvider,
    plans: list[ServicePlan] | tuple[ServicePlan, ...] = (),
    provision_defaults: Mapping[str, Any] | None = None,
    bind_defaults: Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> ServiceDefinition:
    """Build a definition from plain (mutable) inputs, freezing them."""
    return ServiceDefinition(
        id=id,
        name=name,
        provider=provider,
        plans=tuple(plans),
        provision_defaults=_frozen(provision_defaults),
        bind_defaults=_frozen(bind_defaults),
        **kwargs,
    )
