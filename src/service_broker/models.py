"""Broker records, request details and result types.

Records map 1:1 onto rows of the broker tables:

  service_instance_details     one row per provisioned instance
  service_binding_credentials  one row per (instance, binding)
  provision_request_details    raw parameters of the last provision/update
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any


class OperationType(str, enum.Enum):
    """Outstanding asynchronous operation on an instance."""

    NONE = ""
    PROVISION = "provision"
    DEPROVISION = "deprovision"
    UPDATE = "update"


class LastOperationState(str, enum.Enum):
    IN_PROGRESS = "in progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# ── Records ─────────────────────────────────────────────────────────


@dataclass
class ServiceInstanceRecord:
    """Row-level representation of service_instance_details."""

    id: str
    service_id: str
    plan_id: str
    space_guid: str = ""
    organization_guid: str = ""
    other_details: str = "{}"
    operation_id: str | None = None
    operation_type: OperationType = OperationType.NONE

    @property
    def has_pending_operation(self) -> bool:
        return self.operation_type is not OperationType.NONE

    def details(self) -> dict[str, Any]:
        """Decode the provider-opaque detail blob."""
        if not self.other_details:
            return {}
        return json.loads(self.other_details)

    def set_details(self, details: dict[str, Any]) -> None:
        self.other_details = json.dumps(details, sort_keys=True)

    def track_operation(self, operation_type: OperationType, operation_id: str) -> None:
        self.operation_type = operation_type
        self.operation_id = operation_id

    def clear_operation(self) -> None:
        self.operation_type = OperationType.NONE
        self.operation_id = None

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "service_id": self.service_id,
            "plan_id": self.plan_id,
            "space_guid": self.space_guid,
            "organization_guid": self.organization_guid,
            "other_details": self.other_details,
            "operation_id": self.operation_id,
            "operation_type": self.operation_type.value,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ServiceInstanceRecord:
        return cls(
            id=row["id"],
            service_id=row["service_id"],
            plan_id=row["plan_id"],
            space_guid=row.get("space_guid") or "",
            organization_guid=row.get("organization_guid") or "",
            other_details=row.get("other_details") or "{}",
            operation_id=row.get("operation_id") or None,
            operation_type=OperationType(row.get("operation_type") or ""),
        )


@dataclass
class ServiceBindingRecord:
    """Row-level representation of service_binding_credentials."""

    service_instance_id: str
    binding_id: str
    service_id: str
    other_details: str = "{}"

    def details(self) -> dict[str, Any]:
        if not self.other_details:
            return {}
        return json.loads(self.other_details)

    def to_row(self) -> dict[str, Any]:
        return {
            "service_instance_id": self.service_instance_id,
            "binding_id": self.binding_id,
            "service_id": self.service_id,
            "other_details": self.other_details,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ServiceBindingRecord:
        return cls(
            service_instance_id=row["service_instance_id"],
            binding_id=row["binding_id"],
            service_id=row["service_id"],
            other_details=row.get("other_details") or "{}",
        )


@dataclass
class ProvisionRequestRecord:
    """Audit copy of the raw parameters of a provision or update call."""

    service_instance_id: str
    request_details: str = ""

    def to_row(self) -> dict[str, Any]:
        return {
            "service_instance_id": self.service_instance_id,
            "request_details": self.request_details,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ProvisionRequestRecord:
        return cls(
            service_instance_id=row["service_instance_id"],
            request_details=row.get("request_details") or "",
        )


# ── Request details ─────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ProvisionDetails:
    service_id: str
    plan_id: str
    space_guid: str = ""
    organization_guid: str = ""
    raw_parameters: str | bytes | None = None


@dataclass(frozen=True, slots=True)
class UpdateDetails:
    service_id: str
    plan_id: str
    raw_parameters: str | bytes | None = None
    previous_plan_id: str | None = None


@dataclass(frozen=True, slots=True)
class BindDetails:
    service_id: str
    plan_id: str
    app_guid: str = ""
    raw_parameters: str | bytes | None = None


# ── Outcomes and results ────────────────────────────────────────────


class OutcomeKind(str, enum.Enum):
    SYNCHRONOUS = "synchronous-success"
    PENDING = "asynchronous-pending"
    FAILED = "failure"


@dataclass(frozen=True, slots=True)
class OperationOutcome:
    """Normalized result of a provider action.

    ``cause`` is the provider error behind a failed outcome, or behind a
    pending one that was reached through a transient error.
    """

    kind: OutcomeKind
    operation_id: str | None = None
    cause: BaseException | None = None

    @classmethod
    def synchronous(cls) -> OperationOutcome:
        return cls(OutcomeKind.SYNCHRONOUS)

    @classmethod
    def pending(
        cls, operation_id: str, cause: BaseException | None = None,
    ) -> OperationOutcome:
        return cls(OutcomeKind.PENDING, operation_id=operation_id, cause=cause)

    @classmethod
    def failed(cls, cause: BaseException) -> OperationOutcome:
        return cls(OutcomeKind.FAILED, cause=cause)

    @classmethod
    def from_operation_id(cls, operation_id: str | None) -> OperationOutcome:
        """A provider token means pending, no token means done."""
        if operation_id:
            return cls.pending(operation_id)
        return cls.synchronous()

    @property
    def is_async(self) -> bool:
        return self.kind is OutcomeKind.PENDING


@dataclass(frozen=True, slots=True)
class ProvisionResult:
    is_async: bool
    operation_id: str = ""
    dashboard_url: str = ""


@dataclass(frozen=True, slots=True)
class DeprovisionResult:
    is_async: bool = False
    operation_id: str = ""


@dataclass(frozen=True, slots=True)
class UpdateResult:
    is_async: bool
    operation_id: str = ""
    dashboard_url: str = ""


@dataclass(frozen=True, slots=True)
class Binding:
    credentials: dict[str, Any] = field(default_factory=dict)
    syslog_drain_url: str = ""
    route_service_url: str = ""


@dataclass(frozen=True, slots=True)
class LastOperation:
    state: LastOperationState
    description: str = ""
    needs_reconciliation: bool = False
