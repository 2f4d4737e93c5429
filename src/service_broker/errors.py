"""Broker error taxonomy.

Every error raised by the lifecycle orchestrators derives from
``BrokerError`` and carries a stable ``code`` string. The protocol layer
(not part of this package) maps codes to whatever status convention it uses.

Two kinds are partial failures that leave state needing an operator:
``OrphanedExternalResource`` and ``CredentialHandoffFailed``. Their messages
say what is left un-reconciled.
"""

from __future__ import annotations


class BrokerError(Exception):
    """Base class for all broker errors."""

    code = "broker-error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ── Request errors (cheap, side-effect free) ────────────────────────


class ValidationError(BrokerError):
    """User-supplied parameters are malformed."""

    code = "invalid-parameters"


class NotFoundError(BrokerError):
    """A referenced instance, binding, service or plan is absent."""

    code = "not-found"


class InstanceNotFound(NotFoundError):
    def __init__(self, instance_id: str) -> None:
        self.instance_id = instance_id
        super().__init__(f"service instance {instance_id!r} does not exist")


class BindingNotFound(NotFoundError):
    def __init__(self, instance_id: str, binding_id: str) -> None:
        self.instance_id = instance_id
        self.binding_id = binding_id
        super().__init__(
            f"service binding {binding_id!r} does not exist "
            f"for instance {instance_id!r}"
        )


class ServiceNotFound(NotFoundError):
    def __init__(self, service_id: str) -> None:
        self.service_id = service_id
        super().__init__(f"unknown service ID: {service_id!r}")


class PlanNotFound(NotFoundError):
    def __init__(self, service_id: str, plan_id: str) -> None:
        self.service_id = service_id
        self.plan_id = plan_id
        super().__init__(
            f"plan ID {plan_id!r} does not exist for service {service_id!r}"
        )


class ConflictError(BrokerError):
    """The record being created already exists."""

    code = "conflict"


class InstanceAlreadyExists(ConflictError):
    def __init__(self, instance_id: str) -> None:
        self.instance_id = instance_id
        super().__init__(f"service instance {instance_id!r} already exists")


class BindingAlreadyExists(ConflictError):
    def __init__(self, instance_id: str, binding_id: str) -> None:
        self.instance_id = instance_id
        self.binding_id = binding_id
        super().__init__(
            f"service binding {binding_id!r} already exists "
            f"for instance {instance_id!r}"
        )


class AsyncRequired(BrokerError):
    """The operation is asynchronous but the caller did not accept that."""

    code = "async-required"

    def __init__(self, message: str = "This service plan requires client support for asynchronous service operations.") -> None:
        super().__init__(message)


class ProhibitedUpdate(BrokerError):
    """The update would force re-creation of the instance."""

    code = "prohibited"

    def __init__(self, message: str = "attempt to update parameter that may result in service instance re-creation and data loss") -> None:
        super().__init__(message)


class UnsupportedOperation(BrokerError):
    code = "unsupported"


# ── Collaborator failures ───────────────────────────────────────────


class ProviderError(BrokerError):
    """Opaque failure reported by a resource provider.

    Providers may raise any exception; this class exists so they can attach
    an upstream ``status_code`` the poller uses for classification.
    """

    code = "provider-error"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class PersistenceError(BrokerError):
    """The record store was unreachable or a write failed."""

    code = "persistence-error"


# ── Partial failures (operator intervention required) ───────────────


class OrphanedExternalResource(PersistenceError):
    """The provider action succeeded but the local record write failed."""

    code = "orphaned-resource"


class CredentialHandoffFailed(BrokerError):
    """The binding was recorded but the vault step failed."""

    code = "credential-handoff-failed"
