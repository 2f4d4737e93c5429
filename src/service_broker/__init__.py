"""Service broker lifecycle orchestrator.

Usage:
    from service_broker import BrokerSettings, create_broker

    broker = create_broker(BrokerSettings(), [definition])
    await broker.provision("i-1", ProvisionDetails(service_id=..., plan_id=...))
"""

from .broker import ServiceBroker
from .catalog import ServiceDefinition, ServicePlan, ServiceRegistry, make_definition
from .errors import BrokerError
from .factory import create_broker
from .models import (
    BindDetails,
    Binding,
    DeprovisionResult,
    LastOperation,
    LastOperationState,
    OperationType,
    ProvisionDetails,
    ProvisionResult,
    UpdateDetails,
    UpdateResult,
)
from .settings import BrokerSettings

__all__ = [
    "BindDetails",
    "Binding",
    "BrokerError",
    "BrokerSettings",
    "DeprovisionResult",
    "LastOperation",
    "LastOperationState",
    "OperationType",
    "ProvisionDetails",
    "ProvisionResult",
    "ServiceBroker",
    "ServiceDefinition",
    "ServicePlan",
    "ServiceRegistry",
    "UpdateDetails",
    "UpdateResult",
    "create_broker",
    "make_definition",
]
