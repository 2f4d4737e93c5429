"""Resource provider contracts and the in-memory reference provider."""

from .base import (
    Binder,
    ProvisionedInstance,
    Provisioner,
    ServiceProvider,
    StatusPoller,
)
from .inmemory import InMemoryServiceProvider

__all__ = [
    "Binder",
    "InMemoryServiceProvider",
    "ProvisionedInstance",
    "Provisioner",
    "ServiceProvider",
    "StatusPoller",
]
