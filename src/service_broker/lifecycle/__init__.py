"""Lifecycle orchestrators: instances, bindings and last-operation polling."""

from .base import LifecycleStores
from .bindings import BindingLifecycle
from .classify import TRANSIENT_STATUS_CODES, classify_poll_error, is_transient
from .instances import InstanceLifecycle
from .poller import COMPLETION_ACTIONS, OperationPoller

__all__ = [
    "BindingLifecycle",
    "COMPLETION_ACTIONS",
    "InstanceLifecycle",
    "LifecycleStores",
    "OperationPoller",
    "TRANSIENT_STATUS_CODES",
    "classify_poll_error",
    "is_transient",
]
