"""Service catalog: definitions, plans and the immutable registry."""

from .definition import ServiceDefinition, ServicePlan, make_definition
from .registry import DuplicateServiceError, ServiceRegistry

__all__ = [
    "DuplicateServiceError",
    "ServiceDefinition",
    "ServicePlan",
    "ServiceRegistry",
    "make_definition",
]
