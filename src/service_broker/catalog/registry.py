"""Immutable service registry.

Built once at startup and injected into the broker. Lookups never mutate
it, so concurrent lifecycle calls can share one instance.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from ..errors import ServiceNotFound
from .definition import ServiceDefinition


class DuplicateServiceError(ValueError):
    """Raised when two definitions share a service ID or name."""

    def __init__(self, field_name: str, value: str) -> None:
        self.field_name = field_name
        self.value = value
        super().__init__(f"duplicate service {field_name}: {value!r}")


class ServiceRegistry:
    """Lookup table from service ID to ``ServiceDefinition``.

    ``enabled`` restricts which services are listed in the catalog; it does
    not affect resolution, so instances of a service disabled after they
    were provisioned can still be deprovisioned.
    """

    def __init__(
        self,
        definitions: Iterable[ServiceDefinition],
        *,
        enabled: Iterable[str] | None = None,
    ) -> None:
        by_id: dict[str, ServiceDefinition] = {}
        names: set[str] = set()
        for definition in definitions:
            if definition.id in by_id:
                raise DuplicateServiceError("id", definition.id)
            if definition.name in names:
                raise DuplicateServiceError("name", definition.name)
            by_id[definition.id] = definition
            names.add(definition.name)

        self._by_id: Mapping[str, ServiceDefinition] = MappingProxyType(by_id)
        self._enabled: frozenset[str] | None = (
            frozenset(enabled) if enabled is not None else None
        )

    def resolve(self, service_id: str) -> ServiceDefinition:
        try:
            return self._by_id[service_id]
        except KeyError:
            raise ServiceNotFound(service_id) from None

    def enabled_services(self) -> list[ServiceDefinition]:
        """Definitions offered in the catalog, in registration order."""
        return [
            d for d in self._by_id.values()
            if self._enabled is None or d.id in self._enabled or d.name in self._enabled
        ]

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._by_id

    def __iter__(self) -> Iterator[ServiceDefinition]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)
