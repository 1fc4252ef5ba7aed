# runtime/registries.py
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

from riverdist.app.protocols import GeoMetric
from riverdist.domain.distances.distances_geo import EuclidMetric, HaversineMetric

P = TypeVar("P")

Builder = Callable[[], P]


class DuplicateRegistration(ValueError):
    """An identifier was registered twice."""


class UnknownIdentifier(ValueError):
    """No builder is registered under the requested identifier."""

    def __init__(self, registry: str, identifier: Hashable):
        super().__init__(f"Identifier {identifier!r} is not stored in the {registry} registry")
        self.registry = registry
        self.identifier = identifier


class Registry(Generic[P]):
    """
    Identifier -> builder map. Builders are nullary callables returning a fresh
    product; the registry never holds product instances.

    Identifiers must be orderable: ``registered()`` returns them sorted.
    """

    def __init__(self, name: str = "factory"):
        self.name = name
        self._storage: dict[Hashable, Builder] = {}

    def register(self, identifier: Hashable, builder: Builder) -> None:
        if identifier in self._storage:
            raise DuplicateRegistration(
                f"Double registration of {identifier!r} in the {self.name} registry"
            )
        self._storage[identifier] = builder

    def registrar(self, identifier: Hashable):
        def deco(fn: Builder):
            self.register(identifier, fn)
            return fn

        return deco

    def create(self, identifier: Hashable) -> P:
        try:
            builder = self._storage[identifier]
        except KeyError:
            raise UnknownIdentifier(self.name, identifier) from None
        return builder()

    def unregister(self, identifier: Hashable) -> None:
        self._storage.pop(identifier, None)

    def registered(self) -> list:
        return sorted(self._storage)

    def clear(self) -> None:
        self._storage.clear()

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._storage

    def __len__(self) -> int:
        return len(self._storage)

    def __repr__(self) -> str:
        return f"Registry(name={self.name!r}, registered={self.registered()!r})"


# ------------------- Geographic metrics ---------------------------

GEO_METRICS: Registry[GeoMetric] = Registry("geo_metric")


def make_geo_metric(kind: str, *, registry: Registry[GeoMetric] | None = None) -> GeoMetric:
    return (registry if registry is not None else GEO_METRICS).create(kind)


@GEO_METRICS.registrar("euclidean")
def _make_euclidean() -> GeoMetric:
    return EuclidMetric()


@GEO_METRICS.registrar("haversine")
def _make_haversine() -> GeoMetric:
    return HaversineMetric()
