"""Resource declarations and their runtime state.

Inputs of a ``ResourceSpec`` are plain literals, ``Reference`` tokens naming
another resource's future output, ``Interpolation`` templates over such
tokens, or lists/mappings nesting any of these. The graph builder turns every
token into a dependency edge; the reconciler substitutes them with observed
outputs right before the owning service is called.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

from .enums import ResourceKind, ResourceStatus

if TYPE_CHECKING:
    from collections.abc import Iterator


type PathKey = str | int


@dataclass(frozen=True, slots=True)
class Reference:
    """Placeholder for ``resource``'s output ``attribute`` (optionally indexed by ``path``)."""

    resource: str
    attribute: str
    path: tuple[PathKey, ...] = ()

    def __getitem__(self, key: PathKey) -> Reference:
        return replace(self, path=(*self.path, key))

    def __str__(self) -> str:
        suffix = "".join(f"[{key!r}]" for key in self.path)
        return f"{self.resource}.{self.attribute}{suffix}"


@dataclass(frozen=True, slots=True)
class Interpolation:
    """``str.format`` template whose named fields are filled from references."""

    template: str
    fields: tuple[tuple[str, Reference], ...]


def ref(resource: str, attribute: str) -> Reference:
    return Reference(resource=resource, attribute=attribute)


def interpolate(template: str, **fields: Reference) -> Interpolation:
    return Interpolation(template=template, fields=tuple(sorted(fields.items())))


def iter_references(value: object) -> Iterator[Reference]:
    """Yield every reference token nested in ``value``."""

    if isinstance(value, Reference):
        yield value
    elif isinstance(value, Interpolation):
        for _name, reference in value.fields:
            yield reference
    elif isinstance(value, Mapping):
        for item in value.values():  # pyright: ignore[reportUnknownVariableType]
            yield from iter_references(item)
    elif isinstance(value, list | tuple):
        for item in value:  # pyright: ignore[reportUnknownVariableType]
            yield from iter_references(item)


def _freeze_inputs(inputs: Mapping[str, object]) -> Mapping[str, object]:
    return MappingProxyType(dict(inputs))


@dataclass(frozen=True, slots=True)
class ResourceSpec:
    """A declared unit of infrastructure.

    ``depends_on`` holds explicit ordering edges when declared; specs returned
    by the graph builder carry the full derived set (explicit edges plus every
    referenced resource).
    """

    kind: ResourceKind
    name: str
    inputs: Mapping[str, object] = field(default_factory=dict["str", "object"])
    depends_on: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Resource name must not be blank")
        object.__setattr__(self, "inputs", _freeze_inputs(self.inputs))
        object.__setattr__(self, "depends_on", frozenset(self.depends_on))

    def references(self) -> tuple[Reference, ...]:
        return tuple(iter_references(self.inputs))


@dataclass(slots=True, kw_only=True)
class ResolvedResource:
    """Runtime pairing of a spec with its observed outputs and status."""

    spec: ResourceSpec
    status: ResourceStatus = ResourceStatus.PENDING
    outputs: dict[str, object] = field(default_factory=dict["str", "object"])
    error: BaseException | None = None

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def kind(self) -> ResourceKind:
        return self.spec.kind

    @property
    def validated(self) -> bool:
        return self.status is ResourceStatus.VALIDATED
