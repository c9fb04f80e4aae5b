"""Reference substitution against already reconciled resources.

Out of scope for this stage:
- ordering (the reconciler only calls this once all dependencies settled)
- service calls
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from stackwire.domain.errors import UnresolvedDependencyError
from stackwire.domain.model import Interpolation, Reference, ResourceStatus

if TYPE_CHECKING:
    from stackwire.domain.model import ResolvedResource


def substitute_inputs(
    resource: str,
    inputs: Mapping[str, object],
    resolved: Mapping[str, ResolvedResource],
) -> dict[str, object]:
    """Return ``inputs`` with every token replaced by the observed upstream value."""

    return {key: substitute(resource, value, resolved) for key, value in inputs.items()}


def substitute(
    resource: str,
    value: object,
    resolved: Mapping[str, ResolvedResource],
) -> object:
    if isinstance(value, Reference):
        return _lookup(resource, value, resolved)
    if isinstance(value, Interpolation):
        fields = {name: _lookup(resource, token, resolved) for name, token in value.fields}
        return value.template.format(**fields)
    if isinstance(value, Mapping):
        return {
            key: substitute(resource, item, resolved)
            for key, item in value.items()  # pyright: ignore[reportUnknownVariableType]
        }
    if isinstance(value, list):
        return [substitute(resource, item, resolved) for item in value]  # pyright: ignore[reportUnknownVariableType]
    if isinstance(value, tuple):
        return tuple(substitute(resource, item, resolved) for item in value)  # pyright: ignore[reportUnknownVariableType]
    return value


def _lookup(
    resource: str,
    reference: Reference,
    resolved: Mapping[str, ResolvedResource],
) -> object:
    upstream = resolved.get(reference.resource)
    if upstream is None:
        raise UnresolvedDependencyError(resource, reference, "upstream not processed")
    if upstream.status is not ResourceStatus.VALIDATED:
        raise UnresolvedDependencyError(
            resource, reference, f"upstream status is {upstream.status}"
        )
    if reference.attribute not in upstream.outputs:
        raise UnresolvedDependencyError(resource, reference, "output not recorded")

    value: object = upstream.outputs[reference.attribute]
    for key in reference.path:
        try:
            value = value[key]  # type: ignore[index]
        except (KeyError, IndexError, TypeError) as exc:
            raise UnresolvedDependencyError(
                resource, reference, f"path element {key!r} not found"
            ) from exc
    return value
