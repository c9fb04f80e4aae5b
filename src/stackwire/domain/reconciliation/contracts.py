"""Shared reconciliation contracts.

This module intentionally holds only:
- the per-kind handler protocol and the context handed to handlers
- the report produced by one ``Reconciler.apply`` run
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from stackwire.domain.model import ResourceStatus

if TYPE_CHECKING:
    from stackwire.domain.errors import ReconciliationError
    from stackwire.domain.model import ResolvedResource, ResourceKind, ResourceSpec
    from stackwire.domain.ports import CloudServices

    from .cancellation import CancellationToken
    from .waiter import PollingPolicy


type Outputs = Mapping[str, object]


@dataclass(slots=True, kw_only=True)
class HandlerContext:
    """Collaborators available to every resource handler."""

    services: CloudServices
    policy: PollingPolicy
    cancellation: CancellationToken


class ResourceHandler(Protocol):
    """Idempotent create-or-update for one resource kind.

    ``inputs`` are fully substituted: no reference tokens remain.
    """

    async def __call__(
        self,
        spec: ResourceSpec,
        inputs: Mapping[str, object],
        context: HandlerContext,
    ) -> Outputs: ...


type HandlersByKind = Mapping[ResourceKind, ResourceHandler]


@dataclass(slots=True)
class ReconciliationReport:
    """Complete outcome of one reconciliation pass.

    ``resources`` maps every node of the graph to its resolved state, including
    nodes that failed, were skipped, or were interrupted by cancellation.
    """

    resources: dict[str, ResolvedResource] = field(
        default_factory=dict["str", "ResolvedResource"]
    )
    invocation_order: list[str] = field(default_factory=list["str"])
    failures: dict[str, ReconciliationError] = field(
        default_factory=dict["str", "ReconciliationError"]
    )
    skipped: dict[str, str] = field(default_factory=dict["str", "str"])
    interrupted: tuple[str, ...] = ()
    cancelled: bool = False

    def __getitem__(self, name: str) -> ResolvedResource:
        return self.resources[name]

    def __contains__(self, name: object) -> bool:
        return name in self.resources

    @property
    def ok(self) -> bool:
        return not self.cancelled and all(
            resource.status is ResourceStatus.VALIDATED for resource in self.resources.values()
        )

    @property
    def succeeded(self) -> tuple[str, ...]:
        return tuple(
            name
            for name, resource in self.resources.items()
            if resource.status is ResourceStatus.VALIDATED
        )

    @property
    def first_failure(self) -> ReconciliationError | None:
        """Earliest failure in invocation order."""

        for name in self.invocation_order:
            failure = self.failures.get(name)
            if failure is not None:
                return failure
        return None

    def outputs(self, name: str) -> Mapping[str, object]:
        return self.resources[name].outputs
