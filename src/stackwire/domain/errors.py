"""Error taxonomy for graph building, reconciliation, validation and seeding."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from stackwire.domain.model import Reference
    from stackwire.domain.reconciliation.contracts import ReconciliationReport


class StackwireError(Exception):
    """Base class for all stackwire errors."""


class GraphError(StackwireError):
    """Raised while building a resource graph; fatal before any external call."""


class DuplicateResourceError(GraphError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Resource name declared more than once: {name}")
        self.name = name


class UnknownReferenceError(GraphError):
    def __init__(self, resource: str, target: str) -> None:
        super().__init__(f"Resource {resource!r} references unknown resource {target!r}")
        self.resource = resource
        self.target = target


class CycleError(GraphError):
    def __init__(self, cycle: Sequence[str]) -> None:
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")
        self.cycle = tuple(cycle)


class UnresolvedDependencyError(StackwireError):
    """Raised when an upstream output is absent at substitution time."""

    def __init__(self, resource: str, reference: Reference, reason: str) -> None:
        super().__init__(f"Resource {resource!r} cannot resolve {reference}: {reason}")
        self.resource = resource
        self.reference = reference


class ReconciliationError(StackwireError):
    """A create-or-update call for one node failed."""

    def __init__(self, node: str, cause: BaseException) -> None:
        super().__init__(f"Reconciliation of {node!r} failed: {cause}")
        self.node = node
        self.cause = cause


class ValidationError(StackwireError):
    """Base class for certificate validation failures."""


class ValidationTimeoutError(ValidationError):
    def __init__(self, fqdn: str, attempts: int) -> None:
        super().__init__(f"Validation of {fqdn} not confirmed after {attempts} polls")
        self.fqdn = fqdn
        self.attempts = attempts


class ValidationRejectedError(ValidationError):
    def __init__(self, fqdn: str, attempts: int) -> None:
        super().__init__(f"Validation of {fqdn} rejected after {attempts} polls")
        self.fqdn = fqdn
        self.attempts = attempts


class SeedIntegrityError(StackwireError):
    """Seed batch violates referential integrity; nothing was written."""


class OperationCancelledError(StackwireError):
    """Raised when a cancellation token aborts an operation.

    ``report`` is attached when the cancellation interrupted ``Reconciler.apply``
    and holds the partial state at the moment of cancellation.
    """

    def __init__(
        self,
        message: str = "Operation cancelled",
        *,
        report: ReconciliationReport | None = None,
    ) -> None:
        super().__init__(message)
        self.report = report


class ServiceError(StackwireError):
    """An external service call failed."""

    def __init__(self, operation: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.status_code = status_code


class DeploymentError(StackwireError):
    """Reconciliation finished with failures or skipped resources, or seeding failed."""

    def __init__(
        self,
        report: ReconciliationReport,
        *,
        seed_error: StackwireError | None = None,
    ) -> None:
        failure = report.first_failure
        if failure is not None:
            detail = f"first failure: {failure.node}"
        elif seed_error is not None:
            detail = f"seeding failed: {seed_error}"
        else:
            detail = "incomplete"
        super().__init__(f"Deployment did not converge ({detail})")
        self.report = report
        self.seed_error = seed_error
