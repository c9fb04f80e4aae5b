"""Orchestrator for the reconciliation subsystem.

The reconciler walks a ``ResourceGraph`` and drives one create-or-update call
per node through the kind's handler. Scheduling rules:
- a node starts only after every dependency is validated
- nodes without a mutual dependency run concurrently as asyncio tasks
- a failed node keeps all of its descendants pending (reported as skipped);
  independent branches carry on
- a cancelled token interrupts in-flight nodes and leaves finished ones intact

Each ``ResolvedResource`` is written only by the task processing its node.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from stackwire.domain.errors import OperationCancelledError, ReconciliationError
from stackwire.domain.model import ResolvedResource, ResourceStatus

from .cancellation import CancellationToken
from .contracts import HandlerContext, ReconciliationReport
from .handlers import DEFAULT_HANDLERS, VALIDATION_GATED_KINDS
from .resolve import substitute_inputs
from .waiter import PollingPolicy

if TYPE_CHECKING:
    from stackwire.domain.graph import ResourceGraph
    from stackwire.domain.model import ResourceSpec
    from stackwire.domain.ports import CloudServices

    from .contracts import HandlersByKind

log = getLogger(__name__)


@dataclass(slots=True)
class Reconciler:
    """Apply a resource graph against the configured cloud services."""

    services: CloudServices
    policy: PollingPolicy = field(default_factory=PollingPolicy)
    handlers: HandlersByKind = field(default_factory=lambda: DEFAULT_HANDLERS)
    max_concurrency: int | None = None

    async def apply(
        self,
        graph: ResourceGraph,
        *,
        cancellation: CancellationToken | None = None,
    ) -> ReconciliationReport:
        """Reconcile every node of ``graph`` and return the complete report.

        Failures are collected in the report rather than raised. Raises
        ``OperationCancelledError`` (carrying the partial report) when
        ``cancellation`` fires.
        """

        token = cancellation or CancellationToken()
        report = ReconciliationReport(
            resources={spec.name: ResolvedResource(spec=spec) for spec in graph.specs}
        )
        if token.cancelled:
            report.cancelled = True
            raise OperationCancelledError("Reconciliation cancelled before start", report=report)

        context = HandlerContext(services=self.services, policy=self.policy, cancellation=token)
        limiter = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        position = {name: index for index, name in enumerate(graph.names)}
        remaining = {name: len(graph.dependencies(name)) for name in graph.names}
        ready = [name for name in graph.names if remaining[name] == 0]
        running: dict[asyncio.Task[None], str] = {}
        cancel_watch = asyncio.ensure_future(token.wait())

        log.info("Reconciling %s resources", len(graph))
        try:
            while ready or running:
                for name in ready:
                    task = asyncio.create_task(
                        self._reconcile_node(graph.spec(name), report, context, limiter),
                        name=f"reconcile:{name}",
                    )
                    running[task] = name
                ready = []

                done, _pending = await asyncio.wait(
                    {*running, cancel_watch},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if token.cancelled:
                    await self._interrupt(running, report)
                    raise OperationCancelledError("Reconciliation cancelled", report=report)

                for task in sorted(
                    (task for task in done if task is not cancel_watch),
                    key=lambda finished: position[running[finished]],
                ):
                    name = running.pop(task)
                    task.result()
                    if report.resources[name].validated:
                        for dependent in graph.dependents(name):
                            remaining[dependent] -= 1
                            if remaining[dependent] == 0:
                                ready.append(dependent)
                    else:
                        for descendant in graph.descendants(name):
                            report.skipped.setdefault(descendant, name)
        finally:
            cancel_watch.cancel()
            for task in running:
                task.cancel()
            if running:
                await asyncio.gather(*running, return_exceptions=True)

        log.info(
            "Reconciliation finished: %s validated, %s failed, %s skipped",
            len(report.succeeded),
            len(report.failures),
            len(report.skipped),
        )
        return report

    async def _reconcile_node(
        self,
        spec: ResourceSpec,
        report: ReconciliationReport,
        context: HandlerContext,
        limiter: asyncio.Semaphore | None,
    ) -> None:
        resource = report.resources[spec.name]
        async with limiter if limiter is not None else contextlib.nullcontext():
            resource.status = ResourceStatus.IN_PROGRESS
            report.invocation_order.append(spec.name)
            if spec.kind in VALIDATION_GATED_KINDS:
                log.info("Reconciling %s (%s), awaiting validation", spec.name, spec.kind)
            else:
                log.info("Reconciling %s (%s)", spec.name, spec.kind)
            try:
                inputs = substitute_inputs(spec.name, spec.inputs, report.resources)
                handler = self.handlers[spec.kind]
                outputs = await handler(spec, inputs, context)
            except Exception as exc:
                if isinstance(exc, OperationCancelledError) and context.cancellation.cancelled:
                    raise
                resource.status = ResourceStatus.FAILED
                resource.error = exc
                report.failures[spec.name] = ReconciliationError(spec.name, exc)
                log.warning("Reconciliation of %s failed: %s", spec.name, exc)
                return

        resource.outputs = dict(outputs)
        resource.status = ResourceStatus.VALIDATED
        log.debug("Reconciled %s: %s", spec.name, sorted(resource.outputs))

    async def _interrupt(
        self,
        running: dict[asyncio.Task[None], str],
        report: ReconciliationReport,
    ) -> None:
        for task in running:
            task.cancel()
        await asyncio.gather(*running, return_exceptions=True)
        running.clear()
        report.cancelled = True
        report.interrupted = tuple(
            name
            for name in report.invocation_order
            if report.resources[name].status is ResourceStatus.IN_PROGRESS
        )
        log.warning("Reconciliation cancelled; interrupted: %s", ", ".join(report.interrupted))
