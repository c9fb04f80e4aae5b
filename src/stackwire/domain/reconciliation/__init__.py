"""Reconciliation core: apply a resource graph against external services.

Layered flow for one run:
1) substitute reference tokens with upstream outputs
2) call the kind's idempotent create-or-update handler
3) wait for asynchronous validation where the kind requires it
4) record outputs/status and release dependents (or skip them on failure)
"""

from __future__ import annotations

from .cancellation import CancellationToken
from .contracts import HandlerContext, ReconciliationReport, ResourceHandler
from .engine import Reconciler
from .handlers import DEFAULT_HANDLERS
from .resolve import substitute, substitute_inputs
from .waiter import PollingPolicy, wait_for_validation

__all__ = [
    "DEFAULT_HANDLERS",
    "CancellationToken",
    "HandlerContext",
    "PollingPolicy",
    "ReconciliationReport",
    "Reconciler",
    "ResourceHandler",
    "substitute",
    "substitute_inputs",
    "wait_for_validation",
]
