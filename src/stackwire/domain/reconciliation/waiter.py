"""Waiting for asynchronously confirmed validations.

The waiter publishes a challenge once and then polls the external authority on
an exponential backoff until it reports success or failure, or the polling
budget runs out. Sleeping goes through the cancellation token so a cancelled
run stops polling immediately. The published record is never retracted here.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from stackwire.domain.errors import ValidationRejectedError, ValidationTimeoutError
from stackwire.domain.model import ResolvedResource, ResourceStatus, ValidationStatus

from .cancellation import CancellationToken

if TYPE_CHECKING:
    from tenacity import RetryCallState
    from tenacity.stop import StopBaseT
    from tenacity.wait import WaitBaseT

    from stackwire.domain.model import ResourceSpec, ValidationChallenge

type PublishChallenge = Callable[[ValidationChallenge], Awaitable[None]]
type PollValidation = Callable[[], Awaitable[ValidationStatus]]
type Sleep = Callable[[float], Awaitable[None]]

log = getLogger(__name__)

_BUDGET_EPSILON = 1e-9


class _stop_when_budget_spent(stop_base):
    """Stop once the scheduled sleeps have used up ``budget`` seconds."""

    def __init__(self, budget: float) -> None:
        self.budget = budget

    def __call__(self, retry_state: RetryCallState) -> bool:
        return self.budget - retry_state.idle_for <= _BUDGET_EPSILON


class _wait_within_budget(wait_base):
    """Trim ``wait`` so the total scheduled sleep never exceeds ``budget``."""

    def __init__(self, wait: WaitBaseT, budget: float) -> None:
        self.wait = wait
        self.budget = budget

    def __call__(self, retry_state: RetryCallState) -> float:
        remaining = max(self.budget - retry_state.idle_for, 0.0)
        return min(self.wait(retry_state), remaining)


@dataclass(frozen=True, slots=True)
class PollingPolicy:
    """Bounded exponential backoff for validation polling.

    The n-th sleep is ``initial_interval * multiplier ** (n - 1)`` capped at
    ``max_interval``. ``max_total_wait`` bounds the summed sleeps between polls:
    the last sleep is shortened to fit, one final poll follows it, and polling
    then stops. ``max_attempts`` caps the number of polls.
    """

    initial_interval: float = 5.0
    multiplier: float = 2.0
    max_interval: float = 60.0
    max_total_wait: float = 45 * 60.0
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if self.initial_interval < 0 or self.max_interval < 0 or self.max_total_wait < 0:
            raise ValueError("Polling intervals must be non-negative")
        if self.multiplier < 1:
            raise ValueError("Polling multiplier must be at least 1")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def stop_condition(self) -> StopBaseT:
        condition: StopBaseT = _stop_when_budget_spent(self.max_total_wait)
        if self.max_attempts is not None:
            condition = condition | stop_after_attempt(self.max_attempts)
        return condition

    def wait_strategy(self) -> WaitBaseT:
        backoff = wait_exponential(
            multiplier=self.initial_interval,
            exp_base=self.multiplier,
            max=self.max_interval,
        )
        return _wait_within_budget(backoff, self.max_total_wait)


def _still_pending(status: ValidationStatus) -> bool:
    return status is ValidationStatus.PENDING


async def wait_for_validation(
    challenge: ValidationChallenge,
    *,
    spec: ResourceSpec,
    publish: PublishChallenge,
    poll: PollValidation,
    policy: PollingPolicy,
    cancellation: CancellationToken | None = None,
    sleep: Sleep | None = None,
) -> ResolvedResource:
    """Publish ``challenge`` once, then poll until the authority decides.

    Returns a validated ``ResolvedResource`` for ``spec``. Raises
    ``ValidationRejectedError`` on an explicit failure, ``ValidationTimeoutError``
    when the budget is exhausted and ``OperationCancelledError`` when the token
    is cancelled.
    """

    token = cancellation or CancellationToken()
    token.raise_if_cancelled()

    await publish(challenge)
    log.info("Published validation record %s for %s", challenge.record_name, spec.name)

    attempts = 0

    async def poll_once() -> ValidationStatus:
        nonlocal attempts
        token.raise_if_cancelled()
        attempts += 1
        status = await poll()
        log.debug("Validation poll %s for %s: %s", attempts, challenge.expected_fqdn, status)
        return status

    retrying = AsyncRetrying(
        sleep=sleep or token.sleep,
        stop=policy.stop_condition(),
        wait=policy.wait_strategy(),
        retry=retry_if_result(_still_pending),
    )
    try:
        status = await retrying(poll_once)
    except RetryError as exc:
        raise ValidationTimeoutError(challenge.expected_fqdn, attempts) from exc

    if status is ValidationStatus.FAILURE:
        raise ValidationRejectedError(challenge.expected_fqdn, attempts)

    log.info("Validation of %s confirmed after %s polls", challenge.expected_fqdn, attempts)
    return ResolvedResource(
        spec=spec,
        status=ResourceStatus.VALIDATED,
        outputs={
            "fqdn": challenge.expected_fqdn,
            "record_name": challenge.record_name,
            "attempts": attempts,
        },
    )
