"""Recorded outcome of operations that touch both stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import INFO, WARNING, getLogger
from typing import TYPE_CHECKING

from userbridge.domain.model import StepStatus

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StepOutcome:
    step: str
    status: StepStatus
    detail: str | None = None


@dataclass(slots=True)
class SagaRecord:
    """Ordered per-step outcomes of one lifecycle operation.

    The two stores are never changed atomically. A record with both succeeded and
    failed steps describes a partially applied operation.
    """

    operation: str
    local_id: UUID | None = None
    external_id: str | None = None
    username: str | None = None
    steps: list[StepOutcome] = field(default_factory=list)

    def succeeded(self, step: str, detail: str | None = None) -> None:
        self.steps.append(StepOutcome(step, StepStatus.SUCCEEDED, detail))

    def failed(self, step: str, detail: str | None = None) -> None:
        self.steps.append(StepOutcome(step, StepStatus.FAILED, detail))

    def skipped(self, step: str, detail: str | None = None) -> None:
        self.steps.append(StepOutcome(step, StepStatus.SKIPPED, detail))

    def status_of(self, step: str) -> StepStatus | None:
        for outcome in reversed(self.steps):
            if outcome.step == step:
                return outcome.status
        return None

    @property
    def has_failures(self) -> bool:
        return any(outcome.status is StepStatus.FAILED for outcome in self.steps)

    @property
    def is_partial(self) -> bool:
        return self.has_failures and any(
            outcome.status is StepStatus.SUCCEEDED for outcome in self.steps
        )

    def describe(self) -> str:
        steps = ", ".join(f"{outcome.step}={outcome.status}" for outcome in self.steps)
        return (
            f"{self.operation} local_id={self.local_id} external_id={self.external_id} "
            f"username={self.username} [{steps}]"
        )


type SagaSink = Callable[[SagaRecord], None]


def log_saga(record: SagaRecord) -> None:
    """Default sink: INFO for clean runs, WARNING when a step failed."""

    level = WARNING if record.has_failures else INFO
    log.log(level, "Saga %s", record.describe())
