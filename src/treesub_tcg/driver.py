from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence

from .checkpoint import CheckpointRecord, CheckpointStore
from .context import RunContext
from .executor import StepResult
from .runlog import RunLog
from .stages import Stage
from .validate import validate_outputs


DONE = "DONE"
ABORTED = "ABORTED"


class Executor(Protocol):
    def execute(self, stage: Stage) -> StepResult: ...


@dataclass
class PipelineOutcome:
    status: str
    completed: list[int] = field(default_factory=list)
    failed_stage: Stage | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == DONE


class PipelineDriver:
    """Runs the stages after the resume point in order, stopping at the first failure.

    The stage list is fixed when the driver is built, so abbreviated mode is
    decided once per invocation. A stage's checkpoint record is appended only
    after its external tools succeeded and every required output is non-empty.
    """

    def __init__(
        self,
        *,
        context: RunContext,
        stages: Sequence[Stage],
        executor: Executor,
        store: CheckpointStore,
        log: RunLog,
    ) -> None:
        indices = [stage.index for stage in stages]
        if indices != list(range(1, len(indices) + 1)):
            raise ValueError(f"Stage indices must be contiguous from 1, got {indices}")
        self.context = context
        self.stages = tuple(stages)
        self.executor = executor
        self.store = store
        self.log = log
        self._resume: CheckpointRecord | None = None

    def resume_point(self) -> CheckpointRecord:
        if self._resume is None:
            self._resume = self.store.resume_point()
        return self._resume

    def pending_stages(self) -> list[Stage]:
        last = self.resume_point().index
        return [stage for stage in self.stages if stage.index > last]

    def _abort(self, outcome: PipelineOutcome, stage: Stage, reason: str) -> PipelineOutcome:
        outcome.status = ABORTED
        outcome.failed_stage = stage
        outcome.reason = reason
        self.log.message(f"ABORTED at {stage.label}: {reason}")
        self.log.message(f"See the run log for tool output: {self.log.path}")
        return outcome

    def run(self) -> PipelineOutcome:
        resume = self.resume_point()
        total = len(self.stages)
        outcome = PipelineOutcome(status=DONE)
        if resume.index > 0:
            self.log.message(f"Resuming after stage {resume.index} ({resume.name})")

        pending = self.pending_stages()
        if not pending:
            self.log.message(f"Nothing to do: all {total} stages already completed.")
            return outcome

        for stage in pending:
            self.log.message(f"[{stage.index}/{total}] {stage.name}: starting")
            result = self.executor.execute(stage)
            if not result.ok:
                if result.command:
                    self.log.message(f"Failed command: {result.command}")
                return self._abort(outcome, stage, result.reason or "external tool failed")

            check = validate_outputs(stage.outputs(self.context))
            if not check.ok:
                return self._abort(outcome, stage, check.describe())

            self.store.append(stage.index, stage.name)
            outcome.completed.append(stage.index)
            self.log.message(
                f"[{stage.index}/{total}] {stage.name}: done in {result.runtime_sec:.1f}s"
            )

        self.log.message(f"Pipeline finished: {total} of {total} stages complete.")
        return outcome
