"""
Step runner — the provisioning loop.

Sequences named steps, numbering them out of a known total. Each step
is independently idempotent: its check runs first and, when the
target state already holds, the step is skipped without calling its
apply function. A failed step is a warning and the run continues,
except for steps marked critical, which abort the run.

Flow:
    steps → check → (skip | apply) → outcome → report
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from hostprep.core.models.step import ExecutionResult, ProvisionReport, Step, StepOutcome
from hostprep.core.observability.run_log import RunLog

logger = logging.getLogger(__name__)

CheckFn = Callable[[], bool]
ApplyFn = Callable[[], ExecutionResult]


class ProvisionAbort(Exception):
    """Raised when a critical step fails."""

    def __init__(self, outcome: StepOutcome) -> None:
        super().__init__(f"Critical step failed: {outcome.step.name}: {outcome.message}")
        self.outcome = outcome


@dataclass
class ProvisionStep:
    """A step definition: what to check and what to do."""

    name: str
    apply: ApplyFn
    check: CheckFn | None = None
    critical: bool = False


class StepRunner:
    """Run provisioning steps in order and collect their outcomes."""

    def __init__(self, total: int, run_log: RunLog) -> None:
        self._total = total
        self._run_log = run_log
        self._ordinal = 0
        self.report = ProvisionReport()

    @property
    def ordinal(self) -> int:
        return self._ordinal

    def run_step(
        self,
        name: str,
        check: CheckFn | None,
        apply: ApplyFn,
        critical: bool = False,
    ) -> StepOutcome:
        """Run one step.

        Raises:
            ProvisionAbort: If a critical step's apply function fails.
        """
        self._ordinal += 1
        step = Step(name=name, ordinal=self._ordinal, total=self._total)
        self._run_log.step(step)

        if check is not None and self._satisfied(check, name):
            self._run_log.success("Already satisfied — skipping")
            return self._record(StepOutcome(
                step=step, status="skipped", critical=critical,
                message="already satisfied",
            ))

        try:
            result = apply()
        except Exception as e:
            # Apply functions wrap the executor and should not raise
            logger.exception("Step %r raised", name)
            result = ExecutionResult.failure(description=name, output=str(e))

        if result.ok:
            self._run_log.success("✓ %s", name)
            return self._record(StepOutcome(
                step=step, status="ok", critical=critical,
                message=result.description or name, exit_code=result.exit_code,
            ))

        outcome = self._record(StepOutcome(
            step=step, status="failed", critical=critical,
            message=result.output.splitlines()[-1] if result.output else f"exit code {result.exit_code}",
            exit_code=result.exit_code,
        ))
        if critical:
            self._run_log.error("✗ %s failed — cannot continue", name)
            raise ProvisionAbort(outcome)

        self._run_log.warning("⚠ %s failed — continuing", name)
        return outcome

    def run_plan(self, steps: list[ProvisionStep]) -> ProvisionReport:
        """Run every step definition in order."""
        for s in steps:
            self.run_step(s.name, s.check, s.apply, critical=s.critical)
        return self.report

    def _satisfied(self, check: CheckFn, name: str) -> bool:
        try:
            return bool(check())
        except Exception as e:
            logger.debug("Check for %r raised, treating as unsatisfied: %s", name, e)
            return False

    def _record(self, outcome: StepOutcome) -> StepOutcome:
        self.report.outcomes.append(outcome)
        return outcome
