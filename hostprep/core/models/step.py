"""
Step, ExecutionResult and VerificationOutcome — the provisioning contract.

Steps are what the runner sequences. ExecutionResults are what the
command executor hands back. VerificationOutcomes are what the verifier
hands back. None of them outlive the process; their only trace is the
run log text.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Step(BaseModel):
    """A named provisioning step, numbered out of a known total."""

    name: str
    ordinal: int
    total: int

    @property
    def label(self) -> str:
        return f"[{self.ordinal}/{self.total}] {self.name}"


class ExecutionResult(BaseModel):
    """Outcome of one command execution.

    ``output`` holds the trailing lines of merged stdout/stderr, already
    redacted. The executor never raises; a command that could not be
    started reports exit code 127.
    """

    exit_code: int
    output: str = ""
    description: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @classmethod
    def success(cls, description: str = "", output: str = "") -> ExecutionResult:
        return cls(exit_code=0, description=description, output=output)

    @classmethod
    def failure(
        cls, description: str = "", output: str = "", exit_code: int = 1,
    ) -> ExecutionResult:
        return cls(exit_code=exit_code, description=description, output=output)


class VerificationOutcome(BaseModel):
    """Pass/fail answer to "is this component correctly installed?"."""

    component: str
    passed: bool
    message: str = ""
    detail: str = ""


class StepOutcome(BaseModel):
    """What happened when the runner reached a step."""

    step: Step
    status: Literal["ok", "skipped", "failed"] = "ok"
    critical: bool = False
    message: str = ""
    exit_code: int | None = None
    finished_at: str = Field(default_factory=_now_iso)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def failed(self) -> bool:
        return self.status == "failed"


class ProvisionReport(BaseModel):
    """Aggregate of one provisioning run plus its verification sweep."""

    outcomes: list[StepOutcome] = Field(default_factory=list)
    verifications: list[VerificationOutcome] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def verification_failed(self) -> bool:
        return any(not v.passed for v in self.verifications)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0 and not self.verification_failed

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "verification_failed": self.verification_failed,
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
            "verifications": [v.model_dump(mode="json") for v in self.verifications],
        }
