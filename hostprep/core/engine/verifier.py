"""
Component verifier — "is X correctly installed?".

A check is a side-effect-free shell command. The verifier runs it,
captures (and discards) its output, and turns the exit status into a
VerificationOutcome carrying the caller's fixed message. Nothing is
remembered between calls.

The same checks serve twice: inline, to skip a step whose target state
already holds, and at the end, in the verification sweep.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

from hostprep.core.models.step import VerificationOutcome
from hostprep.core.observability.redaction import redact
from hostprep.core.observability.run_log import RunLog

logger = logging.getLogger(__name__)


@dataclass
class VerificationCheck:
    """A named check for the verification sweep."""

    component: str
    command: str
    success_message: str = ""
    failure_message: str = ""
    timeout: int | None = None


class ComponentVerifier:
    """Run read-only check commands and report pass/fail."""

    def __init__(self, run_log: RunLog | None = None) -> None:
        self._run_log = run_log

    def probe(self, command: str, timeout: int | None = 60) -> bool:
        """Return True if *command* exits 0. Never raises."""
        return self._run(command, timeout)[0]

    def check(
        self,
        component: str,
        command: str,
        success_message: str = "",
        failure_message: str = "",
        timeout: int | None = None,
    ) -> VerificationOutcome:
        """Run *command* and report the outcome with the given messages."""
        passed, detail = self._run(command, timeout)
        if passed:
            message = success_message or f"{component} is installed"
        else:
            message = failure_message or f"{component} check failed"
        outcome = VerificationOutcome(
            component=component, passed=passed, message=message, detail=detail,
        )
        if self._run_log is not None:
            if passed:
                self._run_log.success("✓ %s", message)
            else:
                self._run_log.error("✗ %s", message)
        return outcome

    def _run(self, command: str, timeout: int | None) -> tuple[bool, str]:
        try:
            result = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                timeout=timeout,
                stdin=subprocess.DEVNULL,
            )
        except subprocess.TimeoutExpired:
            logger.debug("Check timed out after %ss: %s", timeout, redact(command))
            return False, f"timed out after {timeout}s"
        except OSError as e:
            logger.debug("Check could not run: %s", e)
            return False, str(e)

        output = redact((result.stdout or result.stderr or "").strip())
        return result.returncode == 0, output[-500:]


class VerificationSweep:
    """The final pass over every provisioned component."""

    def __init__(self, verifier: ComponentVerifier, run_log: RunLog | None = None) -> None:
        self._verifier = verifier
        self._run_log = run_log

    def run(self, checks: list[VerificationCheck]) -> list[VerificationOutcome]:
        if self._run_log is not None:
            self._run_log.info("\nVerifying installation (%d checks)...", len(checks))

        outcomes = [
            self._verifier.check(
                c.component,
                c.command,
                success_message=c.success_message,
                failure_message=c.failure_message,
                timeout=c.timeout,
            )
            for c in checks
        ]

        if self._run_log is not None:
            failed = sum(1 for o in outcomes if not o.passed)
            if failed:
                self._run_log.error("Verification failed for %d of %d components", failed, len(outcomes))
            else:
                self._run_log.success("All %d components verified", len(outcomes))
        return outcomes

    @staticmethod
    def passed(outcomes: list[VerificationOutcome]) -> bool:
        return all(o.passed for o in outcomes)
