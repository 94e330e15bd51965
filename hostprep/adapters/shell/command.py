"""
Shell command executor — run a command with live, logged output.

This is the most fundamental adapter: every mutating provisioning
action goes through it. Output is streamed line by line into a bounded
ring buffer (the live "last N lines" view and the failure tail) and
into the setup log. A failed command is reported, never raised: the
caller decides whether the failure is fatal.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections import deque
from pathlib import Path

from hostprep.core.models.step import ExecutionResult
from hostprep.core.observability.live_tail import LiveTail
from hostprep.core.observability.redaction import redact
from hostprep.core.observability.run_log import RunLog

logger = logging.getLogger(__name__)

# Exit status used when the command could not be started at all
EXIT_NOT_STARTED = 127


class CommandExecutor:
    """Execute shell commands, teeing output to the live view and logs.

    Args:
        run_log: Destination for output lines and failure reports.
        tail_lines: Size of the ring buffer kept for the live view and
            the errors log.
        live: Optional live view. When None, output only reaches the logs.
    """

    def __init__(
        self,
        run_log: RunLog,
        tail_lines: int = 5,
        live: LiveTail | None = None,
    ) -> None:
        self._run_log = run_log
        self._tail_lines = tail_lines
        self._live = live

    def run(
        self,
        command: str,
        description: str,
        *,
        cwd: Path | str | None = None,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        """Run *command* through the shell and return its exit code.

        stdout and stderr are merged. Every line is redacted before it
        is stored anywhere.
        """
        self._run_log.info("%s...", description)
        self._run_log.command_started(description, redact(command))

        tail: deque[str] = deque(maxlen=self._tail_lines)
        full_env = os.environ.copy()
        if env:
            full_env.update(env)

        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                command,
                shell=True,
                cwd=str(cwd) if cwd else None,
                env=full_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
            )
        except OSError as e:
            logger.debug("Cannot start %r: %s", description, e)
            self._run_log.command_failure(description, EXIT_NOT_STARTED, [str(e)])
            return ExecutionResult(
                exit_code=EXIT_NOT_STARTED,
                output=str(e),
                description=description,
            )

        try:
            if proc.stdout:
                for raw in proc.stdout:
                    line = redact(raw.rstrip("\n"))
                    tail.append(line)
                    self._run_log.output(line)
                    if self._live is not None:
                        self._live.push(line)
            exit_code = proc.wait()
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            if self._live is not None:
                self._live.close()

        elapsed_ms = int((time.monotonic() - start) * 1000)
        result = ExecutionResult(
            exit_code=exit_code,
            output="\n".join(tail),
            description=description,
            duration_ms=elapsed_ms,
        )

        if result.ok:
            logger.debug("%s finished in %dms", description, elapsed_ms)
        else:
            self._run_log.command_failure(description, exit_code, list(tail))

        return result
