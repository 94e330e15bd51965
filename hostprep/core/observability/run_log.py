"""
Run log — what an operator sees and keeps from one invocation.

Every run writes two append-only files under the log directory:

    setup_<ts>.log   — every step, message and command output line
    errors_<ts>.log  — failures only, with the output tail that led to them

Console output is colored through click. All three sinks share a
RedactingFilter so registered secrets never reach them.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from pathlib import Path

import click

from hostprep.core.models.step import Step
from hostprep.core.observability.redaction import RedactingFilter

logger = logging.getLogger(__name__)

_FMT_FILE = "%(asctime)s [%(levelname)s] %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"
_STAMP_FMT = "%Y%m%d_%H%M%S"

_LEVEL_COLORS = {
    logging.DEBUG: None,
    logging.INFO: "blue",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}

_STYLE_COLORS = {
    "success": "green",
    "step": "cyan",
    "plain": None,
}


class ClickConsoleHandler(logging.Handler):
    """Echo records to the terminal with click colors.

    Records logged with ``extra={"console": False}`` are file-only.
    """

    def emit(self, record: logging.LogRecord) -> None:
        if not getattr(record, "console", True):
            return
        try:
            message = self.format(record)
            style = getattr(record, "style", None)
            color = _STYLE_COLORS.get(style) if style else _LEVEL_COLORS.get(record.levelno)
            click.secho(
                message,
                fg=color,
                bold=style == "step",
                err=record.levelno >= logging.ERROR,
            )
        except Exception:
            self.handleError(record)


class RunLog:
    """Console + setup log + errors log for a single run."""

    def __init__(
        self,
        log_dir: Path,
        *,
        prefix_setup: str = "setup",
        prefix_errors: str = "errors",
        console: bool = True,
        stamp: str | None = None,
    ) -> None:
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.stamp = stamp or datetime.now().strftime(_STAMP_FMT)
        self.setup_path = self.log_dir / f"{prefix_setup}_{self.stamp}.log"
        self.errors_path = self.log_dir / f"{prefix_errors}_{self.stamp}.log"

        self._logger = logging.getLogger(f"hostprep.run.{uuid.uuid4().hex[:8]}")
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False

        redactor = RedactingFilter()
        file_fmt = logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE)

        setup_handler = logging.FileHandler(self.setup_path, mode="a", encoding="utf-8")
        setup_handler.setLevel(logging.DEBUG)
        setup_handler.setFormatter(file_fmt)
        setup_handler.addFilter(redactor)

        errors_handler = logging.FileHandler(self.errors_path, mode="a", encoding="utf-8")
        errors_handler.setLevel(logging.ERROR)
        errors_handler.setFormatter(file_fmt)
        errors_handler.addFilter(redactor)

        self._handlers: list[logging.Handler] = [setup_handler, errors_handler]

        if console:
            console_handler = ClickConsoleHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.setFormatter(logging.Formatter("%(message)s"))
            console_handler.addFilter(redactor)
            self._handlers.append(console_handler)

        for handler in self._handlers:
            self._logger.addHandler(handler)

        logger.debug("Run log opened: %s", self.setup_path)

    # ── Messages ────────────────────────────────────────────────

    def step(self, step: Step) -> None:
        self._logger.info("\n%s", step.label, extra={"style": "step"})

    def info(self, message: str, *args: object) -> None:
        self._logger.info(message, *args)

    def success(self, message: str, *args: object) -> None:
        self._logger.info(message, *args, extra={"style": "success"})

    def plain(self, message: str, *args: object) -> None:
        self._logger.info(message, *args, extra={"style": "plain"})

    def warning(self, message: str, *args: object) -> None:
        self._logger.warning(message, *args)

    def error(self, message: str, *args: object) -> None:
        self._logger.error(message, *args)

    # ── Command output ──────────────────────────────────────────

    def output(self, line: str) -> None:
        """Record one line of command output (setup log only)."""
        self._logger.debug("  | %s", line, extra={"console": False})

    def command_started(self, description: str, command: str) -> None:
        self._logger.debug("%s: %s", description, command, extra={"console": False})

    def command_failure(self, description: str, exit_code: int, tail: list[str]) -> None:
        """Record a failed command in both files, tail included."""
        self._logger.error(
            "%s failed (exit code %d)", description, exit_code,
        )
        if tail:
            self._logger.error(
                "Last %d lines of output:\n%s",
                len(tail),
                "\n".join(f"  | {line}" for line in tail),
                extra={"console": False},
            )

    # ── Lifecycle ───────────────────────────────────────────────

    def close(self) -> None:
        for handler in self._handlers:
            self._logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()

    def __enter__(self) -> RunLog:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
