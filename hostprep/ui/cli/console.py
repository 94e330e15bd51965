"""
Terminal interaction for the interactive installer.

Messages go through the run log when there is one (console + setup
log), straight to click otherwise. Prompts use click. Everything shown
is redacted first.
"""

from __future__ import annotations

import click

from hostprep.core.observability.redaction import redact
from hostprep.core.observability.run_log import RunLog

BANNER = r"""
  _               _
 | |__   ___  ___| |_ _ __  _ __ ___ _ __
 | '_ \ / _ \/ __| __| '_ \| '__/ _ \ '_ \
 | | | | (_) \__ \ |_| |_) | | |  __/ |_) |
 |_| |_|\___/|___/\__| .__/|_|  \___| .__/
                     |_|            |_|
"""

RULE = "-" * 53

_COLORS = {"info": "blue", "success": "green", "warning": "yellow", "error": "red", "plain": None}


class TerminalIO:
    """Console output and prompts for one interactive run."""

    def __init__(self, run_log: RunLog | None = None) -> None:
        self._run_log = run_log

    # ── Output ──────────────────────────────────────────────────

    def banner(self) -> None:
        click.secho(BANNER, fg="blue")

    def rule(self) -> None:
        self.plain(RULE)

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def plain(self, message: str) -> None:
        self._emit("plain", message)

    def _emit(self, kind: str, message: str) -> None:
        message = redact(message)
        if self._run_log is not None:
            getattr(self._run_log, kind)("%s", message)
        else:
            click.secho(message, fg=_COLORS[kind], err=kind == "error")

    # ── Prompts ─────────────────────────────────────────────────

    def ask(self, prompt: str, default: str = "") -> str:
        answer = click.prompt(
            prompt, default=default, show_default=bool(default), type=str,
        )
        return answer.strip()

    def confirm(self, prompt: str, default: bool = False) -> bool:
        return click.confirm(prompt, default=default)
