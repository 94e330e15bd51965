"""
Test doubles shared by the installer and push-back tests.
"""

from hostprep.core.models.step import ExecutionResult
from hostprep.core.observability.redaction import redact


class ScriptedIO:
    """Answers prompts from queues and records everything shown."""

    def __init__(self, answers=(), confirms=()):
        self.answers = list(answers)
        self.confirms = list(confirms)
        self.shown: list[str] = []
        self.prompts: list[str] = []

    def _show(self, message):
        self.shown.append(redact(message))

    info = success = warning = error = plain = _show

    def banner(self):
        pass

    def rule(self):
        pass

    def ask(self, prompt, default=""):
        self.prompts.append(prompt)
        return self.answers.pop(0) if self.answers else default

    def confirm(self, prompt, default=False):
        self.prompts.append(prompt)
        return self.confirms.pop(0) if self.confirms else default


class FakeExecutor:
    """Records commands instead of running them."""

    def __init__(self, exit_codes=None):
        self.calls: list[tuple[str, str]] = []
        self._exit_codes = exit_codes or {}

    def run(self, command, description, *, cwd=None, env=None):
        self.calls.append((command, description))
        code = self._exit_codes.get(description, 0)
        if code == 0:
            return ExecutionResult.success(description=description)
        return ExecutionResult.failure(description=description, output="boom", exit_code=code)
