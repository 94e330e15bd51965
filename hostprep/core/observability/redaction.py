"""
Secret redaction — keep tokens out of consoles and log files.

Secrets are registered once (the installer registers the GitHub token
as soon as it reads it) and every console line and log record is passed
through ``redact`` before it is written.

Module-level singleton (not a class): set once, read everywhere.
"""

from __future__ import annotations

import logging

PLACEHOLDER = "[HIDDEN_TOKEN]"

_FORMATTER = logging.Formatter()

_secrets: set[str] = set()


def register_secret(value: str | None) -> None:
    """Add a value that must never be displayed or logged."""
    if value:
        _secrets.add(value)


def clear_secrets() -> None:
    """Forget every registered secret."""
    _secrets.clear()


def redact(text: str, secrets: set[str] | frozenset[str] | None = None) -> str:
    """Replace every occurrence of every secret in *text*.

    Longer secrets are replaced first so that a secret containing
    another one is hidden whole.
    """
    if not text:
        return text
    values = _secrets if secrets is None else secrets
    for secret in sorted(values, key=len, reverse=True):
        if secret in text:
            text = text.replace(secret, PLACEHOLDER)
    return text


class RedactingFilter(logging.Filter):
    """Logging filter that rewrites records with secrets hidden.

    With no explicit secrets it uses the module registry, so secrets
    registered after the handler was built are still hidden.
    """

    def __init__(self, secrets: set[str] | None = None) -> None:
        super().__init__()
        self._secrets = secrets

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message, self._secrets)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        # Handlers reuse exc_text when it is set, so format the traceback here
        if record.exc_info and not record.exc_text:
            record.exc_text = _FORMATTER.formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = redact(record.exc_text, self._secrets)
        if record.stack_info:
            record.stack_info = redact(record.stack_info, self._secrets)
        return True
