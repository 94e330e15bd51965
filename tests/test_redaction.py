"""
Tests for secret redaction and logging setup.
"""

import logging
import sys

from hostprep.core.observability.logging_config import _parse_level, setup_logging
from hostprep.core.observability.redaction import (
    PLACEHOLDER,
    RedactingFilter,
    redact,
    register_secret,
)


class TestRedact:
    def test_replaces_every_occurrence(self):
        register_secret("ghp_abcdef")
        text = "https://ghp_abcdef@github.com and again ghp_abcdef"
        assert redact(text) == f"https://{PLACEHOLDER}@github.com and again {PLACEHOLDER}"

    def test_nothing_registered(self):
        assert redact("plain text") == "plain text"

    def test_short_tokens_still_hidden(self):
        register_secret("k9")
        assert redact("key=k9;") == f"key={PLACEHOLDER};"

    def test_empty_value_not_registered(self):
        register_secret("")
        register_secret(None)
        assert redact("plain text") == "plain text"

    def test_longest_first(self):
        register_secret("token")
        register_secret("token-extended")
        assert redact("token-extended") == PLACEHOLDER

    def test_explicit_secrets(self):
        assert redact("x secret1 y", {"secret1"}) == f"x {PLACEHOLDER} y"


class TestRedactingFilter:
    def test_rewrites_formatted_message(self):
        register_secret("ghp_zzzz9999")
        record = logging.LogRecord(
            "t", logging.INFO, __file__, 1, "cloning %s", ("https://ghp_zzzz9999@github.com",), None,
        )
        assert RedactingFilter().filter(record)
        assert record.getMessage() == f"cloning https://{PLACEHOLDER}@github.com"

    def test_secret_registered_after_filter_is_built(self):
        f = RedactingFilter()
        register_secret("late-secret")
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "late-secret", None, None)
        f.filter(record)
        assert record.getMessage() == PLACEHOLDER

    def test_traceback_redacted(self):
        register_secret("ghp_trace1234")
        try:
            raise RuntimeError("auth failed for ghp_trace1234")
        except RuntimeError:
            record = logging.LogRecord(
                "t", logging.ERROR, __file__, 1, "clone raised", None, sys.exc_info(),
            )

        RedactingFilter().filter(record)
        formatted = logging.Formatter().format(record)

        assert "RuntimeError" in formatted
        assert "ghp_trace1234" not in formatted
        assert PLACEHOLDER in formatted


class TestSetupLogging:
    def test_parse_level(self):
        assert _parse_level("debug") == logging.DEBUG
        assert _parse_level("bogus") == logging.WARNING
        assert _parse_level(None) == logging.WARNING

    def test_file_handler_redacts(self, tmp_path):
        log_file = tmp_path / "hostprep.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")
        register_secret("ghp_filetoken")

        logging.getLogger("hostprep.test").debug("token is %s", "ghp_filetoken")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text()
        assert PLACEHOLDER in content
        assert "ghp_filetoken" not in content

        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
