# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for vscs_farm/logging.py."""

import logging

from vscs_farm.logging import SecretFilter, configure_logging


def _record(msg: str, args: tuple[object, ...] = ()) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg=msg,
        args=args,
        exc_info=None,
    )


class TestSecretFilter:
    """Tests for SecretFilter class."""

    def test_filter_returns_true(self) -> None:
        """Filter never suppresses records."""
        assert SecretFilter().filter(_record("message")) is True

    def test_no_secrets_no_redaction(self) -> None:
        """Without registered secrets, messages pass through unchanged."""
        record = _record("token 0123abcd")
        SecretFilter().filter(record)
        assert record.msg == "token 0123abcd"

    def test_redacts_connection_token(self) -> None:
        """Registered connection tokens are redacted from messages."""
        SecretFilter.register_secret("0123456789abcdef")
        record = _record("Editor URL ?tkn=0123456789abcdef")
        SecretFilter().filter(record)
        assert record.msg == "Editor URL ?tkn=[REDACTED]"

    def test_redacts_in_args(self) -> None:
        """Secrets in log args are redacted, other args are untouched."""
        SecretFilter.register_secret("eyJ.payload.sig")
        record = _record("Token %s for user %d", ("eyJ.payload.sig", 42))
        SecretFilter().filter(record)
        assert record.args == ("[REDACTED]", 42)

    def test_longer_secret_masked_fully(self) -> None:
        """A secret containing another registered secret is fully masked."""
        SecretFilter.register_secret("abc")
        SecretFilter.register_secret("abcdef")
        record = _record("value abcdef")
        SecretFilter().filter(record)
        assert record.msg == "value [REDACTED]"

    def test_ignores_empty_and_none(self) -> None:
        """Empty and None values are not registered."""
        SecretFilter.register_secret("")
        SecretFilter.register_secret(None)
        assert len(SecretFilter._secrets) == 0
        assert SecretFilter._pattern is None

    def test_duplicate_registration(self) -> None:
        """Registering the same secret twice keeps one entry."""
        SecretFilter.register_secret("dup")
        SecretFilter.register_secret("dup")
        assert SecretFilter._secrets == {"dup"}

    def test_redacts_special_regex_chars(self) -> None:
        """Secrets with regex special characters are escaped."""
        SecretFilter.register_secret("pass[word].*")
        record = _record("Secret: pass[word].*")
        SecretFilter().filter(record)
        assert record.msg == "Secret: [REDACTED]"

    def test_clear_secrets(self) -> None:
        """clear_secrets removes all registered secrets."""
        SecretFilter.register_secret("secret1")
        SecretFilter.clear_secrets()
        assert len(SecretFilter._secrets) == 0
        assert SecretFilter._pattern is None


class TestTokenShapes:
    """Tests for redaction of unregistered token-shaped values."""

    def test_connection_token(self) -> None:
        """32-character hex tokens are redacted without registration."""
        token = "3f2a9c" + "0" * 26
        record = _record(f"Editor URL ?tkn={token}")
        SecretFilter().filter(record)
        assert record.msg == "Editor URL ?tkn=[REDACTED]"

    def test_access_token_in_args(self) -> None:
        """Compact access tokens are redacted from args."""
        record = _record("Token %s", ("eyJhbGciOi.eyJ1c2VySWQi.c2ln",))
        SecretFilter().filter(record)
        assert record.args == ("[REDACTED]",)

    def test_digest_untouched(self) -> None:
        """Longer hex runs such as SHA-256 digests are kept."""
        digest = "ab" * 32
        assert SecretFilter.redact(f"hash {digest}") == f"hash {digest}"

    def test_dotted_names_untouched(self) -> None:
        """Hostnames and versions are not mistaken for tokens."""
        text = "api.example.com 1.2.3 vscs_contest_c1_u1"
        assert SecretFilter.redact(text) == text


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def teardown_method(self) -> None:
        """Reset logging after each test."""
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(logging.WARNING)

    def test_sets_log_level(self) -> None:
        """configure_logging sets the root logger level."""
        configure_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_adds_single_stream_handler(self) -> None:
        """Calling twice does not duplicate handlers."""
        configure_logging()
        configure_logging()
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_custom_format(self) -> None:
        """configure_logging accepts a custom format string."""
        configure_logging(format_string="%(message)s")
        formatter = logging.getLogger().handlers[0].formatter
        assert formatter is not None
        assert formatter._fmt == "%(message)s"

    def test_secret_filter_toggle(self) -> None:
        """Secret filter is added by default and can be disabled."""
        configure_logging()
        filters = logging.getLogger().handlers[0].filters
        assert any(isinstance(f, SecretFilter) for f in filters)

        configure_logging(add_secret_filter=False)
        filters = logging.getLogger().handlers[0].filters
        assert not any(isinstance(f, SecretFilter) for f in filters)
