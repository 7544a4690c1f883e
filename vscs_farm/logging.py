# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Centralized logging configuration with secret redaction.

Two kinds of secrets must never reach the log output:

- Configuration secrets (the token signing secret, the ``aoi`` session
  token) are registered once with ``SecretFilter.register_secret``.
- Per-request values (forwarded access tokens and per-container
  connection tokens) are never registered.  They are masked by shape
  instead: compact ``eyJ...`` access tokens and 32-character hex
  connection tokens.

Usage:
    # In entry points (vscs-farm, aoi)
    from vscs_farm.logging import configure_logging
    configure_logging(level=logging.INFO)

    # In library modules
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Starting container: %s", name)
"""

import logging
import re
from typing import ClassVar


REDACTED = "[REDACTED]"

# Compact tokens whose header is a base64url JSON object, and bare
# 32-character hex connection tokens.
TOKEN_PATTERN = re.compile(
    r"\beyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*"
    r"|(?<![0-9A-Fa-f])[0-9a-f]{32}(?![0-9A-Fa-f])"
)


class SecretFilter(logging.Filter):
    """Logging filter that redacts secrets from log output.

    Token-shaped values matching ``TOKEN_PATTERN`` are always redacted.
    Additional fixed secrets can be registered using register_secret();
    the registry is meant for configuration values and never grows per
    request.

    Example:
        filter = SecretFilter()
        filter.register_secret("signing-secret")
        logger.addFilter(filter)
        logger.info("Secret: signing-secret")
        # Output: "Secret: [REDACTED]"
    """

    _secrets: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None

    @classmethod
    def redact(cls, text: str) -> str:
        """Return ``text`` with every known secret replaced."""
        text = TOKEN_PATTERN.sub(REDACTED, text)
        if cls._pattern is not None:
            text = cls._pattern.sub(REDACTED, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log record by redacting secrets.

        Args:
            record: The log record to filter.

        Returns:
            Always True (record is never suppressed, only modified).
        """
        record.msg = self.redact(str(record.msg))
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                self.redact(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True

    @classmethod
    def register_secret(cls, secret: str | None) -> None:
        """Register a secret to be redacted from all log output.

        Args:
            secret: The secret string to redact. Empty values are ignored.
        """
        if secret and secret not in cls._secrets:
            cls._secrets.add(secret)
            cls._rebuild_pattern()

    @classmethod
    def clear_secrets(cls) -> None:
        """Clear all registered secrets. Primarily for testing."""
        cls._secrets.clear()
        cls._pattern = None

    @classmethod
    def _rebuild_pattern(cls) -> None:
        """Rebuild the compiled regex pattern from registered secrets."""
        if cls._secrets:
            # Longest first so a secret containing another is fully masked
            ordered = sorted(cls._secrets, key=len, reverse=True)
            cls._pattern = re.compile("|".join(re.escape(s) for s in ordered))
        else:
            cls._pattern = None


def configure_logging(
    level: int = logging.INFO,
    format_string: str | None = None,
    add_secret_filter: bool = True,
) -> None:
    """Configure logging for the application.

    Sets up the root logger with a standard format and optional
    secret redaction filter.

    Args:
        level: The logging level (e.g., logging.INFO, logging.DEBUG).
        format_string: Custom format string. If None, uses default format.
        add_secret_filter: Whether to add the SecretFilter to redact secrets.
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format_string))

    if add_secret_filter:
        handler.addFilter(SecretFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)

    root_logger.addHandler(handler)
