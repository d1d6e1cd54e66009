#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Logging configuration and utilities for jiracli.

This module provides logging setup with credential masking to prevent
passwords and session cookies from being written to the terminal.

Features:
    - Named package logger that components receive at construction
    - Automatic credential masking (passwords, tokens, session cookies)
    - Verbosity controlled by ``-v`` flags or the ``JIRA_DEBUG`` variable
"""
import logging
import os
import re
import sys
from typing import List, Optional, Pattern


LOGGER_NAME = "jiracli"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-5s [%(filename)s:%(lineno)d] %(message)s"

# Patterns for sensitive data that should be masked in logs
SENSITIVE_PATTERNS: List[Pattern] = [
    re.compile(r'(api[_-]?token|apitoken)["\s:=]+["\']?([A-Za-z0-9_\-\.]+)["\']?', re.I),
    re.compile(r'(Bearer\s+)([A-Za-z0-9_\-\.]+)', re.I),
    re.compile(r'(Basic\s+)([A-Za-z0-9+/=]+)', re.I),
    # Passwords
    re.compile(r'(password|passwd|pwd)["\s:=]+["\']?([^\s"\',]+)["\']?', re.I),
    # Session cookies
    re.compile(r'(JSESSIONID|cloud\.session\.token|atlassian\.xsrf\.token)["\s:=]+["\']?([^\s"\';,]+)["\']?', re.I),
]


class CredentialMaskingFilter(logging.Filter):
    """Logging filter that masks sensitive credentials in log messages.

    Example::

        logger = logging.getLogger("jiracli")
        logger.addFilter(CredentialMaskingFilter())
        logger.info("Logging in with password=secret123")
        # Logged as: "Logging in with password***MASKED***"
    """

    MASK = "***MASKED***"

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and mask sensitive data in log records.

        :param record: The log record to process
        :return: True to include the record in output
        """
        if record.msg:
            record.msg = self._mask_sensitive_data(str(record.msg))
        if record.args:
            record.args = tuple(
                self._mask_sensitive_data(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True

    def _mask_sensitive_data(self, message: str) -> str:
        for pattern in SENSITIVE_PATTERNS:
            message = pattern.sub(rf'\1{self.MASK}', message)
        return message


class SecureFormatter(logging.Formatter):
    """Logging formatter that masks credentials in formatted output.

    Even if credentials slip through the filter (for instance inside an
    exception traceback) they are masked in the final formatted output.
    """

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        for pattern in SENSITIVE_PATTERNS:
            formatted = pattern.sub(rf'\1{CredentialMaskingFilter.MASK}', formatted)
        return formatted


logger = logging.getLogger(LOGGER_NAME)
credential_filter = CredentialMaskingFilter()
logger.addFilter(credential_filter)
# Nothing is printed until the command line installs a handler.
logger.addHandler(logging.NullHandler())


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger or one of its children.

    :param name: Optional child name, e.g. ``"client"``
    :return: A logger below the ``jiracli`` hierarchy
    """
    if not name:
        return logger
    return logger.getChild(name)


def verbosity_to_level(verbosity: int) -> int:
    """Translate a ``-v`` count into a logging level.

    :param verbosity: Number of ``-v`` flags given
    :return: A :mod:`logging` level
    """
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(
    verbosity: int = 0,
    stream=None,
    fmt: Optional[str] = None,
) -> logging.Logger:
    """Install a stderr handler on the package logger.

    ``JIRA_DEBUG`` in the environment raises the level to DEBUG and
    ``JIRA_LOG_FORMAT`` replaces the default format.

    :param verbosity: Number of ``-v`` flags given on the command line
    :param stream: Stream to write to (default: ``sys.stderr``)
    :param fmt: Log format, overrides ``JIRA_LOG_FORMAT``
    :return: The configured package logger
    """
    level = verbosity_to_level(verbosity)
    if os.environ.get("JIRA_DEBUG"):
        level = logging.DEBUG

    fmt = fmt or os.environ.get("JIRA_LOG_FORMAT") or DEFAULT_FORMAT
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(SecureFormatter(fmt))
    handler.addFilter(credential_filter)

    for existing in list(logger.handlers):
        if not isinstance(existing, logging.NullHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)

    # Suppress noisy logs from underlying libraries
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return logger


def add_log(
    message: str,
    level: str,
    log: Optional[logging.Logger] = None,
) -> None:
    """Write a log entry with automatic credential masking.

    :param message: The message to log
    :param level: Log level (debug, info, warning, error)
    :param log: Logger to write to (default: the package logger)

    :return: None

    Example::

        from jiracli import add_log

        add_log("POST https://jira.example.com/rest/api/2/issue", "info")
        add_log("password=hunter2", "debug")  # password will be masked
    """
    target = log or logger
    level = level.lower()
    if level == "debug":
        target.debug(message)
    elif level == "error":
        target.error(message)
    elif level in ("warn", "warning"):
        target.warning(message)
    else:
        target.info(message)


def mask_sensitive_string(value: str) -> str:
    """Mask a string value for safe display or logging.

    :param value: The string to mask
    :return: Masked string showing only first and last 2 characters

    Example::

        mask_sensitive_string("abc123xyz789")
        # Returns: "ab***89"
    """
    if not value or len(value) < 4:
        return "***"
    return f"{value[:2]}***{value[-2:]}"
