#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Validation of user input and of edited issue documents.

The edited document is whatever mapping the user's YAML parsed into. Before
it is sent to Jira it is normalised by :func:`yaml_fixup` and its field names
are checked against the metadata Jira returned for the issue.

Example::

    from jiracli.validation import Document, validate_fields

    doc = Document.parse("fields:\\n  summary: Broken build\\n")
    validate_fields(doc, {"summary": {}, "priority": {}})
    payload = doc.to_payload()
"""
import datetime
import json
import re
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse, urlunparse

import yaml

from jiracli.exceptions import DocumentParseError, JiraValidationError


JIRA_KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*-\d+$')
PROJECT_KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')


def validate_url(url: str) -> str:
    """Validate and normalize the Jira endpoint URL.

    A missing scheme defaults to ``https://``; a trailing slash is removed.

    :param url: The URL to validate
    :return: Validated and normalized URL

    :raises JiraValidationError: If URL is invalid
    """
    if not url:
        raise JiraValidationError(
            message="URL cannot be empty",
            field="endpoint",
            value=url,
        )

    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme:
        if parsed.scheme not in ('http', 'https'):
            raise JiraValidationError(
                message=f"Invalid URL scheme: {parsed.scheme}. Use http or https.",
                field="endpoint",
                value=url,
            )
    else:
        url = f"https://{url}"
        parsed = urlparse(url)

    if not parsed.netloc:
        raise JiraValidationError(
            message="URL must include a hostname",
            field="endpoint",
            value=url,
        )

    return urlunparse(parsed).rstrip('/')


def is_issue_key(value: str) -> bool:
    """Return True if ``value`` looks like an issue key such as ``ABC-123``."""
    return bool(value) and bool(JIRA_KEY_PATTERN.match(value))


def validate_issue_key(key: str) -> str:
    """Validate a Jira issue key format.

    :param key: The issue key to validate (e.g., "PROJECT-123")
    :return: Validated issue key (uppercased)

    :raises JiraValidationError: If key format is invalid
    """
    if not key:
        raise JiraValidationError(
            message="Issue key cannot be empty",
            field="issue",
            value=key,
        )

    key = key.strip().upper()
    if not JIRA_KEY_PATTERN.match(key):
        raise JiraValidationError(
            message=f"Invalid issue key format: '{key}'. Expected format: PROJECT-123",
            field="issue",
            value=key,
        )
    return key


def validate_project_key(key: str) -> str:
    """Validate a Jira project key format.

    :param key: The project key to validate
    :return: Validated project key (uppercased)

    :raises JiraValidationError: If key format is invalid
    """
    if not key:
        raise JiraValidationError(
            message="Project key cannot be empty",
            field="project",
            value=key,
        )

    key = key.strip().upper()
    if not PROJECT_KEY_PATTERN.match(key):
        raise JiraValidationError(
            message=f"Invalid project key format: '{key}'. "
                    "Must start with a letter and contain only letters, numbers, and underscores.",
            field="project",
            value=key,
        )
    return key


_EMPTY = object()


def _fixup(value: Any) -> Any:
    # Containers written empty are kept so a field can be cleared; only
    # those emptied by pruning are dropped.
    if isinstance(value, Mapping):
        if not value:
            return {}
        fixed = {}
        for key, item in value.items():
            item = _fixup(item)
            if item is not _EMPTY:
                fixed[str(key)] = item
        return fixed or _EMPTY
    if isinstance(value, (list, tuple)):
        if not value:
            return []
        fixed = [item for item in (_fixup(v) for v in value) if item is not _EMPTY]
        return fixed or _EMPTY
    if value is None:
        return _EMPTY
    if isinstance(value, str):
        return _EMPTY if value.strip("\n") == "" else value
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return value


def yaml_fixup(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Normalise a parsed YAML mapping so it can be sent as JSON.

    * keys become strings (YAML allows ``1:`` or ``true:`` as keys)
    * dates and timestamps become ISO-8601 strings
    * ``null``, empty strings and containers left empty by the above are
      dropped, so untouched template sections are not sent; containers
      written empty, such as ``labels: []``, are kept so fields can be
      cleared

    :param document: The parsed mapping
    :return: A new, JSON-serialisable dict
    """
    fixed = _fixup(document)
    return {} if fixed is _EMPTY else fixed


def validate_fields(
    document: Mapping[str, Any],
    allowed_fields: Optional[Mapping[str, Any]] = None,
) -> None:
    """Check that every key under ``fields`` is an editable field.

    :param document: The edited document
    :param allowed_fields: ``meta.fields`` from Jira; None skips the check

    :raises JiraValidationError: Naming the first field that is not allowed
    """
    if allowed_fields is None:
        return
    fields = document.get("fields")
    if not isinstance(fields, Mapping):
        return
    for name in fields:
        if name not in allowed_fields:
            raise JiraValidationError(
                message=f"Field {name} is not editable",
                field=name,
            )


def allowed_fields_from(context: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    """Return ``context["meta"]["fields"]`` if the context carries metadata."""
    meta = context.get("meta")
    if not isinstance(meta, Mapping):
        return None
    fields = meta.get("fields")
    if fields is None:
        return {}
    return fields


class Document:
    """An edited issue document.

    Wraps the mapping parsed from the user's YAML and converts it into the
    JSON request body once it has been validated.

    Attributes:
        data: The (fixed up) mapping.
    """

    def __init__(self, data: Mapping[str, Any]) -> None:
        self.data = dict(data)

    @classmethod
    def parse(cls, text: str, filename: Optional[str] = None) -> "Document":
        """Parse YAML text into a Document.

        :raises DocumentParseError: If the text is not YAML or not a mapping
        """
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError as err:
            raise DocumentParseError(
                message=f"Failed to parse YAML: {err}", filename=filename
            ) from err
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, Mapping):
            raise DocumentParseError(
                message=f"Expected a YAML mapping, got {type(loaded).__name__}",
                filename=filename,
            )
        return cls(loaded)

    def fixup(self) -> "Document":
        """Return a copy normalised with :func:`yaml_fixup`."""
        return Document(yaml_fixup(self.data))

    @property
    def aborted(self) -> bool:
        """True when the document sets ``abort: true``."""
        return self.data.get("abort") is True

    @property
    def fields(self) -> Dict[str, Any]:
        fields = self.data.get("fields")
        return fields if isinstance(fields, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def validate(self, allowed_fields: Optional[Mapping[str, Any]] = None) -> "Document":
        """Run :func:`validate_fields` and return self."""
        validate_fields(self.data, allowed_fields)
        return self

    def to_payload(self) -> str:
        """Serialise to the JSON request body, without the ``abort`` flag."""
        return json.dumps({k: v for k, v in self.data.items() if k != "abort"})
