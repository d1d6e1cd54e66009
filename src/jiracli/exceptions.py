#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Exception classes for jiracli.

This module provides a hierarchy of exception classes for the error
conditions met while talking to Jira and while editing issue templates.

Exception Hierarchy:
    JiraCliError (base)
    ├── JiraAuthenticationError - Login failures
    ├── JiraAPIError - API errors with status codes
    │   ├── JiraRateLimitError - 429 Too Many Requests
    │   ├── JiraNotFoundError - 404 Not Found
    │   └── JiraPermissionError - 403 Forbidden
    ├── JiraValidationError - Edited field not allowed by metadata
    ├── ConfigError - Unreadable configuration file
    ├── RenderError - Template could not be found or rendered
    │   └── TemplateNotFoundError
    ├── EditorError - External editor failed
    ├── DocumentParseError - Edited document could not be read/parsed
    ├── SubmitError - Submitting the edited document failed
    ├── NoChangesFound - Editor exited without modifying the document
    └── UserAborted - Document carried ``abort: true``
"""
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional


class JiraCliError(Exception):
    """Base class for all jiracli exceptions.

    Attributes:
        errors: Error category string.
        messages: Error message string.
    """

    def __init__(
        self,
        errors: str = None,
        messages: str = None,
        *args: Any,
        **kwargs: Any
    ) -> None:
        """Initialize the exception.

        :param errors: Error category (login, value, template, editor,
                       parse, submit, abort, config, wrong)
        :param messages: Custom error message
        """
        self.errors = errors
        self.messages = messages
        super().__init__(self.__str__())

    def __login_issues__(self) -> None:
        """An issue with authenticating to Jira."""
        pass

    def __invalid_value__(self) -> None:
        """A value in the edited document is not accepted."""
        pass

    def __template_issues__(self) -> None:
        """The template could not be rendered."""
        pass

    def __editor_issues__(self) -> None:
        """The editor did not exit cleanly."""
        pass

    def __parse_issues__(self) -> None:
        """The edited document could not be parsed."""
        pass

    def __config_issues__(self) -> None:
        """The configuration could not be loaded."""
        pass

    def __wrong_method_used__(self) -> None:
        """The request sent to Jira is incorrect."""
        pass

    def __str__(self) -> str:
        """Return the representation of the error messages."""
        err = self.errors
        if err == "login":
            msg = self.messages or self.__login_issues__.__doc__
        elif err == "value":
            msg = self.messages or self.__invalid_value__.__doc__
        elif err == "template":
            msg = self.messages or self.__template_issues__.__doc__
        elif err == "editor":
            msg = self.messages or self.__editor_issues__.__doc__
        elif err == "parse":
            msg = self.messages or self.__parse_issues__.__doc__
        elif err == "config":
            msg = self.messages or self.__config_issues__.__doc__
        else:
            msg = self.messages or self.__wrong_method_used__.__doc__
        return f"<JiraCliError: {msg}>"


class JiraAuthenticationError(JiraCliError):
    """Raised when logging in to Jira fails.

    Example::

        try:
            client.login()
        except JiraAuthenticationError as e:
            print(f"Login failed: {e}")
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        status_code: Optional[int] = None,
        response_body: Optional[Dict] = None,
    ) -> None:
        """Initialize the authentication error.

        :param message: Error description
        :param status_code: HTTP status code if available
        :param response_body: API response body if available
        """
        self.status_code = status_code
        self.response_body = response_body
        super().__init__("login", message)

    def __str__(self) -> str:
        base_msg = self.messages or "Authentication failed"
        if self.status_code:
            return f"<JiraAuthenticationError: {base_msg} (HTTP {self.status_code})>"
        return f"<JiraAuthenticationError: {base_msg}>"


class JiraAPIError(JiraCliError):
    """Raised when a Jira API request fails.

    Attributes:
        status_code: HTTP status code from the response.
        response_body: Parsed JSON response body.
        url: The URL that was requested.
        method: The HTTP method used.

    Example::

        response = client.get(endpoints.issue("ABC-1"))
        if response.status_code >= 400:
            raise JiraAPIError.from_response(response)
    """

    def __init__(
        self,
        message: str = "API request failed",
        status_code: Optional[int] = None,
        response_body: Optional[Dict] = None,
        url: Optional[str] = None,
        method: Optional[str] = None,
    ) -> None:
        """Initialize the API error.

        :param message: Error description
        :param status_code: HTTP status code
        :param response_body: API response body
        :param url: Request URL
        :param method: HTTP method
        """
        self.status_code = status_code
        self.response_body = response_body
        self.url = url
        self.method = method
        super().__init__("wrong", message)

    @classmethod
    def from_response(cls, response: Any, message: str = None) -> "JiraAPIError":
        """Create an exception from a requests Response object.

        Jira reports problems either as a list under ``errorMessages`` or
        as a field-name keyed mapping under ``errors``; both are folded
        into the message.

        :param response: requests.Response object
        :param message: Optional custom message

        :return: JiraAPIError instance
        """
        try:
            body = response.json()
        except ValueError:
            body = {"raw": response.text[:500] if hasattr(response, "text") else None}
        if not isinstance(body, dict):
            body = {"raw": body}

        error_msg = message
        if not error_msg:
            parts = list(body.get("errorMessages") or [])
            parts.extend(
                f"{name}: {text}" for name, text in (body.get("errors") or {}).items()
            )
            if parts:
                error_msg = "; ".join(parts)
            elif "message" in body:
                error_msg = body["message"]
            else:
                error_msg = f"API request failed with status {response.status_code}"

        request = getattr(response, "request", None)
        return cls(
            message=error_msg,
            status_code=response.status_code,
            response_body=body,
            url=getattr(response, "url", None),
            method=getattr(request, "method", None),
        )

    def __str__(self) -> str:
        parts = [f"<{type(self).__name__}: {self.messages}"]
        if self.status_code:
            parts.append(f" (HTTP {self.status_code})")
        if self.method and self.url:
            parts.append(f" [{self.method} {self.url}]")
        parts.append(">")
        return "".join(parts)


class JiraRateLimitError(JiraAPIError):
    """Raised when API rate limit is exceeded (HTTP 429).

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API).
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        response_body: Optional[Dict] = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(
            message=message,
            status_code=429,
            response_body=response_body,
        )

    def __str__(self) -> str:
        base_msg = self.messages or "Rate limit exceeded"
        if self.retry_after:
            return f"<JiraRateLimitError: {base_msg} (retry after {self.retry_after}s)>"
        return f"<JiraRateLimitError: {base_msg}>"


class JiraNotFoundError(JiraAPIError):
    """Raised when a requested resource is not found (HTTP 404)."""


class JiraPermissionError(JiraAPIError):
    """Raised when the user lacks permission for an operation (HTTP 403)."""


class JiraValidationError(JiraCliError):
    """Raised when an edited document names a field that cannot be edited.

    Example::

        validate_fields({"fields": {"bogus": 1}}, {"summary": {}})
        # raises JiraValidationError(field="bogus")
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        value: Any = None,
    ) -> None:
        """Initialize the validation error.

        :param message: Error description
        :param field: Name of the field that failed validation
        :param value: The invalid value
        """
        self.field = field
        self.value = value
        super().__init__("value", message)

    def __str__(self) -> str:
        if self.field:
            return f"<JiraValidationError: {self.messages} (field: {self.field})>"
        return f"<JiraValidationError: {self.messages}>"


class ConfigError(JiraCliError):
    """Raised when a configuration file cannot be read or parsed."""

    def __init__(self, message: str = None, filename: Optional[str] = None) -> None:
        self.filename = filename
        super().__init__("config", message)

    def __str__(self) -> str:
        base_msg = self.messages or self.__config_issues__.__doc__
        if self.filename:
            return f"<ConfigError: {base_msg} [{self.filename}]>"
        return f"<ConfigError: {base_msg}>"


class RenderError(JiraCliError):
    """Raised when a template cannot be found or rendered.

    Rendering failures are programming or template errors and are never
    offered for re-editing.
    """

    def __init__(self, message: str = None, template: Optional[str] = None) -> None:
        self.template = template
        super().__init__("template", message)

    def __str__(self) -> str:
        base_msg = self.messages or self.__template_issues__.__doc__
        if self.template:
            return f"<{type(self).__name__}: {base_msg} (template: {self.template})>"
        return f"<{type(self).__name__}: {base_msg}>"


class TemplateNotFoundError(RenderError):
    """Raised when no file or built-in template matches a name."""


class EditorError(JiraCliError):
    """Raised when the external editor cannot be run or exits non-zero."""

    def __init__(
        self,
        message: str = None,
        command: Optional[str] = None,
        returncode: Optional[int] = None,
    ) -> None:
        self.command = command
        self.returncode = returncode
        super().__init__("editor", message)

    def __str__(self) -> str:
        base_msg = self.messages or self.__editor_issues__.__doc__
        if self.returncode is not None:
            return f"<EditorError: {base_msg} (exit status {self.returncode})>"
        return f"<EditorError: {base_msg}>"


class DocumentParseError(JiraCliError):
    """Raised when the edited document cannot be read or parsed as YAML."""

    def __init__(self, message: str = None, filename: Optional[str] = None) -> None:
        self.filename = filename
        super().__init__("parse", message)

    def __str__(self) -> str:
        base_msg = self.messages or self.__parse_issues__.__doc__
        if self.filename:
            return f"<DocumentParseError: {base_msg} [{self.filename}]>"
        return f"<DocumentParseError: {base_msg}>"


class SubmitError(JiraCliError):
    """Raised when the submit callback rejects the edited document."""

    def __init__(self, message: str = None) -> None:
        super().__init__("submit", message)

    def __str__(self) -> str:
        return f"<SubmitError: {self.messages or 'Submitting the document failed'}>"


class NoChangesFound(JiraCliError):
    """Raised when the editor exits without modifying the document.

    The enclosing operation should be abandoned without sending anything.
    """

    def __init__(self, message: str = "No changes found, aborting") -> None:
        super().__init__("abort", message)

    def __str__(self) -> str:
        return f"<NoChangesFound: {self.messages}>"


class UserAborted(JiraCliError):
    """Raised when the edited document sets ``abort: true``."""

    def __init__(self, message: str = "abort flag found in template, quitting") -> None:
        super().__init__("abort", message)

    def __str__(self) -> str:
        return f"<UserAborted: {self.messages}>"


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Return the seconds a ``Retry-After`` header asks to wait.

    The header holds either a number of seconds or an HTTP-date. Anything
    unparseable gives None.
    """
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return int(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0, int((when - datetime.now(timezone.utc)).total_seconds()))


def raise_for_status(response: Any, message: str = None) -> None:
    """Raise an appropriate exception for HTTP error responses.

    :param response: requests.Response object
    :param message: Optional custom error message

    :raises JiraRateLimitError: For 429 responses
    :raises JiraNotFoundError: For 404 responses
    :raises JiraPermissionError: For 403 responses
    :raises JiraAuthenticationError: For 401 responses
    :raises JiraAPIError: For other error responses
    """
    if response.status_code < 400:
        return

    if response.status_code == 429:
        raise JiraRateLimitError(
            message=message or "Rate limit exceeded",
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
        )
    elif response.status_code == 404:
        raise JiraNotFoundError.from_response(response, message)
    elif response.status_code == 403:
        raise JiraPermissionError.from_response(response, message)
    elif response.status_code == 401:
        raise JiraAuthenticationError(
            message=message or "Authentication required",
            status_code=401,
        )
    else:
        raise JiraAPIError.from_response(response, message)
