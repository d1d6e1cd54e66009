#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""jiracli - Command line client for Jira.

jiracli renders Jira issues through Jinja2 templates and lets you edit,
create, comment on and transition issues in your own editor. Edited
documents are YAML; they are checked against the fields Jira says are
editable before being sent back as JSON.

Features:
    * Cookie session login, persisted in ``~/.jira.d/cookies.js``
    * Automatic re-login when a request answers 401
    * Project templates in ``.jira.d/templates`` overriding the defaults
    * ``edit again?`` retry loop for editor, YAML and field errors
    * Credential masking in log output

Quick Start
-----------

From the shell::

    jira login -e https://jira.example.com -u gopher
    jira ls -p ABC
    jira edit ABC-123

From Python::

    from jiracli import JiraClient, Credentials, edit_template

    with JiraClient(
        base_url="https://jira.example.com",
        credentials=Credentials(user="gopher"),
    ) as client:
        issue = client.get_json(client.endpoints.issue("ABC-123"))
"""
from jiracli.jira_logs import add_log, get_logger, setup_logging
from jiracli.exceptions import (
    JiraCliError,
    JiraAuthenticationError,
    JiraAPIError,
    JiraRateLimitError,
    JiraNotFoundError,
    JiraPermissionError,
    JiraValidationError,
    ConfigError,
    RenderError,
    TemplateNotFoundError,
    EditorError,
    DocumentParseError,
    SubmitError,
    NoChangesFound,
    UserAborted,
)
from jiracli.validation import (
    Document,
    validate_url,
    validate_issue_key,
    validate_project_key,
    validate_fields,
    yaml_fixup,
)
from jiracli.client import (
    JiraClient,
    ClientConfig,
)
from jiracli.cookies import CookieStore
from jiracli.credentials import Credentials
from jiracli.endpoints import (
    EndpointBuilder,
    EndpointConfig,
)
from jiracli.templates import (
    BUILTIN_TEMPLATES,
    TemplateResolver,
    render,
)
from jiracli.edit_session import (
    EditSession,
    SessionState,
    edit_template,
)
from jiracli.config import JiraConfig, load_config

__version__ = "0.1.0"
__all__ = [
    # logging
    "add_log",
    "get_logger",
    "setup_logging",
    # exceptions
    "JiraCliError",
    "JiraAuthenticationError",
    "JiraAPIError",
    "JiraRateLimitError",
    "JiraNotFoundError",
    "JiraPermissionError",
    "JiraValidationError",
    "ConfigError",
    "RenderError",
    "TemplateNotFoundError",
    "EditorError",
    "DocumentParseError",
    "SubmitError",
    "NoChangesFound",
    "UserAborted",
    # validation
    "Document",
    "validate_url",
    "validate_issue_key",
    "validate_project_key",
    "validate_fields",
    "yaml_fixup",
    # client
    "JiraClient",
    "ClientConfig",
    "CookieStore",
    "Credentials",
    "EndpointBuilder",
    "EndpointConfig",
    # templates and editing
    "BUILTIN_TEMPLATES",
    "TemplateResolver",
    "render",
    "EditSession",
    "SessionState",
    "edit_template",
    # configuration
    "JiraConfig",
    "load_config",
]
