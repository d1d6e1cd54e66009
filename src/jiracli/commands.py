#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Command implementations behind the ``jira`` subcommands.

Each method fetches what it needs through the :class:`JiraClient`, renders
the result with a template, or runs an :class:`EditSession` whose submit
callback sends the edited document back to Jira.
"""
import logging
import sys
import webbrowser
from typing import Any, Callable, Dict, List, Mapping, Optional, TextIO

import yaml

from jiracli.client import JiraClient
from jiracli.config import JiraConfig
from jiracli.edit_session import EditSession
from jiracli.editor import prompt_yn, run_editor
from jiracli.exceptions import JiraValidationError, raise_for_status
from jiracli.file_io import write_file
from jiracli.jira_logs import get_logger
from jiracli.templates import TemplateResolver, render
from jiracli.validation import validate_issue_key, validate_project_key


def build_jql(
    project: Optional[str] = None,
    component: Optional[str] = None,
    assignee: Optional[str] = None,
    issuetype: Optional[str] = None,
    watcher: Optional[str] = None,
    reporter: Optional[str] = None,
    sort: Optional[str] = None,
) -> str:
    """Build the default ``list`` query for unresolved issues of a project.

    :raises JiraValidationError: If no project is given
    """
    if not project:
        raise JiraValidationError(
            message="Missing required arguments, either 'query' or 'project' are required",
            field="project",
        )
    clauses = ["resolution = unresolved", f"project = '{project}'"]
    for name, value in (
        ("component", component),
        ("assignee", assignee),
        ("issuetype", issuetype),
        ("watcher", watcher),
        ("reporter", reporter),
    ):
        if value:
            clauses.append(f"{name} = '{value}'")
    query = " AND ".join(clauses)
    if sort:
        query += f" ORDER BY {sort}"
    return query


def _clean(values: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    return {k: v for k, v in (values or {}).items() if v is not None}


class Commands:
    """The subcommands, bound to one client and configuration."""

    def __init__(
        self,
        client: JiraClient,
        config: JiraConfig,
        resolver: Optional[TemplateResolver] = None,
        out: Optional[TextIO] = None,
        prompt: Callable[[str, bool], bool] = prompt_yn,
        editor_runner: Callable[..., None] = run_editor,
        browser: Callable[[str], bool] = webbrowser.open,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.client = client
        self.config = config
        self.endpoints = client.endpoints
        self.resolver = resolver or TemplateResolver(override=config.template)
        self.out = out or sys.stdout
        self.prompt = prompt
        self.editor_runner = editor_runner
        self.browser = browser
        self.log = logger or get_logger("commands")

    # =========================================================================
    # Helpers
    # =========================================================================

    def run_template(self, name: str, data: Mapping[str, Any]) -> None:
        """Render the template ``name`` with ``data`` to the output stream."""
        self.out.write(render(self.resolver.resolve(name), data, name=name))
        self.out.flush()

    def _edit(
        self,
        template_name: str,
        context: Mapping[str, Any],
        submit: Callable[[str], Any],
        prefix: str,
    ) -> Any:
        session = EditSession(
            self.resolver.resolve(template_name),
            context,
            submit,
            editing=self.config.edit,
            editor=self.config.editor,
            prefix=prefix,
            template_name=template_name,
            prompt=self.prompt,
            editor_runner=self.editor_runner,
            logger=self.log,
        )
        session.run()
        return session.result

    def _ok(self, key: str) -> None:
        print(f"OK {key} {self.endpoints.browse(key)}", file=self.out)
        self._maybe_browse(key)

    def _maybe_browse(self, key: str) -> None:
        if self.config.browse:
            self.browse(key)

    def save_data(self, data: Any) -> None:
        """Write ``data`` as YAML to the ``--saveFile`` path, when one is set."""
        if not self.config.save_file:
            return
        write_file(
            self.config.save_file,
            yaml.safe_dump(data, default_flow_style=False, sort_keys=False),
        )
        self.log.info("Saved response to %s", self.config.save_file)

    def browse(self, issue: str) -> str:
        """Open an issue in the web browser.

        :return: The URL that was opened
        """
        url = self.endpoints.browse(validate_issue_key(issue))
        self.log.debug("Opening %s", url)
        if not self.browser(url):
            self.log.warning("No web browser available to open %s", url)
        return url

    # =========================================================================
    # Session
    # =========================================================================

    def login(self) -> Dict[str, Any]:
        """Log in and return the logged in user."""
        self.client.login()
        me = self.client.get_json(self.endpoints.myself()) or {}
        self.log.info("Logged in as %s", me.get("name") or me.get("displayName"))
        return me

    def logout(self) -> None:
        self.client.logout()

    # =========================================================================
    # Read-only commands
    # =========================================================================

    def list(
        self,
        query: Optional[str] = None,
        max_results: Optional[int] = None,
        query_fields: Optional[List[str]] = None,
        **filters: Optional[str],
    ) -> Dict[str, Any]:
        """Search issues by JQL and render them with the ``list`` template.

        :param query: Raw JQL; when absent it is built from ``filters``
        :param filters: project, component, assignee, issuetype, watcher,
                        reporter and sort
        """
        if not query:
            project = filters.get("project") or self.config.project
            filters["project"] = validate_project_key(project) if project else None
            query = build_jql(**filters)
        body = {
            "jql": query,
            "startAt": 0,
            "maxResults": max_results or self.config.max_results,
            "fields": query_fields or self.config.query_fields,
        }
        data = self.client.post_json(self.endpoints.search(), json=body)
        self.run_template("list", data)
        self.save_data(data)
        return data

    def view(self, issue: str) -> Dict[str, Any]:
        """Fetch an issue and render it with the ``view`` template."""
        key = validate_issue_key(issue)
        data = self.client.get_json(self.endpoints.issue(key))
        self.run_template("view", data)
        self.save_data(data)
        self._maybe_browse(key)
        return data

    def transitions(self, issue: str) -> Dict[str, Any]:
        """Render the transitions currently available for an issue."""
        key = validate_issue_key(issue)
        data = self.client.get_json(self.endpoints.transitions(key, expand_fields=True))
        self.run_template("transitions", data)
        return data

    def edit_meta(self, issue: str) -> Dict[str, Any]:
        data = self.client.get_json(self.endpoints.edit_meta(validate_issue_key(issue)))
        self.run_template("editmeta", data)
        return data

    def create_meta(self, project: Optional[str] = None, issuetype: str = "Bug") -> Dict[str, Any]:
        data = self._issue_type_meta(project or self.config.project, issuetype)
        self.run_template("createmeta", data)
        return data

    # =========================================================================
    # Editing commands
    # =========================================================================

    def edit(self, issue: str, overrides: Optional[Mapping[str, Any]] = None) -> None:
        """Edit an issue in the editor and PUT the result."""
        key = validate_issue_key(issue)
        data = self.client.get_json(self.endpoints.issue(key))
        meta = self.client.get_json(self.endpoints.edit_meta(key))
        context = dict(data, meta=meta, overrides=_clean(overrides))

        def submit(payload: str) -> None:
            with self.client.open("PUT", self.endpoints.issue(key), data=payload) as response:
                raise_for_status(response)

        self._edit("edit", context, submit, prefix=f"{key}-edit-")
        self._ok(key)

    def _issue_type_meta(self, project: Optional[str], issuetype: str) -> Dict[str, Any]:
        project = validate_project_key(project)
        data = self.client.get_json(self.endpoints.create_meta(project, issuetype))
        for proj in data.get("projects") or []:
            for itype in proj.get("issuetypes") or []:
                if itype.get("name", "").lower() == issuetype.lower():
                    return itype
        raise JiraValidationError(
            message=f"Project {project} does not support issuetype {issuetype}",
            field="issuetype",
            value=issuetype,
        )

    def create(
        self,
        project: Optional[str] = None,
        issuetype: str = "Bug",
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create an issue from the ``create`` (or ``create-<type>``) template."""
        project = validate_project_key(project or self.config.project)
        meta = self._issue_type_meta(project, issuetype)
        values = _clean(overrides)
        values.update(project=project, issuetype=issuetype)
        values.setdefault("user", self.client.credentials.user)
        context = {"overrides": values, "meta": meta}

        def submit(payload: str) -> Dict[str, Any]:
            return self.client.post_json(self.endpoints.issue(), data=payload)

        created = self._edit(
            f"create-{issuetype.lower()}", context, submit, prefix="create-"
        ) or {}
        self.save_data(created)
        if created.get("key"):
            self._ok(created["key"])
        return created

    def comment(self, issue: str, comment: Optional[str] = None) -> None:
        """Add a comment, editing it from the ``comment`` template."""
        key = validate_issue_key(issue)
        context = {"overrides": _clean({"comment": comment})}

        def submit(payload: str) -> Any:
            return self.client.post_json(self.endpoints.comment(key), data=payload)

        self._edit("comment", context, submit, prefix=f"{key}-comment-")
        self._ok(key)

    def transition(
        self,
        issue: str,
        transition: str,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Move an issue through the workflow transition named ``transition``.

        The transition is matched by id, then by exact name, then by a
        case-insensitive name prefix.
        """
        key = validate_issue_key(issue)
        data = self.client.get_json(self.endpoints.issue(key))
        available = self.client.get_json(
            self.endpoints.transitions(key, expand_fields=True)
        ).get("transitions") or []
        chosen = self._find_transition(available, transition)
        if chosen is None:
            names = ", ".join(t.get("name", "") for t in available)
            raise JiraValidationError(
                message=f"Invalid transition {transition!r}, valid transitions: {names}",
                field="transition",
                value=transition,
            )
        context = dict(
            data, meta=chosen, transition=chosen, overrides=_clean(overrides)
        )

        def submit(payload: str) -> None:
            with self.client.open(
                "POST", self.endpoints.transitions(key), data=payload
            ) as response:
                raise_for_status(response)

        self._edit("transition", context, submit, prefix=f"{key}-trans-")
        self._ok(key)

    @staticmethod
    def _find_transition(available: List[Dict[str, Any]], wanted: str) -> Optional[Dict[str, Any]]:
        for t in available:
            if str(t.get("id")) == wanted:
                return t
        for t in available:
            if t.get("name") == wanted:
                return t
        lowered = wanted.lower()
        for t in available:
            if t.get("name", "").lower().startswith(lowered):
                return t
        return None

    # =========================================================================
    # Raw requests
    # =========================================================================

    def request(self, uri: str, method: str = "GET", data: Optional[str] = None) -> Any:
        """Send a raw API request and render the JSON response.

        :param uri: API path (``/rest/api/2/...``) or full URL
        :param method: HTTP method
        :param data: Request body, sent as is
        """
        with self.client.open(method.upper(), uri, data=data) as response:
            raise_for_status(response)
            body = response.json() if response.content else None
        if body is None:
            return None
        self.run_template("request", body if isinstance(body, dict) else {"data": body})
        self.save_data(body)
        return body
