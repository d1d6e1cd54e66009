#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""API endpoint builders for the Jira REST API.

Example::

    from jiracli.endpoints import EndpointBuilder

    endpoints = EndpointBuilder.from_url("https://jira.example.com")
    url = endpoints.issue("ABC-123")
    # https://jira.example.com/rest/api/2/issue/ABC-123
"""
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlencode


@dataclass
class EndpointConfig:
    """Configuration for endpoint building.

    Attributes:
        base_url: The base URL of the Jira instance.
        api_version: API version to use ("2" or "latest").
    """

    base_url: str
    api_version: str = "2"

    @property
    def api_base(self) -> str:
        """Return the base API URL."""
        return f"{self.base_url}/rest/api/{self.api_version}"

    @property
    def auth_base(self) -> str:
        """Return the base session authentication URL."""
        return f"{self.base_url}/rest/auth/1"


class EndpointBuilder:
    """URL builder for the Jira REST API endpoints used by the commands."""

    def __init__(self, config: EndpointConfig) -> None:
        self.config = config

    @classmethod
    def from_url(cls, base_url: str, api_version: str = "2") -> "EndpointBuilder":
        """Create an EndpointBuilder from a base URL.

        :param base_url: The base URL of the Jira instance
        :param api_version: API version
        :return: Configured EndpointBuilder instance
        """
        return cls(EndpointConfig(base_url=base_url.rstrip("/"), api_version=api_version))

    @staticmethod
    def _key(value: str) -> str:
        return quote(str(value).strip(), safe="")

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    def session(self) -> str:
        """Return URL for cookie session login/logout."""
        return f"{self.config.auth_base}/session"

    def myself(self) -> str:
        """Return URL for current user info."""
        return f"{self.config.api_base}/myself"

    # =========================================================================
    # Issue Endpoints
    # =========================================================================

    def issue(self, key: Optional[str] = None) -> str:
        """Return URL for a single issue, or for issue creation."""
        if key:
            return f"{self.config.api_base}/issue/{self._key(key)}"
        return f"{self.config.api_base}/issue"

    def edit_meta(self, key: str) -> str:
        """Return URL for the edit metadata of an issue."""
        return f"{self.issue(key)}/editmeta"

    def create_meta(self, project: str, issue_type: str) -> str:
        """Return URL for the create metadata of a project and issue type."""
        query = urlencode({
            "projectKeys": project,
            "issuetypeNames": issue_type,
            "expand": "projects.issuetypes.fields",
        })
        return f"{self.config.api_base}/issue/createmeta?{query}"

    def comment(self, key: str) -> str:
        """Return URL for adding a comment to an issue."""
        return f"{self.issue(key)}/comment"

    def transitions(self, key: str, expand_fields: bool = False) -> str:
        """Return URL for the transitions of an issue."""
        url = f"{self.issue(key)}/transitions"
        if expand_fields:
            url += "?expand=transitions.fields"
        return url

    def search(self) -> str:
        """Return URL for JQL search."""
        return f"{self.config.api_base}/search"

    def browse(self, key: str) -> str:
        """Return the web UI URL of an issue."""
        return f"{self.config.base_url}/browse/{self._key(key)}"
