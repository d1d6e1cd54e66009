#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures for jiracli tests.

Every test runs with ``HOME`` pointing at a temporary directory and the
working directory set to an empty temporary project, so no real
``~/.jira.d`` or ``JIRA_*`` setting leaks in.
"""
from typing import Any, Callable, Dict, List

import pytest
import responses

from jiracli.client import ClientConfig, JiraClient
from jiracli.cookies import CookieStore
from jiracli.credentials import Credentials

ENV_VARS = (
    "JIRA_ENDPOINT",
    "JIRA_USER",
    "JIRA_PROJECT",
    "JIRA_PASSWORD",
    "JIRA_EDITOR",
    "EDITOR",
    "JIRA_DEBUG",
    "JIRA_LOG_FORMAT",
)


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def home_dir(tmp_path, monkeypatch) -> str:
    """Isolate HOME, the working directory and JIRA_* variables."""
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(work)
    return str(home)


@pytest.fixture
def work_dir(tmp_path) -> str:
    """The working directory of the test."""
    return str(tmp_path / "work")


@pytest.fixture
def scratch_dir(tmp_path) -> str:
    """Directory for edit session scratch files."""
    path = tmp_path / "scratch"
    path.mkdir()
    return str(path)


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def base_url() -> str:
    """Provide a test base URL."""
    return "https://jira.example.com"


@pytest.fixture
def project_key() -> str:
    """Provide a test project key."""
    return "ABC"


@pytest.fixture
def issue_key(project_key: str) -> str:
    """Provide a test issue key."""
    return f"{project_key}-123"


@pytest.fixture
def credentials() -> Credentials:
    """Credentials that never prompt."""
    return Credentials(user="gopher", password="hunter2")


@pytest.fixture
def cookie_store(tmp_path) -> CookieStore:
    """A cookie store backed by a temporary file."""
    return CookieStore(path=str(tmp_path / "cookies.js"))


# =============================================================================
# HTTP Fixtures
# =============================================================================

@pytest.fixture
def mocked_responses():
    """Activate ``responses`` for the duration of a test."""
    with responses.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def jira_client(base_url, credentials, cookie_store):
    """Create a JiraClient for testing."""
    client = JiraClient(
        base_url=base_url,
        credentials=credentials,
        config=ClientConfig(max_retries=0),
        cookie_store=cookie_store,
    )
    yield client
    client.close()


# =============================================================================
# Mock Data Fixtures
# =============================================================================

@pytest.fixture
def sample_issue_data(issue_key: str, project_key: str) -> Dict[str, Any]:
    """Provide sample issue data."""
    return {
        "id": "10001",
        "key": issue_key,
        "fields": {
            "summary": "Build is broken",
            "description": "The nightly build fails",
            "created": "2024-01-02T03:04:05.000+0000",
            "project": {"key": project_key},
            "issuetype": {"name": "Bug"},
            "status": {"name": "Open"},
            "priority": {"name": "Major"},
            "assignee": {"name": "gopher"},
            "reporter": {"name": "gopher"},
            "labels": ["ci"],
            "components": [],
            "comment": {"comments": []},
        },
    }


@pytest.fixture
def sample_edit_meta() -> Dict[str, Any]:
    """Edit metadata allowing summary, description and priority."""
    return {
        "fields": {
            "summary": {"name": "Summary"},
            "description": {"name": "Description"},
            "priority": {
                "name": "Priority",
                "allowedValues": [{"name": "Major"}, {"name": "Minor"}],
            },
        }
    }


# =============================================================================
# Editor Fixtures
# =============================================================================

class FakeEditor:
    """Editor stand-in that writes prepared contents into the file.

    Each call consumes the next entry of ``contents``. An entry that is an
    exception instance is raised instead; ``None`` leaves the file alone.
    """

    def __init__(self, contents: List[Any]) -> None:
        self.contents = list(contents)
        self.calls: List[str] = []
        self.seen: List[str] = []

    def __call__(self, editor: str, file_name: str, logger=None) -> None:
        self.calls.append(file_name)
        with open(file_name, "r", encoding="utf-8") as f:
            self.seen.append(f.read())
        content = self.contents.pop(0)
        if isinstance(content, BaseException):
            raise content
        if content is not None:
            with open(file_name, "w", encoding="utf-8") as f:
                f.write(content)


@pytest.fixture
def fake_editor() -> Callable[..., FakeEditor]:
    """Factory for :class:`FakeEditor` instances."""
    return lambda *contents: FakeEditor(list(contents))


class FakePrompt:
    """Yes/no prompt returning prepared answers."""

    def __init__(self, answers: List[bool]) -> None:
        self.answers = list(answers)
        self.questions: List[str] = []

    def __call__(self, question: str, default: bool = True) -> bool:
        self.questions.append(question)
        return self.answers.pop(0)


@pytest.fixture
def fake_prompt() -> Callable[..., FakePrompt]:
    """Factory for :class:`FakePrompt` instances."""
    return lambda *answers: FakePrompt(list(answers))
