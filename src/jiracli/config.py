#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Configuration loading for jiracli.

Settings are layered, later sources winning:

1. built-in defaults
2. ``~/.jira.d/config.yml``
3. the nearest ``.jira.d/config.yml`` above the working directory
4. ``JIRA_ENDPOINT``, ``JIRA_USER`` and ``JIRA_PROJECT`` environment variables
5. command line flags

Example ``config.yml``::

    endpoint: https://jira.example.com
    user: gopher
    project: ABC
    editor: code --wait
"""
import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import yaml

from jiracli.exceptions import ConfigError
from jiracli.file_io import CONFIG_DIR_NAME, config_dir, find_closest_parent_path
from jiracli.jira_logs import get_logger

CONFIG_FILE_NAME = "config.yml"

ENVIRONMENT_KEYS = {
    "JIRA_ENDPOINT": "endpoint",
    "JIRA_USER": "user",
    "JIRA_PROJECT": "project",
}


@dataclass
class JiraConfig:
    """Effective settings for one invocation.

    Attributes:
        endpoint: Base URL of the Jira instance.
        user: User name for the session login.
        project: Default project key for ``list`` and ``create``.
        editor: Editor command line.
        template: Template file or name overriding the command's default.
        edit: Whether to open the editor for editable commands.
        insecure: Skip TLS certificate verification.
        timeout: Request timeout in seconds, None for no timeout.
        max_results: Maximum issues returned by ``list``.
        query_fields: Fields fetched by ``list``.
        browse: Open the issue in a web browser after the command.
        save_file: Write the command's response data here as YAML.
        sources: Configuration files that were read.
    """

    endpoint: Optional[str] = None
    user: Optional[str] = None
    project: Optional[str] = None
    editor: Optional[str] = None
    template: Optional[str] = None
    edit: bool = True
    insecure: bool = False
    timeout: Optional[float] = None
    max_results: int = 500
    query_fields: List[str] = field(default_factory=lambda: ["summary"])
    browse: bool = False
    save_file: Optional[str] = None
    sources: List[str] = field(default_factory=list)

    def update(self, values: Mapping[str, Any]) -> "JiraConfig":
        """Apply known, non-None keys from ``values``; dashes count as underscores."""
        known = {f.name for f in dataclasses.fields(self)} - {"sources"}
        for key, value in values.items():
            name = str(key).replace("-", "_")
            if name not in known or value is None:
                continue
            if name == "query_fields" and isinstance(value, str):
                value = [part.strip() for part in value.split(",") if part.strip()]
            setattr(self, name, value)
        if self.project:
            self.project = str(self.project).upper()
        return self


def read_config_file(path: str) -> Dict[str, Any]:
    """Read one YAML configuration file.

    :raises ConfigError: If the file is unreadable or not a YAML mapping
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, OSError) as err:
        raise ConfigError(
            message=f"Error reading or parsing config file: {err}", filename=path
        ) from err
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(message="Configuration must be a mapping", filename=path)
    return data


def config_files(start: Optional[str] = None) -> List[str]:
    """Return the configuration files to read, lowest precedence first."""
    files = []
    home_config = os.path.join(config_dir(), CONFIG_FILE_NAME)
    if os.path.isfile(home_config):
        files.append(home_config)
    local = find_closest_parent_path(
        os.path.join(CONFIG_DIR_NAME, CONFIG_FILE_NAME), start=start
    )
    if local and os.path.isfile(local) and (
        not files or not os.path.samefile(local, files[0])
    ):
        files.append(local)
    return files


def load_config(
    overrides: Optional[Mapping[str, Any]] = None,
    start: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    logger: Optional[logging.Logger] = None,
) -> JiraConfig:
    """Build the effective configuration.

    :param overrides: Values from the command line (None values ignored)
    :param start: Directory the project lookup starts from (default: cwd)
    :param environ: Environment to read (default: ``os.environ``)
    :param logger: Logger to report to
    :return: The merged configuration

    :raises ConfigError: If a configuration file is invalid
    """
    log = logger or get_logger("config")
    environ = os.environ if environ is None else environ
    config = JiraConfig()
    for path in config_files(start):
        log.debug("Loading configuration from: %s", path)
        config.update(read_config_file(path))
        config.sources.append(path)

    config.update({
        name: environ[var] for var, name in ENVIRONMENT_KEYS.items() if environ.get(var)
    })
    config.update(overrides or {})
    return config
