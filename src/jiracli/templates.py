#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Template lookup and rendering.

Every command output and every editable document is produced from a
Jinja2 template. A template is looked up by name, first in the file or
name given with ``--template``, then in a ``.jira.d/templates`` directory
found by walking up from the working directory, and finally among the
built-in defaults below.

Example::

    from jiracli.templates import TemplateResolver, render

    text = render(TemplateResolver().resolve("view"), issue)
"""
import json
import logging
import os
from typing import Any, Dict, List, Mapping, Optional

import jinja2
import yaml

from jiracli.exceptions import RenderError, TemplateNotFoundError
from jiracli.file_io import (
    CONFIG_DIR_NAME,
    find_closest_parent_path,
    path_builder,
    read_file,
    remove_file,
    write_file,
)
from jiracli.jira_logs import get_logger

TEMPLATE_DIR = "templates"

DEBUG_TEMPLATE = "{{ root | tojson }}\n"

LIST_TEMPLATE = """\
{% for issue in issues %}
{{ "%-12s" | format(issue.key ~ ":") }} {{ issue.fields.summary }}
{% endfor %}
"""

VIEW_TEMPLATE = """\
issue: {{ key }}
created: {{ fields.created }}
status: {{ fields.status.name }}
summary: {{ fields.summary }}
project: {{ fields.project.key }}
components: {{ fields.components | map(attribute="name") | join(", ") }}
issuetype: {{ fields.issuetype.name }}
assignee: {{ fields.assignee.name }}
reporter: {{ fields.reporter.name }}
priority: {{ fields.priority.name }}
labels: {{ fields.labels | join(" ") }}
description: |
  {{ fields.description | default("", true) | indent(2) }}
{% if fields.comment.comments %}

comments:
{% for c in fields.comment.comments %}
  - | # {{ c.author.name }}, {{ c.created }}
    {{ c.body | indent(4) }}
{% endfor %}
{% endif %}
"""

EDIT_TEMPLATE = """\
# issue: {{ key }} - created: {{ fields.created }}
update:
  comment:
    - add:
        body: |-
          {{ overrides.comment | default("", true) | indent(10) }}
fields:
  summary: {{ (overrides.summary or fields.summary or "") | tojson }}
{% if meta.fields.components %}
  components: # Values: {{ meta.fields.components.allowedValues | map(attribute="name") | join(", ") }}
{% for component in fields.components %}
    - name: {{ component.name | tojson }}
{% endfor %}
{% endif %}
{% if meta.fields.assignee %}
  assignee:
    name: {{ overrides.assignee or fields.assignee.name }}
{% endif %}
{% if meta.fields.reporter %}
  reporter:
    name: {{ overrides.reporter or fields.reporter.name }}
{% endif %}
{% if meta.fields.customfield_10110 %}
  # watchers
  customfield_10110:
{% for watcher in fields.customfield_10110 %}
    - name: {{ watcher.name }}
{% endfor %}
{% endif %}
{% if meta.fields.priority %}
  priority: # Values: {{ meta.fields.priority.allowedValues | map(attribute="name") | join(", ") }}
    name: {{ overrides.priority or fields.priority.name }}
{% endif %}
{% if meta.fields.labels %}
  labels:
{% for label in fields.labels %}
    - {{ label | tojson }}
{% endfor %}
{% endif %}
  description: |-
    {{ (overrides.description or fields.description or "") | indent(4) }}
"""

CREATE_TEMPLATE = """\
fields:
  project:
    key: {{ overrides.project }}
  issuetype:
    name: {{ overrides.issuetype }}
  summary: {{ (overrides.summary or "") | tojson }}
{% if meta.fields.priority %}
  priority: # Values: {{ meta.fields.priority.allowedValues | map(attribute="name") | join(", ") }}
    name: {{ overrides.priority }}
{% endif %}
{% if meta.fields.components %}
  components: # Values: {{ meta.fields.components.allowedValues | map(attribute="name") | join(", ") }}
{% for component in (overrides.components or "") | split(",") %}
    - name: {{ component | trim | tojson }}
{% endfor %}
{% endif %}
  description: |-
    {{ overrides.description | default("", true) | indent(4) }}
{% if meta.fields.assignee %}
  assignee:
    name: {{ overrides.assignee }}
{% endif %}
{% if meta.fields.reporter %}
  reporter:
    name: {{ overrides.reporter or overrides.user }}
{% endif %}
"""

COMMENT_TEMPLATE = """\
body: |-
  {{ overrides.comment | default("", true) | indent(2) }}
"""

TRANSITIONS_TEMPLATE = """\
{% for t in transitions %}
{{ "%-4s" | format(t.id ~ ":") }} {{ t.name }}
{% endfor %}
"""

TRANSITION_TEMPLATE = """\
update:
  comment:
    - add:
        body: |-
          {{ overrides.comment | default("", true) | indent(10) }}
fields:
{% if meta.fields.assignee %}
  assignee:
    name: {{ overrides.assignee or fields.assignee.name }}
{% endif %}
{% if meta.fields.resolution %}
  resolution: # Values: {{ meta.fields.resolution.allowedValues | map(attribute="name") | join(", ") }}
    name: {{ overrides.resolution or "Fixed" }}
{% endif %}
transition:
  id: {{ transition.id | tojson }}
  name: {{ transition.name }}
"""

BUILTIN_TEMPLATES: Dict[str, str] = {
    "debug": DEBUG_TEMPLATE,
    "list": LIST_TEMPLATE,
    "view": VIEW_TEMPLATE,
    "edit": EDIT_TEMPLATE,
    "create": CREATE_TEMPLATE,
    "comment": COMMENT_TEMPLATE,
    "transitions": TRANSITIONS_TEMPLATE,
    "transition": TRANSITION_TEMPLATE,
    "request": DEBUG_TEMPLATE,
    "editmeta": DEBUG_TEMPLATE,
    "createmeta": DEBUG_TEMPLATE,
}


def _to_json(value: Any, indent: int = 2) -> str:
    if isinstance(value, jinja2.Undefined):
        value = None
    return json.dumps(value, indent=indent if indent else None, default=str)


def _to_yaml(value: Any) -> str:
    return yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip("\n")


def _comment(value: Any) -> str:
    return "\n".join(f"# {line}" for line in str(value).splitlines())


def _split(value: Any, sep: str = ",") -> List[str]:
    text = "" if value is None or isinstance(value, jinja2.Undefined) else str(value)
    return [part for part in text.split(sep) if part.strip()]


def _environment() -> jinja2.Environment:
    env = jinja2.Environment(
        undefined=jinja2.ChainableUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        autoescape=False,
    )
    env.filters["tojson"] = _to_json
    env.filters["toyaml"] = _to_yaml
    env.filters["comment"] = _comment
    env.filters["split"] = _split
    return env


_ENV = _environment()


def render(
    template_text: str,
    context: Mapping[str, Any],
    name: Optional[str] = None,
) -> str:
    """Render ``template_text`` with ``context``.

    The whole context is also available to the template as ``root``.

    :param template_text: Jinja2 template source
    :param context: Data available to the template
    :param name: Template name used in error messages
    :return: The rendered text

    :raises RenderError: If the template cannot be compiled or rendered
    """
    try:
        template = _ENV.from_string(template_text)
        return template.render(dict(context, root=context))
    except jinja2.TemplateError as err:
        raise RenderError(message=f"Failed to render template: {err}", template=name) from err
    # Filters and expressions in user templates can raise anything
    except Exception as err:
        raise RenderError(
            message=f"Failed to render template: {type(err).__name__}: {err}",
            template=name,
        ) from err


class TemplateResolver:
    """Finds template text by name.

    Lookup order, first match wins:

    1. ``override`` names an existing file: its content, verbatim.
    2. ``.jira.d/templates/<override>`` above the working directory.
    3. A built-in template called ``override``.
    4. Steps 2 and 3 again with the requested name. ``create-*`` names
       first fall back to a project ``create`` template, then to their own
       built-in, then to the built-in ``create``.
    """

    def __init__(
        self,
        override: Optional[str] = None,
        builtins: Optional[Mapping[str, str]] = None,
        search_start: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the resolver.

        :param override: Template file or name given with ``--template``
        :param builtins: Built-in templates (default: :data:`BUILTIN_TEMPLATES`)
        :param search_start: Directory to walk up from (default: cwd)
        :param logger: Logger to report to
        """
        self.override = override
        self.builtins = BUILTIN_TEMPLATES if builtins is None else builtins
        self.search_start = search_start
        self.log = logger or get_logger("templates")

    def find_file(self, name: str) -> Optional[str]:
        """Return the nearest project template file called ``name``."""
        relative = os.path.join(CONFIG_DIR_NAME, TEMPLATE_DIR, name)
        return find_closest_parent_path(relative, start=self.search_start)

    def _lookup(self, name: str) -> Optional[str]:
        path = self.find_file(name)
        if path:
            self.log.debug("Using template %s", path)
            return read_file(path)
        return self.builtins.get(name)

    def resolve(self, name: str) -> str:
        """Return the template text for ``name``.

        :raises TemplateNotFoundError: If nothing matches
        """
        if self.override:
            if os.path.isfile(self.override):
                self.log.debug("Using template file %s", self.override)
                return read_file(self.override)
            text = self._lookup(self.override)
            if text is not None:
                return text

        path = self.find_file(name)
        if path:
            self.log.debug("Using template %s", path)
            return read_file(path)

        if name.startswith("create-"):
            generic = self.find_file("create")
            if generic:
                self.log.debug("Using template %s for %s", generic, name)
                return read_file(generic)
            return self.builtins.get(name, self.builtins["create"])

        if name in self.builtins:
            return self.builtins[name]
        raise TemplateNotFoundError(message=f"No template named {name!r}", template=name)


def export_templates(directory: Optional[str] = None) -> List[str]:
    """Write the built-in templates into ``directory``.

    Existing files are left alone so local changes survive.

    :param directory: Target directory (default: ``~/.jira.d/templates``)
    :return: Paths of the files written
    """
    directory = directory or path_builder(TEMPLATE_DIR)
    written = []
    for name, text in sorted(BUILTIN_TEMPLATES.items()):
        target = os.path.join(directory, name)
        if os.path.exists(target):
            get_logger("templates").info("Skipping %s, already exists", target)
            continue
        write_file(target, text)
        written.append(target)
    return written


def unexport_templates(directory: Optional[str] = None) -> List[str]:
    """Remove exported templates that still match their built-in text.

    :param directory: Directory to clean (default: ``~/.jira.d/templates``)
    :return: Paths of the files removed
    """
    directory = directory or path_builder(TEMPLATE_DIR)
    removed = []
    for name, text in sorted(BUILTIN_TEMPLATES.items()):
        target = os.path.join(directory, name)
        if not os.path.isfile(target):
            continue
        if read_file(target) != text:
            get_logger("templates").info("Keeping %s, it was modified", target)
            continue
        remove_file(target)
        removed.append(target)
    return removed
