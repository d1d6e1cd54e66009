#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Tests for template lookup and rendering."""
import os

import pytest
import yaml

from jiracli.exceptions import RenderError, TemplateNotFoundError
from jiracli.templates import (
    BUILTIN_TEMPLATES,
    TemplateResolver,
    export_templates,
    render,
    unexport_templates,
)


def write_template(root, name, text):
    directory = os.path.join(root, ".jira.d", "templates")
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, name)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path


class TestRender:
    """Tests for the render function."""

    def test_renders_context(self):
        """Test values are substituted."""
        assert render("key: {{ key }}\n", {"key": "ABC-1"}) == "key: ABC-1\n"

    def test_root_refers_to_context(self):
        """Test the whole context is reachable as root."""
        assert render("{{ root.key }}", {"key": "ABC-1"}) == "ABC-1"

    def test_missing_values_render_empty(self):
        """Test undefined attributes chain to an empty string."""
        assert render("[{{ fields.assignee.name }}]", {"fields": {}}) == "[]"

    def test_tojson_filter(self):
        """Test the tojson filter quotes strings."""
        assert render("{{ value | tojson }}", {"value": 'say "hi"'}) == '"say \\"hi\\""'

    def test_toyaml_filter(self):
        """Test the toyaml filter emits YAML."""
        text = render("{{ value | toyaml }}", {"value": {"a": [1, 2]}})
        assert yaml.safe_load(text) == {"a": [1, 2]}

    def test_comment_filter(self):
        """Test the comment filter prefixes every line."""
        assert render("{{ text | comment }}", {"text": "a\nb"}) == "# a\n# b"

    def test_split_filter(self):
        """Test the split filter drops empty parts."""
        assert render("{{ 'a,,b' | split(',') | join('|') }}", {}) == "a|b"

    def test_syntax_error_raises_render_error(self):
        """Test template syntax errors are wrapped."""
        with pytest.raises(RenderError) as exc_info:
            render("{% if %}", {}, name="broken")
        assert exc_info.value.template == "broken"

    def test_runtime_error_raises_render_error(self):
        """Test errors raised while rendering are wrapped."""
        with pytest.raises(RenderError):
            render("{{ missing() }}", {})

    @pytest.mark.parametrize("text,context", [
        ("{{ n // 0 }}", {"n": 1}),
        ('{{ "%d" | format(x) }}', {"x": "abc"}),
    ])
    def test_python_errors_raise_render_error(self, text, context):
        """Test plain Python errors during rendering are wrapped too."""
        with pytest.raises(RenderError) as exc_info:
            render(text, context, name="view")
        assert exc_info.value.template == "view"
        assert exc_info.value.__cause__ is not None

    def test_builtin_edit_template_is_yaml(self, sample_issue_data, sample_edit_meta):
        """Test the built-in edit template renders parseable YAML."""
        context = dict(sample_issue_data, meta=sample_edit_meta, overrides={})
        document = yaml.safe_load(render(BUILTIN_TEMPLATES["edit"], context))
        assert document["fields"]["summary"] == "Build is broken"
        assert document["fields"]["priority"] == {"name": "Major"}
        assert "assignee" not in document["fields"]

    def test_builtin_create_template_is_yaml(self):
        """Test the built-in create template renders parseable YAML."""
        context = {
            "overrides": {"project": "ABC", "issuetype": "Bug", "summary": "New"},
            "meta": {"fields": {}},
        }
        document = yaml.safe_load(render(BUILTIN_TEMPLATES["create"], context))
        assert document["fields"]["project"] == {"key": "ABC"}
        assert document["fields"]["issuetype"] == {"name": "Bug"}
        assert document["fields"]["summary"] == "New"

    def test_builtin_list_template(self):
        """Test the list template prints one line per issue."""
        data = {"issues": [
            {"key": "ABC-1", "fields": {"summary": "one"}},
            {"key": "ABC-22", "fields": {"summary": "two"}},
        ]}
        lines = render(BUILTIN_TEMPLATES["list"], data).strip().splitlines()
        assert lines == ["ABC-1:       one", "ABC-22:      two"]


class TestTemplateResolver:
    """Tests for TemplateResolver lookup order."""

    def test_builtin_by_name(self):
        """Test a built-in is returned when nothing else matches."""
        assert TemplateResolver().resolve("view") == BUILTIN_TEMPLATES["view"]

    def test_unknown_name_raises(self):
        """Test unknown names raise TemplateNotFoundError."""
        with pytest.raises(TemplateNotFoundError):
            TemplateResolver().resolve("nope")

    def test_project_file_beats_builtin(self, work_dir):
        """Test a .jira.d/templates file overrides the built-in."""
        write_template(work_dir, "view", "custom view")
        assert TemplateResolver().resolve("view") == "custom view"

    def test_project_file_found_in_parent(self, work_dir):
        """Test the lookup walks up from the start directory."""
        write_template(work_dir, "view", "parent view")
        nested = os.path.join(work_dir, "a", "b")
        os.makedirs(nested)
        assert TemplateResolver(search_start=nested).resolve("view") == "parent view"

    def test_override_path_wins(self, work_dir, tmp_path):
        """Test an existing override file wins over everything."""
        write_template(work_dir, "view", "project view")
        override = tmp_path / "mine.tmpl"
        override.write_text("my view", encoding="utf-8")
        resolver = TemplateResolver(override=str(override))
        assert resolver.resolve("view") == "my view"

    def test_override_path_wins_over_same_named_builtin(self, work_dir):
        """Test a file named like a built-in is read from disk."""
        with open(os.path.join(work_dir, "debug"), "w", encoding="utf-8") as f:
            f.write("from disk")
        assert TemplateResolver(override="debug").resolve("view") == "from disk"

    def test_override_builtin_name(self):
        """Test the override may name another built-in."""
        resolver = TemplateResolver(override="debug")
        assert resolver.resolve("view") == BUILTIN_TEMPLATES["debug"]

    def test_unknown_override_falls_back(self):
        """Test an override matching nothing falls back to the name."""
        resolver = TemplateResolver(override="missing")
        assert resolver.resolve("view") == BUILTIN_TEMPLATES["view"]

    def test_create_type_project_file(self, work_dir):
        """Test create-<type> uses its own project file first."""
        write_template(work_dir, "create-task", "task template")
        write_template(work_dir, "create", "generic template")
        assert TemplateResolver().resolve("create-task") == "task template"

    def test_create_type_falls_back_to_project_create(self, work_dir):
        """Test create-<type> falls back to the project create file."""
        write_template(work_dir, "create", "generic template")
        assert TemplateResolver().resolve("create-bug") == "generic template"

    def test_create_type_falls_back_to_builtin_create(self):
        """Test create-<type> falls back to the built-in create."""
        assert TemplateResolver().resolve("create-bug") == BUILTIN_TEMPLATES["create"]

    def test_custom_builtins(self):
        """Test a resolver can use its own built-ins."""
        resolver = TemplateResolver(builtins={"hello": "hi", "create": "c"})
        assert resolver.resolve("hello") == "hi"


class TestExportTemplates:
    """Tests for exporting and unexporting the built-ins."""

    def test_export_writes_every_builtin(self, tmp_path):
        """Test every built-in is written."""
        written = export_templates(str(tmp_path / "t"))
        assert sorted(os.path.basename(p) for p in written) == sorted(BUILTIN_TEMPLATES)

    def test_export_defaults_to_home(self, home_dir):
        """Test the default directory is ~/.jira.d/templates."""
        export_templates()
        path = os.path.join(home_dir, ".jira.d", "templates", "view")
        with open(path, encoding="utf-8") as f:
            assert f.read() == BUILTIN_TEMPLATES["view"]

    def test_export_keeps_existing(self, tmp_path):
        """Test existing files are not overwritten."""
        directory = tmp_path / "t"
        directory.mkdir()
        (directory / "view").write_text("mine", encoding="utf-8")
        written = export_templates(str(directory))
        assert str(directory / "view") not in written
        assert (directory / "view").read_text(encoding="utf-8") == "mine"

    def test_unexport_removes_unmodified_only(self, tmp_path):
        """Test modified templates survive unexport."""
        directory = str(tmp_path / "t")
        export_templates(directory)
        with open(os.path.join(directory, "view"), "w", encoding="utf-8") as f:
            f.write("changed")

        removed = unexport_templates(directory)

        assert os.listdir(directory) == ["view"]
        assert len(removed) == len(BUILTIN_TEMPLATES) - 1
