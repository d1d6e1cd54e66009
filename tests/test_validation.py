#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Unit tests for jiracli.validation module."""
import datetime
import json

import pytest

from jiracli.exceptions import DocumentParseError, JiraValidationError
from jiracli.validation import (
    Document,
    allowed_fields_from,
    is_issue_key,
    validate_fields,
    validate_issue_key,
    validate_project_key,
    validate_url,
    yaml_fixup,
)


class TestValidateUrl:
    """Tests for validate_url function."""

    def test_valid_https_url(self):
        """Test valid HTTPS URL."""
        assert validate_url("https://jira.example.com") == "https://jira.example.com"

    def test_removes_trailing_slash(self):
        """Test that trailing slash is removed."""
        assert validate_url("https://jira.example.com/") == "https://jira.example.com"

    def test_adds_https_if_missing(self):
        """Test that HTTPS is added if no scheme."""
        assert validate_url("jira.example.com") == "https://jira.example.com"

    def test_http_allowed(self):
        """Test plain HTTP endpoints are accepted."""
        assert validate_url("http://localhost:8080") == "http://localhost:8080"

    def test_empty_url_raises_error(self):
        """Test that empty URL raises error."""
        with pytest.raises(JiraValidationError):
            validate_url("")

    def test_invalid_scheme_raises_error(self):
        """Test that invalid scheme raises error."""
        with pytest.raises(JiraValidationError) as exc_info:
            validate_url("ftp://jira.example.com")
        assert "Invalid URL scheme" in str(exc_info.value)


class TestIssueKeys:
    """Tests for issue and project key validation."""

    @pytest.mark.parametrize("key", ["ABC-1", "A1_B-99999"])
    def test_valid_issue_keys(self, key):
        """Test valid issue keys."""
        assert is_issue_key(key)
        assert validate_issue_key(key) == key

    def test_issue_key_uppercased(self):
        """Test lowercase keys are normalised."""
        assert validate_issue_key(" abc-12 ") == "ABC-12"

    @pytest.mark.parametrize("key", ["", "ABC", "ABC-", "1ABC-1", "ABC-1x"])
    def test_invalid_issue_keys(self, key):
        """Test invalid issue keys raise."""
        assert not is_issue_key(key)
        with pytest.raises(JiraValidationError):
            validate_issue_key(key)

    def test_project_key(self):
        """Test project keys are validated and uppercased."""
        assert validate_project_key("abc") == "ABC"
        with pytest.raises(JiraValidationError):
            validate_project_key("A-B")


class TestYamlFixup:
    """Tests for yaml_fixup."""

    def test_stringifies_keys(self):
        """Test non-string keys become strings."""
        assert yaml_fixup({1: "a", 2.5: "b"}) == {"1": "a", "2.5": "b"}

    def test_drops_empty_values(self):
        """Test null, empty strings and emptied containers are dropped."""
        document = {
            "fields": {
                "summary": "kept",
                "description": "",
                "assignee": {"name": None},
                "components": [{"name": ""}],
            },
            "update": {"comment": [{"add": {"body": "\n"}}]},
        }
        assert yaml_fixup(document) == {"fields": {"summary": "kept"}}

    def test_keeps_containers_written_empty(self):
        """Test an explicit empty list or mapping survives so fields can be cleared."""
        document = {"fields": {"labels": [], "components": [], "customfield_1": {}}}
        assert yaml_fixup(document) == document

    def test_drops_containers_emptied_by_pruning(self):
        """Test containers holding only null values are still dropped."""
        assert yaml_fixup({"fields": {"labels": [None, ""]}}) == {}

    def test_keeps_false_and_zero(self):
        """Test falsy scalars other than null and "" survive."""
        assert yaml_fixup({"a": False, "b": 0}) == {"a": False, "b": 0}

    def test_dates_become_strings(self):
        """Test YAML dates are converted to ISO strings."""
        fixed = yaml_fixup({"duedate": datetime.date(2024, 5, 1)})
        assert fixed == {"duedate": "2024-05-01"}
        json.dumps(fixed)

    def test_empty_document(self):
        """Test an empty mapping stays empty."""
        assert yaml_fixup({}) == {}


class TestValidateFields:
    """Tests for validate_fields."""

    def test_allowed_fields_pass(self):
        """Test fields listed in the metadata pass."""
        validate_fields(
            {"fields": {"summary": "x"}},
            {"summary": {}, "priority": {}},
        )

    def test_unknown_field_named(self):
        """Test the offending field is named."""
        with pytest.raises(JiraValidationError) as exc_info:
            validate_fields(
                {"fields": {"summary": "x", "priority": {}, "bogus": 1}},
                {"summary": {}, "priority": {}},
            )
        assert exc_info.value.field == "bogus"
        assert "Field bogus is not editable" in str(exc_info.value)

    def test_none_skips_check(self):
        """Test no metadata means no check."""
        validate_fields({"fields": {"bogus": 1}}, None)

    def test_empty_metadata_rejects_everything(self):
        """Test metadata without fields allows none."""
        with pytest.raises(JiraValidationError):
            validate_fields({"fields": {"summary": "x"}}, {})

    def test_document_without_fields(self):
        """Test documents without a fields section pass."""
        validate_fields({"body": "a comment"}, {})

    def test_allowed_fields_from_context(self):
        """Test meta.fields is extracted from a render context."""
        assert allowed_fields_from({}) is None
        assert allowed_fields_from({"meta": {}}) == {}
        assert allowed_fields_from({"meta": {"fields": {"a": {}}}}) == {"a": {}}


class TestDocument:
    """Tests for the Document wrapper."""

    def test_parse_mapping(self):
        """Test YAML mappings are parsed."""
        doc = Document.parse("fields:\n  summary: x\n")
        assert doc.fields == {"summary": "x"}
        assert doc.get("fields") == {"summary": "x"}

    def test_parse_empty(self):
        """Test an empty file is an empty document."""
        assert Document.parse("").data == {}

    def test_parse_invalid_yaml(self):
        """Test YAML syntax errors raise DocumentParseError."""
        with pytest.raises(DocumentParseError) as exc_info:
            Document.parse("a: [b", filename="/tmp/x.yml")
        assert exc_info.value.filename == "/tmp/x.yml"

    def test_parse_scalar_rejected(self):
        """Test a bare scalar is not a document."""
        with pytest.raises(DocumentParseError):
            Document.parse("just text")

    def test_aborted(self):
        """Test only abort: true aborts."""
        assert Document({"abort": True}).aborted
        assert not Document({"abort": "yes please"}).aborted
        assert not Document({}).aborted

    def test_payload_strips_abort(self):
        """Test the abort flag is not sent to Jira."""
        payload = Document({"abort": False, "fields": {"summary": "x"}}).to_payload()
        assert json.loads(payload) == {"fields": {"summary": "x"}}

    def test_validate_returns_self(self):
        """Test validate chains."""
        doc = Document({"fields": {"summary": "x"}})
        assert doc.validate({"summary": {}}) is doc
