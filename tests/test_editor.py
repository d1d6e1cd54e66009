#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Tests for the editor and prompt helpers."""
import subprocess
from unittest.mock import Mock, patch

import pytest

from jiracli.editor import DEFAULT_EDITOR, prompt_yn, resolve_editor, run_editor
from jiracli.exceptions import EditorError


class TestResolveEditor:
    """Tests for resolve_editor."""

    def test_option_wins(self):
        """Test an explicit editor beats the environment."""
        assert resolve_editor("nano", {"JIRA_EDITOR": "emacs", "EDITOR": "vi"}) == "nano"

    def test_jira_editor_before_editor(self):
        """Test JIRA_EDITOR beats EDITOR."""
        assert resolve_editor(None, {"JIRA_EDITOR": "emacs", "EDITOR": "vi"}) == "emacs"

    def test_editor_variable(self):
        """Test EDITOR is used when JIRA_EDITOR is unset."""
        assert resolve_editor(None, {"EDITOR": "vi"}) == "vi"

    def test_default(self):
        """Test vim is the fallback."""
        assert resolve_editor(None, {}) == DEFAULT_EDITOR == "vim"


class TestRunEditor:
    """Tests for run_editor."""

    @patch("jiracli.editor.subprocess.run")
    def test_splits_command(self, mock_run):
        """Test editor arguments are split and the file appended."""
        run_editor("code --wait", "/tmp/ABC-1.yml")
        mock_run.assert_called_once_with(["code", "--wait", "/tmp/ABC-1.yml"], check=True)

    @patch("jiracli.editor.subprocess.run")
    def test_nonzero_exit_raises(self, mock_run):
        """Test a failing editor raises EditorError."""
        mock_run.side_effect = subprocess.CalledProcessError(2, ["vim"])
        with pytest.raises(EditorError) as exc_info:
            run_editor("vim", "/tmp/ABC-1.yml")
        assert exc_info.value.returncode == 2
        assert exc_info.value.command == "vim"

    @patch("jiracli.editor.subprocess.run")
    def test_missing_editor_raises(self, mock_run):
        """Test an editor that cannot start raises EditorError."""
        mock_run.side_effect = FileNotFoundError("no such file")
        with pytest.raises(EditorError):
            run_editor("not-an-editor", "/tmp/ABC-1.yml")


class TestPromptYn:
    """Tests for prompt_yn."""

    @pytest.mark.parametrize("answer,expected", [
        ("y", True), ("YES", True), ("n", False), ("No", False),
    ])
    def test_answers(self, answer, expected):
        """Test yes and no answers."""
        assert prompt_yn("edit again?", input_func=lambda q: answer) is expected

    def test_empty_uses_default(self):
        """Test an empty answer picks the default."""
        assert prompt_yn("edit again?", True, input_func=lambda q: "") is True
        assert prompt_yn("edit again?", False, input_func=lambda q: "") is False

    def test_eof_uses_default(self):
        """Test end of input picks the default."""
        def closed(question):
            raise EOFError

        assert prompt_yn("edit again?", False, input_func=closed) is False

    def test_asks_until_understood(self):
        """Test unrecognised answers ask again."""
        answers = iter(["maybe", "what", "n"])
        ask = Mock(side_effect=lambda q: next(answers))
        assert prompt_yn("edit again?", input_func=ask) is False
        assert ask.call_count == 3
        ask.assert_called_with("edit again? [Y/n] ")
