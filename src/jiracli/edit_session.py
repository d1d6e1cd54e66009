#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Edit an issue document in the user's editor and submit it.

A session renders a template into a scratch YAML file, opens it in the
user's editor, parses and validates what comes back and hands the result to
a submit callback as a JSON string. Failures in the editor, the YAML or the
field check ask ``edit again?`` and reopen the file. The scratch file and
its pristine copy are always removed when the session ends.

States::

    RENDERING -> EDITING -> PARSING -> VALIDATING -> SUBMITTING -> DONE
                    ^          |           |             |
                    +----------+-----------+-------------+  (edit again?)

    terminal: DONE, NO_CHANGES, ABORTED, FAILED

Example::

    from jiracli.edit_session import EditSession

    def submit(payload):
        client.put_json(endpoints.issue("ABC-1"), data=payload)

    session = EditSession(template_text, issue_context, submit, prefix="edit-")
    session.run()
"""
import enum
import logging
from typing import Any, Callable, Mapping, Optional

from jiracli.editor import prompt_yn, resolve_editor, run_editor
from jiracli.exceptions import (
    DocumentParseError,
    EditorError,
    JiraValidationError,
    NoChangesFound,
    SubmitError,
    UserAborted,
)
from jiracli.file_io import (
    copy_file,
    files_identical,
    make_scratch_file,
    read_file,
    remove_file,
    write_file,
)
from jiracli.jira_logs import get_logger
from jiracli.templates import render
from jiracli.validation import Document, allowed_fields_from

RETRY_PROMPT = "edit again?"
SCRATCH_SUFFIX = ".yml"
BACKUP_SUFFIX = ".orig"


class SessionState(enum.Enum):
    RENDERING = "rendering"
    EDITING = "editing"
    PARSING = "parsing"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    DONE = "done"
    NO_CHANGES = "no-changes"
    ABORTED = "aborted"
    FAILED = "failed"


class EditSession:
    """One render, edit, validate and submit cycle.

    Attributes:
        state: Current :class:`SessionState`.
        attempts: Number of passes through the edit loop.
        document: The last document that passed validation.
        result: Whatever the submit callback returned.
        file_name: Working scratch file while the session runs.
        backup_name: Pristine copy of the rendered text.
    """

    def __init__(
        self,
        template_text: str,
        context: Mapping[str, Any],
        submit: Callable[[str], Any],
        editing: bool = True,
        editor: Optional[str] = None,
        prefix: str = "jira-",
        tmp_dir: Optional[str] = None,
        retry_submit: bool = False,
        template_name: Optional[str] = None,
        prompt: Callable[[str, bool], bool] = prompt_yn,
        editor_runner: Callable[..., None] = run_editor,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the session.

        :param template_text: Jinja2 template for the document
        :param context: Data rendered into the template; ``meta.fields``
                        limits which fields may be edited
        :param submit: Called with the JSON payload; raises on failure
        :param editing: Open the editor (False submits the rendered text)
        :param editor: Editor command (default: JIRA_EDITOR, EDITOR, vim)
        :param prefix: Scratch file name prefix
        :param tmp_dir: Scratch directory (default: ``~/.jira.d/tmp``)
        :param retry_submit: Reopen the editor when the user asks to after
                             a failed submit
        :param template_name: Name used in render error messages
        :param prompt: Yes/no prompt, called as ``prompt(question, default)``
        :param editor_runner: Called as ``editor_runner(editor, file_name,
                              logger=...)``; raises EditorError on failure
        :param logger: Logger to report to
        """
        self.template_text = template_text
        self.context = context
        self.submit = submit
        self.editing = editing
        self.editor = resolve_editor(editor)
        self.prefix = prefix
        self.tmp_dir = tmp_dir
        self.retry_submit = retry_submit
        self.template_name = template_name
        self.prompt = prompt
        self.editor_runner = editor_runner
        self.log = logger or get_logger("edit")

        self.allowed_fields = allowed_fields_from(context)
        self.state = SessionState.RENDERING
        self.attempts = 0
        self.document: Optional[Document] = None
        self.result: Any = None
        self.file_name: Optional[str] = None
        self.backup_name: Optional[str] = None

    def _set(self, state: SessionState) -> None:
        self.log.debug("Edit session %s -> %s", self.state.value, state.value)
        self.state = state

    def _edit_again(self) -> bool:
        """Ask whether to reopen the editor; never asks when not editing."""
        return self.editing and self.prompt(RETRY_PROMPT, True)

    def _render(self) -> None:
        text = render(self.template_text, self.context, name=self.template_name)
        self.file_name = make_scratch_file(self.prefix, SCRATCH_SUFFIX, self.tmp_dir)
        self.backup_name = self.file_name + BACKUP_SUFFIX
        write_file(self.file_name, text)
        copy_file(self.file_name, self.backup_name)

    def _cleanup(self) -> None:
        remove_file(self.file_name)
        remove_file(self.backup_name)

    def _parse(self) -> Document:
        try:
            text = read_file(self.file_name)
        except OSError as err:
            raise DocumentParseError(
                message=f"Failed to read tmpfile {self.file_name}: {err}",
                filename=self.file_name,
            ) from err
        return Document.parse(text, filename=self.file_name)

    def _loop(self) -> Document:
        self._render()
        while True:
            self.attempts += 1

            if self.editing:
                self._set(SessionState.EDITING)
                try:
                    self.editor_runner(self.editor, self.file_name, logger=self.log)
                except EditorError as err:
                    self.log.error("%s", err.messages)
                    if self._edit_again():
                        continue
                    raise
                if files_identical(self.backup_name, self.file_name):
                    raise NoChangesFound()

            self._set(SessionState.PARSING)
            try:
                document = self._parse()
            except DocumentParseError as err:
                self.log.error("%s", err.messages)
                if self._edit_again():
                    continue
                raise

            document = document.fixup()
            if document.aborted:
                self.log.info("abort flag found in template, quitting")
                raise UserAborted()

            self._set(SessionState.VALIDATING)
            try:
                document.validate(self.allowed_fields)
            except JiraValidationError as err:
                self.log.error("%s", err.messages)
                if self._edit_again():
                    continue
                raise

            self._set(SessionState.SUBMITTING)
            try:
                self.result = self.submit(document.to_payload())
            except Exception as err:
                self.log.error("%s", err)
                # The question is asked either way; the answer only reopens
                # the editor when retry_submit is set.
                if self._edit_again() and self.retry_submit:
                    continue
                raise SubmitError(str(err)) from err

            self.document = document
            return document

    def run(self) -> Document:
        """Run the session to completion.

        :return: The submitted document

        :raises RenderError: The template could not be rendered
        :raises EditorError: The editor failed and the user gave up
        :raises DocumentParseError: The YAML was invalid and the user gave up
        :raises JiraValidationError: A field is not editable and the user
                                     gave up
        :raises SubmitError: The submit callback failed
        :raises NoChangesFound: The editor exited without changes
        :raises UserAborted: The document set ``abort: true``
        """
        try:
            document = self._loop()
        except NoChangesFound:
            self._set(SessionState.NO_CHANGES)
            raise
        except UserAborted:
            self._set(SessionState.ABORTED)
            raise
        except BaseException:
            self._set(SessionState.FAILED)
            raise
        finally:
            self._cleanup()
        self._set(SessionState.DONE)
        return document


def edit_template(
    template_text: str,
    context: Mapping[str, Any],
    submit: Callable[[str], Any],
    **kwargs: Any,
) -> Any:
    """Run an :class:`EditSession` and return what ``submit`` returned."""
    session = EditSession(template_text, context, submit, **kwargs)
    session.run()
    return session.result
