#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""External editor and terminal prompt helpers."""
import logging
import os
import shlex
import subprocess
from typing import Callable, Mapping, Optional

from jiracli.exceptions import EditorError
from jiracli.jira_logs import get_logger

DEFAULT_EDITOR = "vim"


def resolve_editor(
    option: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """Pick the editor command line.

    Order: explicit option, ``JIRA_EDITOR``, ``EDITOR``, then ``vim``.
    """
    environ = os.environ if environ is None else environ
    return (
        option
        or environ.get("JIRA_EDITOR")
        or environ.get("EDITOR")
        or DEFAULT_EDITOR
    )


def run_editor(
    editor: str,
    file_name: str,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Open ``file_name`` in ``editor`` and wait for it to exit.

    The editor command is shell-split so options such as ``code --wait``
    work, and it inherits this process's stdin, stdout and stderr.

    :raises EditorError: If the editor cannot be started or exits non-zero
    """
    log = logger or get_logger("editor")
    command = shlex.split(editor) + [file_name]
    log.debug("Running: %r", command)
    try:
        subprocess.run(command, check=True)
    except subprocess.CalledProcessError as err:
        raise EditorError(
            message=f"Failed to edit template with {editor}",
            command=editor,
            returncode=err.returncode,
        ) from err
    except OSError as err:
        raise EditorError(
            message=f"Failed to run {editor}: {err}",
            command=editor,
        ) from err


def prompt_yn(
    question: str,
    default: bool = True,
    input_func: Callable[[str], str] = input,
) -> bool:
    """Ask a yes/no question on the terminal.

    An empty answer (or end of input) picks ``default``; anything else is
    asked again until it reads as yes or no.
    """
    suffix = "[Y/n]" if default else "[y/N]"
    while True:
        try:
            answer = input_func(f"{question} {suffix} ").strip().lower()
        except EOFError:
            return default
        if not answer:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
