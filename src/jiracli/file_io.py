#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""File I/O utilities for jiracli.

This module provides the small filesystem helpers shared by the cookie
store, the template resolver and the edit session: locating the per-user
``.jira.d`` directory, walking up from the working directory to find
project-local files, and creating/removing scratch files.

Example::

    from jiracli.file_io import path_builder, find_closest_parent_path

    # ~/.jira.d/tmp, created if missing
    tmp_dir = path_builder("tmp")

    # nearest .jira.d/templates/edit above the current directory
    template = find_closest_parent_path(".jira.d/templates/edit")
"""
import contextlib
import filecmp
import os
import shutil
import tempfile
from typing import Optional

from jiracli.jira_logs import add_log

CONFIG_DIR_NAME = ".jira.d"


def home_dir() -> str:
    """Return the current user's home directory."""
    return os.environ.get("HOME") or os.path.expanduser("~")


def config_dir() -> str:
    """Return the per-user configuration directory (``~/.jira.d``)."""
    return os.path.join(home_dir(), CONFIG_DIR_NAME)


def path_builder(
    path: str = "",
    file_name: Optional[str] = None,
    base_path: Optional[str] = None,
) -> str:
    """Build a directory path and file path.

    Creates the directory if it doesn't exist and returns the full file path.

    :param path: Relative path for the directory
    :param file_name: Name of the file
    :param base_path: Base path to use (default: ``~/.jira.d``)
    :return: Full path to the file, or to the directory when no file name
             is given

    Example::

        path_builder("tmp")
        # Returns: "/home/me/.jira.d/tmp"

        path_builder("templates", "edit", base_path="/tmp")
        # Returns: "/tmp/templates/edit"
    """
    base = base_path if base_path is not None else config_dir()
    base_dir = os.path.join(base, path) if path else base

    if not os.path.exists(base_dir):
        os.makedirs(base_dir, mode=0o755)
        add_log(f"Building Path {base_dir}", "debug")

    if file_name is None:
        return base_dir

    return os.path.join(base_dir, file_name)


def find_closest_parent_path(
    relative: str,
    start: Optional[str] = None,
) -> Optional[str]:
    """Find ``relative`` in ``start`` or the nearest directory above it.

    :param relative: Relative path to look for, e.g. ``.jira.d/templates/edit``
    :param start: Directory to start from (default: current directory)
    :return: The first existing path, or None when the filesystem root is
             reached without a match
    """
    current = os.path.abspath(start or os.getcwd())
    while True:
        candidate = os.path.join(current, relative)
        if os.path.exists(candidate):
            return candidate
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def read_file(file_name: str, encoding: str = "utf-8") -> str:
    """Return the text content of ``file_name``."""
    with open(file_name, "r", encoding=encoding) as f:
        return f.read()


def write_file(
    file_name: str,
    content: str,
    mode: str = "w",
    encoding: str = "utf-8",
) -> None:
    """Write ``content`` to ``file_name``, creating parent directories."""
    directory = os.path.dirname(file_name)
    if directory and not os.path.exists(directory):
        os.makedirs(directory, mode=0o755)
    with open(file_name, mode, encoding=encoding) as f:
        f.write(content)
    add_log(f"Writing to file {file_name}", "debug")


def copy_file(source: str, destination: str) -> None:
    """Copy ``source`` to ``destination`` byte for byte."""
    shutil.copyfile(source, destination)


def files_identical(first: str, second: str) -> bool:
    """Return True when both files have exactly the same bytes."""
    return filecmp.cmp(first, second, shallow=False)


def make_scratch_file(
    prefix: str,
    suffix: str = ".yml",
    directory: Optional[str] = None,
) -> str:
    """Create an empty uniquely named scratch file and return its path.

    :param prefix: File name prefix, e.g. ``"edit-"``
    :param suffix: File name suffix (default: ``".yml"``)
    :param directory: Directory to create it in (default: ``~/.jira.d/tmp``)
    :return: Path of the new file
    """
    directory = directory or path_builder("tmp")
    if not os.path.exists(directory):
        os.makedirs(directory, mode=0o755)
    fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=directory)
    os.close(fd)
    return name


def remove_file(file_name: Optional[str]) -> None:
    """Remove ``file_name`` if it exists."""
    if not file_name:
        return
    with contextlib.suppress(FileNotFoundError):
        os.remove(file_name)
        add_log(f"Removed {file_name}", "debug")
