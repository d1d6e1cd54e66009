#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Credentials used for the Jira session login.

Jira's cookie based authentication exchanges a username and password for a
session cookie at ``/rest/auth/1/session``. This module resolves the user
name and password needed for that exchange.
"""
import getpass
import os
from typing import Callable, Dict, Optional

from jiracli.exceptions import JiraAuthenticationError
from jiracli.jira_logs import add_log


def _prompt_password(user: str) -> str:
    return getpass.getpass(f"Jira Password [{user}]: ")


class Credentials:
    """Handles the user name and password for a session login.

    The password is looked up lazily, in order: the value given at
    construction, the ``JIRA_PASSWORD`` environment variable, and finally
    an interactive prompt.

    Attributes:
        user: The Jira user name.
    """

    def __init__(
        self,
        user: Optional[str] = None,
        password: Optional[str] = None,
        prompt: Optional[Callable[[str], str]] = None,
    ) -> None:
        """Initialize credentials for Jira authentication.

        :param user: A username (default: ``$JIRA_USER`` then ``$USER``)
        :param password: A user password
        :param prompt: Callable asking the user for a password
        """
        self.user = (
            user
            or os.environ.get("JIRA_USER")
            or os.environ.get("USER")
            or getpass.getuser()
        )
        self._password = password
        self._prompt = prompt or _prompt_password

    @property
    def password(self) -> str:
        """Return the password, prompting for it on first use."""
        if self._password is None:
            self._password = os.environ.get("JIRA_PASSWORD")
        if self._password is None:
            add_log(f"Prompting for password of {self.user}", "debug")
            try:
                self._password = self._prompt(self.user)
            except (EOFError, KeyboardInterrupt) as err:
                raise JiraAuthenticationError(
                    message="No password available for login"
                ) from err
        return self._password

    def login_payload(self) -> Dict[str, str]:
        """Return the JSON body for ``POST /rest/auth/1/session``."""
        return {"username": self.user, "password": self.password}

    def forget(self) -> None:
        """Drop a remembered password so the next login asks again."""
        self._password = None
