#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Persistent storage for Jira session cookies.

Session cookies obtained at login are written to ``~/.jira.d/cookies.js``
so that later invocations reuse the session instead of logging in again.

Every save renews the expiry of the saved cookies to one week from now and
merges them into the stored list by cookie name: new values replace stored
cookies with the same name, stored cookies with other names are kept.

Example::

    from jiracli.cookies import CookieStore

    store = CookieStore()
    store.save([{"name": "JSESSIONID", "value": "abc"}])
    store.load_into(session.cookies, domain="jira.example.com")
"""
import json
import logging
import os
import time
from datetime import timedelta
from http.cookiejar import Cookie, CookieJar
from typing import Any, Dict, Iterable, List, Optional

from requests.cookies import create_cookie

from jiracli.file_io import config_dir, write_file
from jiracli.jira_logs import get_logger

COOKIE_FILE_NAME = "cookies.js"
COOKIE_LIFETIME = timedelta(days=7)

CookieRecord = Dict[str, Any]


def cookie_to_record(cookie: Cookie) -> CookieRecord:
    """Convert a :class:`http.cookiejar.Cookie` into a storable record."""
    return {
        "name": cookie.name,
        "value": cookie.value,
        "domain": cookie.domain,
        "path": cookie.path,
        "expires": cookie.expires,
        "secure": bool(cookie.secure),
        "httponly": cookie.has_nonstandard_attr("HttpOnly"),
    }


def record_to_cookie(record: CookieRecord, domain: str = "") -> Cookie:
    """Convert a stored record back into a cookie for a cookie jar."""
    rest = {"HttpOnly": None} if record.get("httponly") else {}
    return create_cookie(
        name=record["name"],
        value=record.get("value", ""),
        domain=record.get("domain") or domain,
        path=record.get("path") or "/",
        expires=record.get("expires"),
        secure=bool(record.get("secure", False)),
        rest=rest,
    )


class CookieStore:
    """Cookie persistence backed by a JSON list on disk.

    Attributes:
        path: Location of the cookie file.
        lifetime: How long saved cookies stay valid.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        lifetime: timedelta = COOKIE_LIFETIME,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the store.

        :param path: Cookie file (default: ``~/.jira.d/cookies.js``)
        :param lifetime: Expiry applied to every saved cookie
        :param logger: Logger to report to
        """
        self.path = path or os.path.join(config_dir(), COOKIE_FILE_NAME)
        self.lifetime = lifetime
        self.log = logger or get_logger("cookies")

    def load(self, include_expired: bool = False) -> List[CookieRecord]:
        """Read the stored cookie records.

        A missing file is an empty store. A file holding invalid JSON is
        logged and treated as empty so that the next save rewrites it.

        :param include_expired: Also return records whose expiry passed
        :return: List of cookie records
        """
        if not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            raw = f.read()
        try:
            records = json.loads(raw) if raw.strip() else []
        except ValueError as err:
            self.log.error("Failed to parse json from file %s: %s", self.path, err)
            return []
        if not isinstance(records, list):
            self.log.error("Expected a list of cookies in %s", self.path)
            return []

        records = [r for r in records if isinstance(r, dict) and r.get("name")]
        if not include_expired:
            now = time.time()
            records = [
                r for r in records
                if not r.get("expires") or r["expires"] > now
            ]
        self.log.debug("Loading Cookies: %s", [r["name"] for r in records])
        return records

    def save(self, cookies: Iterable[CookieRecord]) -> List[CookieRecord]:
        """Merge ``cookies`` into the stored list and write it back.

        :param cookies: Cookie records to save
        :return: The merged list that was written
        """
        expiry = int(time.time() + self.lifetime.total_seconds())
        merged: Dict[str, CookieRecord] = {
            record["name"]: record for record in self.load(include_expired=True)
        }
        for cookie in cookies:
            record = dict(cookie)
            record["expires"] = expiry
            merged[record["name"]] = record

        records = list(merged.values())
        write_file(self.path, json.dumps(records, indent=2))
        os.chmod(self.path, 0o600)
        return records

    def save_jar(self, jar: CookieJar) -> List[CookieRecord]:
        """Save every cookie held by ``jar`` (e.g. ``response.cookies``)."""
        return self.save(cookie_to_record(cookie) for cookie in jar)

    def load_into(self, jar: CookieJar, domain: str = "") -> int:
        """Add the stored, unexpired cookies to ``jar``.

        :param jar: Cookie jar to fill, usually ``session.cookies``
        :param domain: Domain used for records stored without one
        :return: Number of cookies added
        """
        count = 0
        for record in self.load():
            jar.set_cookie(record_to_cookie(record, domain))
            count += 1
        return count

    def clear(self) -> None:
        """Forget every stored cookie."""
        if os.path.exists(self.path):
            write_file(self.path, "[]")
