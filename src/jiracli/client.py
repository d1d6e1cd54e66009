#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""HTTP client with cookie session authentication for the Jira API.

The client keeps a pooled :class:`requests.Session` whose cookie jar is
seeded from the cookies persisted by earlier runs. When Jira answers a
request with 401 the client logs in once and replays the original request
exactly once; whatever the replay returns is handed back to the caller.

Features:
    - Connection pooling via requests.Session
    - Transparent re-login on 401 with a single replay
    - Session cookies persisted to ``~/.jira.d/cookies.js``
    - Response bodies released through scoped blocks
    - Request/response logging with credential masking

Example::

    from jiracli.client import JiraClient
    from jiracli.credentials import Credentials

    with JiraClient(
        base_url="https://jira.example.com",
        credentials=Credentials(user="gopher"),
    ) as client:
        issue = client.get_json("/rest/api/2/issue/ABC-1")
"""
import json as jsonlib
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional
from urllib.parse import urljoin, urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from jiracli.cookies import CookieStore
from jiracli.credentials import Credentials
from jiracli.endpoints import EndpointBuilder
from jiracli.exceptions import (
    JiraAuthenticationError,
    JiraValidationError,
    raise_for_status,
)
from jiracli.jira_logs import get_logger


@dataclass
class ClientConfig:
    """Configuration for JiraClient.

    Attributes:
        pool_connections: Number of connection pools to cache (default: 10)
        pool_maxsize: Maximum connections per pool (default: 10)
        max_retries: Maximum retry attempts for failed connections (default: 3)
        backoff_factor: Backoff factor for retries (default: 0.3)
        timeout: Request timeout in seconds (default: None, no timeout)
        verify_ssl: Whether to verify SSL certificates (default: True)
        api_version: Jira API version to use (default: "2")
    """

    pool_connections: int = 10
    pool_maxsize: int = 10
    max_retries: int = 3
    backoff_factor: float = 0.3
    timeout: Optional[float] = None
    verify_ssl: bool = True
    api_version: str = "2"
    retry_status_forcelist: tuple = field(
        default_factory=lambda: (502, 503, 504)
    )


class JiraClient:
    """HTTP client for Jira with cookie session authentication.

    Attributes:
        base_url: The base URL of the Jira instance.
        session: The underlying requests Session.
        endpoints: URL builder bound to ``base_url``.
    """

    def __init__(
        self,
        base_url: str,
        credentials: Optional[Credentials] = None,
        config: Optional[ClientConfig] = None,
        cookie_store: Optional[CookieStore] = None,
        session: Optional[requests.Session] = None,
        login_handler: Optional[Callable[[], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the Jira client.

        :param base_url: Base URL of the Jira instance
        :param credentials: User name and password used to log in
        :param config: Client configuration
        :param cookie_store: Where session cookies are persisted
        :param session: Optional existing session to use
        :param login_handler: Callable run when a request answers 401
                              (default: :meth:`login`)
        :param logger: Logger to report to
        """
        if not base_url:
            raise JiraValidationError(
                message="A Jira endpoint is required",
                field="endpoint",
            )
        self.base_url = base_url.rstrip("/")
        self.config = config or ClientConfig()
        self.credentials = credentials or Credentials()
        self.cookie_store = cookie_store or CookieStore()
        self.endpoints = EndpointBuilder.from_url(
            self.base_url, api_version=self.config.api_version
        )
        self.log = logger or get_logger("client")
        self._login_handler = login_handler or self.login
        self._closed = False

        self.session = session if session is not None else self._create_session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

        loaded = self.cookie_store.load_into(
            self.session.cookies, domain=urlparse(self.base_url).hostname or ""
        )
        self.log.debug("Loaded %d stored cookies", loaded)

    def _create_session(self) -> requests.Session:
        """Create a new session with connection pooling.

        :return: Configured requests Session
        """
        session = requests.Session()

        # POST is left out so that issue creation is never sent twice
        retry_strategy = Retry(
            total=self.config.max_retries,
            backoff_factor=self.config.backoff_factor,
            status_forcelist=self.config.retry_status_forcelist,
            allowed_methods=["GET", "PUT", "DELETE"],
            raise_on_status=False,
        )

        adapter = HTTPAdapter(
            pool_connections=self.config.pool_connections,
            pool_maxsize=self.config.pool_maxsize,
            max_retries=retry_strategy,
        )

        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def _build_url(self, path: str) -> str:
        """Build full URL from path.

        :param path: API path (e.g., "/rest/api/2/myself") or full URL
        :return: Full URL
        """
        if path.startswith(("http://", "https://")):
            return path
        return urljoin(self.base_url + "/", path.lstrip("/"))

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """Send one request and persist any cookies it sets.

        Network errors are logged and re-raised unchanged. Error statuses
        other than 401 are logged and returned.
        """
        self.log.info("%s %s", method, url)
        if kwargs.get("data") is not None:
            self.log.debug("Request body: %s", kwargs["data"])
        kwargs.setdefault("timeout", self.config.timeout)
        try:
            response = self.session.request(
                method=method,
                url=url,
                verify=self.config.verify_ssl,
                **kwargs,
            )
        except requests.exceptions.RequestException as err:
            self.log.error("Failed to %s %s: %s", method, url, err)
            raise

        if not 200 <= response.status_code < 300 and response.status_code != 401:
            self.log.error("response status: %s %s", response.status_code, response.reason)

        if "Set-Cookie" in response.headers:
            self.cookie_store.save_jar(response.cookies)

        return response

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        data: Optional[Any] = None,
        params: Optional[Dict] = None,
        headers: Optional[Dict] = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Make an HTTP request, logging in and replaying once on 401.

        The body is serialised once so that the replay sends exactly the
        same bytes as the first attempt.

        :param method: HTTP method (GET, POST, PUT, DELETE, etc.)
        :param path: API path or full URL
        :param json: JSON payload
        :param data: Raw body, e.g. an already serialised JSON document
        :param params: Query parameters
        :param headers: Additional headers
        :param kwargs: Additional arguments to requests

        :return: Response object; the caller must close it

        :raises JiraValidationError: If the client was closed
        :raises requests.exceptions.RequestException: On network errors
        """
        if self._closed:
            raise JiraValidationError(
                message="Client has been closed",
                field="client",
            )

        url = self._build_url(path)
        if json is not None:
            data = jsonlib.dumps(json)
        send_kwargs = dict(data=data, params=params, headers=headers, **kwargs)

        response = self._send(method, url, **send_kwargs)
        if response.status_code != 401:
            return response

        self.log.info("Unauthorized response for %s %s, logging in", method, url)
        response.close()
        self._login_handler()
        return self._send(method, url, **send_kwargs)

    @contextmanager
    def open(self, method: str, path: str, **kwargs: Any) -> Iterator[requests.Response]:
        """Make a request and close the response when the block exits.

        Example::

            with client.open("GET", "/rest/api/2/myself") as response:
                print(response.status_code)
        """
        response = self.request(method, path, **kwargs)
        try:
            yield response
        finally:
            response.close()

    def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        """Make a request and return its decoded JSON body.

        :raises JiraAPIError: (or a subclass) for error statuses
        :return: Decoded body, or None for empty responses
        """
        with self.open(method, path, **kwargs) as response:
            raise_for_status(response)
            if not response.content:
                return None
            return response.json()

    def get(self, path: str, params: Optional[Dict] = None, **kwargs: Any) -> requests.Response:
        """Make a GET request."""
        return self.request("GET", path, params=params, **kwargs)

    def get_json(self, path: str, **kwargs: Any) -> Any:
        """GET ``path`` and return the decoded JSON body."""
        return self.request_json("GET", path, **kwargs)

    def post_json(self, path: str, **kwargs: Any) -> Any:
        """POST to ``path`` and return the decoded JSON body."""
        return self.request_json("POST", path, **kwargs)

    def put_json(self, path: str, **kwargs: Any) -> Any:
        """PUT to ``path`` and return the decoded JSON body."""
        return self.request_json("PUT", path, **kwargs)

    def login(self) -> None:
        """Open a cookie session with the configured credentials.

        :raises JiraAuthenticationError: If Jira rejects the credentials
        """
        url = self.endpoints.session()
        payload = jsonlib.dumps(self.credentials.login_payload())
        response = self._send("POST", url, data=payload)
        try:
            if not 200 <= response.status_code < 300:
                self.credentials.forget()
                raise JiraAuthenticationError(
                    message=f"Failed to login as {self.credentials.user}",
                    status_code=response.status_code,
                )
        finally:
            response.close()
        self.log.info("Logged in as %s", self.credentials.user)

    def logout(self) -> None:
        """Close the cookie session and forget the stored cookies."""
        # 401 here means the session was already gone, so no re-login
        response = self._send("DELETE", self.endpoints.session())
        try:
            if not 200 <= response.status_code < 300 and response.status_code != 401:
                raise_for_status(response)
        finally:
            response.close()
        self.session.cookies.clear()
        self.cookie_store.clear()
        self.log.info("Logged out")

    def close(self) -> None:
        """Close the session and release connections."""
        if not self._closed:
            self.session.close()
            self._closed = True
            self.log.debug("Client session closed")

    def __enter__(self) -> "JiraClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
