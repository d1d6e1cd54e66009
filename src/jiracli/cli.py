#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Command line entry point for ``jira``.

Examples::

    jira ls -p ABC
    jira ABC-123                      # same as: jira view ABC-123
    jira edit ABC-123 -o priority=Major
    jira create -p ABC -i Task -o summary="Broken build" --noedit
    jira trans "In Progress" ABC-123 -m "picking this up"
    jira view ABC-123 --saveFile issue.yml --browse
    jira req /rest/api/2/myself

Exit status is 0 on success, 1 on errors (including an unchanged or
aborted edit) and 2 on usage errors.
"""
import argparse
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

import requests

from jiracli import __version__
from jiracli.client import ClientConfig, JiraClient
from jiracli.commands import Commands
from jiracli.config import JiraConfig, load_config
from jiracli.credentials import Credentials
from jiracli.exceptions import ConfigError, JiraCliError, NoChangesFound, UserAborted
from jiracli.jira_logs import get_logger, setup_logging
from jiracli.templates import export_templates, unexport_templates
from jiracli.validation import is_issue_key, validate_url

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2

# Commands that never talk to Jira
LOCAL_COMMANDS = ("export-templates", "unexport-templates")

VALUE_OPTIONS = ("-e", "--endpoint", "-u", "--user", "-t", "--template", "--editor")


def _override(value: str) -> tuple:
    key, sep, val = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return key, val


def _global_options() -> argparse.ArgumentParser:
    # SUPPRESS keeps a subcommand's unset flags from hiding ones given
    # before the subcommand name
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v", "--verbose", action="count", default=argparse.SUPPRESS,
        help="Increase logging (-v info, -vv debug)",
    )
    common.add_argument("-e", "--endpoint", default=argparse.SUPPRESS,
                        help="Base URI of the Jira service")
    common.add_argument("-u", "--user", default=argparse.SUPPRESS,
                        help="Username used to log in")
    common.add_argument("-t", "--template", default=argparse.SUPPRESS,
                        help="Template file or name to use for output or editing")
    common.add_argument("--editor", default=argparse.SUPPRESS,
                        help="Editor command (default: JIRA_EDITOR, EDITOR, vim)")
    common.add_argument("--noedit", dest="noedit", action="store_true",
                        default=argparse.SUPPRESS,
                        help="Submit the rendered template without opening an editor")
    common.add_argument("--insecure", action="store_true", default=argparse.SUPPRESS,
                        help="Disable TLS certificate verification")
    return common


def _add_browse(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-b", "--browse", action="store_true",
                        help="Open the issue in a web browser afterwards")


def _add_save_file(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--saveFile", "--save-file", dest="save_file", metavar="FILE",
                        help="Write the response data to FILE as YAML")


def build_parser() -> argparse.ArgumentParser:
    """Build the ``jira`` argument parser."""
    common = _global_options()
    parser = argparse.ArgumentParser(
        prog="jira",
        description="Command line client for Jira",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[common],
        epilog=__doc__.split("Examples::", 1)[1].split("Exit status", 1)[0],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    def add(name: str, help: str, aliases: Optional[List[str]] = None) -> argparse.ArgumentParser:
        return subparsers.add_parser(name, help=help, aliases=aliases or [], parents=[common])

    add("login", "Log in to Jira and store the session cookie")
    add("logout", "Close the Jira session and forget the stored cookie")

    ls = add("list", "List issues matching a query", aliases=["ls"])
    ls.add_argument("-q", "--query", help="JQL query (overrides the other filters)")
    ls.add_argument("-p", "--project", help="Project to search")
    ls.add_argument("-c", "--component", help="Component to search")
    ls.add_argument("-a", "--assignee", help="Assignee to search for")
    ls.add_argument("-i", "--issuetype", help="Issue type to search for")
    ls.add_argument("-w", "--watcher", help="Watcher to search for")
    ls.add_argument("-r", "--reporter", help="Reporter to search for")
    ls.add_argument("-s", "--sort", default="priority asc, key",
                    help="ORDER BY clause (default: %(default)s)")
    ls.add_argument("-l", "--limit", type=int, dest="max_results",
                    help="Maximum number of results")
    ls.add_argument("-f", "--queryfields", dest="query_fields",
                    help="Comma separated fields to fetch")
    _add_save_file(ls)

    view = add("view", "Print an issue")
    view.add_argument("issue", help="Issue key, e.g. ABC-123")
    _add_browse(view)
    _add_save_file(view)

    edit = add("edit", "Edit an issue in the editor")
    edit.add_argument("issue")
    edit.add_argument("-m", "--comment", help="Comment to add with the edit")
    _add_browse(edit)
    edit.add_argument("-o", "--override", action="append", type=_override, default=[],
                      metavar="KEY=VALUE", help="Template override (repeatable)")

    create = add("create", "Create an issue")
    create.add_argument("-p", "--project", help="Project key")
    create.add_argument("-i", "--issuetype", default="Bug",
                        help="Issue type (default: %(default)s)")
    create.add_argument("-m", "--comment", help="Description for the new issue")
    _add_browse(create)
    _add_save_file(create)
    create.add_argument("-o", "--override", action="append", type=_override, default=[],
                        metavar="KEY=VALUE", help="Template override (repeatable)")

    comment = add("comment", "Add a comment to an issue")
    comment.add_argument("issue")
    comment.add_argument("-m", "--comment", help="Comment text")
    _add_browse(comment)

    browse = add("browse", "Open an issue in a web browser", aliases=["b"])
    browse.add_argument("issue")

    transitions = add("transitions", "List the transitions available for an issue")
    transitions.add_argument("issue")

    trans = add("transition", "Move an issue through a workflow transition",
                aliases=["trans"])
    trans.add_argument("transition", help="Transition name or id")
    trans.add_argument("issue")
    trans.add_argument("-m", "--comment", help="Comment to add with the transition")
    _add_browse(trans)
    trans.add_argument("-o", "--override", action="append", type=_override, default=[],
                       metavar="KEY=VALUE", help="Template override (repeatable)")

    editmeta = add("editmeta", "Print the edit metadata for an issue")
    editmeta.add_argument("issue")

    createmeta = add("createmeta", "Print the create metadata for an issue type")
    createmeta.add_argument("-p", "--project", help="Project key")
    createmeta.add_argument("-i", "--issuetype", default="Bug")

    for name, verb in (("export-templates", "Write"), ("unexport-templates", "Remove")):
        sub = add(name, f"{verb} the default templates")
        sub.add_argument("-d", "--directory", help="Template directory "
                         "(default: ~/.jira.d/templates)")

    req = add("request", "Send a raw API request", aliases=["req"])
    req.add_argument("uri", help="API path, e.g. /rest/api/2/myself")
    req.add_argument("data", nargs="?", help="Request body")
    req.add_argument("-M", "--method", default="GET", help="HTTP method (default: GET)")
    _add_save_file(req)

    return parser


def _normalize_argv(argv: List[str]) -> List[str]:
    """Turn ``jira ABC-123`` into ``jira view ABC-123``."""
    skip = False
    for index, arg in enumerate(argv):
        if skip:
            skip = False
            continue
        if arg.startswith("-"):
            skip = arg in VALUE_OPTIONS
            continue
        if is_issue_key(arg.upper()):
            return argv[:index] + ["view"] + argv[index:]
        break
    return argv


def _config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides = {
        "endpoint": getattr(args, "endpoint", None),
        "user": getattr(args, "user", None),
        "template": getattr(args, "template", None),
        "editor": getattr(args, "editor", None),
        "project": getattr(args, "project", None),
    }
    if getattr(args, "noedit", False):
        overrides["edit"] = False
    if getattr(args, "browse", False):
        overrides["browse"] = True
    if getattr(args, "save_file", None):
        overrides["save_file"] = args.save_file
    if getattr(args, "insecure", False):
        overrides["insecure"] = True
    return overrides


def make_client(config: JiraConfig, logger: Optional[logging.Logger] = None) -> JiraClient:
    """Create a :class:`JiraClient` from the effective configuration.

    :raises ConfigError: If no endpoint is configured
    """
    if not config.endpoint:
        raise ConfigError(
            message="No Jira endpoint configured, use --endpoint or "
                    "set endpoint in ~/.jira.d/config.yml"
        )
    return JiraClient(
        base_url=validate_url(config.endpoint),
        credentials=Credentials(user=config.user),
        config=ClientConfig(timeout=config.timeout, verify_ssl=not config.insecure),
        logger=logger,
    )


def _overrides(args: argparse.Namespace, comment_key: str = "comment") -> Dict[str, Any]:
    values = dict(getattr(args, "override", None) or [])
    if getattr(args, "comment", None):
        values[comment_key] = args.comment
    return values


def _filters(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        name: getattr(args, name)
        for name in ("project", "component", "assignee", "issuetype",
                     "watcher", "reporter", "sort")
    }


HANDLERS: Dict[str, Callable[[Commands, argparse.Namespace], Any]] = {
    "login": lambda cmd, args: cmd.login(),
    "logout": lambda cmd, args: cmd.logout(),
    "list": lambda cmd, args: cmd.list(
        query=args.query,
        max_results=args.max_results,
        query_fields=[f.strip() for f in args.query_fields.split(",")]
        if args.query_fields else None,
        **_filters(args)
    ),
    "view": lambda cmd, args: cmd.view(args.issue),
    "browse": lambda cmd, args: cmd.browse(args.issue),
    "edit": lambda cmd, args: cmd.edit(args.issue, _overrides(args)),
    "create": lambda cmd, args: cmd.create(
        args.project, args.issuetype, _overrides(args, comment_key="description")
    ),
    "comment": lambda cmd, args: cmd.comment(args.issue, args.comment),
    "transitions": lambda cmd, args: cmd.transitions(args.issue),
    "transition": lambda cmd, args: cmd.transition(
        args.issue, args.transition, _overrides(args)
    ),
    "editmeta": lambda cmd, args: cmd.edit_meta(args.issue),
    "createmeta": lambda cmd, args: cmd.create_meta(args.project, args.issuetype),
    "request": lambda cmd, args: cmd.request(args.uri, method=args.method, data=args.data),
}

ALIASES = {"ls": "list", "trans": "transition", "req": "request", "b": "browse"}


def run(args: argparse.Namespace, config: JiraConfig, log: logging.Logger) -> None:
    command = ALIASES.get(args.command, args.command)
    if command in LOCAL_COMMANDS:
        if command == "export-templates":
            for path in export_templates(args.directory):
                print(f"Exported {path}")
        else:
            for path in unexport_templates(args.directory):
                print(f"Removed {path}")
        return

    with make_client(config, logger=log) as client:
        HANDLERS[command](Commands(client, config, logger=log), args)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the ``jira`` command.

    :param argv: Arguments without the program name (default: ``sys.argv[1:]``)
    :return: Process exit status
    """
    parser = build_parser()
    argv = _normalize_argv(list(sys.argv[1:] if argv is None else argv))
    try:
        args = parser.parse_args(argv)
    except SystemExit as err:
        return EXIT_OK if err.code in (0, None) else EXIT_USAGE

    if not args.command:
        parser.print_help(sys.stderr)
        return EXIT_USAGE

    setup_logging(getattr(args, "verbose", 0))
    log = get_logger("cli")

    try:
        config = load_config(_config_overrides(args), logger=log)
        run(args, config, log)
    except (NoChangesFound, UserAborted) as err:
        log.warning("%s", err.messages)
        return EXIT_ERROR
    except JiraCliError as err:
        log.error("%s", err.messages or err)
        return EXIT_ERROR
    except requests.exceptions.RequestException as err:
        log.error("Request failed: %s", err)
        return EXIT_ERROR
    except KeyboardInterrupt:
        log.warning("Interrupted")
        return EXIT_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
