from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Callable

from . import datasets, files, users
from .auth_inputs import check_token_expiration
from .cli_shared import GlobalConfig, OpError, UsageError
from .http_helpers import check_valid_chars
from .usage import render_usage


@dataclass(frozen=True)
class CommandInvocation:
    group: str
    subcommand: str = ""
    flags: dict[str, str] = field(default_factory=dict)
    positional_args: tuple[str, ...] = ()

    @property
    def key(self) -> tuple[str, str]:
        return self.group, self.subcommand

    def flag(self, name: str) -> str:
        return str(self.flags.get(name) or "").strip()


# (group, subcommand) -> (required flags, message when any is missing)
_REQUIRED_FLAGS: dict[tuple[str, str], tuple[tuple[str, ...], str]] = {
    ("user", "list"): ((), ""),
    ("file", "list"): (("user",), "the -user flag is required."),
    ("file", "ingest"): (("filepath", "user"), "both -filepath and -user are required."),
    ("file", "set-accession"): (
        ("filepath", "user", "accession-id"),
        "-filepath, -user and -accession-id are required.",
    ),
    ("dataset", "create"): (
        ("dataset-id",),
        "-dataset-id and at least one accession ID are required.",
    ),
    ("dataset", "release"): (("dataset-id",), "-dataset-id is required."),
}

_FILEPATH_COMMANDS = {("file", "ingest"), ("file", "set-accession")}


def validate_invocation(inv: CommandInvocation) -> None:
    """Check required flags and inputs; raises UsageError before any network call."""
    if inv.key not in _REQUIRED_FLAGS:
        raise UsageError(
            f"Unknown subcommand '{inv.subcommand}' for '{inv.group}'.",
            usage=render_usage(inv.group),
        )
    required, message = _REQUIRED_FLAGS[inv.key]
    missing = [name for name in required if not inv.flag(name)]
    if inv.key == ("dataset", "create") and not [a for a in inv.positional_args if a.strip()]:
        missing.append("ACCESSION_ID")
    if missing:
        raise UsageError(message, usage=render_usage(*inv.key))
    if inv.key == ("dataset", "create") and any(not a.strip() for a in inv.positional_args):
        raise UsageError("accession IDs must not be blank.", usage=render_usage(*inv.key))
    if inv.key in _FILEPATH_COMMANDS:
        try:
            check_valid_chars(inv.flag("filepath"))
        except UsageError as e:
            raise UsageError(str(e), usage=render_usage(*inv.key)) from e


def cmd_user_list(inv: CommandInvocation, config: GlobalConfig) -> int:
    users.list_users(config, json_output=inv.flag("json") == "true")
    return 0


def cmd_file_list(inv: CommandInvocation, config: GlobalConfig) -> int:
    files.list_files(config, inv.flag("user"), json_output=inv.flag("json") == "true")
    return 0


def cmd_file_ingest(inv: CommandInvocation, config: GlobalConfig) -> int:
    files.ingest(config, inv.flag("user"), inv.flag("filepath"))
    sys.stdout.write("File ingestion triggered successfully.\n")
    return 0


def cmd_file_set_accession(inv: CommandInvocation, config: GlobalConfig) -> int:
    files.set_accession(config, inv.flag("user"), inv.flag("filepath"), inv.flag("accession-id"))
    sys.stdout.write("Accession ID assigned to file successfully.\n")
    return 0


def cmd_dataset_create(inv: CommandInvocation, config: GlobalConfig) -> int:
    accession_ids = [a.strip() for a in inv.positional_args]
    datasets.create(config, inv.flag("dataset-id"), accession_ids, username=inv.flag("user"))
    sys.stdout.write("Dataset created successfully.\n")
    return 0


def cmd_dataset_release(inv: CommandInvocation, config: GlobalConfig) -> int:
    datasets.release(config, inv.flag("dataset-id"))
    sys.stdout.write("Dataset released successfully.\n")
    return 0


_HANDLERS: dict[tuple[str, str], tuple[Callable[[CommandInvocation, GlobalConfig], int], str]] = {
    ("user", "list"): (cmd_user_list, "failed to get users"),
    ("file", "list"): (cmd_file_list, "failed to get files"),
    ("file", "ingest"): (cmd_file_ingest, "failed to ingest file"),
    ("file", "set-accession"): (cmd_file_set_accession, "failed to assign accession ID to file"),
    ("dataset", "create"): (cmd_dataset_create, "failed to create dataset"),
    ("dataset", "release"): (cmd_dataset_release, "failed to release dataset"),
}


def run_invocation(
    inv: CommandInvocation,
    resolve_config: Callable[[], GlobalConfig],
) -> int:
    """Validate ``inv``, resolve configuration, check the token and call the API.

    ``resolve_config`` is only called once the command line is known to be
    valid, so usage mistakes are reported without needing a URI or token.
    """
    validate_invocation(inv)
    config = resolve_config()
    check_token_expiration(config.token)
    func, action = _HANDLERS[inv.key]
    try:
        return func(inv, config)
    except OpError as e:
        raise OpError(f"{action}, reason: {e}") from e
