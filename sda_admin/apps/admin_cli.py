from __future__ import annotations

import sys
from typing import Any

import click
import typer
from dotenv import load_dotenv

from .. import __version__
from ..admin_commands import CommandInvocation, run_invocation
from ..auth_inputs import resolve_global_config
from ..cli_shared import (
    ACCESS_TOKEN,
    API_HOST,
    GlobalConfig,
    SdaAdminError,
    UsageError,
    _env_or_none,
    _eprint,
    _rich_error,
)
from ..usage import GROUPS, USAGE, render_usage, subcommands

PROG_NAME = "sda-admin"

_CONTEXT_SETTINGS = {"help_option_names": ["-h", "-help", "--help"]}


def _bootstrap_env() -> None:
    # Discover and load .env without overriding already-exported values.
    load_dotenv()


def _usage_key(ctx: click.Context | None) -> tuple[str | None, str | None]:
    if ctx is None or ctx.parent is None:
        return None, None
    if ctx.parent.parent is None:
        key: tuple[str | None, str | None] = (ctx.info_name, None)
    else:
        key = (ctx.parent.info_name, ctx.info_name)
    return key if key in USAGE else (None, None)


def _group_name(ctx: click.Context) -> str | None:
    return ctx.info_name if ctx.parent is not None else None


class _UsageTableGroup(typer.core.TyperGroup):
    def list_commands(self, ctx: click.Context) -> list[str]:
        return list(self.commands)

    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        formatter.write(render_usage(*_usage_key(ctx)) + "\n")

    def resolve_command(self, ctx: click.Context, args: list[str]) -> Any:
        name = args[0] if args else ""
        if self.get_command(ctx, name) is None and not name.startswith("-"):
            group = _group_name(ctx)
            if group is None:
                raise UsageError(f"Unknown command '{name}'.", usage=render_usage())
            raise UsageError(
                f"Unknown subcommand '{name}' for '{group}'.",
                usage=render_usage(group),
            )
        return super().resolve_command(ctx, args)


class _UsageTableCommand(typer.core.TyperCommand):
    def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        formatter.write(render_usage(*_usage_key(ctx)) + "\n")


def _sub_app(help_text: str) -> typer.Typer:
    return typer.Typer(
        help=help_text,
        cls=_UsageTableGroup,
        invoke_without_command=True,
        no_args_is_help=False,
    )


app = typer.Typer(
    name=PROG_NAME,
    help="Administer a sensitive-data-archive instance through its API.",
    cls=_UsageTableGroup,
    invoke_without_command=True,
    no_args_is_help=False,
    add_completion=False,
    context_settings=_CONTEXT_SETTINGS,
)

user_app = _sub_app("User administration")
file_app = _sub_app("File ingestion and accession IDs")
dataset_app = _sub_app("Dataset creation and release")

app.add_typer(user_app, name="user")
app.add_typer(file_app, name="file")
app.add_typer(dataset_app, name="dataset")


@app.callback()
def app_callback(
    ctx: typer.Context,
    uri: str | None = typer.Option(
        None,
        "-uri",
        "--uri",
        help=f"URI of the API server (env fallback: {API_HOST})",
    ),
    token: str | None = typer.Option(
        None,
        "-token",
        "--token",
        help=f"Bearer token (env fallback: {ACCESS_TOKEN})",
    ),
    verbose: bool = typer.Option(False, "-verbose", "--verbose", help="Trace API requests on stderr"),
) -> None:
    if ctx.invoked_subcommand is None:
        raise UsageError("missing command.", usage=render_usage())
    ctx.obj = {"uri": uri, "token": token, "verbose": verbose}


def _require_subcommand(ctx: typer.Context, group: str) -> None:
    if ctx.invoked_subcommand is None:
        choices = ", ".join(subcommands(group))
        raise UsageError(
            f"'{group}' requires a subcommand ({choices}).",
            usage=render_usage(group),
        )


@user_app.callback()
def user_callback(ctx: typer.Context) -> None:
    _require_subcommand(ctx, "user")


@file_app.callback()
def file_callback(ctx: typer.Context) -> None:
    _require_subcommand(ctx, "file")


@dataset_app.callback()
def dataset_callback(ctx: typer.Context) -> None:
    _require_subcommand(ctx, "dataset")


def _ctx_config(ctx: typer.Context) -> GlobalConfig:
    root = ctx.find_root()
    opts = root.obj if isinstance(root.obj, dict) else {}
    return resolve_global_config(
        uri=opts.get("uri"),
        token=opts.get("token"),
        verbose=bool(opts.get("verbose", False)),
        env_or_none=_env_or_none,
    )


def _invoke(ctx: typer.Context, inv: CommandInvocation) -> None:
    code = run_invocation(inv, lambda: _ctx_config(ctx))
    if code:
        raise typer.Exit(code=code)


def _flags(**kwargs: Any) -> dict[str, str]:
    out: dict[str, str] = {}
    for name, value in kwargs.items():
        if isinstance(value, bool):
            out[name.replace("_", "-")] = "true" if value else ""
        elif value is not None:
            out[name.replace("_", "-")] = str(value)
    return out


@user_app.command("list", cls=_UsageTableCommand, help="List all users in the system.")
def user_list(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "-json", "--json", help="Print the raw JSON response"),
) -> None:
    _invoke(ctx, CommandInvocation("user", "list", _flags(json=json_output)))


@file_app.command("list", cls=_UsageTableCommand, help="List all files for a specified user.")
def file_list(
    ctx: typer.Context,
    user: str | None = typer.Option(None, "-user", "--user", help="Username that owns the files"),
    json_output: bool = typer.Option(False, "-json", "--json", help="Print the raw JSON response"),
) -> None:
    _invoke(ctx, CommandInvocation("file", "list", _flags(user=user, json=json_output)))


@file_app.command("ingest", cls=_UsageTableCommand, help="Trigger ingestion of a given file.")
def file_ingest(
    ctx: typer.Context,
    filepath: str | None = typer.Option(None, "-filepath", "--filepath", help="Inbox path of the file"),
    user: str | None = typer.Option(None, "-user", "--user", help="Username that owns the file"),
) -> None:
    _invoke(ctx, CommandInvocation("file", "ingest", _flags(filepath=filepath, user=user)))


@file_app.command("set-accession", cls=_UsageTableCommand, help="Assign an accession ID to a file.")
def file_set_accession(
    ctx: typer.Context,
    filepath: str | None = typer.Option(None, "-filepath", "--filepath", help="Inbox path of the file"),
    user: str | None = typer.Option(None, "-user", "--user", help="Username that owns the file"),
    accession_id: str | None = typer.Option(
        None,
        "-accession-id",
        "--accession-id",
        help="Accession ID to assign",
    ),
) -> None:
    _invoke(
        ctx,
        CommandInvocation(
            "file",
            "set-accession",
            _flags(filepath=filepath, user=user, accession_id=accession_id),
        ),
    )


@dataset_app.command("create", cls=_UsageTableCommand, help="Create a dataset from accession IDs.")
def dataset_create(
    ctx: typer.Context,
    accession_ids: list[str] | None = typer.Argument(None, help="Accession IDs to include"),
    dataset_id: str | None = typer.Option(None, "-dataset-id", "--dataset-id", help="Dataset ID"),
    user: str | None = typer.Option(None, "-user", "--user", help="User that owns the dataset"),
) -> None:
    _invoke(
        ctx,
        CommandInvocation(
            "dataset",
            "create",
            _flags(dataset_id=dataset_id, user=user),
            tuple(accession_ids or ()),
        ),
    )


@dataset_app.command("release", cls=_UsageTableCommand, help="Release a dataset for downloading.")
def dataset_release(
    ctx: typer.Context,
    dataset_id: str | None = typer.Option(None, "-dataset-id", "--dataset-id", help="Dataset ID"),
) -> None:
    _invoke(ctx, CommandInvocation("dataset", "release", _flags(dataset_id=dataset_id)))


def help_text(topic: list[str]) -> str:
    """Usage block for ``help [command [subcommand]]``."""
    if not topic:
        return render_usage()
    group = topic[0]
    if group not in GROUPS:
        raise UsageError(f"Unknown command '{group}'.", usage=render_usage())
    if len(topic) == 1:
        return render_usage(group)
    sub = topic[1]
    if (group, sub) not in USAGE:
        raise UsageError(f"Unknown subcommand '{sub}' for '{group}'.", usage=render_usage(group))
    return render_usage(group, sub)


@app.command("help", cls=_UsageTableCommand, help="Show usage for a command.")
def help_command(
    topic: list[str] | None = typer.Argument(None, help="Command and optional subcommand"),
) -> None:
    sys.stdout.write(help_text(list(topic or ())) + "\n")


@app.command("version", cls=_UsageTableCommand, help="Show the version of sda-admin.")
def version_command() -> None:
    sys.stdout.write(f"{PROG_NAME} version {__version__}\n")


def _render_usage_error_with_help(*, message: str, usage: str = "") -> None:
    _rich_error(message)
    if usage:
        _eprint("")
        _eprint(usage)


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    _bootstrap_env()
    try:
        result = app(args=argv, prog_name=PROG_NAME, standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except click.ClickException as e:
        ctx = getattr(e, "ctx", None)
        usage = render_usage(*_usage_key(ctx)) if isinstance(e, click.UsageError) else ""
        _render_usage_error_with_help(message=e.format_message(), usage=usage)
        return 1
    except UsageError as e:
        _render_usage_error_with_help(message=str(e), usage=e.usage)
        return 1
    except SdaAdminError as e:
        _rich_error(str(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
