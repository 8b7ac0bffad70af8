import base64
import json
import re
import time

import pytest
from typer.testing import CliRunner

from sda_admin import __version__
from sda_admin.admin_commands import CommandInvocation, validate_invocation
from sda_admin.apps.admin_cli import app, help_text, main
from sda_admin.cli_shared import UsageError
from sda_admin.usage import USAGE, render_usage

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")

runner = CliRunner()


def _plain(s: str) -> str:
    return _ANSI_RE.sub("", s)


def _b64url(obj) -> str:
    raw = json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _token(exp: int) -> str:
    return f"{_b64url({'alg': 'none'})}.{_b64url({'exp': exp})}.sig"


def _global(token: str) -> list[str]:
    return ["-uri", "http://api.example", "-token", token]


DATA_COMMANDS = [
    ["user", "list"],
    ["file", "list", "-user", "alice"],
    ["file", "ingest", "-filepath", "/data/a.txt", "-user", "alice"],
    ["file", "set-accession", "-filepath", "/data/a.txt", "-user", "alice", "-accession-id", "ACC1"],
    ["dataset", "create", "-dataset-id", "DS1", "ACC1"],
    ["dataset", "release", "-dataset-id", "DS1"],
]


def test_dataset_release_posts_to_release_url(fake_http, valid_token, capsys):
    code = main(_global(valid_token) + ["dataset", "release", "-dataset-id", "DS1"])
    captured = capsys.readouterr()
    assert code == 0
    assert captured.out == "Dataset released successfully.\n"
    assert len(fake_http) == 1
    assert fake_http[0]["method"] == "POST"
    assert fake_http[0]["url"] == "http://api.example/dataset/release/DS1"


def test_set_accession_failure_reports_reason(fake_http, valid_token, capsys):
    fake_http.response = (400, {}, b'{"error":"file not found"}')
    code = main(
        _global(valid_token)
        + ["file", "set-accession", "-filepath", "/data/a.txt", "-user", "alice", "-accession-id", "ACC1"]
    )
    captured = capsys.readouterr()
    assert code == 1
    assert json.loads(fake_http[0]["body"]) == {
        "accession_id": "ACC1",
        "filepath": "/data/a.txt",
        "user": "alice",
    }
    err = _plain(captured.err)
    assert "failed to assign accession ID to file, reason: server returned status 400: file not found" in err
    assert captured.out == ""


@pytest.mark.parametrize(
    "argv,expected",
    [
        (["file", "ingest", "-filepath", "/data/a.txt", "-user", "alice"], "File ingestion triggered successfully."),
        (
            ["file", "set-accession", "--filepath", "/data/a.txt", "--user", "alice", "--accession-id", "A"],
            "Accession ID assigned to file successfully.",
        ),
        (["dataset", "create", "-dataset-id", "DS1", "ACC1", "ACC2"], "Dataset created successfully."),
    ],
)
def test_action_commands_print_success_line(fake_http, valid_token, capsys, argv, expected):
    assert main(_global(valid_token) + argv) == 0
    assert capsys.readouterr().out.strip() == expected
    assert len(fake_http) == 1


def test_dataset_create_collects_accession_ids_and_user(fake_http, valid_token):
    argv = ["dataset", "create", "-dataset-id", "DS1", "-user", "alice", "ACC1", "ACC2"]
    assert main(_global(valid_token) + argv) == 0
    assert json.loads(fake_http[0]["body"]) == {
        "accession_ids": ["ACC1", "ACC2"],
        "dataset_id": "DS1",
        "user": "alice",
    }


def test_dataset_create_without_accession_ids_makes_no_request(fake_http, valid_token, capsys):
    code = main(_global(valid_token) + ["dataset", "create", "-dataset-id", "DS1"])
    err = _plain(capsys.readouterr().err)
    assert code == 1
    assert fake_http == []
    assert "-dataset-id and at least one accession ID are required." in err
    assert render_usage("dataset", "create") in err


def test_ingest_with_newline_in_filepath_makes_no_request(fake_http, valid_token, capsys):
    code = main(_global(valid_token) + ["file", "ingest", "-filepath", "/data/a\nb.txt", "-user", "alice"])
    err = _plain(capsys.readouterr().err)
    assert code == 1
    assert fake_http == []
    assert "contains disallowed characters" in err


@pytest.mark.parametrize("argv", DATA_COMMANDS)
def test_expired_token_blocks_every_data_command(fake_http, expired_token, capsys, argv):
    code = main(_global(expired_token) + argv)
    err = _plain(capsys.readouterr().err)
    assert code == 1
    assert fake_http == []
    assert "the provided access token has expired, please renew it" in err


@pytest.mark.parametrize("token", [None, "expired"])
def test_help_and_version_ignore_token(fake_http, capsys, token):
    prefix = []
    if token:
        prefix = _global(_token(int(time.time()) - 60))
    assert main(prefix + ["help", "dataset", "create"]) == 0
    assert capsys.readouterr().out == render_usage("dataset", "create") + "\n"
    assert main(prefix + ["version"]) == 0
    assert capsys.readouterr().out == f"sda-admin version {__version__}\n"
    assert fake_http == []


def test_env_fallback_for_uri_and_token(fake_http, valid_token, monkeypatch, capsys):
    monkeypatch.setenv("API_HOST", "https://sda.example/api/")
    monkeypatch.setenv("ACCESS_TOKEN", valid_token)
    fake_http.response = (200, {}, b'["alice"]')
    assert main(["user", "list"]) == 0
    assert capsys.readouterr().out == "alice\n"
    assert fake_http[0]["url"] == "https://sda.example/api/users"
    assert fake_http[0]["headers"]["authorization"] == f"Bearer {valid_token}"


def test_missing_uri_is_a_configuration_error(fake_http, valid_token, capsys):
    code = main(["-token", valid_token, "user", "list"])
    err = _plain(capsys.readouterr().err)
    assert code == 1
    assert "either -uri must be provided or API_HOST environment variable must be set" in err
    assert fake_http == []


def test_file_list_requires_user_flag(fake_http, valid_token, capsys):
    code = main(_global(valid_token) + ["file", "list"])
    err = _plain(capsys.readouterr().err)
    assert code == 1
    assert "the -user flag is required." in err
    assert render_usage("file", "list") in err


def test_no_command_prints_full_usage(capsys):
    assert main([]) == 1
    assert render_usage() in _plain(capsys.readouterr().err)


def test_unknown_command_prints_top_level_usage(capsys):
    assert main(["frobnicate"]) == 1
    err = _plain(capsys.readouterr().err)
    assert "Unknown command 'frobnicate'." in err
    assert render_usage() in err


def test_unknown_subcommand_prints_group_usage(capsys):
    assert main(["file", "delete"]) == 1
    err = _plain(capsys.readouterr().err)
    assert "Unknown subcommand 'delete' for 'file'." in err
    assert render_usage("file") in err


def test_group_without_subcommand(capsys):
    assert main(["dataset"]) == 1
    err = _plain(capsys.readouterr().err)
    assert "'dataset' requires a subcommand (create, release)." in err


def test_unknown_option_exits_one_with_command_usage(capsys):
    assert main(["file", "ingest", "-bogus", "x"]) == 1
    err = _plain(capsys.readouterr().err)
    assert "No such option" in err
    assert render_usage("file", "ingest") in err


def test_help_command_lookup():
    assert help_text([]) == render_usage()
    assert help_text(["user"]) == render_usage("user")
    assert help_text(["file", "set-accession"]) == render_usage("file", "set-accession")
    assert help_text(["version"]) == render_usage("version")
    with pytest.raises(UsageError, match="Unknown command 'nope'"):
        help_text(["nope"])
    with pytest.raises(UsageError, match="Unknown subcommand 'drop' for 'dataset'"):
        help_text(["dataset", "drop"])


def test_help_unknown_subcommand_exits_one(capsys):
    assert main(["help", "user", "delete"]) == 1
    err = _plain(capsys.readouterr().err)
    assert "Unknown subcommand 'delete' for 'user'." in err
    assert render_usage("user") in err


@pytest.mark.parametrize(
    "argv,key",
    [
        (["-h"], (None, None)),
        (["-help"], (None, None)),
        (["file", "-h"], ("file", None)),
        (["dataset", "create", "--help"], ("dataset", "create")),
        (["user", "list", "-h"], ("user", "list")),
        (["version", "-h"], ("version", None)),
    ],
)
def test_help_option_renders_usage_table(argv, key):
    result = runner.invoke(app, argv)
    assert result.exit_code == 0
    assert result.stdout == render_usage(*key) + "\n"


def test_every_command_has_a_usage_entry():
    for group, sub in USAGE:
        assert render_usage(group, sub).strip()
    for key in [("user", "list"), ("file", "list"), ("file", "ingest"), ("file", "set-accession"),
                ("dataset", "create"), ("dataset", "release")]:
        assert key in USAGE


def test_validate_invocation_rejects_blank_flags():
    with pytest.raises(UsageError, match="both -filepath and -user are required"):
        validate_invocation(CommandInvocation("file", "ingest", {"filepath": " ", "user": "alice"}))
    validate_invocation(CommandInvocation("dataset", "release", {"dataset-id": "DS1"}))


def test_set_accession_with_disallowed_filepath_makes_no_request(fake_http, valid_token, capsys):
    code = main(
        _global(valid_token)
        + ["file", "set-accession", "-filepath", "/data/a;b.txt", "-user", "alice", "-accession-id", "ACC1"]
    )
    err = _plain(capsys.readouterr().err)
    assert code == 1
    assert fake_http == []
    assert "contains disallowed characters" in err
    assert render_usage("file", "set-accession") in err


def test_invalid_uri_makes_no_request(fake_http, valid_token, capsys):
    code = main(["-uri", "ftp://x", "-token", valid_token, "user", "list"])
    err = _plain(capsys.readouterr().err)
    assert code == 1
    assert fake_http == []
    assert "invalid API URI 'ftp://x'" in err


def test_malformed_token_makes_no_request(fake_http, capsys):
    code = main(_global("not-a-jwt") + ["user", "list"])
    err = _plain(capsys.readouterr().err)
    assert code == 1
    assert fake_http == []
    assert "could not parse token" in err


def test_out_of_range_token_expiry_is_reported(fake_http, capsys):
    code = main(_global(_token(10**20)) + ["user", "list"])
    err = _plain(capsys.readouterr().err)
    assert code == 1
    assert fake_http == []
    assert "invalid expiration date" in err


def test_dropped_connection_reports_action(monkeypatch, valid_token, capsys):
    from http.client import RemoteDisconnected

    def boom(req, timeout):
        raise RemoteDisconnected("Remote end closed connection without response")

    monkeypatch.setattr("sda_admin.http_helpers.urlopen", boom)
    code = main(_global(valid_token) + ["dataset", "release", "-dataset-id", "DS1"])
    err = _plain(capsys.readouterr().err)
    assert code == 1
    assert "failed to release dataset, reason: http request failed" in err


def test_dataset_create_rejects_blank_accession_id(fake_http, valid_token, capsys):
    code = main(_global(valid_token) + ["dataset", "create", "-dataset-id", "DS1", "ACC1", " "])
    err = _plain(capsys.readouterr().err)
    assert code == 1
    assert fake_http == []
    assert "accession IDs must not be blank." in err
