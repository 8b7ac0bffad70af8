from __future__ import annotations

from typing import Any

from .cli_shared import (
    GlobalConfig,
    OpError,
    _cell,
    _json_body,
    _json_or_error,
    _print_json,
    _print_table,
)
from .http_helpers import check_valid_chars, get_request, join_api_url, post_request

_FILE_COLUMNS = (
    ("FILE ID", "fileID"),
    ("INBOX PATH", "inboxPath"),
    ("STATUS", "fileStatus"),
    ("CREATED", "createAt"),
)


def list_files(config: GlobalConfig, username: str, *, json_output: bool = False) -> list[dict[str, Any]]:
    """GET /users/{username}/files and print the records as a table."""
    url = join_api_url(config.api_uri, "users/{username}/files", username=username)
    raw = get_request(config=config, url=url)
    parsed = _json_or_error(raw=raw, label="files")
    if not isinstance(parsed, list):
        raise OpError("failed to unmarshal files response, reason: expected a JSON array")
    records = [r for r in parsed if isinstance(r, dict)]
    if json_output:
        _print_json(records)
        return records
    rows = [[_cell(r.get(key)) for _title, key in _FILE_COLUMNS] for r in records]
    _print_table(
        headers=[title for title, _key in _FILE_COLUMNS],
        rows=rows,
        empty_message=f"No files for user {username}.",
    )
    return records


def ingest(config: GlobalConfig, username: str, filepath: str) -> None:
    check_valid_chars(filepath)
    url = join_api_url(config.api_uri, "file/ingest")
    body = _json_body({"filepath": filepath, "user": username})
    post_request(config=config, url=url, body=body)


def set_accession(config: GlobalConfig, username: str, filepath: str, accession_id: str) -> None:
    check_valid_chars(filepath)
    url = join_api_url(config.api_uri, "file/accession")
    body = _json_body(
        {
            "accession_id": accession_id,
            "filepath": filepath,
            "user": username,
        }
    )
    post_request(config=config, url=url, body=body)
