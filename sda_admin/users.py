from __future__ import annotations

import sys

from .cli_shared import GlobalConfig, OpError, _json_or_error, _print_json
from .http_helpers import get_request, join_api_url


def list_users(config: GlobalConfig, *, json_output: bool = False) -> list[str]:
    """GET /users and print one username per line."""
    url = join_api_url(config.api_uri, "users")
    raw = get_request(config=config, url=url)
    parsed = _json_or_error(raw=raw, label="users")
    if not isinstance(parsed, list):
        raise OpError("failed to unmarshal users response, reason: expected a JSON array")
    users = [str(u) for u in parsed]
    if json_output:
        _print_json(users)
        return users
    for username in users:
        sys.stdout.write(f"{username}\n")
    return users
