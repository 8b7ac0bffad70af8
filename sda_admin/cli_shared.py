from __future__ import annotations

import base64
import json
import os
import sys
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.markup import escape


class SdaAdminError(Exception):
    pass


class UsageError(SdaAdminError):
    """Invalid or incomplete command line; ``usage`` is printed after the message."""

    def __init__(self, message: str, *, usage: str = "") -> None:
        super().__init__(message)
        self.usage = usage


class ConfigError(SdaAdminError):
    pass


class AuthError(SdaAdminError):
    pass


class OpError(SdaAdminError):
    pass


API_HOST = "API_HOST"
ACCESS_TOKEN = "ACCESS_TOKEN"

_ERROR_CONSOLE = Console(stderr=True, highlight=False, soft_wrap=True)


@dataclass(frozen=True)
class GlobalConfig:
    api_uri: str
    token: str
    verbose: bool = False


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {escape(msg)}")


def _rich_trace(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[dim]{escape(msg)}[/dim]")


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


def _print_json(obj: Any, *, pretty: bool = True) -> None:
    if pretty:
        sys.stdout.write(json.dumps(obj, indent=2, sort_keys=True) + "\n")
    else:
        sys.stdout.write(json.dumps(obj, separators=(",", ":"), sort_keys=True) + "\n")


def _cell(value: Any) -> str:
    text = str(value if value is not None else "").strip()
    if not text:
        return "-"
    return text


def _print_table(*, headers: list[str], rows: list[list[str]], empty_message: str) -> None:
    if not rows:
        sys.stdout.write(f"{empty_message}\n")
        return
    widths: list[int] = [len(h) for h in headers]
    for row in rows:
        for i, val in enumerate(row):
            widths[i] = max(widths[i], len(val))
    header_line = "  ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    divider_line = "  ".join("-" * widths[i] for i in range(len(headers)))
    sys.stdout.write(header_line.rstrip() + "\n")
    sys.stdout.write(divider_line + "\n")
    for row in rows:
        line = "  ".join(row[i].ljust(widths[i]) for i in range(len(headers)))
        sys.stdout.write(line.rstrip() + "\n")


def _jwt_payload(token: str) -> dict[str, Any]:
    parts = (token or "").split(".")
    if len(parts) < 2:
        raise AuthError("could not parse token, reason: expected at least 2 dot-separated parts")
    payload_b64 = parts[1]
    payload_b64 += "=" * (-len(payload_b64) % 4)
    try:
        raw = base64.urlsafe_b64decode(payload_b64.encode("utf-8"))
        val = json.loads(raw.decode("utf-8"))
    except Exception as e:
        raise AuthError(f"could not parse token, reason: invalid payload: {e}") from e
    if not isinstance(val, dict):
        raise AuthError("could not parse token, reason: payload is not a JSON object")
    return val


def _json_or_error(*, raw: bytes, label: str) -> Any:
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError as e:
        raise OpError(f"failed to unmarshal {label} response, reason: {e}") from e


def _json_body(obj: dict[str, Any]) -> bytes:
    try:
        return json.dumps(obj, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise OpError(f"failed to marshal JSON, reason: {e}") from e
