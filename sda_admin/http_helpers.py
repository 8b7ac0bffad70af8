from __future__ import annotations

import json
import re
from http.client import HTTPException
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlparse, urlunparse
from urllib.request import Request, urlopen

from .auth_inputs import validate_api_uri
from .cli_shared import GlobalConfig, OpError, UsageError, _rich_trace

_TIMEOUT_SECONDS = 30

# Characters that must not appear in a filepath sent to the API.
_DISALLOWED_PATH_CHARS = re.compile(r"[\\<>\"|\x00-\x1f\x7f!*'();:@&=+$,?%#\[\]]")


def check_valid_chars(filepath: str) -> None:
    found = _DISALLOWED_PATH_CHARS.findall(filepath)
    if found:
        shown = ", ".join(repr(c) if not c.isprintable() else c for c in found)
        raise UsageError(f"filepath {filepath!r} contains disallowed characters: {shown}")


def _path_segment(value: str) -> str:
    seg = str(value or "").strip()
    if not seg:
        raise UsageError("empty identifier in request path")
    return quote(seg, safe="@:+$,;=&")


def join_api_url(api_uri: str, path: str, **identifiers: str) -> str:
    """Join ``path`` onto the base URI, filling ``{name}`` fields with encoded identifiers.

    Slashes between the base and the path are collapsed, so ``http://h/api/``
    and ``http://h/api`` give the same result.
    """
    parsed = urlparse(validate_api_uri(api_uri))
    filled = path.format(**{k: _path_segment(v) for k, v in identifiers.items()})
    parts = [p for p in parsed.path.split("/") if p]
    parts.extend(p for p in filled.split("/") if p)
    return urlunparse(parsed._replace(path="/" + "/".join(parts)))


def _http_request(
    *,
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes | None = None,
    timeout_seconds: int = _TIMEOUT_SECONDS,
) -> tuple[int, dict[str, str], bytes]:
    req = Request(url, data=body, method=str(method).upper())
    for k, v in headers.items():
        req.add_header(k, v)
    try:
        with urlopen(req, timeout=timeout_seconds) as resp:
            status = getattr(resp, "status", 200)
            hdrs = {k.lower(): v for k, v in dict(resp.headers).items()}
            data = resp.read()
            return int(status), hdrs, data
    except HTTPError as e:
        hdrs = {k.lower(): v for k, v in dict(e.headers or {}).items()}
        try:
            data = e.read() if hasattr(e, "read") else b""
        except (OSError, HTTPException):
            data = b""
        return int(getattr(e, "code", 0) or 0), hdrs, data
    # HTTPException: dropped connection or truncated response after sending.
    except (URLError, OSError, HTTPException) as e:
        raise OpError(f"http request failed: {e}") from e


def _error_message(data: bytes) -> str:
    text = data.decode("utf-8", errors="replace").strip()
    if not text:
        return ""
    try:
        parsed: Any = json.loads(text)
    except ValueError:
        return text
    if isinstance(parsed, dict):
        return str(parsed.get("error") or parsed.get("message") or text).strip()
    return text


def send(
    *,
    config: GlobalConfig,
    method: str,
    url: str,
    body: bytes | None = None,
) -> bytes:
    headers = {"authorization": f"Bearer {config.token}"}
    if body is not None:
        headers["content-type"] = "application/json"

    status, _hdrs, data = _http_request(method=method, url=url, headers=headers, body=body)
    if config.verbose:
        _rich_trace(f"{method.upper()} {url} -> {status}")

    if status < 200 or status >= 300:
        msg = _error_message(data)
        if msg:
            raise OpError(f"server returned status {status}: {msg}")
        raise OpError(f"server returned status {status}")
    return data


def get_request(*, config: GlobalConfig, url: str) -> bytes:
    return send(config=config, method="GET", url=url)


def post_request(*, config: GlobalConfig, url: str, body: bytes | None = None) -> bytes:
    return send(config=config, method="POST", url=url, body=body)
