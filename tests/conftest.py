import base64
import json
import time

import pytest


def _b64url(obj) -> str:
    raw = json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def make_token(**claims) -> str:
    return f"{_b64url({'alg': 'ES256', 'typ': 'JWT'})}.{_b64url(claims)}.signature"


@pytest.fixture
def valid_token() -> str:
    return make_token(sub="admin@example.org", exp=int(time.time()) + 3600)


@pytest.fixture
def expired_token() -> str:
    return make_token(sub="admin@example.org", exp=int(time.time()) - 60)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    monkeypatch.delenv("API_HOST", raising=False)
    monkeypatch.delenv("ACCESS_TOKEN", raising=False)
    monkeypatch.setattr("sda_admin.apps.admin_cli._bootstrap_env", lambda: None)


@pytest.fixture
def fake_http(monkeypatch):
    """Replace the transport; returns the list of captured requests.

    Set ``fake_http.response`` to the ``(status, headers, body)`` tuple to return.
    """

    class _Recorder(list):
        response = (200, {}, b"")

    calls = _Recorder()

    def fake_request(**kwargs):
        calls.append(kwargs)
        return calls.response

    monkeypatch.setattr("sda_admin.http_helpers._http_request", fake_request)
    return calls
