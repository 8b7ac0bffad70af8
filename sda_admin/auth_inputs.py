from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Sequence
from urllib.parse import urlparse

from .cli_shared import ACCESS_TOKEN, API_HOST, AuthError, ConfigError, GlobalConfig, _jwt_payload


def _require_non_empty(val: str | None, *, flag: str, env_name: str) -> str:
    out = (val or "").strip()
    if not out:
        raise ConfigError(
            f"either -{flag} must be provided or {env_name} environment variable must be set"
        )
    return out


def validate_api_uri(api_uri: str) -> str:
    """Return ``api_uri`` without trailing slashes, or raise ConfigError if it is not an http(s) URL."""
    try:
        parsed = urlparse(api_uri)
    except ValueError as e:
        raise ConfigError(f"invalid API URI {api_uri!r}: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"invalid API URI {api_uri!r}: expected http(s)://host[/path]")
    if parsed.query or parsed.fragment:
        raise ConfigError(f"invalid API URI {api_uri!r}: query and fragment are not allowed")
    return api_uri.rstrip("/")


def resolve_global_config(
    *,
    uri: str | None,
    token: str | None,
    env_or_none: Callable[..., str | None],
    verbose: bool = False,
    uri_env_names: Sequence[str] = (API_HOST,),
    token_env_names: Sequence[str] = (ACCESS_TOKEN,),
) -> GlobalConfig:
    """Resolve URI and token from flags, falling back to the environment.

    Flag values win over the environment. The URI is validated here; the token
    is only checked for presence, its expiry is checked right before each
    request that needs it.
    """

    resolved_uri = _require_non_empty(
        uri or env_or_none(*uri_env_names),
        flag="uri",
        env_name=uri_env_names[0] if uri_env_names else API_HOST,
    )
    resolved_token = _require_non_empty(
        token or env_or_none(*token_env_names),
        flag="token",
        env_name=token_env_names[0] if token_env_names else ACCESS_TOKEN,
    )
    return GlobalConfig(
        api_uri=validate_api_uri(resolved_uri),
        token=resolved_token,
        verbose=bool(verbose),
    )


def _from_epoch_seconds(value: int | float | str) -> datetime:
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise AuthError(f"could not parse token, reason: invalid expiration date: {value!r}") from e


def _expiration_from_claim(exp: Any) -> datetime:
    if isinstance(exp, bool):
        raise AuthError("could not parse token, reason: unknown expiration date format")
    if isinstance(exp, (int, float)):
        return _from_epoch_seconds(exp)
    if isinstance(exp, str):
        raw = exp.strip()
        if raw.isdigit():
            return _from_epoch_seconds(raw)
        try:
            dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as e:
            raise AuthError(f"could not parse token, reason: invalid expiration date: {e}") from e
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    raise AuthError("could not parse token, reason: unknown expiration date format")


def check_token_expiration(token: str, *, now: datetime | None = None) -> None:
    # Signature is not verified.
    claims = _jwt_payload(token)
    if claims.get("exp") is None:
        raise AuthError("could not parse token, reason: no expiration date")
    expiration = _expiration_from_claim(claims["exp"])
    current = now or datetime.now(timezone.utc)
    if current > expiration:
        raise AuthError("the provided access token has expired, please renew it")
