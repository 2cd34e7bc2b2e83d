from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence


class AuthInputError(ValueError):
    """Raised when CLI auth inputs are missing or conflicting."""


class InvalidTokenShapeError(AuthInputError):
    """Raised when a supplied token is not in JWT shape."""


@dataclass(frozen=True)
class AccessTokens:
    graph: str
    sharepoint: str


def _require_non_empty(val: str | None, *, name: str, hint: str) -> str:
    out = (val or "").strip()
    if not out:
        raise AuthInputError(f"missing {name} ({hint})")
    return out


def _require_jwt_shape(token: str, *, token_name: str) -> str:
    parts = token.split(".")
    if len(parts) != 3 or any(not p.strip() for p in parts):
        raise InvalidTokenShapeError(
            f"{token_name} is not a JWT (expected 3 dot-separated segments)"
        )
    return token


def resolve_access_tokens(
    *,
    access_token: str | None,
    env_or_none: Callable[..., str | None],
    token_env_names: Sequence[str] = ("M365_ACCESS_TOKEN",),
    spo_token_env_names: Sequence[str] = ("M365_SPO_ACCESS_TOKEN",),
) -> AccessTokens:
    """Resolve bearer tokens for Graph and SharePoint.

    The flag wins over the environment. SharePoint falls back to the Graph
    token when no dedicated SharePoint token is configured.
    """

    hint_env = str(token_env_names[0]).strip() if token_env_names else "M365_ACCESS_TOKEN"
    graph = _require_non_empty(
        access_token or env_or_none(*token_env_names),
        name="access token",
        hint=f"--access-token or env {hint_env}",
    )
    _require_jwt_shape(graph, token_name="access token")

    sharepoint = (env_or_none(*spo_token_env_names) or "").strip() if spo_token_env_names else ""
    if sharepoint:
        _require_jwt_shape(sharepoint, token_name="SharePoint access token")
    else:
        sharepoint = graph
    return AccessTokens(graph=graph, sharepoint=sharepoint)


def is_app_only_access_token(claims: dict[str, Any]) -> bool:
    idtyp = str(claims.get("idtyp") or "").strip().lower()
    if idtyp:
        return idtyp == "app"
    return not str(claims.get("scp") or "").strip() and bool(claims.get("roles"))
