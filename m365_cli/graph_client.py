from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Callable
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlparse
from urllib.request import Request, urlopen

from . import auth_inputs
from .cli_shared import (
    DEFAULT_GRAPH_URL,
    M365_ACCESS_TOKEN,
    M365_GRAPH_URL,
    M365_SPO_ACCESS_TOKEN,
    GlobalOpts,
    OpError,
    UsageError,
    _env_or_none,
    _http_timeout_seconds,
)

JSON_NOMETADATA = "application/json;odata=nometadata"
JSON_ODATA_NONE = "application/json;odata.metadata=none"


def _http_request(
    *,
    method: str,
    url: str,
    headers: dict[str, str],
    body: bytes | None = None,
    timeout_seconds: int = 30,
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
        data = e.read() if hasattr(e, "read") else b""
        return int(getattr(e, "code", 0) or 0), hdrs, data
    except URLError as e:
        raise OpError(f"http request failed: {e}") from e


def odata_literal(val: str) -> str:
    return str(val).replace("'", "''")


def odata_encode(expr: str) -> str:
    return quote(expr, safe="'(),:@")


def _error_message_from_response(status: int, data: bytes) -> str:
    text = data.decode("utf-8", errors="replace").strip()
    try:
        doc = json.loads(text) if text else None
    except ValueError:
        doc = None
    if isinstance(doc, dict):
        err = doc.get("error")
        if isinstance(err, dict) and str(err.get("message") or "").strip():
            return str(err["message"]).strip()
        odata_err = doc.get("odata.error")
        if isinstance(odata_err, dict):
            msg = odata_err.get("message")
            if isinstance(msg, dict) and str(msg.get("value") or "").strip():
                return str(msg["value"]).strip()
        if str(doc.get("error_description") or "").strip():
            return str(doc["error_description"]).strip()
        if isinstance(err, str) and err.strip():
            return err.strip()
    if text:
        return text
    return f"request failed with HTTP status {status}"


def _decode_body(data: bytes) -> Any:
    text = data.decode("utf-8", errors="replace").strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


@dataclass
class M365Session:
    """Per-invocation connection state handed to every command."""

    graph_url: str
    tokens: auth_inputs.AccessTokens
    timeout_seconds: int = 30
    trace: Callable[[str], None] | None = None

    def graph(self, path: str) -> str:
        return f"{self.graph_url.rstrip('/')}/{path.lstrip('/')}"

    def _token_for(self, url: str) -> str:
        host = (urlparse(url).hostname or "").lower()
        if host.endswith(".sharepoint.com"):
            return self.tokens.sharepoint
        return self.tokens.graph

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: Any = None,
        data: str | None = None,
    ) -> Any:
        hdrs = {
            "authorization": f"Bearer {self._token_for(url)}",
            "accept": JSON_ODATA_NONE,
        }
        body: bytes | None = None
        if json_body is not None:
            hdrs["content-type"] = "application/json"
            body = json.dumps(json_body).encode("utf-8")
        elif data is not None:
            body = data.encode("utf-8")
        hdrs.update({k.lower(): v for k, v in (headers or {}).items()})
        if method.upper() in {"POST", "PATCH", "PUT"} and body is None:
            body = b""

        if self.trace is not None:
            self.trace(f"{method.upper()} {url}")
        status, _resp_headers, raw = await asyncio.to_thread(
            _http_request,
            method=method,
            url=url,
            headers=hdrs,
            body=body,
            timeout_seconds=self.timeout_seconds,
        )
        if self.trace is not None:
            self.trace(f"{method.upper()} {url} -> {status}")
        if status < 200 or status >= 300:
            raise OpError(_error_message_from_response(status, raw))
        return _decode_body(raw)

    async def get(self, url: str, **kwargs: Any) -> Any:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", url, **kwargs)


async def get_all_items(session: Any, url: str, *, headers: dict[str, str] | None = None) -> list[Any]:
    """Follow ``@odata.nextLink`` pages one after another."""
    items: list[Any] = []
    next_url: str | None = url
    while next_url:
        page = await session.get(next_url, headers=headers)
        if not isinstance(page, dict):
            raise OpError(f"unexpected response from {next_url}: expected JSON object")
        value = page.get("value")
        if isinstance(value, list):
            items.extend(value)
        next_url = str(page.get("@odata.nextLink") or "").strip() or None
    return items


def build_session(g: GlobalOpts, *, trace: Callable[[str], None] | None = None) -> M365Session:
    try:
        tokens = auth_inputs.resolve_access_tokens(
            access_token=g.access_token or None,
            env_or_none=_env_or_none,
            token_env_names=(M365_ACCESS_TOKEN,),
            spo_token_env_names=(M365_SPO_ACCESS_TOKEN,),
        )
    except auth_inputs.AuthInputError as e:
        raise UsageError(str(e)) from e
    graph_url = (_env_or_none(M365_GRAPH_URL) or DEFAULT_GRAPH_URL).rstrip("/")
    return M365Session(
        graph_url=graph_url,
        tokens=tokens,
        timeout_seconds=_http_timeout_seconds(),
        trace=trace,
    )
