from __future__ import annotations

import base64
import json
from typing import Any, Iterator

import pytest

from m365_cli.auth_inputs import AccessTokens


def make_jwt(claims: dict[str, Any]) -> str:
    def seg(obj: dict[str, Any]) -> str:
        raw = json.dumps(obj).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    return f"{seg({'alg': 'none', 'typ': 'JWT'})}.{seg(claims)}.sig"


DELEGATED_TOKEN = make_jwt({"idtyp": "user", "scp": "Group.ReadWrite.All User.Read.All"})
APP_ONLY_TOKEN = make_jwt({"idtyp": "app", "roles": ["Group.ReadWrite.All"]})


class FakeSession:
    """Records every request and answers from a ``(method, url)`` table.

    A value that is an iterator yields one response per call; an exception
    instance is raised instead of returned.
    """

    def __init__(self, responses: dict[tuple[str, str], Any] | None = None, *, token: str = DELEGATED_TOKEN):
        self.graph_url = "https://graph.microsoft.com"
        self.tokens = AccessTokens(graph=token, sharepoint=token)
        self.responses = dict(responses or {})
        self.calls: list[dict[str, Any]] = []

    def graph(self, path: str) -> str:
        return f"{self.graph_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: Any = None,
        data: str | None = None,
    ) -> Any:
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": dict(headers or {}),
                "json": json_body,
                "data": data,
            }
        )
        key = (method, url)
        if key not in self.responses:
            raise AssertionError(f"unexpected request: {method} {url}")
        resp = self.responses[key]
        if isinstance(resp, Iterator):
            resp = next(resp)
        if isinstance(resp, Exception):
            raise resp
        return resp

    async def get(self, url: str, **kwargs: Any) -> Any:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Any:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", url, **kwargs)


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def tokens():
    return {"delegated": DELEGATED_TOKEN, "app_only": APP_ONLY_TOKEN}
