"""
Shared fixtures: settings without environment leakage and a fake Graph API.
"""

import json
from urllib.parse import unquote

import httpx
import pytest

from outlook_calendar.api.client import GraphClient
from outlook_calendar.settings import Settings
from outlook_calendar.tools.registry import ToolContext


GRAPH_BASE_URL = "https://graph.test/v1.0"


class StaticTokenProvider:
    """Token provider handing out a fixed access token."""

    def __init__(self, token: str):
        self.token = token
        self.closed = False

    async def get_token(self) -> str:
        return self.token

    async def close(self) -> None:
        self.closed = True


class FakeGraph:
    """
    Scripted Graph backend for httpx.MockTransport.

    Responses are consumed in order; once exhausted every request gets an
    empty collection. All requests are recorded.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def queue(self, status_code: int = 200, json_body=None) -> "FakeGraph":
        self.responses.append(httpx.Response(status_code, json=json_body))
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return httpx.Response(200, json={"value": []})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_path(self) -> str:
        return unquote(self.last_request.url.path)

    def last_json(self) -> dict:
        return json.loads(self.last_request.content)


def make_settings(**overrides) -> Settings:
    values = {
        "azure_tenant_id": "tenant",
        "azure_client_id": "client",
        "azure_client_secret": "secret",
        "user_id": "alex@contoso.com",
        "graph_base_url": GRAPH_BASE_URL,
        "default_timezone": "Asia/Manila",
        "auth_token": None,
        "transport_mode": "stdio",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_context(fake: FakeGraph, **settings_overrides) -> ToolContext:
    settings = make_settings(**settings_overrides)
    graph = GraphClient(
        StaticTokenProvider("test-token"),
        base_url=settings.graph_base_url,
        transport=fake.transport(),
    )
    return ToolContext(settings=settings, graph=graph)


@pytest.fixture
def fake_graph():
    return FakeGraph()


@pytest.fixture
def context(fake_graph):
    return make_context(fake_graph)
