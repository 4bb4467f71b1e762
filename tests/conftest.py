"""Shared fixtures: a scripted FaaS gateway behind ``httpx.MockTransport``."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

GATEWAY_URL = "http://fake-gateway"


class FakeGateway:
    """Answers ``POST /<name>`` from a table of ``name -> (status, body)``.

    Dict and list bodies are sent as JSON, strings as plain text, ``None``
    as an empty body. Unknown names get the gateway's 404 text.
    """

    def __init__(self, routes: Optional[Dict[str, Tuple[int, Any]]] = None):
        self.routes = dict(routes or {})
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        name = request.url.path.rsplit("/", 1)[-1]

        if name not in self.routes:
            return httpx.Response(404, text=f"Cannot find service: {name}.")

        status, body = self.routes[name]
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body or "")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def called(self) -> List[str]:
        return [request.url.path.rsplit("/", 1)[-1] for request in self.requests]

    def body_of(self, name: str) -> Dict[str, Any]:
        for request in self.requests:
            if request.url.path.endswith(f"/{name}"):
                return json.loads(request.content)
        raise AssertionError(f"{name} was not called")


@pytest.fixture
def gateway_url() -> str:
    return GATEWAY_URL


@pytest.fixture
def fake_gateway():
    """Factory: ``fake_gateway({"fn1": (200, {"result": {}})})``."""
    return FakeGateway
