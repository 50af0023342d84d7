"""Shared fixtures: an in-process stand-in for the controller."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

import pytest
import requests
from requests.structures import CaseInsensitiveDict

BASE_URL = "https://controller.local:8443"


def make_response(status: int = 200, body: Any = b"", headers: Optional[Dict[str, str]] = None,
                  url: str = "") -> requests.Response:
    """Build a real requests.Response without touching the network."""
    r = requests.Response()
    r.status_code = status
    r._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    r.headers = CaseInsensitiveDict(headers or {})
    r.url = url
    return r


class FakeController:
    """Routes (method, path) to canned responses and records every call."""

    def __init__(self, root_status: int = 302):
        self.calls: List[Dict[str, Any]] = []
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.route("GET", "/", status=root_status, headers={"Location": "/manage"} if root_status == 302 else None)

    def route(self, method: str, path: str, status: int = 200, body: Any = b"{}",
              headers: Optional[Dict[str, str]] = None) -> None:
        self.routes[(method, path)] = (status, body, headers)

    def fail(self, method: str, path: str, exc: Exception) -> None:
        self.routes[(method, path)] = exc

    def handle(self, method: str, url: str, **kwargs) -> requests.Response:
        path = urlsplit(url).path
        self.calls.append({"method": method, "url": url, "path": path, **kwargs})
        route = self.routes.get((method, path))
        if route is None:
            return make_response(404, b'{"meta":{"rc":"error","msg":"api.err.NotFound"}}', url=url)
        if isinstance(route, Exception):
            raise route
        status, body, headers = route
        return make_response(status, body, headers, url=url)

    def last(self, path: Optional[str] = None) -> Dict[str, Any]:
        calls = [c for c in self.calls if path is None or c["path"] == path]
        return calls[-1]


@pytest.fixture
def controller(monkeypatch):
    """Legacy controller (302 on "/") with a working login."""
    fake = FakeController()
    fake.route("POST", "/api/login")
    monkeypatch.setattr(requests.Session, "request", lambda self, method, url, **kw: fake.handle(method, url, **kw))
    return fake


@pytest.fixture
def modern_controller(monkeypatch):
    """Modern controller (200 on "/") with a working login."""
    fake = FakeController(root_status=200)
    fake.route("POST", "/api/auth/login", headers={"X-CSRF-Token": "csrf-from-login"})
    monkeypatch.setattr(requests.Session, "request", lambda self, method, url, **kw: fake.handle(method, url, **kw))
    return fake


@pytest.fixture
def config():
    return {"url": BASE_URL + "/", "username": "admin", "timeout": 5}


@pytest.fixture
def secrets():
    return {"password": "s3cret"}
