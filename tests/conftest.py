import sys
from pathlib import Path

import pytest
import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class DummyResponse:
    def __init__(self, status_code: int = 200, payload=None, invalid_json: bool = False) -> None:
        self.status_code = status_code
        self._payload = payload
        self._invalid_json = invalid_json

    def json(self):
        if self._invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class DummyHTTP:
    """Stands in for requests.Session; answers from a (method, url) route table."""

    def __init__(self, routes=None, default=None) -> None:
        self.routes = dict(routes or {})
        self.default = default
        self.calls: list = []

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        resp = self.routes.get((method, url), self.default)
        if resp is None:
            raise AssertionError(f"unexpected request {method} {url}")
        if isinstance(resp, Exception):
            raise resp
        return resp


class StubClient:
    """Canned MatrixClient replacement; records every call."""

    def __init__(self, **responses) -> None:
        self.responses = responses
        self.calls: list = []

    def __getattr__(self, name):
        if name.startswith("__") or name not in self.responses:
            raise AttributeError(name)

        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            value = self.responses[name]
            if isinstance(value, Exception):
                raise value
            if callable(value):
                return value(*args, **kwargs)
            return value

        return method


def well_known(base_url="https://matrix.example.org", identity=None):
    payload = {"m.homeserver": {"base_url": base_url}}
    if identity:
        payload["m.identity_server"] = {"base_url": identity}
    return DummyResponse(200, payload)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Point the session file at a temp path; it does not exist yet."""
    path = tmp_path / "mnotify" / "config.yaml"
    monkeypatch.setenv("MNOTIFY_CONFIG", str(path))
    return path


@pytest.fixture
def session_file(config_file):
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text('user_id: "@a:example.org"\naccess_token: "secret"\n')
    return config_file


@pytest.fixture
def no_network(monkeypatch):
    """Fail the test on any real HTTP request and count attempts."""
    attempts = []

    def refuse(self, method, url, *args, **kwargs):
        attempts.append((method, url))
        raise AssertionError(f"network access attempted: {method} {url}")

    monkeypatch.setattr(requests.Session, "request", refuse)
    return attempts


@pytest.fixture
def stub_client(monkeypatch, session_file):
    """Install a StubClient as the bootstrap result; configure via .responses."""
    client = StubClient()
    created = []

    def fake_create_client(session):
        created.append(session)
        return client

    monkeypatch.setattr("mnotify.dispatcher.create_client", fake_create_client)
    client.created = created
    return client
