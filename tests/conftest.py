import sys
import tempfile
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from spotify_cli.api import HttpError
from spotify_cli.commands import common
from spotify_cli.pins import PinStore


class FakeClient:
    """
    Stand-in for ``SpotifyApi``.

    ``routes`` maps ``(method, path-without-query)`` to a return value, an
    exception to raise, or a callable ``(path, body) -> value``. Every call is
    recorded in ``calls`` as ``(method, path, body)``.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def request(self, method, path, body=None):
        self.calls.append((method, path, body))
        route = self.routes.get((method, path.split("?", 1)[0]))
        if isinstance(route, HttpError):
            raise route
        if callable(route):
            return route(path, body)
        return route

    def get(self, path):
        return self.request("GET", path)

    def post(self, path, body=None):
        return self.request("POST", path, body)

    def put(self, path, body=None):
        return self.request("PUT", path, body)

    def delete(self, path, body=None):
        return self.request("DELETE", path, body)

    def calls_to(self, method, path):
        return [c for c in self.calls if c[0] == method and c[1].split("?", 1)[0] == path]


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def home(temp_dir, monkeypatch):
    """Point the config directory at a temporary home."""
    monkeypatch.setenv("HOME", str(temp_dir))
    monkeypatch.setenv("APPDATA", str(temp_dir))
    return temp_dir


@pytest.fixture
def pin_store(temp_dir, monkeypatch):
    """An empty pin store that command handlers will use."""
    store = PinStore(temp_dir / "pins.json")
    monkeypatch.setattr(common, "open_pin_store", lambda: store)
    return store


@pytest.fixture
def fake_client(monkeypatch, pin_store, home):
    """A ``FakeClient`` returned by ``get_authenticated_client``."""
    client = FakeClient()
    monkeypatch.setattr(common, "get_authenticated_client", lambda: client)
    return client
