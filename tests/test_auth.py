import pytest

from spotify_cli.api import SpotifyApi
from spotify_cli.commands import auth, common
from spotify_cli.config import Config
from spotify_cli.oauth import TokenExchangeError
from spotify_cli.response import ErrorKind
from spotify_cli.token_store import TokenNotFound
from spotify_cli.tokens import Token


class MemoryTokenStore:
    def __init__(self, token=None):
        self.token = token
        self.saved = []

    def save(self, token):
        self.token = token
        self.saved.append(token)

    def load(self):
        if self.token is None:
            raise TokenNotFound("memory")
        return self.token

    def delete(self):
        self.token = None

    def exists(self):
        return self.token is not None


class FakeFlow:
    """Records refresh calls; fails when given an exception."""

    def __init__(self, result):
        self.result = result
        self.refreshed_with = []

    def refresh(self, refresh_token):
        self.refreshed_with.append(refresh_token)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    def authenticate(self):
        raise AssertionError("browser login not expected")


def expired_token(refresh_token="r1"):
    return Token("old", expires_at=0, refresh_token=refresh_token)


def fresh_token(access="new"):
    return Token(access, expires_at=4_000_000_000, refresh_token="r2")


@pytest.fixture
def store(monkeypatch):
    store = MemoryTokenStore()
    monkeypatch.setattr(common, "open_token_store", lambda: store)
    monkeypatch.setattr(common, "load_config", lambda: Config(client_id="cid"))
    return store


def use_flow(monkeypatch, flow):
    monkeypatch.setattr(common, "oauth_flow", lambda config: flow)


class TestAuthenticatedClient:
    """Tests for loading, refreshing and rejecting stored tokens."""

    def test_not_logged_in(self, store):
        with pytest.raises(common.Abort) as excinfo:
            common.get_authenticated_client()
        assert excinfo.value.response.code == 401
        assert excinfo.value.response.message == common.NOT_LOGGED_IN

    def test_valid_token(self, store):
        store.token = fresh_token("abc")
        client = common.get_authenticated_client()
        assert isinstance(client, SpotifyApi)
        assert client.access_token == "abc"

    def test_expired_token_is_refreshed_and_saved(self, store, monkeypatch):
        flow = FakeFlow(fresh_token("refreshed"))
        use_flow(monkeypatch, flow)
        store.token = expired_token()

        client = common.get_authenticated_client()

        assert client.access_token == "refreshed"
        assert flow.refreshed_with == ["r1"]
        assert store.saved == [fresh_token("refreshed")]

    def test_expired_without_refresh_token(self, store):
        store.token = expired_token(refresh_token=None)
        with pytest.raises(common.Abort) as excinfo:
            common.get_authenticated_client()
        assert excinfo.value.response.message == common.TOKEN_EXPIRED

    def test_refresh_failure(self, store, monkeypatch):
        use_flow(monkeypatch, FakeFlow(TokenExchangeError("revoked")))
        store.token = expired_token()
        with pytest.raises(common.Abort) as excinfo:
            common.get_authenticated_client()
        response = excinfo.value.response
        assert response.code == 401
        assert response.error_kind == ErrorKind.AUTH
        assert response.error_details == "revoked"


class TestAuthCommands:
    def test_status_logged_out(self, store):
        assert auth.auth_status().payload == {"authenticated": False}

    def test_status_expired(self, store):
        store.token = expired_token()
        response = auth.auth_status()
        assert response.message == "Token expired"
        assert response.payload["expired"] is True

    def test_logout(self, store):
        store.token = fresh_token()
        assert auth.auth_logout().message == "Logged out successfully"
        assert auth.auth_logout().message == "Already logged out"

    def test_refresh_not_logged_in(self, store):
        assert auth.auth_refresh().message == common.NOT_LOGGED_IN

    def test_refresh_without_refresh_token(self, store):
        store.token = Token("a", expires_at=0)
        assert auth.auth_refresh().message == "No refresh token available"

    def test_login_with_valid_token(self, store, monkeypatch):
        """Test login is a no-op while the stored token is valid."""
        use_flow(monkeypatch, FakeFlow(None))
        store.token = fresh_token()
        response = auth.auth_login()
        assert response.message == "Already logged in"
        assert response.payload["expires_in"] > 0

    def test_login_refreshes_expired_token(self, store, monkeypatch):
        use_flow(monkeypatch, FakeFlow(fresh_token("refreshed")))
        store.token = expired_token()
        assert auth.auth_login().message == "Token refreshed"
        assert store.token.access_token == "refreshed"
