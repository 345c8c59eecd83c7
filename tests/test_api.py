import json

import pytest
import requests

from spotify_cli import api
from spotify_cli.api import (
    ApiError,
    NetworkError,
    NotFound,
    RateLimited,
    SpotifyApi,
    Unauthorized,
    error_message_from_body,
)
from spotify_cli.response import ErrorKind, Response


class FakeResponse:
    def __init__(self, status_code=200, data=None, text=None, headers=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(data) if data is not None else ""
        self.text = text
        self.content = text.encode("utf-8")
        self.headers = headers or {}
        self.url = "https://api.spotify.com/v1/test"

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Records requests and replays a canned response (or raises)."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


class TestSpotifyApi:
    """Tests for the Web API transport."""

    def test_get_decodes_json(self):
        session = FakeSession(FakeResponse(200, {"id": "me"}))
        client = SpotifyApi("token-1", session=session)

        assert client.get("/me") == {"id": "me"}
        method, url, kwargs = session.requests[0]
        assert method == "GET"
        assert url == "https://api.spotify.com/v1/me"
        assert kwargs["headers"]["Authorization"] == "Bearer token-1"
        assert kwargs["timeout"] == api.REQUEST_TIMEOUT

    def test_no_content(self):
        session = FakeSession(FakeResponse(204))
        assert SpotifyApi("t", session=session).put("/me/player/pause") is None

    def test_bodyless_write_sends_zero_length(self):
        """Test POST/PUT without a body still declare Content-Length."""
        session = FakeSession(FakeResponse(204))
        SpotifyApi("t", session=session).post("/me/player/next")
        _, _, kwargs = session.requests[0]
        assert kwargs["headers"]["Content-Length"] == "0"
        assert "json" not in kwargs

    def test_json_body(self):
        session = FakeSession(FakeResponse(201, {"snapshot_id": "s"}))
        SpotifyApi("t", session=session).post("/playlists/p/tracks", {"uris": ["u"]})
        _, _, kwargs = session.requests[0]
        assert kwargs["json"] == {"uris": ["u"]}

    def test_non_json_body_is_ignored(self):
        session = FakeSession(FakeResponse(200, text="not json"))
        assert SpotifyApi("t", session=session).get("/x") is None

    @pytest.mark.parametrize(
        "status, error_class",
        [(401, Unauthorized), (404, NotFound)],
    )
    def test_status_mapping(self, status, error_class):
        session = FakeSession(FakeResponse(status, {"error": {"message": "nope"}}))
        with pytest.raises(error_class):
            SpotifyApi("t", session=session).get("/x")

    def test_rate_limited_carries_retry_after(self):
        session = FakeSession(FakeResponse(429, headers={"Retry-After": "7"}))
        with pytest.raises(RateLimited) as excinfo:
            SpotifyApi("t", session=session).get("/x")
        assert excinfo.value.retry_after_secs == 7
        assert excinfo.value.error_kind == ErrorKind.RATE_LIMITED

    def test_api_error_uses_body_message(self):
        session = FakeSession(FakeResponse(500, {"error": {"status": 500, "message": "boom"}}))
        with pytest.raises(ApiError) as excinfo:
            SpotifyApi("t", session=session).get("/x")
        assert excinfo.value.status_code == 500
        assert excinfo.value.user_message() == "boom"

    def test_connection_failure_is_network_error(self):
        session = FakeSession(error=requests.exceptions.ConnectionError("refused"))
        with pytest.raises(NetworkError) as excinfo:
            SpotifyApi("t", session=session).get("/x")
        assert excinfo.value.status_code == 503
        assert excinfo.value.error_kind == ErrorKind.NETWORK


class TestErrorMessages:
    def test_string_error(self):
        assert error_message_from_body(400, '{"error": "invalid_grant"}') == "invalid_grant"

    def test_short_plain_body(self):
        assert error_message_from_body(400, "bad thing ") == "bad thing"

    def test_html_body_gets_canned_message(self):
        """Test HTML error pages are replaced by a canned message."""
        assert error_message_from_body(502, "<html>Bad Gateway</html>") == "Spotify server error"

    def test_unknown_status(self):
        assert error_message_from_body(418, "") == "HTTP error 418"

    def test_unauthorized_envelope(self):
        """Test the response built from a 401 carries the refresh hint."""
        response = Response.from_http_error(Unauthorized(), "Auth check")
        assert response.to_dict() == {
            "status": "error",
            "code": 401,
            "message": "Auth check: 401 Unauthorized",
            "error": {
                "kind": "auth",
                "details": "Session expired - run: spotify-cli auth refresh",
            },
        }


class TestRequestToken:
    """Tests for the accounts service token request."""

    def test_form_post(self):
        session = FakeSession(FakeResponse(200, {"access_token": "a", "expires_in": 3600}))
        data = api.request_token({"grant_type": "refresh_token"}, session=session)

        assert data["access_token"] == "a"
        method, url, kwargs = session.requests[0]
        assert method == "POST"
        assert url == api.TOKEN_URL
        assert kwargs["data"] == {"grant_type": "refresh_token"}

    def test_error_description(self):
        session = FakeSession(
            FakeResponse(400, {"error": "invalid_grant", "error_description": "Refresh token revoked"})
        )
        with pytest.raises(ApiError) as excinfo:
            api.request_token({}, session=session)
        assert excinfo.value.message == "Refresh token revoked"
