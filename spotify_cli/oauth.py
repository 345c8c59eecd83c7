"""
OAuth 2.0 Authorization Code flow with PKCE.

``OAuthFlow.authenticate`` opens the browser at the Spotify consent page and
blocks on a one-shot loopback HTTP server until the redirect arrives, then
exchanges the code for a ``Token``. No client secret is involved.
"""

import base64
import hashlib
import html
import logging
import os
import secrets
import string
import sys
import time
import webbrowser
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qs, urlencode, urlparse

from . import api
from .tokens import Token

logger = logging.getLogger(__name__)

CALLBACK_HOST = "127.0.0.1"
CALLBACK_PATH = "/callback"
DEFAULT_PORT = 8888
DEFAULT_TIMEOUT_SECS = 300
VERIFIER_LENGTH = 128
VERIFIER_CHARSET = string.ascii_letters + string.digits + "-._~"
STATE_PREFIX = "spotify-cli-"

SCOPES_LIST = [
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "user-library-read",
    "user-library-modify",
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-private",
    "playlist-modify-public",
    "user-read-private",
    "user-read-email",
    "user-top-read",
    "user-read-recently-played",
    "user-follow-read",
    "user-follow-modify",
]

SUCCESS_HTML = """<!DOCTYPE html>
<html>
<head><title>spotify-cli</title></head>
<body style="background:#191414;color:#fff;font-family:sans-serif;text-align:center;padding-top:15%">
<h1 style="color:#1DB954">Authenticated!</h1>
<p>You can close this window and return to the terminal.</p>
</body>
</html>
"""

ERROR_HTML = """<!DOCTYPE html>
<html>
<head><title>spotify-cli</title></head>
<body style="background:#191414;color:#fff;font-family:sans-serif;text-align:center;padding-top:15%">
<h1 style="color:#e22134">Authentication Failed</h1>
<p>{message}</p>
</body>
</html>
"""


class OAuthError(Exception):
    pass


class ServerStartError(OAuthError):
    pass


class CallbackTimeout(OAuthError):
    pass


class MissingCode(OAuthError):
    pass


class AuthDenied(OAuthError):
    pass


class InvalidCallback(OAuthError):
    pass


class StateMismatch(InvalidCallback):
    pass


class TokenExchangeError(OAuthError):
    pass


def generate_code_verifier(length=VERIFIER_LENGTH):
    return "".join(secrets.choice(VERIFIER_CHARSET) for _ in range(length))


def code_challenge_for(verifier):
    return (
        base64.urlsafe_b64encode(hashlib.sha256(verifier.encode("utf-8")).digest())
        .decode("utf-8")
        .rstrip("=")
    )


def generate_state():
    token = base64.urlsafe_b64encode(os.urandom(32)).decode("utf-8").rstrip("=")
    return STATE_PREFIX + token


class _CallbackHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        parsed = urlparse(self.path)
        if parsed.path != CALLBACK_PATH:
            self._reply(404, "text/plain", "Not found")
            return

        params = parse_qs(parsed.query)
        error = params.get("error", [None])[0]
        if error:
            description = params.get("error_description", [error])[0]
            self._reply_error(description)
            logger.error("OAuth error from Spotify callback: %s", error)
            self.server.result = AuthDenied(f"Authorization denied: {description}")
            return

        code = params.get("code", [None])[0]
        state = params.get("state", [None])[0]
        if not code:
            self._reply_error("No authorization code received.")
            self.server.result = MissingCode("Callback did not include an authorization code")
            return
        if state is None or state != self.server.expected_state:
            self._reply_error("State mismatch. Please try logging in again.")
            logger.error("OAuth callback state mismatch.")
            self.server.result = StateMismatch("OAuth state mismatch (possible CSRF)")
            return

        self._reply(200, "text/html", SUCCESS_HTML)
        logger.info("OAuth authorization code received.")
        self.server.result = code

    def _reply_error(self, message):
        self._reply(200, "text/html", ERROR_HTML.format(message=html.escape(message)))

    def _reply(self, status, content_type, body):
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", f"{content_type}; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format, *args):
        logger.debug("OAuth callback: " + format, *args)


class CallbackServer(HTTPServer):
    """Loopback receiver that serves requests until the redirect is seen."""

    def __init__(self, port, expected_state, host=CALLBACK_HOST):
        self.expected_state = expected_state
        self.result = None
        try:
            super().__init__((host, port), _CallbackHandler)
        except OSError as e:
            raise ServerStartError(f"Could not listen on {host}:{port}: {e}") from e

    def wait_for_code(self, timeout=DEFAULT_TIMEOUT_SECS):
        deadline = time.monotonic() + timeout
        try:
            while self.result is None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise CallbackTimeout(
                        f"No OAuth callback received within {timeout} seconds"
                    )
                self.timeout = remaining
                self.handle_request()
        finally:
            self.server_close()
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class OAuthFlow:
    def __init__(
        self,
        client_id,
        port=DEFAULT_PORT,
        timeout=DEFAULT_TIMEOUT_SECS,
        open_browser=webbrowser.open,
        session=None,
    ):
        self.client_id = client_id
        self.port = port
        self.timeout = timeout
        self.open_browser = open_browser
        self.session = session

    @property
    def redirect_uri(self):
        return f"http://{CALLBACK_HOST}:{self.port}{CALLBACK_PATH}"

    def authorize_url(self, state, code_challenge):
        auth_params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(SCOPES_LIST),
            "state": state,
            "code_challenge_method": "S256",
            "code_challenge": code_challenge,
        }
        return f"{api.AUTH_URL}?{urlencode(auth_params)}"

    def authenticate(self):
        verifier = generate_code_verifier()
        challenge = code_challenge_for(verifier)
        state = generate_state()
        logger.debug("PKCE code_challenge (first 10): %s", challenge[:10])

        server = CallbackServer(self.port, state)
        url = self.authorize_url(state, challenge)
        print(
            f"\nPlease open this URL in your browser to authorize:\n{url}\nWaiting...",
            file=sys.stderr,
        )
        try:
            self.open_browser(url)
            logger.info("Opened browser for Spotify authorization.")
        except webbrowser.Error as e:
            logger.warning("Could not open browser: %s. Open URL manually.", e)

        code = server.wait_for_code(self.timeout)
        logger.info("Auth code obtained (first 20): %s...", code[:20])
        return self._exchange(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
                "client_id": self.client_id,
                "code_verifier": verifier,
            }
        )

    def refresh(self, refresh_token):
        """Trade a refresh token for a new Token; keeps the old refresh token unless rotated."""
        logger.info("Refreshing access token.")
        token = self._exchange(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
            }
        )
        if token.refresh_token is None:
            token.refresh_token = refresh_token
        return token

    def _exchange(self, form):
        try:
            data = api.request_token(form, session=self.session)
        except api.HttpError as e:
            raise TokenExchangeError(f"Token request failed: {e}") from e
        try:
            return Token.from_response(data)
        except (KeyError, TypeError, ValueError) as e:
            raise TokenExchangeError(f"Malformed token response: {e}") from e
