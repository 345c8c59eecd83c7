"""
HTTP transport for the Spotify Web API and the accounts service.

Every call returns the decoded JSON body, ``None`` for empty/204 replies, or
raises one of the ``HttpError`` subclasses below. Nothing here retries: a 429
surfaces as ``RateLimited`` carrying the server's Retry-After.
"""

import json
import logging

import requests

from .response import ErrorKind

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.spotify.com/v1"
AUTH_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"

REQUEST_TIMEOUT = 30
TOKEN_REQUEST_TIMEOUT = 15
RAW_BODY_MAX_LEN = 200


class HttpError(Exception):
    status_code = 500
    error_kind = ErrorKind.API

    def user_message(self):
        return str(self)


class NetworkError(HttpError):
    status_code = 503
    error_kind = ErrorKind.NETWORK

    def __init__(self, cause):
        self.cause = cause
        super().__init__(f"Network error: {cause}")

    def user_message(self):
        return "Network error - check your connection"


class ApiError(HttpError):
    def __init__(self, status, message):
        self.status_code = status
        self.message = message
        super().__init__(f"{status} {message}")

    def user_message(self):
        return self.message


class RateLimited(HttpError):
    status_code = 429
    error_kind = ErrorKind.RATE_LIMITED

    def __init__(self, retry_after_secs=1):
        self.retry_after_secs = retry_after_secs
        super().__init__("429 Too Many Requests")

    def user_message(self):
        return "Too many requests - please wait a moment"


class Unauthorized(HttpError):
    status_code = 401
    error_kind = ErrorKind.AUTH

    def __init__(self):
        super().__init__("401 Unauthorized")

    def user_message(self):
        return "Session expired - run: spotify-cli auth refresh"


class Forbidden(HttpError):
    status_code = 403
    error_kind = ErrorKind.FORBIDDEN

    def __init__(self):
        super().__init__("403 Forbidden")

    def user_message(self):
        return "You don't have permission for this action"


class NotFound(HttpError):
    status_code = 404
    error_kind = ErrorKind.NOT_FOUND

    def __init__(self):
        super().__init__("404 Not Found")

    def user_message(self):
        return "Resource not found"


def _canned_message(status):
    if status == 400:
        return "Bad request"
    if status == 401:
        return "Unauthorized"
    if status == 403:
        return "Forbidden"
    if status == 404:
        return "Not found"
    if status == 429:
        return "Rate limited"
    if 500 <= status < 600:
        return "Spotify server error"
    return f"HTTP error {status}"


def error_message_from_body(status, body):
    """Pick the most useful message out of an error body."""
    try:
        error = json.loads(body).get("error")
    except (ValueError, AttributeError):
        error = None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(error, str) and error:
        return error
    if body and len(body) < RAW_BODY_MAX_LEN and "<" not in body:
        return body.strip()
    return _canned_message(status)


def error_from_response(response):
    status = response.status_code
    if status == 401:
        return Unauthorized()
    if status == 403:
        return Forbidden()
    if status == 404:
        return NotFound()
    if status == 429:
        try:
            retry_after = int(response.headers.get("Retry-After", "1"))
        except ValueError:
            retry_after = 1
        return RateLimited(retry_after)
    return ApiError(status, error_message_from_body(status, response.text))


def _decode(response):
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        logger.warning(
            "Non-JSON body from %s (status %s), ignoring.",
            response.url,
            response.status_code,
        )
        return None


class SpotifyApi:
    """Bearer-authenticated client for ``api.spotify.com``."""

    def __init__(self, access_token, session=None, base_url=API_BASE_URL):
        self.access_token = access_token
        self.session = session if session is not None else requests.Session()
        self.base_url = base_url

    def request(self, method, path, body=None):
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.access_token}"}
        kwargs = {}
        if body is not None:
            kwargs["json"] = body
        elif method != "GET":
            headers["Content-Length"] = "0"

        logger.debug("Spotify API Request: %s %s", method, url)
        try:
            response = self.session.request(
                method, url, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs
            )
        except requests.exceptions.RequestException as e:
            logger.error("Spotify API request failed: %s %s: %s", method, url, e)
            raise NetworkError(e) from e

        logger.debug("Spotify API Response Status: %s", response.status_code)
        if not response.ok:
            error = error_from_response(response)
            logger.info("Spotify API error for %s %s: %s", method, path, error)
            raise error
        return _decode(response)

    def get(self, path):
        return self.request("GET", path)

    def post(self, path, body=None):
        return self.request("POST", path, body)

    def put(self, path, body=None):
        return self.request("PUT", path, body)

    def delete(self, path, body=None):
        return self.request("DELETE", path, body)


def request_token(form, session=None):
    """POST a form to the accounts token endpoint and return the JSON reply."""
    poster = session if session is not None else requests
    try:
        response = poster.post(TOKEN_URL, data=form, timeout=TOKEN_REQUEST_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.error("Token request failed: %s", e)
        raise NetworkError(e) from e
    if not response.ok:
        logger.error("Token endpoint returned %s: %s", response.status_code, response.text)
        raise ApiError(response.status_code, _token_error_message(response))
    try:
        return response.json()
    except ValueError as e:
        raise ApiError(response.status_code, f"Invalid token response: {e}") from e


def _token_error_message(response):
    try:
        data = response.json()
    except ValueError:
        return error_message_from_body(response.status_code, response.text)
    if isinstance(data, dict) and data.get("error_description"):
        return data["error_description"]
    return error_message_from_body(response.status_code, response.text)
