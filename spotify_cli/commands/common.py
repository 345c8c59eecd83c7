"""Shared plumbing for command handlers: stores, config, the authenticated client."""

import functools
import logging

from ..api import HttpError, SpotifyApi
from ..config import Config, ConfigError, TOKEN_STORAGE_KEYRING
from ..oauth import OAuthError, OAuthFlow
from ..paths import PathError
from ..pins import PinStore, PinStoreError
from ..response import ErrorKind, Response
from ..token_store import TokenNotFound, TokenStore, TokenStoreError

logger = logging.getLogger(__name__)

NOT_LOGGED_IN = "Not logged in. Run: spotify-cli auth login"
TOKEN_EXPIRED = "Token expired. Run: spotify-cli auth refresh"


class Abort(Exception):
    """Carries a finished error ``Response`` out of nested helpers."""

    def __init__(self, response):
        self.response = response
        super().__init__(response.message)


def handler(func):
    """Turn an ``Abort`` raised anywhere in ``func`` into its response."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Abort as e:
            return e.response

    return wrapper


def api_call(context, method, *args):
    """Run one client call, aborting with ``from_http_error(context)`` on failure."""
    try:
        return method(*args)
    except HttpError as e:
        raise Abort(Response.from_http_error(e, context)) from e


def load_config():
    try:
        return Config.load()
    except (ConfigError, PathError) as e:
        raise Abort(
            Response.err_with_details(500, "Failed to load config", ErrorKind.CONFIG, str(e))
        ) from e


def open_token_store():
    try:
        preferred = Config.load().token_storage
    except (ConfigError, PathError):
        preferred = TOKEN_STORAGE_KEYRING
    try:
        return TokenStore(preferred)
    except (TokenStoreError, PathError) as e:
        raise Abort(
            Response.err_with_details(
                500, "Failed to initialize token store", ErrorKind.STORAGE, str(e)
            )
        ) from e


def open_pin_store():
    try:
        return PinStore.load()
    except (PinStoreError, PathError) as e:
        raise Abort(
            Response.err_with_details(500, "Failed to load pin store", ErrorKind.STORAGE, str(e))
        ) from e


def oauth_flow(config):
    return OAuthFlow(config.client_id, port=config.oauth_port)


def _refresh_expired(store, token):
    if not token.refresh_token:
        raise Abort(Response.err(401, TOKEN_EXPIRED, ErrorKind.AUTH))
    config = load_config()
    logger.info("Access token expired or nearing expiration. Attempting refresh.")
    try:
        new_token = oauth_flow(config).refresh(token.refresh_token)
    except OAuthError as e:
        logger.warning("Failed to refresh access token: %s", e)
        raise Abort(
            Response.err_with_details(401, TOKEN_EXPIRED, ErrorKind.AUTH, str(e))
        ) from e
    try:
        store.save(new_token)
    except TokenStoreError as e:
        logger.warning("Refreshed token could not be saved: %s", e)
    return new_token


def get_authenticated_client():
    """A ``SpotifyApi`` for the stored token, refreshing it first when expired."""
    store = open_token_store()
    try:
        token = store.load()
    except TokenNotFound:
        raise Abort(Response.err(401, NOT_LOGGED_IN, ErrorKind.AUTH)) from None
    except TokenStoreError as e:
        raise Abort(
            Response.err_with_details(500, "Failed to load token", ErrorKind.STORAGE, str(e))
        ) from e
    if token.is_expired():
        token = _refresh_expired(store, token)
    return SpotifyApi(token.access_token)


def current_playback(client):
    """The playback state; aborts with a player error when nothing is playing."""
    state = api_call("Failed to get playback state", client.get, "/me/player")
    if not state:
        raise Abort(Response.err(404, "Nothing currently playing", ErrorKind.PLAYER))
    return state


def current_item(client, what="track"):
    item = current_playback(client).get("item")
    if not item:
        raise Abort(Response.err(404, f"No {what} in playback state", ErrorKind.PLAYER))
    return item


def now_playing_id(client, kind):
    """Id of the current track, or of its album or first artist."""
    item = current_item(client, kind)
    if kind == "track":
        value = item.get("id")
    elif kind == "album":
        value = (item.get("album") or {}).get("id")
    else:
        artists = item.get("artists") or []
        value = artists[0].get("id") if artists else None
    if not value:
        raise Abort(Response.err(404, f"No {kind} in playback state", ErrorKind.PLAYER))
    return value


def dry_run_response(message, **payload):
    return Response.success_with_payload(
        200, f"[DRY RUN] {message}", {"dry_run": True, **payload}
    )
