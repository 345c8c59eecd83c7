import logging
import os
import sys

from ..api import HttpError, SpotifyApi
from ..oauth import OAuthError
from ..response import ErrorKind, Response
from ..token_store import TokenNotFound, TokenStoreError
from . import common
from .common import handler

logger = logging.getLogger(__name__)

SKIP_PROFILE_ENV = "SPOTIFY_CLI_SKIP_PROFILE"


def _load_token(store):
    try:
        return store.load()
    except TokenNotFound:
        return None


def _save(store, token):
    try:
        store.save(token)
    except TokenStoreError as e:
        raise common.Abort(
            Response.err_with_details(500, "Failed to save token", ErrorKind.STORAGE, str(e))
        ) from e


def _fetch_display_name(token):
    try:
        profile = SpotifyApi(token.access_token).get("/me")
    except HttpError as e:
        logger.warning("Could not fetch user profile after login: %s", e)
        return None
    return (profile or {}).get("display_name")


@handler
def auth_login(force=False):
    config = common.load_config()
    store = common.open_token_store()
    flow = common.oauth_flow(config)

    if not force:
        try:
            token = _load_token(store)
        except TokenStoreError as e:
            logger.warning("Stored token could not be read: %s", e)
            token = None
        if token is not None and not token.is_expired():
            return Response.success_with_payload(
                200, "Already logged in", {"expires_in": token.seconds_until_expiry()}
            )
        if token is not None and token.refresh_token:
            try:
                new_token = flow.refresh(token.refresh_token)
            except OAuthError as e:
                print(
                    f"Note: Token refresh failed ({e}), opening browser login...",
                    file=sys.stderr,
                )
            else:
                _save(store, new_token)
                return Response.success_with_payload(
                    200, "Token refreshed", {"expires_in": new_token.seconds_until_expiry()}
                )

    try:
        token = flow.authenticate()
    except OAuthError as e:
        logger.error("Browser login failed: %s", e)
        return Response.err_with_details(401, "Login failed", ErrorKind.AUTH, str(e))
    _save(store, token)

    payload = {"expires_in": token.seconds_until_expiry()}
    if not os.environ.get(SKIP_PROFILE_ENV):
        display_name = _fetch_display_name(token)
        if display_name:
            payload["display_name"] = display_name
    return Response.success_with_payload(200, "Login successful", payload)


@handler
def auth_logout():
    store = common.open_token_store()
    if not store.exists():
        return Response.success(200, "Already logged out")
    try:
        store.delete()
    except TokenStoreError as e:
        return Response.err_with_details(
            500, "Failed to delete token", ErrorKind.STORAGE, str(e)
        )
    return Response.success(200, "Logged out successfully")


@handler
def auth_refresh():
    config = common.load_config()
    store = common.open_token_store()
    try:
        token = store.load()
    except TokenStoreError:
        return Response.err(401, common.NOT_LOGGED_IN, ErrorKind.AUTH)
    if not token.refresh_token:
        return Response.err(401, "No refresh token available", ErrorKind.AUTH)

    try:
        new_token = common.oauth_flow(config).refresh(token.refresh_token)
    except OAuthError as e:
        return Response.err_with_details(
            401, "Failed to refresh token", ErrorKind.AUTH, str(e)
        )
    _save(store, new_token)
    return Response.success_with_payload(
        200, "Token refreshed", {"expires_in": new_token.seconds_until_expiry()}
    )


@handler
def auth_status():
    store = common.open_token_store()
    if not store.exists():
        return Response.success_with_payload(
            200, "Not authenticated", {"authenticated": False}
        )
    try:
        token = store.load()
    except TokenStoreError as e:
        return Response.err_with_details(
            500, "Failed to load token", ErrorKind.STORAGE, str(e)
        )
    expired = token.is_expired()
    return Response.success_with_payload(
        200,
        "Token expired" if expired else "Authenticated",
        {
            "authenticated": not expired,
            "expired": expired,
            "expires_in": token.seconds_until_expiry(),
        },
    )
