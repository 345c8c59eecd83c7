"""
Playlist commands.

Most handlers are a single Web API request. ``playlist_deduplicate`` is the
exception: the Web API cannot remove one occurrence of a repeated track by
position reliably, so it clears every track and writes back the unique ones
in their original order.
"""

import logging

from .. import endpoints
from ..api import HttpError
from ..pins import ResourceType, extract_id
from ..response import ErrorKind, PayloadKind, Response
from . import common
from .common import api_call, dry_run_response, handler

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
# Web API limit for add/remove items requests.
WRITE_CHUNK = 100


def resolve_playlist_id(value):
    """Pin alias (playlist pins only), URL, URI or bare id to a playlist id."""
    store = common.open_pin_store()
    pin = store.find_by_alias(value)
    if pin is not None and pin.resource_type == ResourceType.PLAYLIST:
        return pin.id
    return extract_id(value)


def looks_like_id(value):
    return bool(value) and value.isalnum()


def _paginate(client, path_for_page, context):
    offset = 0
    while True:
        page = api_call(context, client.get, path_for_page(PAGE_SIZE, offset))
        items = (page or {}).get("items") or []
        yield from items
        if not items or not (page or {}).get("next"):
            return
        offset += PAGE_SIZE


def resolve_playlist(client, value):
    """
    Like ``resolve_playlist_id`` but also accepts a playlist name.

    Names are matched case-insensitively against the user's own playlists.
    """
    playlist_id = resolve_playlist_id(value)
    if looks_like_id(playlist_id):
        return playlist_id

    wanted = value.strip().lower()
    for playlist in _paginate(
        client, endpoints.current_user_playlists, "Failed to get playlists"
    ):
        if (playlist.get("name") or "").lower() == wanted:
            logger.debug("Resolved playlist name %r to %s", value, playlist.get("id"))
            return playlist["id"]
    raise common.Abort(
        Response.err(
            404,
            f"Playlist '{value}' not found. Pass a playlist id, URL, or exact name",
            ErrorKind.NOT_FOUND,
        )
    )


def _chunks(values, size=WRITE_CHUNK):
    for start in range(0, len(values), size):
        yield values[start:start + size]


def _current_user_id(client):
    user = api_call("Failed to get user info", client.get, endpoints.current_user())
    user_id = (user or {}).get("id")
    if not user_id:
        raise common.Abort(Response.err(500, "Could not get user ID", ErrorKind.API))
    return user_id


def _now_playing_uri(client):
    item = common.current_item(client)
    if not item.get("uri"):
        raise common.Abort(Response.err(404, "Nothing currently playing", ErrorKind.PLAYER))
    return item["uri"]


def _add_items(client, playlist_id, uris, position=None):
    body = {"uris": uris}
    if position is not None:
        body["position"] = position
    return client.post(endpoints.playlist_tracks(playlist_id), body)


def _remove_items(client, playlist_id, uris):
    return client.delete(
        endpoints.playlist_tracks(playlist_id), {"tracks": [{"uri": u} for u in uris]}
    )


@handler
def playlist_list(limit=20, offset=0):
    client = common.get_authenticated_client()
    payload = api_call(
        "Failed to get playlists", client.get, endpoints.current_user_playlists(limit, offset)
    )
    if not payload or not payload.get("items"):
        return Response.success_typed(200, "No playlists", PayloadKind.PLAYLIST_LIST, {"items": []})
    return Response.success_typed(200, "Your playlists", PayloadKind.PLAYLIST_LIST, payload)


@handler
def playlist_get(playlist):
    client = common.get_authenticated_client()
    playlist_id = resolve_playlist(client, playlist)
    payload = api_call("Failed to get playlist", client.get, endpoints.playlist(playlist_id))
    if not payload:
        return Response.err(404, "Playlist not found", ErrorKind.NOT_FOUND)
    return Response.success_typed(200, "Playlist details", PayloadKind.PLAYLIST, payload)


@handler
def playlist_create(name, description=None, public=False):
    if not name:
        return Response.err(400, "Playlist name must not be empty", ErrorKind.VALIDATION)
    client = common.get_authenticated_client()
    user_id = _current_user_id(client)
    body = {"name": name, "public": bool(public)}
    if description:
        body["description"] = description
    payload = api_call(
        "Failed to create playlist", client.post, endpoints.user_playlists(user_id), body
    )
    if not payload:
        return Response.err(500, "Failed to create playlist", ErrorKind.API)
    return Response.success_typed(201, "Playlist created", PayloadKind.PLAYLIST, payload)


@handler
def playlist_add(playlist, uris=None, now_playing=False, position=None, dry_run=False):
    uris = list(uris or [])
    if not uris and not now_playing:
        return Response.err(400, "Provide track URIs or use --now-playing", ErrorKind.VALIDATION)
    client = common.get_authenticated_client()
    playlist_id = resolve_playlist(client, playlist)
    if now_playing:
        uris.append(_now_playing_uri(client))

    if dry_run:
        return dry_run_response(
            f"Would add {len(uris)} track(s) to playlist",
            action="add",
            playlist_id=playlist_id,
            uris=uris,
            position=position,
        )
    payload = api_call("Failed to add tracks", _add_items, client, playlist_id, uris, position)
    return Response.success_with_payload(201, f"Added {len(uris)} track(s)", payload)


@handler
def playlist_remove(playlist, uris=None, dry_run=False):
    uris = list(uris or [])
    if not uris:
        return Response.err(400, "Provide track URIs to remove", ErrorKind.VALIDATION)
    client = common.get_authenticated_client()
    playlist_id = resolve_playlist(client, playlist)
    if dry_run:
        return dry_run_response(
            f"Would remove {len(uris)} track(s) from playlist",
            action="remove",
            playlist_id=playlist_id,
            uris=uris,
        )
    payload = api_call("Failed to remove tracks", _remove_items, client, playlist_id, uris)
    return Response.success_with_payload(200, f"Removed {len(uris)} track(s)", payload)


@handler
def playlist_edit(playlist, name=None, description=None, public=None):
    if name is None and description is None and public is None:
        return Response.err(
            400,
            "No changes specified. Use --name, --description, --public, or --private",
            ErrorKind.VALIDATION,
        )
    client = common.get_authenticated_client()
    playlist_id = resolve_playlist(client, playlist)
    body = {}
    if name is not None:
        body["name"] = name
    if description is not None:
        body["description"] = description
    if public is not None:
        body["public"] = bool(public)
    api_call("Failed to update playlist", client.put, endpoints.playlist(playlist_id), body)
    return Response.success(200, "Playlist updated")


@handler
def playlist_reorder(playlist, range_start=0, insert_before=0, range_length=1):
    client = common.get_authenticated_client()
    playlist_id = resolve_playlist(client, playlist)
    body = {
        "range_start": range_start,
        "insert_before": insert_before,
        "range_length": range_length,
    }
    api_call("Failed to reorder tracks", client.put, endpoints.playlist_tracks(playlist_id), body)
    return Response.success(
        200,
        f"Moved {range_length} track(s) from position {range_start} to {insert_before}",
    )


@handler
def playlist_follow(playlist, public=True):
    client = common.get_authenticated_client()
    playlist_id = extract_id(playlist)
    api_call(
        "Failed to follow playlist",
        client.put,
        endpoints.playlist_followers(playlist_id),
        {"public": bool(public)},
    )
    return Response.success(200, "Following playlist")


@handler
def playlist_unfollow(playlist):
    client = common.get_authenticated_client()
    playlist_id = extract_id(playlist)
    api_call("Failed to unfollow playlist", client.delete, endpoints.playlist_followers(playlist_id))
    return Response.success(200, "Unfollowed playlist")


@handler
def playlist_duplicate(playlist, name=None):
    client = common.get_authenticated_client()
    playlist_id = resolve_playlist(client, playlist)
    source = api_call("Failed to get playlist", client.get, endpoints.playlist(playlist_id))
    if not source:
        return Response.err(404, "Playlist not found", ErrorKind.NOT_FOUND)

    new_name = name or f"{source.get('name') or 'Playlist'} (Copy)"
    user_id = _current_user_id(client)
    body = {"name": new_name, "public": False}
    if source.get("description"):
        body["description"] = source["description"]
    created = api_call(
        "Failed to create playlist", client.post, endpoints.user_playlists(user_id), body
    )
    new_id = (created or {}).get("id")
    if not new_id:
        return Response.err(500, "Failed to get new playlist ID", ErrorKind.API)

    uris = [
        item["track"]["uri"]
        for item in (source.get("tracks") or {}).get("items") or []
        if item and item.get("track") and item["track"].get("uri")
    ]
    try:
        for chunk in _chunks(uris):
            _add_items(client, new_id, chunk)
    except HttpError as e:
        logger.error("Playlist %s created but copying tracks failed: %s", new_id, e)
        return Response.from_http_error(e, "Created playlist but failed to copy tracks")
    return Response.success_typed(
        200, f"Duplicated playlist as '{new_name}'", PayloadKind.PLAYLIST, created
    )


def find_duplicates(items):
    """
    Split playlist items into unique URIs (first occurrences, in order) and
    the display names of every later repeat.
    """
    seen = set()
    unique_uris = []
    duplicates = []
    for item in items:
        track = (item or {}).get("track") or {}
        track_id = track.get("id")
        if track_id and track_id in seen:
            duplicates.append(track.get("name") or track_id)
            continue
        if track_id:
            seen.add(track_id)
        if track.get("uri"):
            unique_uris.append(track["uri"])
    return unique_uris, duplicates


@handler
def playlist_deduplicate(playlist, dry_run=False):
    client = common.get_authenticated_client()
    playlist_id = resolve_playlist(client, playlist)
    items = list(
        _paginate(
            client,
            lambda limit, offset: endpoints.playlist_items(playlist_id, limit, offset),
            "Failed to get playlist tracks",
        )
    )
    if not items:
        return Response.success(200, "Playlist is empty, nothing to deduplicate")

    unique_uris, duplicates = find_duplicates(items)
    if not duplicates:
        return Response.success(200, "No duplicates found")

    if dry_run:
        return dry_run_response(
            f"Would remove {len(duplicates)} duplicate(s)",
            action="deduplicate",
            playlist_id=playlist_id,
            duplicates=duplicates,
            would_remain=len(unique_uris),
        )

    all_uris = list(
        dict.fromkeys(
            item["track"]["uri"]
            for item in items
            if item and item.get("track") and item["track"].get("uri")
        )
    )
    logger.info(
        "Deduplicating playlist %s: clearing %s uri(s), restoring %s",
        playlist_id,
        len(all_uris),
        len(unique_uris),
    )
    try:
        for chunk in _chunks(all_uris):
            _remove_items(client, playlist_id, chunk)
    except HttpError as e:
        return Response.from_http_error(e, "Failed to clear playlist")
    try:
        for chunk in _chunks(unique_uris):
            _add_items(client, playlist_id, chunk)
    except HttpError as e:
        logger.error("Playlist %s was cleared but restoring tracks failed: %s", playlist_id, e)
        return Response.from_http_error(e, "Failed to restore unique tracks")

    return Response.success_with_payload(
        200,
        f"Removed {len(duplicates)} duplicate(s)",
        {"duplicates": duplicates, "removed": len(duplicates), "remaining": len(unique_uris)},
    )


@handler
def playlist_cover(playlist):
    client = common.get_authenticated_client()
    playlist_id = resolve_playlist(client, playlist)
    images = api_call(
        "Failed to get cover image", client.get, endpoints.playlist_cover_image(playlist_id)
    )
    if not images:
        return Response.err(404, "Playlist has no cover image", ErrorKind.NOT_FOUND)
    return Response.success_with_payload(200, images[0].get("url") or "Cover image", {"images": images})


@handler
def playlist_user(user_id):
    client = common.get_authenticated_client()
    payload = api_call(
        "Failed to get user playlists", client.get, endpoints.user_playlists(user_id)
    )
    if not payload or not payload.get("items"):
        return Response.success_typed(200, "No playlists", PayloadKind.PLAYLIST_LIST, {"items": []})
    return Response.success_typed(
        200, f"Playlists for {user_id}", PayloadKind.PLAYLIST_LIST, payload
    )
