"""Liked songs and followed artists/users."""

from .. import endpoints
from ..pins import extract_id
from ..response import ErrorKind, PayloadKind, Response
from . import common
from .common import api_call, dry_run_response, handler
from .resources import make_check, make_list

library_list = make_list(endpoints.saved_tracks, "Saved tracks", PayloadKind.SAVED_TRACKS)
library_check = make_check(endpoints.saved_tracks_contains, "track")


@handler
def library_save(ids=None, now_playing=False, dry_run=False):
    ids = [extract_id(i) for i in ids or [] if i]
    if not ids and not now_playing:
        return Response.err(400, "Provide track IDs or use --now-playing", ErrorKind.VALIDATION)
    client = common.get_authenticated_client()
    if now_playing:
        ids.append(common.now_playing_id(client, "track"))
    if dry_run:
        return dry_run_response(
            f"Would save {len(ids)} track(s) to library", action="save", ids=ids
        )
    api_call("Failed to save tracks", client.put, endpoints.saved_tracks_ids(ids))
    return Response.success(200, f"Saved {len(ids)} track(s)")


@handler
def library_remove(ids=None, dry_run=False):
    ids = [extract_id(i) for i in ids or [] if i]
    if not ids:
        return Response.err(400, "Provide track IDs to remove", ErrorKind.VALIDATION)
    if dry_run:
        return dry_run_response(
            f"Would remove {len(ids)} track(s) from library", action="remove", ids=ids
        )
    client = common.get_authenticated_client()
    api_call("Failed to remove tracks", client.delete, endpoints.saved_tracks_ids(ids))
    return Response.success(200, f"Removed {len(ids)} track(s)")


def _follow_change(entity_type, ids, dry_run, follow):
    verb = "follow" if follow else "unfollow"
    ids = [extract_id(i) for i in ids or [] if i]
    if not ids:
        return Response.err(400, f"Provide {entity_type} IDs", ErrorKind.VALIDATION)
    if dry_run:
        return dry_run_response(
            f"Would {verb} {len(ids)} {entity_type}(s)",
            action=verb,
            type=entity_type,
            ids=ids,
        )
    client = common.get_authenticated_client()
    method = client.put if follow else client.delete
    api_call(
        f"Failed to {verb} {entity_type}s",
        method,
        endpoints.follow_artists_or_users(entity_type, ids),
    )
    return Response.success(200, f"{verb.capitalize()}ed {len(ids)} {entity_type}(s)")


@handler
def follow_artist(ids=None, dry_run=False):
    return _follow_change("artist", ids, dry_run, follow=True)


@handler
def follow_user(ids=None, dry_run=False):
    return _follow_change("user", ids, dry_run, follow=True)


@handler
def unfollow_artist(ids=None, dry_run=False):
    return _follow_change("artist", ids, dry_run, follow=False)


@handler
def unfollow_user(ids=None, dry_run=False):
    return _follow_change("user", ids, dry_run, follow=False)


@handler
def follow_list(limit=20):
    client = common.get_authenticated_client()
    payload = api_call(
        "Failed to get followed artists", client.get, endpoints.followed_artists(limit)
    )
    artists = (payload or {}).get("artists")
    if not artists or not artists.get("items"):
        return Response.success_typed(
            200,
            "Not following any artists",
            PayloadKind.FOLLOWED_ARTISTS,
            {"artists": {"items": []}},
        )
    count = len(artists["items"])
    total = artists.get("total") or count
    return Response.success_typed(
        200,
        f"Following {total} artists (showing {count})",
        PayloadKind.FOLLOWED_ARTISTS,
        payload,
    )


def _follow_check(entity_type, ids):
    ids = [extract_id(i) for i in ids or [] if i]
    if not ids:
        return Response.err(400, f"Provide {entity_type} IDs", ErrorKind.VALIDATION)
    client = common.get_authenticated_client()
    payload = api_call(
        "Failed to check follow status",
        client.get,
        endpoints.following_contains(entity_type, ids),
    )
    return Response.success_typed(
        200, "Follow check results", PayloadKind.LIBRARY_CHECK, payload or []
    )


@handler
def follow_check_artist(ids=None):
    return _follow_check("artist", ids)


@handler
def follow_check_user(ids=None):
    return _follow_check("user", ids)
