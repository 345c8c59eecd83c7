"""Track/album/artist details (defaulting to what is playing) and user profiles."""

import logging

from .. import endpoints
from ..api import HttpError
from ..pins import extract_id
from ..response import ErrorKind, PayloadKind, Response
from ..search import best_match, filter_ghost_entries
from . import common
from .common import api_call, handler
from .player import start_playback

logger = logging.getLogger(__name__)

ARTIST_VIEWS = ("details", "top", "albums", "related")
TIME_RANGES = {
    "short": ("short_term", "4 weeks"),
    "medium": ("medium_term", "6 months"),
    "long": ("long_term", "all time"),
}
TOP_TYPES = ("tracks", "artists")
LOOKUP_TYPES = ("track", "album", "artist", "playlist")
LOOKUP_LIMIT = 10


def _target_id(client, value, kind):
    if value:
        return extract_id(value)
    return common.now_playing_id(client, kind)


def _artist_names(item):
    return ", ".join(a.get("name", "?") for a in item.get("artists") or []) or "Unknown Artist"


@handler
def info_track(track_id=None, id_only=False):
    client = common.get_authenticated_client()
    track_id = _target_id(client, track_id, "track")
    if id_only:
        return Response.success(200, track_id)
    payload = api_call("Failed to get track", client.get, endpoints.track(track_id))
    if not payload:
        return Response.err(404, "Track not found", ErrorKind.NOT_FOUND)
    message = f"{payload.get('name', 'Track details')} - {_artist_names(payload)}"
    return Response.success_typed(200, message, PayloadKind.TRACK, payload)


@handler
def info_album(album_id=None, id_only=False):
    client = common.get_authenticated_client()
    album_id = _target_id(client, album_id, "album")
    if id_only:
        return Response.success(200, album_id)
    payload = api_call("Failed to get album", client.get, endpoints.album(album_id))
    if not payload:
        return Response.err(404, "Album not found", ErrorKind.NOT_FOUND)
    message = f"{payload.get('name', 'Album details')} - {_artist_names(payload)}"
    return Response.success_typed(200, message, PayloadKind.ALBUM, payload)


@handler
def info_artist(artist_id=None, id_only=False, view="details", market="US", limit=20, offset=0):
    if view not in ARTIST_VIEWS:
        return Response.err(
            400,
            f"Invalid artist view '{view}'. Use: {', '.join(ARTIST_VIEWS)}",
            ErrorKind.VALIDATION,
        )
    client = common.get_authenticated_client()
    artist_id = _target_id(client, artist_id, "artist")
    if id_only:
        return Response.success(200, artist_id)

    if view == "top":
        payload = api_call(
            "Failed to get top tracks",
            client.get,
            endpoints.artist_top_tracks(artist_id, market or "US"),
        )
        tracks = (payload or {}).get("tracks") or []
        return Response.success_typed(
            200,
            f"Top {len(tracks)} tracks" if tracks else "No top tracks",
            PayloadKind.ARTIST_TOP_TRACKS,
            payload or {"tracks": []},
        )
    if view == "albums":
        payload = api_call(
            "Failed to get artist albums",
            client.get,
            endpoints.artist_albums(artist_id, limit, offset),
        )
        if not payload or not payload.get("items"):
            return Response.success_typed(200, "No albums", PayloadKind.ALBUM_LIST, {"items": []})
        return Response.success_typed(200, "Artist albums", PayloadKind.ALBUM_LIST, payload)
    if view == "related":
        payload = api_call(
            "Failed to get related artists",
            client.get,
            endpoints.artist_related_artists(artist_id),
        )
        artists = (payload or {}).get("artists") or []
        return Response.success_typed(
            200,
            f"{len(artists)} related artists" if artists else "No related artists",
            PayloadKind.RELATED_ARTISTS,
            payload or {"artists": []},
        )

    payload = api_call("Failed to get artist", client.get, endpoints.artist(artist_id))
    if not payload:
        return Response.err(404, "Artist not found", ErrorKind.NOT_FOUND)
    return Response.success_typed(
        200, payload.get("name") or "Artist details", PayloadKind.ARTIST, payload
    )


@handler
def user_profile():
    client = common.get_authenticated_client()
    payload = api_call("Failed to get user profile", client.get, endpoints.current_user())
    if not payload:
        return Response.err(404, "User not found", ErrorKind.NOT_FOUND)
    name = payload.get("display_name") or payload.get("id", "Unknown")
    product = payload.get("product") or "free"
    return Response.success_typed(200, f"{name} ({product})", PayloadKind.USER, payload)


@handler
def user_top(item_type="tracks", time_range="medium", limit=20):
    if item_type not in TOP_TYPES:
        return Response.err(
            400, f"Invalid type '{item_type}'. Use: tracks, artists", ErrorKind.VALIDATION
        )
    api_range, description = TIME_RANGES.get(time_range, TIME_RANGES["medium"])
    client = common.get_authenticated_client()
    payload = api_call(
        "Failed to get top items",
        client.get,
        endpoints.user_top_items(item_type, api_range, limit),
    )
    payload = payload or {"items": []}
    count = len(payload.get("items") or [])
    kind = PayloadKind.TOP_TRACKS if item_type == "tracks" else PayloadKind.TOP_ARTISTS
    return Response.success_typed(
        200, f"Top {count} {item_type} ({description})", kind, payload
    )


@handler
def user_get(user_id):
    client = common.get_authenticated_client()
    payload = api_call("Failed to get user", client.get, endpoints.user_profile(user_id))
    if not payload:
        return Response.err(404, "User not found", ErrorKind.NOT_FOUND)
    return Response.success_typed(
        200, payload.get("display_name") or payload.get("id") or user_id, PayloadKind.USER, payload
    )


def _user_name(client):
    """Display name of the signed-in user, for preferring their own playlists."""
    try:
        user = client.get(endpoints.current_user())
    except HttpError as e:
        logger.debug("No user name for owner matching: %s", e)
        return None
    user = user or {}
    return user.get("display_name") or user.get("id")


def _playlist_details(client, playlist_id):
    payload = api_call("Failed to get playlist", client.get, endpoints.playlist(playlist_id))
    if not payload:
        return Response.err(404, "Playlist not found", ErrorKind.NOT_FOUND)
    return Response.success_typed(
        200, payload.get("name") or "Playlist details", PayloadKind.PLAYLIST, payload
    )


@handler
def info_lookup(query="", play=False):
    """
    Details for the best search match of ``query`` across tracks, albums,
    artists and playlists, optionally starting playback of it.

    Playlists owned by the signed-in user win ties against other users'.
    """
    query = (query or "").strip()
    if not query:
        return Response.err(400, "Provide a search query", ErrorKind.VALIDATION)
    client = common.get_authenticated_client()
    results = api_call(
        "Search failed", client.get, endpoints.search(query, LOOKUP_TYPES, LOOKUP_LIMIT)
    )
    results = results or {}
    filter_ghost_entries(results)

    candidates = []
    for kind in LOOKUP_TYPES:
        for item in (results.get(f"{kind}s") or {}).get("items") or []:
            item.setdefault("type", kind)
            candidates.append(item)
    match = best_match(candidates, query, _user_name(client))
    if match is None:
        return Response.err(404, f"No results found for '{query}'", ErrorKind.NOT_FOUND)

    if play and match.get("uri"):
        started = start_playback(client, match["uri"])
        if not started.is_success:
            return started

    kind = match.get("type")
    if kind == "track":
        details = info_track(match["id"])
    elif kind == "album":
        details = info_album(match["id"])
    elif kind == "artist":
        details = info_artist(match["id"])
    else:
        details = _playlist_details(client, match["id"])
    if play and details.is_success:
        return Response.success_typed(
            details.code, f"Playing: {details.message}", details.payload_kind, details.payload
        )
    return details
