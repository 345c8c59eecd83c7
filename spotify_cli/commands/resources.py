"""
Catalog and saved-item commands for shows, episodes, audiobooks, albums,
chapters, browse categories and markets.

Most of these follow one of six shapes (get, list, list-with-id, save,
remove, check); the ``make_*`` factories build a handler for one endpoint.
"""

from .. import endpoints
from ..pins import extract_id
from ..response import ErrorKind, PayloadKind, Response
from . import common
from .common import api_call, handler


def _ids(ids):
    return [extract_id(i) for i in ids or [] if i]


def make_get(path_for, resource, kind):
    @handler
    def get(resource_id):
        client = common.get_authenticated_client()
        payload = api_call(
            f"Failed to get {resource.lower()}", client.get, path_for(extract_id(resource_id))
        )
        if not payload:
            return Response.err(404, f"{resource} not found", ErrorKind.NOT_FOUND)
        return Response.success_typed(200, f"{resource} details", kind, payload)

    return get


def make_list(path_for, message, kind):
    @handler
    def list_items(limit=20, offset=0):
        client = common.get_authenticated_client()
        payload = api_call(f"Failed to get {message.lower()}", client.get, path_for(limit, offset))
        return Response.success_typed(200, message, kind, payload or {"items": []})

    return list_items


def make_list_with_id(path_for, message, empty_message, kind):
    @handler
    def list_items(resource_id, limit=20, offset=0):
        client = common.get_authenticated_client()
        payload = api_call(
            f"Failed to get {message.lower()}",
            client.get,
            path_for(extract_id(resource_id), limit, offset),
        )
        if not payload or not payload.get("items"):
            return Response.success_typed(200, empty_message, kind, {"items": []})
        return Response.success_typed(200, message, kind, payload)

    return list_items


def _require_ids(ids, resource):
    ids = _ids(ids)
    if not ids:
        raise common.Abort(
            Response.err(400, f"Provide {resource} IDs", ErrorKind.VALIDATION)
        )
    return ids


def make_save(path_for, resource):
    @handler
    def save(ids):
        ids = _require_ids(ids, resource)
        client = common.get_authenticated_client()
        api_call(f"Failed to save {resource}s", client.put, path_for(ids))
        return Response.success(200, f"Saved {len(ids)} {resource}(s)")

    return save


def make_remove(path_for, resource):
    @handler
    def remove(ids):
        ids = _require_ids(ids, resource)
        client = common.get_authenticated_client()
        api_call(f"Failed to remove {resource}s", client.delete, path_for(ids))
        return Response.success(200, f"Removed {len(ids)} {resource}(s)")

    return remove


def make_check(path_for, resource):
    @handler
    def check(ids):
        ids = _require_ids(ids, resource)
        client = common.get_authenticated_client()
        payload = api_call("Failed to check", client.get, path_for(ids))
        return Response.success_typed(
            200, "Check results", PayloadKind.LIBRARY_CHECK, payload or []
        )

    return check


# --- Shows ---
show_get = make_get(endpoints.show, "Show", PayloadKind.SHOW)
show_list = make_list(endpoints.saved_shows, "Saved shows", PayloadKind.SAVED_SHOWS)
show_episodes = make_list_with_id(
    endpoints.show_episodes, "Show episodes", "No episodes", PayloadKind.EPISODE_LIST
)
show_save = make_save(endpoints.saved_shows_ids, "show")
show_remove = make_remove(endpoints.saved_shows_ids, "show")
show_check = make_check(endpoints.saved_shows_contains, "show")

# --- Episodes ---
episode_get = make_get(endpoints.episode, "Episode", PayloadKind.EPISODE)
episode_list = make_list(endpoints.saved_episodes, "Saved episodes", PayloadKind.SAVED_EPISODES)
episode_save = make_save(endpoints.saved_episodes_ids, "episode")
episode_remove = make_remove(endpoints.saved_episodes_ids, "episode")
episode_check = make_check(endpoints.saved_episodes_contains, "episode")

# --- Audiobooks ---
audiobook_get = make_get(endpoints.audiobook, "Audiobook", PayloadKind.AUDIOBOOK)
audiobook_chapters = make_list_with_id(
    endpoints.audiobook_chapters, "Audiobook chapters", "No chapters", PayloadKind.CHAPTER_LIST
)
audiobook_list = make_list(
    endpoints.saved_audiobooks, "Saved audiobooks", PayloadKind.SAVED_AUDIOBOOKS
)
audiobook_save = make_save(endpoints.saved_audiobooks_ids, "audiobook")
audiobook_remove = make_remove(endpoints.saved_audiobooks_ids, "audiobook")
audiobook_check = make_check(endpoints.saved_audiobooks_contains, "audiobook")

# --- Albums ---
album_list = make_list(endpoints.saved_albums, "Saved albums", PayloadKind.SAVED_ALBUMS)
album_tracks = make_list_with_id(
    endpoints.album_tracks, "Album tracks", "No tracks", PayloadKind.TRACK_LIST
)
album_save = make_save(endpoints.saved_albums_ids, "album")
album_remove = make_remove(endpoints.saved_albums_ids, "album")
album_check = make_check(endpoints.saved_albums_contains, "album")
album_new_releases = make_list(endpoints.new_releases, "New releases", PayloadKind.NEW_RELEASES)

# --- Chapters ---
chapter_get = make_get(endpoints.chapter, "Chapter", PayloadKind.CHAPTER)


# --- Browse categories ---
@handler
def category_list(limit=20, offset=0):
    client = common.get_authenticated_client()
    payload = api_call("Failed to get categories", client.get, endpoints.categories(limit, offset))
    return Response.success_typed(
        200,
        "Browse categories",
        PayloadKind.CATEGORY_LIST,
        payload or {"categories": {"items": []}},
    )


@handler
def category_get(category_id):
    client = common.get_authenticated_client()
    payload = api_call("Failed to get category", client.get, endpoints.category(category_id))
    if not payload:
        return Response.err(404, "Category not found", ErrorKind.NOT_FOUND)
    return Response.success_typed(200, "Category details", PayloadKind.CATEGORY, payload)


@handler
def category_playlists(category_id, limit=20, offset=0):
    client = common.get_authenticated_client()
    payload = api_call(
        "Failed to get category playlists",
        client.get,
        endpoints.category_playlists(category_id, limit, offset),
    )
    return Response.success_typed(
        200,
        f"Playlists for {category_id}",
        PayloadKind.PLAYLIST_LIST,
        payload or {"playlists": {"items": []}},
    )


@handler
def markets_list():
    client = common.get_authenticated_client()
    payload = api_call("Failed to get markets", client.get, endpoints.markets())
    return Response.success_typed(
        200, "Available markets", PayloadKind.MARKETS, payload or {"markets": []}
    )
