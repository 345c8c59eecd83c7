"""
Human-readable rendering of successful responses.

Formatters register themselves with ``@formatter`` in the order they are
defined in this module. ``FormatterRegistry.render`` first looks for one that
declares the response's ``payload_kind``; untagged payloads fall back to the
shape predicates, tried in that same order. The order is significant: a
payload with ``owner`` and ``tracks`` is a playlist, not a set of search
results, so the detail formatters are defined before ``spotify_search``.
"""

import logging
import sys

from .response import PayloadKind as K

logger = logging.getLogger(__name__)

SEARCH_RESULT_KEYS = (
    "tracks",
    "artists",
    "albums",
    "playlists",
    "shows",
    "episodes",
    "audiobooks",
)
QUEUE_PREVIEW = 10

_FORMATTERS = []


class Formatter:
    def __init__(self, name, kinds, matches, render, scored=False):
        self.name = name
        self.kinds = frozenset(kinds)
        self.matches = matches
        self.render = render
        self.scored = scored

    def supports(self, kind):
        return kind in self.kinds

    def __repr__(self):
        return f"Formatter({self.name!r})"


def formatter(name, *kinds, matches, scored=False):
    """Register the decorated ``render(payload, message)`` function."""

    def decorator(render):
        _FORMATTERS.append(Formatter(name, kinds, matches, render, scored))
        return render

    return decorator


# --- Helpers ---
def _has(payload, *keys):
    return isinstance(payload, dict) and all(k in payload for k in keys)


def _lacks(payload, *keys):
    return isinstance(payload, dict) and not any(k in payload for k in keys)


def _first_item(payload):
    if not isinstance(payload, dict):
        return None
    items = payload.get("items")
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return None


def _first_item_has(*keys):
    def predicate(payload):
        return _has(_first_item(payload), *keys)

    return predicate


def _items(payload, wrapper=None):
    """Items of a paging object, optionally nested under ``wrapper``, or a bare list."""
    if wrapper and isinstance(payload, dict) and wrapper in payload:
        payload = payload[wrapper]
    if isinstance(payload, list):
        return [i for i in payload if i]
    if isinstance(payload, dict):
        return [i for i in payload.get("items") or [] if i]
    return []


def format_duration(ms):
    seconds = int(ms or 0) // 1000
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def artist_names(item):
    names = [a.get("name", "?") for a in (item or {}).get("artists") or [] if a]
    return ", ".join(names) or "Unknown"


def _name(item, default="Unknown"):
    return (item or {}).get("name") or default


def _track_line(track):
    return f"{_name(track)} - {artist_names(track)}"


def _authors(book):
    return ", ".join(a.get("name", "?") for a in book.get("authors") or []) or "Unknown"


def _header(message):
    if message:
        print(message)


def _print_pins(pins, show_scores):
    for pin in pins:
        score = f" ({pin['score']:.0f})" if show_scores and "score" in pin else ""
        tags = f" [{', '.join(pin['tags'])}]" if pin.get("tags") else ""
        print(f"  {pin.get('alias')}{tags} - {pin.get('type')}:{pin.get('id')}{score}")


def _search_item_line(result_type, item):
    if result_type in ("tracks", "albums"):
        return _track_line(item)
    if result_type == "playlists":
        owner = (item.get("owner") or {}).get("display_name") or "?"
        return f"{_name(item)} (by {owner})"
    if result_type == "shows" and item.get("publisher"):
        return f"{_name(item)} - {item['publisher']}"
    if result_type == "audiobooks":
        return f"{_name(item)} - {_authors(item)}"
    return _name(item)


def _print_search_containers(results, show_scores):
    for result_type in SEARCH_RESULT_KEYS:
        items = _items(results.get(result_type))
        if not items:
            continue
        print(f"{result_type.capitalize()}:")
        for item in items:
            score = ""
            if show_scores and "fuzzy_score" in item:
                score = f" ({item['fuzzy_score']:.0f})"
            print(f"  {_search_item_line(result_type, item)}{score}")
            print(f"    {item.get('uri', '')}")


# --- Player ---
@formatter("player_status", K.PLAYER_STATUS, matches=lambda p: _has(p, "item"))
def render_player_status(payload, message):
    item = payload.get("item") or {}
    icon = "▶" if payload.get("is_playing") else "⏸"
    print(f"{icon} {_track_line(item)}")
    if item.get("album"):
        print(f"  Album: {_name(item['album'])}")
    print(
        f"  Progress: {format_duration(payload.get('progress_ms'))} / "
        f"{format_duration(item.get('duration_ms'))}"
    )
    device = payload.get("device")
    if device:
        print(f"  Device: {_name(device)} ({device.get('volume_percent', 0)}%)")
    modes = []
    if payload.get("shuffle_state"):
        modes.append("shuffle")
    repeat = payload.get("repeat_state") or "off"
    if repeat != "off":
        modes.append(repeat)
    if modes:
        print(f"  Mode: {', '.join(modes)}")


@formatter("queue", K.QUEUE, matches=lambda p: _has(p, "currently_playing", "queue"))
def render_queue(payload, message):
    current = payload.get("currently_playing")
    if current:
        print(f"Now Playing: {_track_line(current)}")
    queue = payload.get("queue") or []
    if not queue:
        print("Queue is empty.")
        return
    print("Up Next:")
    for i, track in enumerate(queue[:QUEUE_PREVIEW], start=1):
        print(f"  {i}. {_track_line(track)}")
    if len(queue) > QUEUE_PREVIEW:
        print(f"  ... and {len(queue) - QUEUE_PREVIEW} more")


@formatter("devices", K.DEVICES, matches=lambda p: _has(p, "devices"))
def render_devices(payload, message):
    devices = payload.get("devices") or []
    if not devices:
        print("No devices available.")
        return
    for device in devices:
        marker = "*" if device.get("is_active") else " "
        volume = device.get("volume_percent")
        volume = f" {volume}%" if volume is not None else ""
        print(f"{marker} {_name(device)} [{device.get('type', '?')}]{volume}")
        print(f"    ID: {device.get('id', '?')}")


# --- Search and pins ---
@formatter(
    "combined_search",
    K.COMBINED_SEARCH,
    matches=lambda p: _has(p, "spotify"),
    scored=True,
)
def render_combined_search(payload, message, show_scores=True):
    _header(message)
    pins = payload.get("pins") or []
    if pins:
        print("Pinned:")
        _print_pins(pins, show_scores)
    spotify = payload.get("spotify")
    if isinstance(spotify, dict) and spotify:
        _print_search_containers(spotify, show_scores)


@formatter(
    "pins", K.PINS, matches=lambda p: _has(p, "pins") and _lacks(p, "spotify")
)
def render_pins(payload, message):
    pins = payload.get("pins") or []
    if not pins:
        print("No pins.")
        return
    _header(message)
    _print_pins(pins, show_scores=False)


# --- Categories ---
@formatter(
    "category_list",
    K.CATEGORY_LIST,
    matches=lambda p: _has(p, "categories") and _has(p["categories"], "items"),
)
def render_category_list(payload, message):
    _header(message)
    for category in _items(payload, "categories"):
        print(f"  {_name(category)} ({category.get('id', '?')})")


@formatter(
    "category_detail",
    K.CATEGORY,
    matches=lambda p: _has(p, "icons", "id") and _lacks(p, "followers", "owner"),
)
def render_category_detail(payload, message):
    print(_name(payload))
    print(f"  ID: {payload.get('id', '?')}")


# --- Resource details ---
@formatter("playlist_detail", K.PLAYLIST, matches=lambda p: _has(p, "owner", "tracks"))
def render_playlist_detail(payload, message):
    owner = (payload.get("owner") or {}).get("display_name") or "?"
    tracks = payload.get("tracks") or {}
    print(f"{_name(payload)} (by {owner})")
    if payload.get("description"):
        print(f"  {payload['description']}")
    print(f"  Tracks: {tracks.get('total', '?')}")
    for i, entry in enumerate(_items(tracks), start=1):
        track = entry.get("track")
        if track:
            print(f"  {i}. {_track_line(track)}")
        else:
            print(f"  {i}. [Unavailable Track]")


@formatter(
    "track_detail",
    K.TRACK,
    matches=lambda p: _has(p, "album", "artists", "duration_ms"),
)
def render_track_detail(payload, message):
    print(_track_line(payload))
    print(f"  Album: {_name(payload.get('album'))}")
    print(f"  Duration: {format_duration(payload.get('duration_ms'))}")
    if payload.get("popularity") is not None:
        print(f"  Popularity: {payload['popularity']}")
    print(f"  URI: {payload.get('uri', '?')}")


@formatter("album_detail", K.ALBUM, matches=lambda p: _has(p, "album_type", "tracks"))
def render_album_detail(payload, message):
    print(_track_line(payload))
    print(
        f"  Released: {payload.get('release_date', '?')} "
        f"({payload.get('album_type', '?')})"
    )
    for entry in _items(payload.get("tracks")):
        number = entry.get("track_number", "-")
        print(f"  {number}. {_name(entry)} ({format_duration(entry.get('duration_ms'))})")


@formatter(
    "artist_detail",
    K.ARTIST,
    matches=lambda p: _has(p, "followers", "genres") and _lacks(p, "album"),
)
def render_artist_detail(payload, message):
    print(_name(payload))
    followers = (payload.get("followers") or {}).get("total")
    if followers is not None:
        print(f"  Followers: {followers:,}")
    genres = payload.get("genres") or []
    if genres:
        print(f"  Genres: {', '.join(genres)}")
    print(f"  URI: {payload.get('uri', '?')}")


@formatter(
    "user_profile",
    K.USER,
    matches=lambda p: _has(p, "display_name", "product") and _lacks(p, "genres"),
)
def render_user_profile(payload, message):
    print(payload.get("display_name") or payload.get("id", "?"))
    print(f"  ID: {payload.get('id', '?')}")
    print(f"  Plan: {payload.get('product') or 'free'}")
    if payload.get("country"):
        print(f"  Country: {payload['country']}")


@formatter("show_detail", K.SHOW, matches=lambda p: _has(p, "publisher", "total_episodes"))
def render_show_detail(payload, message):
    print(f"{_name(payload)} - {payload.get('publisher', '?')}")
    print(f"  Episodes: {payload.get('total_episodes', '?')}")
    for episode in _items(payload.get("episodes")):
        print(f"  {episode.get('release_date', '?')}  {_name(episode)}")


@formatter(
    "episode_detail",
    K.EPISODE,
    matches=lambda p: _has(p, "show", "release_date", "duration_ms"),
)
def render_episode_detail(payload, message):
    print(f"{_name(payload)} - {_name(payload.get('show'))}")
    print(f"  Released: {payload.get('release_date', '?')}")
    print(f"  Duration: {format_duration(payload.get('duration_ms'))}")


@formatter(
    "audiobook_detail",
    K.AUDIOBOOK,
    matches=lambda p: _has(p, "authors", "total_chapters"),
)
def render_audiobook_detail(payload, message):
    print(f"{_name(payload)} - {_authors(payload)}")
    print(f"  Chapters: {payload.get('total_chapters', '?')}")


@formatter(
    "chapter_detail",
    K.CHAPTER,
    matches=lambda p: _has(p, "audiobook", "chapter_number"),
)
def render_chapter_detail(payload, message):
    print(f"{payload.get('chapter_number', '?')}. {_name(payload)}")
    print(f"  Audiobook: {_name(payload.get('audiobook'))}")
    print(f"  Duration: {format_duration(payload.get('duration_ms'))}")


# --- Raw search results (after the detail formatters) ---
def is_spotify_search(payload):
    if not _lacks(payload, "owner", "album_type"):
        return False
    return any(_has(payload.get(key), "items") for key in SEARCH_RESULT_KEYS)


@formatter("spotify_search", K.SEARCH_RESULTS, matches=is_spotify_search, scored=True)
def render_spotify_search(payload, message, show_scores=True):
    _header(message)
    _print_search_containers(payload, show_scores)


# --- Lists, keyed on the first item ---
@formatter(
    "playlists",
    K.PLAYLIST_LIST,
    K.FEATURED_PLAYLISTS,
    matches=lambda p: _has(_first_item(p), "tracks") or _has(_first_item(p), "owner"),
)
def render_playlists(payload, message):
    _header(message)
    for playlist in _items(payload, "playlists"):
        owner = (playlist.get("owner") or {}).get("display_name") or "?"
        total = (playlist.get("tracks") or {}).get("total", "?")
        print(f"  {_name(playlist)} ({total} tracks, by {owner})")
        print(f"    ID: {playlist.get('id', '?')}")


@formatter("saved_tracks", K.SAVED_TRACKS, matches=_first_item_has("track", "added_at"))
def render_saved_tracks(payload, message):
    _header(message)
    for entry in _items(payload):
        print(f"  {_track_line(entry.get('track'))}")


@formatter("play_history", K.PLAY_HISTORY, matches=_first_item_has("track", "played_at"))
def render_play_history(payload, message):
    _header(message)
    for entry in _items(payload):
        print(f"  {entry.get('played_at', '?')[:16]}  {_track_line(entry.get('track'))}")


def is_saved_shows(payload):
    item = _first_item(payload)
    return _has(item, "show") or _has(item, "publisher", "total_episodes")


@formatter("saved_shows", K.SAVED_SHOWS, K.SHOW_LIST, matches=is_saved_shows)
def render_saved_shows(payload, message):
    _header(message)
    for entry in _items(payload):
        show = entry.get("show") or entry
        print(f"  {_name(show)} - {show.get('publisher', '?')}")


def is_show_episodes(payload):
    item = _first_item(payload)
    return _has(item, "release_date", "duration_ms") and _lacks(item, "album", "artists")


@formatter("show_episodes", K.EPISODE_LIST, matches=is_show_episodes)
def render_show_episodes(payload, message):
    _header(message)
    for episode in _items(payload):
        print(f"  {episode.get('release_date', '?')}  {_name(episode)}")


@formatter("saved_episodes", K.SAVED_EPISODES, matches=_first_item_has("episode"))
def render_saved_episodes(payload, message):
    _header(message)
    for entry in _items(payload):
        episode = entry.get("episode") or entry
        print(f"  {_name(episode)} - {_name(episode.get('show'))}")


def is_saved_audiobooks(payload):
    item = _first_item(payload)
    return _has(item, "audiobook") or _has(item, "authors", "total_chapters")


@formatter(
    "saved_audiobooks", K.SAVED_AUDIOBOOKS, K.AUDIOBOOK_LIST, matches=is_saved_audiobooks
)
def render_saved_audiobooks(payload, message):
    _header(message)
    for entry in _items(payload):
        book = entry.get("audiobook") or entry
        print(f"  {_name(book)} - {_authors(book)}")


def is_audiobook_chapters(payload):
    item = _first_item(payload)
    return _has(item, "chapter_number") or _has(item, "audiobook", "duration_ms")


@formatter("audiobook_chapters", K.CHAPTER_LIST, matches=is_audiobook_chapters)
def render_audiobook_chapters(payload, message):
    _header(message)
    for chapter in _items(payload):
        print(f"  {chapter.get('chapter_number', '-')}. {_name(chapter)}")


# Saved albums items also carry "album"; must stay ahead of top_tracks.
@formatter(
    "saved_albums",
    K.SAVED_ALBUMS,
    K.ALBUM_LIST,
    K.NEW_RELEASES,
    matches=_first_item_has("album", "added_at"),
)
def render_saved_albums(payload, message):
    _header(message)
    for entry in _items(payload, "albums"):
        album = entry.get("album") or entry
        print(f"  {_track_line(album)} ({(album.get('release_date') or '?')[:4]})")


@formatter("top_tracks", K.TOP_TRACKS, K.TRACK_LIST, matches=_first_item_has("album"))
def render_top_tracks(payload, message):
    _header(message)
    for i, track in enumerate(_items(payload), start=1):
        print(f"  {i}. {_track_line(track)}")


@formatter(
    "top_artists",
    K.TOP_ARTISTS,
    K.ARTIST_LIST,
    K.FOLLOWED_ARTISTS,
    K.RELATED_ARTISTS,
    matches=_first_item_has("genres"),
)
def render_top_artists(payload, message):
    _header(message)
    for i, artist in enumerate(_items(payload, "artists"), start=1):
        genres = ", ".join((artist.get("genres") or [])[:3])
        print(f"  {i}. {_name(artist)}" + (f" ({genres})" if genres else ""))


@formatter(
    "artist_top_tracks",
    K.ARTIST_TOP_TRACKS,
    matches=lambda p: _has(p, "tracks")
    and isinstance(p["tracks"], list)
    and _lacks(p, "items"),
)
def render_artist_top_tracks(payload, message):
    _header(message)
    for i, track in enumerate(payload.get("tracks") or [], start=1):
        print(f"  {i}. {_track_line(track)}")


def is_library_check(payload):
    return (
        isinstance(payload, list)
        and bool(payload)
        and all(isinstance(v, bool) for v in payload)
    )


@formatter("library_check", K.LIBRARY_CHECK, matches=is_library_check)
def render_library_check(payload, message):
    _header(message)
    for i, saved in enumerate(payload, start=1):
        print(f"  {i}. {'yes' if saved else 'no'}")


@formatter("markets", K.MARKETS, matches=lambda p: _has(p, "markets"))
def render_markets(payload, message):
    markets = payload.get("markets") or []
    print(f"{len(markets)} markets: {' '.join(markets)}")


class FormatterRegistry:
    def __init__(self, formatters=None, show_scores=True):
        self.formatters = list(_FORMATTERS if formatters is None else formatters)
        self.show_scores = show_scores

    def find(self, payload, kind=None):
        """Formatter for a payload: by declared kind first, then by shape."""
        if kind is not None:
            for candidate in self.formatters:
                if candidate.supports(kind):
                    return candidate
        for candidate in self.formatters:
            if candidate.matches(payload):
                return candidate
        return None

    def render(self, response):
        if not response.is_success:
            print(f"Error: {response.message}", file=sys.stderr)
            if response.error_details:
                print(f"  {response.error_details}", file=sys.stderr)
            return

        if response.payload is not None:
            found = self.find(response.payload, response.payload_kind)
            if found is not None:
                logger.debug("Rendering with %s formatter", found.name)
                if found.scored:
                    found.render(response.payload, response.message, self.show_scores)
                else:
                    found.render(response.payload, response.message)
                return
        print(response.message)
