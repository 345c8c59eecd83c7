"""
Method table shared by the daemon and the CLI.

Every method takes a params dict and returns a ``Response``. Missing or
mistyped params fall back to defaults instead of failing; handlers then
validate what they actually need.
"""

import logging

from .. import APP_NAME, __version__
from ..commands import auth, info, library, pin, player, playlist, resources
from ..commands import search as search_commands
from ..response import ErrorKind, PayloadKind, Response
from ..search import DEFAULT_LIMIT, SearchFilters

logger = logging.getLogger(__name__)


class Params:
    """Typed, defaulting accessors over a JSON-RPC params object."""

    def __init__(self, data=None):
        self.data = data if isinstance(data, dict) else {}

    def get_str(self, key, default=None):
        value = self.data.get(key)
        return value if isinstance(value, str) else default

    def get_int(self, key, default=0):
        value = self.data.get(key)
        if isinstance(value, bool):
            return default
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value)
        return default

    def get_opt_int(self, key):
        return self.get_int(key, None) if key in self.data else None

    def get_bool(self, key, default=False):
        value = self.data.get(key)
        return value if isinstance(value, bool) else default

    def get_opt_bool(self, key):
        value = self.data.get(key)
        return value if isinstance(value, bool) else None

    def get_list(self, key):
        """A list of strings; a comma-separated string is split."""
        value = self.data.get(key)
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, list):
            return []
        return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def _version(p):
    return Response.success_typed(
        200,
        "Version info",
        PayloadKind.GENERIC,
        {"version": __version__, "name": APP_NAME},
    )


def _search(p):
    filters = SearchFilters(
        artist=p.get_str("artist"),
        album=p.get_str("album"),
        track=p.get_str("track"),
        year=p.get_str("year"),
        genre=p.get_str("genre"),
        isrc=p.get_str("isrc"),
        upc=p.get_str("upc"),
        new=p.get_bool("new"),
        hipster=p.get_bool("hipster"),
    )
    return search_commands.search_command(
        query=p.get_str("query", ""),
        types=p.get_list("types"),
        limit=p.get_int("limit", DEFAULT_LIMIT),
        pins_only=p.get_bool("pins_only"),
        exact=p.get_bool("exact"),
        filters=filters,
        play=p.get_bool("play"),
    )


def _by_id(func):
    return lambda p: func(p.get_str("id", ""))


def _paged(func):
    return lambda p: func(p.get_int("limit", 20), p.get_int("offset", 0))


def _paged_by_id(func):
    return lambda p: func(p.get_str("id", ""), p.get_int("limit", 20), p.get_int("offset", 0))


def _by_ids(func):
    return lambda p: func(p.get_list("ids"))


def _by_ids_dry_run(func):
    return lambda p: func(p.get_list("ids"), dry_run=p.get_bool("dry_run"))


METHODS = {
    "ping": lambda p: Response.success(200, "pong"),
    "version": _version,
    # Auth
    "auth.login": lambda p: auth.auth_login(p.get_bool("force")),
    "auth.logout": lambda p: auth.auth_logout(),
    "auth.refresh": lambda p: auth.auth_refresh(),
    "auth.status": lambda p: auth.auth_status(),
    # Player
    "player.status": lambda p: player.player_status(p.get_str("id_only")),
    "player.play": lambda p: player.player_play(p.get_str("uri"), p.get_str("pin")),
    "player.pause": lambda p: player.player_pause(),
    "player.toggle": lambda p: player.player_toggle(),
    "player.next": lambda p: player.player_next(),
    "player.previous": lambda p: player.player_previous(),
    "player.seek": lambda p: player.player_seek(p.get_str("position", "0")),
    "player.volume": lambda p: player.player_volume(p.get_int("percent", 0)),
    "player.shuffle": lambda p: player.player_shuffle(p.get_str("state", "on")),
    "player.repeat": lambda p: player.player_repeat(p.get_str("mode", "off")),
    "player.devices": lambda p: player.player_devices(),
    "player.transfer": lambda p: player.player_transfer(p.get_str("device", "")),
    "player.recent": lambda p: player.player_recent(p.get_int("limit", 20)),
    # Queue
    "queue.list": lambda p: player.queue_list(),
    "queue.add": lambda p: player.queue_add(p.get_str("uri"), p.get_bool("now_playing")),
    # Search
    "search": _search,
    # Pins
    "pin.add": lambda p: pin.pin_add(
        p.get_str("type", ""),
        p.get_str("id", ""),
        p.get_str("alias", ""),
        p.get_list("tags"),
    ),
    "pin.remove": lambda p: pin.pin_remove(p.get_str("id", "")),
    "pin.list": lambda p: pin.pin_list(p.get_str("type")),
    # Playlists
    "playlist.list": _paged(playlist.playlist_list),
    "playlist.get": _by_id(playlist.playlist_get),
    "playlist.create": lambda p: playlist.playlist_create(
        p.get_str("name", ""), p.get_str("description"), p.get_bool("public")
    ),
    "playlist.add": lambda p: playlist.playlist_add(
        p.get_str("id", ""),
        p.get_list("uris"),
        now_playing=p.get_bool("now_playing"),
        position=p.get_opt_int("position"),
        dry_run=p.get_bool("dry_run"),
    ),
    "playlist.remove": lambda p: playlist.playlist_remove(
        p.get_str("id", ""), p.get_list("uris"), dry_run=p.get_bool("dry_run")
    ),
    "playlist.edit": lambda p: playlist.playlist_edit(
        p.get_str("id", ""),
        name=p.get_str("name"),
        description=p.get_str("description"),
        public=p.get_opt_bool("public"),
    ),
    "playlist.reorder": lambda p: playlist.playlist_reorder(
        p.get_str("id", ""),
        p.get_int("range_start", 0),
        p.get_int("insert_before", 0),
        p.get_int("range_length", 1),
    ),
    "playlist.follow": lambda p: playlist.playlist_follow(
        p.get_str("id", ""), p.get_bool("public", True)
    ),
    "playlist.unfollow": _by_id(playlist.playlist_unfollow),
    "playlist.duplicate": lambda p: playlist.playlist_duplicate(
        p.get_str("id", ""), p.get_str("name")
    ),
    "playlist.deduplicate": lambda p: playlist.playlist_deduplicate(
        p.get_str("id", ""), dry_run=p.get_bool("dry_run")
    ),
    "playlist.cover": _by_id(playlist.playlist_cover),
    "playlist.user": lambda p: playlist.playlist_user(p.get_str("user_id", "")),
    # Library
    "library.list": _paged(library.library_list),
    "library.save": lambda p: library.library_save(
        p.get_list("ids"), now_playing=p.get_bool("now_playing"), dry_run=p.get_bool("dry_run")
    ),
    "library.remove": _by_ids_dry_run(library.library_remove),
    "library.check": _by_ids(library.library_check),
    # Info
    "info.track": lambda p: info.info_track(p.get_str("id"), p.get_bool("id_only")),
    "info.album": lambda p: info.info_album(p.get_str("id"), p.get_bool("id_only")),
    "info.lookup": lambda p: info.info_lookup(p.get_str("query", ""), p.get_bool("play")),
    "info.artist": lambda p: info.info_artist(
        p.get_str("id"),
        p.get_bool("id_only"),
        view=p.get_str("view", "details"),
        market=p.get_str("market", "US"),
        limit=p.get_int("limit", 20),
        offset=p.get_int("offset", 0),
    ),
    # User
    "user.profile": lambda p: info.user_profile(),
    "user.top": lambda p: info.user_top(
        p.get_str("type", "tracks"), p.get_str("range", "medium"), p.get_int("limit", 20)
    ),
    "user.get": _by_id(info.user_get),
    # Shows
    "show.get": _by_id(resources.show_get),
    "show.episodes": _paged_by_id(resources.show_episodes),
    "show.list": _paged(resources.show_list),
    "show.save": _by_ids(resources.show_save),
    "show.remove": _by_ids(resources.show_remove),
    "show.check": _by_ids(resources.show_check),
    # Episodes
    "episode.get": _by_id(resources.episode_get),
    "episode.list": _paged(resources.episode_list),
    "episode.save": _by_ids(resources.episode_save),
    "episode.remove": _by_ids(resources.episode_remove),
    "episode.check": _by_ids(resources.episode_check),
    # Audiobooks
    "audiobook.get": _by_id(resources.audiobook_get),
    "audiobook.chapters": _paged_by_id(resources.audiobook_chapters),
    "audiobook.list": _paged(resources.audiobook_list),
    "audiobook.save": _by_ids(resources.audiobook_save),
    "audiobook.remove": _by_ids(resources.audiobook_remove),
    "audiobook.check": _by_ids(resources.audiobook_check),
    # Albums
    "album.list": _paged(resources.album_list),
    "album.tracks": _paged_by_id(resources.album_tracks),
    "album.save": _by_ids(resources.album_save),
    "album.remove": _by_ids(resources.album_remove),
    "album.check": _by_ids(resources.album_check),
    "album.newReleases": _paged(resources.album_new_releases),
    # Chapters
    "chapter.get": _by_id(resources.chapter_get),
    # Categories
    "category.list": _paged(resources.category_list),
    "category.get": _by_id(resources.category_get),
    "category.playlists": _paged_by_id(resources.category_playlists),
    # Follow
    "follow.artist": _by_ids_dry_run(library.follow_artist),
    "follow.user": _by_ids_dry_run(library.follow_user),
    "follow.unfollowArtist": _by_ids_dry_run(library.unfollow_artist),
    "follow.unfollowUser": _by_ids_dry_run(library.unfollow_user),
    "follow.list": lambda p: library.follow_list(p.get_int("limit", 20)),
    "follow.checkArtist": _by_ids(library.follow_check_artist),
    "follow.checkUser": _by_ids(library.follow_check_user),
    # Markets
    "markets.list": lambda p: resources.markets_list(),
}


class Dispatcher:
    def __init__(self, methods=None):
        self.methods = methods if methods is not None else METHODS

    def dispatch(self, method, params=None):
        logger.debug("Dispatching %s", method)
        handler = self.methods.get(method)
        if handler is None:
            return Response.err(400, f"Method not found: {method}", ErrorKind.VALIDATION)
        return handler(Params(params))
